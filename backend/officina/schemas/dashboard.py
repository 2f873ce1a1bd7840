"""
Schemas Pydantic per la dashboard
Progetto: Officina Manager
"""

import datetime
from decimal import Decimal

from pydantic import BaseModel, Field


class DashboardStats(BaseModel):
    active_clients: int = Field(..., description="Clienti attivi")
    active_vehicles: int = Field(..., description="Veicoli attivi")
    active_products: int = Field(..., description="Prodotti attivi a catalogo")
    service_orders_by_status: dict[str, int] = Field(default_factory=dict)
    appointments_today: int = Field(..., description="Appuntamenti prenotati o confermati oggi")
    low_stock_products: int = Field(..., description="Prodotti con giacenza pari o inferiore al minimo")
    month_revenue: Decimal = Field(..., description="Totale ordini completati o consegnati nel mese")
    generated_at: datetime.datetime


__all__ = ["DashboardStats"]
