"""
Modelli Database SQLAlchemy
Progetto: Officina Manager

Import centralizzato di tutti i modelli per la creazione delle tabelle
e per l'uso generico.
"""

# SQLAlchemy 2.0 Base declarativa
# Importato qui per essere disponibile per tutti i modelli
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class per tutti i modelli SQLAlchemy."""
    pass


from officina.models.client import Client
from officina.models.vehicle import Vehicle
from officina.models.technician import Technician
from officina.models.service import Service
from officina.models.product import Product, StockMovement
from officina.models.appointment import Appointment
from officina.models.service_order import ProductLine, ServiceLine, ServiceOrder
from officina.models.audit_log import AuditLog
from officina.models.counter import DocumentCounter
from officina.models.financial_entry import FinancialEntry

__all__ = [
    "Base",
    "Client",
    "Vehicle",
    "Technician",
    "Service",
    "Product",
    "StockMovement",
    "Appointment",
    "ServiceOrder",
    "ServiceLine",
    "ProductLine",
    "AuditLog",
    "DocumentCounter",
    "FinancialEntry",
]
