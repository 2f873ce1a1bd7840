"""
API v1 Routes
Progetto: Officina Manager

Router versione 1 dell'API.
"""

from fastapi import APIRouter

from officina.api.v1 import (
    appointments,
    audit_logs,
    catalog,
    clients,
    dashboard,
    financial_entries,
    products,
    service_orders,
    technicians,
    vehicles,
)

# Router aggregato per v1
api_v1_router = APIRouter(prefix="/api/v1")

# Includi i router dei moduli
api_v1_router.include_router(clients.router)
api_v1_router.include_router(vehicles.router)
api_v1_router.include_router(technicians.router)
api_v1_router.include_router(catalog.router)
api_v1_router.include_router(products.router)
api_v1_router.include_router(appointments.router)
api_v1_router.include_router(service_orders.router)
api_v1_router.include_router(financial_entries.router)
api_v1_router.include_router(dashboard.router)
api_v1_router.include_router(audit_logs.router)

# Esportazione
__all__ = ["api_v1_router"]
