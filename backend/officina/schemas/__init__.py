"""
Schemas Pydantic per il progetto Officina Manager

Questo modulo contiene tutti gli schemi Pydantic utilizzati per la validazione
e serializzazione delle richieste e delle risposte API.
"""

# Import degli schemi per renderli disponibili tramite import diretto
# es: from officina.schemas import VehicleRead, ClientRead, etc.

from officina.schemas.appointment import (
    AppointmentCancel,
    AppointmentCreate,
    AppointmentList,
    AppointmentRead,
    AppointmentStatus,
    AppointmentUpdate,
    AvailabilityRead,
)
from officina.schemas.audit_log import AuditLogList, AuditLogRead, RequestActor
from officina.schemas.client import ClientCreate, ClientList, ClientRead, ClientUpdate
from officina.schemas.dashboard import DashboardStats
from officina.schemas.financial_entry import (
    EntryStatus,
    EntryType,
    FinancialEntryCancel,
    FinancialEntryCreate,
    FinancialEntryList,
    FinancialEntryRead,
    FinancialEntryUpdate,
    FinancialSummary,
    PaymentRegistration,
)
from officina.schemas.product import (
    LowStockAlert,
    MovementDirection,
    ProductCreate,
    ProductList,
    ProductRead,
    ProductUpdate,
    StockMovementCreate,
    StockMovementList,
    StockMovementRead,
    UnitOfMeasure,
)
from officina.schemas.service import ServiceCreate, ServiceList, ServiceRead, ServiceUpdate
from officina.schemas.service_order import (
    PaymentMethod,
    ProductLineCreate,
    ProductLineRead,
    ServiceLineCreate,
    ServiceLineRead,
    ServiceLineStatus,
    ServiceLineUpdate,
    ServiceOrderCreate,
    ServiceOrderList,
    ServiceOrderRead,
    ServiceOrderStatus,
    ServiceOrderStatusUpdate,
    ServiceOrderUpdate,
)
from officina.schemas.technician import TechnicianCreate, TechnicianRead, TechnicianUpdate
from officina.schemas.token import TokenPayload
from officina.schemas.vehicle import VehicleCreate, VehicleList, VehicleRead, VehicleUpdate

__all__ = [
    # Appointment
    "AppointmentCancel",
    "AppointmentCreate",
    "AppointmentList",
    "AppointmentRead",
    "AppointmentStatus",
    "AppointmentUpdate",
    "AvailabilityRead",
    # Audit
    "AuditLogList",
    "AuditLogRead",
    "RequestActor",
    # Client
    "ClientCreate",
    "ClientList",
    "ClientRead",
    "ClientUpdate",
    # Dashboard
    "DashboardStats",
    # Contabilità
    "EntryStatus",
    "EntryType",
    "FinancialEntryCancel",
    "FinancialEntryCreate",
    "FinancialEntryList",
    "FinancialEntryRead",
    "FinancialEntryUpdate",
    "FinancialSummary",
    "PaymentRegistration",
    # Product
    "LowStockAlert",
    "MovementDirection",
    "ProductCreate",
    "ProductList",
    "ProductRead",
    "ProductUpdate",
    "StockMovementCreate",
    "StockMovementList",
    "StockMovementRead",
    "UnitOfMeasure",
    # Service
    "ServiceCreate",
    "ServiceList",
    "ServiceRead",
    "ServiceUpdate",
    # ServiceOrder
    "PaymentMethod",
    "ProductLineCreate",
    "ProductLineRead",
    "ServiceLineCreate",
    "ServiceLineRead",
    "ServiceLineStatus",
    "ServiceLineUpdate",
    "ServiceOrderCreate",
    "ServiceOrderList",
    "ServiceOrderRead",
    "ServiceOrderStatus",
    "ServiceOrderStatusUpdate",
    "ServiceOrderUpdate",
    # Technician
    "TechnicianCreate",
    "TechnicianRead",
    "TechnicianUpdate",
    # Token
    "TokenPayload",
    # Vehicle
    "VehicleCreate",
    "VehicleList",
    "VehicleRead",
    "VehicleUpdate",
]
