"""
Schemas Pydantic per gli Ordini di Servizio
Progetto: Officina Manager

Definisce stati, matrice delle transizioni e schemi di validazione
per ordini di servizio e relative righe (servizi e prodotti).
"""

import datetime
import uuid
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


# -------------------------------------------------------------------
# Enum per gli stati dell'ordine di servizio
# -------------------------------------------------------------------

class ServiceOrderStatus(str, Enum):
    """Enum che definisce i possibili stati di un ordine di servizio."""
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    AWAITING_PARTS = "awaiting_parts"
    COMPLETED = "completed"
    DELIVERED = "delivered"
    CANCELED = "canceled"


class ServiceLineStatus(str, Enum):
    """Stato di avanzamento di una singola riga servizio."""
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    DONE = "done"


class PaymentMethod(str, Enum):
    CASH = "cash"
    CARD = "card"
    BANK_TRANSFER = "bank_transfer"
    CHECK = "check"
    OTHER = "other"


# -------------------------------------------------------------------
# Matrice delle transizioni di stato valide
# -------------------------------------------------------------------

# Nota: unica source of truth, usata da ServiceOrder.change_status().
VALID_TRANSITIONS: dict[ServiceOrderStatus, list[ServiceOrderStatus]] = {
    ServiceOrderStatus.OPEN: [
        ServiceOrderStatus.IN_PROGRESS,
        ServiceOrderStatus.AWAITING_PARTS,
        ServiceOrderStatus.COMPLETED,
        ServiceOrderStatus.CANCELED,
    ],
    ServiceOrderStatus.IN_PROGRESS: [
        ServiceOrderStatus.AWAITING_PARTS,
        ServiceOrderStatus.COMPLETED,
        ServiceOrderStatus.CANCELED,
    ],
    ServiceOrderStatus.AWAITING_PARTS: [
        ServiceOrderStatus.IN_PROGRESS,
        ServiceOrderStatus.COMPLETED,
        ServiceOrderStatus.CANCELED,
    ],
    ServiceOrderStatus.COMPLETED: [ServiceOrderStatus.DELIVERED],
    ServiceOrderStatus.DELIVERED: [],  # Stato finale
    ServiceOrderStatus.CANCELED: [],  # Stato finale
}

# Stati in cui righe e campi dell'ordine non sono più modificabili
LOCKED_STATUSES: frozenset[ServiceOrderStatus] = frozenset({
    ServiceOrderStatus.COMPLETED,
    ServiceOrderStatus.DELIVERED,
    ServiceOrderStatus.CANCELED,
})


# -------------------------------------------------------------------
# Schemas per le righe servizio
# -------------------------------------------------------------------

class ServiceLineCreate(BaseModel):
    """
    Aggiunta di un servizio all'ordine.

    description e price, se omessi, vengono presi dal catalogo.
    """
    model_config = ConfigDict(extra="forbid")

    service_id: uuid.UUID
    description: Optional[str] = Field(None, min_length=1, max_length=500)
    price: Optional[Decimal] = Field(None, ge=Decimal("0"), decimal_places=2)
    technician_id: Optional[uuid.UUID] = None


class ServiceLineUpdate(BaseModel):
    """Aggiornamento avanzamento di una riga servizio (status, tecnico, tempo)."""
    model_config = ConfigDict(extra="forbid")

    status: Optional[ServiceLineStatus] = None
    technician_id: Optional[uuid.UUID] = None
    time_spent_minutes: Optional[int] = Field(None, ge=0)

    @field_validator("status")
    @classmethod
    def status_not_null(cls, v: Optional[ServiceLineStatus]) -> Optional[ServiceLineStatus]:
        if v is None:
            raise ValueError("Lo stato della riga non può essere nullo")
        return v


class ServiceLineRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    service_id: uuid.UUID
    description: str
    price: Decimal
    technician_id: Optional[uuid.UUID] = None
    status: ServiceLineStatus
    time_spent_minutes: Optional[int] = None


# -------------------------------------------------------------------
# Schemas per le righe prodotto
# -------------------------------------------------------------------

class ProductLineCreate(BaseModel):
    """
    Aggiunta di un prodotto all'ordine.

    unit_price, se omesso, è il prezzo di vendita del prodotto.
    """
    model_config = ConfigDict(extra="forbid")

    product_id: uuid.UUID
    quantity: int = Field(..., gt=0, description="Quantità (intero positivo)")
    unit_price: Optional[Decimal] = Field(None, ge=Decimal("0"), decimal_places=2)


class ProductLineRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    product_id: uuid.UUID
    description: str
    quantity: int
    unit_price: Decimal
    line_total: Decimal


# -------------------------------------------------------------------
# Schemas per ServiceOrder
# -------------------------------------------------------------------

class ServiceOrderCreate(BaseModel):
    """
    Schema per l'apertura di un ordine di servizio.

    Attributes:
        client_id: UUID del cliente
        vehicle_id: UUID del veicolo (deve appartenere al cliente)
        km: Chilometraggio rilevato all'ingresso
        diagnosis: Diagnosi
        customer_notes: Richieste/segnalazioni del cliente
        internal_notes: Note interne
        expected_delivery: Data prevista di consegna
        technician_id: Tecnico responsabile
        payment_method: Metodo di pagamento previsto
        installments: Numero di rate
    """
    model_config = ConfigDict(extra="forbid")

    client_id: uuid.UUID
    vehicle_id: uuid.UUID
    km: Optional[int] = Field(None, ge=0)
    diagnosis: Optional[str] = Field(None, max_length=5000)
    customer_notes: Optional[str] = Field(None, max_length=5000)
    internal_notes: Optional[str] = Field(None, max_length=5000)
    expected_delivery: Optional[datetime.date] = None
    technician_id: Optional[uuid.UUID] = None
    payment_method: Optional[PaymentMethod] = None
    installments: int = Field(default=1, ge=1, le=60)


class ServiceOrderUpdate(BaseModel):
    """
    Aggiornamento dei campi dell'ordine.

    Lo status NON può essere cambiato tramite questo schema
    (usare PATCH /service-orders/{id}/status). I totali sono sempre calcolati.
    """
    model_config = ConfigDict(extra="forbid")

    km: Optional[int] = Field(None, ge=0)
    diagnosis: Optional[str] = Field(None, max_length=5000)
    customer_notes: Optional[str] = Field(None, max_length=5000)
    internal_notes: Optional[str] = Field(None, max_length=5000)
    expected_delivery: Optional[datetime.date] = None
    technician_id: Optional[uuid.UUID] = None
    discount: Optional[Decimal] = Field(None, ge=Decimal("0"), decimal_places=2)
    payment_method: Optional[PaymentMethod] = None
    installments: Optional[int] = Field(None, ge=1, le=60)

    @field_validator("discount")
    @classmethod
    def discount_not_null(cls, v: Optional[Decimal]) -> Optional[Decimal]:
        # Invocato solo per valori espliciti: null non azzera lo sconto
        if v is None:
            raise ValueError("Lo sconto non può essere nullo (usare 0)")
        return v

    @field_validator("installments")
    @classmethod
    def installments_not_null(cls, v: Optional[int]) -> Optional[int]:
        if v is None:
            raise ValueError("Il numero di rate non può essere nullo (minimo 1)")
        return v


class ServiceOrderStatusUpdate(BaseModel):
    """Schema per il cambio di stato di un ordine di servizio."""
    model_config = ConfigDict(extra="forbid")

    status: ServiceOrderStatus = Field(..., description="Nuovo stato dell'ordine")


class ServiceOrderRead(BaseModel):
    """Ordine di servizio completo di righe e totali."""
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    number: str
    client_id: uuid.UUID
    vehicle_id: uuid.UUID
    technician_id: Optional[uuid.UUID] = None
    status: ServiceOrderStatus
    km: Optional[int] = None
    diagnosis: Optional[str] = None
    customer_notes: Optional[str] = None
    internal_notes: Optional[str] = None
    expected_delivery: Optional[datetime.date] = None
    payment_method: Optional[PaymentMethod] = None
    installments: int = 1
    services_total: Decimal
    products_total: Decimal
    discount: Decimal
    total: Decimal
    completed_at: Optional[datetime.datetime] = None
    created_at: Optional[datetime.datetime] = None
    updated_at: Optional[datetime.datetime] = None
    service_lines: list[ServiceLineRead] = Field(default_factory=list)
    product_lines: list[ProductLineRead] = Field(default_factory=list)


# -------------------------------------------------------------------
# Schema per lista paginata
# -------------------------------------------------------------------

class ServiceOrderList(BaseModel):
    """
    Schema per la risposta paginata degli ordini di servizio.

    Attributes:
        items: Lista degli ordini
        total: Numero totale di record
        page: Pagina corrente
        per_page: Record per pagina
        total_pages: Numero totale di pagine (calcolato automaticamente)
    """
    items: list[ServiceOrderRead]
    total: int
    page: int
    per_page: int
    total_pages: int = 0

    @model_validator(mode="after")
    def compute_total_pages(self) -> "ServiceOrderList":
        """Calcola automaticamente il numero totale di pagine."""
        if self.per_page > 0:
            self.total_pages = (self.total + self.per_page - 1) // self.per_page
        return self
