"""
Schemas Pydantic per la contabilità di base (entrate e uscite)
Progetto: Officina Manager
"""

import datetime
import uuid
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from officina.schemas.service_order import PaymentMethod


class EntryType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


class EntryStatus(str, Enum):
    """
    Stato di un movimento contabile.

    pending e overdue dipendono dalla scadenza e vengono ricalcolati
    a ogni scrittura; paid e canceled sono impostati dalle operazioni.
    """
    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELED = "canceled"


# Stati in cui il movimento non è più modificabile
CLOSED_STATUSES: frozenset[EntryStatus] = frozenset({EntryStatus.PAID, EntryStatus.CANCELED})


class FinancialEntryCreate(BaseModel):
    """
    Registrazione di un'entrata o di un'uscita.

    Con paid_at il movimento nasce già pagato (payment_method obbligatorio).
    """
    model_config = ConfigDict(extra="forbid")

    entry_type: EntryType
    category: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1, max_length=500)
    amount: Decimal = Field(..., ge=Decimal("0"), decimal_places=2)
    due_date: datetime.date
    paid_at: Optional[datetime.date] = None
    payment_method: Optional[PaymentMethod] = None
    client_id: Optional[uuid.UUID] = None
    service_order_id: Optional[uuid.UUID] = None
    notes: Optional[str] = Field(None, max_length=5000)

    @field_validator("category", "description")
    @classmethod
    def strip_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Il campo non può essere vuoto")
        return v

    @model_validator(mode="after")
    def payment_method_when_paid(self) -> "FinancialEntryCreate":
        if self.paid_at is not None and self.payment_method is None:
            raise ValueError("Il metodo di pagamento è obbligatorio per un movimento già pagato")
        return self


class FinancialEntryUpdate(BaseModel):
    """Modifica di un movimento non ancora pagato né annullato."""
    model_config = ConfigDict(extra="forbid")

    category: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, min_length=1, max_length=500)
    amount: Optional[Decimal] = Field(None, ge=Decimal("0"), decimal_places=2)
    due_date: Optional[datetime.date] = None
    notes: Optional[str] = Field(None, max_length=5000)

    @field_validator("category", "description", "amount", "due_date")
    @classmethod
    def not_null(cls, v):
        if v is None:
            raise ValueError("Il campo non può essere nullo")
        return v


class PaymentRegistration(BaseModel):
    model_config = ConfigDict(extra="forbid")

    paid_at: datetime.date
    payment_method: PaymentMethod


class FinancialEntryCancel(BaseModel):
    model_config = ConfigDict(extra="forbid")

    reason: str = Field(..., min_length=1, max_length=500)


class FinancialEntryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    entry_type: EntryType
    category: str
    description: str
    amount: Decimal
    due_date: datetime.date
    paid_at: Optional[datetime.date] = None
    payment_method: Optional[PaymentMethod] = None
    status: EntryStatus
    client_id: Optional[uuid.UUID] = None
    service_order_id: Optional[uuid.UUID] = None
    actor_id: Optional[uuid.UUID] = None
    notes: Optional[str] = None
    cancel_reason: Optional[str] = None
    created_at: Optional[datetime.datetime] = None
    updated_at: Optional[datetime.datetime] = None


class FinancialEntryList(BaseModel):
    items: list[FinancialEntryRead]
    total: int
    page: int
    per_page: int


class FinancialSummary(BaseModel):
    """Riepilogo dei movimenti pagati nel periodo, per tipo e categoria."""
    date_from: datetime.date
    date_to: datetime.date
    total_income: Decimal = Decimal("0.00")
    total_expense: Decimal = Decimal("0.00")
    balance: Decimal = Decimal("0.00")
    income_by_category: dict[str, Decimal] = Field(default_factory=dict)
    expense_by_category: dict[str, Decimal] = Field(default_factory=dict)


__all__ = [
    "EntryType",
    "EntryStatus",
    "CLOSED_STATUSES",
    "FinancialEntryCreate",
    "FinancialEntryUpdate",
    "PaymentRegistration",
    "FinancialEntryCancel",
    "FinancialEntryRead",
    "FinancialEntryList",
    "FinancialSummary",
]
