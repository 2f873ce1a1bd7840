"""
Modello SQLAlchemy per i movimenti contabili
Progetto: Officina Manager

Entrate e uscite dell'officina con scadenza, pagamento e annullamento.
"""

import datetime
import uuid
from decimal import Decimal
from typing import Optional

from sqlalchemy import CheckConstraint, Date, ForeignKey, Index, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from officina.core.exceptions import BusinessValidationError, InvalidStateTransitionError
from officina.models import Base
from officina.models.mixins import TimestampMixin, UUIDMixin
from officina.schemas.financial_entry import CLOSED_STATUSES, EntryStatus


class FinancialEntry(Base, UUIDMixin, TimestampMixin):
    """
    Movimento contabile (entrata o uscita).

    Attributes:
        entry_type: income o expense
        category: Categoria libera (es. "Ricambi", "Affitto", "Servizi")
        amount: Importo, mai negativo
        due_date: Scadenza
        paid_at: Data del pagamento
        status: pending, overdue, paid, canceled
        client_id: Cliente collegato (solo entrate)
        service_order_id: Ordine di servizio collegato
        actor_id: Operatore che ha registrato il movimento
    """

    __tablename__ = "financial_entries"

    entry_type: Mapped[str] = mapped_column(String(20), nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(String(500), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    due_date: Mapped[datetime.date] = mapped_column(Date, nullable=False)
    paid_at: Mapped[Optional[datetime.date]] = mapped_column(Date, nullable=True)
    payment_method: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=EntryStatus.PENDING.value, index=True
    )

    client_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("clients.id", ondelete="SET NULL"), nullable=True, index=True
    )
    service_order_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("service_orders.id", ondelete="SET NULL"), nullable=True
    )
    actor_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    cancel_reason: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    __table_args__ = (
        CheckConstraint("amount >= 0", name="ck_financial_entries_amount"),
        Index("ix_financial_entries_type_due", "entry_type", "due_date"),
        Index("ix_financial_entries_paid_at", "paid_at"),
    )

    @property
    def is_closed(self) -> bool:
        return EntryStatus(self.status) in CLOSED_STATUSES

    def refresh_status(self, today: datetime.date) -> None:
        """Pending o overdue in base alla scadenza; paid e canceled restano invariati."""
        if self.is_closed:
            return
        if self.due_date < today:
            self.status = EntryStatus.OVERDUE.value
        else:
            self.status = EntryStatus.PENDING.value

    def ensure_editable(self) -> None:
        if self.is_closed:
            raise InvalidStateTransitionError(
                f"Non è possibile modificare un movimento in stato '{self.status}'",
                extra={"current_status": self.status},
            )

    def register_payment(self, paid_at: datetime.date, payment_method: str) -> None:
        """
        Raises:
            InvalidStateTransitionError: Movimento già pagato o annullato
        """
        if self.is_closed:
            raise InvalidStateTransitionError(
                f"Il movimento è già in stato '{self.status}'",
                extra={"current_status": self.status, "requested_status": EntryStatus.PAID.value},
            )
        self.paid_at = paid_at
        self.payment_method = payment_method
        self.status = EntryStatus.PAID.value

    def cancel(self, reason: str) -> None:
        """
        Annulla il movimento, anche se già pagato.

        Raises:
            BusinessValidationError: Motivo vuoto
            InvalidStateTransitionError: Movimento già annullato
        """
        if not reason or not reason.strip():
            raise BusinessValidationError("Il motivo dell'annullamento è obbligatorio")
        if self.status == EntryStatus.CANCELED.value:
            raise InvalidStateTransitionError(
                "Il movimento è già annullato",
                extra={"current_status": self.status, "requested_status": EntryStatus.CANCELED.value},
            )
        self.status = EntryStatus.CANCELED.value
        self.cancel_reason = reason.strip()

    def __repr__(self) -> str:
        return f"<FinancialEntry(type={self.entry_type}, amount={self.amount}, status={self.status})>"
