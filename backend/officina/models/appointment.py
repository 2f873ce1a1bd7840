"""
Modello SQLAlchemy per gli Appuntamenti
Progetto: Officina Manager

Un appuntamento occupa l'agenda dell'officina per la durata stimata
del servizio prenotato. Le transizioni di stato sono metodi del modello.
"""

from __future__ import annotations

import datetime
import uuid
from typing import TYPE_CHECKING, Optional

from sqlalchemy import DateTime, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from officina.core.exceptions import BusinessValidationError, InvalidStateTransitionError
from officina.models import Base
from officina.models.mixins import TimestampMixin, UUIDMixin
from officina.schemas.appointment import (
    ACTIVE_STATUSES,
    AppointmentStatus,
    VALID_TRANSITIONS,
)

if TYPE_CHECKING:
    from officina.models.client import Client
    from officina.models.service import Service
    from officina.models.technician import Technician
    from officina.models.vehicle import Vehicle


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class Appointment(Base, UUIDMixin, TimestampMixin):
    """
    Modello per gli appuntamenti.

    Attributes:
        client_id: UUID del cliente
        vehicle_id: UUID del veicolo
        service_id: UUID del servizio prenotato
        technician_id: Tecnico assegnato (opzionale)
        start_at: Data/ora di inizio
        description: Descrizione libera
        status: scheduled, confirmed, canceled, completed
        notes: Note interne
        cancel_reason: Motivo dell'annullamento
        confirmed_at / canceled_at / completed_at: Timestamp delle transizioni

    Properties:
        duration_minutes: Durata stimata del servizio
        end_at: start_at + durata
        is_terminal: True se completed o canceled
    """

    __tablename__ = "appointments"

    # ------------------------------------------------------------
    # Colonne Relazioni
    # ------------------------------------------------------------
    client_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("clients.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    vehicle_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("vehicles.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    service_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("services.id", ondelete="RESTRICT"), nullable=False
    )
    technician_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("technicians.id", ondelete="SET NULL"), nullable=True
    )

    # ------------------------------------------------------------
    # Colonne Agenda
    # ------------------------------------------------------------
    start_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        doc="Data/ora di inizio",
    )

    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=AppointmentStatus.SCHEDULED.value,
        doc="Stato: scheduled, confirmed, canceled, completed",
    )

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    cancel_reason: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    confirmed_at: Mapped[Optional[datetime.datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    canceled_at: Mapped[Optional[datetime.datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[Optional[datetime.datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # ------------------------------------------------------------
    # Relationships
    # ------------------------------------------------------------
    client: Mapped["Client"] = relationship("Client", back_populates="appointments", lazy="noload")
    vehicle: Mapped["Vehicle"] = relationship("Vehicle", lazy="noload")
    service: Mapped["Service"] = relationship("Service", lazy="joined")
    technician: Mapped[Optional["Technician"]] = relationship(
        "Technician", back_populates="appointments", lazy="noload"
    )

    __table_args__ = (
        # Ricerca per giorno e stato (disponibilità / conflitti)
        Index("ix_appointments_start_status", "start_at", "status"),
    )

    # ------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------
    @property
    def duration_minutes(self) -> Optional[int]:
        """Durata stimata del servizio prenotato (None se non caricato)."""
        return self.service.estimated_minutes if self.service is not None else None

    @property
    def end_at(self) -> Optional[datetime.datetime]:
        duration = self.duration_minutes
        if duration is None or self.start_at is None:
            return None
        return self.start_at + datetime.timedelta(minutes=duration)

    @property
    def blocks_schedule(self) -> bool:
        """True se l'appuntamento occupa l'agenda."""
        return AppointmentStatus(self.status) in ACTIVE_STATUSES

    @property
    def is_terminal(self) -> bool:
        return not VALID_TRANSITIONS[AppointmentStatus(self.status)]

    # ------------------------------------------------------------
    # Transizioni di stato
    # ------------------------------------------------------------
    def _transition(self, target: AppointmentStatus) -> None:
        current = AppointmentStatus(self.status)
        if target not in VALID_TRANSITIONS[current]:
            raise InvalidStateTransitionError(
                f"Transizione da '{current.value}' a '{target.value}' non consentita",
                extra={"current_status": current.value, "requested_status": target.value},
            )
        self.status = target.value

    def ensure_editable(self) -> None:
        """
        Raises:
            InvalidStateTransitionError: Se l'appuntamento è completato o annullato
        """
        if self.is_terminal:
            raise InvalidStateTransitionError(
                f"Non è possibile modificare un appuntamento in stato '{self.status}'",
                extra={"current_status": self.status},
            )

    def confirm(self, now: Optional[datetime.datetime] = None) -> None:
        """Conferma l'appuntamento (solo da scheduled)."""
        self._transition(AppointmentStatus.CONFIRMED)
        self.confirmed_at = now or _utcnow()

    def cancel(self, reason: str, now: Optional[datetime.datetime] = None) -> None:
        """
        Annulla l'appuntamento registrando il motivo.

        Raises:
            BusinessValidationError: Se il motivo è vuoto
            InvalidStateTransitionError: Se già completato o annullato
        """
        if not reason or not reason.strip():
            raise BusinessValidationError("Il motivo dell'annullamento è obbligatorio")
        self._transition(AppointmentStatus.CANCELED)
        self.cancel_reason = reason.strip()
        self.canceled_at = now or _utcnow()

    def complete(self, now: Optional[datetime.datetime] = None) -> None:
        """Segna l'appuntamento come completato (da scheduled o confirmed)."""
        self._transition(AppointmentStatus.COMPLETED)
        self.completed_at = now or _utcnow()

    def __repr__(self) -> str:
        return f"<Appointment(id={self.id}, start_at={self.start_at}, status={self.status})>"
