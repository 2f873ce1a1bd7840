"""
Modello SQLAlchemy per l'entità Client
Progetto: Officina Manager

Rappresenta l'anagrafica dei clienti dell'officina.
"""


from __future__ import annotations
from typing import Optional, TYPE_CHECKING, List

from sqlalchemy import Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from officina.models import Base
from officina.models.mixins import TimestampMixin, UUIDMixin, SoftDeleteMixin

# Import per type hinting relazioni (evita circular import)
if TYPE_CHECKING:
    from officina.models.vehicle import Vehicle
    from officina.models.appointment import Appointment
    from officina.models.service_order import ServiceOrder


class Client(Base, UUIDMixin, TimestampMixin, SoftDeleteMixin):
    """
    Modello per l'anagrafica clienti.

    Un cliente può avere più veicoli, appuntamenti e ordini di servizio.

    Attributes:
        id: UUID primary key, generato automaticamente
        name: Nome (obbligatorio)
        surname: Cognome (opzionale)
        tax_code: Codice fiscale o partita IVA (opzionale)
        phone: Numero di telefono
        email: Indirizzo email
        address: Indirizzo completo
        city: Città
        notes: Note aggiuntive
        created_at: Data/ora creazione record
        updated_at: Data/ora ultimo aggiornamento

    Relationships:
        vehicles: Veicoli associati al cliente
        appointments: Appuntamenti del cliente
        service_orders: Ordini di servizio del cliente
    """

    __tablename__ = "clients"

    # ------------------------------------------------------------
    # Colonne Dati Anagrafici
    # ------------------------------------------------------------
    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        doc="Nome o ragione sociale",
    )

    surname: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        doc="Cognome (per persone fisiche)",
    )

    tax_code: Mapped[Optional[str]] = mapped_column(
        String(16),
        nullable=True,
        index=True,
        doc="Codice fiscale o partita IVA",
    )

    # ------------------------------------------------------------
    # Colonne Contatto
    # ------------------------------------------------------------
    phone: Mapped[Optional[str]] = mapped_column(
        String(20),
        nullable=True,
        doc="Numero di telefono",
    )

    email: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
        doc="Indirizzo email",
    )

    address: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
        doc="Indirizzo completo",
    )

    city: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        doc="Città",
    )

    notes: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        doc="Note aggiuntive sul cliente",
    )

    # ------------------------------------------------------------
    # Relationships
    # ------------------------------------------------------------
    vehicles: Mapped[List["Vehicle"]] = relationship(
        "Vehicle",
        back_populates="client",
        lazy="noload",
        doc="Veicoli associati al cliente",
    )

    appointments: Mapped[List["Appointment"]] = relationship(
        "Appointment",
        back_populates="client",
        lazy="noload",
        doc="Appuntamenti del cliente",
    )

    service_orders: Mapped[List["ServiceOrder"]] = relationship(
        "ServiceOrder",
        back_populates="client",
        lazy="noload",
        doc="Ordini di servizio del cliente",
    )

    __table_args__ = (
        # Indice composito nome+cognome per ricerca rapida
        Index("ix_clients_name_surname", "name", "surname"),
    )

    @property
    def full_name(self) -> str:
        """Nome completo per visualizzazione."""
        return f"{self.name} {self.surname}" if self.surname else self.name

    def __repr__(self) -> str:
        return f"<Client(id={self.id}, name={self.full_name})>"
