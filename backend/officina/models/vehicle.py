"""
Modello SQLAlchemy per l'entità Vehicle
Progetto: Officina Manager

Rappresenta i veicoli associati ai clienti.
"""

import uuid
from typing import TYPE_CHECKING, List

from sqlalchemy import ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from officina.models import Base
from officina.models.mixins import TimestampMixin, UUIDMixin, SoftDeleteMixin

# Import per type hinting relazioni (evita circular import)
if TYPE_CHECKING:
    from officina.models.client import Client
    from officina.models.service_order import ServiceOrder


class Vehicle(Base, UUIDMixin, TimestampMixin, SoftDeleteMixin):
    """
    Modello per i veicoli associati ai clienti.

    Un veicolo appartiene a un cliente e può avere più ordini di servizio.

    Attributes:
        id: UUID primary key, generato automaticamente
        client_id: UUID del cliente proprietario (obbligatorio)
        plate: Targa del veicolo (obbligatoria, univoca, maiuscola)
        brand: Marca del veicolo (obbligatoria)
        model: Modello del veicolo (obbligatorio)
        year: Anno di immatricolazione (opzionale)
        color: Colore (opzionale)
        current_km: Chilometraggio attuale (default 0)
        notes: Note aggiuntive (opzionale)

    Relationships:
        client: Cliente proprietario del veicolo
        service_orders: Ordini di servizio associati al veicolo
    """

    __tablename__ = "vehicles"

    # ------------------------------------------------------------
    # Colonne Relazione Cliente
    # ------------------------------------------------------------
    client_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("clients.id", ondelete="RESTRICT"),
        nullable=False,
        doc="UUID del cliente proprietario",
    )

    # ------------------------------------------------------------
    # Colonne Dati Veicolo
    # ------------------------------------------------------------
    plate: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        unique=True,
        doc="Targa del veicolo",
    )

    brand: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        doc="Marca del veicolo",
    )

    model: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        doc="Modello del veicolo",
    )

    year: Mapped[int | None] = mapped_column(
        Integer,
        nullable=True,
        doc="Anno di immatricolazione",
    )

    color: Mapped[str | None] = mapped_column(
        String(50),
        nullable=True,
        doc="Colore del veicolo",
    )

    current_km: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        doc="Chilometraggio attuale",
    )

    notes: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
        doc="Note aggiuntive sul veicolo",
    )

    # ------------------------------------------------------------
    # Relationships
    # ------------------------------------------------------------
    client: Mapped["Client"] = relationship(
        "Client",
        back_populates="vehicles",
        lazy="joined",
        doc="Cliente proprietario del veicolo",
    )

    service_orders: Mapped[List["ServiceOrder"]] = relationship(
        "ServiceOrder",
        back_populates="vehicle",
        lazy="noload",
        doc="Ordini di servizio associati al veicolo",
    )

    __table_args__ = (
        # Indice composto per ricerca veloce "veicoli di un cliente"
        Index("ix_vehicles_client_plate", "client_id", "plate"),
    )

    def __repr__(self) -> str:
        return f"<Vehicle(id={self.id}, plate={self.plate}, brand={self.brand}, model={self.model})>"

    @property
    def display_name(self) -> str:
        """
        Nome visualizzato del veicolo.

        Returns:
            Stringa formattata: "Marca Modello (Targa)"
        """
        return f"{self.brand} {self.model} ({self.plate})"

    def register_km(self, km: int | None) -> bool:
        """
        Aggiorna il chilometraggio solo se il valore rilevato è maggiore.

        Returns:
            True se il chilometraggio è stato aggiornato
        """
        if km is None or km <= (self.current_km or 0):
            return False
        self.current_km = km
        return True
