"""
Modelli SQLAlchemy per gli Ordini di Servizio
Progetto: Officina Manager

Contiene:
- ServiceOrder: Ordine di servizio con totali calcolati
- ServiceLine: Riga servizio (manodopera da catalogo)
- ProductLine: Riga prodotto (materiale scaricato da magazzino)

L'ordine possiede le proprie righe: i totali vengono ricalcolati dalle
righe a ogni modifica e non sono mai impostabili direttamente.
"""

from __future__ import annotations

import datetime
import uuid
from decimal import Decimal
from typing import TYPE_CHECKING, Iterable, List, Optional

from sqlalchemy import CheckConstraint, Date, DateTime, ForeignKey, Index, Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from officina.core.exceptions import (
    BusinessValidationError,
    InvalidStateTransitionError,
    NotFoundError,
)
from officina.models import Base
from officina.models.mixins import TimestampMixin, UUIDMixin
from officina.schemas.service_order import (
    LOCKED_STATUSES,
    ServiceLineStatus,
    ServiceOrderStatus,
    VALID_TRANSITIONS,
)

if TYPE_CHECKING:
    from officina.models.client import Client
    from officina.models.product import Product
    from officina.models.service import Service
    from officina.models.technician import Technician
    from officina.models.vehicle import Vehicle


ZERO = Decimal("0.00")


class ServiceOrder(Base, UUIDMixin, TimestampMixin):
    """
    Modello per gli ordini di servizio.

    Attributes:
        number: Numero progressivo (NNNNNN/MMYYYY)
        client_id: UUID del cliente
        vehicle_id: UUID del veicolo
        technician_id: Tecnico responsabile (opzionale)
        status: open, in_progress, awaiting_parts, completed, delivered, canceled
        km: Chilometraggio all'ingresso
        diagnosis: Diagnosi del meccanico
        customer_notes: Segnalazioni del cliente
        internal_notes: Note interne
        expected_delivery: Data prevista di consegna
        payment_method: Metodo di pagamento previsto
        installments: Numero di rate
        services_total: Somma dei prezzi delle righe servizio
        products_total: Somma dei totali delle righe prodotto
        discount: Sconto applicato solo sul totale complessivo
        total: services_total + products_total - discount
        completed_at: Timestamp di completamento

    Relationships:
        service_lines: Righe servizio (cascade delete-orphan)
        product_lines: Righe prodotto (cascade delete-orphan)
    """

    __tablename__ = "service_orders"

    # ------------------------------------------------------------
    # Colonne Identificative
    # ------------------------------------------------------------
    number: Mapped[str] = mapped_column(
        String(20),
        unique=True,
        nullable=False,
        index=True,
        doc="Numero ordine (NNNNNN/MMYYYY)",
    )

    client_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("clients.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    vehicle_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("vehicles.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    technician_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("technicians.id", ondelete="SET NULL"), nullable=True
    )

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=ServiceOrderStatus.OPEN.value,
        index=True,
        doc="Stato dell'ordine",
    )

    # ------------------------------------------------------------
    # Colonne Lavorazione
    # ------------------------------------------------------------
    km: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    diagnosis: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    customer_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    internal_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    expected_delivery: Mapped[Optional[datetime.date]] = mapped_column(Date, nullable=True)
    completed_at: Mapped[Optional[datetime.datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    payment_method: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    installments: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    # ------------------------------------------------------------
    # Colonne Totali (sempre derivate dalle righe)
    # ------------------------------------------------------------
    services_total: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=ZERO)
    products_total: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=ZERO)
    discount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=ZERO)
    total: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=ZERO)

    # ------------------------------------------------------------
    # Relationships
    # ------------------------------------------------------------
    client: Mapped["Client"] = relationship("Client", back_populates="service_orders", lazy="noload")
    vehicle: Mapped["Vehicle"] = relationship("Vehicle", back_populates="service_orders", lazy="noload")
    technician: Mapped[Optional["Technician"]] = relationship("Technician", lazy="noload")

    service_lines: Mapped[List["ServiceLine"]] = relationship(
        "ServiceLine",
        back_populates="service_order",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="ServiceLine.created_at",
        doc="Righe servizio dell'ordine",
    )

    product_lines: Mapped[List["ProductLine"]] = relationship(
        "ProductLine",
        back_populates="service_order",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="ProductLine.created_at",
        doc="Righe prodotto dell'ordine",
    )

    __table_args__ = (
        Index("ix_service_orders_client_status", "client_id", "status"),
        CheckConstraint("discount >= 0", name="ck_service_orders_discount"),
        CheckConstraint("total >= 0", name="ck_service_orders_total"),
        CheckConstraint("installments >= 1", name="ck_service_orders_installments"),
    )

    # ------------------------------------------------------------
    # Stato
    # ------------------------------------------------------------
    @property
    def is_locked(self) -> bool:
        """True se l'ordine è completato, consegnato o annullato."""
        return ServiceOrderStatus(self.status) in LOCKED_STATUSES

    def ensure_editable(self) -> None:
        """
        Raises:
            InvalidStateTransitionError: Se l'ordine non è più modificabile
        """
        if self.is_locked:
            raise InvalidStateTransitionError(
                f"Non è possibile modificare un ordine in stato '{self.status}'",
                extra={"current_status": self.status},
            )

    def change_status(
        self,
        new_status: ServiceOrderStatus,
        now: Optional[datetime.datetime] = None,
    ) -> ServiceOrderStatus:
        """
        Applica una transizione di stato validata dalla matrice VALID_TRANSITIONS.

        Il passaggio a completed registra completed_at.

        Returns:
            Lo stato precedente

        Raises:
            InvalidStateTransitionError: Se la transizione non è consentita
        """
        current = ServiceOrderStatus(self.status)
        if new_status not in VALID_TRANSITIONS[current]:
            raise InvalidStateTransitionError(
                f"Transizione da '{current.value}' a '{new_status.value}' non consentita",
                extra={"current_status": current.value, "requested_status": new_status.value},
            )

        self.status = new_status.value
        if new_status == ServiceOrderStatus.COMPLETED:
            self.completed_at = now or datetime.datetime.now(datetime.timezone.utc)
        return current

    # ------------------------------------------------------------
    # Totali
    # ------------------------------------------------------------
    def _compute_totals(
        self,
        service_lines: Iterable["ServiceLine"],
        product_lines: Iterable["ProductLine"],
        discount: Optional[Decimal],
    ) -> tuple[Decimal, Decimal, Decimal]:
        services_total = sum((line.price for line in service_lines), ZERO)
        products_total = sum((line.line_total for line in product_lines), ZERO)
        total = services_total + products_total - (discount or ZERO)
        if total < 0:
            raise BusinessValidationError(
                "Lo sconto non può superare il totale dell'ordine",
                extra={
                    "services_total": str(services_total),
                    "products_total": str(products_total),
                    "discount": str(discount or ZERO),
                },
            )
        return services_total, products_total, total

    def recompute_totals(self) -> None:
        """Ricalcola subtotali e totale dalle righe correnti."""
        self.services_total, self.products_total, self.total = self._compute_totals(
            self.service_lines, self.product_lines, self.discount
        )

    def set_discount(self, discount: Decimal) -> None:
        self.ensure_editable()
        if discount < 0:
            raise BusinessValidationError("Lo sconto non può essere negativo")
        self._compute_totals(self.service_lines, self.product_lines, discount)
        self.discount = discount
        self.recompute_totals()

    # ------------------------------------------------------------
    # Righe servizio
    # ------------------------------------------------------------
    def find_service_line(self, line_id: uuid.UUID) -> "ServiceLine":
        for line in self.service_lines:
            if line.id == line_id:
                return line
        raise NotFoundError(f"Riga servizio {line_id} non trovata nell'ordine {self.number}")

    def add_service_line(self, line: "ServiceLine") -> "ServiceLine":
        self.ensure_editable()
        self.service_lines.append(line)
        self.recompute_totals()
        return line

    def remove_service_line(self, line_id: uuid.UUID) -> "ServiceLine":
        """
        Rimuove una riga servizio e ricalcola i totali.

        Raises:
            InvalidStateTransitionError: Se l'ordine non è modificabile
            NotFoundError: Se la riga non appartiene all'ordine
        """
        self.ensure_editable()
        line = self.find_service_line(line_id)
        remaining = [item for item in self.service_lines if item is not line]
        self._compute_totals(remaining, self.product_lines, self.discount)
        self.service_lines.remove(line)
        self.recompute_totals()
        return line

    # ------------------------------------------------------------
    # Righe prodotto
    # ------------------------------------------------------------
    def find_product_line(self, line_id: uuid.UUID) -> "ProductLine":
        for line in self.product_lines:
            if line.id == line_id:
                return line
        raise NotFoundError(f"Riga prodotto {line_id} non trovata nell'ordine {self.number}")

    def add_product_line(self, line: "ProductLine") -> "ProductLine":
        if line.quantity is None or line.quantity <= 0:
            raise BusinessValidationError("La quantità deve essere un intero positivo")
        self.ensure_editable()
        line.line_total = line.quantity * line.unit_price
        self.product_lines.append(line)
        self.recompute_totals()
        return line

    def remove_product_line(self, line_id: uuid.UUID) -> "ProductLine":
        """
        Rimuove una riga prodotto e ricalcola i totali.

        Il ripristino della giacenza è a carico del chiamante
        (ProductService.apply_movement).
        """
        self.ensure_editable()
        line = self.find_product_line(line_id)
        remaining = [item for item in self.product_lines if item is not line]
        self._compute_totals(self.service_lines, remaining, self.discount)
        self.product_lines.remove(line)
        self.recompute_totals()
        return line

    def __repr__(self) -> str:
        return f"<ServiceOrder(number={self.number}, status={self.status}, total={self.total})>"


class ServiceLine(Base, UUIDMixin, TimestampMixin):
    """
    Riga servizio di un ordine.

    Attributes:
        service_order_id: Ordine di appartenenza
        service_id: Servizio a catalogo
        description: Descrizione (default: nome del servizio)
        price: Prezzo applicato (default: prezzo di listino)
        technician_id: Meccanico assegnato
        status: pending, in_progress, done
        time_spent_minutes: Tempo effettivo impiegato
    """

    __tablename__ = "service_order_service_lines"

    service_order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("service_orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    service_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("services.id", ondelete="RESTRICT"), nullable=False
    )
    description: Mapped[str] = mapped_column(String(500), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=ZERO)
    technician_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("technicians.id", ondelete="SET NULL"), nullable=True
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ServiceLineStatus.PENDING.value
    )
    time_spent_minutes: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    service_order: Mapped["ServiceOrder"] = relationship(
        "ServiceOrder", back_populates="service_lines", lazy="noload"
    )
    service: Mapped["Service"] = relationship("Service", lazy="noload")
    technician: Mapped[Optional["Technician"]] = relationship(
        "Technician", back_populates="service_lines", lazy="noload"
    )

    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_service_lines_price"),
    )

    def __repr__(self) -> str:
        return f"ServiceLine(description={self.description!r}, price={self.price})"


class ProductLine(Base, UUIDMixin, TimestampMixin):
    """
    Riga prodotto di un ordine.

    line_total (quantity * unit_price) è calcolato dall'ordine
    al momento dell'inserimento.
    """

    __tablename__ = "service_order_product_lines"

    service_order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("service_orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    product_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("products.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    description: Mapped[str] = mapped_column(String(500), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    line_total: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=ZERO)

    service_order: Mapped["ServiceOrder"] = relationship(
        "ServiceOrder", back_populates="product_lines", lazy="noload"
    )
    product: Mapped["Product"] = relationship(
        "Product", back_populates="order_lines", lazy="noload"
    )

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_product_lines_quantity"),
        CheckConstraint("unit_price >= 0", name="ck_product_lines_unit_price"),
    )

    def __repr__(self) -> str:
        return f"ProductLine(product_id={self.product_id}, quantity={self.quantity}, line_total={self.line_total})"
