"""
Modelli SQLAlchemy per Prodotti e Magazzino
Progetto: Officina Manager

Contiene:
- Product: Anagrafica prodotti/ricambi con giacenza
- StockMovement: Movimenti di magazzino (registro immutabile)
"""

from __future__ import annotations

import datetime
import uuid
from decimal import Decimal
from typing import TYPE_CHECKING, List

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from officina.core.exceptions import BusinessValidationError, InsufficientStockError
from officina.models import Base
from officina.models.mixins import AppendOnlyMixin, SoftDeleteMixin, TimestampMixin, UUIDMixin
from officina.schemas.product import MovementDirection

if TYPE_CHECKING:
    from officina.models.service_order import ProductLine


class Product(Base, UUIDMixin, TimestampMixin, SoftDeleteMixin):
    """
    Modello per l'anagrafica prodotti.

    La giacenza (stock_quantity) cambia esclusivamente tramite
    ProductService.apply_movement, che registra sempre un StockMovement.

    Attributes:
        code: Codice identificativo univoco
        name: Nome del prodotto
        description: Descrizione estesa
        category: Categoria merceologica
        unit_of_measure: Unità di misura (pz, lt, kg, ...)
        cost_price: Prezzo di acquisto
        sale_price: Prezzo di vendita
        stock_quantity: Giacenza attuale
        min_stock: Livello minimo giacenza per alert
        max_stock: Livello massimo consigliato
        location: Posizione fisica in magazzino
        barcode: Codice a barre

    Properties:
        is_low_stock: True se stock_quantity <= min_stock
    """

    __tablename__ = "products"

    # ------------------------------------------------------------
    # Colonne
    # ------------------------------------------------------------
    code: Mapped[str] = mapped_column(
        String(50),
        unique=True,
        nullable=False,
        index=True,
        doc="Codice identificativo univoco del prodotto",
    )

    name: Mapped[str] = mapped_column(
        String(150),
        nullable=False,
        doc="Nome del prodotto",
    )

    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    category: Mapped[str | None] = mapped_column(
        String(50),
        nullable=True,
        index=True,
        doc="Categoria merceologica",
    )

    unit_of_measure: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        default="pz",
        doc="Unità di misura (pz, lt, kg, mt, ml, gr)",
    )

    cost_price: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        default=Decimal("0"),
        doc="Prezzo di acquisto",
    )

    sale_price: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        default=Decimal("0"),
        doc="Prezzo di vendita",
    )

    stock_quantity: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        doc="Giacenza attuale",
    )

    min_stock: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        doc="Livello minimo giacenza per alert",
    )

    max_stock: Mapped[int | None] = mapped_column(
        Integer,
        nullable=True,
        doc="Livello massimo consigliato",
    )

    location: Mapped[str | None] = mapped_column(
        String(50),
        nullable=True,
        doc="Posizione fisica in magazzino",
    )

    barcode: Mapped[str | None] = mapped_column(
        String(50),
        nullable=True,
        index=True,
        doc="Codice a barre",
    )

    # ------------------------------------------------------------
    # Relationships
    # ------------------------------------------------------------
    stock_movements: Mapped[List["StockMovement"]] = relationship(
        "StockMovement",
        back_populates="product",
        lazy="noload",
        doc="Storico movimenti di magazzino",
    )

    order_lines: Mapped[List["ProductLine"]] = relationship(
        "ProductLine",
        back_populates="product",
        lazy="noload",
        doc="Righe prodotto negli ordini di servizio",
    )

    __table_args__ = (
        Index("ix_products_active_stock", "is_active", "stock_quantity"),
        CheckConstraint("stock_quantity >= 0", name="ck_products_stock_quantity"),
        CheckConstraint("cost_price >= 0 AND sale_price >= 0", name="ck_products_prices"),
    )

    # ------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------
    @property
    def is_low_stock(self) -> bool:
        """True se la giacenza è pari o inferiore al livello minimo."""
        return (self.stock_quantity or 0) <= (self.min_stock or 0)

    # ------------------------------------------------------------
    # Regole di giacenza
    # ------------------------------------------------------------
    def ensure_available(self, quantity: int) -> None:
        """
        Verifica che la giacenza copra la quantità richiesta.

        Raises:
            InsufficientStockError: Se stock_quantity < quantity
        """
        available = self.stock_quantity or 0
        if available < quantity:
            raise InsufficientStockError(
                f"Giacenza insufficiente per {self.code}: disponibili {available}, richiesti {quantity}",
                extra={
                    "product_id": str(self.id),
                    "available": available,
                    "requested": quantity,
                },
            )

    def move_stock(self, direction: MovementDirection, quantity: int) -> int:
        """
        Applica una variazione di giacenza e restituisce la nuova giacenza.

        Per "adjustment" la quantità è il nuovo valore assoluto.
        Usato solo da ProductService.apply_movement.

        Raises:
            BusinessValidationError: Direzione o quantità non valide
            InsufficientStockError: Scarico oltre la giacenza
        """
        current = self.stock_quantity or 0

        if direction == MovementDirection.ADJUSTMENT:
            if quantity < 0:
                raise BusinessValidationError("La giacenza rettificata non può essere negativa")
            self.stock_quantity = quantity
        elif quantity <= 0:
            raise BusinessValidationError("La quantità del movimento deve essere positiva")
        elif direction == MovementDirection.IN:
            self.stock_quantity = current + quantity
        elif direction == MovementDirection.OUT:
            self.ensure_available(quantity)
            self.stock_quantity = current - quantity
        else:
            raise BusinessValidationError(f"Tipo movimento non valido: {direction}")

        return self.stock_quantity

    def __repr__(self) -> str:
        return f"Product(code={self.code!r}, name={self.name!r})"


class StockMovement(Base, UUIDMixin, AppendOnlyMixin):
    """
    Modello per i movimenti di magazzino.

    Ogni variazione di giacenza produce esattamente un movimento.
    I movimenti non vengono mai modificati né eliminati.

    Attributes:
        product_id: UUID del prodotto
        direction: Direzione: in, out, adjustment
        quantity: Quantità movimentata (sempre positiva; per adjustment la differenza assoluta)
        stock_after: Giacenza risultante dopo il movimento
        reason: Causale leggibile
        document_type: Tipo documento collegato (es. "service_order")
        document_id: UUID del documento collegato
        actor_id: Operatore che ha generato il movimento
        notes: Note aggiuntive
    """

    __tablename__ = "stock_movements"

    product_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("products.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
        doc="UUID del prodotto",
    )

    direction: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        index=True,
        doc="Direzione del movimento: in, out, adjustment",
    )

    quantity: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        doc="Quantità movimentata",
    )

    stock_after: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        doc="Giacenza dopo il movimento",
    )

    reason: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        doc="Causale del movimento",
    )

    document_type: Mapped[str | None] = mapped_column(String(30), nullable=True)
    document_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True, index=True)
    actor_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        doc="Data/ora di registrazione del movimento",
    )

    product: Mapped["Product"] = relationship(
        "Product",
        back_populates="stock_movements",
        lazy="noload",
        doc="Prodotto movimentato",
    )

    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_stock_movements_quantity"),
        CheckConstraint(
            "direction IN ('in', 'out', 'adjustment')",
            name="ck_stock_movements_direction",
        ),
    )

    def __repr__(self) -> str:
        return f"StockMovement(product_id={self.product_id}, direction={self.direction!r}, quantity={self.quantity})"
