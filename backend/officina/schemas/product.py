"""
Schemas Pydantic per Prodotti e Magazzino
Progetto: Officina Manager

La giacenza non è mai impostabile da create/update: cambia solo
tramite movimenti di magazzino.
"""

import datetime
import logging
import re
import uuid
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator, model_validator

logger = logging.getLogger(__name__)


class MovementDirection(str, Enum):
    """Tipi di movimento di magazzino."""
    IN = "in"
    OUT = "out"
    ADJUSTMENT = "adjustment"


class UnitOfMeasure(str, Enum):
    """Unità di misura consentite per i prodotti."""
    PZ = "pz"
    LT = "lt"
    KG = "kg"
    MT = "mt"
    ML = "ml"
    GR = "gr"


# ------------------------------------------------------------
# Schemas Product
# ------------------------------------------------------------

class ProductBase(BaseModel):
    """
    Schema base per i prodotti.

    Include tutti i campi modificabili comuni a create e update.
    """
    code: str = Field(..., min_length=2, max_length=50, description="Codice identificativo del prodotto")
    name: str = Field(..., min_length=1, max_length=150, description="Nome del prodotto")
    description: Optional[str] = Field(None, max_length=5000)
    category: Optional[str] = Field(None, max_length=50)
    unit_of_measure: UnitOfMeasure = Field(default=UnitOfMeasure.PZ, description="Unità di misura")
    cost_price: Decimal = Field(default=Decimal("0"), ge=0, description="Prezzo di acquisto")
    sale_price: Decimal = Field(default=Decimal("0"), ge=0, description="Prezzo di vendita")
    min_stock: int = Field(default=0, ge=0, description="Livello minimo giacenza per alert")
    max_stock: Optional[int] = Field(None, ge=0, description="Livello massimo consigliato")
    location: Optional[str] = Field(None, max_length=50, description="Posizione fisica in magazzino")
    barcode: Optional[str] = Field(None, max_length=50)

    @field_validator("code", mode="before")
    @classmethod
    def normalize_code(cls, v: str) -> str:
        """Normalizza il codice: strip e uppercase."""
        if isinstance(v, str):
            v = v.strip().upper()
        return v

    @field_validator("code")
    @classmethod
    def validate_code_format(cls, v: str) -> str:
        """Valida il formato del codice: solo alfanumerici e trattini."""
        if v and not re.match(r"^[A-Z0-9\-]{2,50}$", v):
            raise ValueError("Il codice deve contenere solo lettere, numeri e trattini (2-50 caratteri)")
        return v

    @model_validator(mode="after")
    def validate_prices(self):
        """Segnala prezzi di vendita inferiori al costo."""
        if self.cost_price and self.sale_price is not None and self.sale_price < self.cost_price:
            logger.warning(
                "Prezzo di vendita inferiore al costo per il prodotto %s: costo=%s, vendita=%s",
                self.code,
                self.cost_price,
                self.sale_price,
            )
        return self


class ProductCreate(ProductBase):
    """
    Schema per la creazione di un nuovo prodotto.

    initial_stock genera un movimento di carico "Giacenza iniziale".
    """
    model_config = ConfigDict(extra="forbid")

    initial_stock: int = Field(default=0, ge=0, description="Giacenza iniziale")


class ProductUpdate(BaseModel):
    """
    Schema per l'aggiornamento di un prodotto.

    Nota: la giacenza non è modificabile qui, usare POST /products/{id}/stock.
    """
    model_config = ConfigDict(extra="forbid")

    code: Optional[str] = Field(None, min_length=2, max_length=50)
    name: Optional[str] = Field(None, min_length=1, max_length=150)
    description: Optional[str] = Field(None, max_length=5000)
    category: Optional[str] = Field(None, max_length=50)
    unit_of_measure: Optional[UnitOfMeasure] = None
    cost_price: Optional[Decimal] = Field(None, ge=0)
    sale_price: Optional[Decimal] = Field(None, ge=0)
    min_stock: Optional[int] = Field(None, ge=0)
    max_stock: Optional[int] = Field(None, ge=0)
    location: Optional[str] = Field(None, max_length=50)
    barcode: Optional[str] = Field(None, max_length=50)
    is_active: Optional[bool] = None

    @field_validator("code", mode="before")
    @classmethod
    def normalize_code(cls, v: Optional[str]) -> Optional[str]:
        if isinstance(v, str):
            v = v.strip().upper()
        return v


class ProductRead(ProductBase):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    stock_quantity: int
    is_active: bool = True
    created_at: Optional[datetime.datetime] = None
    updated_at: Optional[datetime.datetime] = None

    @computed_field
    @property
    def is_low_stock(self) -> bool:
        """True se la giacenza è pari o inferiore al minimo."""
        return self.stock_quantity <= self.min_stock


class ProductList(BaseModel):
    """
    Schema per la lista paginata di prodotti.
    """
    items: list[ProductRead]
    total: int
    page: int
    per_page: int
    total_pages: int = 0

    @model_validator(mode="after")
    def calculate_total_pages(self):
        """Calcola automaticamente il totale delle pagine."""
        if self.per_page > 0:
            self.total_pages = (self.total + self.per_page - 1) // self.per_page
        return self


# ------------------------------------------------------------
# Schemas StockMovement
# ------------------------------------------------------------

class StockMovementCreate(BaseModel):
    """
    Movimento manuale di magazzino.

    Per "adjustment" quantity è la nuova giacenza assoluta (può essere 0).
    """
    model_config = ConfigDict(extra="forbid")

    direction: MovementDirection = Field(..., description="Tipo di movimento")
    quantity: int = Field(..., ge=0, description="Quantità del movimento")
    reason: str = Field(..., min_length=1, max_length=255, description="Causale")
    notes: Optional[str] = Field(None, max_length=5000)

    @model_validator(mode="after")
    def validate_quantity(self):
        """Carichi e scarichi richiedono una quantità positiva."""
        if self.direction != MovementDirection.ADJUSTMENT and self.quantity == 0:
            raise ValueError("La quantità non può essere zero")
        return self


class StockMovementRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    product_id: uuid.UUID
    direction: MovementDirection
    quantity: int
    stock_after: int
    reason: str
    document_type: Optional[str] = None
    document_id: Optional[uuid.UUID] = None
    actor_id: Optional[uuid.UUID] = None
    notes: Optional[str] = None
    created_at: Optional[datetime.datetime] = None


class StockMovementList(BaseModel):
    items: list[StockMovementRead]
    total: int
    page: int
    per_page: int
    total_pages: int = 0

    @model_validator(mode="after")
    def calculate_total_pages(self):
        """Calcola automaticamente il totale delle pagine."""
        if self.per_page > 0:
            self.total_pages = (self.total + self.per_page - 1) // self.per_page
        return self


class LowStockAlert(BaseModel):
    """
    Schema per un alert di stock basso.
    """
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    code: str
    name: str
    stock_quantity: int
    min_stock: int

    @computed_field
    @property
    def deficit(self) -> int:
        """Quantità mancante per tornare sopra il livello minimo."""
        return max(self.min_stock - self.stock_quantity, 0)
