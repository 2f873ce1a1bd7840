"""
Schemas Pydantic per il catalogo servizi
Progetto: Officina Manager
"""

import datetime
import uuid
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator


def normalize_code(code: Optional[str]) -> Optional[str]:
    """Codice catalogo: maiuscolo e senza spazi ai lati."""
    if code is None:
        return None
    normalized = code.strip().upper()
    if not normalized:
        raise ValueError("Il codice non può essere vuoto")
    return normalized


class ServiceBase(BaseModel):
    """
    Attributes:
        code: Codice univoco
        name: Nome del servizio
        description: Descrizione
        category: Categoria
        price: Prezzo di listino (>= 0)
        estimated_minutes: Durata stimata in minuti (>= 1)
    """
    code: str = Field(..., min_length=1, max_length=30)
    name: str = Field(..., min_length=1, max_length=150)
    description: Optional[str] = Field(None, max_length=5000)
    category: Optional[str] = Field(None, max_length=50)
    price: Decimal = Field(default=Decimal("0"), ge=Decimal("0"), decimal_places=2)
    estimated_minutes: int = Field(default=60, ge=1, le=24 * 60)

    @field_validator("code")
    @classmethod
    def validate_code(cls, v: str) -> str:
        return normalize_code(v)


class ServiceCreate(ServiceBase):
    model_config = ConfigDict(extra="forbid")


class ServiceUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    code: Optional[str] = Field(None, min_length=1, max_length=30)
    name: Optional[str] = Field(None, min_length=1, max_length=150)
    description: Optional[str] = Field(None, max_length=5000)
    category: Optional[str] = Field(None, max_length=50)
    price: Optional[Decimal] = Field(None, ge=Decimal("0"), decimal_places=2)
    estimated_minutes: Optional[int] = Field(None, ge=1, le=24 * 60)
    is_active: Optional[bool] = None

    @field_validator("code")
    @classmethod
    def validate_code(cls, v: Optional[str]) -> Optional[str]:
        return normalize_code(v)


class ServiceRead(ServiceBase):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    is_active: bool = True
    created_at: Optional[datetime.datetime] = None
    updated_at: Optional[datetime.datetime] = None


class ServiceList(BaseModel):
    items: list[ServiceRead] = Field(default_factory=list)
    total: int = Field(..., ge=0)
    page: int = Field(..., ge=1)
    per_page: int = Field(..., ge=1)

    @computed_field
    def total_pages(self) -> int:
        if self.per_page > 0:
            return (self.total + self.per_page - 1) // self.per_page
        return 0
