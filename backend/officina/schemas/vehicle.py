"""
Schemas Pydantic per l'entità Vehicle
Progetto: Officina Manager

Definisce gli schemi di validazione e serializzazione per l'API.
"""

import datetime
import re
import uuid
from typing import Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
)


# -------------------------------------------------------------------
# Funzioni di normalizzazione e validazione
# -------------------------------------------------------------------

def normalize_plate(plate: Optional[str]) -> Optional[str]:
    """
    Normalizza la targa del veicolo.

    Converte in maiuscolo, rimuove spazi e valida il formato.
    Accetta formati italiani (es. "AB 123 CD", "AB123CD") e europei.

    Raises:
        ValueError: Se il formato non è valido
    """
    if plate is None:
        return None

    # Rimuovi spazi e converti in maiuscolo
    normalized = plate.strip().upper().replace(" ", "")

    # Valida formato: 2-20 caratteri alfanumerici
    if not re.match(r"^[A-Z0-9]{2,20}$", normalized):
        raise ValueError(
            "Targa non valida: deve contenere 2-20 caratteri alfanumerici"
        )

    return normalized


def validate_year(year: Optional[int]) -> Optional[int]:
    """
    Valida l'anno di immatricolazione (1900 <= anno <= anno corrente + 1).
    """
    if year is None:
        return None
    max_year = datetime.date.today().year + 1
    if year < 1900 or year > max_year:
        raise ValueError(f"Anno non valido: deve essere compreso tra 1900 e {max_year}")
    return year


class VehicleBase(BaseModel):
    """
    Campi del veicolo.

    Attributes:
        plate: Targa (normalizzata in maiuscolo)
        brand: Marca
        model: Modello
        year: Anno di immatricolazione
        color: Colore
        current_km: Chilometraggio attuale
        notes: Note
    """
    plate: str = Field(..., min_length=2, max_length=20, description="Targa")
    brand: str = Field(..., min_length=1, max_length=100, description="Marca")
    model: str = Field(..., min_length=1, max_length=100, description="Modello")
    year: Optional[int] = Field(None, description="Anno di immatricolazione")
    color: Optional[str] = Field(None, max_length=50)
    current_km: int = Field(default=0, ge=0, description="Chilometraggio attuale")
    notes: Optional[str] = Field(None, max_length=5000)

    @field_validator("plate")
    @classmethod
    def validate_plate(cls, v: str) -> str:
        return normalize_plate(v)

    @field_validator("year")
    @classmethod
    def check_year(cls, v: Optional[int]) -> Optional[int]:
        return validate_year(v)


class VehicleCreate(VehicleBase):
    model_config = ConfigDict(extra="forbid")

    client_id: uuid.UUID = Field(..., description="UUID del cliente proprietario")


class VehicleUpdate(BaseModel):
    """
    Aggiornamento parziale del veicolo.

    Il chilometraggio può solo aumentare.
    """
    model_config = ConfigDict(extra="forbid")

    client_id: Optional[uuid.UUID] = None
    plate: Optional[str] = Field(None, min_length=2, max_length=20)
    brand: Optional[str] = Field(None, min_length=1, max_length=100)
    model: Optional[str] = Field(None, min_length=1, max_length=100)
    year: Optional[int] = None
    color: Optional[str] = Field(None, max_length=50)
    current_km: Optional[int] = Field(None, ge=0)
    notes: Optional[str] = Field(None, max_length=5000)

    @field_validator("plate")
    @classmethod
    def validate_plate(cls, v: Optional[str]) -> Optional[str]:
        return normalize_plate(v)

    @field_validator("year")
    @classmethod
    def check_year(cls, v: Optional[int]) -> Optional[int]:
        return validate_year(v)


class VehicleRead(VehicleBase):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    client_id: uuid.UUID
    is_active: bool = True
    created_at: Optional[datetime.datetime] = None
    updated_at: Optional[datetime.datetime] = None

    @computed_field
    @property
    def display_name(self) -> str:
        """Nome visualizzato: "Marca Modello (Targa)"."""
        return f"{self.brand} {self.model} ({self.plate})"


class VehicleList(BaseModel):
    """Risposta paginata dei veicoli."""
    items: list[VehicleRead] = Field(default_factory=list)
    total: int = Field(..., ge=0)
    page: int = Field(..., ge=1)
    per_page: int = Field(..., ge=1)

    @computed_field
    def total_pages(self) -> int:
        if self.per_page > 0:
            return (self.total + self.per_page - 1) // self.per_page
        return 0
