"""
Schemas Pydantic per l'entità Client
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
# Funzioni di normalizzazione
# -------------------------------------------------------------------

def normalize_phone(phone: Optional[str]) -> Optional[str]:
    """
    Normalizza il numero di telefono.

    Rimuove spazi e accetta solo +, numeri e spazi.

    Raises:
        ValueError: Se il formato non è valido
    """
    if phone is None:
        return None

    normalized = phone.strip().replace(" ", "")
    if not normalized:
        return None

    # Regex: + seguito da numeri, oppure solo numeri
    if not re.match(r"^\+?\d+$", normalized):
        raise ValueError("Numero di telefono non valido")

    return normalized


def normalize_tax_code(tax_code: Optional[str]) -> Optional[str]:
    """Codice fiscale / partita IVA: maiuscolo, senza spazi, alfanumerico."""
    if tax_code is None:
        return None
    normalized = tax_code.strip().upper().replace(" ", "")
    if not normalized:
        return None
    if not re.match(r"^[A-Z0-9]{11,16}$", normalized):
        raise ValueError("Codice fiscale o partita IVA non valido (11-16 caratteri alfanumerici)")
    return normalized


class ClientValidatorsMixin(BaseModel):
    """Validatori condivisi tra creazione e aggiornamento."""

    @field_validator("phone", check_fields=False)
    @classmethod
    def validate_phone(cls, v: Optional[str]) -> Optional[str]:
        return normalize_phone(v)

    @field_validator("tax_code", check_fields=False)
    @classmethod
    def validate_tax_code(cls, v: Optional[str]) -> Optional[str]:
        return normalize_tax_code(v)

    @field_validator("email", check_fields=False)
    @classmethod
    def validate_email(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip().lower()
        if not v:
            return None
        if not re.match(r"^[^@\s]+@[^@\s]+\.[^@\s]+$", v):
            raise ValueError("Indirizzo email non valido")
        return v


# -------------------------------------------------------------------
# Schemas
# -------------------------------------------------------------------

class ClientBase(ClientValidatorsMixin):
    """
    Campi anagrafici del cliente.

    Attributes:
        name: Nome o ragione sociale
        surname: Cognome
        tax_code: Codice fiscale o partita IVA
        phone: Telefono
        email: Email
        address: Indirizzo
        city: Città
        notes: Note
    """
    name: str = Field(..., min_length=1, max_length=100, description="Nome o ragione sociale")
    surname: Optional[str] = Field(None, max_length=100)
    tax_code: Optional[str] = Field(None, max_length=16)
    phone: Optional[str] = Field(None, max_length=20)
    email: Optional[str] = Field(None, max_length=255)
    address: Optional[str] = Field(None, max_length=255)
    city: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = Field(None, max_length=5000)


class ClientCreate(ClientBase):
    model_config = ConfigDict(extra="forbid")


class ClientUpdate(ClientValidatorsMixin):
    """Aggiornamento parziale: tutti i campi opzionali."""
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    surname: Optional[str] = Field(None, max_length=100)
    tax_code: Optional[str] = Field(None, max_length=16)
    phone: Optional[str] = Field(None, max_length=20)
    email: Optional[str] = Field(None, max_length=255)
    address: Optional[str] = Field(None, max_length=255)
    city: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = Field(None, max_length=5000)


class ClientRead(ClientBase):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    is_active: bool = True
    created_at: Optional[datetime.datetime] = None
    updated_at: Optional[datetime.datetime] = None


# -------------------------------------------------------------------
# Schemas per Lista Paginata
# -------------------------------------------------------------------
class ClientList(BaseModel):
    """
    Schema per risposte paginate.
    """

    items: list[ClientRead] = Field(default_factory=list, description="Lista dei clienti")
    total: int = Field(..., ge=0, description="Numero totale di clienti")
    page: int = Field(..., ge=1, description="Numero pagina corrente")
    per_page: int = Field(..., ge=1, description="Numero elementi per pagina")

    @computed_field
    def total_pages(self) -> int:
        """Numero totale di pagine: ceil(total / per_page)."""
        if self.per_page > 0:
            return (self.total + self.per_page - 1) // self.per_page
        return 0
