"""
Schemas Pydantic per gli Appuntamenti
Progetto: Officina Manager

Definisce stati, transizioni e schemi di validazione/serializzazione
degli appuntamenti e della disponibilità giornaliera.
"""

import datetime
import uuid
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# -------------------------------------------------------------------
# Enum per gli stati dell'appuntamento
# -------------------------------------------------------------------

class AppointmentStatus(str, Enum):
    """Enum che definisce i possibili stati di un appuntamento."""
    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    CANCELED = "canceled"
    COMPLETED = "completed"


# Stati che occupano l'agenda (considerati nei conflitti e nelle disponibilità)
ACTIVE_STATUSES: tuple[AppointmentStatus, ...] = (
    AppointmentStatus.SCHEDULED,
    AppointmentStatus.CONFIRMED,
)

# Nota: unica source of truth per le transizioni, usata dal modello Appointment.
VALID_TRANSITIONS: dict[AppointmentStatus, list[AppointmentStatus]] = {
    AppointmentStatus.SCHEDULED: [
        AppointmentStatus.CONFIRMED,
        AppointmentStatus.COMPLETED,
        AppointmentStatus.CANCELED,
    ],
    AppointmentStatus.CONFIRMED: [
        AppointmentStatus.COMPLETED,
        AppointmentStatus.CANCELED,
    ],
    AppointmentStatus.COMPLETED: [],  # Stato finale
    AppointmentStatus.CANCELED: [],  # Stato finale
}


def _strip_optional(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    v = v.strip()
    return v or None


# -------------------------------------------------------------------
# Schemas di input
# -------------------------------------------------------------------

class AppointmentCreate(BaseModel):
    """
    Schema per la creazione di un appuntamento.

    Attributes:
        client_id: UUID del cliente
        vehicle_id: UUID del veicolo (deve appartenere al cliente)
        service_id: UUID del servizio a catalogo (ne determina la durata)
        start_at: Data/ora di inizio (senza fuso = fuso orario dell'officina)
        description: Descrizione libera (default: nome del servizio)
        technician_id: Tecnico assegnato (opzionale)
        notes: Note interne
    """
    model_config = ConfigDict(extra="forbid")

    client_id: uuid.UUID
    vehicle_id: uuid.UUID
    service_id: uuid.UUID
    start_at: datetime.datetime = Field(..., description="Data/ora di inizio")
    description: Optional[str] = Field(None, max_length=1000)
    technician_id: Optional[uuid.UUID] = None
    notes: Optional[str] = Field(None, max_length=5000)

    @field_validator("description", "notes")
    @classmethod
    def strip_text(cls, v: Optional[str]) -> Optional[str]:
        return _strip_optional(v)


class AppointmentUpdate(BaseModel):
    """
    Schema per l'aggiornamento di un appuntamento.

    Lo stato NON può essere cambiato tramite questo schema
    (usare gli endpoint confirm / cancel / complete).
    """
    model_config = ConfigDict(extra="forbid")

    start_at: Optional[datetime.datetime] = None
    service_id: Optional[uuid.UUID] = None
    technician_id: Optional[uuid.UUID] = None
    description: Optional[str] = Field(None, max_length=1000)
    notes: Optional[str] = Field(None, max_length=5000)

    @field_validator("description", "notes")
    @classmethod
    def strip_text(cls, v: Optional[str]) -> Optional[str]:
        return _strip_optional(v)


class AppointmentCancel(BaseModel):
    """Motivazione obbligatoria per l'annullamento."""
    model_config = ConfigDict(extra="forbid")

    reason: str = Field(..., min_length=1, max_length=500, description="Motivo dell'annullamento")

    @field_validator("reason")
    @classmethod
    def validate_reason(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Il motivo dell'annullamento è obbligatorio")
        return v


# -------------------------------------------------------------------
# Schemas di output
# -------------------------------------------------------------------

class AppointmentRead(BaseModel):
    """Schema per la lettura di un appuntamento."""
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    client_id: uuid.UUID
    vehicle_id: uuid.UUID
    service_id: uuid.UUID
    technician_id: Optional[uuid.UUID] = None
    start_at: datetime.datetime
    end_at: Optional[datetime.datetime] = None
    duration_minutes: Optional[int] = None
    description: Optional[str] = None
    status: AppointmentStatus
    notes: Optional[str] = None
    cancel_reason: Optional[str] = None
    confirmed_at: Optional[datetime.datetime] = None
    canceled_at: Optional[datetime.datetime] = None
    completed_at: Optional[datetime.datetime] = None
    created_at: Optional[datetime.datetime] = None
    updated_at: Optional[datetime.datetime] = None


class AppointmentList(BaseModel):
    """Risposta paginata degli appuntamenti."""
    items: list[AppointmentRead]
    total: int
    page: int
    per_page: int
    total_pages: int = 0

    @model_validator(mode="after")
    def compute_total_pages(self) -> "AppointmentList":
        """Calcola automaticamente il numero totale di pagine."""
        if self.per_page > 0:
            self.total_pages = (self.total + self.per_page - 1) // self.per_page
        return self


class AvailabilityRead(BaseModel):
    """
    Slot prenotabili per un giorno.

    Attributes:
        date: Giorno richiesto
        service_id: Servizio usato per la durata (se indicato)
        duration_minutes: Durata applicata a ogni slot
        slots: Orari di inizio disponibili, in ordine crescente
    """
    date: datetime.date
    service_id: Optional[uuid.UUID] = None
    duration_minutes: int
    slots: list[datetime.datetime] = Field(default_factory=list)
