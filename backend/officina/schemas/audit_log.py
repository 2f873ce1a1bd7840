"""
Schemas Pydantic per il registro di audit
Progetto: Officina Manager
"""

import datetime
import uuid
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, model_validator


class RequestActor(BaseModel):
    """
    Operatore della richiesta corrente.

    Attributes:
        actor_id: UUID dell'operatore (None se la richiesta è anonima)
        ip_address: IP del client
    """
    model_config = ConfigDict(frozen=True)

    actor_id: Optional[uuid.UUID] = None
    ip_address: Optional[str] = None


SYSTEM_ACTOR = RequestActor()


class AuditLogRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    actor_id: Optional[uuid.UUID] = None
    action: str
    entity_type: str
    entity_id: Optional[uuid.UUID] = None
    details: Optional[dict[str, Any]] = None
    ip_address: Optional[str] = None
    created_at: datetime.datetime


class AuditLogList(BaseModel):
    """Risposta paginata del registro di audit."""
    items: list[AuditLogRead]
    total: int
    page: int
    per_page: int
    total_pages: int = 0

    @model_validator(mode="after")
    def compute_total_pages(self) -> "AuditLogList":
        """Calcola automaticamente il numero totale di pagine."""
        if self.per_page > 0:
            self.total_pages = (self.total + self.per_page - 1) // self.per_page
        return self
