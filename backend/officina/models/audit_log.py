"""
Modello SQLAlchemy per il registro di audit
Progetto: Officina Manager

Ogni operazione di scrittura registra chi ha fatto cosa e su quale entità.
Le voci sono immutabili.
"""

import datetime
import uuid
from typing import Any, Optional

from sqlalchemy import JSON, DateTime, Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from officina.models import Base
from officina.models.mixins import AppendOnlyMixin, UUIDMixin


class AuditLog(Base, UUIDMixin, AppendOnlyMixin):
    """
    Voce del registro di audit.

    Attributes:
        actor_id: Operatore (None per richieste anonime)
        action: Azione eseguita (es. "create", "cancel", "add_product_line")
        entity_type: Tipo di entità (es. "appointment", "service_order")
        entity_id: UUID dell'entità
        details: Dettagli liberi in JSON
        ip_address: IP di provenienza della richiesta
        created_at: Data/ora dell'operazione
    """

    __tablename__ = "audit_logs"

    actor_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True, index=True)
    action: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    details: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)
    ip_address: Mapped[Optional[str]] = mapped_column(String(45), nullable=True)

    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        index=True,
        doc="Data/ora dell'operazione",
    )

    __table_args__ = (
        Index("ix_audit_logs_entity", "entity_type", "entity_id"),
    )

    def __repr__(self) -> str:
        return f"<AuditLog(action={self.action}, entity={self.entity_type}:{self.entity_id})>"
