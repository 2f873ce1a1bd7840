"""
Service Layer per il registro di audit
Progetto: Officina Manager

Le voci vengono aggiunte alla unit of work corrente e persistite
con il commit della richiesta. Nessun flush autonomo.
"""

import datetime
import logging
import uuid
from typing import Any, Optional

from fastapi.encoders import jsonable_encoder
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from officina.models import AuditLog
from officina.schemas.audit_log import RequestActor, SYSTEM_ACTOR

logger = logging.getLogger(__name__)


class AuditService:
    """
    Service per la registrazione e consultazione delle operazioni.
    """

    def record(
        self,
        db: AsyncSession,
        actor: Optional[RequestActor],
        action: str,
        entity_type: str,
        entity_id: Optional[uuid.UUID],
        details: Optional[dict[str, Any]] = None,
    ) -> AuditLog:
        """
        Accoda una voce di audit alla sessione corrente.

        Non solleva eccezioni per dettagli non serializzabili:
        in quel caso i dettagli vengono omessi.

        Args:
            db: Sessione database
            actor: Operatore della richiesta (None = sistema)
            action: Azione eseguita
            entity_type: Tipo di entità
            entity_id: UUID dell'entità
            details: Dettagli aggiuntivi

        Returns:
            La voce di audit (non ancora persistita)
        """
        actor = actor or SYSTEM_ACTOR

        payload = None
        if details:
            try:
                payload = jsonable_encoder(details)
            except (TypeError, ValueError):
                logger.warning(
                    "Dettagli audit non serializzabili per %s %s:%s",
                    action, entity_type, entity_id,
                    exc_info=True,
                )

        entry = AuditLog(
            actor_id=actor.actor_id,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            details=payload,
            ip_address=actor.ip_address,
        )
        db.add(entry)

        logger.debug("Audit: %s %s:%s (actor=%s)", action, entity_type, entity_id, actor.actor_id)
        return entry

    async def get_all(
        self,
        db: AsyncSession,
        page: int = 1,
        per_page: int = 50,
        entity_type: Optional[str] = None,
        entity_id: Optional[uuid.UUID] = None,
        actor_id: Optional[uuid.UUID] = None,
        date_from: Optional[datetime.datetime] = None,
        date_to: Optional[datetime.datetime] = None,
    ) -> tuple[list[AuditLog], int]:
        """
        Recupera il registro di audit filtrato, dal più recente.

        Returns:
            Tuple di (lista voci, totale count)
        """
        conditions = []
        if entity_type:
            conditions.append(AuditLog.entity_type == entity_type)
        if entity_id:
            conditions.append(AuditLog.entity_id == entity_id)
        if actor_id:
            conditions.append(AuditLog.actor_id == actor_id)
        if date_from:
            conditions.append(AuditLog.created_at >= date_from)
        if date_to:
            conditions.append(AuditLog.created_at <= date_to)

        query = select(AuditLog).order_by(AuditLog.created_at.desc())
        count_query = select(func.count()).select_from(AuditLog)
        if conditions:
            query = query.where(*conditions)
            count_query = count_query.where(*conditions)

        result = await db.execute(query.offset((page - 1) * per_page).limit(per_page))
        items = list(result.scalars().all())

        total = (await db.execute(count_query)).scalar() or 0

        logger.debug("Recuperate %s voci di audit su %s", len(items), total)
        return items, total


# Istanza singleton del service
audit_service = AuditService()
