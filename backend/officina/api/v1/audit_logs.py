import datetime
import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from officina.core.database import get_db
from officina.schemas.audit_log import AuditLogList, AuditLogRead
from officina.services.audit_service import audit_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/audit-logs",
    tags=["Audit"],
)


@router.get("/", response_model=AuditLogList)
async def get_audit_logs(
    page: int = Query(1, ge=1),
    per_page: int = Query(50, ge=1, le=200),
    entity_type: Optional[str] = Query(None, description="Tipo entità (es. service_order)"),
    entity_id: Optional[uuid.UUID] = Query(None),
    actor_id: Optional[uuid.UUID] = Query(None),
    date_from: Optional[datetime.datetime] = Query(None),
    date_to: Optional[datetime.datetime] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> AuditLogList:
    """Registro delle operazioni, dal più recente."""
    items, total = await audit_service.get_all(
        db,
        page=page,
        per_page=per_page,
        entity_type=entity_type,
        entity_id=entity_id,
        actor_id=actor_id,
        date_from=date_from,
        date_to=date_to,
    )
    return AuditLogList(
        items=[AuditLogRead.model_validate(e) for e in items],
        total=total,
        page=page,
        per_page=per_page,
    )
