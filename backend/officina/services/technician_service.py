"""
Service Layer per l'entità Technician
Progetto: Officina Manager

Definisce la logica di business per la gestione dei tecnici.
"""

import logging
import uuid
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from officina.core.exceptions import BusinessValidationError, NotFoundError
from officina.models import ServiceOrder, Technician
from officina.schemas.audit_log import RequestActor
from officina.schemas.service_order import LOCKED_STATUSES
from officina.schemas.technician import TechnicianCreate, TechnicianUpdate
from officina.services.audit_service import audit_service

logger = logging.getLogger(__name__)


class TechnicianService:
    """
    Service per la gestione delle operazioni CRUD sui tecnici.
    """

    async def get_all(self, db: AsyncSession) -> List[Technician]:
        """Recupera la lista dei tecnici attivi."""
        query = select(Technician).where(Technician.is_active == True).order_by(Technician.name)
        result = await db.execute(query)
        return list(result.scalars().all())

    async def get_by_id(self, db: AsyncSession, id: uuid.UUID) -> Technician:
        """Recupera il dettaglio di un tecnico."""
        query = select(Technician).where(Technician.id == id, Technician.is_active == True)
        result = await db.execute(query)
        technician = result.scalar_one_or_none()

        if not technician:
            logger.warning("Tecnico non trovato: %s", id)
            raise NotFoundError(f"Tecnico {id} non trovato")

        return technician

    async def create(
        self,
        db: AsyncSession,
        data: TechnicianCreate,
        actor: Optional[RequestActor] = None,
    ) -> Technician:
        """Crea un nuovo tecnico."""
        technician = Technician(**data.model_dump())
        db.add(technician)
        await db.flush()
        await db.refresh(technician)

        audit_service.record(db, actor, "create", "technician", technician.id)
        logger.info("Creato tecnico: %s %s", technician.name, technician.surname)
        return technician

    async def update(
        self,
        db: AsyncSession,
        id: uuid.UUID,
        data: TechnicianUpdate,
        actor: Optional[RequestActor] = None,
    ) -> Technician:
        """Aggiorna i dati di un tecnico."""
        technician = await self.get_by_id(db, id)

        update_data = data.model_dump(exclude_unset=True, exclude_none=True)
        for k, v in update_data.items():
            setattr(technician, k, v)

        await db.flush()
        await db.refresh(technician)

        audit_service.record(db, actor, "update", "technician", technician.id, update_data)
        return technician

    async def delete(
        self,
        db: AsyncSession,
        id: uuid.UUID,
        actor: Optional[RequestActor] = None,
    ) -> None:
        """Soft delete di un tecnico. Blocca se è responsabile di ordini aperti."""
        technician = await self.get_by_id(db, id)

        so_query = select(func.count(ServiceOrder.id)).where(
            ServiceOrder.technician_id == id,
            ServiceOrder.status.not_in([s.value for s in LOCKED_STATUSES]),
        )
        so_count = await db.execute(so_query)

        if (so_count.scalar() or 0) > 0:
            logger.warning("Tentativo di eliminare tecnico %s con ordini aperti", id)
            raise BusinessValidationError("Impossibile eliminare tecnico: ci sono ordini in corso assegnati")

        technician.is_active = False
        await db.flush()

        audit_service.record(db, actor, "delete", "technician", technician.id)


technician_service = TechnicianService()
