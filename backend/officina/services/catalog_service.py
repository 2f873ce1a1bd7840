"""
Service Layer per il catalogo servizi
Progetto: Officina Manager

Il catalogo viene letto da appuntamenti (durata) e ordini di servizio
(descrizione e prezzo di default), mai modificato da essi.
"""

import logging
import uuid
from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from officina.core.exceptions import DuplicateError, NotFoundError
from officina.models import Service
from officina.schemas.audit_log import RequestActor
from officina.schemas.service import ServiceCreate, ServiceUpdate
from officina.services.audit_service import audit_service

logger = logging.getLogger(__name__)


class CatalogService:
    """
    Service per le operazioni CRUD sul catalogo servizi.
    """

    async def get_all(
        self,
        db: AsyncSession,
        page: int = 1,
        per_page: int = 50,
        search: Optional[str] = None,
        category: Optional[str] = None,
        include_inactive: bool = False,
    ) -> tuple[list[Service], int]:
        """
        Recupera il catalogo paginato, ordinato per nome.

        Returns:
            Tuple di (lista servizi, totale count)
        """
        conditions = []
        if not include_inactive:
            conditions.append(Service.is_active == True)
        if category:
            conditions.append(Service.category == category)
        if search:
            term = f"%{search}%"
            conditions.append(or_(Service.code.ilike(term), Service.name.ilike(term)))

        query = select(Service).order_by(Service.name.asc())
        count_query = select(func.count()).select_from(Service)
        if conditions:
            query = query.where(*conditions)
            count_query = count_query.where(*conditions)

        result = await db.execute(query.offset((page - 1) * per_page).limit(per_page))
        items = list(result.scalars().all())
        total = (await db.execute(count_query)).scalar() or 0
        return items, total

    async def get_by_id(
        self,
        db: AsyncSession,
        service_id: uuid.UUID,
        include_inactive: bool = False,
    ) -> Service:
        """
        Raises:
            NotFoundError: Se il servizio non esiste o non è attivo
        """
        query = select(Service).where(Service.id == service_id)
        if not include_inactive:
            query = query.where(Service.is_active == True)

        service = (await db.execute(query)).scalar_one_or_none()
        if service is None:
            logger.warning("Servizio non trovato: %s", service_id)
            raise NotFoundError(f"Servizio con ID {service_id} non trovato")
        return service

    async def _ensure_code_available(self, db: AsyncSession, code: str) -> None:
        existing = await db.execute(select(Service.id).where(Service.code == code))
        if existing.scalar_one_or_none() is not None:
            logger.warning("Codice servizio duplicato: %s", code)
            raise DuplicateError(f"Codice servizio già esistente: {code}")

    async def create(
        self,
        db: AsyncSession,
        data: ServiceCreate,
        actor: Optional[RequestActor] = None,
    ) -> Service:
        """
        Raises:
            DuplicateError: Se il codice esiste già
        """
        await self._ensure_code_available(db, data.code)

        service = Service(**data.model_dump())
        db.add(service)
        await db.flush()
        await db.refresh(service)

        audit_service.record(db, actor, "create", "service", service.id, {"code": service.code})
        logger.info("Creato servizio a catalogo: %s - %s", service.code, service.name)
        return service

    async def update(
        self,
        db: AsyncSession,
        service_id: uuid.UUID,
        data: ServiceUpdate,
        actor: Optional[RequestActor] = None,
    ) -> Service:
        service = await self.get_by_id(db, service_id, include_inactive=True)
        update_data = data.model_dump(exclude_unset=True, exclude_none=True)

        new_code = update_data.get("code")
        if new_code and new_code != service.code:
            await self._ensure_code_available(db, new_code)

        for field, value in update_data.items():
            setattr(service, field, value)

        await db.flush()
        await db.refresh(service)

        audit_service.record(db, actor, "update", "service", service.id, update_data)
        logger.info("Aggiornato servizio a catalogo: %s", service.code)
        return service

    async def delete(
        self,
        db: AsyncSession,
        service_id: uuid.UUID,
        actor: Optional[RequestActor] = None,
    ) -> None:
        """Disattiva un servizio: resta referenziato da appuntamenti e ordini esistenti."""
        service = await self.get_by_id(db, service_id)
        service.is_active = False
        await db.flush()

        audit_service.record(db, actor, "delete", "service", service.id, {"code": service.code})
        logger.info("Disattivato servizio a catalogo: %s", service.code)


# Istanza singleton del service
catalog_service = CatalogService()
