"""
Router FastAPI per il catalogo servizi
Progetto: Officina Manager

Il catalogo fornisce prezzo di listino e durata stimata usati da
agenda e ordini di servizio.
"""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from officina.core.database import get_db
from officina.core.deps import Actor
from officina.schemas.service import ServiceCreate, ServiceList, ServiceRead, ServiceUpdate
from officina.services.catalog_service import catalog_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/services",
    tags=["Catalogo Servizi"],
)


@router.get("/", response_model=ServiceList)
async def list_services(
    page: int = Query(1, ge=1, description="Numero pagina"),
    per_page: int = Query(50, ge=1, le=200, description="Elementi per pagina"),
    search: Optional[str] = Query(None, description="Ricerca su codice e nome"),
    category: Optional[str] = Query(None, description="Filtro per categoria"),
    include_inactive: bool = Query(False, description="Includi servizi disattivati"),
    db: AsyncSession = Depends(get_db),
) -> ServiceList:
    """Lista paginata del catalogo servizi."""
    services, total = await catalog_service.get_all(
        db,
        page=page,
        per_page=per_page,
        search=search,
        category=category,
        include_inactive=include_inactive,
    )
    return ServiceList(
        items=[ServiceRead.model_validate(s) for s in services],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.get("/{service_id}", response_model=ServiceRead)
async def get_service(service_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    return await catalog_service.get_by_id(db, service_id, include_inactive=True)


@router.post("/", response_model=ServiceRead, status_code=status.HTTP_201_CREATED)
async def create_service(data: ServiceCreate, actor: Actor, db: AsyncSession = Depends(get_db)):
    """
    Raises:
        DuplicateError: Se il codice servizio esiste già
    """
    service = await catalog_service.create(db, data, actor=actor)
    await db.commit()
    return service


@router.put("/{service_id}", response_model=ServiceRead)
async def update_service(
    service_id: uuid.UUID,
    data: ServiceUpdate,
    actor: Actor,
    db: AsyncSession = Depends(get_db),
):
    service = await catalog_service.update(db, service_id, data, actor=actor)
    await db.commit()
    return service


@router.delete("/{service_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_service(service_id: uuid.UUID, actor: Actor, db: AsyncSession = Depends(get_db)):
    """Disattiva un servizio: righe e appuntamenti esistenti restano invariati."""
    await catalog_service.delete(db, service_id, actor=actor)
    await db.commit()
