"""
Router FastAPI per l'anagrafica clienti
Progetto: Officina Manager
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from officina.core.database import get_db
from officina.core.deps import Actor
from officina.schemas.client import ClientCreate, ClientList, ClientRead, ClientUpdate
from officina.services.client_service import client_service

router = APIRouter(prefix="/clients", tags=["Clienti"])


@router.get("/", name="clienti_lista", response_model=ClientList)
async def list_clients(
    page: int = Query(1, ge=1),
    per_page: int = Query(10, ge=1, le=100),
    search: Optional[str] = Query(None, description="Nome, cognome, codice fiscale, telefono o email"),
    include_inactive: bool = Query(False),
    db: AsyncSession = Depends(get_db),
) -> ClientList:
    """Solo clienti attivi, salvo include_inactive."""
    clients, total = await client_service.get_all(
        db, page=page, per_page=per_page, search=search, include_inactive=include_inactive
    )
    return ClientList(
        items=[ClientRead.model_validate(c) for c in clients],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.get("/{client_id}", name="cliente_dettaglio", response_model=ClientRead)
async def read_client(
    client_id: uuid.UUID,
    include_inactive: bool = Query(False),
    db: AsyncSession = Depends(get_db),
) -> ClientRead:
    client = await client_service.get_by_id(db, client_id, include_inactive=include_inactive)
    return ClientRead.model_validate(client)


@router.post("/", name="cliente_crea", response_model=ClientRead, status_code=status.HTTP_201_CREATED)
async def create_client(
    data: ClientCreate,
    actor: Actor,
    db: AsyncSession = Depends(get_db),
) -> ClientRead:
    """409 se il codice fiscale è già registrato."""
    client = await client_service.create(db, data, actor=actor)
    await db.commit()
    return ClientRead.model_validate(client)


@router.put("/{client_id}", name="cliente_aggiorna", response_model=ClientRead)
async def update_client(
    client_id: uuid.UUID,
    data: ClientUpdate,
    actor: Actor,
    db: AsyncSession = Depends(get_db),
) -> ClientRead:
    client = await client_service.update(db, client_id, data, actor=actor)
    await db.commit()
    return ClientRead.model_validate(client)


@router.delete("/{client_id}", name="cliente_elimina", status_code=status.HTTP_204_NO_CONTENT)
async def deactivate_client(
    client_id: uuid.UUID,
    actor: Actor,
    db: AsyncSession = Depends(get_db),
) -> None:
    """Soft delete; rifiutato se il cliente ha ordini di servizio aperti."""
    await client_service.delete(db, client_id, actor=actor)
    await db.commit()
