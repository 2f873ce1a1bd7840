import logging
import uuid
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from officina.core.database import get_db
from officina.core.deps import Actor
from officina.schemas.technician import TechnicianCreate, TechnicianRead, TechnicianUpdate
from officina.services.technician_service import technician_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/technicians",
    tags=["Tecnici"],
)


@router.get("/", response_model=List[TechnicianRead])
async def list_technicians(db: AsyncSession = Depends(get_db)):
    """Lista dei meccanici attivi."""
    return await technician_service.get_all(db)


@router.get("/{technician_id}", response_model=TechnicianRead)
async def get_technician(technician_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    return await technician_service.get_by_id(db, technician_id)


@router.post("/", response_model=TechnicianRead, status_code=status.HTTP_201_CREATED)
async def create_technician(data: TechnicianCreate, actor: Actor, db: AsyncSession = Depends(get_db)):
    technician = await technician_service.create(db, data, actor=actor)
    await db.commit()
    return technician


@router.put("/{technician_id}", response_model=TechnicianRead)
async def update_technician(
    technician_id: uuid.UUID,
    data: TechnicianUpdate,
    actor: Actor,
    db: AsyncSession = Depends(get_db),
):
    technician = await technician_service.update(db, technician_id, data, actor=actor)
    await db.commit()
    return technician


@router.delete("/{technician_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_technician(technician_id: uuid.UUID, actor: Actor, db: AsyncSession = Depends(get_db)):
    """Disattiva un meccanico. Bloccato se ha ordini di servizio aperti assegnati."""
    await technician_service.delete(db, technician_id, actor=actor)
    await db.commit()
