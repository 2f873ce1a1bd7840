"""
Router FastAPI per i veicoli dei clienti
Progetto: Officina Manager

Targa univoca e normalizzata; il chilometraggio può solo crescere.
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from officina.core.database import get_db
from officina.core.deps import Actor
from officina.schemas.vehicle import VehicleCreate, VehicleList, VehicleRead, VehicleUpdate
from officina.services.vehicle_service import vehicle_service

router = APIRouter(prefix="/vehicles", tags=["Veicoli"])


@router.get("/", name="veicoli_lista", response_model=VehicleList)
async def list_vehicles(
    client_id: Optional[uuid.UUID] = Query(None),
    page: int = Query(1, ge=1),
    per_page: int = Query(10, ge=1, le=100),
    search: Optional[str] = Query(None, description="Targa, marca o modello"),
    db: AsyncSession = Depends(get_db),
) -> VehicleList:
    vehicles, total = await vehicle_service.get_all(
        db, page=page, per_page=per_page, client_id=client_id, search=search
    )
    return VehicleList(
        items=[VehicleRead.model_validate(v) for v in vehicles],
        total=total,
        page=page,
        per_page=per_page,
    )


# Prima di /{vehicle_id}: "client" non è un UUID
@router.get("/client/{client_id}", name="veicoli_cliente", response_model=list[VehicleRead])
async def list_client_vehicles(
    client_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
) -> list[VehicleRead]:
    """Tutti i veicoli attivi del cliente; 404 se il cliente non esiste."""
    vehicles = await vehicle_service.get_by_client(db, client_id)
    return [VehicleRead.model_validate(v) for v in vehicles]


@router.get("/{vehicle_id}", name="veicolo_dettaglio", response_model=VehicleRead)
async def read_vehicle(vehicle_id: uuid.UUID, db: AsyncSession = Depends(get_db)) -> VehicleRead:
    vehicle = await vehicle_service.get_by_id(db, vehicle_id)
    return VehicleRead.model_validate(vehicle)


@router.post("/", name="veicolo_crea", response_model=VehicleRead, status_code=status.HTTP_201_CREATED)
async def register_vehicle(
    data: VehicleCreate,
    actor: Actor,
    db: AsyncSession = Depends(get_db),
) -> VehicleRead:
    vehicle = await vehicle_service.create(db, data, actor=actor)
    await db.commit()
    return VehicleRead.model_validate(vehicle)


@router.put("/{vehicle_id}", name="veicolo_aggiorna", response_model=VehicleRead)
async def update_vehicle(
    vehicle_id: uuid.UUID,
    data: VehicleUpdate,
    actor: Actor,
    db: AsyncSession = Depends(get_db),
) -> VehicleRead:
    """Passaggio di proprietà, correzione targa o nuovo chilometraggio (mai inferiore)."""
    vehicle = await vehicle_service.update(db, vehicle_id, data, actor=actor)
    await db.commit()
    return VehicleRead.model_validate(vehicle)


@router.delete("/{vehicle_id}", name="veicolo_elimina", status_code=status.HTTP_204_NO_CONTENT)
async def deactivate_vehicle(
    vehicle_id: uuid.UUID,
    actor: Actor,
    db: AsyncSession = Depends(get_db),
) -> None:
    """Soft delete; rifiutato finché il veicolo ha ordini di servizio aperti."""
    await vehicle_service.delete(db, vehicle_id, actor=actor)
    await db.commit()
