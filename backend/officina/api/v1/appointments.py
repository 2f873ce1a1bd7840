"""
Router FastAPI per l'agenda appuntamenti
Progetto: Officina Manager

NOTE: /availability, /client/{id} e /vehicle/{id} sono definiti
PRIMA di /{appointment_id}.
"""

import datetime
import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from officina.core.database import get_db
from officina.core.deps import Actor
from officina.schemas.appointment import (
    AppointmentCancel,
    AppointmentCreate,
    AppointmentList,
    AppointmentRead,
    AppointmentStatus,
    AppointmentUpdate,
    AvailabilityRead,
)
from officina.services.appointment_service import appointment_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/appointments",
    tags=["Agenda"],
)


@router.get(
    "/availability",
    name="agenda_disponibilita",
    summary="Slot disponibili",
    description="Orari di inizio prenotabili per il giorno e il servizio indicati.",
    response_model=AvailabilityRead,
)
async def get_availability(
    date: datetime.date = Query(..., description="Giorno richiesto"),
    service_id: Optional[uuid.UUID] = Query(None, description="Servizio di cui usare la durata"),
    db: AsyncSession = Depends(get_db),
) -> AvailabilityRead:
    duration, slots = await appointment_service.get_availability(db, date, service_id)
    return AvailabilityRead(
        date=date,
        service_id=service_id,
        duration_minutes=duration,
        slots=slots,
    )


@router.get("/", name="agenda_lista", summary="Lista appuntamenti", response_model=AppointmentList)
async def get_appointments(
    date: Optional[datetime.date] = Query(None, description="Filtro per giorno"),
    status_filter: Optional[AppointmentStatus] = Query(None, alias="status", description="Filtro per stato"),
    page: int = Query(1, ge=1, description="Numero pagina"),
    per_page: int = Query(50, ge=1, le=200, description="Elementi per pagina"),
    db: AsyncSession = Depends(get_db),
) -> AppointmentList:
    """Appuntamenti in ordine di inizio."""
    items, total = await appointment_service.get_all(
        db, page=page, per_page=per_page, day=date, status=status_filter
    )
    return AppointmentList(
        items=[AppointmentRead.model_validate(a) for a in items],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.get("/client/{client_id}", response_model=list[AppointmentRead])
async def get_client_appointments(client_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    """Storico appuntamenti del cliente, dal più recente."""
    items = await appointment_service.get_history(db, client_id=client_id)
    return [AppointmentRead.model_validate(a) for a in items]


@router.get("/vehicle/{vehicle_id}", response_model=list[AppointmentRead])
async def get_vehicle_appointments(vehicle_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    items = await appointment_service.get_history(db, vehicle_id=vehicle_id)
    return [AppointmentRead.model_validate(a) for a in items]


@router.get("/{appointment_id}", name="agenda_dettaglio", response_model=AppointmentRead)
async def get_appointment(appointment_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    appointment = await appointment_service.get_by_id(db, appointment_id)
    return AppointmentRead.model_validate(appointment)


@router.post(
    "/",
    name="agenda_crea",
    summary="Prenota appuntamento",
    response_model=AppointmentRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_appointment(
    data: AppointmentCreate,
    actor: Actor,
    db: AsyncSession = Depends(get_db),
) -> AppointmentRead:
    """
    Raises:
        ConflictError: Orario già occupato (conflitti in extra.conflicts)
    """
    appointment = await appointment_service.create(db, data, actor=actor)
    await db.commit()
    return AppointmentRead.model_validate(appointment)


@router.put("/{appointment_id}", name="agenda_aggiorna", response_model=AppointmentRead)
async def update_appointment(
    appointment_id: uuid.UUID,
    data: AppointmentUpdate,
    actor: Actor,
    db: AsyncSession = Depends(get_db),
) -> AppointmentRead:
    appointment = await appointment_service.update(db, appointment_id, data, actor=actor)
    await db.commit()
    return AppointmentRead.model_validate(appointment)


@router.post("/{appointment_id}/confirm", name="agenda_conferma", response_model=AppointmentRead)
async def confirm_appointment(
    appointment_id: uuid.UUID,
    actor: Actor,
    db: AsyncSession = Depends(get_db),
) -> AppointmentRead:
    appointment = await appointment_service.confirm(db, appointment_id, actor=actor)
    await db.commit()
    return AppointmentRead.model_validate(appointment)


@router.post("/{appointment_id}/cancel", name="agenda_annulla", response_model=AppointmentRead)
async def cancel_appointment(
    appointment_id: uuid.UUID,
    data: AppointmentCancel,
    actor: Actor,
    db: AsyncSession = Depends(get_db),
) -> AppointmentRead:
    appointment = await appointment_service.cancel(db, appointment_id, data.reason, actor=actor)
    await db.commit()
    return AppointmentRead.model_validate(appointment)


@router.post("/{appointment_id}/complete", name="agenda_completa", response_model=AppointmentRead)
async def complete_appointment(
    appointment_id: uuid.UUID,
    actor: Actor,
    db: AsyncSession = Depends(get_db),
) -> AppointmentRead:
    appointment = await appointment_service.complete(db, appointment_id, actor=actor)
    await db.commit()
    return AppointmentRead.model_validate(appointment)
