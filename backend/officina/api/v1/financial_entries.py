"""
Router FastAPI per la contabilità di base
Progetto: Officina Manager

NOTE: /period e /summary sono definiti PRIMA di /{entry_id}.
"""

import datetime
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from officina.core.database import get_db
from officina.core.deps import Actor
from officina.schemas.financial_entry import (
    EntryStatus,
    EntryType,
    FinancialEntryCancel,
    FinancialEntryCreate,
    FinancialEntryList,
    FinancialEntryRead,
    FinancialEntryUpdate,
    FinancialSummary,
    PaymentRegistration,
)
from officina.services.financial_service import financial_service

router = APIRouter(
    prefix="/financial-entries",
    tags=["Contabilità"],
)


@router.get("/", name="contabilita_lista", response_model=FinancialEntryList)
async def get_entries(
    entry_type: Optional[EntryType] = Query(None),
    status_filter: Optional[EntryStatus] = Query(None, alias="status"),
    date_from: Optional[datetime.date] = Query(None, description="Scadenza minima"),
    date_to: Optional[datetime.date] = Query(None, description="Scadenza massima"),
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
) -> FinancialEntryList:
    items, total = await financial_service.get_all(
        db,
        page=page,
        per_page=per_page,
        entry_type=entry_type,
        status=status_filter,
        date_from=date_from,
        date_to=date_to,
    )
    return FinancialEntryList(
        items=[FinancialEntryRead.model_validate(e) for e in items],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.get("/period", name="contabilita_periodo", response_model=list[FinancialEntryRead])
async def get_entries_by_period(
    date_from: datetime.date = Query(...),
    date_to: datetime.date = Query(...),
    entry_type: Optional[EntryType] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> list[FinancialEntryRead]:
    entries = await financial_service.get_by_period(db, date_from, date_to, entry_type)
    return [FinancialEntryRead.model_validate(e) for e in entries]


@router.get("/summary", name="contabilita_riepilogo", response_model=FinancialSummary)
async def get_summary(
    date_from: datetime.date = Query(...),
    date_to: datetime.date = Query(...),
    db: AsyncSession = Depends(get_db),
) -> FinancialSummary:
    """Entrate, uscite e saldo dei movimenti pagati nel periodo, per categoria."""
    return await financial_service.get_summary(db, date_from, date_to)


@router.get("/{entry_id}", name="contabilita_dettaglio", response_model=FinancialEntryRead)
async def get_entry(entry_id: uuid.UUID, db: AsyncSession = Depends(get_db)) -> FinancialEntryRead:
    entry = await financial_service.get_by_id(db, entry_id)
    return FinancialEntryRead.model_validate(entry)


@router.post(
    "/",
    name="contabilita_crea",
    response_model=FinancialEntryRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_entry(
    data: FinancialEntryCreate,
    actor: Actor,
    db: AsyncSession = Depends(get_db),
) -> FinancialEntryRead:
    entry = await financial_service.create(db, data, actor=actor)
    await db.commit()
    return FinancialEntryRead.model_validate(entry)


@router.put("/{entry_id}", name="contabilita_aggiorna", response_model=FinancialEntryRead)
async def update_entry(
    entry_id: uuid.UUID,
    data: FinancialEntryUpdate,
    actor: Actor,
    db: AsyncSession = Depends(get_db),
) -> FinancialEntryRead:
    """Solo movimenti non ancora pagati né annullati."""
    entry = await financial_service.update(db, entry_id, data, actor=actor)
    await db.commit()
    return FinancialEntryRead.model_validate(entry)


@router.post("/{entry_id}/payment", name="contabilita_pagamento", response_model=FinancialEntryRead)
async def register_payment(
    entry_id: uuid.UUID,
    data: PaymentRegistration,
    actor: Actor,
    db: AsyncSession = Depends(get_db),
) -> FinancialEntryRead:
    entry = await financial_service.register_payment(db, entry_id, data, actor=actor)
    await db.commit()
    return FinancialEntryRead.model_validate(entry)


@router.post("/{entry_id}/cancel", name="contabilita_annulla", response_model=FinancialEntryRead)
async def cancel_entry(
    entry_id: uuid.UUID,
    data: FinancialEntryCancel,
    actor: Actor,
    db: AsyncSession = Depends(get_db),
) -> FinancialEntryRead:
    entry = await financial_service.cancel(db, entry_id, data.reason, actor=actor)
    await db.commit()
    return FinancialEntryRead.model_validate(entry)
