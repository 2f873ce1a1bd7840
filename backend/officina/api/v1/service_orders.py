"""
Router FastAPI per gli Ordini di Servizio
Progetto: Officina Manager

Definisce gli endpoint API per ordini di servizio, transizioni
di stato e gestione delle righe servizio e prodotto.

Ogni endpoint di scrittura esegue un solo commit dopo il service:
scarico di magazzino e riga d'ordine sono confermati insieme.
"""

import datetime
import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from officina.core.database import get_db
from officina.core.deps import Actor
from officina.schemas.product import StockMovementRead
from officina.schemas.service_order import (
    ProductLineCreate,
    ServiceLineCreate,
    ServiceLineUpdate,
    ServiceOrderCreate,
    ServiceOrderList,
    ServiceOrderRead,
    ServiceOrderStatus,
    ServiceOrderStatusUpdate,
    ServiceOrderUpdate,
)
from officina.services.service_order_service import service_order_service

# Logger per questo modulo
logger = logging.getLogger(__name__)

# Router con prefix e tag
router = APIRouter(
    prefix="/service-orders",
    tags=["Ordini di Servizio"],
)


# -------------------------------------------------------------------
# Letture
# -------------------------------------------------------------------

# /client/{id} e /vehicle/{id} sono definiti PRIMA di /{order_id}

@router.get(
    "/",
    name="ordini_lista",
    summary="Lista ordini di servizio",
    response_model=ServiceOrderList,
    status_code=status.HTTP_200_OK,
)
async def get_service_orders(
    page: int = Query(1, ge=1, description="Numero pagina"),
    per_page: int = Query(20, ge=1, le=100, description="Elementi per pagina"),
    status_filter: Optional[ServiceOrderStatus] = Query(None, alias="status", description="Filtro per stato"),
    client_id: Optional[uuid.UUID] = Query(None, description="Filtro per cliente"),
    vehicle_id: Optional[uuid.UUID] = Query(None, description="Filtro per veicolo"),
    date_from: Optional[datetime.date] = Query(None, description="Aperti dal"),
    date_to: Optional[datetime.date] = Query(None, description="Aperti fino al"),
    search: Optional[str] = Query(None, description="Ricerca per numero o targa"),
    db: AsyncSession = Depends(get_db),
) -> ServiceOrderList:
    orders, total = await service_order_service.get_all(
        db,
        page=page,
        per_page=per_page,
        status=status_filter,
        client_id=client_id,
        vehicle_id=vehicle_id,
        date_from=date_from,
        date_to=date_to,
        search=search,
    )

    return ServiceOrderList(
        items=[ServiceOrderRead.model_validate(o) for o in orders],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.get(
    "/client/{client_id}",
    name="ordini_cliente",
    summary="Storico ordini di un cliente",
    response_model=list[ServiceOrderRead],
)
async def get_client_orders(client_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    orders = await service_order_service.get_history(db, client_id=client_id)
    return [ServiceOrderRead.model_validate(o) for o in orders]


@router.get(
    "/vehicle/{vehicle_id}",
    name="ordini_veicolo",
    summary="Storico ordini di un veicolo",
    response_model=list[ServiceOrderRead],
)
async def get_vehicle_orders(vehicle_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    orders = await service_order_service.get_history(db, vehicle_id=vehicle_id)
    return [ServiceOrderRead.model_validate(o) for o in orders]


@router.get(
    "/{order_id}",
    name="ordine_dettaglio",
    summary="Dettaglio ordine di servizio",
    response_model=ServiceOrderRead,
    status_code=status.HTTP_200_OK,
)
async def get_service_order(
    order_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
) -> ServiceOrderRead:
    """
    Raises:
        NotFoundError: Se l'ordine non esiste
    """
    order = await service_order_service.get_by_id(db, order_id)
    return ServiceOrderRead.model_validate(order)


@router.get(
    "/{order_id}/movements",
    name="ordine_movimenti",
    summary="Movimenti di magazzino dell'ordine",
    response_model=list[StockMovementRead],
)
async def get_service_order_movements(order_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    movements = await service_order_service.get_stock_movements(db, order_id)
    return [StockMovementRead.model_validate(m) for m in movements]


# -------------------------------------------------------------------
# Scritture sull'ordine
# -------------------------------------------------------------------

@router.post(
    "/",
    name="ordine_crea",
    summary="Apri ordine di servizio",
    response_model=ServiceOrderRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_service_order(
    data: ServiceOrderCreate,
    actor: Actor,
    db: AsyncSession = Depends(get_db),
) -> ServiceOrderRead:
    """
    Apre un ordine in stato open con numero progressivo.

    Raises:
        NotFoundError: Cliente o veicolo inesistenti
        BusinessValidationError: Veicolo di un altro cliente
    """
    order = await service_order_service.create(db, data, actor=actor)
    await db.commit()
    return ServiceOrderRead.model_validate(order)


@router.put(
    "/{order_id}",
    name="ordine_aggiorna",
    summary="Aggiorna ordine di servizio",
    description="Aggiorna i campi dell'ordine. Lo stato si modifica con PATCH /{order_id}/status.",
    response_model=ServiceOrderRead,
    status_code=status.HTTP_200_OK,
)
async def update_service_order(
    order_id: uuid.UUID,
    data: ServiceOrderUpdate,
    actor: Actor,
    db: AsyncSession = Depends(get_db),
) -> ServiceOrderRead:
    order = await service_order_service.update(db, order_id, data, actor=actor)
    await db.commit()
    return ServiceOrderRead.model_validate(order)


@router.patch(
    "/{order_id}/status",
    name="ordine_stato",
    summary="Cambia stato",
    description="Transizione di stato validata; l'annullamento restituisce i prodotti a magazzino.",
    response_model=ServiceOrderRead,
    status_code=status.HTTP_200_OK,
)
async def change_service_order_status(
    order_id: uuid.UUID,
    data: ServiceOrderStatusUpdate,
    actor: Actor,
    db: AsyncSession = Depends(get_db),
) -> ServiceOrderRead:
    """
    Raises:
        InvalidStateTransitionError: Transizione non consentita
    """
    order = await service_order_service.change_status(db, order_id, data.status, actor=actor)
    await db.commit()
    return ServiceOrderRead.model_validate(order)


# -------------------------------------------------------------------
# Righe servizio
# -------------------------------------------------------------------

@router.post(
    "/{order_id}/services",
    name="ordine_aggiungi_servizio",
    summary="Aggiungi servizio",
    response_model=ServiceOrderRead,
    status_code=status.HTTP_201_CREATED,
)
async def add_service_line(
    order_id: uuid.UUID,
    data: ServiceLineCreate,
    actor: Actor,
    db: AsyncSession = Depends(get_db),
) -> ServiceOrderRead:
    order = await service_order_service.add_service_line(db, order_id, data, actor=actor)
    await db.commit()
    return ServiceOrderRead.model_validate(order)


@router.patch(
    "/{order_id}/services/{line_id}",
    name="ordine_aggiorna_servizio",
    summary="Aggiorna avanzamento servizio",
    response_model=ServiceOrderRead,
    status_code=status.HTTP_200_OK,
)
async def update_service_line(
    order_id: uuid.UUID,
    line_id: uuid.UUID,
    data: ServiceLineUpdate,
    actor: Actor,
    db: AsyncSession = Depends(get_db),
) -> ServiceOrderRead:
    order = await service_order_service.update_service_line(db, order_id, line_id, data, actor=actor)
    await db.commit()
    return ServiceOrderRead.model_validate(order)


@router.delete(
    "/{order_id}/services/{line_id}",
    name="ordine_rimuovi_servizio",
    summary="Rimuovi servizio",
    response_model=ServiceOrderRead,
    status_code=status.HTTP_200_OK,
)
async def remove_service_line(
    order_id: uuid.UUID,
    line_id: uuid.UUID,
    actor: Actor,
    db: AsyncSession = Depends(get_db),
) -> ServiceOrderRead:
    order = await service_order_service.remove_service_line(db, order_id, line_id, actor=actor)
    await db.commit()
    return ServiceOrderRead.model_validate(order)


# -------------------------------------------------------------------
# Righe prodotto
# -------------------------------------------------------------------

@router.post(
    "/{order_id}/products",
    name="ordine_aggiungi_prodotto",
    summary="Aggiungi prodotto",
    description="Scarica il prodotto dal magazzino e lo aggiunge all'ordine.",
    response_model=ServiceOrderRead,
    status_code=status.HTTP_201_CREATED,
)
async def add_product_line(
    order_id: uuid.UUID,
    data: ProductLineCreate,
    actor: Actor,
    db: AsyncSession = Depends(get_db),
) -> ServiceOrderRead:
    """
    Raises:
        InsufficientStockError: Giacenza insufficiente (ordine e magazzino invariati)
    """
    order = await service_order_service.add_product_line(db, order_id, data, actor=actor)
    await db.commit()
    return ServiceOrderRead.model_validate(order)


@router.delete(
    "/{order_id}/products/{line_id}",
    name="ordine_rimuovi_prodotto",
    summary="Rimuovi prodotto",
    description="Rimuove la riga e restituisce la quantità a magazzino.",
    response_model=ServiceOrderRead,
    status_code=status.HTTP_200_OK,
)
async def remove_product_line(
    order_id: uuid.UUID,
    line_id: uuid.UUID,
    actor: Actor,
    db: AsyncSession = Depends(get_db),
) -> ServiceOrderRead:
    order = await service_order_service.remove_product_line(db, order_id, line_id, actor=actor)
    await db.commit()
    return ServiceOrderRead.model_validate(order)
