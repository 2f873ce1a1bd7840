"""
Router FastAPI per Prodotti e Magazzino
Progetto: Officina Manager

Definisce gli endpoint per l'anagrafica prodotti, i movimenti
di magazzino e gli alert di scorta minima.

NOTE: L'ordine delle route è intenzionale per evitare conflitti con FastAPI:
1. GET /low-stock (prima di /{product_id})
2. GET / (lista paginata)
3. GET /{product_id} (dettaglio singolo)
4. POST / (creazione con eventuale giacenza iniziale)
5. PUT /{product_id} (aggiornamento anagrafica)
6. DELETE /{product_id} (disattivazione)
7. POST /{product_id}/stock (movimento manuale)
8. GET /{product_id}/movements (storico movimenti)
"""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from officina.core.database import get_db
from officina.core.deps import Actor
from officina.schemas.product import (
    LowStockAlert,
    MovementDirection,
    ProductCreate,
    ProductList,
    ProductRead,
    ProductUpdate,
    StockMovementCreate,
    StockMovementList,
    StockMovementRead,
)
from officina.services.product_service import product_service

# Logger per questo modulo
logger = logging.getLogger(__name__)

# Router con prefix e tag
router = APIRouter(
    prefix="/products",
    tags=["Prodotti e Magazzino"],
)


# ------------------------------------------------------------
# Endpoint: Alert Scorte Basse
# ------------------------------------------------------------

@router.get(
    "/low-stock",
    name="low_stock_alerts",
    summary="Alert scorte basse",
    description="Prodotti attivi con giacenza pari o inferiore al livello minimo.",
    response_model=list[LowStockAlert],
    status_code=status.HTTP_200_OK,
)
async def get_low_stock_alerts(
    db: AsyncSession = Depends(get_db),
) -> list[LowStockAlert]:
    products = await product_service.get_low_stock(db)
    return [LowStockAlert.model_validate(p) for p in products]


# ------------------------------------------------------------
# Endpoint: CRUD Prodotti
# ------------------------------------------------------------

@router.get(
    "/",
    name="products_list",
    summary="Lista prodotti",
    response_model=ProductList,
    status_code=status.HTTP_200_OK,
)
async def get_products(
    page: int = Query(1, ge=1, description="Numero pagina"),
    per_page: int = Query(20, ge=1, le=100, description="Elementi per pagina"),
    search: Optional[str] = Query(None, description="Ricerca su codice, nome, barcode"),
    category: Optional[str] = Query(None, description="Filtro per categoria"),
    include_inactive: bool = Query(False, description="Includi prodotti disattivati"),
    db: AsyncSession = Depends(get_db),
) -> ProductList:
    products, total = await product_service.get_all(
        db,
        page=page,
        per_page=per_page,
        search=search,
        category=category,
        include_inactive=include_inactive,
    )

    return ProductList(
        items=[ProductRead.model_validate(p) for p in products],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.get(
    "/{product_id}",
    name="product_detail",
    summary="Dettaglio prodotto",
    response_model=ProductRead,
    status_code=status.HTTP_200_OK,
)
async def get_product(
    product_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
) -> ProductRead:
    product = await product_service.get_by_id(db, product_id)
    return ProductRead.model_validate(product)


@router.post(
    "/",
    name="product_create",
    summary="Crea prodotto",
    description="Crea un prodotto; la giacenza iniziale viene caricata con un movimento.",
    response_model=ProductRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_product(
    data: ProductCreate,
    actor: Actor,
    db: AsyncSession = Depends(get_db),
) -> ProductRead:
    product = await product_service.create(db, data, actor=actor)
    await db.commit()
    return ProductRead.model_validate(product)


@router.put(
    "/{product_id}",
    name="product_update",
    summary="Aggiorna prodotto",
    description="Aggiorna l'anagrafica; la giacenza si modifica solo con i movimenti.",
    response_model=ProductRead,
    status_code=status.HTTP_200_OK,
)
async def update_product(
    product_id: uuid.UUID,
    data: ProductUpdate,
    actor: Actor,
    db: AsyncSession = Depends(get_db),
) -> ProductRead:
    product = await product_service.update(db, product_id, data, actor=actor)
    await db.commit()
    return ProductRead.model_validate(product)


@router.delete(
    "/{product_id}",
    name="product_delete",
    summary="Disattiva prodotto",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_product(
    product_id: uuid.UUID,
    actor: Actor,
    db: AsyncSession = Depends(get_db),
) -> None:
    await product_service.deactivate(db, product_id, actor=actor)
    await db.commit()


# ------------------------------------------------------------
# Endpoint: Movimenti
# ------------------------------------------------------------

@router.post(
    "/{product_id}/stock",
    name="stock_movement_create",
    summary="Movimento di magazzino",
    description="Registra un carico, uno scarico o una rettifica di giacenza.",
    response_model=StockMovementRead,
    status_code=status.HTTP_201_CREATED,
)
async def add_stock_movement(
    product_id: uuid.UUID,
    data: StockMovementCreate,
    actor: Actor,
    db: AsyncSession = Depends(get_db),
) -> StockMovementRead:
    """
    - in: aumenta la giacenza
    - out: diminuisce la giacenza (verifica disponibilità)
    - adjustment: imposta la giacenza al valore indicato
    """
    movement = await product_service.register_movement(db, product_id, data, actor=actor)
    await db.commit()
    return StockMovementRead.model_validate(movement)


@router.get(
    "/{product_id}/movements",
    name="movements_list",
    summary="Storico movimenti",
    response_model=StockMovementList,
    status_code=status.HTTP_200_OK,
)
async def get_movements(
    product_id: uuid.UUID,
    page: int = Query(1, ge=1, description="Numero pagina"),
    per_page: int = Query(20, ge=1, le=100, description="Elementi per pagina"),
    direction: Optional[MovementDirection] = Query(None, description="Filtro per tipo"),
    db: AsyncSession = Depends(get_db),
) -> StockMovementList:
    movements, total = await product_service.get_movements(
        db,
        product_id,
        direction=direction,
        page=page,
        per_page=per_page,
    )

    return StockMovementList(
        items=[StockMovementRead.model_validate(m) for m in movements],
        total=total,
        page=page,
        per_page=per_page,
    )
