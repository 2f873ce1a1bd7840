"""
Servizi per la gestione dei Prodotti e del Magazzino
Progetto: Officina Manager

Contiene le funzioni di business logic per:
- CRUD prodotti (eliminazione = disattivazione)
- Movimenti di magazzino (unico punto di scrittura della giacenza)
- Alert scorte basse
"""

import logging
import uuid
from typing import Optional, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from officina.core.exceptions import (
    BusinessValidationError,
    DuplicateError,
    InsufficientStockError,
    NotFoundError,
)
from officina.models.product import Product, StockMovement
from officina.schemas.audit_log import RequestActor
from officina.schemas.product import (
    MovementDirection,
    ProductCreate,
    ProductUpdate,
    StockMovementCreate,
)
from officina.services.audit_service import audit_service

logger = logging.getLogger(__name__)

INITIAL_STOCK_REASON = "Giacenza iniziale"


class ProductService:
    """
    Service per la gestione dei prodotti e del magazzino.

    apply_movement è l'unico metodo che modifica stock_quantity:
    ogni variazione produce un StockMovement nella stessa transazione.
    """

    # ------------------------------------------------------------
    # CRUD Prodotti
    # ------------------------------------------------------------

    async def get_all(
        self,
        db: AsyncSession,
        page: int = 1,
        per_page: int = 20,
        search: Optional[str] = None,
        category: Optional[str] = None,
        include_inactive: bool = False,
    ) -> Tuple[list[Product], int]:
        """
        Recupera la lista paginata dei prodotti.

        Returns:
            Tuple di (lista prodotti, totale count)
        """
        conditions = []
        if not include_inactive:
            conditions.append(Product.is_active == True)
        if category:
            conditions.append(Product.category == category)
        if search:
            term = f"%{search}%"
            conditions.append(
                or_(
                    Product.code.ilike(term),
                    Product.name.ilike(term),
                    Product.barcode.ilike(term),
                )
            )

        query = select(Product).order_by(Product.name.asc())
        count_query = select(func.count()).select_from(Product)
        if conditions:
            query = query.where(*conditions)
            count_query = count_query.where(*conditions)

        result = await db.execute(query.offset((page - 1) * per_page).limit(per_page))
        items = list(result.scalars().all())
        total = (await db.execute(count_query)).scalar() or 0

        logger.debug("Recuperati %s prodotti su %s totali (pagina %s)", len(items), total, page)
        return items, total

    async def get_by_id(
        self,
        db: AsyncSession,
        product_id: uuid.UUID,
        for_update: bool = False,
    ) -> Product:
        """
        Recupera un prodotto tramite ID.

        Args:
            for_update: Se True blocca la riga (SELECT ... FOR UPDATE)
                        prima di una variazione di giacenza

        Raises:
            NotFoundError: Se il prodotto non esiste
        """
        query = select(Product).where(Product.id == product_id)
        if for_update:
            query = query.with_for_update(of=(Product,))

        result = await db.execute(query)
        product = result.scalar_one_or_none()

        if not product:
            logger.warning("Prodotto non trovato: %s", product_id)
            raise NotFoundError(f"Prodotto non trovato: {product_id}")

        return product

    async def _ensure_code_available(self, db: AsyncSession, code: str) -> None:
        existing = await db.execute(
            select(Product).where(func.upper(Product.code) == code.upper())
        )
        if existing.scalar_one_or_none():
            logger.warning("Codice prodotto duplicato: %s", code)
            raise DuplicateError(f"Codice prodotto già esistente: {code}")

    async def create(
        self,
        db: AsyncSession,
        data: ProductCreate,
        actor: Optional[RequestActor] = None,
    ) -> Product:
        """
        Crea un nuovo prodotto.

        La giacenza iniziale, se indicata, viene caricata con un
        movimento "in" (mai impostata direttamente).

        Raises:
            DuplicateError: Se il codice esiste già
        """
        await self._ensure_code_available(db, data.code)

        product = Product(
            code=data.code,
            name=data.name,
            description=data.description,
            category=data.category,
            unit_of_measure=data.unit_of_measure.value,
            cost_price=data.cost_price,
            sale_price=data.sale_price,
            stock_quantity=0,
            min_stock=data.min_stock,
            max_stock=data.max_stock,
            location=data.location,
            barcode=data.barcode,
            is_active=True,
        )
        db.add(product)
        await db.flush()

        if data.initial_stock > 0:
            self.apply_movement(
                db,
                product,
                MovementDirection.IN,
                data.initial_stock,
                INITIAL_STOCK_REASON,
                actor=actor,
            )
            await db.flush()

        await db.refresh(product)

        audit_service.record(
            db, actor, "create", "product", product.id,
            {"code": product.code, "initial_stock": data.initial_stock},
        )
        logger.info("Creato nuovo prodotto: %s (giacenza %s)", product.code, product.stock_quantity)
        return product

    async def update(
        self,
        db: AsyncSession,
        product_id: uuid.UUID,
        data: ProductUpdate,
        actor: Optional[RequestActor] = None,
    ) -> Product:
        """
        Aggiorna l'anagrafica di un prodotto. La giacenza non viene toccata.

        Raises:
            NotFoundError: Se il prodotto non esiste
            DuplicateError: Se il nuovo codice esiste già
        """
        product = await self.get_by_id(db, product_id)
        update_data = data.model_dump(exclude_unset=True, exclude_none=True)

        new_code = update_data.get("code")
        if new_code and new_code.upper() != product.code.upper():
            await self._ensure_code_available(db, new_code)

        if "unit_of_measure" in update_data:
            update_data["unit_of_measure"] = update_data["unit_of_measure"].value

        for field, value in update_data.items():
            setattr(product, field, value)

        await db.flush()
        await db.refresh(product)

        audit_service.record(db, actor, "update", "product", product.id, update_data)
        logger.info("Aggiornato prodotto: %s", product.code)
        return product

    async def deactivate(
        self,
        db: AsyncSession,
        product_id: uuid.UUID,
        actor: Optional[RequestActor] = None,
    ) -> Product:
        """
        Disattiva un prodotto (soft delete): lo storico movimenti resta intatto.
        """
        product = await self.get_by_id(db, product_id)
        product.is_active = False
        await db.flush()

        audit_service.record(db, actor, "deactivate", "product", product.id, {"code": product.code})
        logger.info("Disattivato prodotto: %s", product.code)
        return product

    # ------------------------------------------------------------
    # Movimenti Magazzino
    # ------------------------------------------------------------

    def apply_movement(
        self,
        db: AsyncSession,
        product: Product,
        direction: MovementDirection,
        quantity: int,
        reason: str,
        *,
        document_type: Optional[str] = None,
        document_id: Optional[uuid.UUID] = None,
        notes: Optional[str] = None,
        actor: Optional[RequestActor] = None,
    ) -> StockMovement:
        """
        Varia la giacenza di un prodotto e registra il movimento.

        Unico punto di scrittura di stock_quantity. Non esegue flush:
        giacenza e movimento vengono persistiti con il resto della
        unit of work del chiamante.

        Args:
            db: Sessione database
            product: Prodotto (già caricato, preferibilmente FOR UPDATE)
            direction: in, out, adjustment
            quantity: Quantità (per adjustment: nuova giacenza assoluta)
            reason: Causale del movimento
            document_type: Tipo documento collegato
            document_id: UUID documento collegato

        Returns:
            Il movimento creato

        Raises:
            InsufficientStockError: Scarico oltre la giacenza disponibile
            BusinessValidationError: Quantità non valida
        """
        before = product.stock_quantity or 0
        try:
            after = product.move_stock(direction, quantity)
        except (BusinessValidationError, InsufficientStockError) as exc:
            logger.warning(
                "Movimento %s rifiutato per prodotto %s (giacenza=%s, quantità=%s): %s",
                direction.value, product.code, before, quantity, exc.detail,
            )
            raise

        movement = StockMovement(
            product_id=product.id,
            direction=direction.value,
            quantity=abs(after - before),
            stock_after=after,
            reason=reason,
            document_type=document_type,
            document_id=document_id,
            actor_id=actor.actor_id if actor else None,
            notes=notes,
        )
        db.add(movement)

        logger.info(
            "Movimento %s per prodotto %s: %s -> %s (%s)",
            direction.value, product.code, before, after, reason,
        )
        return movement

    async def register_movement(
        self,
        db: AsyncSession,
        product_id: uuid.UUID,
        data: StockMovementCreate,
        actor: Optional[RequestActor] = None,
    ) -> StockMovement:
        """
        Movimento manuale di magazzino (carico, scarico, rettifica).

        Raises:
            NotFoundError: Se il prodotto non esiste
            InsufficientStockError: Scarico oltre la giacenza
        """
        product = await self.get_by_id(db, product_id, for_update=True)

        movement = self.apply_movement(
            db,
            product,
            data.direction,
            data.quantity,
            data.reason,
            notes=data.notes,
            actor=actor,
        )
        await db.flush()
        await db.refresh(movement)

        audit_service.record(
            db, actor, "stock_movement", "product", product.id,
            {
                "direction": data.direction.value,
                "quantity": data.quantity,
                "stock_after": movement.stock_after,
                "reason": data.reason,
            },
        )
        return movement

    async def get_movements(
        self,
        db: AsyncSession,
        product_id: uuid.UUID,
        direction: Optional[MovementDirection] = None,
        page: int = 1,
        per_page: int = 20,
    ) -> Tuple[list[StockMovement], int]:
        """
        Recupera lo storico movimenti per un prodotto, dal più recente.

        Raises:
            NotFoundError: Se il prodotto non esiste
        """
        await self.get_by_id(db, product_id)

        conditions = [StockMovement.product_id == product_id]
        if direction:
            conditions.append(StockMovement.direction == direction.value)

        query = (
            select(StockMovement)
            .where(*conditions)
            .order_by(StockMovement.created_at.desc())
            .offset((page - 1) * per_page)
            .limit(per_page)
        )
        result = await db.execute(query)
        items = list(result.scalars().all())

        count_query = select(func.count()).select_from(StockMovement).where(*conditions)
        total = (await db.execute(count_query)).scalar() or 0

        return items, total

    async def get_low_stock(self, db: AsyncSession) -> list[Product]:
        """
        Prodotti attivi con giacenza pari o inferiore al minimo,
        ordinati per deficit decrescente.
        """
        query = (
            select(Product)
            .where(Product.is_active == True)
            .where(Product.stock_quantity <= Product.min_stock)
            .order_by((Product.min_stock - Product.stock_quantity).desc())
        )
        result = await db.execute(query)
        items = list(result.scalars().all())

        logger.info("Trovati %s prodotti sotto il livello minimo", len(items))
        return items


# Istanza singleton del service
product_service = ProductService()
