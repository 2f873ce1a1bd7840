"""
Service Layer per gli Ordini di Servizio
Progetto: Officina Manager

Definisce la logica di business per gli ordini di servizio:
apertura con numerazione progressiva, transizioni di stato,
righe servizio e righe prodotto con scarico/reso di magazzino.

Nessun metodo esegue commit: il router conferma la transazione una
sola volta, quindi scarico di magazzino e riga d'ordine vengono
persistiti insieme oppure per nulla.
"""

import datetime
import logging
import uuid
from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from officina.core.config import settings
from officina.core.exceptions import (
    BusinessValidationError,
    InsufficientStockError,
    InvalidStateTransitionError,
    NotFoundError,
)
from officina.models import ProductLine, ServiceLine, ServiceOrder, StockMovement, Vehicle
from officina.models.service_order import ZERO
from officina.schemas.audit_log import RequestActor
from officina.schemas.product import MovementDirection
from officina.schemas.service_order import (
    ProductLineCreate,
    ServiceLineCreate,
    ServiceLineUpdate,
    ServiceOrderCreate,
    ServiceOrderStatus,
    ServiceOrderUpdate,
)
from officina.services.audit_service import audit_service
from officina.services.catalog_service import catalog_service
from officina.services.client_service import client_service
from officina.services.counter_service import counter_service, format_order_number
from officina.services.product_service import product_service
from officina.services.technician_service import technician_service
from officina.services.vehicle_service import vehicle_service

# Logger per questo modulo
logger = logging.getLogger(__name__)

DOCUMENT_TYPE = "service_order"


class ServiceOrderService:
    """
    Service per la gestione degli ordini di servizio.

    Le regole su totali, righe e stati vivono nel modello ServiceOrder;
    questo service carica le entità, coordina il magazzino e registra l'audit.
    """

    # ------------------------------------------------------------
    # Letture
    # ------------------------------------------------------------

    async def get_all(
        self,
        db: AsyncSession,
        page: int = 1,
        per_page: int = 20,
        status: Optional[ServiceOrderStatus] = None,
        client_id: Optional[uuid.UUID] = None,
        vehicle_id: Optional[uuid.UUID] = None,
        date_from: Optional[datetime.date] = None,
        date_to: Optional[datetime.date] = None,
        search: Optional[str] = None,
    ) -> tuple[list[ServiceOrder], int]:
        """
        Recupera la lista paginata degli ordini, dal più recente.

        Args:
            status: Filtro per stato
            client_id: Filtro per cliente
            vehicle_id: Filtro per veicolo
            date_from: Data di apertura minima (inclusa)
            date_to: Data di apertura massima (inclusa)
            search: Ricerca per numero ordine o targa

        Returns:
            Tuple di (lista ordini, totale count)
        """
        conditions = []
        if status:
            conditions.append(ServiceOrder.status == status.value)
        if client_id:
            conditions.append(ServiceOrder.client_id == client_id)
        if vehicle_id:
            conditions.append(ServiceOrder.vehicle_id == vehicle_id)
        if date_from:
            conditions.append(func.date(ServiceOrder.created_at) >= date_from)
        if date_to:
            conditions.append(func.date(ServiceOrder.created_at) <= date_to)
        if search:
            term = f"%{search}%"
            conditions.append(
                or_(
                    ServiceOrder.number.ilike(term),
                    ServiceOrder.vehicle_id.in_(
                        select(Vehicle.id).where(Vehicle.plate.ilike(term))
                    ),
                )
            )

        query = select(ServiceOrder).order_by(ServiceOrder.created_at.desc())
        count_query = select(func.count()).select_from(ServiceOrder)
        if conditions:
            query = query.where(*conditions)
            count_query = count_query.where(*conditions)

        result = await db.execute(query.offset((page - 1) * per_page).limit(per_page))
        orders = list(result.scalars().all())
        total = (await db.execute(count_query)).scalar() or 0

        logger.debug("Recuperati %s ordini di servizio su %s totali", len(orders), total)
        return orders, total

    async def get_by_id(
        self,
        db: AsyncSession,
        order_id: uuid.UUID,
        for_update: bool = False,
    ) -> ServiceOrder:
        """
        Recupera un ordine di servizio con le sue righe.

        Args:
            for_update: Se True blocca la riga dell'ordine fino al commit

        Raises:
            NotFoundError: Se l'ordine non esiste
        """
        query = select(ServiceOrder).where(ServiceOrder.id == order_id)
        if for_update:
            query = query.with_for_update(of=ServiceOrder)

        result = await db.execute(query)
        order = result.scalar_one_or_none()

        if order is None:
            logger.warning("Ordine di servizio non trovato: %s", order_id)
            raise NotFoundError(f"Ordine di servizio con ID {order_id} non trovato")

        return order

    async def get_history(
        self,
        db: AsyncSession,
        client_id: Optional[uuid.UUID] = None,
        vehicle_id: Optional[uuid.UUID] = None,
    ) -> list[ServiceOrder]:
        """Storico ordini di un cliente o di un veicolo, dal più recente."""
        query = select(ServiceOrder).order_by(ServiceOrder.created_at.desc())
        if client_id:
            query = query.where(ServiceOrder.client_id == client_id)
        if vehicle_id:
            query = query.where(ServiceOrder.vehicle_id == vehicle_id)

        result = await db.execute(query)
        return list(result.scalars().all())

    # ------------------------------------------------------------
    # Ordine
    # ------------------------------------------------------------

    def _guard(self, order: ServiceOrder) -> None:
        try:
            order.ensure_editable()
        except InvalidStateTransitionError:
            logger.warning("Modifica rifiutata: ordine %s in stato %s", order.number, order.status)
            raise

    async def create(
        self,
        db: AsyncSession,
        data: ServiceOrderCreate,
        actor: Optional[RequestActor] = None,
    ) -> ServiceOrder:
        """
        Apre un nuovo ordine di servizio in stato open, senza righe.

        Il numero è assegnato dal contatore globale. Senza km rilevato
        vale quello del veicolo; se superiore, il veicolo viene aggiornato.
        Lo sconto parte da zero e si imposta con update.

        Raises:
            NotFoundError: Cliente, veicolo o tecnico inesistenti
            BusinessValidationError: Veicolo di un altro cliente
        """
        await client_service.get_by_id(db, data.client_id)
        vehicle = await vehicle_service.get_for_client(db, data.vehicle_id, data.client_id)
        if data.technician_id:
            await technician_service.get_by_id(db, data.technician_id)

        km = data.km if data.km is not None else vehicle.current_km

        value = await counter_service.next_value(db, settings.service_order_counter)
        number = format_order_number(value, datetime.date.today())

        order = ServiceOrder(
            number=number,
            client_id=data.client_id,
            vehicle_id=vehicle.id,
            technician_id=data.technician_id,
            status=ServiceOrderStatus.OPEN.value,
            km=km,
            diagnosis=data.diagnosis,
            customer_notes=data.customer_notes,
            internal_notes=data.internal_notes,
            expected_delivery=data.expected_delivery,
            payment_method=data.payment_method.value if data.payment_method else None,
            installments=data.installments,
        )
        order.set_discount(ZERO)

        if vehicle.register_km(km):
            logger.info("Aggiornato chilometraggio veicolo %s a %s", vehicle.plate, km)

        db.add(order)
        await db.flush()
        await db.refresh(order)

        audit_service.record(
            db, actor, "create", "service_order", order.id,
            {"number": order.number, "vehicle_id": vehicle.id},
        )
        logger.info("Creato ordine di servizio %s per veicolo %s", order.number, vehicle.plate)
        return order

    async def update(
        self,
        db: AsyncSession,
        order_id: uuid.UUID,
        data: ServiceOrderUpdate,
        actor: Optional[RequestActor] = None,
    ) -> ServiceOrder:
        """
        Aggiorna i campi di un ordine modificabile.

        Una variazione dello sconto ricalcola il totale.

        Raises:
            InvalidStateTransitionError: Ordine completato, consegnato o annullato
            BusinessValidationError: Sconto superiore al totale
        """
        order = await self.get_by_id(db, order_id, for_update=True)
        self._guard(order)

        update_data = data.model_dump(exclude_unset=True)

        if update_data.get("technician_id"):
            await technician_service.get_by_id(db, update_data["technician_id"])

        if "discount" in update_data:
            order.set_discount(update_data.pop("discount"))

        if update_data.get("km") is not None:
            vehicle = await vehicle_service.get_by_id(db, order.vehicle_id)
            vehicle.register_km(update_data["km"])

        if update_data.get("payment_method") is not None:
            update_data["payment_method"] = update_data["payment_method"].value

        for field, value in update_data.items():
            setattr(order, field, value)

        await db.flush()
        await db.refresh(order)

        audit_service.record(
            db, actor, "update", "service_order", order.id,
            data.model_dump(exclude_unset=True),
        )
        logger.info("Aggiornato ordine di servizio %s", order.number)
        return order

    async def change_status(
        self,
        db: AsyncSession,
        order_id: uuid.UUID,
        new_status: ServiceOrderStatus,
        actor: Optional[RequestActor] = None,
    ) -> ServiceOrder:
        """
        Cambia lo stato dell'ordine secondo la matrice delle transizioni.

        L'annullamento restituisce a magazzino la quantità di ogni riga
        prodotto con un movimento di carico.

        Raises:
            InvalidStateTransitionError: Transizione non consentita
        """
        order = await self.get_by_id(db, order_id, for_update=True)

        try:
            previous = order.change_status(new_status)
        except InvalidStateTransitionError:
            logger.warning(
                "Transizione rifiutata per ordine %s: %s -> %s",
                order.number, order.status, new_status.value,
            )
            raise

        if new_status == ServiceOrderStatus.CANCELED:
            for line in order.product_lines:
                product = await product_service.get_by_id(db, line.product_id, for_update=True)
                product_service.apply_movement(
                    db,
                    product,
                    MovementDirection.IN,
                    line.quantity,
                    f"Reso dall'OS {order.number} (annullato)",
                    document_type=DOCUMENT_TYPE,
                    document_id=order.id,
                    actor=actor,
                )

        await db.flush()
        await db.refresh(order)

        audit_service.record(
            db, actor, "status_change", "service_order", order.id,
            {"from": previous.value, "to": new_status.value},
        )
        logger.info("Ordine %s: %s -> %s", order.number, previous.value, new_status.value)
        return order

    # ------------------------------------------------------------
    # Righe servizio
    # ------------------------------------------------------------

    async def add_service_line(
        self,
        db: AsyncSession,
        order_id: uuid.UUID,
        data: ServiceLineCreate,
        actor: Optional[RequestActor] = None,
    ) -> ServiceOrder:
        """
        Aggiunge un servizio a catalogo all'ordine.

        Descrizione e prezzo, se non indicati, sono quelli di listino.

        Raises:
            InvalidStateTransitionError: Ordine non modificabile
            NotFoundError: Servizio o tecnico inesistenti
        """
        order = await self.get_by_id(db, order_id, for_update=True)
        self._guard(order)

        service = await catalog_service.get_by_id(db, data.service_id)
        if data.technician_id:
            await technician_service.get_by_id(db, data.technician_id)

        line = ServiceLine(
            service_id=service.id,
            description=data.description if data.description is not None else service.name,
            price=data.price if data.price is not None else service.price,
            technician_id=data.technician_id,
        )
        order.add_service_line(line)

        await db.flush()
        await db.refresh(order)

        audit_service.record(
            db, actor, "add_service_line", "service_order", order.id,
            {"line_id": line.id, "service_id": service.id, "price": line.price},
        )
        logger.info("Ordine %s: aggiunto servizio %s (%s)", order.number, service.code, line.price)
        return order

    async def update_service_line(
        self,
        db: AsyncSession,
        order_id: uuid.UUID,
        line_id: uuid.UUID,
        data: ServiceLineUpdate,
        actor: Optional[RequestActor] = None,
    ) -> ServiceOrder:
        """
        Aggiorna avanzamento, meccanico o tempo impiegato di una riga servizio.

        Raises:
            InvalidStateTransitionError: Ordine non modificabile
            NotFoundError: Riga non presente nell'ordine
        """
        order = await self.get_by_id(db, order_id, for_update=True)
        self._guard(order)
        line = order.find_service_line(line_id)

        update_data = data.model_dump(exclude_unset=True)
        if update_data.get("technician_id"):
            await technician_service.get_by_id(db, update_data["technician_id"])
        if update_data.get("status") is not None:
            update_data["status"] = update_data["status"].value

        for field, value in update_data.items():
            setattr(line, field, value)

        await db.flush()
        await db.refresh(order)

        audit_service.record(
            db, actor, "update_service_line", "service_order", order.id,
            {"line_id": line_id, **update_data},
        )
        logger.info("Ordine %s: aggiornata riga servizio %s", order.number, line_id)
        return order

    async def remove_service_line(
        self,
        db: AsyncSession,
        order_id: uuid.UUID,
        line_id: uuid.UUID,
        actor: Optional[RequestActor] = None,
    ) -> ServiceOrder:
        """
        Raises:
            InvalidStateTransitionError: Ordine non modificabile
            NotFoundError: Riga non presente nell'ordine
            BusinessValidationError: Lo sconto supererebbe il nuovo totale
        """
        order = await self.get_by_id(db, order_id, for_update=True)
        self._guard(order)

        try:
            line = order.remove_service_line(line_id)
        except (NotFoundError, BusinessValidationError) as exc:
            logger.warning("Rimozione riga servizio %s rifiutata: %s", line_id, exc.detail)
            raise

        await db.flush()
        await db.refresh(order)

        audit_service.record(
            db, actor, "remove_service_line", "service_order", order.id,
            {"line_id": line_id, "service_id": line.service_id, "price": line.price},
        )
        logger.info("Ordine %s: rimossa riga servizio %s", order.number, line_id)
        return order

    # ------------------------------------------------------------
    # Righe prodotto
    # ------------------------------------------------------------

    async def add_product_line(
        self,
        db: AsyncSession,
        order_id: uuid.UUID,
        data: ProductLineCreate,
        actor: Optional[RequestActor] = None,
    ) -> ServiceOrder:
        """
        Aggiunge un prodotto all'ordine scaricandolo dal magazzino.

        Scarico e riga vengono registrati nella stessa transazione:
        se la giacenza non basta, né l'ordine né il prodotto cambiano.

        Raises:
            InvalidStateTransitionError: Ordine non modificabile
            NotFoundError: Prodotto inesistente
            BusinessValidationError: Prodotto disattivato
            InsufficientStockError: Giacenza insufficiente
        """
        order = await self.get_by_id(db, order_id, for_update=True)
        self._guard(order)

        product = await product_service.get_by_id(db, data.product_id, for_update=True)
        if not product.is_active:
            logger.warning("Prodotto disattivato %s non utilizzabile nell'ordine %s", product.code, order.number)
            raise BusinessValidationError(f"Il prodotto {product.code} non è attivo")

        # Verifica prima di toccare giacenza o righe
        try:
            product.ensure_available(data.quantity)
        except InsufficientStockError:
            logger.warning(
                "Giacenza insufficiente per %s nell'ordine %s: disponibili %s, richiesti %s",
                product.code, order.number, product.stock_quantity, data.quantity,
            )
            raise

        line = ProductLine(
            product_id=product.id,
            description=product.name,
            quantity=data.quantity,
            unit_price=data.unit_price if data.unit_price is not None else product.sale_price,
        )
        order.add_product_line(line)

        product_service.apply_movement(
            db,
            product,
            MovementDirection.OUT,
            data.quantity,
            f"Utilizzato nell'OS {order.number}",
            document_type=DOCUMENT_TYPE,
            document_id=order.id,
            actor=actor,
        )

        await db.flush()
        await db.refresh(order)

        audit_service.record(
            db, actor, "add_product_line", "service_order", order.id,
            {"line_id": line.id, "product_id": product.id, "quantity": data.quantity},
        )
        logger.info(
            "Ordine %s: aggiunto prodotto %s x%s (giacenza residua %s)",
            order.number, product.code, data.quantity, product.stock_quantity,
        )
        return order

    async def remove_product_line(
        self,
        db: AsyncSession,
        order_id: uuid.UUID,
        line_id: uuid.UUID,
        actor: Optional[RequestActor] = None,
    ) -> ServiceOrder:
        """
        Rimuove una riga prodotto e restituisce la quantità a magazzino.

        Raises:
            InvalidStateTransitionError: Ordine non modificabile
            NotFoundError: Riga non presente nell'ordine
        """
        order = await self.get_by_id(db, order_id, for_update=True)
        self._guard(order)

        try:
            line = order.remove_product_line(line_id)
        except (NotFoundError, BusinessValidationError) as exc:
            logger.warning("Rimozione riga prodotto %s rifiutata: %s", line_id, exc.detail)
            raise

        product = await product_service.get_by_id(db, line.product_id, for_update=True)
        product_service.apply_movement(
            db,
            product,
            MovementDirection.IN,
            line.quantity,
            f"Reso dall'OS {order.number}",
            document_type=DOCUMENT_TYPE,
            document_id=order.id,
            actor=actor,
        )

        await db.flush()
        await db.refresh(order)

        audit_service.record(
            db, actor, "remove_product_line", "service_order", order.id,
            {"line_id": line_id, "product_id": line.product_id, "quantity": line.quantity},
        )
        logger.info("Ordine %s: rimossa riga prodotto %s, reso x%s", order.number, line_id, line.quantity)
        return order

    async def get_stock_movements(
        self,
        db: AsyncSession,
        order_id: uuid.UUID,
    ) -> list[StockMovement]:
        """Movimenti di magazzino generati dall'ordine, in ordine cronologico."""
        await self.get_by_id(db, order_id)
        result = await db.execute(
            select(StockMovement)
            .where(
                StockMovement.document_type == DOCUMENT_TYPE,
                StockMovement.document_id == order_id,
            )
            .order_by(StockMovement.created_at.asc())
        )
        return list(result.scalars().all())


# Istanza singleton del service
service_order_service = ServiceOrderService()
