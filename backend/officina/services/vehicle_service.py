"""
Service Layer per l'entità Vehicle
Progetto: Officina Manager

Definisce la logica di business per la gestione dei veicoli.
"""

import logging
import uuid
from typing import Optional

from sqlalchemy import func, select, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from officina.core.exceptions import BusinessValidationError, DuplicateError, NotFoundError
from officina.models import Client, ServiceOrder, Vehicle
from officina.schemas.audit_log import RequestActor
from officina.schemas.service_order import LOCKED_STATUSES
from officina.schemas.vehicle import VehicleCreate, VehicleUpdate
from officina.services.audit_service import audit_service

logger = logging.getLogger(__name__)


class VehicleService:
    """
    Service per la gestione delle operazioni CRUD sui veicoli.
    """

    async def get_all(
        self,
        db: AsyncSession,
        page: int = 1,
        per_page: int = 10,
        client_id: Optional[uuid.UUID] = None,
        search: Optional[str] = None,
    ) -> tuple[list[Vehicle], int]:
        """
        Recupera la lista paginata dei veicoli attivi.

        Args:
            client_id: Filtro opzionale per cliente
            search: Ricerca per targa, marca o modello

        Returns:
            Tuple di (lista veicoli, totale count)
        """
        conditions = [Vehicle.is_active == True]
        if client_id:
            conditions.append(Vehicle.client_id == client_id)
        if search:
            term = f"%{search}%"
            conditions.append(
                or_(
                    Vehicle.plate.ilike(term),
                    Vehicle.brand.ilike(term),
                    Vehicle.model.ilike(term),
                )
            )

        query = (
            select(Vehicle)
            .where(*conditions)
            .order_by(Vehicle.plate.asc())
            .offset((page - 1) * per_page)
            .limit(per_page)
        )
        result = await db.execute(query)
        vehicles = list(result.unique().scalars().all())

        count_query = select(func.count()).select_from(Vehicle).where(*conditions)
        total = (await db.execute(count_query)).scalar() or 0

        logger.debug("Recuperati %s veicoli su %s totali", len(vehicles), total)
        return vehicles, total

    async def get_by_client(self, db: AsyncSession, client_id: uuid.UUID) -> list[Vehicle]:
        """
        Tutti i veicoli attivi di un cliente, senza paginazione.

        Raises:
            NotFoundError: Se il cliente non esiste
        """
        await self._ensure_client_exists(db, client_id)
        result = await db.execute(
            select(Vehicle)
            .where(Vehicle.client_id == client_id, Vehicle.is_active == True)
            .order_by(Vehicle.plate.asc())
        )
        return list(result.scalars().all())

    async def get_by_id(
        self,
        db: AsyncSession,
        vehicle_id: uuid.UUID,
    ) -> Vehicle:
        """
        Recupera un veicolo tramite ID.

        Raises:
            NotFoundError: Se il veicolo non esiste
        """
        result = await db.execute(
            select(Vehicle).where(Vehicle.id == vehicle_id, Vehicle.is_active == True)
        )
        vehicle = result.unique().scalar_one_or_none()

        if vehicle is None:
            logger.warning("Veicolo non trovato: %s", vehicle_id)
            raise NotFoundError(f"Veicolo con ID {vehicle_id} non trovato")

        return vehicle

    async def get_for_client(
        self,
        db: AsyncSession,
        vehicle_id: uuid.UUID,
        client_id: uuid.UUID,
    ) -> Vehicle:
        """
        Recupera un veicolo verificando che appartenga al cliente.

        Raises:
            NotFoundError: Se il veicolo non esiste
            BusinessValidationError: Se il veicolo appartiene a un altro cliente
        """
        vehicle = await self.get_by_id(db, vehicle_id)
        if vehicle.client_id != client_id:
            logger.warning(
                "Veicolo %s non appartiene al cliente %s", vehicle_id, client_id
            )
            raise BusinessValidationError(
                "Il veicolo non appartiene al cliente selezionato"
            )
        return vehicle

    async def _ensure_client_exists(self, db: AsyncSession, client_id: uuid.UUID) -> None:
        client_result = await db.execute(
            select(Client.id).where(Client.id == client_id, Client.is_active == True)
        )
        if client_result.scalar_one_or_none() is None:
            logger.warning("Cliente non trovato per veicolo: %s", client_id)
            raise NotFoundError(f"Cliente con ID {client_id} non trovato")

    async def _ensure_plate_available(
        self,
        db: AsyncSession,
        plate: str,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> None:
        query = select(Vehicle.id).where(Vehicle.plate == plate)
        if exclude_id:
            query = query.where(Vehicle.id != exclude_id)
        if (await db.execute(query)).scalar_one_or_none() is not None:
            logger.warning("Targa già registrata: %s", plate)
            raise DuplicateError(f"Targa {plate} già registrata")

    async def create(
        self,
        db: AsyncSession,
        vehicle_data: VehicleCreate,
        actor: Optional[RequestActor] = None,
    ) -> Vehicle:
        """
        Crea un nuovo veicolo.

        Raises:
            NotFoundError: Se il cliente non esiste
            DuplicateError: Se la targa è già in uso
        """
        await self._ensure_client_exists(db, vehicle_data.client_id)
        await self._ensure_plate_available(db, vehicle_data.plate)

        vehicle = Vehicle(**vehicle_data.model_dump())

        try:
            db.add(vehicle)
            await db.flush()
        except IntegrityError as e:
            logger.warning("Errore creazione veicolo - targa duplicata: %s", e.orig)
            raise DuplicateError("Targa già registrata")

        await db.refresh(vehicle)

        audit_service.record(db, actor, "create", "vehicle", vehicle.id, {"plate": vehicle.plate})
        logger.info("Creato nuovo veicolo: %s - %s", vehicle.id, vehicle.plate)
        return vehicle

    async def update(
        self,
        db: AsyncSession,
        vehicle_id: uuid.UUID,
        vehicle_data: VehicleUpdate,
        actor: Optional[RequestActor] = None,
    ) -> Vehicle:
        """
        Aggiorna un veicolo.

        Raises:
            NotFoundError: Se veicolo o nuovo cliente non esistono
            DuplicateError: Se la nuova targa è già in uso
            BusinessValidationError: Se il chilometraggio diminuisce
        """
        vehicle = await self.get_by_id(db, vehicle_id)
        update_data = vehicle_data.model_dump(exclude_unset=True, exclude_none=True)

        if "client_id" in update_data and update_data["client_id"] != vehicle.client_id:
            await self._ensure_client_exists(db, update_data["client_id"])

        if "plate" in update_data and update_data["plate"] != vehicle.plate:
            await self._ensure_plate_available(db, update_data["plate"], exclude_id=vehicle_id)

        new_km = update_data.get("current_km")
        if new_km is not None and new_km < (vehicle.current_km or 0):
            raise BusinessValidationError(
                f"Il chilometraggio non può diminuire (attuale: {vehicle.current_km})"
            )

        for field, value in update_data.items():
            setattr(vehicle, field, value)

        await db.flush()
        await db.refresh(vehicle)

        audit_service.record(db, actor, "update", "vehicle", vehicle.id, update_data)
        logger.info("Aggiornato veicolo: %s - %s", vehicle.id, vehicle.plate)
        return vehicle

    async def delete(
        self,
        db: AsyncSession,
        vehicle_id: uuid.UUID,
        actor: Optional[RequestActor] = None,
    ) -> None:
        """
        Soft delete di un veicolo.

        Raises:
            NotFoundError: Se il veicolo non esiste
            BusinessValidationError: Se il veicolo ha ordini di servizio aperti
        """
        vehicle = await self.get_by_id(db, vehicle_id)

        open_orders = await db.execute(
            select(func.count(ServiceOrder.id)).where(
                ServiceOrder.vehicle_id == vehicle_id,
                ServiceOrder.status.not_in([s.value for s in LOCKED_STATUSES]),
            )
        )
        if (open_orders.scalar() or 0) > 0:
            logger.warning("Tentativo di eliminare veicolo %s con ordini aperti", vehicle.plate)
            raise BusinessValidationError(
                "Impossibile eliminare il veicolo: ci sono ordini di servizio aperti"
            )

        vehicle.is_active = False
        await db.flush()

        audit_service.record(db, actor, "delete", "vehicle", vehicle.id, {"plate": vehicle.plate})
        logger.info("Soft delete veicolo: %s - %s", vehicle.id, vehicle.plate)


# Istanza singleton del service
vehicle_service = VehicleService()
