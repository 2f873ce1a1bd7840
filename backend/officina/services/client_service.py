"""
Service Layer per l'entità Client
Progetto: Officina Manager

Definisce la logica di business per la gestione dei clienti:
- Soft delete (cancellazione logica)
- Ricerca testuale
- Audit di ogni scrittura
"""

import logging
import uuid
from typing import Optional

from sqlalchemy import func, select, or_
from sqlalchemy.ext.asyncio import AsyncSession

from officina.core.exceptions import BusinessValidationError, NotFoundError
from officina.models import Client, ServiceOrder
from officina.schemas.audit_log import RequestActor
from officina.schemas.client import ClientCreate, ClientUpdate
from officina.schemas.service_order import LOCKED_STATUSES
from officina.services.audit_service import audit_service

# Logger per questo modulo
logger = logging.getLogger(__name__)


class ClientService:
    """
    Service per la gestione delle operazioni CRUD sui clienti.

    Implementa:
    - Soft Delete: cancellazione logica tramite flag is_active
    - Filtro Automatico: di default esclude i clienti eliminati
    """

    async def get_all(
        self,
        db: AsyncSession,
        page: int = 1,
        per_page: int = 10,
        search: Optional[str] = None,
        include_inactive: bool = False,
    ) -> tuple[list[Client], int]:
        """
        Recupera la lista paginata dei clienti.

        Args:
            db: Sessione database
            page: Numero pagina (default 1)
            per_page: Elementi per pagina (default 10)
            search: Termine di ricerca su nome, cognome, codice fiscale, telefono, email
            include_inactive: Se True, include anche i clienti soft-deleted

        Returns:
            Tuple di (lista clienti, totale count)
        """
        conditions = []

        # Filtro automatico: di default esclude i soft-deleted
        if not include_inactive:
            conditions.append(Client.is_active == True)

        if search:
            search_term = f"%{search}%"
            conditions.append(
                or_(
                    Client.name.ilike(search_term),
                    Client.surname.ilike(search_term),
                    Client.tax_code.ilike(search_term),
                    Client.phone.ilike(search_term),
                    Client.email.ilike(search_term),
                )
            )

        query = select(Client).order_by(Client.name.asc(), Client.surname.asc())
        count_query = select(func.count()).select_from(Client)
        if conditions:
            query = query.where(*conditions)
            count_query = count_query.where(*conditions)

        offset = (page - 1) * per_page
        result = await db.execute(query.offset(offset).limit(per_page))
        clients = list(result.scalars().all())

        count_result = await db.execute(count_query)
        total = count_result.scalar() or 0

        logger.debug(
            "Recuperati %s clienti su %s totali (pagina %s, include_inactive=%s)",
            len(clients), total, page, include_inactive
        )
        return clients, total

    async def get_by_id(
        self,
        db: AsyncSession,
        client_id: uuid.UUID,
        include_inactive: bool = False,
    ) -> Client:
        """
        Recupera un cliente tramite ID.

        Raises:
            NotFoundError: Se il cliente non esiste o è stato eliminato
        """
        query = select(Client).where(Client.id == client_id)
        if not include_inactive:
            query = query.where(Client.is_active == True)

        result = await db.execute(query)
        client = result.scalar_one_or_none()

        if client is None:
            logger.warning("Cliente non trovato o eliminato: %s", client_id)
            raise NotFoundError(f"Cliente con ID {client_id} non trovato")

        return client

    async def create(
        self,
        db: AsyncSession,
        client_data: ClientCreate,
        actor: Optional[RequestActor] = None,
    ) -> Client:
        """Crea un nuovo cliente."""
        client = Client(**client_data.model_dump())
        db.add(client)
        await db.flush()
        await db.refresh(client)

        audit_service.record(db, actor, "create", "client", client.id, {"name": client.full_name})
        logger.info("Creato nuovo cliente: %s - %s", client.id, client.full_name)
        return client

    async def update(
        self,
        db: AsyncSession,
        client_id: uuid.UUID,
        client_data: ClientUpdate,
        actor: Optional[RequestActor] = None,
    ) -> Client:
        """
        Aggiorna un cliente esistente (solo i campi inviati).

        Raises:
            NotFoundError: Se il cliente non esiste
        """
        client = await self.get_by_id(db, client_id)

        update_data = client_data.model_dump(exclude_unset=True)
        if "name" in update_data and update_data["name"] is None:
            raise BusinessValidationError("Il nome del cliente è obbligatorio")

        for field, value in update_data.items():
            setattr(client, field, value)

        await db.flush()
        await db.refresh(client)

        audit_service.record(db, actor, "update", "client", client.id, update_data)
        logger.info("Aggiornato cliente: %s - %s", client.id, client.full_name)
        return client

    async def delete(
        self,
        db: AsyncSession,
        client_id: uuid.UUID,
        actor: Optional[RequestActor] = None,
    ) -> None:
        """
        Soft delete di un cliente.

        Raises:
            NotFoundError: Se il cliente non esiste
            BusinessValidationError: Se il cliente ha ordini di servizio aperti
        """
        client = await self.get_by_id(db, client_id)

        open_orders = await db.execute(
            select(func.count(ServiceOrder.id)).where(
                ServiceOrder.client_id == client_id,
                ServiceOrder.status.not_in([s.value for s in LOCKED_STATUSES]),
            )
        )
        if (open_orders.scalar() or 0) > 0:
            logger.warning("Tentativo di eliminare cliente %s con ordini aperti", client_id)
            raise BusinessValidationError(
                "Impossibile eliminare il cliente: ci sono ordini di servizio aperti"
            )

        client.is_active = False
        await db.flush()

        audit_service.record(db, actor, "delete", "client", client.id)
        logger.info("Soft delete cliente: %s - %s", client.id, client.full_name)


# Istanza singleton del service
client_service = ClientService()
