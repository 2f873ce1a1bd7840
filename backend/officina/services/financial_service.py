"""
Service Layer per la contabilità di base
Progetto: Officina Manager

Entrate e uscite con scadenza, registrazione pagamenti, annullamenti
e riepilogo per periodo. Come gli altri service, nessun commit.
"""

import datetime
import logging
import uuid
from decimal import Decimal
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from officina.core.exceptions import (
    BusinessValidationError,
    InvalidStateTransitionError,
    NotFoundError,
)
from officina.models import FinancialEntry
from officina.schemas.audit_log import RequestActor
from officina.schemas.financial_entry import (
    EntryStatus,
    EntryType,
    FinancialEntryCreate,
    FinancialEntryUpdate,
    FinancialSummary,
    PaymentRegistration,
)
from officina.services.audit_service import audit_service
from officina.services.client_service import client_service
from officina.services.service_order_service import service_order_service

logger = logging.getLogger(__name__)

ENTITY_TYPE = "financial_entry"


def _check_period(date_from: datetime.date, date_to: datetime.date) -> None:
    if date_from > date_to:
        raise BusinessValidationError("La data iniziale deve precedere quella finale")


class FinancialService:
    """
    Service per i movimenti contabili.
    """

    async def get_all(
        self,
        db: AsyncSession,
        page: int = 1,
        per_page: int = 20,
        entry_type: Optional[EntryType] = None,
        status: Optional[EntryStatus] = None,
        date_from: Optional[datetime.date] = None,
        date_to: Optional[datetime.date] = None,
    ) -> tuple[list[FinancialEntry], int]:
        """Lista paginata ordinata per scadenza; date_from/date_to filtrano la scadenza."""
        conditions = []
        if entry_type:
            conditions.append(FinancialEntry.entry_type == entry_type.value)
        if status:
            conditions.append(FinancialEntry.status == status.value)
        if date_from:
            conditions.append(FinancialEntry.due_date >= date_from)
        if date_to:
            conditions.append(FinancialEntry.due_date <= date_to)

        query = select(FinancialEntry).order_by(FinancialEntry.due_date.asc())
        count_query = select(func.count()).select_from(FinancialEntry)
        if conditions:
            query = query.where(*conditions)
            count_query = count_query.where(*conditions)

        result = await db.execute(query.offset((page - 1) * per_page).limit(per_page))
        entries = list(result.scalars().all())
        total = (await db.execute(count_query)).scalar() or 0

        logger.debug("Recuperati %s movimenti contabili su %s", len(entries), total)
        return entries, total

    async def get_by_period(
        self,
        db: AsyncSession,
        date_from: datetime.date,
        date_to: datetime.date,
        entry_type: Optional[EntryType] = None,
    ) -> list[FinancialEntry]:
        """Tutti i movimenti con scadenza nel periodo (estremi inclusi)."""
        _check_period(date_from, date_to)
        query = (
            select(FinancialEntry)
            .where(FinancialEntry.due_date >= date_from, FinancialEntry.due_date <= date_to)
            .order_by(FinancialEntry.due_date.asc())
        )
        if entry_type:
            query = query.where(FinancialEntry.entry_type == entry_type.value)
        result = await db.execute(query)
        return list(result.scalars().all())

    async def get_by_id(self, db: AsyncSession, entry_id: uuid.UUID) -> FinancialEntry:
        result = await db.execute(select(FinancialEntry).where(FinancialEntry.id == entry_id))
        entry = result.scalar_one_or_none()
        if entry is None:
            logger.warning("Movimento contabile non trovato: %s", entry_id)
            raise NotFoundError(f"Movimento contabile con ID {entry_id} non trovato")
        return entry

    async def get_summary(
        self,
        db: AsyncSession,
        date_from: datetime.date,
        date_to: datetime.date,
    ) -> FinancialSummary:
        """
        Totali dei movimenti pagati nel periodo, per data di pagamento.

        I movimenti annullati, anche se pagati, non sono conteggiati.
        """
        _check_period(date_from, date_to)
        result = await db.execute(
            select(FinancialEntry).where(
                FinancialEntry.status == EntryStatus.PAID.value,
                FinancialEntry.paid_at >= date_from,
                FinancialEntry.paid_at <= date_to,
            )
        )
        entries = result.scalars().all()

        summary = FinancialSummary(date_from=date_from, date_to=date_to)
        for entry in entries:
            amount = Decimal(entry.amount)
            if entry.entry_type == EntryType.INCOME.value:
                summary.total_income += amount
                by_category = summary.income_by_category
            else:
                summary.total_expense += amount
                by_category = summary.expense_by_category
            by_category[entry.category] = by_category.get(entry.category, Decimal("0.00")) + amount
        summary.balance = summary.total_income - summary.total_expense

        logger.debug("Riepilogo contabile %s - %s su %s movimenti", date_from, date_to, len(entries))
        return summary

    async def create(
        self,
        db: AsyncSession,
        data: FinancialEntryCreate,
        actor: Optional[RequestActor] = None,
        today: Optional[datetime.date] = None,
    ) -> FinancialEntry:
        """
        Registra un movimento.

        Raises:
            NotFoundError: Cliente o ordine di servizio inesistenti
            BusinessValidationError: Cliente indicato su un'uscita
        """
        if data.client_id:
            if data.entry_type != EntryType.INCOME:
                raise BusinessValidationError("Il cliente si può collegare solo a un'entrata")
            await client_service.get_by_id(db, data.client_id)
        if data.service_order_id:
            await service_order_service.get_by_id(db, data.service_order_id)

        entry = FinancialEntry(
            entry_type=data.entry_type.value,
            category=data.category,
            description=data.description,
            amount=data.amount,
            due_date=data.due_date,
            status=EntryStatus.PENDING.value,
            client_id=data.client_id,
            service_order_id=data.service_order_id,
            actor_id=actor.actor_id if actor else None,
            notes=data.notes,
        )
        if data.paid_at is not None:
            entry.register_payment(data.paid_at, data.payment_method.value)
        else:
            entry.refresh_status(today or datetime.date.today())

        db.add(entry)
        await db.flush()
        await db.refresh(entry)

        audit_service.record(
            db, actor, "create", ENTITY_TYPE, entry.id,
            {"entry_type": entry.entry_type, "amount": entry.amount},
        )
        logger.info("Registrato movimento %s di %s (%s)", entry.entry_type, entry.amount, entry.status)
        return entry

    async def update(
        self,
        db: AsyncSession,
        entry_id: uuid.UUID,
        data: FinancialEntryUpdate,
        actor: Optional[RequestActor] = None,
        today: Optional[datetime.date] = None,
    ) -> FinancialEntry:
        """
        Raises:
            InvalidStateTransitionError: Movimento pagato o annullato
        """
        entry = await self.get_by_id(db, entry_id)
        try:
            entry.ensure_editable()
        except InvalidStateTransitionError:
            logger.warning("Modifica rifiutata sul movimento %s (%s)", entry_id, entry.status)
            raise

        update_data = data.model_dump(exclude_unset=True)
        for field, value in update_data.items():
            setattr(entry, field, value)
        entry.refresh_status(today or datetime.date.today())

        await db.flush()
        await db.refresh(entry)

        audit_service.record(db, actor, "update", ENTITY_TYPE, entry.id, update_data)
        logger.info("Aggiornato movimento contabile %s", entry.id)
        return entry

    async def register_payment(
        self,
        db: AsyncSession,
        entry_id: uuid.UUID,
        data: PaymentRegistration,
        actor: Optional[RequestActor] = None,
    ) -> FinancialEntry:
        """
        Raises:
            InvalidStateTransitionError: Movimento già pagato o annullato
        """
        entry = await self.get_by_id(db, entry_id)
        try:
            entry.register_payment(data.paid_at, data.payment_method.value)
        except InvalidStateTransitionError:
            logger.warning("Pagamento rifiutato sul movimento %s (%s)", entry_id, entry.status)
            raise

        await db.flush()
        await db.refresh(entry)

        audit_service.record(
            db, actor, "register_payment", ENTITY_TYPE, entry.id,
            {"paid_at": data.paid_at, "payment_method": data.payment_method.value},
        )
        logger.info("Registrato pagamento del movimento %s", entry.id)
        return entry

    async def cancel(
        self,
        db: AsyncSession,
        entry_id: uuid.UUID,
        reason: str,
        actor: Optional[RequestActor] = None,
    ) -> FinancialEntry:
        """
        Raises:
            InvalidStateTransitionError: Movimento già annullato
        """
        entry = await self.get_by_id(db, entry_id)
        try:
            entry.cancel(reason)
        except (BusinessValidationError, InvalidStateTransitionError):
            logger.warning("Annullamento rifiutato sul movimento %s (%s)", entry_id, entry.status)
            raise

        await db.flush()
        await db.refresh(entry)

        audit_service.record(db, actor, "cancel", ENTITY_TYPE, entry.id, {"reason": entry.cancel_reason})
        logger.info("Annullato movimento contabile %s", entry.id)
        return entry


# Istanza singleton del service
financial_service = FinancialService()
