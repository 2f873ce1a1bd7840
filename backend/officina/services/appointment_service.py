"""
Service Layer per gli Appuntamenti
Progetto: Officina Manager

Carica gli appuntamenti attivi dal database e delega il calcolo di
slot e conflitti alle funzioni pure di officina.services.availability.
"""

import datetime
import logging
import uuid
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from officina.core.config import settings
from officina.core.exceptions import ConflictError, InvalidStateTransitionError, NotFoundError
from officina.models import Appointment
from officina.schemas.appointment import (
    ACTIVE_STATUSES,
    AppointmentCreate,
    AppointmentStatus,
    AppointmentUpdate,
)
from officina.schemas.audit_log import RequestActor
from officina.services.audit_service import audit_service
from officina.services.availability import (
    Booking,
    compute_available_slots,
    conflict_window,
    find_conflicts,
)
from officina.services.catalog_service import catalog_service
from officina.services.client_service import client_service
from officina.services.technician_service import technician_service
from officina.services.vehicle_service import vehicle_service

logger = logging.getLogger(__name__)

_ACTIVE_VALUES = [s.value for s in ACTIVE_STATUSES]


def localize(value: datetime.datetime) -> datetime.datetime:
    """Un orario senza fuso è interpretato nel fuso orario dell'officina."""
    if value.tzinfo is None:
        return value.replace(tzinfo=settings.tzinfo)
    return value


def day_bounds(day: datetime.date) -> tuple[datetime.datetime, datetime.datetime]:
    """Inizio e fine (esclusa) del giorno locale."""
    start = datetime.datetime.combine(day, datetime.time.min, tzinfo=settings.tzinfo)
    return start, start + datetime.timedelta(days=1)


def _as_booking(appointment: Appointment) -> Booking:
    return Booking(appointment.id, appointment.start_at, appointment.duration_minutes)


class AppointmentService:
    """
    Service per la gestione degli appuntamenti.

    Ogni creazione o spostamento passa dal controllo conflitti;
    in caso di conflitto l'operazione fallisce senza correggere l'orario.
    """

    # ------------------------------------------------------------
    # Letture
    # ------------------------------------------------------------

    async def get_all(
        self,
        db: AsyncSession,
        page: int = 1,
        per_page: int = 50,
        day: Optional[datetime.date] = None,
        status: Optional[AppointmentStatus] = None,
        client_id: Optional[uuid.UUID] = None,
        vehicle_id: Optional[uuid.UUID] = None,
    ) -> tuple[list[Appointment], int]:
        """
        Recupera gli appuntamenti filtrati, in ordine di inizio.

        Returns:
            Tuple di (lista appuntamenti, totale count)
        """
        conditions = []
        if day:
            start, end = day_bounds(day)
            conditions.extend([Appointment.start_at >= start, Appointment.start_at < end])
        if status:
            conditions.append(Appointment.status == status.value)
        if client_id:
            conditions.append(Appointment.client_id == client_id)
        if vehicle_id:
            conditions.append(Appointment.vehicle_id == vehicle_id)

        query = select(Appointment).order_by(Appointment.start_at.asc())
        count_query = select(func.count()).select_from(Appointment)
        if conditions:
            query = query.where(*conditions)
            count_query = count_query.where(*conditions)

        result = await db.execute(query.offset((page - 1) * per_page).limit(per_page))
        items = list(result.scalars().all())
        total = (await db.execute(count_query)).scalar() or 0

        logger.debug("Recuperati %s appuntamenti su %s", len(items), total)
        return items, total

    async def get_by_id(self, db: AsyncSession, appointment_id: uuid.UUID) -> Appointment:
        """
        Raises:
            NotFoundError: Se l'appuntamento non esiste
        """
        result = await db.execute(select(Appointment).where(Appointment.id == appointment_id))
        appointment = result.scalar_one_or_none()

        if appointment is None:
            logger.warning("Appuntamento non trovato: %s", appointment_id)
            raise NotFoundError(f"Appuntamento con ID {appointment_id} non trovato")

        return appointment

    async def get_history(
        self,
        db: AsyncSession,
        client_id: Optional[uuid.UUID] = None,
        vehicle_id: Optional[uuid.UUID] = None,
    ) -> list[Appointment]:
        """Storico appuntamenti di un cliente o di un veicolo, dal più recente."""
        query = select(Appointment).order_by(Appointment.start_at.desc())
        if client_id:
            query = query.where(Appointment.client_id == client_id)
        if vehicle_id:
            query = query.where(Appointment.vehicle_id == vehicle_id)

        result = await db.execute(query)
        return list(result.scalars().all())

    async def _active_between(
        self,
        db: AsyncSession,
        start: datetime.datetime,
        end: datetime.datetime,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> list[Appointment]:
        """Appuntamenti attivi con inizio in [start, end)."""
        query = select(Appointment).where(
            Appointment.status.in_(_ACTIVE_VALUES),
            Appointment.start_at >= start,
            Appointment.start_at < end,
        )
        if exclude_id:
            query = query.where(Appointment.id != exclude_id)

        result = await db.execute(query.order_by(Appointment.start_at.asc()))
        return list(result.scalars().all())

    # ------------------------------------------------------------
    # Disponibilità e conflitti
    # ------------------------------------------------------------

    async def get_availability(
        self,
        db: AsyncSession,
        day: datetime.date,
        service_id: Optional[uuid.UUID] = None,
    ) -> tuple[int, list[datetime.datetime]]:
        """
        Calcola gli slot prenotabili per un giorno.

        Args:
            day: Giorno richiesto
            service_id: Servizio di cui usare la durata (default: durata standard)

        Returns:
            Tuple di (durata applicata in minuti, orari di inizio disponibili)

        Raises:
            NotFoundError: Se il servizio non esiste
        """
        duration = settings.default_service_minutes
        if service_id:
            service = await catalog_service.get_by_id(db, service_id)
            duration = service.estimated_minutes

        start, end = day_bounds(day)
        bookings = [_as_booking(a) for a in await self._active_between(db, start, end)]

        slots = compute_available_slots(
            day,
            duration,
            bookings,
            tz=settings.tzinfo,
            opening_hour=settings.opening_hour,
            closing_hour=settings.closing_hour,
            interval_minutes=settings.slot_interval_minutes,
            buffer_minutes=settings.slot_buffer_minutes,
            default_minutes=settings.default_service_minutes,
        )

        logger.debug(
            "Disponibilità %s (durata %s min): %s slot liberi su %s prenotazioni",
            day, duration, len(slots), len(bookings),
        )
        return duration, slots

    async def find_conflicts(
        self,
        db: AsyncSession,
        start_at: datetime.datetime,
        duration_minutes: int,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> list[Appointment]:
        """
        Appuntamenti attivi che iniziano in [start_at - 30 min, start_at + durata).
        """
        window_start, window_end = conflict_window(
            start_at, duration_minutes, settings.conflict_buffer_minutes
        )
        candidates = await self._active_between(db, window_start, window_end, exclude_id)

        by_id = {a.id: a for a in candidates}
        colliding = find_conflicts(
            start_at,
            duration_minutes,
            [_as_booking(a) for a in candidates],
            buffer_minutes=settings.conflict_buffer_minutes,
            exclude_id=exclude_id,
        )
        return [by_id[b.appointment_id] for b in colliding]

    async def _ensure_free(
        self,
        db: AsyncSession,
        start_at: datetime.datetime,
        duration_minutes: int,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> None:
        """
        Raises:
            ConflictError: Con gli appuntamenti in conflitto in extra["conflicts"]
        """
        conflicts = await self.find_conflicts(db, start_at, duration_minutes, exclude_id)
        if not conflicts:
            return

        logger.warning(
            "Conflitto di orario per %s (%s min): %s appuntamenti",
            start_at, duration_minutes, len(conflicts),
        )
        raise ConflictError(
            "Esiste già un appuntamento in questo orario",
            extra={
                "conflicts": [
                    {
                        "id": str(a.id),
                        "start_at": a.start_at.isoformat(),
                        "status": a.status,
                        "description": a.description,
                    }
                    for a in conflicts
                ]
            },
        )

    # ------------------------------------------------------------
    # Scritture
    # ------------------------------------------------------------

    async def create(
        self,
        db: AsyncSession,
        data: AppointmentCreate,
        actor: Optional[RequestActor] = None,
    ) -> Appointment:
        """
        Crea un appuntamento in stato scheduled.

        Raises:
            NotFoundError: Cliente, veicolo, servizio o tecnico inesistenti
            BusinessValidationError: Veicolo di un altro cliente
            ConflictError: Orario già occupato
        """
        await client_service.get_by_id(db, data.client_id)
        await vehicle_service.get_for_client(db, data.vehicle_id, data.client_id)
        service = await catalog_service.get_by_id(db, data.service_id)
        if data.technician_id:
            await technician_service.get_by_id(db, data.technician_id)

        start_at = localize(data.start_at)
        await self._ensure_free(db, start_at, service.estimated_minutes)

        appointment = Appointment(
            client_id=data.client_id,
            vehicle_id=data.vehicle_id,
            service_id=service.id,
            technician_id=data.technician_id,
            start_at=start_at,
            description=data.description or service.name,
            status=AppointmentStatus.SCHEDULED.value,
            notes=data.notes,
        )
        db.add(appointment)
        await db.flush()
        await db.refresh(appointment)

        audit_service.record(
            db, actor, "create", "appointment", appointment.id,
            {"start_at": start_at, "service_id": service.id},
        )
        logger.info("Creato appuntamento %s alle %s (%s)", appointment.id, start_at, service.code)
        return appointment

    async def update(
        self,
        db: AsyncSession,
        appointment_id: uuid.UUID,
        data: AppointmentUpdate,
        actor: Optional[RequestActor] = None,
    ) -> Appointment:
        """
        Modifica un appuntamento non ancora concluso.

        Se cambiano orario o servizio il controllo conflitti viene ripetuto,
        escludendo l'appuntamento stesso.

        Raises:
            InvalidStateTransitionError: Appuntamento completato o annullato
            ConflictError: Nuovo orario già occupato
        """
        appointment = await self.get_by_id(db, appointment_id)
        try:
            appointment.ensure_editable()
        except InvalidStateTransitionError:
            logger.warning("Modifica rifiutata per appuntamento %s in stato %s", appointment_id, appointment.status)
            raise

        update_data = data.model_dump(exclude_unset=True)

        service = appointment.service
        new_service_id = update_data.get("service_id")
        if new_service_id is not None and new_service_id != appointment.service_id:
            service = await catalog_service.get_by_id(db, new_service_id)

        if update_data.get("technician_id"):
            await technician_service.get_by_id(db, update_data["technician_id"])

        start_at = appointment.start_at
        if update_data.get("start_at") is not None:
            start_at = localize(update_data["start_at"])

        if start_at != appointment.start_at or service is not appointment.service:
            await self._ensure_free(db, start_at, service.estimated_minutes, exclude_id=appointment.id)

        appointment.start_at = start_at
        if service is not appointment.service:
            appointment.service = service
        for field in ("technician_id", "description", "notes"):
            if field in update_data:
                setattr(appointment, field, update_data[field])

        await db.flush()
        await db.refresh(appointment)

        audit_service.record(db, actor, "update", "appointment", appointment.id, update_data)
        logger.info("Aggiornato appuntamento %s", appointment.id)
        return appointment

    async def _transition(
        self,
        db: AsyncSession,
        appointment_id: uuid.UUID,
        action: str,
        actor: Optional[RequestActor],
        reason: Optional[str] = None,
    ) -> Appointment:
        appointment = await self.get_by_id(db, appointment_id)
        previous = appointment.status

        try:
            if action == "confirm":
                appointment.confirm()
            elif action == "cancel":
                appointment.cancel(reason)
            else:
                appointment.complete()
        except InvalidStateTransitionError:
            logger.warning("Transizione %s rifiutata per appuntamento %s in stato %s", action, appointment_id, previous)
            raise

        await db.flush()
        await db.refresh(appointment)

        details = {"from": previous, "to": appointment.status}
        if reason:
            details["reason"] = appointment.cancel_reason
        audit_service.record(db, actor, action, "appointment", appointment.id, details)

        logger.info("Appuntamento %s: %s -> %s", appointment.id, previous, appointment.status)
        return appointment

    async def confirm(
        self,
        db: AsyncSession,
        appointment_id: uuid.UUID,
        actor: Optional[RequestActor] = None,
    ) -> Appointment:
        """Conferma (solo da scheduled)."""
        return await self._transition(db, appointment_id, "confirm", actor)

    async def cancel(
        self,
        db: AsyncSession,
        appointment_id: uuid.UUID,
        reason: str,
        actor: Optional[RequestActor] = None,
    ) -> Appointment:
        """Annulla con motivo obbligatorio (da scheduled o confirmed)."""
        return await self._transition(db, appointment_id, "cancel", actor, reason=reason)

    async def complete(
        self,
        db: AsyncSession,
        appointment_id: uuid.UUID,
        actor: Optional[RequestActor] = None,
    ) -> Appointment:
        """Completa (da scheduled o confirmed)."""
        return await self._transition(db, appointment_id, "complete", actor)


# Istanza singleton del service
appointment_service = AppointmentService()
