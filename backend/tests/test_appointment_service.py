"""
Unit tests per AppointmentService e per le transizioni del modello Appointment.
"""

import datetime
import uuid
from unittest.mock import AsyncMock, patch

import pytest

from officina.core.exceptions import (
    BusinessValidationError,
    ConflictError,
    InvalidStateTransitionError,
)
from officina.models import Appointment, AuditLog
from officina.schemas.appointment import AppointmentCreate, AppointmentUpdate
from officina.services.appointment_service import appointment_service, localize
from officina.services.catalog_service import catalog_service
from officina.services.client_service import client_service
from officina.services.vehicle_service import vehicle_service

from conftest import ROME, make_appointment, make_service, make_vehicle, result_with_list


def at(hour, minute=0):
    return datetime.datetime(2024, 3, 5, hour, minute, tzinfo=ROME)


def added(mock_db, cls):
    return [c.args[0] for c in mock_db.add.call_args_list if isinstance(c.args[0], cls)]


@pytest.fixture
def booking_context():
    """Cliente, veicolo e servizio validi per una nuova prenotazione."""
    vehicle = make_vehicle()
    service = make_service(name="Tagliando", estimated_minutes=60)
    with patch.object(client_service, "get_by_id", AsyncMock()), \
         patch.object(vehicle_service, "get_for_client", AsyncMock(return_value=vehicle)), \
         patch.object(catalog_service, "get_by_id", AsyncMock(return_value=service)):
        yield vehicle, service


# ============================================================
# Disponibilità
# ============================================================


class TestAvailability:

    async def test_existing_booking_removes_slots(self, mock_db):
        mock_db.execute.return_value = result_with_list([make_appointment(start_at=at(10), minutes=60)])

        duration, slots = await appointment_service.get_availability(mock_db, datetime.date(2024, 3, 5))

        starts = [s.strftime("%H:%M") for s in slots]
        assert duration == 60
        assert "09:00" in starts
        assert "09:30" not in starts
        assert "10:00" not in starts
        assert "10:30" not in starts
        assert "11:00" in starts

    async def test_service_duration_is_used(self, mock_db):
        mock_db.execute.return_value = result_with_list([])
        service = make_service(estimated_minutes=120)

        with patch.object(catalog_service, "get_by_id", AsyncMock(return_value=service)):
            duration, slots = await appointment_service.get_availability(
                mock_db, datetime.date(2024, 3, 5), service.id
            )

        assert duration == 120
        assert slots[-1] == at(16)


# ============================================================
# Prenotazione
# ============================================================


class TestCreateAppointment:

    async def test_create_without_conflicts(self, mock_db, booking_context):
        vehicle, service = booking_context
        mock_db.execute.return_value = result_with_list([])
        data = AppointmentCreate(
            client_id=vehicle.client_id,
            vehicle_id=vehicle.id,
            service_id=service.id,
            start_at=datetime.datetime(2024, 3, 5, 10, 0),
        )

        appointment = await appointment_service.create(mock_db, data)

        assert appointment.status == "scheduled"
        assert appointment.description == "Tagliando"
        assert appointment.start_at == at(10)
        assert added(mock_db, Appointment) == [appointment]
        assert len(added(mock_db, AuditLog)) == 1
        mock_db.commit.assert_not_called()

    async def test_conflict_rejected_with_details(self, mock_db, booking_context):
        vehicle, service = booking_context
        existing = make_appointment(start_at=at(10), minutes=60)
        mock_db.execute.return_value = result_with_list([existing])
        data = AppointmentCreate(
            client_id=vehicle.client_id,
            vehicle_id=vehicle.id,
            service_id=service.id,
            start_at=at(10, 15),
        )

        with pytest.raises(ConflictError) as exc_info:
            await appointment_service.create(mock_db, data)

        conflicts = exc_info.value.extra["conflicts"]
        assert [c["id"] for c in conflicts] == [str(existing.id)]
        assert exc_info.value.error_code == "SCHEDULE_CONFLICT"
        mock_db.add.assert_not_called()

    async def test_vehicle_must_belong_to_client(self, mock_db):
        with patch.object(client_service, "get_by_id", AsyncMock()), \
             patch.object(
                 vehicle_service,
                 "get_for_client",
                 AsyncMock(side_effect=BusinessValidationError("Il veicolo non appartiene al cliente selezionato")),
             ):
            with pytest.raises(BusinessValidationError):
                await appointment_service.create(
                    mock_db,
                    AppointmentCreate(
                        client_id=uuid.uuid4(),
                        vehicle_id=uuid.uuid4(),
                        service_id=uuid.uuid4(),
                        start_at=at(10),
                    ),
                )
        mock_db.add.assert_not_called()


class TestUpdateAppointment:

    async def test_reschedule_ignores_itself(self, mock_db):
        appointment = make_appointment(start_at=at(10), minutes=60)
        mock_db.execute.return_value = result_with_list([appointment])

        with patch.object(appointment_service, "get_by_id", AsyncMock(return_value=appointment)):
            await appointment_service.update(
                mock_db, appointment.id, AppointmentUpdate(start_at=at(10, 15))
            )

        assert appointment.start_at == at(10, 15)

    async def test_reschedule_onto_other_booking_rejected(self, mock_db):
        appointment = make_appointment(start_at=at(14), minutes=60)
        other = make_appointment(start_at=at(10), minutes=60)
        mock_db.execute.return_value = result_with_list([other])

        with patch.object(appointment_service, "get_by_id", AsyncMock(return_value=appointment)):
            with pytest.raises(ConflictError):
                await appointment_service.update(
                    mock_db, appointment.id, AppointmentUpdate(start_at=at(10, 15))
                )

        assert appointment.start_at == at(14)

    async def test_terminal_appointment_not_editable(self, mock_db):
        appointment = make_appointment(status="canceled")

        with patch.object(appointment_service, "get_by_id", AsyncMock(return_value=appointment)):
            with pytest.raises(InvalidStateTransitionError):
                await appointment_service.update(
                    mock_db, appointment.id, AppointmentUpdate(notes="spostare")
                )

        assert appointment.notes is None
        mock_db.execute.assert_not_called()


# ============================================================
# Transizioni
# ============================================================


class TestTransitions:

    async def test_confirm_then_complete(self, mock_db):
        appointment = make_appointment()

        with patch.object(appointment_service, "get_by_id", AsyncMock(return_value=appointment)):
            await appointment_service.confirm(mock_db, appointment.id)
            assert appointment.status == "confirmed"
            assert appointment.confirmed_at is not None

            with pytest.raises(InvalidStateTransitionError):
                await appointment_service.confirm(mock_db, appointment.id)

            await appointment_service.complete(mock_db, appointment.id)

        assert appointment.status == "completed"
        assert len(added(mock_db, AuditLog)) == 2

    async def test_cancel_requires_reason(self, mock_db):
        appointment = make_appointment()

        with patch.object(appointment_service, "get_by_id", AsyncMock(return_value=appointment)):
            with pytest.raises(BusinessValidationError):
                await appointment_service.cancel(mock_db, appointment.id, "   ")
            assert appointment.status == "scheduled"

            await appointment_service.cancel(mock_db, appointment.id, "Cliente indisponibile")

        assert appointment.status == "canceled"
        assert appointment.cancel_reason == "Cliente indisponibile"
        assert appointment.canceled_at is not None

    @pytest.mark.parametrize("status", ["completed", "canceled"])
    def test_terminal_states_reject_everything(self, status):
        appointment = make_appointment(status=status)
        for action in (appointment.confirm, appointment.complete):
            with pytest.raises(InvalidStateTransitionError):
                action()
        with pytest.raises(InvalidStateTransitionError):
            appointment.cancel("motivo")
        assert appointment.status == status
        assert not appointment.blocks_schedule

    def test_end_at_uses_service_duration(self):
        appointment = make_appointment(start_at=at(9), minutes=45)
        assert appointment.end_at == at(9, 45)


class TestLocalize:

    def test_naive_datetime_gets_shop_timezone(self):
        assert localize(datetime.datetime(2024, 3, 5, 10, 0)) == at(10)

    def test_aware_datetime_untouched(self):
        value = datetime.datetime(2024, 3, 5, 9, 0, tzinfo=datetime.timezone.utc)
        assert localize(value) is value
