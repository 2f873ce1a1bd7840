"""
Unit tests per clienti e veicoli: normalizzazione e regole di modifica.
"""

import uuid
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from officina.core.exceptions import BusinessValidationError, NotFoundError
from officina.schemas.client import normalize_phone, normalize_tax_code
from officina.schemas.vehicle import VehicleUpdate, normalize_plate
from officina.services.client_service import client_service
from officina.services.vehicle_service import vehicle_service

from conftest import make_vehicle, result_with, result_with_list


class TestNormalization:

    @pytest.mark.parametrize(
        "raw, expected",
        [("ab 123 cd", "AB123CD"), (" Ab123Cd ", "AB123CD"), (None, None)],
    )
    def test_plate(self, raw, expected):
        assert normalize_plate(raw) == expected

    def test_plate_with_symbols_rejected(self):
        with pytest.raises(ValueError):
            normalize_plate("AB-123")

    def test_phone(self):
        assert normalize_phone("+39 333 1234567") == "+393331234567"
        assert normalize_phone("   ") is None
        with pytest.raises(ValueError):
            normalize_phone("333-12")

    def test_tax_code(self):
        assert normalize_tax_code("rssmra80a01h501u") == "RSSMRA80A01H501U"
        with pytest.raises(ValueError):
            normalize_tax_code("ABC")


class TestVehicleKm:

    def test_register_km_only_grows(self):
        vehicle = make_vehicle(current_km=50000)
        assert vehicle.register_km(49000) is False
        assert vehicle.register_km(None) is False
        assert vehicle.register_km(51000) is True
        assert vehicle.current_km == 51000

    async def test_update_rejects_lower_km(self, mock_db):
        vehicle = make_vehicle(current_km=50000)

        with patch.object(vehicle_service, "get_by_id", AsyncMock(return_value=vehicle)):
            with pytest.raises(BusinessValidationError):
                await vehicle_service.update(mock_db, vehicle.id, VehicleUpdate(current_km=1000))

        assert vehicle.current_km == 50000
        mock_db.add.assert_not_called()


class TestClientDelete:

    async def test_open_orders_block_delete(self, mock_db):
        client = MagicMock(is_active=True)
        count = MagicMock()
        count.scalar.return_value = 2
        mock_db.execute.return_value = count

        with patch.object(client_service, "get_by_id", AsyncMock(return_value=client)):
            with pytest.raises(BusinessValidationError):
                await client_service.delete(mock_db, client.id)

        assert client.is_active is True
        mock_db.add.assert_not_called()

    async def test_soft_delete(self, mock_db):
        client = MagicMock(is_active=True)
        count = MagicMock()
        count.scalar.return_value = 0
        mock_db.execute.return_value = count

        with patch.object(client_service, "get_by_id", AsyncMock(return_value=client)):
            await client_service.delete(mock_db, client.id)

        assert client.is_active is False
        mock_db.add.assert_called_once()


class TestVehicleDelete:

    async def test_open_orders_block_delete(self, mock_db):
        vehicle = make_vehicle()
        count = MagicMock()
        count.scalar.return_value = 1
        mock_db.execute.return_value = count

        with patch.object(vehicle_service, "get_by_id", AsyncMock(return_value=vehicle)):
            with pytest.raises(BusinessValidationError):
                await vehicle_service.delete(mock_db, vehicle.id)

        assert vehicle.is_active is True
        mock_db.add.assert_not_called()

    async def test_vehicle_without_open_orders_is_deactivated(self, mock_db):
        vehicle = make_vehicle()
        count = MagicMock()
        count.scalar.return_value = 0
        mock_db.execute.return_value = count

        with patch.object(vehicle_service, "get_by_id", AsyncMock(return_value=vehicle)):
            await vehicle_service.delete(mock_db, vehicle.id)

        assert vehicle.is_active is False


class TestClientVehicles:

    async def test_unknown_client(self, mock_db):
        mock_db.execute.return_value = result_with(None)

        with pytest.raises(NotFoundError):
            await vehicle_service.get_by_client(mock_db, uuid.uuid4())

    async def test_lists_active_vehicles(self, mock_db):
        vehicle = make_vehicle()
        mock_db.execute.side_effect = [result_with(vehicle.client_id), result_with_list([vehicle])]

        assert await vehicle_service.get_by_client(mock_db, vehicle.client_id) == [vehicle]
