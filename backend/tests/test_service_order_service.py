"""
Unit tests per ServiceOrderService.

Le ricerche su database sono sostituite con patch sui service;
le regole di totali, righe e stati girano sui modelli reali.
"""

import datetime
import uuid
from decimal import Decimal
from unittest.mock import AsyncMock, patch

import pytest

from officina.core.exceptions import (
    BusinessValidationError,
    InsufficientStockError,
    InvalidStateTransitionError,
    NotFoundError,
)
from officina.models import AuditLog, ServiceOrder, StockMovement
from officina.schemas.service_order import (
    ProductLineCreate,
    ServiceLineCreate,
    ServiceLineStatus,
    ServiceLineUpdate,
    ServiceOrderCreate,
    ServiceOrderStatus,
    ServiceOrderUpdate,
)
from officina.services.catalog_service import catalog_service
from officina.services.client_service import client_service
from officina.services.counter_service import counter_service
from officina.services.product_service import product_service
from officina.services.service_order_service import service_order_service
from officina.services.vehicle_service import vehicle_service

from conftest import (
    make_order,
    make_product,
    make_product_line,
    make_service,
    make_service_line,
    make_vehicle,
)


def added(mock_db, cls):
    return [c.args[0] for c in mock_db.add.call_args_list if isinstance(c.args[0], cls)]


@pytest.fixture
def loaded(order, product):
    """Patch delle ricerche: ordine e prodotto già caricati."""
    with patch.object(service_order_service, "get_by_id", AsyncMock(return_value=order)), \
         patch.object(product_service, "get_by_id", AsyncMock(return_value=product)):
        yield order, product


# ============================================================
# Apertura e aggiornamento ordine
# ============================================================


class TestCreateOrder:

    async def test_create_assigns_number_and_updates_km(self, mock_db):
        vehicle = make_vehicle(current_km=50000)
        data = ServiceOrderCreate(client_id=vehicle.client_id, vehicle_id=vehicle.id, km=61000)

        with patch.object(client_service, "get_by_id", AsyncMock()), \
             patch.object(vehicle_service, "get_for_client", AsyncMock(return_value=vehicle)), \
             patch.object(counter_service, "next_value", AsyncMock(return_value=42)):
            order = await service_order_service.create(mock_db, data)

        today = datetime.date.today()
        assert order.number == f"000042/{today.month:02d}{today.year}"
        assert order.status == "open"
        assert order.total == Decimal("0.00")
        assert vehicle.current_km == 61000
        assert added(mock_db, ServiceOrder) == [order]
        assert len(added(mock_db, AuditLog)) == 1
        mock_db.commit.assert_not_called()

    async def test_lower_km_does_not_rewind_vehicle(self, mock_db):
        vehicle = make_vehicle(current_km=50000)
        data = ServiceOrderCreate(client_id=vehicle.client_id, vehicle_id=vehicle.id, km=40000)

        with patch.object(client_service, "get_by_id", AsyncMock()), \
             patch.object(vehicle_service, "get_for_client", AsyncMock(return_value=vehicle)), \
             patch.object(counter_service, "next_value", AsyncMock(return_value=1)):
            order = await service_order_service.create(mock_db, data)

        assert order.km == 40000
        assert vehicle.current_km == 50000

    async def test_missing_km_taken_from_vehicle(self, mock_db):
        vehicle = make_vehicle(current_km=50000)
        data = ServiceOrderCreate(client_id=vehicle.client_id, vehicle_id=vehicle.id)

        with patch.object(client_service, "get_by_id", AsyncMock()), \
             patch.object(vehicle_service, "get_for_client", AsyncMock(return_value=vehicle)), \
             patch.object(counter_service, "next_value", AsyncMock(return_value=1)):
            order = await service_order_service.create(mock_db, data)

        assert order.km == 50000
        assert order.discount == Decimal("0")
        assert vehicle.current_km == 50000

    def test_discount_is_not_a_create_field(self):
        with pytest.raises(ValueError):
            ServiceOrderCreate(
                client_id=uuid.uuid4(), vehicle_id=uuid.uuid4(), discount=Decimal("10.00")
            )

    async def test_vehicle_of_other_client_rejected(self, mock_db):
        data = ServiceOrderCreate(client_id=uuid.uuid4(), vehicle_id=uuid.uuid4())
        next_value = AsyncMock(return_value=1)

        with patch.object(client_service, "get_by_id", AsyncMock()), \
             patch.object(
                 vehicle_service,
                 "get_for_client",
                 AsyncMock(side_effect=BusinessValidationError("Il veicolo non appartiene al cliente selezionato")),
             ), \
             patch.object(counter_service, "next_value", next_value):
            with pytest.raises(BusinessValidationError):
                await service_order_service.create(mock_db, data)

        next_value.assert_not_called()
        mock_db.add.assert_not_called()


class TestUpdateOrder:

    async def test_discount_change_recomputes_total(self, mock_db, loaded):
        order, _ = loaded
        order.add_service_line(make_service_line("100.00"))

        await service_order_service.update(mock_db, order.id, ServiceOrderUpdate(discount=Decimal("15.00")))

        assert order.discount == Decimal("15.00")
        assert order.total == Decimal("85.00")

    async def test_locked_order_not_editable(self, mock_db):
        order = make_order(status="delivered")
        with patch.object(service_order_service, "get_by_id", AsyncMock(return_value=order)):
            with pytest.raises(InvalidStateTransitionError):
                await service_order_service.update(mock_db, order.id, ServiceOrderUpdate(diagnosis="x"))

        assert order.diagnosis is None
        mock_db.add.assert_not_called()

    async def test_installments_cannot_be_null(self, mock_db, loaded):
        order, _ = loaded
        order.installments = 1

        with pytest.raises(ValueError):
            ServiceOrderUpdate(installments=None)

        await service_order_service.update(mock_db, order.id, ServiceOrderUpdate(installments=3))
        assert order.installments == 3


# ============================================================
# Righe servizio
# ============================================================


class TestServiceLines:

    async def test_catalog_defaults(self, mock_db, loaded):
        order, _ = loaded
        service = make_service(name="Cambio olio", price=Decimal("35.00"))

        with patch.object(catalog_service, "get_by_id", AsyncMock(return_value=service)):
            await service_order_service.add_service_line(
                mock_db, order.id, ServiceLineCreate(service_id=service.id)
            )

        line = order.service_lines[0]
        assert line.description == "Cambio olio"
        assert line.price == Decimal("35.00")
        assert order.total == Decimal("35.00")

    async def test_zero_price_override_is_kept(self, mock_db, loaded):
        order, _ = loaded
        service = make_service(price=Decimal("35.00"))

        with patch.object(catalog_service, "get_by_id", AsyncMock(return_value=service)):
            await service_order_service.add_service_line(
                mock_db,
                order.id,
                ServiceLineCreate(service_id=service.id, price=Decimal("0"), description="Omaggio"),
            )

        assert order.service_lines[0].price == Decimal("0")
        assert order.service_lines[0].description == "Omaggio"
        assert order.total == Decimal("0")

    async def test_locked_order_rejects_line(self, mock_db):
        order = make_order(status="completed")
        get_service = AsyncMock()

        with patch.object(service_order_service, "get_by_id", AsyncMock(return_value=order)), \
             patch.object(catalog_service, "get_by_id", get_service):
            with pytest.raises(InvalidStateTransitionError):
                await service_order_service.add_service_line(
                    mock_db, order.id, ServiceLineCreate(service_id=uuid.uuid4())
                )

        get_service.assert_not_called()
        assert order.service_lines == []

    async def test_line_progress_update(self, mock_db, loaded):
        order, _ = loaded
        line = make_service_line("40.00")
        order.add_service_line(line)

        with pytest.raises(ValueError):
            ServiceLineUpdate(status=None)

        await service_order_service.update_service_line(
            mock_db,
            order.id,
            line.id,
            ServiceLineUpdate(status=ServiceLineStatus.DONE, time_spent_minutes=45),
        )

        assert line.status == "done"
        assert line.time_spent_minutes == 45
        assert order.total == Decimal("40.00")

    async def test_remove_unknown_line(self, mock_db, loaded):
        order, _ = loaded
        order.add_service_line(make_service_line("10.00"))

        with pytest.raises(NotFoundError):
            await service_order_service.remove_service_line(mock_db, order.id, uuid.uuid4())

        assert len(order.service_lines) == 1
        mock_db.add.assert_not_called()


# ============================================================
# Righe prodotto e magazzino
# ============================================================


class TestProductLines:

    async def test_insufficient_stock_changes_nothing(self, mock_db, loaded):
        order, product = loaded
        product.stock_quantity = 2

        with pytest.raises(InsufficientStockError) as exc_info:
            await service_order_service.add_product_line(
                mock_db, order.id, ProductLineCreate(product_id=product.id, quantity=5)
            )

        assert exc_info.value.extra["available"] == 2
        assert exc_info.value.extra["requested"] == 5
        assert product.stock_quantity == 2
        assert order.product_lines == []
        assert order.total == Decimal("0.00")
        mock_db.add.assert_not_called()
        mock_db.commit.assert_not_called()

    async def test_add_then_remove_round_trip(self, mock_db, loaded):
        order, product = loaded

        await service_order_service.add_product_line(
            mock_db, order.id, ProductLineCreate(product_id=product.id, quantity=3)
        )

        line = order.product_lines[0]
        assert product.stock_quantity == 7
        assert line.unit_price == Decimal("9.50")
        assert order.products_total == Decimal("28.50")
        assert order.total == Decimal("28.50")

        await service_order_service.remove_product_line(mock_db, order.id, line.id)

        assert product.stock_quantity == 10
        assert order.product_lines == []
        assert order.total == Decimal("0.00")

        movements = added(mock_db, StockMovement)
        assert [(m.direction, m.quantity) for m in movements] == [("out", 3), ("in", 3)]
        assert movements[0].reason == f"Utilizzato nell'OS {order.number}"
        assert movements[1].reason == f"Reso dall'OS {order.number}"
        assert all(m.document_id == order.id for m in movements)
        assert len(added(mock_db, AuditLog)) == 2
        mock_db.commit.assert_not_called()

    async def test_zero_unit_price_override_is_kept(self, mock_db, loaded):
        order, product = loaded

        await service_order_service.add_product_line(
            mock_db,
            order.id,
            ProductLineCreate(product_id=product.id, quantity=1, unit_price=Decimal("0")),
        )

        assert order.product_lines[0].unit_price == Decimal("0")
        assert order.total == Decimal("0")

    async def test_inactive_product_rejected(self, mock_db, loaded):
        order, product = loaded
        product.is_active = False

        with pytest.raises(BusinessValidationError):
            await service_order_service.add_product_line(
                mock_db, order.id, ProductLineCreate(product_id=product.id, quantity=1)
            )

        assert product.stock_quantity == 10
        assert order.product_lines == []

    async def test_remove_unknown_line_keeps_stock(self, mock_db, loaded):
        order, product = loaded

        with pytest.raises(NotFoundError):
            await service_order_service.remove_product_line(mock_db, order.id, uuid.uuid4())

        assert product.stock_quantity == 10
        mock_db.add.assert_not_called()


# ============================================================
# Cambio di stato
# ============================================================


class TestChangeStatus:

    async def test_completion_stamps_timestamp(self, mock_db, loaded):
        order, _ = loaded

        await service_order_service.change_status(mock_db, order.id, ServiceOrderStatus.COMPLETED)

        assert order.status == "completed"
        assert order.completed_at is not None
        assert len(added(mock_db, AuditLog)) == 1

    async def test_canceling_completed_order_rejected(self, mock_db):
        order = make_order(status="completed", total=Decimal("80.00"))

        with patch.object(service_order_service, "get_by_id", AsyncMock(return_value=order)):
            with pytest.raises(InvalidStateTransitionError):
                await service_order_service.change_status(mock_db, order.id, ServiceOrderStatus.CANCELED)

        assert order.status == "completed"
        assert order.total == Decimal("80.00")
        mock_db.add.assert_not_called()

    async def test_cancel_returns_stock(self, mock_db, loaded):
        order, product = loaded
        product.stock_quantity = 5
        order.add_product_line(make_product_line(quantity=2, product_id=product.id))

        await service_order_service.change_status(mock_db, order.id, ServiceOrderStatus.CANCELED)

        assert order.status == "canceled"
        assert product.stock_quantity == 7
        movements = added(mock_db, StockMovement)
        assert [(m.direction, m.quantity) for m in movements] == [("in", 2)]
        # Le righe restano come storico dell'ordine annullato
        assert len(order.product_lines) == 1
