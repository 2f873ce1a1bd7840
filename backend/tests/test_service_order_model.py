"""
Unit tests per le regole del modello ServiceOrder:
totali derivati dalle righe, sconto, blocco modifiche e transizioni di stato.
"""

import datetime
import uuid
from decimal import Decimal

import pytest

from officina.core.exceptions import (
    BusinessValidationError,
    InvalidStateTransitionError,
    NotFoundError,
)
from officina.schemas.service_order import ServiceOrderStatus

from conftest import make_order, make_product_line, make_service_line


def assert_totals_consistent(order):
    assert order.services_total == sum((l.price for l in order.service_lines), Decimal("0"))
    assert order.products_total == sum((l.line_total for l in order.product_lines), Decimal("0"))
    assert order.total == order.services_total + order.products_total - order.discount
    assert order.total >= 0


# ============================================================
# Totali
# ============================================================


class TestTotals:
    """I totali sono sempre ricalcolati dalle righe."""

    def test_service_and_product_lines(self, order):
        order.add_service_line(make_service_line("50.00"))
        order.add_service_line(make_service_line("70.00"))
        order.add_product_line(make_product_line(quantity=2, unit_price="9.50"))

        assert order.services_total == Decimal("120.00")
        assert order.products_total == Decimal("19.00")
        assert order.total == Decimal("139.00")
        assert_totals_consistent(order)

    def test_product_line_total_is_computed(self, order):
        line = make_product_line(quantity=3, unit_price="12.30")
        order.add_product_line(line)
        assert line.line_total == Decimal("36.90")

    def test_discount_applies_to_grand_total_only(self, order):
        order.add_service_line(make_service_line("100.00"))
        order.add_product_line(make_product_line(quantity=1, unit_price="40.00"))

        order.set_discount(Decimal("40.00"))

        assert order.services_total == Decimal("100.00")
        assert order.products_total == Decimal("40.00")
        assert order.total == Decimal("100.00")
        assert_totals_consistent(order)

    def test_discount_above_subtotal_rejected(self, order):
        order.add_service_line(make_service_line("30.00"))

        with pytest.raises(BusinessValidationError):
            order.set_discount(Decimal("30.01"))

        assert order.discount == Decimal("0.00")
        assert order.total == Decimal("30.00")

    def test_negative_discount_rejected(self, order):
        with pytest.raises(BusinessValidationError):
            order.set_discount(Decimal("-1"))

    def test_discount_equal_to_subtotal_gives_zero_total(self, order):
        order.add_service_line(make_service_line("30.00"))
        order.set_discount(Decimal("30.00"))
        assert order.total == Decimal("0.00")

    def test_zero_quantity_product_line_rejected(self, order):
        with pytest.raises(BusinessValidationError):
            order.add_product_line(make_product_line(quantity=0))
        assert order.product_lines == []


# ============================================================
# Righe
# ============================================================


class TestLines:

    def test_add_then_remove_restores_totals(self, order):
        order.add_service_line(make_service_line("45.00"))
        before = (order.services_total, order.products_total, order.total)

        line = order.add_product_line(make_product_line(quantity=2, unit_price="10.00"))
        removed = order.remove_product_line(line.id)

        assert removed is line
        assert (order.services_total, order.products_total, order.total) == before
        assert order.product_lines == []

    def test_remove_service_line(self, order):
        keep = order.add_service_line(make_service_line("20.00"))
        drop = order.add_service_line(make_service_line("80.00"))

        order.remove_service_line(drop.id)

        assert order.service_lines == [keep]
        assert order.total == Decimal("20.00")

    def test_remove_unknown_line_not_found(self, order):
        order.add_service_line(make_service_line("20.00"))

        with pytest.raises(NotFoundError):
            order.remove_service_line(uuid.uuid4())
        with pytest.raises(NotFoundError):
            order.remove_product_line(uuid.uuid4())

        assert len(order.service_lines) == 1
        assert order.total == Decimal("20.00")

    def test_remove_rejected_when_discount_would_exceed_total(self, order):
        order.add_service_line(make_service_line("20.00"))
        big = order.add_service_line(make_service_line("80.00"))
        order.set_discount(Decimal("50.00"))

        with pytest.raises(BusinessValidationError):
            order.remove_service_line(big.id)

        assert big in order.service_lines
        assert order.total == Decimal("50.00")


# ============================================================
# Blocco modifiche
# ============================================================


class TestEditGuard:

    @pytest.mark.parametrize("status", ["completed", "delivered", "canceled"])
    def test_locked_order_rejects_line_changes(self, status):
        line = make_service_line("10.00")
        order = make_order(status=status)
        order.service_lines.append(line)
        order.recompute_totals()

        with pytest.raises(InvalidStateTransitionError):
            order.add_service_line(make_service_line("5.00"))
        with pytest.raises(InvalidStateTransitionError):
            order.remove_service_line(line.id)
        with pytest.raises(InvalidStateTransitionError):
            order.add_product_line(make_product_line())
        with pytest.raises(InvalidStateTransitionError):
            order.set_discount(Decimal("1.00"))

        assert order.service_lines == [line]
        assert order.total == Decimal("10.00")

    @pytest.mark.parametrize("status", ["open", "in_progress", "awaiting_parts"])
    def test_active_order_is_editable(self, status):
        order = make_order(status=status)
        order.add_service_line(make_service_line("10.00"))
        assert order.total == Decimal("10.00")


# ============================================================
# Transizioni di stato
# ============================================================


class TestStatusTransitions:

    @pytest.mark.parametrize(
        "current, target",
        [
            ("open", "in_progress"),
            ("open", "awaiting_parts"),
            ("open", "completed"),
            ("open", "canceled"),
            ("in_progress", "awaiting_parts"),
            ("awaiting_parts", "in_progress"),
            ("in_progress", "completed"),
            ("completed", "delivered"),
        ],
    )
    def test_allowed(self, current, target):
        order = make_order(status=current)
        previous = order.change_status(ServiceOrderStatus(target))
        assert previous == ServiceOrderStatus(current)
        assert order.status == target

    @pytest.mark.parametrize(
        "current, target",
        [
            ("completed", "canceled"),
            ("completed", "open"),
            ("delivered", "completed"),
            ("canceled", "open"),
            ("open", "delivered"),
            ("in_progress", "open"),
        ],
    )
    def test_forbidden_leaves_order_unchanged(self, current, target):
        order = make_order(status=current)

        with pytest.raises(InvalidStateTransitionError) as exc_info:
            order.change_status(ServiceOrderStatus(target))

        assert order.status == current
        assert order.completed_at is None
        assert exc_info.value.extra == {"current_status": current, "requested_status": target}

    def test_completion_stamps_timestamp(self, order):
        now = datetime.datetime(2024, 3, 5, 17, 30, tzinfo=datetime.timezone.utc)
        order.change_status(ServiceOrderStatus.COMPLETED, now=now)
        assert order.completed_at == now
        assert order.is_locked
