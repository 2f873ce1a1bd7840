"""
Unit tests per contabilità di base e statistiche della dashboard.
"""

import datetime
import uuid
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from officina.core.exceptions import BusinessValidationError, InvalidStateTransitionError
from officina.models import AuditLog, FinancialEntry
from officina.schemas.financial_entry import (
    EntryType,
    FinancialEntryCreate,
    FinancialEntryUpdate,
    PaymentRegistration,
)
from officina.services.client_service import client_service
from officina.services.dashboard_service import dashboard_service, month_bounds
from officina.services.financial_service import financial_service

from conftest import ROME, result_with_list

TODAY = datetime.date(2024, 3, 15)


def make_entry(**kwargs) -> FinancialEntry:
    data = dict(
        id=uuid.uuid4(),
        entry_type="expense",
        category="Affitto",
        description="Affitto marzo",
        amount=Decimal("800.00"),
        due_date=datetime.date(2024, 3, 31),
        status="pending",
    )
    data.update(kwargs)
    return FinancialEntry(**data)


def added(mock_db, cls):
    return [c.args[0] for c in mock_db.add.call_args_list if isinstance(c.args[0], cls)]


# ============================================================
# Regole del modello
# ============================================================


class TestEntryStatus:

    def test_past_due_becomes_overdue(self):
        entry = make_entry(due_date=datetime.date(2024, 3, 1))
        entry.refresh_status(TODAY)
        assert entry.status == "overdue"

        entry.due_date = datetime.date(2024, 4, 1)
        entry.refresh_status(TODAY)
        assert entry.status == "pending"

    def test_due_today_is_not_overdue(self):
        entry = make_entry(due_date=TODAY)
        entry.refresh_status(TODAY)
        assert entry.status == "pending"

    def test_paid_is_never_recomputed(self):
        entry = make_entry(status="paid", due_date=datetime.date(2024, 1, 1))
        entry.refresh_status(TODAY)
        assert entry.status == "paid"

    def test_payment_refused_when_already_paid(self):
        entry = make_entry()
        entry.register_payment(TODAY, "cash")

        with pytest.raises(InvalidStateTransitionError) as exc_info:
            entry.register_payment(TODAY, "card")

        assert exc_info.value.extra["current_status"] == "paid"
        assert entry.payment_method == "cash"

    def test_cancel(self):
        entry = make_entry(status="paid")
        with pytest.raises(BusinessValidationError):
            entry.cancel("  ")

        entry.cancel("Registrato due volte")
        assert entry.status == "canceled"
        assert entry.cancel_reason == "Registrato due volte"

        with pytest.raises(InvalidStateTransitionError):
            entry.cancel("ancora")


# ============================================================
# FinancialService
# ============================================================


class TestCreateEntry:

    async def test_pending_expense(self, mock_db):
        data = FinancialEntryCreate(
            entry_type="expense",
            category="Ricambi",
            description="Fattura fornitore",
            amount=Decimal("250.00"),
            due_date=datetime.date(2024, 3, 10),
        )

        entry = await financial_service.create(mock_db, data, today=TODAY)

        assert entry.status == "overdue"
        assert added(mock_db, FinancialEntry) == [entry]
        assert len(added(mock_db, AuditLog)) == 1
        mock_db.commit.assert_not_called()

    async def test_paid_on_creation(self, mock_db):
        data = FinancialEntryCreate(
            entry_type="income",
            category="Servizi",
            description="Tagliando",
            amount=Decimal("120.00"),
            due_date=TODAY,
            paid_at=TODAY,
            payment_method="card",
        )

        entry = await financial_service.create(mock_db, data, today=TODAY)

        assert entry.status == "paid"
        assert entry.payment_method == "card"

    def test_paid_without_method_rejected(self):
        with pytest.raises(ValueError):
            FinancialEntryCreate(
                entry_type="income",
                category="Servizi",
                description="Tagliando",
                amount=Decimal("120.00"),
                due_date=TODAY,
                paid_at=TODAY,
            )

    async def test_client_only_on_income(self, mock_db):
        data = FinancialEntryCreate(
            entry_type="expense",
            category="Ricambi",
            description="Ordine",
            amount=Decimal("10.00"),
            due_date=TODAY,
            client_id=uuid.uuid4(),
        )
        lookup = AsyncMock()

        with patch.object(client_service, "get_by_id", lookup):
            with pytest.raises(BusinessValidationError):
                await financial_service.create(mock_db, data, today=TODAY)

        lookup.assert_not_called()
        mock_db.add.assert_not_called()


class TestEntryOperations:

    async def test_paid_entry_not_editable(self, mock_db):
        entry = make_entry(status="paid")

        with patch.object(financial_service, "get_by_id", AsyncMock(return_value=entry)):
            with pytest.raises(InvalidStateTransitionError):
                await financial_service.update(
                    mock_db, entry.id, FinancialEntryUpdate(amount=Decimal("1.00"))
                )

        assert entry.amount == Decimal("800.00")
        mock_db.add.assert_not_called()

    async def test_update_recomputes_status(self, mock_db):
        entry = make_entry()

        with patch.object(financial_service, "get_by_id", AsyncMock(return_value=entry)):
            await financial_service.update(
                mock_db,
                entry.id,
                FinancialEntryUpdate(due_date=datetime.date(2024, 3, 1)),
                today=TODAY,
            )

        assert entry.status == "overdue"

    def test_null_amount_rejected(self):
        with pytest.raises(ValueError):
            FinancialEntryUpdate(amount=None)

    async def test_register_payment_twice(self, mock_db):
        entry = make_entry()
        payment = PaymentRegistration(paid_at=TODAY, payment_method="bank_transfer")

        with patch.object(financial_service, "get_by_id", AsyncMock(return_value=entry)):
            await financial_service.register_payment(mock_db, entry.id, payment)
            assert entry.status == "paid"
            assert entry.paid_at == TODAY

            with pytest.raises(InvalidStateTransitionError):
                await financial_service.register_payment(mock_db, entry.id, payment)

        assert len(added(mock_db, AuditLog)) == 1


class TestSummary:

    async def test_totals_by_category(self, mock_db):
        paid = dict(status="paid", paid_at=TODAY)
        mock_db.execute.return_value = result_with_list([
            make_entry(entry_type="income", category="Servizi", amount=Decimal("120.00"), **paid),
            make_entry(entry_type="income", category="Servizi", amount=Decimal("80.00"), **paid),
            make_entry(entry_type="income", category="Ricambi", amount=Decimal("45.50"), **paid),
            make_entry(entry_type="expense", category="Affitto", amount=Decimal("800.00"), **paid),
        ])

        summary = await financial_service.get_summary(
            mock_db, datetime.date(2024, 3, 1), datetime.date(2024, 3, 31)
        )

        assert summary.total_income == Decimal("245.50")
        assert summary.total_expense == Decimal("800.00")
        assert summary.balance == Decimal("-554.50")
        assert summary.income_by_category == {"Servizi": Decimal("200.00"), "Ricambi": Decimal("45.50")}
        assert summary.expense_by_category == {"Affitto": Decimal("800.00")}

    async def test_inverted_period_rejected(self, mock_db):
        with pytest.raises(BusinessValidationError):
            await financial_service.get_summary(
                mock_db, datetime.date(2024, 3, 31), datetime.date(2024, 3, 1)
            )
        mock_db.execute.assert_not_called()

    async def test_period_filters_entry_type(self, mock_db):
        entry = make_entry(entry_type="income")
        mock_db.execute.return_value = result_with_list([entry])

        entries = await financial_service.get_by_period(
            mock_db, datetime.date(2024, 3, 1), datetime.date(2024, 3, 31), EntryType.INCOME
        )

        assert entries == [entry]
        mock_db.execute.assert_awaited_once()


# ============================================================
# Dashboard
# ============================================================


def scalar_result(value):
    result = MagicMock()
    result.scalar.return_value = value
    return result


class TestDashboard:

    def test_month_bounds(self):
        start, end = month_bounds(datetime.date(2024, 12, 15))
        assert start == datetime.datetime(2024, 12, 1, tzinfo=ROME)
        assert end == datetime.datetime(2025, 1, 1, tzinfo=ROME)

    async def test_stats(self, mock_db):
        by_status = MagicMock()
        by_status.all.return_value = [("open", 3), ("completed", 2)]
        mock_db.execute.side_effect = [
            scalar_result(12),   # clienti
            scalar_result(15),   # veicoli
            scalar_result(40),   # prodotti
            by_status,
            scalar_result(4),    # appuntamenti di oggi
            scalar_result(2),    # sotto scorta
            scalar_result(Decimal("1530.00")),
        ]

        stats = await dashboard_service.get_stats(mock_db, today=TODAY)

        assert stats.active_clients == 12
        assert stats.active_vehicles == 15
        assert stats.active_products == 40
        assert stats.service_orders_by_status == {"open": 3, "completed": 2}
        assert stats.appointments_today == 4
        assert stats.low_stock_products == 2
        assert stats.month_revenue == Decimal("1530.00")
