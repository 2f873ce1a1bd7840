"""
Unit tests per numerazione ordini, registro di audit e record immutabili.
"""

import datetime
import uuid
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from officina.core.exceptions import BusinessValidationError
from officina.models import AuditLog, StockMovement
from officina.models.mixins import update_timestamp
from officina.schemas.audit_log import RequestActor
from officina.services.audit_service import audit_service
from officina.services.counter_service import counter_service, format_order_number

from conftest import make_product


class TestOrderNumber:

    def test_format(self):
        assert format_order_number(42, datetime.date(2024, 3, 5)) == "000042/032024"
        assert format_order_number(123456, datetime.date(2025, 12, 31)) == "123456/122025"

    async def test_next_value_reads_returning(self, mock_db):
        result = MagicMock()
        result.scalar_one.return_value = 7
        mock_db.execute.return_value = result

        assert await counter_service.next_value(mock_db, "service_order") == 7
        mock_db.execute.assert_awaited_once()


class TestAuditRecord:

    def test_record_is_only_queued(self, mock_db):
        actor = RequestActor(actor_id=uuid.uuid4(), ip_address="10.0.0.1")
        entity_id = uuid.uuid4()

        entry = audit_service.record(
            mock_db, actor, "update", "service_order", entity_id, {"line_id": entity_id}
        )

        assert isinstance(entry, AuditLog)
        assert entry.actor_id == actor.actor_id
        assert entry.ip_address == "10.0.0.1"
        assert entry.details == {"line_id": str(entity_id)}
        mock_db.add.assert_called_once_with(entry)
        mock_db.flush.assert_not_called()

    def test_anonymous_actor(self, mock_db):
        entry = audit_service.record(mock_db, None, "create", "client", uuid.uuid4())
        assert entry.actor_id is None
        assert entry.details is None


class TestAppendOnly:

    def _session(self, new=(), dirty=(), deleted=()):
        session = SimpleNamespace(new=list(new), dirty=list(dirty), deleted=list(deleted))
        session.is_modified = lambda obj, include_collections=False: True
        return session

    def test_delete_rejected(self):
        movement = StockMovement(product_id=uuid.uuid4(), direction="in", quantity=1, stock_after=1, reason="x")
        with pytest.raises(BusinessValidationError):
            update_timestamp(self._session(deleted=[movement]), None, None)

    def test_update_rejected(self):
        entry = AuditLog(action="create", entity_type="client")
        with pytest.raises(BusinessValidationError):
            update_timestamp(self._session(dirty=[entry]), None, None)

    def test_regular_entities_get_updated_at(self):
        product = make_product()
        update_timestamp(self._session(dirty=[product]), None, None)
        assert product.updated_at is not None
