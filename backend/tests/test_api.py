"""
Test degli endpoint: mappatura delle eccezioni di dominio sui codici HTTP
e commit unico per richiesta. I service sono sostituiti con patch.
"""

import datetime
import uuid
from decimal import Decimal
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy.ext.asyncio import AsyncSession

from officina.core.config import settings
from officina.core.database import get_db
from officina.core.exceptions import (
    ConflictError,
    InsufficientStockError,
    InvalidStateTransitionError,
    NotFoundError,
)
from officina.main import app
from officina.models import FinancialEntry, StockMovement
from officina.schemas.dashboard import DashboardStats
from officina.services.appointment_service import appointment_service
from officina.services.dashboard_service import dashboard_service
from officina.services.financial_service import financial_service
from officina.services.product_service import product_service
from officina.services.service_order_service import service_order_service

from conftest import ROME, make_order

API = "/api/v1"


@pytest.fixture
def session():
    db = AsyncMock(spec=AsyncSession)
    db.commit = AsyncMock()
    return db


@pytest.fixture
def client(session):
    async def override_get_db():
        yield session

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()


# ============================================================
# Mappatura errori
# ============================================================


class TestErrorMapping:

    def test_not_found(self, client):
        order_id = uuid.uuid4()
        with patch.object(
            service_order_service,
            "get_by_id",
            AsyncMock(side_effect=NotFoundError(f"Ordine di servizio con ID {order_id} non trovato")),
        ):
            response = client.get(f"{API}/service-orders/{order_id}")

        assert response.status_code == 404
        assert response.json()["error_code"] == "RESOURCE_NOT_FOUND"

    def test_insufficient_stock(self, client, session):
        error = InsufficientStockError(
            "Giacenza insufficiente",
            extra={"product_id": str(uuid.uuid4()), "available": 2, "requested": 5},
        )
        with patch.object(service_order_service, "add_product_line", AsyncMock(side_effect=error)):
            response = client.post(
                f"{API}/service-orders/{uuid.uuid4()}/products",
                json={"product_id": str(uuid.uuid4()), "quantity": 5},
            )

        assert response.status_code == 400
        body = response.json()
        assert body["error_code"] == "INSUFFICIENT_STOCK"
        assert body["extra"]["available"] == 2
        session.commit.assert_not_called()

    def test_schedule_conflict(self, client):
        error = ConflictError(
            "Esiste già un appuntamento in questo orario",
            extra={"conflicts": [{"id": str(uuid.uuid4()), "start_at": "2024-03-05T10:00:00+01:00"}]},
        )
        with patch.object(appointment_service, "create", AsyncMock(side_effect=error)):
            response = client.post(
                f"{API}/appointments/",
                json={
                    "client_id": str(uuid.uuid4()),
                    "vehicle_id": str(uuid.uuid4()),
                    "service_id": str(uuid.uuid4()),
                    "start_at": "2024-03-05T10:15:00",
                },
            )

        assert response.status_code == 400
        assert response.json()["error_code"] == "SCHEDULE_CONFLICT"
        assert len(response.json()["extra"]["conflicts"]) == 1

    def test_invalid_transition(self, client):
        error = InvalidStateTransitionError(
            "Transizione da 'completed' a 'canceled' non consentita",
            extra={"current_status": "completed", "requested_status": "canceled"},
        )
        with patch.object(service_order_service, "change_status", AsyncMock(side_effect=error)):
            response = client.patch(
                f"{API}/service-orders/{uuid.uuid4()}/status",
                json={"status": "canceled"},
            )

        assert response.status_code == 400
        assert response.json()["extra"]["current_status"] == "completed"

    def test_payload_validation_is_400(self, client):
        response = client.post(
            f"{API}/service-orders/{uuid.uuid4()}/products",
            json={"product_id": str(uuid.uuid4()), "quantity": 0},
        )
        assert response.status_code == 400
        assert response.json()["error_code"] == "VALIDATION_ERROR"

    def test_unknown_fields_rejected(self, client):
        response = client.post(
            f"{API}/service-orders/{uuid.uuid4()}/products",
            json={"product_id": str(uuid.uuid4()), "quantity": 1, "line_total": "0.01"},
        )
        assert response.status_code == 400

    @pytest.mark.parametrize(
        "path_suffix, method, payload",
        [
            ("", "put", {"installments": None}),
            ("/services/00000000-0000-0000-0000-000000000001", "patch", {"status": None}),
        ],
    )
    def test_null_on_required_column_is_400(self, client, session, path_suffix, method, payload):
        url = f"{API}/service-orders/{uuid.uuid4()}{path_suffix}"
        response = getattr(client, method)(url, json=payload)

        assert response.status_code == 400
        assert response.json()["error_code"] == "VALIDATION_ERROR"
        session.commit.assert_not_called()

    def test_unexpected_error_hides_internals(self, client):
        with patch.object(
            service_order_service,
            "get_by_id",
            AsyncMock(side_effect=RuntimeError("connessione persa")),
        ):
            response = client.get(f"{API}/service-orders/{uuid.uuid4()}")

        assert response.status_code == 500
        assert response.json() == {"detail": "Errore interno del server"}


# ============================================================
# Percorsi positivi
# ============================================================


class TestEndpoints:

    def test_availability(self, client):
        slots = [datetime.datetime(2024, 3, 5, 8, 0, tzinfo=ROME)]
        with patch.object(appointment_service, "get_availability", AsyncMock(return_value=(60, slots))):
            response = client.get(f"{API}/appointments/availability", params={"date": "2024-03-05"})

        assert response.status_code == 200
        body = response.json()
        assert body["duration_minutes"] == 60
        assert body["slots"] == ["2024-03-05T08:00:00+01:00"]

    def test_status_change_commits_once(self, client, session):
        order = make_order(status="completed")
        with patch.object(service_order_service, "change_status", AsyncMock(return_value=order)):
            response = client.patch(
                f"{API}/service-orders/{order.id}/status",
                json={"status": "completed"},
            )

        assert response.status_code == 200
        assert response.json()["number"] == order.number
        session.commit.assert_awaited_once()

    def test_payment_on_paid_entry_is_400(self, client, session):
        entry = FinancialEntry(
            id=uuid.uuid4(),
            entry_type="income",
            category="Servizi",
            description="Tagliando",
            amount=Decimal("120.00"),
            due_date=datetime.date(2024, 3, 15),
            status="paid",
        )
        with patch.object(financial_service, "get_by_id", AsyncMock(return_value=entry)):
            response = client.post(
                f"{API}/financial-entries/{entry.id}/payment",
                json={"paid_at": "2024-03-16", "payment_method": "cash"},
            )

        assert response.status_code == 400
        assert response.json()["error_code"] == "INVALID_STATE_TRANSITION"
        session.commit.assert_not_called()

    def test_dashboard_stats(self, client):
        stats = DashboardStats(
            active_clients=3,
            active_vehicles=4,
            active_products=10,
            service_orders_by_status={"open": 2},
            appointments_today=1,
            low_stock_products=0,
            month_revenue=Decimal("350.00"),
            generated_at=datetime.datetime(2024, 3, 15, 9, 0, tzinfo=ROME),
        )
        with patch.object(dashboard_service, "get_stats", AsyncMock(return_value=stats)):
            response = client.get(f"{API}/dashboard/stats")

        assert response.status_code == 200
        assert response.json()["service_orders_by_status"] == {"open": 2}

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


# ============================================================
# Operatore della richiesta
# ============================================================


class TestRequestActor:

    def _movement(self, product_id):
        return StockMovement(
            id=uuid.uuid4(),
            product_id=product_id,
            direction="in",
            quantity=5,
            stock_after=15,
            reason="Carico fornitore",
        )

    def _post_stock(self, client, headers=None):
        product_id = uuid.uuid4()
        register = AsyncMock(return_value=self._movement(product_id))
        with patch.object(product_service, "register_movement", register):
            response = client.post(
                f"{API}/products/{product_id}/stock",
                json={"direction": "in", "quantity": 5, "reason": "Carico fornitore"},
                headers=headers or {},
            )
        return response, register

    def test_anonymous_request(self, client):
        response, register = self._post_stock(client)

        assert response.status_code == 201
        assert register.await_args.kwargs["actor"].actor_id is None

    def test_token_subject_becomes_actor(self, client):
        operator_id = uuid.uuid4()
        token = jwt.encode(
            {"sub": str(operator_id), "type": "access"},
            settings.secret_key,
            algorithm=settings.jwt_algorithm,
        )

        response, register = self._post_stock(client, {"Authorization": f"Bearer {token}"})

        assert response.status_code == 201
        assert register.await_args.kwargs["actor"].actor_id == operator_id

    def test_refresh_token_rejected(self, client):
        token = jwt.encode(
            {"sub": str(uuid.uuid4()), "type": "refresh"},
            settings.secret_key,
            algorithm=settings.jwt_algorithm,
        )

        response, register = self._post_stock(client, {"Authorization": f"Bearer {token}"})

        assert response.status_code == 401
        register.assert_not_called()

    def test_invalid_token_rejected(self, client):
        response, register = self._post_stock(client, {"Authorization": "Bearer non-un-token"})

        assert response.status_code == 401
        register.assert_not_called()
