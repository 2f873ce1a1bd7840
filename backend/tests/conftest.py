"""
Pytest configuration and fixtures per Officina Manager.

I modelli vengono istanziati in memoria (transient) senza database:
le regole di business vivono nei metodi dei modelli e sono testabili
direttamente; i service ricevono un AsyncSession mock.
"""

import datetime
import uuid
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock
from zoneinfo import ZoneInfo

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from officina.models import (
    Appointment,
    Product,
    ProductLine,
    Service,
    ServiceLine,
    ServiceOrder,
    Vehicle,
)

ROME = ZoneInfo("Europe/Rome")
ZERO = Decimal("0.00")


# ============================================================
# Fixtures per AsyncSession Mock
# ============================================================


@pytest.fixture
def mock_db():
    """Crea un mock di AsyncSession."""
    db = AsyncMock(spec=AsyncSession)
    db.execute = AsyncMock()
    db.add = MagicMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    db.flush = AsyncMock()
    db.refresh = AsyncMock()
    db.delete = MagicMock()
    return db


# ============================================================
# Factory di modelli transient
# ============================================================


def make_service(**kwargs) -> Service:
    data = dict(
        id=uuid.uuid4(),
        code="TAGL",
        name="Tagliando",
        price=Decimal("120.00"),
        estimated_minutes=60,
        is_active=True,
    )
    data.update(kwargs)
    return Service(**data)


def make_product(**kwargs) -> Product:
    data = dict(
        id=uuid.uuid4(),
        code="FO-001",
        name="Filtro olio",
        unit_of_measure="pz",
        cost_price=Decimal("4.00"),
        sale_price=Decimal("9.50"),
        stock_quantity=10,
        min_stock=2,
        is_active=True,
    )
    data.update(kwargs)
    return Product(**data)


def make_vehicle(**kwargs) -> Vehicle:
    data = dict(
        id=uuid.uuid4(),
        client_id=uuid.uuid4(),
        plate="AB123CD",
        brand="Fiat",
        model="Panda",
        current_km=50000,
        is_active=True,
    )
    data.update(kwargs)
    return Vehicle(**data)


def make_order(**kwargs) -> ServiceOrder:
    data = dict(
        id=uuid.uuid4(),
        number="000001/032024",
        client_id=uuid.uuid4(),
        vehicle_id=uuid.uuid4(),
        status="open",
        installments=1,
        services_total=ZERO,
        products_total=ZERO,
        discount=ZERO,
        total=ZERO,
    )
    data.update(kwargs)
    return ServiceOrder(**data)


def make_service_line(price="50.00", **kwargs) -> ServiceLine:
    data = dict(
        id=uuid.uuid4(),
        service_id=uuid.uuid4(),
        description="Manodopera",
        price=Decimal(price),
        status="pending",
    )
    data.update(kwargs)
    return ServiceLine(**data)


def make_product_line(quantity=1, unit_price="10.00", **kwargs) -> ProductLine:
    data = dict(
        id=uuid.uuid4(),
        product_id=uuid.uuid4(),
        description="Ricambio",
        quantity=quantity,
        unit_price=Decimal(unit_price),
    )
    data.update(kwargs)
    return ProductLine(**data)


def make_appointment(start_at=None, minutes=60, **kwargs) -> Appointment:
    service = kwargs.pop("service", None) or make_service(estimated_minutes=minutes)
    data = dict(
        id=uuid.uuid4(),
        client_id=uuid.uuid4(),
        vehicle_id=uuid.uuid4(),
        service_id=service.id,
        start_at=start_at or datetime.datetime(2024, 3, 5, 10, 0, tzinfo=ROME),
        description=service.name,
        status="scheduled",
    )
    data.update(kwargs)
    appointment = Appointment(**data)
    appointment.service = service
    return appointment


def result_with(value):
    """Risultato di db.execute che restituisce `value` per scalar_one_or_none()."""
    result = MagicMock()
    result.scalar_one_or_none.return_value = value
    result.unique.return_value = result
    return result


def result_with_list(values):
    """Risultato di db.execute che restituisce `values` per scalars().all()."""
    result = MagicMock()
    result.scalars.return_value.all.return_value = list(values)
    return result


@pytest.fixture
def order():
    return make_order()


@pytest.fixture
def product():
    return make_product()
