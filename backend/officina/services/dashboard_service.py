"""
Service Layer per le statistiche della dashboard
Progetto: Officina Manager
"""

import datetime
import logging
from decimal import Decimal
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from officina.core.config import settings
from officina.models import Appointment, Client, Product, ServiceOrder, Vehicle
from officina.schemas.appointment import ACTIVE_STATUSES
from officina.schemas.dashboard import DashboardStats
from officina.schemas.service_order import ServiceOrderStatus
from officina.services.appointment_service import day_bounds

logger = logging.getLogger(__name__)

# Ordini che concorrono al fatturato del mese
_BILLED_STATUSES = [ServiceOrderStatus.COMPLETED.value, ServiceOrderStatus.DELIVERED.value]


def month_bounds(today: datetime.date) -> tuple[datetime.datetime, datetime.datetime]:
    """Primo istante del mese locale e del mese successivo."""
    first = today.replace(day=1)
    following = (first + datetime.timedelta(days=32)).replace(day=1)
    start = datetime.datetime.combine(first, datetime.time.min, tzinfo=settings.tzinfo)
    end = datetime.datetime.combine(following, datetime.time.min, tzinfo=settings.tzinfo)
    return start, end


class DashboardService:

    async def _count(self, db: AsyncSession, model, *conditions) -> int:
        query = select(func.count()).select_from(model)
        if conditions:
            query = query.where(*conditions)
        return (await db.execute(query)).scalar() or 0

    async def get_stats(
        self,
        db: AsyncSession,
        today: Optional[datetime.date] = None,
    ) -> DashboardStats:
        """
        Contatori anagrafici, ordini per stato, appuntamenti attivi del giorno,
        prodotti sotto scorta e fatturato del mese (ordini completati o consegnati).
        """
        today = today or datetime.datetime.now(settings.tzinfo).date()

        clients = await self._count(db, Client, Client.is_active == True)
        vehicles = await self._count(db, Vehicle, Vehicle.is_active == True)
        products = await self._count(db, Product, Product.is_active == True)

        rows = await db.execute(
            select(ServiceOrder.status, func.count(ServiceOrder.id)).group_by(ServiceOrder.status)
        )
        orders_by_status = {status: count for status, count in rows.all()}

        day_start, day_end = day_bounds(today)
        appointments_today = await self._count(
            db,
            Appointment,
            Appointment.start_at >= day_start,
            Appointment.start_at < day_end,
            Appointment.status.in_([s.value for s in ACTIVE_STATUSES]),
        )

        low_stock = await self._count(
            db,
            Product,
            Product.is_active == True,
            Product.stock_quantity <= Product.min_stock,
        )

        month_start, month_end = month_bounds(today)
        revenue = (
            await db.execute(
                select(func.coalesce(func.sum(ServiceOrder.total), 0)).where(
                    ServiceOrder.status.in_(_BILLED_STATUSES),
                    ServiceOrder.completed_at >= month_start,
                    ServiceOrder.completed_at < month_end,
                )
            )
        ).scalar()

        stats = DashboardStats(
            active_clients=clients,
            active_vehicles=vehicles,
            active_products=products,
            service_orders_by_status=orders_by_status,
            appointments_today=appointments_today,
            low_stock_products=low_stock,
            month_revenue=Decimal(revenue or 0),
            generated_at=datetime.datetime.now(settings.tzinfo),
        )
        logger.debug("Statistiche dashboard calcolate per %s", today)
        return stats


# Istanza singleton del service
dashboard_service = DashboardService()
