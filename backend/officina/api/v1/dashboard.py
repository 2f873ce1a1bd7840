"""
Router FastAPI per la dashboard
Progetto: Officina Manager
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from officina.core.database import get_db
from officina.schemas.dashboard import DashboardStats
from officina.services.dashboard_service import dashboard_service

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


@router.get("/stats", name="dashboard_statistiche", response_model=DashboardStats)
async def get_stats(db: AsyncSession = Depends(get_db)) -> DashboardStats:
    return await dashboard_service.get_stats(db)
