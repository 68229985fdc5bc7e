from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from core.auth import Caller, require_admin
from core.database import get_db
from ..schemas.analytics_schemas import AnalyticsResponse, DashboardStatsResponse
from ..services.dashboard_service import DashboardService


router = APIRouter(prefix="/admin", tags=["Analytics"])


def get_dashboard_service(db: Session = Depends(get_db)) -> DashboardService:
    return DashboardService(db)


@router.get("/stats", response_model=DashboardStatsResponse)
async def get_dashboard_stats(
    current_user: Caller = Depends(require_admin),
    dashboard_service: DashboardService = Depends(get_dashboard_service),
):
    """Today's paid orders and revenue, pending count, low stock and recent orders."""
    return {"success": True, "data": dashboard_service.get_dashboard_stats()}


@router.get("/analytics", response_model=AnalyticsResponse)
async def get_analytics(
    current_user: Caller = Depends(require_admin),
    dashboard_service: DashboardService = Depends(get_dashboard_service),
):
    return {"success": True, "data": dashboard_service.get_analytics()}
