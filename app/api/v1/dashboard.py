"""
Dashboard routes.
"""
from __future__ import annotations

from fastapi import APIRouter

from app.core.dependencies import CurrentUser, DBSession
from app.schemas.dashboard import DashboardStats
from app.services.dashboard_service import dashboard_service

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


@router.get(
    "/stats",
    response_model=DashboardStats,
    summary="Project and task counts across my projects",
)
async def dashboard_stats(
    current_user: CurrentUser,
    db: DBSession,
) -> DashboardStats:
    return await dashboard_service.get_stats(db, current_user=current_user)
