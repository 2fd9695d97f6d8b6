"""
Dashboard statistics.
A best-effort read: when the database cannot answer, the widget shows zero
counts instead of failing the page.
"""
from __future__ import annotations

import logging
from datetime import date

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.crud.project import crud_project
from app.crud.task import crud_task
from app.models.user import User
from app.schemas.dashboard import DashboardStats

logger = logging.getLogger(__name__)


class DashboardService:

    async def get_stats(
        self,
        db: AsyncSession,
        *,
        current_user: User,
        today: date | None = None,
    ) -> DashboardStats:
        try:
            projects = await crud_project.list_for_user(db, user_id=current_user.id)
            total, done, overdue = await crud_task.stats_for_user(
                db, user_id=current_user.id, today=today or date.today()
            )
        except SQLAlchemyError:
            logger.exception("Dashboard stats unavailable for user_id=%s", current_user.id)
            return DashboardStats()
        return DashboardStats(
            total_projects=len(projects),
            total_tasks=total,
            done_tasks=done,
            overdue_tasks=overdue,
        )


dashboard_service = DashboardService()
