"""
Dashboard Pydantic schemas.
"""
from __future__ import annotations

from pydantic import BaseModel


class DashboardStats(BaseModel):
    total_projects: int = 0
    total_tasks: int = 0
    done_tasks: int = 0
    overdue_tasks: int = 0
