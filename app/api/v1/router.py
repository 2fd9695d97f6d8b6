"""
Aggregates all v1 API routers into a single APIRouter.
"""
from __future__ import annotations

from fastapi import APIRouter

from app.api.v1 import (
    activity_logs,
    attachments,
    comments,
    dashboard,
    members,
    notifications,
    projects,
    tasks,
    users,
)

api_router = APIRouter()

api_router.include_router(users.router)
api_router.include_router(projects.router)
api_router.include_router(members.router)
api_router.include_router(tasks.router)
api_router.include_router(comments.router)
api_router.include_router(attachments.router)
api_router.include_router(activity_logs.router)
api_router.include_router(notifications.router)
api_router.include_router(dashboard.router)
