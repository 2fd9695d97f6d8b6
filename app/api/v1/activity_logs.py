"""
Activity log routes.
Read-only view of a project's audit trail, newest first.
"""
from __future__ import annotations

import uuid

from fastapi import APIRouter, Query

from app.core.config import settings
from app.core.dependencies import CurrentUser, DBSession
from app.core.permissions import Capability
from app.schemas.activity_log import ActivityLogRead
from app.services.access_service import access_service
from app.services.activity_service import activity_service

router = APIRouter(prefix="/projects/{project_id}/activity", tags=["Activity Logs"])


@router.get(
    "",
    response_model=list[ActivityLogRead],
    summary="Get a project's activity log",
)
async def project_activity(
    project_id: uuid.UUID,
    current_user: CurrentUser,
    db: DBSession,
    limit: int | None = Query(default=None, ge=1, le=settings.ACTIVITY_MAX_LIMIT),
) -> list[ActivityLogRead]:
    await access_service.require(
        db, project_id=project_id, user=current_user, capability=Capability.VIEW_PROJECT
    )
    entries = await activity_service.list_for_project(
        db, project_id=project_id, limit=limit
    )
    return [ActivityLogRead.model_validate(e) for e in entries]
