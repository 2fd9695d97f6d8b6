"""
Activity logging service.
Appends immutable audit records to the activity_logs table. Only the
mutation coordinator calls record(), and only after the mutation committed.
"""
from __future__ import annotations

import enum
import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from app.crud.activity_log import crud_activity_log
from app.models.activity_log import ActivityLog

logger = logging.getLogger(__name__)


class ActivityAction(str, enum.Enum):
    PROJECT_CREATED = "PROJECT_CREATED"
    PROJECT_SHARED = "PROJECT_SHARED"
    MEMBER_ROLE_UPDATED = "MEMBER_ROLE_UPDATED"
    MEMBER_REMOVED = "MEMBER_REMOVED"
    TASK_CREATED = "TASK_CREATED"
    TASK_UPDATED = "TASK_UPDATED"
    TASK_STATUS_CHANGED = "TASK_STATUS_CHANGED"
    TASK_DELETED = "TASK_DELETED"
    TASK_ASSIGNED = "TASK_ASSIGNED"
    TASK_UNASSIGNED = "TASK_UNASSIGNED"
    COMMENT_ADDED = "COMMENT_ADDED"
    COMMENT_UPDATED = "COMMENT_UPDATED"
    COMMENT_DELETED = "COMMENT_DELETED"
    ATTACHMENT_ADDED = "ATTACHMENT_ADDED"
    ATTACHMENT_DELETED = "ATTACHMENT_DELETED"


class ActivityService:

    async def record(
        self,
        db: AsyncSession,
        *,
        project_id: uuid.UUID,
        actor_id: uuid.UUID,
        action: ActivityAction,
        entity_type: str,
        entity_id: uuid.UUID | None,
        description: str,
    ) -> ActivityLog:
        """Append one activity entry. Errors propagate to the coordinator."""
        try:
            return await crud_activity_log.create_entry(
                db,
                project_id=project_id,
                user_id=actor_id,
                action=action.value,
                entity_type=entity_type,
                entity_id=entity_id,
                description=description,
            )
        except Exception as exc:
            logger.error(
                "Failed to write activity log: project_id=%s actor_id=%s action=%s: %s",
                project_id,
                actor_id,
                action.value,
                exc,
            )
            raise

    async def list_for_project(
        self,
        db: AsyncSession,
        *,
        project_id: uuid.UUID,
        limit: int | None = None,
    ) -> list[ActivityLog]:
        return await crud_activity_log.list_by_project(
            db, project_id=project_id, limit=limit
        )


activity_service = ActivityService()
