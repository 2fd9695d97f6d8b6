"""
ActivityLog CRUD operations.
Entries are only ever inserted and read.
"""
from __future__ import annotations

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.crud.base import CRUDBase
from app.models.activity_log import ActivityLog
from app.schemas.activity_log import ActivityLogRead


class CRUDActivityLog(CRUDBase[ActivityLog, ActivityLogRead, ActivityLogRead]):

    async def create_entry(
        self,
        db: AsyncSession,
        *,
        project_id: uuid.UUID,
        user_id: uuid.UUID | None,
        action: str,
        entity_type: str,
        entity_id: uuid.UUID | None,
        description: str,
    ) -> ActivityLog:
        entry = ActivityLog(
            project_id=project_id,
            user_id=user_id,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            description=description,
        )
        db.add(entry)
        await db.flush()
        return entry

    async def list_by_project(
        self,
        db: AsyncSession,
        *,
        project_id: uuid.UUID,
        limit: int | None = None,
    ) -> list[ActivityLog]:
        """Newest first; limit caps the number of entries returned."""
        query = (
            select(ActivityLog)
            .options(selectinload(ActivityLog.user))
            .where(ActivityLog.project_id == project_id)
            .order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc())
        )
        if limit is not None:
            query = query.limit(limit)
        result = await db.execute(query)
        return list(result.scalars().all())


crud_activity_log = CRUDActivityLog(ActivityLog)
