"""
Mutation coordinator.
Every accepted mutation ends here: the primary change is committed first,
then the activity entry and notifications are written best-effort, and only
then are live copies pushed. Nothing after the primary commit can fail the
request or undo the mutation.
"""
from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.notification import Notification
from app.models.user import User
from app.services.activity_service import ActivityAction, activity_service
from app.services.notification_service import (
    LivePush,
    NotificationService,
    notification_service,
)

logger = logging.getLogger(__name__)


class MutationCoordinator:

    def __init__(self, notifications: NotificationService) -> None:
        self.notifications = notifications

    async def finalize(
        self,
        db: AsyncSession,
        *,
        project_id: uuid.UUID,
        actor: User,
        action: ActivityAction,
        entity_type: str,
        entity_id: uuid.UUID | None,
        description: str,
        recipients: Iterable[uuid.UUID] = (),
    ) -> None:
        # Primary mutation: errors here propagate to the caller.
        await db.commit()

        actor_id = actor.id
        created: list[Notification] = []
        pushes: list[LivePush] = []
        try:
            entry = await activity_service.record(
                db,
                project_id=project_id,
                actor_id=actor_id,
                action=action,
                entity_type=entity_type,
                entity_id=entity_id,
                description=description,
            )
            created = await self.notifications.create_for_activity(
                db, entry=entry, recipients=list(recipients)
            )
            pushes = await self.notifications.prepare_pushes(db, created)
            await db.commit()
        except Exception:
            logger.exception(
                "Activity/notification write failed after commit: project_id=%s action=%s",
                project_id,
                action.value,
            )
            await db.rollback()
            return

        logger.info(
            "%s on project %s by %s (%d notified)",
            action.value,
            project_id,
            actor_id,
            len(created),
        )

        try:
            self.notifications.push_created(pushes)
        except Exception:
            logger.exception("Live push failed: project_id=%s action=%s", project_id, action.value)


mutation_coordinator = MutationCoordinator(notification_service)
