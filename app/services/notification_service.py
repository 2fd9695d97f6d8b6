"""
Notification fan-out service.
Derives one notification row per affected user from an activity entry and
pushes live copies to open streams. Also serves the read/unread operations.
"""
from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundException
from app.crud.notification import crud_notification
from app.models.activity_log import ActivityLog
from app.models.notification import Notification
from app.schemas.notification import NotificationRead
from app.services.activity_service import ActivityAction
from app.services.stream_service import NotificationBroker, notification_broker

logger = logging.getLogger(__name__)

# Recipient and payload for one live delivery.
LivePush = tuple[uuid.UUID, dict[str, Any]]

NOTIFICATION_TITLES: dict[str, str] = {
    ActivityAction.PROJECT_SHARED.value: "Project shared with you",
    ActivityAction.MEMBER_ROLE_UPDATED.value: "Your project role changed",
    ActivityAction.MEMBER_REMOVED.value: "Removed from project",
    ActivityAction.TASK_CREATED.value: "New task",
    ActivityAction.TASK_UPDATED.value: "Task updated",
    ActivityAction.TASK_STATUS_CHANGED.value: "Task status changed",
    ActivityAction.TASK_DELETED.value: "Task deleted",
    ActivityAction.TASK_ASSIGNED.value: "Task assigned to you",
    ActivityAction.TASK_UNASSIGNED.value: "Task unassigned",
    ActivityAction.COMMENT_ADDED.value: "New comment",
    ActivityAction.ATTACHMENT_ADDED.value: "New attachment",
}


def affected_users(
    candidates: Iterable[uuid.UUID], actor_id: uuid.UUID
) -> list[uuid.UUID]:
    """Drop the actor and duplicates, keeping first-seen order."""
    seen: set[uuid.UUID] = set()
    result: list[uuid.UUID] = []
    for user_id in candidates:
        if user_id == actor_id or user_id in seen:
            continue
        seen.add(user_id)
        result.append(user_id)
    return result


class NotificationService:

    def __init__(self, broker: NotificationBroker) -> None:
        self.broker = broker

    # ── Fan-out ───────────────────────────────────────────────────────────────

    async def create_for_activity(
        self,
        db: AsyncSession,
        *,
        entry: ActivityLog,
        recipients: Iterable[uuid.UUID],
    ) -> list[Notification]:
        """Persist one notification per affected user. The caller commits."""
        title = NOTIFICATION_TITLES.get(
            entry.action, entry.action.replace("_", " ").capitalize()
        )
        created: list[Notification] = []
        for user_id in affected_users(recipients, entry.user_id):
            created.append(
                await crud_notification.create_notification(
                    db,
                    user_id=user_id,
                    type=entry.action,
                    title=title,
                    message=entry.description,
                    project_id=entry.project_id,
                    activity_id=entry.id,
                    entity_type=entry.entity_type,
                    entity_id=entry.entity_id,
                )
            )
        return created

    async def prepare_pushes(
        self, db: AsyncSession, notifications: Iterable[Notification]
    ) -> list[LivePush]:
        """
        Build live payloads for recipients that have an open stream.
        Runs before the commit, inside the transaction that wrote the rows, so
        each unread count already includes them and nothing is awaited between
        the commit and the publish.
        """
        pushes: list[LivePush] = []
        for notification in notifications:
            if not self.broker.is_connected(notification.user_id):
                continue
            unread = await crud_notification.count_unread(db, user_id=notification.user_id)
            payload: dict[str, Any] = {
                "unreadCount": unread,
                "notification": NotificationRead.model_validate(notification).model_dump(
                    mode="json"
                ),
            }
            pushes.append((notification.user_id, payload))
        return pushes

    def push_created(self, pushes: Iterable[LivePush]) -> None:
        """Publish prepared payloads in the order their rows were written."""
        for user_id, payload in pushes:
            self.broker.publish(user_id, payload)

    async def push_unread_count(self, db: AsyncSession, user_id: uuid.UUID) -> None:
        if not self.broker.is_connected(user_id):
            return
        unread = await crud_notification.count_unread(db, user_id=user_id)
        self.broker.publish(user_id, {"unreadCount": unread})

    # ── Reads / read-state ────────────────────────────────────────────────────

    async def list_notifications(
        self,
        db: AsyncSession,
        *,
        user_id: uuid.UUID,
        page: int,
        size: int,
        unread_only: bool = False,
    ) -> tuple[list[Notification], int]:
        return await crud_notification.list_by_user(
            db,
            user_id=user_id,
            skip=(page - 1) * size,
            limit=size,
            unread_only=unread_only,
        )

    async def unread_count(self, db: AsyncSession, *, user_id: uuid.UUID) -> int:
        return await crud_notification.count_unread(db, user_id=user_id)

    async def mark_read(
        self, db: AsyncSession, *, notification_id: uuid.UUID, user_id: uuid.UUID
    ) -> Notification:
        notification = await crud_notification.mark_as_read(
            db, notification_id=notification_id, user_id=user_id
        )
        if notification is None:
            raise NotFoundException("Notification", str(notification_id))
        await db.commit()
        await self._push_count_safely(db, user_id)
        return notification

    async def mark_all_read(self, db: AsyncSession, *, user_id: uuid.UUID) -> int:
        updated = await crud_notification.mark_all_read(db, user_id=user_id)
        await db.commit()
        await self._push_count_safely(db, user_id)
        return updated

    async def _push_count_safely(self, db: AsyncSession, user_id: uuid.UUID) -> None:
        try:
            await self.push_unread_count(db, user_id)
        except Exception:
            logger.exception("Failed to push unread count: user_id=%s", user_id)


notification_service = NotificationService(notification_broker)
