"""
Notification routes.
Listing and read-state operations, plus the Server-Sent Events stream that
pushes unread counts and new notifications to connected clients.
"""
from __future__ import annotations

import uuid

from fastapi import APIRouter, Query, status
from fastapi.responses import StreamingResponse

from app.core.dependencies import CurrentUser, DBSession, resolve_token_user
from app.schemas.notification import NotificationRead, UnreadCount
from app.schemas.pagination import PaginatedResponse
from app.services.notification_service import notification_service
from app.services.stream_service import event_stream

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get(
    "",
    response_model=PaginatedResponse[NotificationRead],
    summary="List my notifications, newest first",
)
async def list_notifications(
    current_user: CurrentUser,
    db: DBSession,
    page: int = Query(default=1, ge=1),
    size: int = Query(default=20, ge=1, le=100),
    unread_only: bool = Query(default=False),
) -> PaginatedResponse[NotificationRead]:
    notifications, total = await notification_service.list_notifications(
        db, user_id=current_user.id, page=page, size=size, unread_only=unread_only
    )
    return PaginatedResponse(
        items=[NotificationRead.model_validate(n) for n in notifications],
        total=total,
        page=page,
        size=size,
    )


@router.get(
    "/unread/count",
    response_model=UnreadCount,
    summary="Count my unread notifications",
)
async def unread_count(
    current_user: CurrentUser,
    db: DBSession,
) -> UnreadCount:
    count = await notification_service.unread_count(db, user_id=current_user.id)
    return UnreadCount(unread_count=count)


@router.put(
    "/read-all",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Mark all notifications as read",
)
async def mark_all_read(
    current_user: CurrentUser,
    db: DBSession,
) -> None:
    await notification_service.mark_all_read(db, user_id=current_user.id)


@router.put(
    "/{notification_id}/read",
    response_model=NotificationRead,
    summary="Mark a notification as read",
)
async def mark_as_read(
    notification_id: uuid.UUID,
    current_user: CurrentUser,
    db: DBSession,
) -> NotificationRead:
    notification = await notification_service.mark_read(
        db, notification_id=notification_id, user_id=current_user.id
    )
    return NotificationRead.model_validate(notification)


@router.get(
    "/stream",
    response_class=StreamingResponse,
    summary="Open the live notification stream (Server-Sent Events)",
)
async def notification_stream(
    db: DBSession,
    token: str | None = Query(default=None),
) -> StreamingResponse:
    """
    EventSource clients cannot set headers, so the access token travels in
    the query string and is checked once, before the stream opens.
    """
    user = await resolve_token_user(db, token)
    user_id = user.id
    unread = await notification_service.unread_count(db, user_id=user_id)
    # Hand the pooled connection back before the long-lived response starts.
    await db.close()

    return StreamingResponse(
        event_stream(notification_service.broker, user_id, initial={"unreadCount": unread}),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )
