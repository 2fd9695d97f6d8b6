"""
Live notification delivery.
Keeps a registry of open stream connections and hands each one its own
bounded queue. Publishing never blocks: a slow consumer loses live copies,
never the persisted notification rows.
"""
from __future__ import annotations

import asyncio
import json
import logging
import uuid
from collections.abc import AsyncIterator
from typing import Any

from app.core.config import settings

logger = logging.getLogger(__name__)

STREAM_EVENT = "notification"


class NotificationBroker:
    """
    Maps user_id → set of open connection queues (a user may have multiple tabs).
    All methods run on the event loop thread, so no locking is required.
    """

    def __init__(self, queue_size: int | None = None) -> None:
        self._queue_size = queue_size or settings.NOTIFICATION_QUEUE_SIZE
        self._connections: dict[uuid.UUID, set[asyncio.Queue[dict[str, Any]]]] = {}

    def connect(self, user_id: uuid.UUID) -> asyncio.Queue[dict[str, Any]]:
        queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue(maxsize=self._queue_size)
        self._connections.setdefault(user_id, set()).add(queue)
        logger.info("Stream connected: user_id=%s", user_id)
        return queue

    def disconnect(self, user_id: uuid.UUID, queue: asyncio.Queue[dict[str, Any]]) -> None:
        queues = self._connections.get(user_id)
        if queues is not None:
            queues.discard(queue)
            if not queues:
                del self._connections[user_id]
        logger.info("Stream disconnected: user_id=%s", user_id)

    def is_connected(self, user_id: uuid.UUID) -> bool:
        return bool(self._connections.get(user_id))

    def publish(self, user_id: uuid.UUID, payload: dict[str, Any]) -> int:
        """
        Enqueue payload on every open connection of the user.
        Returns the number of connections that accepted it.
        """
        delivered = 0
        for queue in list(self._connections.get(user_id, ())):
            try:
                queue.put_nowait(payload)
                delivered += 1
            except asyncio.QueueFull:
                logger.warning(
                    "Stream queue full, dropping live event: user_id=%s", user_id
                )
        return delivered

    @property
    def connected_user_count(self) -> int:
        return len(self._connections)


def format_event(payload: dict[str, Any], event: str = STREAM_EVENT) -> str:
    """Serialize one Server-Sent Events frame."""
    return f"event: {event}\ndata: {json.dumps(payload, default=str)}\n\n"


async def event_stream(
    broker: NotificationBroker,
    user_id: uuid.UUID,
    *,
    initial: dict[str, Any],
    keepalive: float | None = None,
) -> AsyncIterator[str]:
    """
    Yield SSE frames for one connection until the client goes away.
    The queue is registered on first iteration, so a response that never
    starts sending holds nothing. Once registered it is always released,
    whether the generator is exhausted, closed or cancelled.
    """
    interval = keepalive if keepalive is not None else settings.STREAM_KEEPALIVE_SECONDS
    queue = broker.connect(user_id)
    try:
        yield format_event(initial)
        while True:
            try:
                payload = await asyncio.wait_for(queue.get(), timeout=interval)
            except asyncio.TimeoutError:
                yield ": keepalive\n\n"
                continue
            yield format_event(payload)
    finally:
        broker.disconnect(user_id, queue)


# Singleton instance shared across the application
notification_broker = NotificationBroker()
