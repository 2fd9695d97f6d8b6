"""
Binary storage adapter for attachments.
The database only keeps metadata; bytes live behind this interface.
LocalFileStorage writes under settings.UPLOAD_DIR, off the event loop.
"""
from __future__ import annotations

import logging
import os

from starlette.concurrency import run_in_threadpool

from app.core.config import settings

logger = logging.getLogger(__name__)


class LocalFileStorage:
    """Filesystem-backed storage. Raises OSError on any I/O failure."""

    def __init__(self, root: str) -> None:
        self.root = root

    def path_for(self, key: str) -> str:
        path = os.path.normpath(os.path.join(self.root, key))
        if not path.startswith(os.path.normpath(self.root) + os.sep):
            raise OSError(f"Storage key escapes the storage root: {key!r}")
        return path

    async def save(self, key: str, content: bytes) -> None:
        await run_in_threadpool(self._write, self.path_for(key), content)

    async def delete(self, key: str) -> None:
        await run_in_threadpool(os.remove, self.path_for(key))

    async def exists(self, key: str) -> bool:
        return await run_in_threadpool(os.path.exists, self.path_for(key))

    @staticmethod
    def _write(path: str, content: bytes) -> None:
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "wb") as f:
            f.write(content)
        logger.debug("Stored %d bytes at %s", len(content), path)


local_storage = LocalFileStorage(settings.UPLOAD_DIR)
