"""
Attachment service.
Validates uploads, hands bytes to the storage adapter and records metadata.
Oversized uploads are refused from their declared size before storage is
touched; a storage failure leaves no metadata row behind.
"""
from __future__ import annotations

import logging
import os
import uuid

from fastapi import UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import (
    FileTooLargeException,
    NotFoundException,
    UpstreamUnavailableException,
    ValidationException,
)
from app.core.permissions import Capability
from app.crud.attachment import crud_attachment
from app.crud.comment import crud_comment
from app.crud.task import crud_task
from app.models.attachment import Attachment
from app.models.user import User
from app.services.access_service import access_service
from app.services.activity_service import ActivityAction
from app.services.coordinator import mutation_coordinator
from app.services.storage import LocalFileStorage, local_storage
from app.services.task_service import get_task_or_404

logger = logging.getLogger(__name__)

ENTITY_ATTACHMENT = "ATTACHMENT"


def _clean_filename(filename: str | None) -> str:
    name = os.path.basename((filename or "").replace("\\", "/")).strip()
    if not name:
        raise ValidationException("File name must not be empty")
    return name


class AttachmentService:

    def __init__(self, storage: LocalFileStorage) -> None:
        self.storage = storage

    async def list_attachments(
        self,
        db: AsyncSession,
        *,
        project_id: uuid.UUID,
        task_id: uuid.UUID,
        current_user: User,
        comment_id: uuid.UUID | None = None,
    ) -> list[Attachment]:
        await access_service.require(
            db, project_id=project_id, user=current_user, capability=Capability.VIEW_PROJECT
        )
        await get_task_or_404(db, project_id=project_id, task_id=task_id)
        if comment_id is None:
            return await crud_attachment.list_by_task(db, task_id=task_id)
        await self._get_comment_or_404(db, task_id=task_id, comment_id=comment_id)
        return await crud_attachment.list_by_comment(db, comment_id=comment_id)

    async def upload(
        self,
        db: AsyncSession,
        *,
        project_id: uuid.UUID,
        task_id: uuid.UUID,
        file: UploadFile,
        current_user: User,
        comment_id: uuid.UUID | None = None,
    ) -> Attachment:
        await access_service.require(
            db, project_id=project_id, user=current_user, capability=Capability.MANAGE_ATTACHMENTS
        )
        task = await get_task_or_404(db, project_id=project_id, task_id=task_id)
        if comment_id is not None:
            await self._get_comment_or_404(db, task_id=task_id, comment_id=comment_id)

        filename = _clean_filename(file.filename)
        max_bytes = settings.max_attachment_size_bytes
        if file.size is not None and file.size > max_bytes:
            raise FileTooLargeException(settings.MAX_ATTACHMENT_SIZE_MB)

        content = await file.read()
        if len(content) > max_bytes:
            raise FileTooLargeException(settings.MAX_ATTACHMENT_SIZE_MB)

        storage_key = f"{project_id}/{task_id}/{uuid.uuid4().hex}_{filename}"
        try:
            await self.storage.save(storage_key, content)
        except OSError as exc:
            logger.exception("Attachment storage failed: key=%s", storage_key)
            raise UpstreamUnavailableException("File storage is currently unavailable") from exc

        attachment = await crud_attachment.create_attachment(
            db,
            filename=filename,
            storage_key=storage_key,
            file_size=len(content),
            mime_type=file.content_type or "application/octet-stream",
            task_id=task_id,
            comment_id=comment_id,
            uploaded_by=current_user.id,
        )
        attachment_id = attachment.id
        recipients = await crud_task.assignee_ids(db, task_id=task_id)

        await mutation_coordinator.finalize(
            db,
            project_id=project_id,
            actor=current_user,
            action=ActivityAction.ATTACHMENT_ADDED,
            entity_type=ENTITY_ATTACHMENT,
            entity_id=attachment_id,
            description=(
                f"{current_user.display_name} attached '{filename}' to task '{task.title}'"
            ),
            recipients=recipients,
        )
        return await crud_attachment.get(db, attachment_id)  # type: ignore[return-value]

    async def get_attachment(
        self,
        db: AsyncSession,
        *,
        project_id: uuid.UUID,
        task_id: uuid.UUID,
        attachment_id: uuid.UUID,
        current_user: User,
    ) -> tuple[Attachment, str]:
        """Return the metadata row and the local path of its bytes."""
        await access_service.require(
            db, project_id=project_id, user=current_user, capability=Capability.VIEW_PROJECT
        )
        await get_task_or_404(db, project_id=project_id, task_id=task_id)
        attachment = await self._get_attachment_or_404(
            db, task_id=task_id, attachment_id=attachment_id
        )
        if not await self.storage.exists(attachment.storage_key):
            raise NotFoundException("Attachment file", str(attachment_id))
        return attachment, self.storage.path_for(attachment.storage_key)

    async def delete_attachment(
        self,
        db: AsyncSession,
        *,
        project_id: uuid.UUID,
        task_id: uuid.UUID,
        attachment_id: uuid.UUID,
        current_user: User,
    ) -> None:
        await access_service.require(
            db, project_id=project_id, user=current_user, capability=Capability.MANAGE_ATTACHMENTS
        )
        task = await get_task_or_404(db, project_id=project_id, task_id=task_id)
        attachment = await self._get_attachment_or_404(
            db, task_id=task_id, attachment_id=attachment_id
        )
        storage_key = attachment.storage_key
        filename = attachment.filename
        description = (
            f"{current_user.display_name} removed '{filename}' from task '{task.title}'"
        )

        await db.delete(attachment)
        await db.flush()

        await mutation_coordinator.finalize(
            db,
            project_id=project_id,
            actor=current_user,
            action=ActivityAction.ATTACHMENT_DELETED,
            entity_type=ENTITY_ATTACHMENT,
            entity_id=attachment_id,
            description=description,
        )

        try:
            await self.storage.delete(storage_key)
        except OSError:
            logger.warning("Could not remove stored file for attachment %s", attachment_id)

    async def _get_comment_or_404(
        self, db: AsyncSession, *, task_id: uuid.UUID, comment_id: uuid.UUID
    ) -> None:
        if await crud_comment.get_in_task(db, task_id=task_id, comment_id=comment_id) is None:
            raise NotFoundException("Comment", str(comment_id))

    async def _get_attachment_or_404(
        self, db: AsyncSession, *, task_id: uuid.UUID, attachment_id: uuid.UUID
    ) -> Attachment:
        attachment = await crud_attachment.get_in_task(
            db, task_id=task_id, attachment_id=attachment_id
        )
        if attachment is None:
            raise NotFoundException("Attachment", str(attachment_id))
        return attachment


attachment_service = AttachmentService(local_storage)
