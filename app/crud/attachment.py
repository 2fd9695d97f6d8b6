"""
Attachment CRUD operations.
"""
from __future__ import annotations

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.crud.base import CRUDBase
from app.models.attachment import Attachment
from app.schemas.attachment import AttachmentRead


class CRUDAttachment(CRUDBase[Attachment, AttachmentRead, AttachmentRead]):

    async def create_attachment(
        self,
        db: AsyncSession,
        *,
        filename: str,
        storage_key: str,
        file_size: int,
        mime_type: str,
        task_id: uuid.UUID,
        comment_id: uuid.UUID | None,
        uploaded_by: uuid.UUID,
    ) -> Attachment:
        attachment = Attachment(
            filename=filename,
            storage_key=storage_key,
            file_size=file_size,
            mime_type=mime_type,
            task_id=task_id,
            comment_id=comment_id,
            uploaded_by=uploaded_by,
        )
        db.add(attachment)
        await db.flush()
        await db.refresh(attachment)
        return attachment

    async def list_by_task(
        self, db: AsyncSession, *, task_id: uuid.UUID
    ) -> list[Attachment]:
        """Attachments made on the task itself, not on one of its comments."""
        result = await db.execute(
            select(Attachment)
            .where(Attachment.task_id == task_id, Attachment.comment_id.is_(None))
            .order_by(Attachment.created_at.asc())
        )
        return list(result.scalars().all())

    async def list_by_comment(
        self, db: AsyncSession, *, comment_id: uuid.UUID
    ) -> list[Attachment]:
        result = await db.execute(
            select(Attachment)
            .where(Attachment.comment_id == comment_id)
            .order_by(Attachment.created_at.asc())
        )
        return list(result.scalars().all())

    async def get_in_task(
        self, db: AsyncSession, *, task_id: uuid.UUID, attachment_id: uuid.UUID
    ) -> Attachment | None:
        result = await db.execute(
            select(Attachment).where(
                Attachment.id == attachment_id,
                Attachment.task_id == task_id,
            )
        )
        return result.scalar_one_or_none()


crud_attachment = CRUDAttachment(Attachment)
