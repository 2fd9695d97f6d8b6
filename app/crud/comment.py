"""
Comment CRUD operations.
"""
from __future__ import annotations

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.crud.base import CRUDBase
from app.models.comment import Comment
from app.schemas.comment import CommentCreate, CommentUpdate


class CRUDComment(CRUDBase[Comment, CommentCreate, CommentUpdate]):

    async def create_comment(
        self,
        db: AsyncSession,
        *,
        content: str,
        task_id: uuid.UUID,
        author_id: uuid.UUID,
    ) -> Comment:
        comment = Comment(content=content, task_id=task_id, author_id=author_id)
        db.add(comment)
        await db.flush()
        await db.refresh(comment)
        return comment

    async def list_by_task(
        self, db: AsyncSession, *, task_id: uuid.UUID
    ) -> list[Comment]:
        result = await db.execute(
            select(Comment)
            .options(selectinload(Comment.author))
            .where(Comment.task_id == task_id)
            .order_by(Comment.created_at.asc(), Comment.id.asc())
        )
        return list(result.scalars().all())

    async def get_in_task(
        self, db: AsyncSession, *, task_id: uuid.UUID, comment_id: uuid.UUID
    ) -> Comment | None:
        result = await db.execute(
            select(Comment).where(Comment.id == comment_id, Comment.task_id == task_id)
        )
        return result.scalar_one_or_none()

    async def get_with_author(
        self, db: AsyncSession, comment_id: uuid.UUID
    ) -> Comment | None:
        result = await db.execute(
            select(Comment)
            .options(selectinload(Comment.author))
            .where(Comment.id == comment_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()


crud_comment = CRUDComment(Comment)
