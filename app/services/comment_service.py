"""
Comment service.
Authors edit their own comments; deletion is open to the author or to any
role allowed to moderate comments.
"""
from __future__ import annotations

import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundException, PermissionDeniedException
from app.core.permissions import Capability
from app.crud.comment import crud_comment
from app.crud.task import crud_task
from app.models.comment import Comment
from app.models.user import User
from app.schemas.comment import CommentCreate, CommentUpdate
from app.services.access_service import access_service
from app.services.activity_service import ActivityAction
from app.services.coordinator import mutation_coordinator
from app.services.task_service import get_task_or_404

ENTITY_COMMENT = "COMMENT"


class CommentService:

    async def list_comments(
        self,
        db: AsyncSession,
        *,
        project_id: uuid.UUID,
        task_id: uuid.UUID,
        current_user: User,
    ) -> list[Comment]:
        await access_service.require(
            db, project_id=project_id, user=current_user, capability=Capability.VIEW_PROJECT
        )
        await get_task_or_404(db, project_id=project_id, task_id=task_id)
        return await crud_comment.list_by_task(db, task_id=task_id)

    async def add_comment(
        self,
        db: AsyncSession,
        *,
        project_id: uuid.UUID,
        task_id: uuid.UUID,
        comment_in: CommentCreate,
        current_user: User,
    ) -> Comment:
        await access_service.require(
            db, project_id=project_id, user=current_user, capability=Capability.COMMENT
        )
        task = await get_task_or_404(db, project_id=project_id, task_id=task_id)
        comment = await crud_comment.create_comment(
            db, content=comment_in.content, task_id=task_id, author_id=current_user.id
        )
        comment_id = comment.id
        recipients = await crud_task.assignee_ids(db, task_id=task_id)

        await mutation_coordinator.finalize(
            db,
            project_id=project_id,
            actor=current_user,
            action=ActivityAction.COMMENT_ADDED,
            entity_type=ENTITY_COMMENT,
            entity_id=comment_id,
            description=f"{current_user.display_name} commented on task '{task.title}'",
            recipients=recipients,
        )
        return await crud_comment.get_with_author(db, comment_id)  # type: ignore[return-value]

    async def update_comment(
        self,
        db: AsyncSession,
        *,
        project_id: uuid.UUID,
        task_id: uuid.UUID,
        comment_id: uuid.UUID,
        comment_in: CommentUpdate,
        current_user: User,
    ) -> Comment:
        await access_service.require(
            db, project_id=project_id, user=current_user, capability=Capability.COMMENT
        )
        task = await get_task_or_404(db, project_id=project_id, task_id=task_id)
        comment = await self._get_comment_or_404(db, task_id=task_id, comment_id=comment_id)
        if comment.author_id != current_user.id:
            raise PermissionDeniedException("Only the author can edit this comment")

        await crud_comment.update(db, db_obj=comment, obj_in=comment_in)
        await mutation_coordinator.finalize(
            db,
            project_id=project_id,
            actor=current_user,
            action=ActivityAction.COMMENT_UPDATED,
            entity_type=ENTITY_COMMENT,
            entity_id=comment_id,
            description=f"{current_user.display_name} edited a comment on task '{task.title}'",
        )
        return await crud_comment.get_with_author(db, comment_id)  # type: ignore[return-value]

    async def delete_comment(
        self,
        db: AsyncSession,
        *,
        project_id: uuid.UUID,
        task_id: uuid.UUID,
        comment_id: uuid.UUID,
        current_user: User,
    ) -> None:
        ctx = await access_service.require(
            db, project_id=project_id, user=current_user, capability=Capability.VIEW_PROJECT
        )
        task = await get_task_or_404(db, project_id=project_id, task_id=task_id)
        comment = await self._get_comment_or_404(db, task_id=task_id, comment_id=comment_id)

        is_author = comment.author_id == current_user.id
        allowed = (
            ctx.can(Capability.COMMENT) if is_author else ctx.can(Capability.MODERATE_COMMENTS)
        )
        if not allowed:
            raise PermissionDeniedException(
                "Only the author or a project manager can delete this comment"
            )

        description = (
            f"{current_user.display_name} deleted "
            f"{'their' if is_author else 'a'} comment on task '{task.title}'"
        )
        await db.delete(comment)
        await db.flush()

        await mutation_coordinator.finalize(
            db,
            project_id=project_id,
            actor=current_user,
            action=ActivityAction.COMMENT_DELETED,
            entity_type=ENTITY_COMMENT,
            entity_id=comment_id,
            description=description,
        )

    async def _get_comment_or_404(
        self, db: AsyncSession, *, task_id: uuid.UUID, comment_id: uuid.UUID
    ) -> Comment:
        comment = await crud_comment.get_in_task(db, task_id=task_id, comment_id=comment_id)
        if comment is None:
            raise NotFoundException("Comment", str(comment_id))
        return comment


comment_service = CommentService()
