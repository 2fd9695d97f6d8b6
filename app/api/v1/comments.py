"""
Comment routes nested under tasks.
/api/v1/projects/{project_id}/tasks/{task_id}/comments
"""
from __future__ import annotations

import uuid

from fastapi import APIRouter, status

from app.core.dependencies import CurrentUser, DBSession
from app.schemas.comment import CommentCreate, CommentRead, CommentUpdate
from app.services.comment_service import comment_service

router = APIRouter(
    prefix="/projects/{project_id}/tasks/{task_id}/comments", tags=["Comments"]
)


@router.get(
    "",
    response_model=list[CommentRead],
    summary="List comments on a task, oldest first",
)
async def list_comments(
    project_id: uuid.UUID,
    task_id: uuid.UUID,
    current_user: CurrentUser,
    db: DBSession,
) -> list[CommentRead]:
    comments = await comment_service.list_comments(
        db, project_id=project_id, task_id=task_id, current_user=current_user
    )
    return [CommentRead.model_validate(c) for c in comments]


@router.post(
    "",
    response_model=CommentRead,
    status_code=status.HTTP_201_CREATED,
    summary="Add a comment to a task",
)
async def add_comment(
    project_id: uuid.UUID,
    task_id: uuid.UUID,
    comment_in: CommentCreate,
    current_user: CurrentUser,
    db: DBSession,
) -> CommentRead:
    comment = await comment_service.add_comment(
        db,
        project_id=project_id,
        task_id=task_id,
        comment_in=comment_in,
        current_user=current_user,
    )
    return CommentRead.model_validate(comment)


@router.put(
    "/{comment_id}",
    response_model=CommentRead,
    summary="Edit a comment (author only)",
)
async def update_comment(
    project_id: uuid.UUID,
    task_id: uuid.UUID,
    comment_id: uuid.UUID,
    comment_in: CommentUpdate,
    current_user: CurrentUser,
    db: DBSession,
) -> CommentRead:
    comment = await comment_service.update_comment(
        db,
        project_id=project_id,
        task_id=task_id,
        comment_id=comment_id,
        comment_in=comment_in,
        current_user=current_user,
    )
    return CommentRead.model_validate(comment)


@router.delete(
    "/{comment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a comment (author or moderator)",
)
async def delete_comment(
    project_id: uuid.UUID,
    task_id: uuid.UUID,
    comment_id: uuid.UUID,
    current_user: CurrentUser,
    db: DBSession,
) -> None:
    await comment_service.delete_comment(
        db,
        project_id=project_id,
        task_id=task_id,
        comment_id=comment_id,
        current_user=current_user,
    )
