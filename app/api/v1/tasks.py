"""
Task routes.
/api/v1/projects/{project_id}/tasks: filtered listing, full-replace updates,
kanban status moves and assignment.
"""
from __future__ import annotations

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from app.core.dependencies import CurrentUser, DBSession
from app.schemas.task import (
    TaskAssign,
    TaskCreate,
    TaskFilter,
    TaskPriority,
    TaskRead,
    TaskStatus,
    TaskStatusUpdate,
    TaskUpdate,
)
from app.schemas.user import UserReadPublic
from app.services.task_service import task_service

router = APIRouter(prefix="/projects/{project_id}/tasks", tags=["Tasks"])


def _task_filter_params(
    status: TaskStatus | None = Query(default=None),
    priority: TaskPriority | None = Query(default=None),
    search: str | None = Query(default=None, max_length=200),
) -> TaskFilter:
    return TaskFilter(status=status, priority=priority, search=search or None)


@router.get(
    "",
    response_model=list[TaskRead],
    summary="List a project's tasks with optional filters",
)
async def list_tasks(
    project_id: uuid.UUID,
    current_user: CurrentUser,
    db: DBSession,
    filters: Annotated[TaskFilter, Depends(_task_filter_params)],
) -> list[TaskRead]:
    tasks = await task_service.list_tasks(
        db, project_id=project_id, filters=filters, current_user=current_user
    )
    return [TaskRead.model_validate(t) for t in tasks]


@router.post(
    "",
    response_model=TaskRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create a task",
)
async def create_task(
    project_id: uuid.UUID,
    task_in: TaskCreate,
    current_user: CurrentUser,
    db: DBSession,
) -> TaskRead:
    task = await task_service.create_task(
        db, project_id=project_id, task_in=task_in, current_user=current_user
    )
    return TaskRead.model_validate(task)


@router.get(
    "/{task_id}",
    response_model=TaskRead,
    summary="Get a task",
)
async def get_task(
    project_id: uuid.UUID,
    task_id: uuid.UUID,
    current_user: CurrentUser,
    db: DBSession,
) -> TaskRead:
    task = await task_service.get_task(
        db, project_id=project_id, task_id=task_id, current_user=current_user
    )
    return TaskRead.model_validate(task)


@router.put(
    "/{task_id}",
    response_model=TaskRead,
    summary="Replace a task's fields",
)
async def update_task(
    project_id: uuid.UUID,
    task_id: uuid.UUID,
    task_in: TaskUpdate,
    current_user: CurrentUser,
    db: DBSession,
) -> TaskRead:
    task = await task_service.update_task(
        db,
        project_id=project_id,
        task_id=task_id,
        task_in=task_in,
        current_user=current_user,
    )
    return TaskRead.model_validate(task)


@router.patch(
    "/{task_id}/status",
    response_model=TaskRead,
    summary="Move a task to another status",
)
async def change_task_status(
    project_id: uuid.UUID,
    task_id: uuid.UUID,
    status_in: TaskStatusUpdate,
    current_user: CurrentUser,
    db: DBSession,
) -> TaskRead:
    task = await task_service.change_status(
        db,
        project_id=project_id,
        task_id=task_id,
        status_in=status_in,
        current_user=current_user,
    )
    return TaskRead.model_validate(task)


@router.delete(
    "/{task_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a task",
)
async def delete_task(
    project_id: uuid.UUID,
    task_id: uuid.UUID,
    current_user: CurrentUser,
    db: DBSession,
) -> None:
    await task_service.delete_task(
        db, project_id=project_id, task_id=task_id, current_user=current_user
    )


# ── Assignment ────────────────────────────────────────────────────────────────

@router.get(
    "/{task_id}/assignees",
    response_model=list[UserReadPublic],
    summary="List a task's assignees",
)
async def list_assignees(
    project_id: uuid.UUID,
    task_id: uuid.UUID,
    current_user: CurrentUser,
    db: DBSession,
) -> list[UserReadPublic]:
    users = await task_service.list_assignees(
        db, project_id=project_id, task_id=task_id, current_user=current_user
    )
    return [UserReadPublic.model_validate(u) for u in users]


@router.post(
    "/{task_id}/assign",
    response_model=TaskRead,
    summary="Assign a project member to a task",
)
async def assign_task(
    project_id: uuid.UUID,
    task_id: uuid.UUID,
    body: TaskAssign,
    current_user: CurrentUser,
    db: DBSession,
) -> TaskRead:
    task = await task_service.assign_task(
        db,
        project_id=project_id,
        task_id=task_id,
        assignee_email=body.assignee_email,
        current_user=current_user,
    )
    return TaskRead.model_validate(task)


@router.delete(
    "/{task_id}/assign/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Unassign a user from a task",
)
async def unassign_task(
    project_id: uuid.UUID,
    task_id: uuid.UUID,
    user_id: uuid.UUID,
    current_user: CurrentUser,
    db: DBSession,
) -> None:
    await task_service.unassign_task(
        db,
        project_id=project_id,
        task_id=task_id,
        user_id=user_id,
        current_user=current_user,
    )
