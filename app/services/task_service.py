"""
Task business logic service.
Enforces project roles, serializes writes per task and hands every accepted
change to the mutation coordinator for activity and notifications.
"""
from __future__ import annotations

import logging
import uuid

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictException, NotFoundException, ValidationException
from app.core.permissions import Capability
from app.crud.project import crud_project
from app.crud.task import crud_task
from app.crud.user import crud_user
from app.models.task import Task
from app.models.user import User
from app.schemas.task import TaskCreate, TaskFilter, TaskStatusUpdate, TaskUpdate
from app.services.access_service import access_service
from app.services.activity_service import ActivityAction
from app.services.coordinator import mutation_coordinator

logger = logging.getLogger(__name__)

ENTITY_TASK = "TASK"


async def get_task_or_404(
    db: AsyncSession,
    *,
    project_id: uuid.UUID,
    task_id: uuid.UUID,
    for_update: bool = False,
) -> Task:
    task = await crud_task.get_in_project(
        db, project_id=project_id, task_id=task_id, for_update=for_update
    )
    if task is None:
        raise NotFoundException("Task", str(task_id))
    return task


class TaskService:

    async def list_tasks(
        self,
        db: AsyncSession,
        *,
        project_id: uuid.UUID,
        filters: TaskFilter,
        current_user: User,
    ) -> list[Task]:
        await access_service.require(
            db, project_id=project_id, user=current_user, capability=Capability.VIEW_PROJECT
        )
        return await crud_task.list_for_project(db, project_id=project_id, filters=filters)

    async def get_task(
        self,
        db: AsyncSession,
        *,
        project_id: uuid.UUID,
        task_id: uuid.UUID,
        current_user: User,
    ) -> Task:
        await access_service.require(
            db, project_id=project_id, user=current_user, capability=Capability.VIEW_PROJECT
        )
        task = await get_task_or_404(db, project_id=project_id, task_id=task_id)
        return await crud_task.get_with_relations(db, task.id)  # type: ignore[return-value]

    async def create_task(
        self,
        db: AsyncSession,
        *,
        project_id: uuid.UUID,
        task_in: TaskCreate,
        current_user: User,
    ) -> Task:
        await access_service.require(
            db, project_id=project_id, user=current_user, capability=Capability.EDIT_TASKS
        )
        task = await crud_task.create_task(
            db, obj_in=task_in, project_id=project_id, created_by_id=current_user.id
        )
        task_id = task.id
        recipients = await crud_project.member_ids(db, project_id=project_id)

        await mutation_coordinator.finalize(
            db,
            project_id=project_id,
            actor=current_user,
            action=ActivityAction.TASK_CREATED,
            entity_type=ENTITY_TASK,
            entity_id=task_id,
            description=f"{current_user.display_name} created task '{task_in.title}'",
            recipients=recipients,
        )
        return await crud_task.get_with_relations(db, task_id)  # type: ignore[return-value]

    async def update_task(
        self,
        db: AsyncSession,
        *,
        project_id: uuid.UUID,
        task_id: uuid.UUID,
        task_in: TaskUpdate,
        current_user: User,
    ) -> Task:
        """
        Full replace of the task's fields.
        A change that only moves the status is recorded as a status change.
        """
        await access_service.require(
            db, project_id=project_id, user=current_user, capability=Capability.EDIT_TASKS
        )
        task = await get_task_or_404(
            db, project_id=project_id, task_id=task_id, for_update=True
        )

        after = task_in.model_dump()
        before = {field: getattr(task, field) for field in after}
        changed = {field for field, value in after.items() if before[field] != value}

        await crud_task.replace(db, task=task, obj_in=task_in)
        recipients = await crud_project.member_ids(db, project_id=project_id)

        if changed == {"status"}:
            action = ActivityAction.TASK_STATUS_CHANGED
            description = (
                f"{current_user.display_name} moved '{task_in.title}' "
                f"from {before['status']} to {task_in.status}"
            )
        else:
            action = ActivityAction.TASK_UPDATED
            description = f"{current_user.display_name} updated task '{task_in.title}'"
            if "status" in changed:
                description += f" (status {before['status']} to {task_in.status})"

        await mutation_coordinator.finalize(
            db,
            project_id=project_id,
            actor=current_user,
            action=action,
            entity_type=ENTITY_TASK,
            entity_id=task_id,
            description=description,
            recipients=recipients,
        )
        return await crud_task.get_with_relations(db, task_id)  # type: ignore[return-value]

    async def change_status(
        self,
        db: AsyncSession,
        *,
        project_id: uuid.UUID,
        task_id: uuid.UUID,
        status_in: TaskStatusUpdate,
        current_user: User,
    ) -> Task:
        """Kanban move. Every status may move to every status, itself included."""
        await access_service.require(
            db, project_id=project_id, user=current_user, capability=Capability.EDIT_TASKS
        )
        task = await get_task_or_404(
            db, project_id=project_id, task_id=task_id, for_update=True
        )
        previous = task.status
        title = task.title
        await crud_task.update(db, db_obj=task, obj_in={"status": status_in.status})
        recipients = await crud_project.member_ids(db, project_id=project_id)

        await mutation_coordinator.finalize(
            db,
            project_id=project_id,
            actor=current_user,
            action=ActivityAction.TASK_STATUS_CHANGED,
            entity_type=ENTITY_TASK,
            entity_id=task_id,
            description=(
                f"{current_user.display_name} moved '{title}' "
                f"from {previous} to {status_in.status}"
            ),
            recipients=recipients,
        )
        return await crud_task.get_with_relations(db, task_id)  # type: ignore[return-value]

    async def delete_task(
        self,
        db: AsyncSession,
        *,
        project_id: uuid.UUID,
        task_id: uuid.UUID,
        current_user: User,
    ) -> None:
        """Hard delete; comments, attachments and assignments go with the task."""
        await access_service.require(
            db, project_id=project_id, user=current_user, capability=Capability.EDIT_TASKS
        )
        task = await get_task_or_404(
            db, project_id=project_id, task_id=task_id, for_update=True
        )
        title = task.title
        recipients = await crud_project.member_ids(db, project_id=project_id)

        await db.delete(task)
        await db.flush()

        await mutation_coordinator.finalize(
            db,
            project_id=project_id,
            actor=current_user,
            action=ActivityAction.TASK_DELETED,
            entity_type=ENTITY_TASK,
            entity_id=task_id,
            description=f"{current_user.display_name} deleted task '{title}'",
            recipients=recipients,
        )

    # ── Assignment ────────────────────────────────────────────────────────────

    async def list_assignees(
        self,
        db: AsyncSession,
        *,
        project_id: uuid.UUID,
        task_id: uuid.UUID,
        current_user: User,
    ) -> list[User]:
        task = await self.get_task(
            db, project_id=project_id, task_id=task_id, current_user=current_user
        )
        return task.assignees

    async def assign_task(
        self,
        db: AsyncSession,
        *,
        project_id: uuid.UUID,
        task_id: uuid.UUID,
        assignee_email: str,
        current_user: User,
    ) -> Task:
        """Assignees must already hold a membership in the task's project."""
        ctx = await access_service.require(
            db, project_id=project_id, user=current_user, capability=Capability.ASSIGN_TASKS
        )
        task = await get_task_or_404(
            db, project_id=project_id, task_id=task_id, for_update=True
        )

        assignee = await crud_user.get_by_email(db, assignee_email)
        if assignee is None or (
            await access_service.role_of(db, project=ctx.project, user_id=assignee.id)
        ) is None:
            raise ValidationException(f"{assignee_email} is not a member of this project")

        assignee_id, assignee_email = assignee.id, assignee.email
        already_assigned = f"{assignee_email} is already assigned to this task"
        if await crud_task.get_assignment(db, task_id=task_id, user_id=assignee_id):
            raise ConflictException(already_assigned)

        try:
            await crud_task.add_assignment(db, task_id=task_id, user_id=assignee_id)
        except IntegrityError:
            # Lost the race to a concurrent identical assign.
            await db.rollback()
            raise ConflictException(already_assigned)

        await mutation_coordinator.finalize(
            db,
            project_id=project_id,
            actor=current_user,
            action=ActivityAction.TASK_ASSIGNED,
            entity_type=ENTITY_TASK,
            entity_id=task_id,
            description=(
                f"{current_user.display_name} assigned {assignee_email} "
                f"to task '{task.title}'"
            ),
            recipients=[assignee_id],
        )
        return await crud_task.get_with_relations(db, task_id)  # type: ignore[return-value]

    async def unassign_task(
        self,
        db: AsyncSession,
        *,
        project_id: uuid.UUID,
        task_id: uuid.UUID,
        user_id: uuid.UUID,
        current_user: User,
    ) -> None:
        """Idempotent: removing an assignment that does not exist succeeds quietly."""
        await access_service.require(
            db, project_id=project_id, user=current_user, capability=Capability.ASSIGN_TASKS
        )
        task = await get_task_or_404(
            db, project_id=project_id, task_id=task_id, for_update=True
        )
        title = task.title

        removed = await crud_task.remove_assignment(db, task_id=task_id, user_id=user_id)
        if not removed:
            return

        await mutation_coordinator.finalize(
            db,
            project_id=project_id,
            actor=current_user,
            action=ActivityAction.TASK_UNASSIGNED,
            entity_type=ENTITY_TASK,
            entity_id=task_id,
            description=f"{current_user.display_name} unassigned a member from task '{title}'",
            recipients=[user_id],
        )


task_service = TaskService()
