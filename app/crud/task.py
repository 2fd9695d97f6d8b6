"""
Task CRUD operations.
Extends CRUDBase with project-scoped filtering, row locking and assignments.
"""
from __future__ import annotations

import uuid
from datetime import date

from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.crud.base import CRUDBase
from app.models.project import ProjectMember
from app.models.task import DONE, Task, TaskAssignment
from app.schemas.task import TaskCreate, TaskFilter, TaskUpdate


def _like_pattern(term: str) -> str:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class CRUDTask(CRUDBase[Task, TaskCreate, TaskUpdate]):

    async def get_with_relations(
        self, db: AsyncSession, task_id: uuid.UUID
    ) -> Task | None:
        """Fetch a task with its assignees eagerly loaded, overwriting stale state."""
        result = await db.execute(
            select(Task)
            .options(selectinload(Task.assignments).selectinload(TaskAssignment.user))
            .where(Task.id == task_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_in_project(
        self,
        db: AsyncSession,
        *,
        project_id: uuid.UUID,
        task_id: uuid.UUID,
        for_update: bool = False,
    ) -> Task | None:
        """A task id that belongs to another project is treated as missing."""
        query = select(Task).where(Task.id == task_id, Task.project_id == project_id)
        if for_update:
            query = query.with_for_update()
        result = await db.execute(query)
        return result.scalar_one_or_none()

    async def create_task(
        self,
        db: AsyncSession,
        *,
        obj_in: TaskCreate,
        project_id: uuid.UUID,
        created_by_id: uuid.UUID,
    ) -> Task:
        task = Task(
            project_id=project_id,
            title=obj_in.title,
            description=obj_in.description,
            status=obj_in.status,
            priority=obj_in.priority,
            due_date=obj_in.due_date,
            created_by_id=created_by_id,
        )
        db.add(task)
        await db.flush()
        await db.refresh(task)
        return task

    async def replace(self, db: AsyncSession, *, task: Task, obj_in: TaskUpdate) -> Task:
        """Overwrite every writable field; omitted optional fields fall back to defaults."""
        return await self.update(db, db_obj=task, obj_in=obj_in.model_dump())

    async def list_for_project(
        self,
        db: AsyncSession,
        *,
        project_id: uuid.UUID,
        filters: TaskFilter,
    ) -> list[Task]:
        """
        Return the project's tasks matching every present filter, oldest first.
        Absent filters impose no constraint.
        """
        query = (
            select(Task)
            .options(selectinload(Task.assignments).selectinload(TaskAssignment.user))
            .where(Task.project_id == project_id)
        )

        if filters.status is not None:
            query = query.where(Task.status == filters.status)

        if filters.priority is not None:
            query = query.where(Task.priority == filters.priority)

        # Case-insensitive substring match on title and description
        if filters.search:
            search_term = _like_pattern(filters.search)
            query = query.where(
                or_(
                    Task.title.ilike(search_term, escape="\\"),
                    Task.description.ilike(search_term, escape="\\"),
                )
            )

        result = await db.execute(query.order_by(Task.created_at.asc(), Task.id.asc()))
        return list(result.scalars().all())

    # ── Assignments ───────────────────────────────────────────────────────────

    async def get_assignment(
        self, db: AsyncSession, *, task_id: uuid.UUID, user_id: uuid.UUID
    ) -> TaskAssignment | None:
        result = await db.execute(
            select(TaskAssignment).where(
                TaskAssignment.task_id == task_id,
                TaskAssignment.user_id == user_id,
            )
        )
        return result.scalar_one_or_none()

    async def add_assignment(
        self, db: AsyncSession, *, task_id: uuid.UUID, user_id: uuid.UUID
    ) -> TaskAssignment:
        assignment = TaskAssignment(task_id=task_id, user_id=user_id)
        db.add(assignment)
        await db.flush()
        return assignment

    async def remove_assignment(
        self, db: AsyncSession, *, task_id: uuid.UUID, user_id: uuid.UUID
    ) -> bool:
        """Delete the assignment if present. Returns True when a row was removed."""
        assignment = await self.get_assignment(db, task_id=task_id, user_id=user_id)
        if assignment is None:
            return False
        await db.delete(assignment)
        await db.flush()
        return True

    async def remove_user_assignments(
        self, db: AsyncSession, *, project_id: uuid.UUID, user_id: uuid.UUID
    ) -> int:
        """Drop every assignment the user holds on tasks of the given project."""
        result = await db.execute(
            delete(TaskAssignment)
            .where(
                TaskAssignment.user_id == user_id,
                TaskAssignment.task_id.in_(
                    select(Task.id).where(Task.project_id == project_id)
                ),
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount  # type: ignore[return-value]

    async def assignee_ids(self, db: AsyncSession, *, task_id: uuid.UUID) -> list[uuid.UUID]:
        result = await db.execute(
            select(TaskAssignment.user_id)
            .where(TaskAssignment.task_id == task_id)
            .order_by(TaskAssignment.assigned_at.asc())
        )
        return list(result.scalars().all())

    # ── Statistics ────────────────────────────────────────────────────────────

    async def stats_for_user(
        self, db: AsyncSession, *, user_id: uuid.UUID, today: date
    ) -> tuple[int, int, int]:
        """Return (total, done, overdue) task counts across the user's projects."""
        member_projects = select(ProjectMember.project_id).where(
            ProjectMember.user_id == user_id
        )
        base = select(func.count()).select_from(Task).where(
            Task.project_id.in_(member_projects)
        )

        total = (await db.execute(base)).scalar_one()
        done = (await db.execute(base.where(Task.status == DONE))).scalar_one()
        overdue = (
            await db.execute(
                base.where(
                    Task.due_date.is_not(None),
                    Task.due_date < today,
                    Task.status != DONE,
                )
            )
        ).scalar_one()
        return total, done, overdue


crud_task = CRUDTask(Task)
