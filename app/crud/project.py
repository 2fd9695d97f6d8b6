"""
Project and membership CRUD operations.
"""
from __future__ import annotations

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.permissions import ProjectRole
from app.crud.base import CRUDBase
from app.models.project import Project, ProjectMember
from app.schemas.project import ProjectCreate


class CRUDProject(CRUDBase[Project, ProjectCreate, ProjectCreate]):

    async def create_project(
        self,
        db: AsyncSession,
        *,
        obj_in: ProjectCreate,
        owner_id: uuid.UUID,
    ) -> Project:
        """Create the project together with the owner's OWNER membership row."""
        project = Project(name=obj_in.name, owner_id=owner_id)
        db.add(project)
        await db.flush()
        db.add(
            ProjectMember(
                project_id=project.id,
                user_id=owner_id,
                role=ProjectRole.OWNER.value,
            )
        )
        await db.flush()
        await db.refresh(project)
        return project

    async def list_for_user(
        self, db: AsyncSession, *, user_id: uuid.UUID
    ) -> list[tuple[Project, str]]:
        """Return (project, role) pairs for every project the user belongs to."""
        result = await db.execute(
            select(Project, ProjectMember.role)
            .join(ProjectMember, ProjectMember.project_id == Project.id)
            .where(ProjectMember.user_id == user_id)
            .order_by(Project.created_at.asc())
        )
        return [(row[0], row[1]) for row in result.all()]

    # ── Membership ────────────────────────────────────────────────────────────

    async def get_member(
        self,
        db: AsyncSession,
        *,
        project_id: uuid.UUID,
        user_id: uuid.UUID,
        for_update: bool = False,
    ) -> ProjectMember | None:
        query = select(ProjectMember).where(
            ProjectMember.project_id == project_id,
            ProjectMember.user_id == user_id,
        )
        if for_update:
            query = query.with_for_update()
        result = await db.execute(query)
        return result.scalar_one_or_none()

    async def list_members(
        self, db: AsyncSession, *, project_id: uuid.UUID
    ) -> list[ProjectMember]:
        result = await db.execute(
            select(ProjectMember)
            .options(selectinload(ProjectMember.user))
            .where(ProjectMember.project_id == project_id)
            .order_by(ProjectMember.joined_at.asc())
        )
        return list(result.scalars().all())

    async def member_ids(
        self, db: AsyncSession, *, project_id: uuid.UUID
    ) -> list[uuid.UUID]:
        result = await db.execute(
            select(ProjectMember.user_id).where(ProjectMember.project_id == project_id)
        )
        return list(result.scalars().all())

    async def add_member(
        self,
        db: AsyncSession,
        *,
        project_id: uuid.UUID,
        user_id: uuid.UUID,
        role: str,
    ) -> ProjectMember:
        member = ProjectMember(project_id=project_id, user_id=user_id, role=role)
        db.add(member)
        await db.flush()
        await db.refresh(member)
        return member

    async def get_member_with_user(
        self, db: AsyncSession, *, project_id: uuid.UUID, user_id: uuid.UUID
    ) -> ProjectMember | None:
        result = await db.execute(
            select(ProjectMember)
            .options(selectinload(ProjectMember.user))
            .where(
                ProjectMember.project_id == project_id,
                ProjectMember.user_id == user_id,
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()


crud_project = CRUDProject(Project)
