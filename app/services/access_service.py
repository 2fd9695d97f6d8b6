"""
Project access checks.
Resolves the caller's role inside a project on every request and gates each
operation on a capability. There is no role cache: a membership change is
visible to the very next request.
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundException, PermissionDeniedException
from app.core.permissions import Capability, ProjectRole, can_perform
from app.crud.project import crud_project
from app.models.project import Project
from app.models.user import User

logger = logging.getLogger(__name__)


@dataclass
class AccessContext:
    project: Project
    user: User
    role: ProjectRole

    def can(self, capability: Capability) -> bool:
        return can_perform(self.role, capability)


class AccessService:

    async def role_of(
        self, db: AsyncSession, *, project: Project, user_id: uuid.UUID
    ) -> ProjectRole | None:
        """The owner reference wins; otherwise the membership row decides."""
        if project.owner_id == user_id:
            return ProjectRole.OWNER
        member = await crud_project.get_member(db, project_id=project.id, user_id=user_id)
        if member is None:
            return None
        return member.project_role

    async def require(
        self,
        db: AsyncSession,
        *,
        project_id: uuid.UUID,
        user: User,
        capability: Capability,
    ) -> AccessContext:
        project = await crud_project.get(db, project_id)
        if project is None:
            raise NotFoundException("Project", str(project_id))

        role = await self.role_of(db, project=project, user_id=user.id)
        if role is None:
            raise PermissionDeniedException("You are not a member of this project")
        if not can_perform(role, capability):
            logger.info(
                "Denied %s to user_id=%s with role %s on project %s",
                capability.value,
                user.id,
                role.value,
                project_id,
            )
            raise PermissionDeniedException(
                f"Role {role.value} is not allowed to {capability.value.replace('_', ' ')}"
            )
        return AccessContext(project=project, user=user, role=role)


access_service = AccessService()
