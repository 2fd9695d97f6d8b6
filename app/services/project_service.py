"""
Project and membership service.
Handles project creation and deletion, sharing, role changes and member
removal. The OWNER membership can never be reassigned or removed.
"""
from __future__ import annotations

import logging
import uuid

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictException, NotFoundException
from app.core.permissions import Capability, ProjectRole
from app.crud.project import crud_project
from app.crud.task import crud_task
from app.crud.user import crud_user
from app.models.project import Project, ProjectMember
from app.models.user import User
from app.schemas.project import MemberRoleUpdate, ProjectCreate, ProjectShare
from app.services.access_service import AccessContext, access_service
from app.services.activity_service import ActivityAction
from app.services.coordinator import mutation_coordinator

logger = logging.getLogger(__name__)

ENTITY_PROJECT = "PROJECT"
ENTITY_MEMBER = "MEMBER"


class ProjectService:

    async def create_project(
        self,
        db: AsyncSession,
        *,
        project_in: ProjectCreate,
        current_user: User,
    ) -> Project:
        project = await crud_project.create_project(
            db, obj_in=project_in, owner_id=current_user.id
        )
        project_id = project.id
        await mutation_coordinator.finalize(
            db,
            project_id=project_id,
            actor=current_user,
            action=ActivityAction.PROJECT_CREATED,
            entity_type=ENTITY_PROJECT,
            entity_id=project_id,
            description=f"{current_user.display_name} created project '{project_in.name}'",
        )
        return await crud_project.get(db, project_id)  # type: ignore[return-value]

    async def list_projects(
        self, db: AsyncSession, *, current_user: User
    ) -> list[tuple[Project, ProjectRole]]:
        rows = await crud_project.list_for_user(db, user_id=current_user.id)
        return [
            (
                project,
                ProjectRole.OWNER if project.owner_id == current_user.id else ProjectRole(role),
            )
            for project, role in rows
        ]

    async def get_project(
        self, db: AsyncSession, *, project_id: uuid.UUID, current_user: User
    ) -> AccessContext:
        return await access_service.require(
            db, project_id=project_id, user=current_user, capability=Capability.VIEW_PROJECT
        )

    async def delete_project(
        self, db: AsyncSession, *, project_id: uuid.UUID, current_user: User
    ) -> None:
        """Hard delete. Tasks, members, comments, attachments and activity go with it."""
        ctx = await access_service.require(
            db, project_id=project_id, user=current_user, capability=Capability.DELETE_PROJECT
        )
        await db.delete(ctx.project)
        await db.commit()
        logger.info("Project %s deleted by %s", project_id, current_user.id)

    # ── Membership ────────────────────────────────────────────────────────────

    async def list_members(
        self, db: AsyncSession, *, project_id: uuid.UUID, current_user: User
    ) -> list[ProjectMember]:
        await access_service.require(
            db, project_id=project_id, user=current_user, capability=Capability.VIEW_PROJECT
        )
        return await crud_project.list_members(db, project_id=project_id)

    async def share_project(
        self,
        db: AsyncSession,
        *,
        project_id: uuid.UUID,
        share_in: ProjectShare,
        current_user: User,
    ) -> ProjectMember:
        """
        Invite a user by email. Inviting someone who is already a member is a
        Conflict; role changes go through change_member_role.
        """
        ctx = await access_service.require(
            db, project_id=project_id, user=current_user, capability=Capability.MANAGE_MEMBERS
        )
        invitee = await crud_user.get_active_by_email(db, share_in.email)
        if invitee is None:
            raise NotFoundException("User", share_in.email)

        invitee_id, invitee_email = invitee.id, invitee.email
        already_member = f"{invitee_email} is already a member of this project"
        existing = await crud_project.get_member(
            db, project_id=project_id, user_id=invitee_id, for_update=True
        )
        if existing is not None or invitee_id == ctx.project.owner_id:
            raise ConflictException(already_member)

        try:
            await crud_project.add_member(
                db, project_id=project_id, user_id=invitee_id, role=share_in.role
            )
        except IntegrityError:
            # A concurrent invite of the same user committed first.
            await db.rollback()
            raise ConflictException(already_member)

        await mutation_coordinator.finalize(
            db,
            project_id=project_id,
            actor=current_user,
            action=ActivityAction.PROJECT_SHARED,
            entity_type=ENTITY_MEMBER,
            entity_id=invitee_id,
            description=(
                f"{current_user.display_name} shared project '{ctx.project.name}' "
                f"with {invitee_email} as {share_in.role}"
            ),
            recipients=[invitee_id],
        )
        return await crud_project.get_member_with_user(  # type: ignore[return-value]
            db, project_id=project_id, user_id=invitee_id
        )

    async def change_member_role(
        self,
        db: AsyncSession,
        *,
        project_id: uuid.UUID,
        user_id: uuid.UUID,
        role_in: MemberRoleUpdate,
        current_user: User,
    ) -> ProjectMember:
        ctx = await access_service.require(
            db, project_id=project_id, user=current_user, capability=Capability.MANAGE_MEMBERS
        )
        member = await self._get_mutable_member(db, ctx=ctx, user_id=user_id)

        previous = member.role
        member.role = role_in.role
        db.add(member)
        await db.flush()

        await mutation_coordinator.finalize(
            db,
            project_id=project_id,
            actor=current_user,
            action=ActivityAction.MEMBER_ROLE_UPDATED,
            entity_type=ENTITY_MEMBER,
            entity_id=user_id,
            description=(
                f"{current_user.display_name} changed a member role in "
                f"'{ctx.project.name}' from {previous} to {role_in.role}"
            ),
            recipients=[user_id],
        )
        return await crud_project.get_member_with_user(  # type: ignore[return-value]
            db, project_id=project_id, user_id=user_id
        )

    async def remove_member(
        self,
        db: AsyncSession,
        *,
        project_id: uuid.UUID,
        user_id: uuid.UUID,
        current_user: User,
    ) -> None:
        """Remove a member together with their assignments on this project's tasks."""
        ctx = await access_service.require(
            db, project_id=project_id, user=current_user, capability=Capability.MANAGE_MEMBERS
        )
        member = await self._get_mutable_member(db, ctx=ctx, user_id=user_id)

        dropped = await crud_task.remove_user_assignments(
            db, project_id=project_id, user_id=user_id
        )
        await db.delete(member)
        await db.flush()

        await mutation_coordinator.finalize(
            db,
            project_id=project_id,
            actor=current_user,
            action=ActivityAction.MEMBER_REMOVED,
            entity_type=ENTITY_MEMBER,
            entity_id=user_id,
            description=(
                f"{current_user.display_name} removed a member from '{ctx.project.name}'"
                + (f" and {dropped} task assignment(s)" if dropped else "")
            ),
            recipients=[user_id],
        )

    async def _get_mutable_member(
        self, db: AsyncSession, *, ctx: AccessContext, user_id: uuid.UUID
    ) -> ProjectMember:
        """Fetch and lock a membership row, refusing to touch the OWNER."""
        if user_id == ctx.project.owner_id:
            raise ConflictException("The project owner's membership cannot be changed")
        member = await crud_project.get_member(
            db, project_id=ctx.project.id, user_id=user_id, for_update=True
        )
        if member is None:
            raise NotFoundException("Member", str(user_id))
        if member.role == ProjectRole.OWNER.value:
            raise ConflictException("The project owner's membership cannot be changed")
        return member


project_service = ProjectService()
