"""
Project membership routes.
/api/v1/projects/{project_id}/members
"""
# No postponed annotations: FastAPI resolves them in slowapi's wrapper globals.
import uuid

from fastapi import APIRouter, Request, status

from app.core.config import settings
from app.core.dependencies import CurrentUser, DBSession
from app.core.rate_limit import limiter
from app.schemas.project import MemberRoleUpdate, ProjectMemberRead, ProjectShare
from app.services.project_service import project_service

router = APIRouter(prefix="/projects/{project_id}/members", tags=["Members"])


@router.get(
    "",
    response_model=list[ProjectMemberRead],
    summary="List project members",
)
async def list_members(
    project_id: uuid.UUID,
    current_user: CurrentUser,
    db: DBSession,
) -> list[ProjectMemberRead]:
    members = await project_service.list_members(
        db, project_id=project_id, current_user=current_user
    )
    return [ProjectMemberRead.model_validate(m) for m in members]


@router.post(
    "",
    response_model=ProjectMemberRead,
    status_code=status.HTTP_201_CREATED,
    summary="Share the project with a user by email",
)
@limiter.limit(settings.RATE_LIMIT_SHARE)
async def share_project(
    request: Request,
    project_id: uuid.UUID,
    share_in: ProjectShare,
    current_user: CurrentUser,
    db: DBSession,
) -> ProjectMemberRead:
    member = await project_service.share_project(
        db, project_id=project_id, share_in=share_in, current_user=current_user
    )
    return ProjectMemberRead.model_validate(member)


@router.put(
    "/{user_id}/role",
    response_model=ProjectMemberRead,
    summary="Change a member's role",
)
async def change_member_role(
    project_id: uuid.UUID,
    user_id: uuid.UUID,
    role_in: MemberRoleUpdate,
    current_user: CurrentUser,
    db: DBSession,
) -> ProjectMemberRead:
    member = await project_service.change_member_role(
        db,
        project_id=project_id,
        user_id=user_id,
        role_in=role_in,
        current_user=current_user,
    )
    return ProjectMemberRead.model_validate(member)


@router.delete(
    "/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove a member from the project",
)
async def remove_member(
    project_id: uuid.UUID,
    user_id: uuid.UUID,
    current_user: CurrentUser,
    db: DBSession,
) -> None:
    await project_service.remove_member(
        db, project_id=project_id, user_id=user_id, current_user=current_user
    )
