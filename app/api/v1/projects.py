"""
Project routes.
Create, list, read and delete projects; the caller's role rides along on reads.
"""
from __future__ import annotations

import uuid

from fastapi import APIRouter, status

from app.core.dependencies import CurrentUser, DBSession
from app.core.permissions import ProjectRole
from app.models.project import Project
from app.schemas.project import ProjectCreate, ProjectRead
from app.services.project_service import project_service

router = APIRouter(prefix="/projects", tags=["Projects"])


def _project_read(project: Project, role: ProjectRole) -> ProjectRead:
    return ProjectRead.model_validate(project).model_copy(update={"role": role})


@router.post(
    "",
    response_model=ProjectRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create a project",
)
async def create_project(
    project_in: ProjectCreate,
    current_user: CurrentUser,
    db: DBSession,
) -> ProjectRead:
    project = await project_service.create_project(
        db, project_in=project_in, current_user=current_user
    )
    return _project_read(project, ProjectRole.OWNER)


@router.get(
    "",
    response_model=list[ProjectRead],
    summary="List projects I belong to",
)
async def list_projects(
    current_user: CurrentUser,
    db: DBSession,
) -> list[ProjectRead]:
    rows = await project_service.list_projects(db, current_user=current_user)
    return [_project_read(project, role) for project, role in rows]


@router.get(
    "/{project_id}",
    response_model=ProjectRead,
    summary="Get a project",
)
async def get_project(
    project_id: uuid.UUID,
    current_user: CurrentUser,
    db: DBSession,
) -> ProjectRead:
    ctx = await project_service.get_project(
        db, project_id=project_id, current_user=current_user
    )
    return _project_read(ctx.project, ctx.role)


@router.delete(
    "/{project_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a project and everything in it",
)
async def delete_project(
    project_id: uuid.UUID,
    current_user: CurrentUser,
    db: DBSession,
) -> None:
    await project_service.delete_project(
        db, project_id=project_id, current_user=current_user
    )
