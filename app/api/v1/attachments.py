"""
Attachment routes nested under tasks and their comments.
/api/v1/projects/{project_id}/tasks/{task_id}/attachments
Supports multipart/form-data file upload.
"""
from __future__ import annotations

import uuid

from fastapi import APIRouter, UploadFile, status
from fastapi.responses import FileResponse

from app.core.dependencies import CurrentUser, DBSession
from app.schemas.attachment import AttachmentRead
from app.services.attachment_service import attachment_service

router = APIRouter(prefix="/projects/{project_id}/tasks/{task_id}", tags=["Attachments"])


@router.get(
    "/attachments",
    response_model=list[AttachmentRead],
    summary="List attachments on a task",
)
async def list_attachments(
    project_id: uuid.UUID,
    task_id: uuid.UUID,
    current_user: CurrentUser,
    db: DBSession,
) -> list[AttachmentRead]:
    attachments = await attachment_service.list_attachments(
        db, project_id=project_id, task_id=task_id, current_user=current_user
    )
    return [AttachmentRead.model_validate(a) for a in attachments]


@router.post(
    "/attachments",
    response_model=AttachmentRead,
    status_code=status.HTTP_201_CREATED,
    summary="Upload a file attachment to a task",
)
async def upload_attachment(
    project_id: uuid.UUID,
    task_id: uuid.UUID,
    file: UploadFile,
    current_user: CurrentUser,
    db: DBSession,
) -> AttachmentRead:
    attachment = await attachment_service.upload(
        db, project_id=project_id, task_id=task_id, file=file, current_user=current_user
    )
    return AttachmentRead.model_validate(attachment)


@router.get(
    "/attachments/{attachment_id}/download",
    response_class=FileResponse,
    summary="Download an attachment",
)
async def download_attachment(
    project_id: uuid.UUID,
    task_id: uuid.UUID,
    attachment_id: uuid.UUID,
    current_user: CurrentUser,
    db: DBSession,
) -> FileResponse:
    attachment, path = await attachment_service.get_attachment(
        db,
        project_id=project_id,
        task_id=task_id,
        attachment_id=attachment_id,
        current_user=current_user,
    )
    return FileResponse(path, media_type=attachment.mime_type, filename=attachment.filename)


@router.delete(
    "/attachments/{attachment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete an attachment",
)
async def delete_attachment(
    project_id: uuid.UUID,
    task_id: uuid.UUID,
    attachment_id: uuid.UUID,
    current_user: CurrentUser,
    db: DBSession,
) -> None:
    await attachment_service.delete_attachment(
        db,
        project_id=project_id,
        task_id=task_id,
        attachment_id=attachment_id,
        current_user=current_user,
    )


# ── Comment attachments ───────────────────────────────────────────────────────

@router.get(
    "/comments/{comment_id}/attachments",
    response_model=list[AttachmentRead],
    summary="List attachments on a comment",
)
async def list_comment_attachments(
    project_id: uuid.UUID,
    task_id: uuid.UUID,
    comment_id: uuid.UUID,
    current_user: CurrentUser,
    db: DBSession,
) -> list[AttachmentRead]:
    attachments = await attachment_service.list_attachments(
        db,
        project_id=project_id,
        task_id=task_id,
        comment_id=comment_id,
        current_user=current_user,
    )
    return [AttachmentRead.model_validate(a) for a in attachments]


@router.post(
    "/comments/{comment_id}/attachments",
    response_model=AttachmentRead,
    status_code=status.HTTP_201_CREATED,
    summary="Upload a file attachment to a comment",
)
async def upload_comment_attachment(
    project_id: uuid.UUID,
    task_id: uuid.UUID,
    comment_id: uuid.UUID,
    file: UploadFile,
    current_user: CurrentUser,
    db: DBSession,
) -> AttachmentRead:
    attachment = await attachment_service.upload(
        db,
        project_id=project_id,
        task_id=task_id,
        comment_id=comment_id,
        file=file,
        current_user=current_user,
    )
    return AttachmentRead.model_validate(attachment)
