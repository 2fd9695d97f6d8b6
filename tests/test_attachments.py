"""
Attachment tests.
Covers: upload, listing, download, deletion, size limit and storage failures.
"""
from __future__ import annotations

import io
import uuid

import pytest
from fastapi import UploadFile
from httpx import AsyncClient
from sqlalchemy import func, select
from starlette.datastructures import Headers

from app.core.config import settings
from app.core.exceptions import FileTooLargeException
from app.models.attachment import Attachment
from app.services.attachment_service import attachment_service
from app.services.storage import LocalFileStorage
from tests.helpers import API, activity_actions, create_task, share


def _attachments_url(project_id: str, task_id: str) -> str:
    return f"{API}/projects/{project_id}/tasks/{task_id}/attachments"


class UntouchableStorage:
    """Fails the test if anything reaches the storage backend."""

    def path_for(self, key: str) -> str:
        raise AssertionError("storage must not be touched")

    async def save(self, key: str, content: bytes) -> None:
        raise AssertionError("storage must not be touched")

    async def delete(self, key: str) -> None:
        raise AssertionError("storage must not be touched")

    async def exists(self, key: str) -> bool:
        raise AssertionError("storage must not be touched")


class BrokenStorage(UntouchableStorage):
    async def save(self, key: str, content: bytes) -> None:
        raise OSError("disk unavailable")


@pytest.fixture
def local_storage(tmp_path, monkeypatch) -> LocalFileStorage:
    storage = LocalFileStorage(str(tmp_path))
    monkeypatch.setattr(attachment_service, "storage", storage)
    return storage


class TestUpload:
    async def test_upload_list_download(
        self,
        client: AsyncClient,
        project: dict,
        alice,
        alice_headers: dict,
        local_storage: LocalFileStorage,
    ) -> None:
        task = await create_task(client, project["id"], alice_headers)
        url = _attachments_url(project["id"], task["id"])

        response = await client.post(
            url,
            files={"file": ("notes.txt", b"hello world", "text/plain")},
            headers=alice_headers,
        )
        assert response.status_code == 201
        data = response.json()
        assert data["filename"] == "notes.txt"
        assert data["file_size"] == 11
        assert data["mime_type"] == "text/plain"
        assert data["uploaded_by"] == str(alice.id)
        assert data["comment_id"] is None

        listed = await client.get(url, headers=alice_headers)
        assert [a["id"] for a in listed.json()] == [data["id"]]

        download = await client.get(f"{url}/{data['id']}/download", headers=alice_headers)
        assert download.status_code == 200
        assert download.content == b"hello world"

        actions = await activity_actions(client, project["id"], alice_headers)
        assert actions[0] == "ATTACHMENT_ADDED"

    async def test_upload_strips_directories_from_filename(
        self,
        client: AsyncClient,
        project: dict,
        alice_headers: dict,
        local_storage: LocalFileStorage,
    ) -> None:
        task = await create_task(client, project["id"], alice_headers)
        response = await client.post(
            _attachments_url(project["id"], task["id"]),
            files={"file": ("../../etc/passwd", b"root", "text/plain")},
            headers=alice_headers,
        )
        assert response.status_code == 201
        assert response.json()["filename"] == "passwd"

    async def test_viewer_cannot_upload(
        self,
        client: AsyncClient,
        project: dict,
        alice_headers: dict,
        bob,
        bob_headers: dict,
        local_storage: LocalFileStorage,
    ) -> None:
        await share(client, project["id"], alice_headers, bob.email, "VIEWER")
        task = await create_task(client, project["id"], alice_headers)
        response = await client.post(
            _attachments_url(project["id"], task["id"]),
            files={"file": ("x.txt", b"x", "text/plain")},
            headers=bob_headers,
        )
        assert response.status_code == 403

    async def test_comment_attachment(
        self,
        client: AsyncClient,
        project: dict,
        alice_headers: dict,
        local_storage: LocalFileStorage,
    ) -> None:
        task = await create_task(client, project["id"], alice_headers)
        comment = await client.post(
            f"{API}/projects/{project['id']}/tasks/{task['id']}/comments",
            json={"content": "See attached"},
            headers=alice_headers,
        )
        comment_id = comment.json()["id"]
        comment_url = (
            f"{API}/projects/{project['id']}/tasks/{task['id']}"
            f"/comments/{comment_id}/attachments"
        )

        response = await client.post(
            comment_url,
            files={"file": ("shot.png", b"\x89PNG", "image/png")},
            headers=alice_headers,
        )
        assert response.status_code == 201
        assert response.json()["comment_id"] == comment_id

        on_comment = await client.get(comment_url, headers=alice_headers)
        assert len(on_comment.json()) == 1
        on_task = await client.get(
            _attachments_url(project["id"], task["id"]), headers=alice_headers
        )
        assert on_task.json() == []


class TestUploadLimits:
    async def test_oversized_upload_never_reaches_storage(
        self,
        client: AsyncClient,
        project: dict,
        alice,
        alice_headers: dict,
        db,
        monkeypatch,
    ) -> None:
        monkeypatch.setattr(attachment_service, "storage", UntouchableStorage())
        task = await create_task(client, project["id"], alice_headers)

        # Declared size is checked before a single byte is read.
        upload = UploadFile(
            io.BytesIO(b"tiny"),
            size=11 * 1024 * 1024,
            filename="huge.bin",
            headers=Headers({"content-type": "application/octet-stream"}),
        )
        with pytest.raises(FileTooLargeException):
            await attachment_service.upload(
                db,
                project_id=uuid.UUID(project["id"]),
                task_id=uuid.UUID(task["id"]),
                file=upload,
                current_user=alice,
            )

        rows = await db.execute(select(func.count()).select_from(Attachment))
        assert rows.scalar_one() == 0

    async def test_oversized_upload_over_http(
        self,
        client: AsyncClient,
        project: dict,
        alice_headers: dict,
        monkeypatch,
    ) -> None:
        monkeypatch.setattr(attachment_service, "storage", UntouchableStorage())
        monkeypatch.setattr(settings, "MAX_ATTACHMENT_SIZE_MB", 1)
        task = await create_task(client, project["id"], alice_headers)

        response = await client.post(
            _attachments_url(project["id"], task["id"]),
            files={"file": ("big.bin", b"x" * (1024 * 1024 + 1), "application/octet-stream")},
            headers=alice_headers,
        )
        assert response.status_code == 413
        assert response.json()["error"] == "FILE_TOO_LARGE"

    async def test_storage_failure_leaves_no_row(
        self,
        client: AsyncClient,
        project: dict,
        alice_headers: dict,
        db,
        monkeypatch,
    ) -> None:
        monkeypatch.setattr(attachment_service, "storage", BrokenStorage())
        task = await create_task(client, project["id"], alice_headers)

        response = await client.post(
            _attachments_url(project["id"], task["id"]),
            files={"file": ("notes.txt", b"hello", "text/plain")},
            headers=alice_headers,
        )
        assert response.status_code == 503

        rows = await db.execute(select(func.count()).select_from(Attachment))
        assert rows.scalar_one() == 0

        actions = await activity_actions(client, project["id"], alice_headers)
        assert "ATTACHMENT_ADDED" not in actions


class TestDeleteAttachment:
    async def test_delete_removes_row_and_file(
        self,
        client: AsyncClient,
        project: dict,
        alice_headers: dict,
        local_storage: LocalFileStorage,
    ) -> None:
        task = await create_task(client, project["id"], alice_headers)
        url = _attachments_url(project["id"], task["id"])
        uploaded = await client.post(
            url,
            files={"file": ("notes.txt", b"bye", "text/plain")},
            headers=alice_headers,
        )
        attachment_id = uploaded.json()["id"]

        response = await client.delete(f"{url}/{attachment_id}", headers=alice_headers)
        assert response.status_code == 204

        listed = await client.get(url, headers=alice_headers)
        assert listed.json() == []
        download = await client.get(f"{url}/{attachment_id}/download", headers=alice_headers)
        assert download.status_code == 404

    async def test_delete_missing_attachment(
        self,
        client: AsyncClient,
        project: dict,
        alice_headers: dict,
        local_storage: LocalFileStorage,
    ) -> None:
        task = await create_task(client, project["id"], alice_headers)
        response = await client.delete(
            f"{_attachments_url(project['id'], task['id'])}/{uuid.uuid4()}",
            headers=alice_headers,
        )
        assert response.status_code == 404
