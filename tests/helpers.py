"""
Request helpers shared by the endpoint tests.
"""
from __future__ import annotations

from httpx import AsyncClient

API = "/api/v1"


async def share(
    client: AsyncClient,
    project_id: str,
    headers: dict,
    email: str,
    role: str = "MEMBER",
) -> dict:
    response = await client.post(
        f"{API}/projects/{project_id}/members",
        json={"email": email, "role": role},
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


async def create_task(
    client: AsyncClient,
    project_id: str,
    headers: dict,
    title: str = "Test Task",
    **fields: object,
) -> dict:
    response = await client.post(
        f"{API}/projects/{project_id}/tasks",
        json={"title": title, **fields},
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


async def unread_count(client: AsyncClient, headers: dict) -> int:
    response = await client.get(f"{API}/notifications/unread/count", headers=headers)
    assert response.status_code == 200, response.text
    return response.json()["unread_count"]


async def activity_actions(client: AsyncClient, project_id: str, headers: dict) -> list[str]:
    """Actions of the project's activity log, newest first."""
    response = await client.get(f"{API}/projects/{project_id}/activity", headers=headers)
    assert response.status_code == 200, response.text
    return [entry["action"] for entry in response.json()]
