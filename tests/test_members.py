"""
Membership endpoint tests.
Covers: share by email, role changes, removal, owner protection.
"""
from __future__ import annotations

import pytest
from httpx import AsyncClient

from app.crud.project import crud_project
from tests.helpers import API, activity_actions, create_task, share


def _members_url(project_id: str) -> str:
    return f"{API}/projects/{project_id}/members"


class TestShareProject:
    async def test_share_success(
        self, client: AsyncClient, project: dict, alice_headers: dict, bob
    ) -> None:
        member = await share(client, project["id"], alice_headers, "BOB@example.com", "ADMIN")
        assert member["user_id"] == str(bob.id)
        assert member["role"] == "ADMIN"
        assert member["user"]["email"] == bob.email

        actions = await activity_actions(client, project["id"], alice_headers)
        assert actions[0] == "PROJECT_SHARED"

    async def test_share_defaults_to_member(
        self, client: AsyncClient, project: dict, alice_headers: dict, bob
    ) -> None:
        response = await client.post(
            _members_url(project["id"]), json={"email": bob.email}, headers=alice_headers
        )
        assert response.status_code == 201
        assert response.json()["role"] == "MEMBER"

    async def test_share_unknown_email(
        self, client: AsyncClient, project: dict, alice_headers: dict
    ) -> None:
        response = await client.post(
            _members_url(project["id"]),
            json={"email": "ghost@example.com", "role": "MEMBER"},
            headers=alice_headers,
        )
        assert response.status_code == 404

    async def test_share_inactive_user(
        self, client: AsyncClient, project: dict, alice_headers: dict, make_user
    ) -> None:
        await make_user("gone@example.com", is_active=False)
        response = await client.post(
            _members_url(project["id"]),
            json={"email": "gone@example.com"},
            headers=alice_headers,
        )
        assert response.status_code == 404

    async def test_share_existing_member_conflict(
        self, client: AsyncClient, project: dict, alice_headers: dict, bob
    ) -> None:
        await share(client, project["id"], alice_headers, bob.email)
        response = await client.post(
            _members_url(project["id"]),
            json={"email": bob.email, "role": "VIEWER"},
            headers=alice_headers,
        )
        assert response.status_code == 409

    async def test_share_race_reports_conflict(
        self,
        client: AsyncClient,
        project: dict,
        alice_headers: dict,
        bob,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        await share(client, project["id"], alice_headers, bob.email, "MEMBER")

        # A concurrent invite that found no membership row before the first commit.
        async def no_member_yet(db, **kwargs):
            return None

        monkeypatch.setattr(crud_project, "get_member", no_member_yet)
        response = await client.post(
            _members_url(project["id"]),
            json={"email": bob.email, "role": "VIEWER"},
            headers=alice_headers,
        )
        assert response.status_code == 409
        assert response.json()["error"] == "CONFLICT"

        monkeypatch.undo()
        members = await client.get(_members_url(project["id"]), headers=alice_headers)
        roles = {m["user_id"]: m["role"] for m in members.json()}
        assert roles[str(bob.id)] == "MEMBER"
        actions = await activity_actions(client, project["id"], alice_headers)
        assert actions.count("PROJECT_SHARED") == 1

    async def test_share_with_owner_conflict(
        self, client: AsyncClient, project: dict, alice, alice_headers: dict
    ) -> None:
        response = await client.post(
            _members_url(project["id"]),
            json={"email": alice.email, "role": "ADMIN"},
            headers=alice_headers,
        )
        assert response.status_code == 409

    async def test_share_as_owner_role_rejected(
        self, client: AsyncClient, project: dict, alice_headers: dict, bob
    ) -> None:
        response = await client.post(
            _members_url(project["id"]),
            json={"email": bob.email, "role": "OWNER"},
            headers=alice_headers,
        )
        assert response.status_code == 422

    async def test_member_cannot_share(
        self,
        client: AsyncClient,
        project: dict,
        alice_headers: dict,
        bob,
        bob_headers: dict,
        carol,
    ) -> None:
        await share(client, project["id"], alice_headers, bob.email, "MEMBER")
        response = await client.post(
            _members_url(project["id"]),
            json={"email": carol.email},
            headers=bob_headers,
        )
        assert response.status_code == 403

    async def test_manager_can_share(
        self,
        client: AsyncClient,
        project: dict,
        alice_headers: dict,
        bob,
        bob_headers: dict,
        carol,
    ) -> None:
        await share(client, project["id"], alice_headers, bob.email, "MANAGER")
        member = await share(client, project["id"], bob_headers, carol.email, "VIEWER")
        assert member["role"] == "VIEWER"


class TestChangeRole:
    async def test_change_role(
        self,
        client: AsyncClient,
        project: dict,
        alice_headers: dict,
        bob,
        bob_headers: dict,
    ) -> None:
        await share(client, project["id"], alice_headers, bob.email, "VIEWER")

        denied = await client.post(
            f"{API}/projects/{project['id']}/tasks",
            json={"title": "Too early"},
            headers=bob_headers,
        )
        assert denied.status_code == 403

        response = await client.put(
            f"{_members_url(project['id'])}/{bob.id}/role",
            json={"role": "MEMBER"},
            headers=alice_headers,
        )
        assert response.status_code == 200
        assert response.json()["role"] == "MEMBER"

        # The next request sees the new role.
        await create_task(client, project["id"], bob_headers, title="Now allowed")

    async def test_change_owner_role_conflict(
        self, client: AsyncClient, project: dict, alice, alice_headers: dict
    ) -> None:
        response = await client.put(
            f"{_members_url(project['id'])}/{alice.id}/role",
            json={"role": "ADMIN"},
            headers=alice_headers,
        )
        assert response.status_code == 409

    async def test_promote_to_owner_rejected(
        self, client: AsyncClient, project: dict, alice_headers: dict, bob
    ) -> None:
        await share(client, project["id"], alice_headers, bob.email)
        response = await client.put(
            f"{_members_url(project['id'])}/{bob.id}/role",
            json={"role": "OWNER"},
            headers=alice_headers,
        )
        assert response.status_code == 422

    async def test_change_role_of_non_member(
        self, client: AsyncClient, project: dict, alice_headers: dict, bob
    ) -> None:
        response = await client.put(
            f"{_members_url(project['id'])}/{bob.id}/role",
            json={"role": "ADMIN"},
            headers=alice_headers,
        )
        assert response.status_code == 404


class TestRemoveMember:
    async def test_remove_member_drops_assignments(
        self,
        client: AsyncClient,
        project: dict,
        alice_headers: dict,
        bob,
        bob_headers: dict,
    ) -> None:
        await share(client, project["id"], alice_headers, bob.email)
        task = await create_task(client, project["id"], alice_headers, title="Shared work")
        assigned = await client.post(
            f"{API}/projects/{project['id']}/tasks/{task['id']}/assign",
            json={"assignee_email": bob.email},
            headers=alice_headers,
        )
        assert assigned.status_code == 200
        assert [a["id"] for a in assigned.json()["assignees"]] == [str(bob.id)]

        response = await client.delete(
            f"{_members_url(project['id'])}/{bob.id}", headers=alice_headers
        )
        assert response.status_code == 204

        refreshed = await client.get(
            f"{API}/projects/{project['id']}/tasks/{task['id']}", headers=alice_headers
        )
        assert refreshed.json()["assignees"] == []

        lost_access = await client.get(f"{API}/projects/{project['id']}", headers=bob_headers)
        assert lost_access.status_code == 403

        actions = await activity_actions(client, project["id"], alice_headers)
        assert actions[0] == "MEMBER_REMOVED"

    async def test_remove_owner_conflict(
        self, client: AsyncClient, project: dict, alice, alice_headers: dict
    ) -> None:
        response = await client.delete(
            f"{_members_url(project['id'])}/{alice.id}", headers=alice_headers
        )
        assert response.status_code == 409

    async def test_remove_non_member(
        self, client: AsyncClient, project: dict, alice_headers: dict, bob
    ) -> None:
        response = await client.delete(
            f"{_members_url(project['id'])}/{bob.id}", headers=alice_headers
        )
        assert response.status_code == 404
