"""
Comment endpoint tests.
Covers: add, list order, author-only edits, moderated deletion.
"""
from __future__ import annotations

from httpx import AsyncClient

from tests.helpers import API, activity_actions, create_task, share, unread_count


def _comments_url(project_id: str, task_id: str) -> str:
    return f"{API}/projects/{project_id}/tasks/{task_id}/comments"


async def _comment(client: AsyncClient, url: str, headers: dict, content: str) -> dict:
    response = await client.post(url, json={"content": content}, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


class TestAddComment:
    async def test_add_and_list_oldest_first(
        self, client: AsyncClient, project: dict, alice, alice_headers: dict
    ) -> None:
        task = await create_task(client, project["id"], alice_headers)
        url = _comments_url(project["id"], task["id"])

        first = await _comment(client, url, alice_headers, "First")
        assert first["author_id"] == str(alice.id)
        assert first["author"]["email"] == alice.email
        await _comment(client, url, alice_headers, "Second")

        response = await client.get(url, headers=alice_headers)
        assert response.status_code == 200
        assert [c["content"] for c in response.json()] == ["First", "Second"]

        actions = await activity_actions(client, project["id"], alice_headers)
        assert actions[:2] == ["COMMENT_ADDED", "COMMENT_ADDED"]

    async def test_blank_comment_rejected(
        self, client: AsyncClient, project: dict, alice_headers: dict
    ) -> None:
        task = await create_task(client, project["id"], alice_headers)
        response = await client.post(
            _comments_url(project["id"], task["id"]),
            json={"content": "   "},
            headers=alice_headers,
        )
        assert response.status_code == 422

    async def test_viewer_cannot_comment(
        self,
        client: AsyncClient,
        project: dict,
        alice_headers: dict,
        bob,
        bob_headers: dict,
    ) -> None:
        await share(client, project["id"], alice_headers, bob.email, "VIEWER")
        task = await create_task(client, project["id"], alice_headers)
        response = await client.post(
            _comments_url(project["id"], task["id"]),
            json={"content": "Can I?"},
            headers=bob_headers,
        )
        assert response.status_code == 403

    async def test_comment_notifies_assignees(
        self,
        client: AsyncClient,
        project: dict,
        alice_headers: dict,
        bob,
        bob_headers: dict,
    ) -> None:
        await share(client, project["id"], alice_headers, bob.email)
        task = await create_task(client, project["id"], alice_headers)
        await client.post(
            f"{API}/projects/{project['id']}/tasks/{task['id']}/assign",
            json={"assignee_email": bob.email},
            headers=alice_headers,
        )
        before = await unread_count(client, bob_headers)

        await _comment(client, _comments_url(project["id"], task["id"]), alice_headers, "Ping")

        assert await unread_count(client, bob_headers) == before + 1

    async def test_comment_on_missing_task(
        self, client: AsyncClient, project: dict, alice_headers: dict
    ) -> None:
        response = await client.post(
            _comments_url(project["id"], "00000000-0000-0000-0000-000000000000"),
            json={"content": "Hello?"},
            headers=alice_headers,
        )
        assert response.status_code == 404


class TestEditComment:
    async def test_author_edits(
        self, client: AsyncClient, project: dict, alice_headers: dict
    ) -> None:
        task = await create_task(client, project["id"], alice_headers)
        url = _comments_url(project["id"], task["id"])
        comment = await _comment(client, url, alice_headers, "Typo")

        response = await client.put(
            f"{url}/{comment['id']}", json={"content": "Fixed"}, headers=alice_headers
        )
        assert response.status_code == 200
        assert response.json()["content"] == "Fixed"

    async def test_non_author_cannot_edit(
        self,
        client: AsyncClient,
        project: dict,
        alice_headers: dict,
        bob,
        bob_headers: dict,
    ) -> None:
        await share(client, project["id"], alice_headers, bob.email, "ADMIN")
        task = await create_task(client, project["id"], alice_headers)
        url = _comments_url(project["id"], task["id"])
        comment = await _comment(client, url, alice_headers, "Mine")

        response = await client.put(
            f"{url}/{comment['id']}", json={"content": "Theirs"}, headers=bob_headers
        )
        assert response.status_code == 403


class TestDeleteComment:
    async def test_author_deletes(
        self,
        client: AsyncClient,
        project: dict,
        alice_headers: dict,
        bob,
        bob_headers: dict,
    ) -> None:
        await share(client, project["id"], alice_headers, bob.email)
        task = await create_task(client, project["id"], alice_headers)
        url = _comments_url(project["id"], task["id"])
        comment = await _comment(client, url, bob_headers, "Oops")

        response = await client.delete(f"{url}/{comment['id']}", headers=bob_headers)
        assert response.status_code == 204

        listed = await client.get(url, headers=alice_headers)
        assert listed.json() == []

    async def test_member_cannot_delete_others(
        self,
        client: AsyncClient,
        project: dict,
        alice_headers: dict,
        bob,
        bob_headers: dict,
    ) -> None:
        await share(client, project["id"], alice_headers, bob.email)
        task = await create_task(client, project["id"], alice_headers)
        url = _comments_url(project["id"], task["id"])
        comment = await _comment(client, url, alice_headers, "Keep me")

        response = await client.delete(f"{url}/{comment['id']}", headers=bob_headers)
        assert response.status_code == 403

    async def test_manager_moderates(
        self,
        client: AsyncClient,
        project: dict,
        alice_headers: dict,
        bob,
        bob_headers: dict,
        carol,
        carol_headers: dict,
    ) -> None:
        await share(client, project["id"], alice_headers, bob.email, "MANAGER")
        await share(client, project["id"], alice_headers, carol.email, "MEMBER")
        task = await create_task(client, project["id"], alice_headers)
        url = _comments_url(project["id"], task["id"])
        comment = await _comment(client, url, carol_headers, "Off topic")

        response = await client.delete(f"{url}/{comment['id']}", headers=bob_headers)
        assert response.status_code == 204

        actions = await activity_actions(client, project["id"], alice_headers)
        assert actions[0] == "COMMENT_DELETED"
