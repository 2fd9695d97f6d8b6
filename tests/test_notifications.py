"""
Notification endpoint tests.
Covers: fan-out to affected users, failures after the primary commit,
unread counts, read state and live pushes.
"""
from __future__ import annotations

import logging
import uuid

import pytest
from httpx import AsyncClient

from app.crud.notification import crud_notification
from app.services.activity_service import activity_service
from app.services.notification_service import affected_users, notification_service
from app.services.stream_service import notification_broker
from tests.helpers import API, activity_actions, create_task, share, unread_count


class TestAffectedUsers:
    def test_actor_and_duplicates_dropped(self) -> None:
        actor, first, second = uuid.uuid4(), uuid.uuid4(), uuid.uuid4()
        assert affected_users([first, actor, second, first], actor) == [first, second]

    def test_actor_alone_yields_nobody(self) -> None:
        actor = uuid.uuid4()
        assert affected_users([actor], actor) == []


class TestFanOut:
    async def test_collaboration_flow(
        self,
        client: AsyncClient,
        project: dict,
        alice_headers: dict,
        bob,
        bob_headers: dict,
    ) -> None:
        await share(client, project["id"], alice_headers, bob.email, "MEMBER")
        after_share = await unread_count(client, bob_headers)
        assert after_share == 1

        # Bob's own action never notifies bob.
        task = await create_task(client, project["id"], bob_headers, title="Write copy")
        assert await unread_count(client, bob_headers) == after_share

        moved = await client.patch(
            f"{API}/projects/{project['id']}/tasks/{task['id']}/status",
            json={"status": "DONE"},
            headers=alice_headers,
        )
        assert moved.status_code == 200
        assert await unread_count(client, bob_headers) == after_share + 1

        actions = await activity_actions(client, project["id"], alice_headers)
        assert actions == [
            "TASK_STATUS_CHANGED",
            "TASK_CREATED",
            "PROJECT_SHARED",
            "PROJECT_CREATED",
        ]

    async def test_notification_links_back_to_activity(
        self,
        client: AsyncClient,
        project: dict,
        alice_headers: dict,
        bob,
        bob_headers: dict,
    ) -> None:
        await share(client, project["id"], alice_headers, bob.email)
        response = await client.get(f"{API}/notifications", headers=bob_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        notification = data["items"][0]
        assert notification["type"] == "PROJECT_SHARED"
        assert notification["project_id"] == project["id"]
        assert notification["entity_id"] == str(bob.id)
        assert notification["is_read"] is False

        activity = await client.get(
            f"{API}/projects/{project['id']}/activity", headers=alice_headers
        )
        assert notification["activity_id"] == activity.json()[0]["id"]


class TestAfterCommitFailures:
    """Audit and fan-out failures are logged and never undo the mutation."""

    async def _titles(self, client: AsyncClient, project_id: str, headers: dict) -> list[str]:
        response = await client.get(f"{API}/projects/{project_id}/tasks", headers=headers)
        assert response.status_code == 200
        return [t["title"] for t in response.json()]

    async def _notification_types(self, client: AsyncClient, headers: dict) -> list[str]:
        response = await client.get(f"{API}/notifications", headers=headers)
        return [n["type"] for n in response.json()["items"]]

    async def test_activity_failure_keeps_task(
        self,
        client: AsyncClient,
        project: dict,
        alice_headers: dict,
        bob,
        bob_headers: dict,
        monkeypatch: pytest.MonkeyPatch,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        await share(client, project["id"], alice_headers, bob.email)

        async def broken_record(db, **kwargs):
            raise RuntimeError("activity store unavailable")

        monkeypatch.setattr(activity_service, "record", broken_record)
        with caplog.at_level(logging.ERROR, logger="app.services.coordinator"):
            task = await create_task(client, project["id"], alice_headers, title="Survives")
        assert task["title"] == "Survives"
        assert "Activity/notification write failed" in caplog.text

        monkeypatch.undo()
        assert await self._titles(client, project["id"], alice_headers) == ["Survives"]
        assert await self._notification_types(client, bob_headers) == ["PROJECT_SHARED"]
        actions = await activity_actions(client, project["id"], alice_headers)
        assert "TASK_CREATED" not in actions

    async def test_fan_out_failure_keeps_task(
        self,
        client: AsyncClient,
        project: dict,
        alice_headers: dict,
        bob,
        bob_headers: dict,
        monkeypatch: pytest.MonkeyPatch,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        await share(client, project["id"], alice_headers, bob.email)

        async def broken_fan_out(db, **kwargs):
            raise RuntimeError("notification store unavailable")

        monkeypatch.setattr(notification_service, "create_for_activity", broken_fan_out)
        with caplog.at_level(logging.ERROR, logger="app.services.coordinator"):
            await create_task(client, project["id"], alice_headers, title="Survives")
        assert "Activity/notification write failed" in caplog.text

        monkeypatch.undo()
        assert await self._titles(client, project["id"], alice_headers) == ["Survives"]
        assert await unread_count(client, bob_headers) == 1
        assert await self._notification_types(client, bob_headers) == ["PROJECT_SHARED"]
        # The activity entry shares the fan-out transaction and goes with it.
        actions = await activity_actions(client, project["id"], alice_headers)
        assert "TASK_CREATED" not in actions

    async def test_live_push_failure_keeps_task_and_rows(
        self,
        client: AsyncClient,
        project: dict,
        alice_headers: dict,
        bob,
        bob_headers: dict,
        monkeypatch: pytest.MonkeyPatch,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        await share(client, project["id"], alice_headers, bob.email)

        def broken_push(pushes):
            raise RuntimeError("stream registry unavailable")

        monkeypatch.setattr(notification_service, "push_created", broken_push)
        queue = notification_broker.connect(bob.id)
        try:
            with caplog.at_level(logging.ERROR, logger="app.services.coordinator"):
                await create_task(client, project["id"], alice_headers, title="Survives")
            assert "Live push failed" in caplog.text
            assert queue.empty()
        finally:
            notification_broker.disconnect(bob.id, queue)

        monkeypatch.undo()
        assert await self._titles(client, project["id"], alice_headers) == ["Survives"]
        assert await unread_count(client, bob_headers) == 2
        assert await self._notification_types(client, bob_headers) == [
            "TASK_CREATED",
            "PROJECT_SHARED",
        ]
        actions = await activity_actions(client, project["id"], alice_headers)
        assert actions[0] == "TASK_CREATED"


class TestReadState:
    async def test_mark_read(
        self,
        client: AsyncClient,
        project: dict,
        alice_headers: dict,
        bob,
        bob_headers: dict,
    ) -> None:
        await share(client, project["id"], alice_headers, bob.email)
        listed = await client.get(f"{API}/notifications", headers=bob_headers)
        notification_id = listed.json()["items"][0]["id"]

        response = await client.put(
            f"{API}/notifications/{notification_id}/read", headers=bob_headers
        )
        assert response.status_code == 200
        assert response.json()["is_read"] is True
        assert await unread_count(client, bob_headers) == 0

        again = await client.put(
            f"{API}/notifications/{notification_id}/read", headers=bob_headers
        )
        assert again.status_code == 200

    async def test_cannot_mark_someone_elses_notification(
        self,
        client: AsyncClient,
        project: dict,
        alice_headers: dict,
        bob,
        bob_headers: dict,
    ) -> None:
        await share(client, project["id"], alice_headers, bob.email)
        listed = await client.get(f"{API}/notifications", headers=bob_headers)
        notification_id = listed.json()["items"][0]["id"]

        response = await client.put(
            f"{API}/notifications/{notification_id}/read", headers=alice_headers
        )
        assert response.status_code == 404
        assert await unread_count(client, bob_headers) == 1

    async def test_mark_all_read_twice(
        self,
        client: AsyncClient,
        project: dict,
        alice_headers: dict,
        bob,
        bob_headers: dict,
    ) -> None:
        await share(client, project["id"], alice_headers, bob.email)
        await create_task(client, project["id"], alice_headers)
        assert await unread_count(client, bob_headers) == 2

        first = await client.put(f"{API}/notifications/read-all", headers=bob_headers)
        assert first.status_code == 204
        assert await unread_count(client, bob_headers) == 0

        second = await client.put(f"{API}/notifications/read-all", headers=bob_headers)
        assert second.status_code == 204
        assert await unread_count(client, bob_headers) == 0

    async def test_unread_only_filter_and_pagination(
        self,
        client: AsyncClient,
        project: dict,
        alice_headers: dict,
        bob,
        bob_headers: dict,
    ) -> None:
        await share(client, project["id"], alice_headers, bob.email)
        for n in range(3):
            await create_task(client, project["id"], alice_headers, title=f"Task {n}")

        page = await client.get(
            f"{API}/notifications", params={"page": 1, "size": 2}, headers=bob_headers
        )
        data = page.json()
        assert data["total"] == 4
        assert data["pages"] == 2
        assert len(data["items"]) == 2
        # Newest first.
        assert data["items"][0]["message"].endswith("'Task 2'")

        read_id = data["items"][0]["id"]
        await client.put(f"{API}/notifications/{read_id}/read", headers=bob_headers)

        unread = await client.get(
            f"{API}/notifications", params={"unread_only": True}, headers=bob_headers
        )
        assert unread.json()["total"] == 3
        assert read_id not in [n["id"] for n in unread.json()["items"]]


class TestLivePush:
    async def test_connected_user_receives_notification_and_counts(
        self,
        client: AsyncClient,
        project: dict,
        alice_headers: dict,
        bob,
        bob_headers: dict,
    ) -> None:
        await share(client, project["id"], alice_headers, bob.email)
        queue = notification_broker.connect(bob.id)
        try:
            await create_task(client, project["id"], alice_headers, title="Live one")
            event = queue.get_nowait()
            assert event["unreadCount"] == 2
            assert event["notification"]["type"] == "TASK_CREATED"
            assert event["notification"]["user_id"] == str(bob.id)

            await client.put(f"{API}/notifications/read-all", headers=bob_headers)
            assert queue.get_nowait() == {"unreadCount": 0}
            assert queue.empty()
        finally:
            notification_broker.disconnect(bob.id, queue)

    async def test_actor_receives_nothing(
        self,
        client: AsyncClient,
        project: dict,
        alice,
        alice_headers: dict,
    ) -> None:
        queue = notification_broker.connect(alice.id)
        try:
            await create_task(client, project["id"], alice_headers)
            assert queue.empty()
        finally:
            notification_broker.disconnect(alice.id, queue)

    async def test_counts_taken_before_any_publish(
        self,
        client: AsyncClient,
        project: dict,
        alice_headers: dict,
        bob,
        carol,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        await share(client, project["id"], alice_headers, bob.email)
        await share(client, project["id"], alice_headers, carol.email)

        calls: list[str] = []
        count_unread = crud_notification.count_unread
        publish = notification_broker.publish

        async def counting(db, **kwargs):
            calls.append("count")
            return await count_unread(db, **kwargs)

        def publishing(user_id, payload):
            calls.append("publish")
            return publish(user_id, payload)

        monkeypatch.setattr(crud_notification, "count_unread", counting)
        monkeypatch.setattr(notification_broker, "publish", publishing)

        bob_queue = notification_broker.connect(bob.id)
        carol_queue = notification_broker.connect(carol.id)
        try:
            await create_task(client, project["id"], alice_headers, title="Fan out")
            assert calls == ["count", "count", "publish", "publish"]
            assert bob_queue.get_nowait()["unreadCount"] == 2
            assert carol_queue.get_nowait()["unreadCount"] == 2
        finally:
            notification_broker.disconnect(bob.id, bob_queue)
            notification_broker.disconnect(carol.id, carol_queue)
