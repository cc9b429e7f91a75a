from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from projecthub.main import app


@pytest.fixture
def client(fake_redis) -> TestClient:
    return TestClient(app)


def _register(client: TestClient, username: str) -> dict[str, str]:
    resp = client.post(
        "/api/auth/register",
        json={"username": username, "email": f"{username}@example.com", "password": "secret123", "name": username},
    )
    assert resp.status_code == 200, resp.text
    return {"Authorization": f"Bearer {resp.json()['token']}"}


def test_health(client):
    assert client.get("/health").json() == {"ok": True, "redis": True}


def test_requests_without_token_are_rejected(client):
    resp = client.get("/api/projects")
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Not authenticated"

    resp = client.get("/api/projects", headers={"Authorization": "Bearer abc.def"})
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Invalid token"


def test_login_and_me(client):
    _register(client, "alice")
    assert client.post("/api/auth/login", json={"username": "alice", "password": "wrong"}).status_code == 401

    resp = client.post("/api/auth/login", json={"username": "alice@example.com", "password": "secret123"})
    assert resp.status_code == 200
    token = resp.json()["token"]
    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"}).json()
    assert me["username"] == "alice"
    assert "password_hash" not in me


def test_duplicate_registration_conflicts(client):
    _register(client, "alice")
    resp = client.post(
        "/api/auth/register",
        json={"username": "alice", "email": "other@example.com", "password": "secret123", "name": "A"},
    )
    assert resp.status_code == 409


def test_project_access_rules(client):
    alice = _register(client, "alice")
    bob = _register(client, "bob")

    project = client.post("/api/projects", json={"name": "Website"}, headers=alice).json()
    assert project["is_owner"] is True
    assert project["member_count"] == 1

    assert client.get(f"/api/projects/{project['id']}", headers=bob).status_code == 403
    assert client.get("/api/projects/missing", headers=alice).status_code == 404
    assert client.delete(f"/api/projects/{project['id']}", headers=bob).status_code == 403


def test_task_board_and_batch_delete(client):
    alice = _register(client, "alice")
    project = client.post("/api/projects", json={"name": "Website"}, headers=alice).json()
    task = client.post("/api/tasks", json={"title": "Hero copy", "project_id": project["id"]}, headers=alice).json()

    board = client.get("/api/tasks/board", headers=alice).json()
    assert [t["id"] for t in board["todo"]] == [task["id"]]
    assert board["completed"] == []

    assert client.post("/api/tasks/batch-delete", json={"task_ids": []}, headers=alice).status_code == 400
    resp = client.post("/api/tasks/batch-delete", json={"task_ids": [task["id"]]}, headers=alice)
    assert resp.json()["deleted_count"] == 1


def test_meeting_batch_route_is_not_an_id(client):
    alice = _register(client, "alice")
    m = client.post("/api/meetings", json={"title": "Sync"}, headers=alice).json()
    resp = client.request("DELETE", "/api/meetings/batch", json={"meeting_ids": [m["id"]]}, headers=alice)
    assert resp.status_code == 200
    assert resp.json()["deleted_count"] == 1


def test_recording_flow_enqueues_upload(client, fake_queue):
    alice = _register(client, "alice")
    rec = client.post("/api/recordings", json={"title": "Standup"}, headers=alice).json()

    resp = client.post(f"/api/recordings/{rec['id']}/chunks", content=b"\x00\x01\x02", headers=alice)
    assert resp.json()["chunk_count"] == 1

    resp = client.post(f"/api/recordings/{rec['id']}/finalize", json={"duration": 42}, headers=alice)
    assert resp.status_code == 200
    assert resp.json()["queued"] is True
    assert len(fake_queue.enqueued) == 1

    status = client.get("/api/recordings/status", headers=alice).json()
    assert status["queued"] == 1


def test_empty_recording_cannot_be_finalized(client, fake_queue):
    alice = _register(client, "alice")
    rec = client.post("/api/recordings", json={}, headers=alice).json()
    resp = client.post(f"/api/recordings/{rec['id']}/finalize", json={"duration": 5}, headers=alice)
    assert resp.status_code == 400
    assert fake_queue.enqueued == []


def test_settings_roundtrip(client):
    alice = _register(client, "alice")
    assert client.get("/api/settings", headers=alice).json()["time_format"] == "12"
    resp = client.put("/api/settings", json={"time_format": "24", "timezone": "Europe/Berlin"}, headers=alice)
    assert resp.json()["timezone"] == "Europe/Berlin"
    assert client.get("/api/settings", headers=alice).json()["time_format"] == "24"


def test_debug_routes_hidden_by_default(client):
    assert client.get("/debug/ping").status_code == 404


def test_calendar_week_view(client):
    alice = _register(client, "alice")
    client.post("/api/meetings", json={"title": "Retro", "scheduled_at": "2026-04-02T15:00:00Z"}, headers=alice)

    resp = client.get("/api/calendar/events", params={"view": "week", "date": "2026-04-02", "time_format": "24"}, headers=alice)
    assert resp.status_code == 200
    days = resp.json()["days"]
    assert [d["date"] for d in days][0] == "2026-03-29"
    thursday = next(d for d in days if d["date"] == "2026-04-02")
    assert [(e["title"], e["time"]) for e in thursday["events"]] == [("Retro", "15:00")]


def test_outlook_configure_requires_url(client):
    alice = _register(client, "alice")
    assert client.post("/api/outlook/configure", json={"enabled": True}, headers=alice).status_code == 400
    resp = client.post("/api/outlook/configure", json={"enabled": False}, headers=alice)
    assert resp.json()["enabled"] is False


def test_disabling_calendar_sync_clears_cached_feed(client, fake_redis):
    alice = _register(client, "alice")
    user_id = client.get("/api/auth/me", headers=alice).json()["id"]
    resp = client.post(
        "/api/outlook/configure",
        json={"enabled": True, "calendar_url": "https://outlook.example.com/calendar.ics"},
        headers=alice,
    )
    assert resp.json()["enabled"] is True
    fake_redis.set(
        f"calendar_feed:{user_id}",
        '[{"uid": "evt-1", "title": "Standup", "start": "2026-04-02T09:00:00Z", "end": "2026-04-02T09:15:00Z"}]',
    )
    assert [e["uid"] for e in client.get("/api/outlook/events", headers=alice).json()] == ["evt-1"]

    resp = client.post("/api/outlook/configure", json={"enabled": False}, headers=alice)
    assert resp.json()["enabled"] is False
    assert fake_redis.get(f"calendar_feed:{user_id}") is None
    assert client.get("/api/outlook/events", headers=alice).json() == []


def test_null_for_required_field_is_rejected(client):
    alice = _register(client, "alice")
    project = client.post("/api/projects", json={"name": "Launch"}, headers=alice).json()
    task = client.post("/api/tasks", json={"title": "Write copy", "project_id": project["id"]}, headers=alice).json()
    meeting = client.post(
        "/api/meetings", json={"title": "Kickoff", "scheduled_at": "2026-04-02T15:00:00Z"}, headers=alice
    ).json()

    assert client.put(f"/api/tasks/{task['id']}", json={"status": None}, headers=alice).status_code == 400
    assert client.put(f"/api/projects/{project['id']}", json={"name": None}, headers=alice).status_code == 400
    assert client.put(f"/api/meetings/{meeting['id']}", json={"title": None}, headers=alice).status_code == 400
    assert client.put("/api/profile", json={"name": None}, headers=alice).status_code == 400

    assert client.get(f"/api/tasks/{task['id']}", headers=alice).json()["status"] == "todo"
    assert client.get(f"/api/projects/{project['id']}", headers=alice).json()["name"] == "Launch"
    assert client.get(f"/api/meetings/{meeting['id']}", headers=alice).json()["title"] == "Kickoff"
    me = client.get("/api/auth/me", headers=alice)
    assert me.status_code == 200
    assert me.json()["name"] == "alice"
