from __future__ import annotations

from typing import Any, Optional

import pytest

import projecthub.services.redis_client as redis_client
import projecthub.settings as settings_module
from projecthub.schemas.projects import ProjectCreate
from projecthub.schemas.users import RegisterRequest
from projecthub.services import project_service, upload_queue_service, user_service
from tests.util_fake_redis import FakeRedis


class FakeJob:
    def __init__(self, job_id: str, status: str = "queued") -> None:
        self.id = job_id
        self.status = status

    def get_status(self) -> str:
        return self.status


class FakeQueue:
    def __init__(self) -> None:
        self.enqueued: list[tuple[str, tuple[Any, ...], dict[str, Any]]] = []
        self.jobs: dict[str, FakeJob] = {}

    def enqueue(self, func: str, *args: Any, **kwargs: Any) -> FakeJob:
        self.enqueued.append((func, args, kwargs))
        job = FakeJob(kwargs.get("job_id") or f"job-{len(self.enqueued)}")
        self.jobs[job.id] = job
        return job

    def fetch_job(self, job_id: str) -> Optional[FakeJob]:
        return self.jobs.get(job_id)


@pytest.fixture(autouse=True)
def fake_redis(monkeypatch) -> FakeRedis:
    fake = FakeRedis()
    monkeypatch.setattr(redis_client, "_redis_str", fake)
    monkeypatch.setattr(redis_client, "_redis_bytes", fake)
    monkeypatch.setattr(settings_module, "_settings", None)
    monkeypatch.delenv("AI_BASE_URL", raising=False)
    monkeypatch.delenv("SLACK_WEBHOOK_URL", raising=False)
    return fake


@pytest.fixture
def fake_queue(monkeypatch) -> FakeQueue:
    q = FakeQueue()
    monkeypatch.setattr(upload_queue_service, "get_queue", lambda: q)
    return q


def make_user(username: str = "alice", email: Optional[str] = None, name: Optional[str] = None):
    return user_service.create_user(
        RegisterRequest(
            username=username,
            email=email or f"{username}@example.com",
            password="secret123",
            name=name or username.title(),
        )
    )


def make_project(owner_id: str, name: str = "Website"):
    return project_service.create_project(owner_id, ProjectCreate(name=name))


@pytest.fixture
def alice():
    return make_user("alice")


@pytest.fixture
def bob():
    return make_user("bob")


@pytest.fixture
def project(alice):
    return make_project(alice.id)
