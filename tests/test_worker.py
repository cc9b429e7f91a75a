from __future__ import annotations

from projecthub import worker


class _Queue:
    instances: list["_Queue"] = []

    def __init__(self, name, connection):
        self.name = name
        self.enqueued: list[tuple] = []
        _Queue.instances.append(self)

    def enqueue(self, func, *args, **kwargs):
        self.enqueued.append((func, args, kwargs))


class _Worker:
    def __init__(self, queues, connection):
        self.queues = queues
        self.worked_with_scheduler = None

    def work(self, with_scheduler=False):
        self.worked_with_scheduler = with_scheduler


def test_worker_start_enqueues_maintenance_once(monkeypatch, fake_redis):
    _Queue.instances = []
    monkeypatch.setattr(worker, "Queue", _Queue)
    monkeypatch.setattr(worker, "Worker", _Worker)
    monkeypatch.setattr(worker, "get_redis_bytes", lambda: fake_redis)
    monkeypatch.setattr(worker, "configure_logging", lambda level: None)

    worker.main()

    (queue,) = _Queue.instances
    assert queue.enqueued == [
        ("projecthub.jobs.recording_jobs.run_maintenance", (), {"job_id": "recording-maintenance"})
    ]
