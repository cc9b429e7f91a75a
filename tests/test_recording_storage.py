from __future__ import annotations

from datetime import timedelta

import pytest

import projecthub.settings as settings_module
from projecthub.errors import NotFoundError
from projecthub.schemas.recordings import RecordingStart
from projecthub.services import recording_storage_service as storage
from projecthub.services.record_store_service import now_utc


def _recording(user_id: str, chunks: list[bytes] = (), **kw):
    rec = storage.start_recording(user_id, RecordingStart(title=kw.pop("title", "Standup")))
    for c in chunks:
        storage.add_chunk(rec.id, c, user_id)
    if kw:
        rec = storage.require_recording(rec.id).model_copy(update=kw)
        storage.save_recording(rec)
    return storage.require_recording(rec.id)


def test_chunks_are_appended_and_assembled(alice):
    rec = _recording(alice.id, [b"abc", b"", b"def"])
    assert rec.chunk_count == 2
    assert rec.metadata.size == 6
    assert storage.assemble_audio(rec.id) == b"abcdef"


def test_finalize_without_audio_marks_failed(alice):
    rec = _recording(alice.id)
    with pytest.raises(storage.EmptyRecordingError):
        storage.finalize_recording(rec.id, 30, alice.id)
    stored = storage.require_recording(rec.id)
    assert stored.status == "failed"
    assert stored.last_error == storage.NO_AUDIO_MESSAGE
    assert stored.retry_count == 0
    assert storage.is_unrecoverable(stored)


def test_finalize_marks_completed(alice):
    rec = _recording(alice.id, [b"audio"])
    done = storage.finalize_recording(rec.id, 95, alice.id)
    assert done.status == "completed"
    assert done.duration == 95


def test_other_users_cannot_touch_recording(alice, bob):
    rec = _recording(alice.id, [b"audio"])
    with pytest.raises(NotFoundError):
        storage.add_chunk(rec.id, b"x", bob.id)


def test_failed_transitions_count_retries(alice):
    rec = _recording(alice.id, [b"audio"])
    storage.update_status(rec.id, "processing")
    for _ in range(3):
        storage.update_status(rec.id, "failed", "boom")
    stored = storage.require_recording(rec.id)
    assert stored.retry_count == 3
    assert storage.is_unrecoverable(stored)
    assert storage.delete_unrecoverable(alice.id) == 1
    assert storage.get_recording(rec.id) is None
    assert storage.get_chunks(rec.id) == []


def test_cleanup_removes_only_old_uploaded(alice):
    old = _recording(alice.id, [b"a"], status="uploaded", timestamp=now_utc() - timedelta(days=10))
    fresh = _recording(alice.id, [b"a"], status="uploaded")
    pending = _recording(alice.id, [b"a"], status="completed", timestamp=now_utc() - timedelta(days=10))

    assert storage.cleanup(alice.id) == 1
    assert storage.get_recording(old.id) is None
    assert storage.get_recording(fresh.id) is not None
    assert storage.get_recording(pending.id) is not None


def test_recover_incomplete(alice):
    stale = now_utc() - timedelta(hours=3)
    with_audio = _recording(alice.id, [b"a"], timestamp=stale)
    paused_empty = _recording(alice.id, status="paused", timestamp=stale)
    recent = _recording(alice.id, [b"a"])

    assert storage.recover_incomplete(alice.id) == 1
    assert storage.require_recording(with_audio.id).status == "completed"
    assert storage.require_recording(paused_empty.id).status == "failed"
    assert storage.require_recording(recent.id).status == "recording"


def test_storage_health_triggers_cleanup(monkeypatch, alice):
    monkeypatch.setenv("RECORDING_STORAGE_LIMIT", "2")
    monkeypatch.setattr(settings_module, "_settings", None)
    for _ in range(2):
        _recording(alice.id, [b"a"], status="uploaded", timestamp=now_utc() - timedelta(days=30))
    assert storage.storage_health(alice.id).healthy is True

    _recording(alice.id, [b"a"])
    health = storage.storage_health(alice.id)
    assert health.healthy is False
    assert health.recordings == 1
