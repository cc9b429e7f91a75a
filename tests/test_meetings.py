from __future__ import annotations

from datetime import datetime, timezone

import pytest

import projecthub.settings as settings_module
from projecthub.errors import AccessDeniedError, NotFoundError, ValidationFailedError
from projecthub.schemas.ai import ExtractedTask, MeetingSummary, TranscriptionResult
from projecthub.schemas.meetings import MeetingCreate
from projecthub.schemas.tasks import Task, TaskCreate
from projecthub.services import ai_service, meeting_service, project_service, task_service
from projecthub.services.record_store_service import delete_record


def _dt(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def test_weekly_pattern_only_emits_listed_weekdays():
    # 2026-01-05 is a Monday (Sunday-based weekday 1)
    start = _dt(2026, 1, 5, 9)
    end = _dt(2026, 1, 26, 9)
    assert meeting_service.recurrence_dates(start, "weekly", 1, end, "1") == [
        _dt(2026, 1, 12, 9),
        _dt(2026, 1, 19, 9),
        _dt(2026, 1, 26, 9),
    ]
    assert meeting_service.recurrence_dates(start, "weekly", 1, end, "3") == []


def test_monthly_recurrence_clamps_to_month_end():
    dates = meeting_service.recurrence_dates(_dt(2026, 1, 31, 10), "monthly", 1, _dt(2026, 4, 30, 10))
    assert dates == [_dt(2026, 2, 28, 10), _dt(2026, 3, 31, 10), _dt(2026, 4, 30, 10)]


def test_open_ended_recurrence_is_capped(monkeypatch):
    assert len(meeting_service.recurrence_dates(_dt(2026, 1, 1), "daily")) == 99

    monkeypatch.setenv("RECURRENCE_MAX_INSTANCES", "1000")
    monkeypatch.setattr(settings_module, "_settings", None)
    assert len(meeting_service.recurrence_dates(_dt(2026, 1, 1), "daily")) == 104


def test_recurring_meeting_creates_child_instances(alice, project):
    parent = meeting_service.create_meeting(
        alice.id,
        MeetingCreate(
            title="Standup",
            project_id=project.id,
            scheduled_at=_dt(2026, 2, 2, 9),
            is_recurring=True,
            recurrence_type="daily",
            recurrence_end_date=_dt(2026, 2, 5, 9),
        ),
    )
    meetings = meeting_service.list_meetings(alice.id, project.id)
    children = [m for m in meetings if m.recurring_parent_id == parent.id]
    assert len(children) == 3
    assert all(not c.is_recurring for c in children)


def test_same_recording_id_returns_existing_meeting(alice):
    req = MeetingCreate(title="Voice Recording", recording_id="rec-1")
    first = meeting_service.create_meeting(alice.id, req)
    second = meeting_service.create_meeting(alice.id, req)
    assert first.id == second.id
    assert len(meeting_service.list_meetings(alice.id)) == 1


def test_stale_recording_lookup_is_replaced(alice):
    req = MeetingCreate(title="Voice Recording", recording_id="rec-2")
    first = meeting_service.create_meeting(alice.id, req)
    # Drop only the record, leaving the lookup dangling
    delete_record(meeting_service.KIND, first.id)
    again = meeting_service.create_meeting(alice.id, req)
    assert again.id != first.id
    assert meeting_service.get_meeting_for_recording(alice.id, "rec-2").id == again.id


def test_only_creator_can_change_meeting(alice, bob, project):
    m = meeting_service.create_meeting(alice.id, MeetingCreate(title="Plan", project_id=project.id))
    with pytest.raises(AccessDeniedError):
        meeting_service.delete_meeting(bob.id, m.id)
    with pytest.raises(AccessDeniedError):
        meeting_service.require_meeting(bob.id, m.id)


def test_batch_delete_meetings(alice, bob):
    mine = meeting_service.create_meeting(alice.id, MeetingCreate(title="Mine"))
    theirs = meeting_service.create_meeting(bob.id, MeetingCreate(title="Theirs"))

    with pytest.raises(ValidationFailedError):
        meeting_service.batch_delete(alice.id, [])
    with pytest.raises(NotFoundError):
        meeting_service.batch_delete(alice.id, [theirs.id])

    assert meeting_service.batch_delete(alice.id, [mine.id, theirs.id]) == 1
    assert meeting_service.get_meeting(theirs.id) is not None


def _fake_ai(monkeypatch, text="We agreed to send the report and book the venue.", tasks=None):
    calls = {"transcribe": 0}

    def transcribe(audio_b64, mime_type="audio/webm"):
        calls["transcribe"] += 1
        return TranscriptionResult(text=text)

    monkeypatch.setattr(ai_service, "transcribe", transcribe)
    monkeypatch.setattr(ai_service, "summarize", lambda t: MeetingSummary(summary="Report and venue."))
    monkeypatch.setattr(
        ai_service,
        "extract_tasks",
        lambda t: tasks
        if tasks is not None
        else [
            ExtractedTask(title="send the report", priority="high"),
            ExtractedTask(title="Book venue", due_date="2026-05-01"),
        ],
    )
    return calls


def test_process_recording_skips_duplicate_tasks(monkeypatch, alice, project):
    task_service.create_task(alice.id, TaskCreate(title="Send the report", project_id=project.id))
    meeting = meeting_service.create_meeting(alice.id, MeetingCreate(title="Sync", project_id=project.id))
    _fake_ai(monkeypatch)

    result = meeting_service.process_recording(alice.id, meeting.id, "data:audio/webm;base64,QUJD")
    assert result.tasks_created == 1
    assert result.transcription.startswith("We agreed")
    assert result.ai_summary == "Report and venue."

    titles = sorted(t.title for t in project_service.project_tasks(project.id))
    assert titles == ["Book venue", "Send the report"]
    venue = next(t for t in project_service.project_tasks(project.id) if t.title == "Book venue")
    assert venue.due_date == _dt(2026, 5, 1)


def test_process_recording_is_not_repeated(monkeypatch, alice, project):
    meeting = meeting_service.create_meeting(alice.id, MeetingCreate(title="Sync", project_id=project.id))
    calls = _fake_ai(monkeypatch)

    meeting_service.process_recording(alice.id, meeting.id, "QUJD")
    again = meeting_service.process_recording(alice.id, meeting.id, "QUJD")
    assert again.already_processed is True
    assert calls["transcribe"] == 1
    assert len(project_service.project_tasks(project.id)) == 2


def test_process_recording_rejects_empty_input(monkeypatch, alice):
    meeting = meeting_service.create_meeting(alice.id, MeetingCreate(title="Sync"))
    with pytest.raises(ValidationFailedError):
        meeting_service.process_recording(alice.id, meeting.id, "data:audio/webm;base64,")

    _fake_ai(monkeypatch, text="   ")
    with pytest.raises(ValidationFailedError):
        meeting_service.process_recording(alice.id, meeting.id, "QUJD")


def test_is_duplicate_task_uses_similarity():
    existing = [
        Task(
            id="t1",
            title="Prepare quarterly budget review",
            description="Collect numbers from finance",
            project_id="p",
            created_at=_dt(2026, 1, 1),
            updated_at=_dt(2026, 1, 1),
        )
    ]
    assert meeting_service.is_duplicate_task(ExtractedTask(title="Prepare quarterly budget reviews"), existing)
    assert not meeting_service.is_duplicate_task(ExtractedTask(title="Call the plumber"), existing)
