from __future__ import annotations

from datetime import date, datetime, timezone

from projecthub.schemas.calendar import FeedEvent
from projecthub.schemas.meetings import ExternalMeetingCreate, MeetingCreate
from projecthub.schemas.tasks import TaskCreate
from projecthub.services import calendar_service, meeting_service, task_service
from projecthub.util.time import resolve_tz


def _dt(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def test_month_grid_starts_on_sunday():
    cells = calendar_service.month_grid(date(2026, 10, 18))
    # 2026-10-01 is a Thursday
    assert cells[:4] == [None, None, None, None]
    assert cells[4] == date(2026, 10, 1)
    assert cells[-1] == date(2026, 10, 31)
    assert len(cells) == 35


def test_week_days_start_on_sunday():
    days = calendar_service.week_days(date(2026, 10, 21))
    assert days[0] == date(2026, 10, 18)
    assert len(days) == 7


def test_voice_recordings_stay_off_the_calendar(alice, project):
    meeting_service.create_meeting(alice.id, MeetingCreate(title="Planning", scheduled_at=_dt(2026, 4, 2, 15)))
    meeting_service.create_meeting(
        alice.id,
        MeetingCreate(title="Voice Recording 2026-04-02 10:00", scheduled_at=_dt(2026, 4, 2, 10)),
    )
    meeting_service.create_meeting(
        alice.id,
        MeetingCreate(
            title="Notes",
            description="AI-processed voice recording (ID: r1)",
            scheduled_at=_dt(2026, 4, 2, 11),
        ),
    )
    sources = calendar_service.load_sources(alice.id)
    assert [m.title for m in sources.meetings] == ["Planning"]


def test_events_for_date_orders_timed_events_then_tasks(alice, project):
    sources = calendar_service.CalendarSources(
        meetings=[
            meeting_service.create_meeting(
                alice.id, MeetingCreate(title="Afternoon", scheduled_at=_dt(2026, 4, 2, 15))
            )
        ],
        feed_events=[
            FeedEvent(uid="x1", title="Morning", start=_dt(2026, 4, 2, 9), end=_dt(2026, 4, 2, 9, 30)),
            FeedEvent(uid="x2", title="Tomorrow", start=_dt(2026, 4, 3, 9), end=_dt(2026, 4, 3, 10)),
        ],
        tasks=[
            task_service.create_task(
                alice.id, TaskCreate(title="Ship it", project_id=project.id, due_date=_dt(2026, 4, 2, 18))
            )
        ],
    )
    events = calendar_service.events_for_date(sources, date(2026, 4, 2), resolve_tz("UTC"), "24")
    assert [(e.title, e.source, e.time) for e in events] == [
        ("Morning", "outlook", "09:00"),
        ("Afternoon", "internal", "15:00"),
        ("Ship it", "task", None),
    ]
    assert events[0].id == "outlook-x1"
    assert events[0].duration == 30


def test_events_respect_timezone(alice):
    sources = calendar_service.CalendarSources(
        feed_events=[FeedEvent(uid="late", title="Late call", start=_dt(2026, 4, 3, 2), end=_dt(2026, 4, 3, 3))]
    )
    ny = resolve_tz("America/New_York")
    events = calendar_service.events_for_date(sources, date(2026, 4, 2), ny, "12")
    assert [(e.title, e.time) for e in events] == [("Late call", "10:00 PM")]


def test_feed_events_keep_same_id_in_day_and_upcoming():
    ev = FeedEvent(uid="x9", title="Planning", start=_dt(2026, 4, 2, 9), end=_dt(2026, 4, 2, 10))
    sources = calendar_service.CalendarSources(feed_events=[ev])
    utc = resolve_tz("UTC")
    day = calendar_service.events_for_date(sources, date(2026, 4, 2), utc)
    upcoming = calendar_service.upcoming_meetings(sources, _dt(2026, 4, 1, 12), utc)
    assert [e.id for e in day] == [e.id for e in upcoming] == ["outlook-x9"]


def test_calendar_view_week(alice):
    meeting_service.create_meeting(alice.id, MeetingCreate(title="Retro", scheduled_at=_dt(2026, 4, 2, 15)))
    view = calendar_service.calendar_view(
        alice.id, "week", date(2026, 4, 2), now=_dt(2026, 4, 1, 12)
    )
    assert len(view.days) == 7
    today = next(d for d in view.days if d.is_today)
    assert today.date == date(2026, 4, 1)
    thursday = next(d for d in view.days if d.date == date(2026, 4, 2))
    assert [e.title for e in thursday.events] == ["Retro"]
    assert [e.title for e in view.upcoming] == ["Retro"]


def test_feed_refresh_keeps_linked_project(alice, project):
    req = ExternalMeetingCreate(
        external_id="uid-1", title="Client call", start_time=_dt(2026, 4, 2, 9), end_time=_dt(2026, 4, 2, 10)
    )
    m = calendar_service.save_external_meeting(alice.id, req)
    calendar_service.link_project(alice.id, m.id, project.id)

    again = calendar_service.save_external_meeting(alice.id, req.model_copy(update={"title": "Client call v2"}))
    assert again.id == m.id
    assert again.title == "Client call v2"
    assert again.project_id == project.id
