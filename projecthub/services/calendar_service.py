from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, tzinfo
from typing import Optional

from projecthub.errors import AccessDeniedError, NotFoundError
from projecthub.schemas.calendar import CalendarDay, CalendarEvent, CalendarView, FeedEvent
from projecthub.schemas.meetings import ExternalMeeting, ExternalMeetingCreate, Meeting
from projecthub.schemas.tasks import Task
from projecthub.services import calendar_sync_service
from projecthub.services.meeting_service import list_meetings
from projecthub.services.project_service import accessible_project_ids, project_tasks, require_access
from projecthub.services.record_store_service import (
    clear_lookup,
    delete_record,
    get_lookup,
    index_add,
    index_members,
    index_remove,
    load_many,
    load_record,
    new_id,
    now_utc,
    save_record,
    set_lookup,
)
from projecthub.services.settings_service import get_user_settings
from projecthub.util.text_format import is_voice_recording_entry
from projecthub.util.time import ensure_utc, format_clock, local_date, resolve_tz, sunday_week_start

logger = logging.getLogger(__name__)

KIND = "external_meeting"

VIEW_DAYS = {"day": 1, "three_day": 3, "week": 7}


def _user_index(user_id: str) -> str:
    return f"user:{user_id}:external_meetings"


def _external_id_key(user_id: str, external_id: str) -> str:
    return f"external_meeting_by_uid:{user_id}:{external_id}"


# External meetings


def get_external_meeting(meeting_id: str) -> Optional[ExternalMeeting]:
    return load_record(KIND, meeting_id, ExternalMeeting)


def _require_own_external(user_id: str, meeting_id: str) -> ExternalMeeting:
    m = get_external_meeting(meeting_id)
    if m is None:
        raise NotFoundError("External meeting not found")
    if m.user_id != user_id:
        raise AccessDeniedError("Access denied")
    return m


def list_external_meetings(user_id: str, project_id: Optional[str] = None) -> list[ExternalMeeting]:
    items = load_many(KIND, index_members(_user_index(user_id)), ExternalMeeting)
    if project_id:
        items = [m for m in items if m.project_id == project_id]
    items.sort(key=lambda m: ensure_utc(m.start_time), reverse=True)
    return items


def save_external_meeting(user_id: str, req: ExternalMeetingCreate) -> ExternalMeeting:
    """Creates or updates the user's meeting with the same external_id."""
    if req.project_id:
        require_access(user_id, req.project_id)
    now = now_utc()
    meeting_id = new_id()
    key = _external_id_key(user_id, req.external_id)
    existing = None
    if not set_lookup(key, meeting_id):
        existing = get_external_meeting(get_lookup(key))
        if existing is None:
            clear_lookup(key)
            set_lookup(key, meeting_id)

    if existing is not None:
        changes = req.model_dump()
        if changes.get("project_id") is None:
            # feed refreshes must not unlink a project chosen by the user
            changes["project_id"] = existing.project_id
        meeting = existing.model_copy(update={**changes, "updated_at": now})
    else:
        meeting = ExternalMeeting(**req.model_dump(), id=meeting_id, user_id=user_id, created_at=now, updated_at=now)

    save_record(KIND, meeting)
    index_add(_user_index(user_id), meeting.id)
    return meeting


def link_project(user_id: str, meeting_id: str, project_id: Optional[str]) -> ExternalMeeting:
    meeting = _require_own_external(user_id, meeting_id)
    if project_id:
        require_access(user_id, project_id)
    updated = meeting.model_copy(update={"project_id": project_id or None, "updated_at": now_utc()})
    save_record(KIND, updated)
    return updated


def delete_external_meeting(user_id: str, meeting_id: str) -> None:
    meeting = _require_own_external(user_id, meeting_id)
    clear_lookup(_external_id_key(user_id, meeting.external_id))
    index_remove(_user_index(user_id), meeting_id)
    delete_record(KIND, meeting_id)


def upsert_feed_events(user_id: str, events: list[FeedEvent]) -> int:
    for ev in events:
        save_external_meeting(
            user_id,
            ExternalMeetingCreate(
                external_id=ev.uid,
                title=ev.title,
                description=ev.description,
                start_time=ev.start,
                end_time=ev.end,
                location=ev.location,
                attendees=ev.attendees,
                source="outlook",
            ),
        )
    return len(events)


# Merged calendar


@dataclass
class CalendarSources:
    meetings: list[Meeting] = field(default_factory=list)
    feed_events: list[FeedEvent] = field(default_factory=list)
    tasks: list[Task] = field(default_factory=list)


def load_sources(user_id: str) -> CalendarSources:
    meetings = [m for m in list_meetings(user_id) if not is_voice_recording_entry(m.title, m.description)]

    feed: list[FeedEvent] = []
    try:
        feed = calendar_sync_service.get_events(user_id)
    except calendar_sync_service.CalendarSyncError as e:
        logger.warning("Calendar feed unavailable; showing internal events only. user_id=%s error=%s", user_id, e)

    tasks: list[Task] = []
    for pid in accessible_project_ids(user_id):
        tasks.extend(t for t in project_tasks(pid) if t.due_date is not None)
    return CalendarSources(meetings=meetings, feed_events=feed, tasks=tasks)


def events_for_date(sources: CalendarSources, day: date, tz: tzinfo, time_format: str = "12") -> list[CalendarEvent]:
    timed: list[CalendarEvent] = []

    for m in sources.meetings:
        if local_date(m.scheduled_at, tz) != day:
            continue
        timed.append(
            CalendarEvent(
                id=m.id,
                title=m.title,
                type="meeting",
                source="internal",
                time=format_clock(m.scheduled_at, tz, time_format),
                start=ensure_utc(m.scheduled_at),
                duration=m.duration,
                description=m.description,
                project_id=m.project_id,
            )
        )

    for ev in sources.feed_events:
        if local_date(ev.start, tz) != day:
            continue
        timed.append(
            CalendarEvent(
                id=f"outlook-{ev.uid}",
                title=ev.title or "Untitled Event",
                type="meeting",
                source="outlook",
                time=format_clock(ev.start, tz, time_format),
                start=ensure_utc(ev.start),
                duration=round((ensure_utc(ev.end) - ensure_utc(ev.start)).total_seconds() / 60),
                description=ev.description,
                location=ev.location,
            )
        )

    untimed = [
        CalendarEvent(
            id=t.id,
            title=t.title,
            type="task",
            source="task",
            project_id=t.project_id,
            priority=t.priority,
            status=t.status,
        )
        for t in sources.tasks
        if t.due_date is not None and local_date(t.due_date, tz) == day
    ]

    timed.sort(key=lambda e: e.start)
    return timed + untimed


def month_grid(anchor: date) -> list[Optional[date]]:
    """Days of anchor's month, preceded by None cells so weeks start on Sunday."""
    first = anchor.replace(day=1)
    next_month = (first + timedelta(days=32)).replace(day=1)
    leading = (first - sunday_week_start(first)).days
    cells: list[Optional[date]] = [None] * leading
    d = first
    while d < next_month:
        cells.append(d)
        d += timedelta(days=1)
    return cells


def week_days(anchor: date) -> list[date]:
    start = sunday_week_start(anchor)
    return [start + timedelta(days=i) for i in range(7)]


def next_days(anchor: date, n: int = 3) -> list[date]:
    return [anchor + timedelta(days=i) for i in range(n)]


def upcoming_meetings(
    sources: CalendarSources,
    now: datetime,
    tz: tzinfo,
    time_format: str = "12",
    limit: int = 3,
) -> list[CalendarEvent]:
    now = ensure_utc(now)
    items: list[CalendarEvent] = []
    for m in sources.meetings:
        if ensure_utc(m.scheduled_at) > now:
            items.append(
                CalendarEvent(
                    id=m.id,
                    title=m.title,
                    type="meeting",
                    source="internal",
                    time=format_clock(m.scheduled_at, tz, time_format),
                    start=ensure_utc(m.scheduled_at),
                    duration=m.duration,
                    project_id=m.project_id,
                )
            )
    for ev in sources.feed_events:
        if ensure_utc(ev.start) > now:
            items.append(
                CalendarEvent(
                    id=f"outlook-{ev.uid}",
                    title=ev.title,
                    type="meeting",
                    source="outlook",
                    time=format_clock(ev.start, tz, time_format),
                    start=ensure_utc(ev.start),
                    duration=round((ensure_utc(ev.end) - ensure_utc(ev.start)).total_seconds() / 60),
                    location=ev.location,
                )
            )
    items.sort(key=lambda e: e.start)
    return items[:limit]


def calendar_view(
    user_id: str,
    view: str = "month",
    anchor: Optional[date] = None,
    tz_name: Optional[str] = None,
    time_format: Optional[str] = None,
    now: Optional[datetime] = None,
) -> CalendarView:
    user_settings = get_user_settings(user_id)
    tz_name = tz_name or user_settings.timezone
    tz = resolve_tz(tz_name)
    time_format = time_format or user_settings.time_format
    now = now or now_utc()
    today = local_date(now, tz)
    anchor = anchor or today

    sources = load_sources(user_id)

    if view == "month":
        cells: list[Optional[date]] = month_grid(anchor)
    elif view == "week":
        cells = list(week_days(anchor))
    else:
        cells = list(next_days(anchor, VIEW_DAYS.get(view, 1)))

    days = [
        None
        if d is None
        else CalendarDay(date=d, is_today=d == today, events=events_for_date(sources, d, tz, time_format))
        for d in cells
    ]
    return CalendarView(
        view=view,
        timezone=tz_name or "UTC",
        days=days,
        upcoming=upcoming_meetings(sources, now, tz, time_format),
    )
