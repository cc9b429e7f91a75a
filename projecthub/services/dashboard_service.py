from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from projecthub.schemas.dashboard import ActivityItem, DashboardStats, TodaysMeeting
from projecthub.schemas.meetings import Meeting
from projecthub.services.member_service import team_member_ids
from projecthub.services.project_service import (
    accessible_project_ids,
    get_project,
    list_accessible_projects,
    project_meetings_index,
    project_tasks,
)
from projecthub.services.record_store_service import index_members, load_many, now_utc
from projecthub.services.settings_service import get_user_settings
from projecthub.services.user_service import get_user
from projecthub.util.time import day_bounds, ensure_utc, local_date, resolve_tz

logger = logging.getLogger(__name__)

RECENT_PROJECTS = 5
RECENT_TASKS = 5
RECENT_MEETINGS = 3


def _name_of(user_id: Optional[str]) -> str:
    user = get_user(user_id) if user_id else None
    return user.name if user else "Someone"


def _project_meetings(project_ids: set[str]) -> list[Meeting]:
    ids: set[str] = set()
    for pid in project_ids:
        ids |= index_members(project_meetings_index(pid))
    return load_many("meeting", ids, Meeting)


def stats(user_id: str) -> DashboardStats:
    project_ids = accessible_project_ids(user_id)
    assigned = [t for pid in project_ids for t in project_tasks(pid) if t.assignee_id == user_id]
    return DashboardStats(
        total_projects=len(project_ids),
        active_tasks=sum(1 for t in assigned if t.status in ("todo", "in_progress")),
        completed_tasks=sum(1 for t in assigned if t.status == "completed"),
        team_members=len(team_member_ids(user_id)) if project_ids else 0,
    )


def activity(user_id: str, limit: int = 10) -> list[ActivityItem]:
    projects = list_accessible_projects(user_id)
    if not projects:
        return []
    project_ids = {p.id for p in projects}
    items: list[ActivityItem] = []

    for p in sorted(projects, key=lambda p: ensure_utc(p.created_at), reverse=True)[:RECENT_PROJECTS]:
        items.append(
            ActivityItem(
                id=f"project_{p.id}",
                type="created",
                user=_name_of(p.owner_id),
                action="created project",
                target=p.name,
                time=p.created_at,
            )
        )

    tasks = [t for pid in project_ids for t in project_tasks(pid)]
    tasks.sort(key=lambda t: ensure_utc(t.updated_at), reverse=True)
    for t in tasks[:RECENT_TASKS]:
        done = t.status == "completed"
        items.append(
            ActivityItem(
                id=f"task_{t.id}",
                type="completed" if done else "updated",
                user=_name_of(t.assignee_id),
                action="completed task" if done else "updated task",
                target=t.title,
                time=t.updated_at,
            )
        )

    meetings = _project_meetings(project_ids)
    meetings.sort(key=lambda m: ensure_utc(m.created_at), reverse=True)
    for m in meetings[:RECENT_MEETINGS]:
        items.append(
            ActivityItem(
                id=f"meeting_{m.id}",
                type="ai",
                user=_name_of(m.created_by_id),
                action="recorded meeting",
                target=m.title,
                time=m.created_at,
            )
        )

    items.sort(key=lambda a: ensure_utc(a.time), reverse=True)
    return items[:limit]


def todays_meetings(user_id: str, tz_name: Optional[str] = None, now: Optional[datetime] = None) -> list[TodaysMeeting]:
    tz = resolve_tz(tz_name or get_user_settings(user_id).timezone)
    now = now or now_utc()
    start, end = day_bounds(local_date(now, tz), tz)

    out: list[TodaysMeeting] = []
    for m in _project_meetings(accessible_project_ids(user_id)):
        if not start <= ensure_utc(m.scheduled_at) < end:
            continue
        project = get_project(m.project_id) if m.project_id else None
        out.append(
            TodaysMeeting(
                **m.model_dump(),
                project_name=project.name if project else None,
                creator_name=_name_of(m.created_by_id),
            )
        )
    out.sort(key=lambda m: ensure_utc(m.scheduled_at))
    return out
