from __future__ import annotations

import logging
from datetime import date
from typing import Any, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from projecthub.api.deps import get_current_user
from projecthub.schemas.calendar import CalendarConfigure, CalendarView, FeedEvent
from projecthub.schemas.meetings import ExternalMeeting, ExternalMeetingCreate, LinkProjectRequest
from projecthub.schemas.users import User
from projecthub.services import calendar_service, calendar_sync_service, settings_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api")


@router.get("/external-meetings")
def list_external(project_id: Optional[str] = None, user: User = Depends(get_current_user)) -> list[ExternalMeeting]:
    return calendar_service.list_external_meetings(user.id, project_id)


@router.post("/external-meetings")
def create_external(req: ExternalMeetingCreate, user: User = Depends(get_current_user)) -> ExternalMeeting:
    return calendar_service.save_external_meeting(user.id, req)


@router.put("/external-meetings/{meeting_id}/link-project")
def link_project(
    meeting_id: str,
    req: LinkProjectRequest,
    user: User = Depends(get_current_user),
) -> ExternalMeeting:
    return calendar_service.link_project(user.id, meeting_id, req.project_id)


@router.delete("/external-meetings/{meeting_id}")
def delete_external(meeting_id: str, user: User = Depends(get_current_user)) -> dict[str, Any]:
    calendar_service.delete_external_meeting(user.id, meeting_id)
    return {"ok": True}


@router.post("/outlook/configure")
def configure(req: CalendarConfigure, user: User = Depends(get_current_user)) -> dict[str, Any]:
    if req.enabled and not (req.calendar_url or settings_service.get_user_settings(user.id).outlook_calendar_url):
        raise HTTPException(status_code=400, detail="Calendar URL is required")
    updated = settings_service.set_calendar_feed(user.id, req.calendar_url, req.enabled)
    if not req.enabled:
        calendar_sync_service.clear_cache(user.id)
    return {"ok": True, "enabled": updated.outlook_calendar_enabled, "calendar_url": updated.outlook_calendar_url}


@router.get("/outlook/events")
def outlook_events(refresh: bool = False, user: User = Depends(get_current_user)) -> list[FeedEvent]:
    try:
        return calendar_sync_service.get_events(user.id, refresh=refresh)
    except calendar_sync_service.CalendarSyncError as e:
        logger.warning("Calendar sync failed. user_id=%s error=%s", user.id, e)
        raise HTTPException(status_code=502, detail=str(e)) from e


@router.get("/calendar/events")
def calendar_events(
    view: Literal["day", "three_day", "week", "month"] = "month",
    anchor: Optional[date] = Query(default=None, alias="date"),
    tz: Optional[str] = None,
    time_format: Optional[Literal["12", "24"]] = None,
    user: User = Depends(get_current_user),
) -> CalendarView:
    return calendar_service.calendar_view(user.id, view=view, anchor=anchor, tz_name=tz, time_format=time_format)
