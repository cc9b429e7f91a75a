from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends

from projecthub.api.deps import get_current_user
from projecthub.schemas.dashboard import ActivityItem, DashboardStats, TodaysMeeting
from projecthub.schemas.users import User
from projecthub.services import dashboard_service

router = APIRouter(prefix="/api/dashboard")


@router.get("/stats")
def stats(user: User = Depends(get_current_user)) -> DashboardStats:
    return dashboard_service.stats(user.id)


@router.get("/activity")
def activity(limit: int = 10, user: User = Depends(get_current_user)) -> list[ActivityItem]:
    return dashboard_service.activity(user.id, limit=limit)


@router.get("/todays-meetings")
def todays_meetings(tz: Optional[str] = None, user: User = Depends(get_current_user)) -> list[TodaysMeeting]:
    return dashboard_service.todays_meetings(user.id, tz)
