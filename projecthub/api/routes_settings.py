from __future__ import annotations

from fastapi import APIRouter, Depends

from projecthub.api.deps import get_current_user
from projecthub.schemas.user_settings import Notification, UserSettings, UserSettingsUpdate
from projecthub.schemas.users import ProfileUpdate, User, UserSummary
from projecthub.services import notification_service, settings_service, user_service

router = APIRouter(prefix="/api")


@router.get("/settings")
def read_settings(user: User = Depends(get_current_user)) -> UserSettings:
    return settings_service.get_user_settings(user.id)


@router.put("/settings")
def put_settings(req: UserSettingsUpdate, user: User = Depends(get_current_user)) -> UserSettings:
    return settings_service.upsert_user_settings(user.id, req)


@router.put("/profile")
def update_profile(req: ProfileUpdate, user: User = Depends(get_current_user)) -> UserSummary:
    return UserSummary.of(user_service.update_profile(user.id, req))


@router.get("/notifications")
def notifications(user: User = Depends(get_current_user)) -> list[Notification]:
    return notification_service.list_notifications(user.id)


@router.put("/notifications/{notification_id}/read")
def mark_read(notification_id: str, user: User = Depends(get_current_user)) -> Notification:
    return notification_service.mark_read(user.id, notification_id)
