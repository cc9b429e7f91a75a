from __future__ import annotations

import logging
from typing import Any, Optional

from projecthub.errors import AccessDeniedError, NotFoundError
from projecthub.schemas.user_settings import Notification
from projecthub.services.record_store_service import (
    index_add,
    index_members,
    load_many,
    load_record,
    new_id,
    now_utc,
    save_record,
)

logger = logging.getLogger(__name__)

KIND = "notification"
MAX_LISTED = 50


def _user_index(user_id: str) -> str:
    return f"user:{user_id}:notifications"


def create_notification(
    *,
    user_id: str,
    title: str,
    message: str,
    type: str,
    data: Optional[dict[str, Any]] = None,
) -> Notification:
    n = Notification(
        id=new_id(),
        user_id=user_id,
        title=title,
        message=message,
        type=type,
        data=data or {},
        created_at=now_utc(),
    )
    save_record(KIND, n)
    index_add(_user_index(user_id), n.id)
    logger.debug("Notification created. user_id=%s type=%s", user_id, type)
    return n


def list_notifications(user_id: str) -> list[Notification]:
    items = load_many(KIND, index_members(_user_index(user_id)), Notification)
    items.sort(key=lambda n: n.created_at, reverse=True)
    return items[:MAX_LISTED]


def mark_read(user_id: str, notification_id: str) -> Notification:
    n = load_record(KIND, notification_id, Notification)
    if n is None:
        raise NotFoundError("Notification not found")
    if n.user_id != user_id:
        raise AccessDeniedError("Access denied")
    updated = n.model_copy(update={"read": True})
    save_record(KIND, updated)
    return updated
