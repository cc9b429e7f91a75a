from __future__ import annotations

import logging
from typing import Optional

from projecthub.schemas.user_settings import UserSettings, UserSettingsUpdate
from projecthub.services.record_store_service import load_record, now_utc, save_record

logger = logging.getLogger(__name__)

KIND = "user_settings"


def get_user_settings(user_id: str) -> UserSettings:
    """Stored settings, or the defaults when the user never saved any."""
    return load_record(KIND, user_id, UserSettings) or UserSettings(user_id=user_id)


def upsert_user_settings(user_id: str, updates: UserSettingsUpdate) -> UserSettings:
    current = get_user_settings(user_id)
    changes = {k: v for k, v in updates.model_dump(exclude_unset=True).items() if v is not None}
    updated = current.model_copy(update={**changes, "updated_at": now_utc()})
    save_record(KIND, updated)
    return updated


def set_calendar_feed(user_id: str, url: Optional[str], enabled: bool) -> UserSettings:
    current = get_user_settings(user_id)
    updated = current.model_copy(
        update={
            "outlook_calendar_url": (url or "").strip() or current.outlook_calendar_url,
            "outlook_calendar_enabled": enabled,
            "updated_at": now_utc(),
        }
    )
    save_record(KIND, updated)
    logger.info("Calendar feed configured. user_id=%s enabled=%s", user_id, enabled)
    return updated
