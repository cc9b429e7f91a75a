from __future__ import annotations

from typing import Optional

from projecthub.services.redis_client import get_redis_str
from projecthub.settings import get_settings


def processed_marker_key(idempotency_key: str) -> str:
    return f"idem:processed:{idempotency_key}"


def upload_idempotency_key(recording_id: str) -> str:
    return f"recording_upload:{recording_id}"


def mark_processed(idempotency_key: str, value: str = "1") -> None:
    """
    Mark an idempotency key as processed with TTL to prevent unbounded Redis growth.
    """
    settings = get_settings()
    r = get_redis_str()
    r.set(processed_marker_key(idempotency_key), value, ex=settings.IDEMPOTENCY_TTL_SECONDS)


def is_processed(idempotency_key: str) -> bool:
    r = get_redis_str()
    return r.exists(processed_marker_key(idempotency_key)) == 1


def get_processed_value(idempotency_key: str) -> Optional[str]:
    r = get_redis_str()
    return r.get(processed_marker_key(idempotency_key))
