from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional, TypeVar
from uuid import uuid4

from pydantic import BaseModel, ValidationError

from projecthub.errors import ValidationFailedError
from projecthub.services.redis_client import get_redis_str

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid4())


def record_key(kind: str, record_id: str) -> str:
    return f"{kind}:{record_id}"


def save_record(kind: str, record: BaseModel) -> None:
    r = get_redis_str()
    record_id = getattr(record, "id")
    r.set(record_key(kind, record_id), record.model_dump_json())
    r.sadd(f"{kind}:all", record_id)


def load_record(kind: str, record_id: str, model: type[M]) -> Optional[M]:
    if not record_id:
        return None
    r = get_redis_str()
    raw = r.get(record_key(kind, record_id))
    if not raw:
        return None
    try:
        return model.model_validate_json(raw)
    except ValidationError:
        logger.exception("Unreadable record skipped. kind=%s id=%s", kind, record_id)
        return None


def apply_changes(record: M, changes: dict) -> M:
    """Merge a partial update into a record and re-validate the result.

    Rejects explicit nulls for required fields instead of writing a record
    that can no longer be read back.
    """
    try:
        return type(record).model_validate({**record.model_dump(), **changes})
    except ValidationError as exc:
        err = exc.errors()[0]
        field = ".".join(str(p) for p in err.get("loc", ()))
        raise ValidationFailedError(f"{field}: {err.get('msg', 'invalid value')}") from exc


def delete_record(kind: str, record_id: str) -> None:
    r = get_redis_str()
    r.delete(record_key(kind, record_id))
    r.srem(f"{kind}:all", record_id)


def load_many(kind: str, record_ids: list[str] | set[str], model: type[M]) -> list[M]:
    out: list[M] = []
    for rid in record_ids:
        rec = load_record(kind, rid, model)
        if rec is not None:
            out.append(rec)
    return out


def load_all(kind: str, model: type[M]) -> list[M]:
    return load_many(kind, index_members(f"{kind}:all"), model)


def index_add(index: str, record_id: str) -> None:
    get_redis_str().sadd(index, record_id)


def index_remove(index: str, record_id: str) -> None:
    get_redis_str().srem(index, record_id)


def index_members(index: str) -> set[str]:
    return set(get_redis_str().smembers(index) or set())


def drop_index(index: str) -> None:
    get_redis_str().delete(index)


def set_lookup(key: str, value: str) -> bool:
    """Claim a unique lookup key (username, email...). False when already taken."""
    return bool(get_redis_str().set(key, value, nx=True))


def get_lookup(key: str) -> str:
    return get_redis_str().get(key) or ""


def clear_lookup(key: str) -> None:
    get_redis_str().delete(key)
