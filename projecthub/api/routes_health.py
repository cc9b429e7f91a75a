from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter
from redis.exceptions import RedisError

from projecthub.services.redis_client import get_redis_str

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/health")
def health() -> dict[str, Any]:
    try:
        redis_ok = bool(get_redis_str().ping())
    except RedisError as e:
        logger.warning("Health check: Redis unavailable: %s", e)
        redis_ok = False
    return {"ok": True, "redis": redis_ok}
