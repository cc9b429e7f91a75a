from __future__ import annotations

from rq import Queue, Retry

from projecthub.services.redis_client import get_redis_bytes
from projecthub.settings import get_settings


def get_queue() -> Queue:
    settings = get_settings()
    return Queue(
        name=settings.RQ_QUEUE_NAME,
        connection=get_redis_bytes(),
        default_timeout=900,
    )


def default_retry() -> Retry:
    # Backoff schedule seconds: 0, 60, 300, 900
    settings = get_settings()
    return Retry(max=settings.RECORDING_MAX_RETRIES, interval=[0, 60, 300, 900])
