from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar

import httpx
from rq import get_current_job

from projecthub.errors import AccessDeniedError
from projecthub.services.ai_service import AITransientError
from projecthub.services.idempotency_service import is_processed, mark_processed, upload_idempotency_key
from projecthub.services.recording_storage_service import get_recording, update_status
from projecthub.services.slack_service import notify_recording_failed

logger = logging.getLogger(__name__)

T = TypeVar("T")

AUTH_EXPIRED_MESSAGE = "Authentication expired - please manually retry when logged in"


class TransientJobError(Exception):
    """An error that should be retried with backoff."""


class PermanentJobError(Exception):
    """An error that should not be retried."""


@dataclass(frozen=True)
class JobContext:
    recording_id: str
    idempotency_key: str
    user_id: str
    title: str
    project_id: Optional[str]


def _is_transient_exc(exc: BaseException) -> bool:
    if isinstance(exc, TransientJobError):
        return True
    if isinstance(exc, PermanentJobError):
        return False
    if isinstance(exc, AITransientError):
        return True
    if isinstance(exc, (httpx.TimeoutException, httpx.NetworkError)):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        code = exc.response.status_code
        return code == 429 or 500 <= code <= 599
    return False


def _retries_left() -> Optional[int]:
    job = get_current_job()
    if not job:
        return None
    return getattr(job, "retries_left", None)


def _failure_message(exc: BaseException) -> str:
    if isinstance(exc, AccessDeniedError):
        return AUTH_EXPIRED_MESSAGE
    return str(exc) or "Upload failed"


def _build_context(recording_id: str) -> Optional[JobContext]:
    rec = get_recording(recording_id)
    if rec is None:
        return None
    return JobContext(
        recording_id=rec.id,
        idempotency_key=upload_idempotency_key(rec.id),
        user_id=rec.user_id,
        title=rec.metadata.title or "",
        project_id=rec.metadata.project_id,
    )


def run_recording_job(recording_id: str, handler: Callable[[JobContext], T]) -> Optional[T]:
    """
    Wrapper providing:
    - Idempotency guard (processed marker)
    - Status transitions (processing -> uploaded | failed)
    - Slack alert on terminal failure
    - Respecting RQ Retry: raise to retry on transient errors
    """
    ctx = _build_context(recording_id)
    if ctx is None:
        logger.info("Recording not found, skipping upload. recording_id=%s", recording_id)
        return None

    if is_processed(ctx.idempotency_key):
        logger.info("Recording already uploaded; skipping. recording_id=%s", recording_id)
        return None

    rec = update_status(recording_id, "processing")
    logger.info(
        "Uploading recording. recording_id=%s user_id=%s retry_count=%s",
        recording_id,
        ctx.user_id,
        rec.retry_count,
    )

    try:
        result = handler(ctx)
        mark_processed(ctx.idempotency_key)
        return result
    except Exception as e:  # noqa: BLE001
        transient = _is_transient_exc(e)
        retries_left = _retries_left()
        logger.exception(
            "Upload job error. transient=%s retries_left=%s recording_id=%s", transient, retries_left, recording_id
        )

        message = _failure_message(e)
        if get_recording(recording_id) is not None:
            update_status(recording_id, "failed", message)

        if transient:
            # Alert only when retries are exhausted.
            if retries_left == 0:
                notify_recording_failed(
                    recording_id=recording_id, user_id=ctx.user_id, title=ctx.title, error=message, terminal=True
                )
            raise

        # Permanent failure: do NOT raise (prevents RQ Retry from rescheduling).
        notify_recording_failed(
            recording_id=recording_id, user_id=ctx.user_id, title=ctx.title, error=message, terminal=False
        )
        return None
