from __future__ import annotations

import logging
from typing import Optional

from projecthub.errors import ValidationFailedError
from projecthub.schemas.recordings import QueueStatus
from projecthub.services import recording_storage_service as storage
from projecthub.services.rq_service import default_retry, get_queue
from projecthub.settings import get_settings

logger = logging.getLogger(__name__)

# Enqueue by string path to avoid importing job modules at API startup time.
UPLOAD_JOB = "projecthub.jobs.recording_jobs.process_recording_upload"

ACTIVE_JOB_STATUSES = ("queued", "started", "deferred", "scheduled")


def upload_job_id(recording_id: str) -> str:
    return f"recording-upload:{recording_id}"


def _job_in_flight(queue, job_id: str) -> bool:
    job = queue.fetch_job(job_id)
    if job is None:
        return False
    status = job.get_status()
    return str(getattr(status, "value", status)) in ACTIVE_JOB_STATUSES


def add_to_queue(recording_id: str) -> bool:
    """
    Enqueue an upload for the recording. Missing or already uploaded recordings
    and recordings with a job already in flight are skipped (returns False).
    """
    rec = storage.get_recording(recording_id)
    if rec is None:
        logger.info("Recording not found, skipping queue addition. recording_id=%s", recording_id)
        return False
    if rec.status == "uploaded":
        logger.info("Recording already uploaded, skipping. recording_id=%s", recording_id)
        return False

    q = get_queue()
    job_id = upload_job_id(recording_id)
    if _job_in_flight(q, job_id):
        logger.info("Upload already queued. recording_id=%s", recording_id)
        return False

    q.enqueue(UPLOAD_JOB, recording_id, job_id=job_id, retry=default_retry())
    logger.info("Upload queued. recording_id=%s", recording_id)
    return True


def retry_failed(user_id: Optional[str] = None) -> int:
    """
    Requeue failed recordings still under the retry limit, and rescue recordings
    stuck in 'recording': finalise and queue those with audio, fail the rest.
    """
    settings = get_settings()
    queued = 0
    for rec in storage.list_by_status("failed", user_id):
        if rec.retry_count < settings.RECORDING_MAX_RETRIES and storage.has_audio(rec):
            queued += int(add_to_queue(rec.id))

    for rec in storage.list_by_status("recording", user_id):
        if storage.has_audio(rec):
            logger.info("Processing stuck recording. recording_id=%s chunks=%s", rec.id, rec.chunk_count)
            try:
                storage.finalize_recording(rec.id)
            except storage.EmptyRecordingError as e:
                storage.update_status(rec.id, "failed", f"Finalization failed: {e}")
                continue
            queued += int(add_to_queue(rec.id))
        else:
            storage.update_status(rec.id, "failed", "No audio chunks available")
    return queued


def retry_one(recording_id: str, user_id: Optional[str] = None) -> bool:
    rec = storage.require_recording(recording_id, user_id)
    if not storage.has_audio(rec):
        raise storage.EmptyRecordingError(f"Recording {recording_id} has no audio and can only be deleted")
    if rec.retry_count >= get_settings().RECORDING_MAX_RETRIES:
        raise ValidationFailedError(f"Recording {recording_id} reached the retry limit")
    if rec.status == "recording":
        storage.finalize_recording(rec.id)
    return add_to_queue(rec.id)


def queue_status(user_id: Optional[str] = None) -> QueueStatus:
    recordings = storage.list_recordings(user_id)
    return QueueStatus(
        queued=sum(1 for r in recordings if r.status == "completed"),
        uploading=sum(1 for r in recordings if r.status == "processing"),
        failed=sum(1 for r in recordings if r.status == "failed"),
        unrecoverable=sum(1 for r in recordings if storage.is_unrecoverable(r)),
    )


def init(user_id: Optional[str] = None) -> int:
    """Requeue completed/processing recordings left from earlier runs, then clean up."""
    queued = 0
    for status in ("completed", "processing"):
        for rec in storage.list_by_status(status, user_id):
            queued += int(add_to_queue(rec.id))
    storage.cleanup(user_id)
    return queued
