"""
Server-side store for in-progress and queued voice recordings.

A recording is a JSON record (`recording:{id}`) plus a Redis list of raw audio
chunks (`recording:{id}:chunks`, bytes client). The record tracks the upload
lifecycle: recording -> completed -> processing -> uploaded | failed.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Optional

from projecthub.errors import NotFoundError, ValidationFailedError
from projecthub.schemas.recordings import RecordingMetadata, RecordingStart, StorageHealth, StoredRecording
from projecthub.services.record_store_service import (
    delete_record,
    index_add,
    index_members,
    index_remove,
    load_all,
    load_many,
    load_record,
    new_id,
    now_utc,
    save_record,
)
from projecthub.services.redis_client import get_redis_bytes
from projecthub.settings import get_settings
from projecthub.util.time import ensure_utc

logger = logging.getLogger(__name__)

KIND = "recording"

NO_AUDIO_MESSAGE = "No audio data captured"
PENDING_STATUSES = ("recording", "completed", "processing")


class EmptyRecordingError(ValidationFailedError):
    """The recording has no audio chunks to assemble."""


def chunks_key(recording_id: str) -> str:
    return f"recording:{recording_id}:chunks"


def _user_index(user_id: str) -> str:
    return f"user:{user_id}:recordings"


def get_recording(recording_id: str) -> Optional[StoredRecording]:
    return load_record(KIND, recording_id, StoredRecording)


def require_recording(recording_id: str, user_id: Optional[str] = None) -> StoredRecording:
    rec = get_recording(recording_id)
    if rec is None or (user_id is not None and rec.user_id != user_id):
        raise NotFoundError(f"Recording {recording_id} not found")
    return rec


def list_recordings(user_id: Optional[str] = None) -> list[StoredRecording]:
    """Recordings of one user, or of everyone when user_id is None; oldest first."""
    if user_id is None:
        items = load_all(KIND, StoredRecording)
    else:
        items = load_many(KIND, index_members(_user_index(user_id)), StoredRecording)
    items.sort(key=lambda r: ensure_utc(r.timestamp))
    return items


def list_by_status(status: str, user_id: Optional[str] = None) -> list[StoredRecording]:
    return [r for r in list_recordings(user_id) if r.status == status]


def save_recording(rec: StoredRecording) -> None:
    save_record(KIND, rec)
    index_add(_user_index(rec.user_id), rec.id)


def start_recording(user_id: str, req: RecordingStart, recording_id: Optional[str] = None) -> StoredRecording:
    now = now_utc()
    rec = StoredRecording(
        id=recording_id or new_id(),
        user_id=user_id,
        timestamp=now,
        metadata=RecordingMetadata(
            title=req.title,
            project_id=req.project_id,
            mime_type=req.mime_type,
            last_heartbeat=now,
        ),
    )
    save_recording(rec)
    logger.info("Recording started. recording_id=%s user_id=%s", rec.id, user_id)
    return rec


def add_chunk(recording_id: str, chunk: bytes, user_id: Optional[str] = None) -> StoredRecording:
    rec = require_recording(recording_id, user_id)
    if not chunk:
        logger.warning("Skipping empty chunk. recording_id=%s", recording_id)
        return rec

    count = get_redis_bytes().rpush(chunks_key(recording_id), chunk)
    metadata = rec.metadata.model_copy(update={"size": rec.metadata.size + len(chunk), "last_heartbeat": now_utc()})
    rec = rec.model_copy(update={"chunk_count": int(count), "metadata": metadata})
    save_recording(rec)

    if rec.chunk_count % 5 == 0:
        logger.info(
            "Recording progress. recording_id=%s chunks=%s size_bytes=%s",
            recording_id,
            rec.chunk_count,
            rec.metadata.size,
        )
    return rec


def get_chunks(recording_id: str) -> list[bytes]:
    return [c for c in (get_redis_bytes().lrange(chunks_key(recording_id), 0, -1) or []) if c]


def assemble_audio(recording_id: str) -> bytes:
    chunks = get_chunks(recording_id)
    if not chunks:
        raise EmptyRecordingError(f"No valid audio chunks found for recording {recording_id}")
    return b"".join(chunks)


def set_paused(recording_id: str, paused: bool, user_id: Optional[str] = None) -> StoredRecording:
    rec = require_recording(recording_id, user_id)
    metadata = rec.metadata.model_copy(update={"is_paused": paused, "last_heartbeat": now_utc()})
    rec = rec.model_copy(update={"status": "paused" if paused else "recording", "metadata": metadata})
    save_recording(rec)
    return rec


def finalize_recording(recording_id: str, duration: Optional[int] = None, user_id: Optional[str] = None) -> StoredRecording:
    """
    Marks the recording completed. Without any audio it is marked failed with
    "No audio data captured" and EmptyRecordingError is raised.
    """
    rec = require_recording(recording_id, user_id)
    if duration is not None:
        rec = rec.model_copy(update={"duration": duration})

    chunks = get_chunks(recording_id)
    if not chunks:
        logger.error("No valid audio chunks found. recording_id=%s", recording_id)
        save_recording(rec.model_copy(update={"status": "failed", "last_error": NO_AUDIO_MESSAGE}))
        raise EmptyRecordingError(f"{NO_AUDIO_MESSAGE} for recording {recording_id}")

    rec = rec.model_copy(update={"status": "completed", "chunk_count": len(chunks)})
    save_recording(rec)
    logger.info(
        "Recording finalized. recording_id=%s chunks=%s size_bytes=%s duration=%ss",
        recording_id,
        len(chunks),
        sum(len(c) for c in chunks),
        rec.duration,
    )
    return rec


def update_status(recording_id: str, status: str, error: Optional[str] = None) -> StoredRecording:
    """Every transition into 'failed' counts as one retry."""
    rec = require_recording(recording_id)
    changes: dict = {"status": status}
    if error:
        changes["last_error"] = error
    if status == "failed":
        changes["retry_count"] = rec.retry_count + 1
    rec = rec.model_copy(update=changes)
    save_recording(rec)
    return rec


def attach_meeting(recording_id: str, meeting_id: str) -> None:
    rec = get_recording(recording_id)
    if rec is not None:
        save_recording(rec.model_copy(update={"meeting_id": meeting_id}))


def delete_recording(recording_id: str) -> None:
    rec = get_recording(recording_id)
    get_redis_bytes().delete(chunks_key(recording_id))
    if rec is not None:
        index_remove(_user_index(rec.user_id), recording_id)
    delete_record(KIND, recording_id)


def has_audio(rec: StoredRecording) -> bool:
    return rec.chunk_count > 0


def pending_recordings(user_id: Optional[str] = None) -> list[StoredRecording]:
    return [
        r
        for r in list_recordings(user_id)
        if r.status in PENDING_STATUSES or (r.status == "failed" and has_audio(r))
    ]


def is_unrecoverable(rec: StoredRecording) -> bool:
    settings = get_settings()
    return rec.status == "failed" and (
        not has_audio(rec) or rec.retry_count >= settings.RECORDING_UNRECOVERABLE_RETRIES
    )


def unrecoverable_recordings(user_id: Optional[str] = None) -> list[StoredRecording]:
    return [r for r in list_recordings(user_id) if is_unrecoverable(r)]


def delete_unrecoverable(user_id: Optional[str] = None) -> int:
    doomed = unrecoverable_recordings(user_id)
    for rec in doomed:
        delete_recording(rec.id)
    logger.info("Deleted unrecoverable failed recordings. count=%s", len(doomed))
    return len(doomed)


def cleanup(user_id: Optional[str] = None, now: Optional[datetime] = None) -> int:
    """Deletes uploaded recordings older than the retention window."""
    now = now or now_utc()
    cutoff = now - timedelta(days=get_settings().RECORDING_CLEANUP_DAYS)
    removed = 0
    for rec in list_recordings(user_id):
        if rec.status == "uploaded" and ensure_utc(rec.timestamp) < cutoff:
            delete_recording(rec.id)
            removed += 1
    if removed:
        logger.info("Cleaned up old uploaded recordings. count=%s", removed)
    return removed


def recover_incomplete(user_id: Optional[str] = None, now: Optional[datetime] = None) -> int:
    """
    Finalises recordings left in recording/paused for longer than the stale
    window. Those without audio are marked failed instead.
    """
    now = now or now_utc()
    cutoff = now - timedelta(hours=get_settings().RECORDING_STALE_HOURS)
    recovered = 0
    for rec in list_recordings(user_id):
        if rec.status not in ("recording", "paused") or ensure_utc(rec.timestamp) >= cutoff:
            continue
        if has_audio(rec):
            try:
                finalize_recording(rec.id)
                recovered += 1
                logger.info("Recovered abandoned recording. recording_id=%s", rec.id)
            except EmptyRecordingError:
                save_recording(
                    rec.model_copy(
                        update={"status": "failed", "last_error": "Recovery failed - recording was interrupted"}
                    )
                )
        else:
            logger.info("Abandoned recording has no chunks; marking failed. recording_id=%s", rec.id)
            save_recording(rec.model_copy(update={"status": "failed", "last_error": NO_AUDIO_MESSAGE}))
    logger.info("Recovery complete. recovered=%s", recovered)
    return recovered


def storage_health(user_id: Optional[str] = None) -> StorageHealth:
    count = len(list_recordings(user_id))
    if count > get_settings().RECORDING_STORAGE_LIMIT:
        logger.warning("Too many recordings stored, triggering cleanup. count=%s", count)
        cleanup(user_id)
        return StorageHealth(
            healthy=False,
            recordings=len(list_recordings(user_id)),
            message="Too many recordings stored - cleaned up old ones",
        )
    return StorageHealth(healthy=True, recordings=count)
