from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request

from projecthub.api.deps import get_current_user
from projecthub.errors import ValidationFailedError
from projecthub.schemas.recordings import (
    QueueStatus,
    RecordingFinalize,
    RecordingStart,
    StorageHealth,
    StoredRecording,
)
from projecthub.schemas.users import User
from projecthub.services import recording_storage_service as storage
from projecthub.services import upload_queue_service
from projecthub.services.project_service import require_access

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/recordings")


def _enqueue(recording_id: str) -> bool:
    try:
        return upload_queue_service.add_to_queue(recording_id)
    except Exception as e:  # noqa: BLE001
        logger.exception("Failed to enqueue upload. recording_id=%s", recording_id)
        raise HTTPException(status_code=500, detail="Failed to enqueue job") from e


@router.get("")
def list_recordings(user: User = Depends(get_current_user)) -> list[StoredRecording]:
    return storage.list_recordings(user.id)


@router.post("")
def start(req: RecordingStart, user: User = Depends(get_current_user)) -> StoredRecording:
    if req.project_id:
        require_access(user.id, req.project_id)
    return storage.start_recording(user.id, req)


@router.get("/status")
def queue_status(user: User = Depends(get_current_user)) -> QueueStatus:
    return upload_queue_service.queue_status(user.id)


@router.get("/health")
def storage_health(user: User = Depends(get_current_user)) -> StorageHealth:
    return storage.storage_health(user.id)


@router.post("/retry-failed")
def retry_failed(user: User = Depends(get_current_user)) -> dict[str, Any]:
    try:
        queued = upload_queue_service.retry_failed(user.id)
    except Exception as e:  # noqa: BLE001
        logger.exception("Retrying failed recordings errored. user_id=%s", user.id)
        raise HTTPException(status_code=500, detail="Failed to enqueue job") from e
    return {"ok": True, "queued": queued}


@router.post("/delete-unrecoverable")
def delete_unrecoverable(user: User = Depends(get_current_user)) -> dict[str, Any]:
    return {"ok": True, "deleted": storage.delete_unrecoverable(user.id)}


@router.post("/cleanup")
def cleanup(user: User = Depends(get_current_user)) -> dict[str, Any]:
    return {"ok": True, "deleted": storage.cleanup(user.id)}


@router.post("/recover")
def recover(user: User = Depends(get_current_user)) -> dict[str, Any]:
    return {"ok": True, "recovered": storage.recover_incomplete(user.id)}


@router.get("/{recording_id}")
def get_recording(recording_id: str, user: User = Depends(get_current_user)) -> StoredRecording:
    return storage.require_recording(recording_id, user.id)


@router.post("/{recording_id}/chunks")
async def add_chunk(recording_id: str, request: Request, user: User = Depends(get_current_user)) -> StoredRecording:
    raw = await request.body()
    return storage.add_chunk(recording_id, raw, user.id)


@router.post("/{recording_id}/pause")
def pause(recording_id: str, user: User = Depends(get_current_user)) -> StoredRecording:
    return storage.set_paused(recording_id, True, user.id)


@router.post("/{recording_id}/resume")
def resume(recording_id: str, user: User = Depends(get_current_user)) -> StoredRecording:
    return storage.set_paused(recording_id, False, user.id)


@router.post("/{recording_id}/finalize")
def finalize(recording_id: str, req: RecordingFinalize, user: User = Depends(get_current_user)) -> dict[str, Any]:
    rec = storage.finalize_recording(recording_id, req.duration, user.id)
    queued = _enqueue(rec.id) if req.upload else False
    return {"ok": True, "recording": rec.model_dump(mode="json"), "queued": queued}


@router.post("/{recording_id}/retry")
def retry_one(recording_id: str, user: User = Depends(get_current_user)) -> dict[str, Any]:
    storage.require_recording(recording_id, user.id)
    try:
        queued = upload_queue_service.retry_one(recording_id, user.id)
    except ValidationFailedError:
        raise
    except Exception as e:  # noqa: BLE001
        logger.exception("Failed to enqueue upload. recording_id=%s", recording_id)
        raise HTTPException(status_code=500, detail="Failed to enqueue job") from e
    return {"ok": True, "queued": queued}


@router.delete("/{recording_id}")
def delete_recording(recording_id: str, user: User = Depends(get_current_user)) -> dict[str, Any]:
    storage.require_recording(recording_id, user.id)
    storage.delete_recording(recording_id)
    return {"ok": True}
