from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException

from projecthub.settings import Settings, get_settings
from projecthub.services import recording_storage_service, upload_queue_service
from projecthub.services.idempotency_service import get_processed_value, upload_idempotency_key

router = APIRouter(prefix="/debug")


def _require_debug(settings: Settings = Depends(get_settings)) -> Settings:
    if not settings.ALLOW_DEBUG_ENDPOINTS:
        raise HTTPException(status_code=404, detail="Not found")
    return settings


@router.get("/ping")
def ping(_: Settings = Depends(_require_debug)) -> dict:
    return {"ok": True}


@router.get("/info")
def info(settings: Settings = Depends(_require_debug)) -> dict[str, Any]:
    # Avoid leaking secrets; this is intentionally small.
    return {
        "env": settings.ENV,
        "redis_url": settings.REDIS_URL,
        "rq_queue_name": settings.RQ_QUEUE_NAME,
        "ai_configured": bool(settings.AI_BASE_URL),
        "recording_max_retries": settings.RECORDING_MAX_RETRIES,
    }


@router.get("/recordings/{recording_id}")
def debug_recording(recording_id: str, _: Settings = Depends(_require_debug)) -> dict[str, Any]:
    rec = recording_storage_service.get_recording(recording_id)
    if rec is None:
        raise HTTPException(status_code=404, detail="Recording not found")
    chunks = recording_storage_service.get_chunks(recording_id)
    return {
        **rec.model_dump(mode="json"),
        "stored_chunks": len(chunks),
        "stored_bytes": sum(len(c) for c in chunks),
        "unrecoverable": recording_storage_service.is_unrecoverable(rec),
        "upload_marker": get_processed_value(upload_idempotency_key(recording_id)),
    }


@router.get("/queue")
def debug_queue(_: Settings = Depends(_require_debug)) -> dict[str, Any]:
    return upload_queue_service.queue_status().model_dump()
