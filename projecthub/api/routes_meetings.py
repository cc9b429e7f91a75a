from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException

from projecthub.api.deps import get_current_user
from projecthub.schemas.meetings import (
    Meeting,
    MeetingBatchDelete,
    MeetingCreate,
    MeetingUpdate,
    ProcessRecordingRequest,
    ProcessRecordingResult,
)
from projecthub.schemas.users import User
from projecthub.services import meeting_service
from projecthub.services.ai_service import AIError

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/meetings")


@router.get("")
def list_meetings(project_id: Optional[str] = None, user: User = Depends(get_current_user)) -> list[Meeting]:
    return meeting_service.list_meetings(user.id, project_id)


@router.post("")
def create_meeting(req: MeetingCreate, user: User = Depends(get_current_user)) -> Meeting:
    return meeting_service.create_meeting(user.id, req)


# Registered before /{meeting_id} so "batch" is not taken for an id
@router.delete("/batch")
def batch_delete(req: MeetingBatchDelete, user: User = Depends(get_current_user)) -> dict[str, Any]:
    deleted = meeting_service.batch_delete(user.id, req.meeting_ids)
    return {
        "message": f"Successfully deleted {deleted} meeting(s)",
        "deleted_count": deleted,
        "requested_count": len(req.meeting_ids),
    }


@router.get("/{meeting_id}")
def get_meeting(meeting_id: str, user: User = Depends(get_current_user)) -> Meeting:
    return meeting_service.require_meeting(user.id, meeting_id)


@router.put("/{meeting_id}")
def update_meeting(meeting_id: str, req: MeetingUpdate, user: User = Depends(get_current_user)) -> Meeting:
    return meeting_service.update_meeting(user.id, meeting_id, req)


@router.delete("/{meeting_id}")
def delete_meeting(meeting_id: str, user: User = Depends(get_current_user)) -> dict[str, Any]:
    meeting_service.delete_meeting(user.id, meeting_id)
    return {"message": "Meeting deleted successfully"}


@router.post("/{meeting_id}/process-recording")
def process_recording(
    meeting_id: str,
    req: ProcessRecordingRequest,
    user: User = Depends(get_current_user),
) -> ProcessRecordingResult:
    try:
        return meeting_service.process_recording(user.id, meeting_id, req.audio_data, req.project_id)
    except AIError as e:
        logger.exception("Processing recording failed. meeting_id=%s", meeting_id)
        raise HTTPException(status_code=502, detail=f"Failed to process recording: {e}") from e
