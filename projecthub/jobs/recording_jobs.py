from __future__ import annotations

import base64
import logging
import math
from typing import Any, Optional

from projecthub.jobs.retry import JobContext, run_recording_job
from projecthub.schemas.meetings import MeetingCreate
from projecthub.services import meeting_service, recording_storage_service, upload_queue_service
from projecthub.services.invitation_service import expire_stale

logger = logging.getLogger(__name__)


def meeting_title_for(rec) -> str:
    if rec.metadata.title:
        return rec.metadata.title
    return f"Voice Recording {rec.timestamp.strftime('%Y-%m-%d %H:%M')}"


def duration_minutes(seconds: int) -> int:
    # Half-minutes round up; never below one minute
    return max(1, math.floor(seconds / 60 + 0.5))


def _upload(ctx: JobContext) -> dict[str, Any]:
    rec = recording_storage_service.require_recording(ctx.recording_id)
    audio = recording_storage_service.assemble_audio(rec.id)

    meeting = meeting_service.create_meeting(
        rec.user_id,
        MeetingCreate(
            title=meeting_title_for(rec),
            description=f"AI-processed voice recording (ID: {rec.id})",
            scheduled_at=rec.timestamp,
            duration=duration_minutes(rec.duration),
            project_id=rec.metadata.project_id,
            recording_id=rec.id,
        ),
    )
    recording_storage_service.attach_meeting(rec.id, meeting.id)

    result = meeting_service.process_recording(
        rec.user_id,
        meeting.id,
        base64.b64encode(audio).decode("ascii"),
        project_id=rec.metadata.project_id,
        mime_type=rec.metadata.mime_type,
    )

    recording_storage_service.update_status(rec.id, "uploaded")
    # Processed recordings leave storage so they never show up for recovery
    recording_storage_service.delete_recording(rec.id)
    logger.info(
        "Recording uploaded. recording_id=%s meeting_id=%s tasks_created=%s",
        rec.id,
        meeting.id,
        result.tasks_created,
    )
    return {"meeting_id": meeting.id, "tasks_created": result.tasks_created}


def process_recording_upload(recording_id: str) -> Optional[dict[str, Any]]:
    return run_recording_job(recording_id, _upload)


def run_maintenance() -> dict[str, int]:
    """Startup housekeeping, enqueued once per worker start. Recovers abandoned recordings,
    requeues pending uploads and expires stale invitations.
    """
    recovered = recording_storage_service.recover_incomplete()
    requeued = upload_queue_service.init()
    expired = expire_stale()
    logger.info("Maintenance done. recovered=%s requeued=%s expired_invitations=%s", recovered, requeued, expired)
    return {"recovered": recovered, "requeued": requeued, "expired_invitations": expired}
