from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, Optional

from projecthub.errors import AccessDeniedError, NotFoundError, ValidationFailedError
from projecthub.schemas.ai import ExtractedTask
from projecthub.schemas.meetings import Meeting, MeetingCreate, MeetingUpdate, ProcessRecordingResult
from projecthub.schemas.tasks import Task, TaskCreate
from projecthub.services import ai_service
from projecthub.services.notification_service import create_notification
from projecthub.services.project_service import (
    accessible_project_ids,
    get_project,
    has_access,
    project_meetings_index,
    project_tasks,
    require_access,
)
from projecthub.services.record_store_service import (
    apply_changes,
    clear_lookup,
    delete_record,
    drop_index,
    get_lookup,
    index_add,
    index_members,
    index_remove,
    load_many,
    load_record,
    new_id,
    now_utc,
    save_record,
    set_lookup,
)
from projecthub.services.task_service import create_task
from projecthub.settings import get_settings
from projecthub.util.text_format import normalize_title, string_similarity, strip_data_url, truncate
from projecthub.util.time import add_months, add_years, ensure_utc, sunday_based_weekday

logger = logging.getLogger(__name__)

KIND = "meeting"

TITLE_SIMILARITY_THRESHOLD = 0.8
DESCRIPTION_SIMILARITY_THRESHOLD = 0.85


def user_meetings_index(user_id: str) -> str:
    return f"user:{user_id}:meetings"


def _recording_key(user_id: str, recording_id: str) -> str:
    return f"meeting_by_recording:{user_id}:{recording_id}"


def get_meeting(meeting_id: str) -> Optional[Meeting]:
    return load_record(KIND, meeting_id, Meeting)


def can_view(user_id: str, meeting: Meeting) -> bool:
    if meeting.created_by_id == user_id:
        return True
    return bool(meeting.project_id) and has_access(user_id, meeting.project_id)


def require_meeting(user_id: str, meeting_id: str) -> Meeting:
    meeting = get_meeting(meeting_id)
    if meeting is None:
        raise NotFoundError("Meeting not found")
    if not can_view(user_id, meeting):
        raise AccessDeniedError("Access denied")
    return meeting


def require_own_meeting(user_id: str, meeting_id: str, action: str = "update") -> Meeting:
    meeting = get_meeting(meeting_id)
    if meeting is None:
        raise NotFoundError("Meeting not found")
    if meeting.created_by_id != user_id:
        raise AccessDeniedError(f"Not authorized to {action} this meeting")
    return meeting


def get_meeting_for_recording(user_id: str, recording_id: str) -> Optional[Meeting]:
    return get_meeting(get_lookup(_recording_key(user_id, recording_id)))


def list_meetings(user_id: str, project_id: Optional[str] = None) -> list[Meeting]:
    """Meetings the user created or that belong to an accessible project, newest first."""
    if project_id:
        require_access(user_id, project_id)
        ids = index_members(project_meetings_index(project_id))
    else:
        ids = set(index_members(user_meetings_index(user_id)))
        for pid in accessible_project_ids(user_id):
            ids |= index_members(project_meetings_index(pid))
    meetings = load_many(KIND, ids, Meeting)
    meetings.sort(key=lambda m: ensure_utc(m.scheduled_at), reverse=True)
    return meetings


def _store(meeting: Meeting) -> None:
    save_record(KIND, meeting)
    index_add(user_meetings_index(meeting.created_by_id), meeting.id)
    if meeting.project_id:
        index_add(project_meetings_index(meeting.project_id), meeting.id)


def recurrence_dates(
    start: datetime,
    recurrence_type: str,
    interval: int = 1,
    end: Optional[datetime] = None,
    pattern: Optional[str] = None,
) -> list[datetime]:
    """
    Start times of the child instances of a recurring meeting. The parent's own
    slot is skipped. Weekly patterns list weekdays as digits with Sunday=0.
    Open-ended series stop after the configured number of steps.
    """
    settings = get_settings()
    start = ensure_utc(start)
    end = ensure_utc(end)
    interval = interval or 1

    out: list[datetime] = []
    current = start
    step = 0
    while step < settings.RECURRENCE_MAX_INSTANCES and (end is None or current <= end):
        if step > 0:
            emit = True
            if recurrence_type == "weekly" and pattern:
                emit = str(sunday_based_weekday(current.date())) in pattern
            if emit:
                out.append(current)

        step += 1
        if recurrence_type == "daily":
            current = start + timedelta(days=interval * step)
        elif recurrence_type == "weekly":
            current = start + timedelta(weeks=interval * step)
        elif recurrence_type == "monthly":
            current = add_months(start, interval * step)
        elif recurrence_type == "yearly":
            current = add_years(start, interval * step)
        else:
            break

        if end is None and step > settings.RECURRENCE_OPEN_ENDED_LIMIT:
            break
    return out


def _generate_instances(parent: Meeting) -> int:
    if not parent.is_recurring or not parent.recurrence_type:
        return 0
    dates = recurrence_dates(
        parent.scheduled_at,
        parent.recurrence_type,
        parent.recurrence_interval or 1,
        parent.recurrence_end_date,
        parent.recurrence_pattern,
    )
    for when in dates:
        _store(
            Meeting(
                id=new_id(),
                title=parent.title,
                description=parent.description,
                project_id=parent.project_id,
                scheduled_at=when,
                duration=parent.duration,
                recording_url=parent.recording_url,
                created_by_id=parent.created_by_id,
                created_at=parent.created_at,
                recurring_parent_id=parent.id,
            )
        )
    logger.info("Generated recurring instances. parent_id=%s count=%s", parent.id, len(dates))
    return len(dates)


def create_meeting(user_id: str, req: MeetingCreate) -> Meeting:
    """
    Creating twice for the same recording_id returns the first meeting, so a
    retried upload never produces a duplicate.
    """
    if req.project_id:
        require_access(user_id, req.project_id)

    meeting_id = new_id()
    if req.recording_id:
        if not set_lookup(_recording_key(user_id, req.recording_id), meeting_id):
            existing = get_meeting_for_recording(user_id, req.recording_id)
            if existing is not None:
                logger.info(
                    "Meeting already exists for recording; reusing. recording_id=%s meeting_id=%s",
                    req.recording_id,
                    existing.id,
                )
                return existing
            # stale lookup pointing at a deleted meeting
            clear_lookup(_recording_key(user_id, req.recording_id))
            set_lookup(_recording_key(user_id, req.recording_id), meeting_id)

    now = now_utc()
    meeting = Meeting(
        id=meeting_id,
        title=req.title.strip(),
        description=req.description,
        project_id=req.project_id,
        scheduled_at=req.scheduled_at or now,
        duration=req.duration,
        recording_url=req.recording_url,
        recording_id=req.recording_id,
        created_by_id=user_id,
        created_at=now,
        is_recurring=req.is_recurring,
        recurrence_type=req.recurrence_type if req.is_recurring else None,
        recurrence_interval=(req.recurrence_interval or 1) if req.is_recurring else None,
        recurrence_end_date=req.recurrence_end_date if req.is_recurring else None,
        recurrence_pattern=req.recurrence_pattern if req.is_recurring else None,
    )
    _store(meeting)
    _generate_instances(meeting)
    logger.info("Meeting created. meeting_id=%s project_id=%s", meeting.id, meeting.project_id)
    return meeting


def update_meeting(user_id: str, meeting_id: str, updates: MeetingUpdate) -> Meeting:
    meeting = require_own_meeting(user_id, meeting_id, "update")
    changes = updates.model_dump(exclude_unset=True)
    if "project_id" in changes and changes["project_id"] and changes["project_id"] != meeting.project_id:
        require_access(user_id, changes["project_id"])
    if changes.get("scheduled_at") is None:
        changes.pop("scheduled_at", None)

    updated = apply_changes(meeting, changes)
    if updated.project_id != meeting.project_id:
        if meeting.project_id:
            index_remove(project_meetings_index(meeting.project_id), meeting.id)
    _store(updated)
    return updated


def _drop_meeting(meeting: Meeting) -> None:
    index_remove(user_meetings_index(meeting.created_by_id), meeting.id)
    if meeting.project_id:
        index_remove(project_meetings_index(meeting.project_id), meeting.id)
    if meeting.recording_id:
        clear_lookup(_recording_key(meeting.created_by_id, meeting.recording_id))
    delete_record(KIND, meeting.id)


def delete_meeting(user_id: str, meeting_id: str) -> None:
    meeting = require_own_meeting(user_id, meeting_id, "delete")
    _drop_meeting(meeting)
    logger.info("Meeting deleted. meeting_id=%s", meeting_id)


def batch_delete(user_id: str, meeting_ids: list[str]) -> int:
    """Deletes the caller's own meetings among meeting_ids; others are skipped."""
    if not meeting_ids:
        raise ValidationFailedError("Meeting IDs are required")
    own = [m for m in load_many(KIND, meeting_ids, Meeting) if m.created_by_id == user_id]
    if not own:
        raise NotFoundError("No valid meetings found to delete")
    for m in own:
        _drop_meeting(m)
    logger.info("Batch deleted meetings. requested=%s deleted=%s", len(meeting_ids), len(own))
    return len(own)


def drop_project_meetings(project_id: str) -> None:
    for m in load_many(KIND, index_members(project_meetings_index(project_id)), Meeting):
        _drop_meeting(m)
    drop_index(project_meetings_index(project_id))


def is_duplicate_task(candidate: ExtractedTask, existing: list[Task]) -> bool:
    title = normalize_title(candidate.title)
    for task in existing:
        if normalize_title(task.title) == title:
            return True
        if string_similarity(task.title, candidate.title) > TITLE_SIMILARITY_THRESHOLD:
            return True
        if task.description and candidate.description:
            if string_similarity(task.description, candidate.description) > DESCRIPTION_SIMILARITY_THRESHOLD:
                return True
    return False


def _due_date_for(candidate: ExtractedTask, now: datetime) -> datetime:
    if candidate.due_date:
        try:
            return ensure_utc(datetime.fromisoformat(candidate.due_date.replace("Z", "+00:00")))
        except ValueError:
            logger.debug("Ignoring unparseable extracted due date: %s", candidate.due_date)
    return now + timedelta(days=get_settings().EXTRACTED_TASK_DUE_DAYS)


def create_tasks_from_extraction(user_id: str, project_id: str, extracted: list[ExtractedTask]) -> list[Task]:
    existing = project_tasks(project_id)
    now = now_utc()
    created: list[Task] = []
    for candidate in extracted:
        if is_duplicate_task(candidate, existing):
            logger.info("Skipping duplicate extracted task. title=%s", candidate.title)
            continue
        task = create_task(
            user_id,
            TaskCreate(
                title=candidate.title,
                description=candidate.description or candidate.title,
                priority=candidate.priority,
                project_id=project_id,
                assignee_id=user_id,
                due_date=_due_date_for(candidate, now),
            ),
        )
        existing.append(task)
        created.append(task)
    return created


def _extracted_dicts(meeting: Meeting) -> list[dict[str, Any]]:
    return list(meeting.extracted_tasks or [])


def process_recording(
    user_id: str,
    meeting_id: str,
    audio_data: str,
    project_id: Optional[str] = None,
    mime_type: str = "audio/webm",
) -> ProcessRecordingResult:
    """
    Transcribe -> summarise -> extract tasks. A meeting that already carries a
    transcription is returned as-is with already_processed set.
    """
    audio = strip_data_url(audio_data or "")
    if not audio:
        raise ValidationFailedError("No audio data provided")

    meeting = require_meeting(user_id, meeting_id)
    if meeting.transcription and meeting.transcription.strip():
        logger.info("Meeting already processed; returning stored results. meeting_id=%s", meeting_id)
        extracted = _extracted_dicts(meeting)
        return ProcessRecordingResult(
            meeting=meeting,
            tasks_created=len(extracted),
            extracted_tasks=extracted,
            transcription=meeting.transcription,
            ai_summary=meeting.ai_summary or "",
            already_processed=True,
        )

    project_id = project_id or meeting.project_id
    if project_id:
        require_access(user_id, project_id)

    transcription = ai_service.transcribe(audio, mime_type).text
    if not transcription.strip():
        raise ValidationFailedError("No transcription generated from audio")
    extracted = ai_service.extract_tasks(transcription)
    summary = ai_service.summarize(transcription).summary

    meeting = meeting.model_copy(
        update={
            "transcription": transcription,
            "ai_summary": summary,
            "extracted_tasks": [t.model_dump() for t in extracted],
        }
    )
    _store(meeting)

    created: list[Task] = []
    if project_id and extracted:
        created = create_tasks_from_extraction(user_id, project_id, extracted)
        project = get_project(project_id)
        create_notification(
            user_id=user_id,
            title="Meeting processed",
            message=(
                f'"{meeting.title}" in {project.name if project else "your project"}: '
                f"{len(created)} new task(s). {truncate(summary)}"
            ),
            type="meeting",
            data={"meeting_id": meeting.id, "project_id": project_id, "tasks_created": len(created)},
        )

    logger.info(
        "Recording processed. meeting_id=%s extracted=%s created=%s",
        meeting.id,
        len(extracted),
        len(created),
    )
    return ProcessRecordingResult(
        meeting=meeting,
        tasks_created=len(created),
        extracted_tasks=_extracted_dicts(meeting),
        transcription=transcription,
        ai_summary=summary,
    )
