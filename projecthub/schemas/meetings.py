from __future__ import annotations

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from projecthub.util.time import ensure_utc

RecurrenceType = Literal["daily", "weekly", "monthly", "yearly"]


class Meeting(BaseModel):
    id: str
    title: str
    description: Optional[str] = Field(default=None)
    project_id: Optional[str] = Field(default=None)
    scheduled_at: datetime
    duration: int = Field(ge=1)  # minutes
    recording_url: Optional[str] = Field(default=None)
    recording_id: Optional[str] = Field(default=None)
    transcription: Optional[str] = Field(default=None)
    ai_summary: Optional[str] = Field(default=None)
    extracted_tasks: Optional[list[dict[str, Any]]] = Field(default=None)
    created_by_id: str
    created_at: datetime
    is_recurring: bool = Field(default=False)
    recurrence_type: Optional[RecurrenceType] = Field(default=None)
    recurrence_interval: Optional[int] = Field(default=None, ge=1, le=99)
    recurrence_end_date: Optional[datetime] = Field(default=None)
    recurring_parent_id: Optional[str] = Field(default=None)
    recurrence_pattern: Optional[str] = Field(default=None)


class MeetingCreate(BaseModel):
    title: str = Field(min_length=1, max_length=500)
    description: Optional[str] = Field(default=None)
    project_id: Optional[str] = Field(default=None)
    scheduled_at: Optional[datetime] = Field(default=None)
    duration: int = Field(default=30, ge=1)
    recording_url: Optional[str] = Field(default=None)
    recording_id: Optional[str] = Field(default=None)
    is_recurring: bool = Field(default=False)
    recurrence_type: Optional[RecurrenceType] = Field(default=None)
    recurrence_interval: Optional[int] = Field(default=None, ge=1, le=99)
    recurrence_end_date: Optional[datetime] = Field(default=None)
    recurrence_pattern: Optional[str] = Field(default=None)

    @field_validator("scheduled_at", "recurrence_end_date")
    @classmethod
    def _utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)


class MeetingUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=500)
    description: Optional[str] = Field(default=None)
    project_id: Optional[str] = Field(default=None)
    scheduled_at: Optional[datetime] = Field(default=None)
    duration: Optional[int] = Field(default=None, ge=1)
    recording_url: Optional[str] = Field(default=None)
    recurrence_end_date: Optional[datetime] = Field(default=None)
    recurrence_pattern: Optional[str] = Field(default=None)

    @field_validator("scheduled_at", "recurrence_end_date")
    @classmethod
    def _utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)


class MeetingBatchDelete(BaseModel):
    meeting_ids: list[str] = Field(default_factory=list)


class ProcessRecordingRequest(BaseModel):
    audio_data: str = Field(default="")  # base64 audio without data: prefix
    project_id: Optional[str] = Field(default=None)


class ProcessRecordingResult(BaseModel):
    success: bool = Field(default=True)
    meeting: Meeting
    tasks_created: int = Field(default=0)
    extracted_tasks: list[dict[str, Any]] = Field(default_factory=list)
    transcription: str = Field(default="")
    ai_summary: str = Field(default="")
    already_processed: bool = Field(default=False)


class ExternalMeeting(BaseModel):
    id: str
    external_id: str
    user_id: str
    project_id: Optional[str] = Field(default=None)
    title: str
    description: Optional[str] = Field(default=None)
    start_time: datetime
    end_time: datetime
    location: Optional[str] = Field(default=None)
    attendees: list[str] = Field(default_factory=list)
    source: str = Field(default="outlook")
    created_at: datetime
    updated_at: datetime


class ExternalMeetingCreate(BaseModel):
    external_id: str = Field(min_length=1)
    project_id: Optional[str] = Field(default=None)
    title: str = Field(min_length=1)
    description: Optional[str] = Field(default=None)
    start_time: datetime
    end_time: datetime
    location: Optional[str] = Field(default=None)
    attendees: list[str] = Field(default_factory=list)
    source: str = Field(default="outlook")

    @field_validator("start_time", "end_time")
    @classmethod
    def _utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)


class LinkProjectRequest(BaseModel):
    project_id: Optional[str] = Field(default=None)
