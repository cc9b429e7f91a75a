from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

RecordingStatus = Literal[
    "recording",
    "paused",
    "completed",
    "processing",
    "uploaded",
    "failed",
    "interrupted",
]


class RecordingMetadata(BaseModel):
    title: Optional[str] = Field(default=None)
    project_id: Optional[str] = Field(default=None)
    size: int = Field(default=0)
    mime_type: str = Field(default="audio/webm")
    last_heartbeat: Optional[datetime] = Field(default=None)
    is_paused: bool = Field(default=False)


class StoredRecording(BaseModel):
    id: str
    user_id: str
    timestamp: datetime
    duration: int = Field(default=0)  # seconds
    status: RecordingStatus = Field(default="recording")
    retry_count: int = Field(default=0)
    last_error: str = Field(default="")
    chunk_count: int = Field(default=0)
    meeting_id: Optional[str] = Field(default=None)
    metadata: RecordingMetadata = Field(default_factory=RecordingMetadata)


class RecordingStart(BaseModel):
    title: Optional[str] = Field(default=None)
    project_id: Optional[str] = Field(default=None)
    mime_type: str = Field(default="audio/webm")


class RecordingFinalize(BaseModel):
    duration: int = Field(default=0, ge=0)
    upload: bool = Field(default=True)


class QueueStatus(BaseModel):
    queued: int = Field(default=0)
    uploading: int = Field(default=0)
    failed: int = Field(default=0)
    unrecoverable: int = Field(default=0)


class StorageHealth(BaseModel):
    healthy: bool = Field(default=True)
    recordings: int = Field(default=0)
    message: str = Field(default="")
