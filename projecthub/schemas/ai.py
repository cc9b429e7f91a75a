from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field


class TranscriptionResult(BaseModel):
    text: str = Field(default="")
    confidence: Optional[float] = Field(default=None)
    duration_seconds: Optional[float] = Field(default=None)


class MeetingSummary(BaseModel):
    summary: str = Field(default="")


class ExtractedTask(BaseModel):
    title: str = Field(min_length=1)
    description: str = Field(default="")
    priority: Literal["low", "medium", "high", "urgent"] = Field(default="medium")
    due_date: str = Field(default="")  # ISO date/datetime or empty


class ExtractedTasks(BaseModel):
    tasks: list[ExtractedTask] = Field(default_factory=list)
