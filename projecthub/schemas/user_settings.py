from __future__ import annotations

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field


class UserSettings(BaseModel):
    user_id: str
    email_notifications: bool = Field(default=True)
    morning_briefing: bool = Field(default=True)
    lunch_reminder: bool = Field(default=True)
    end_of_day_summary: bool = Field(default=True)
    meeting_reminders: bool = Field(default=True)
    task_deadline_alerts: bool = Field(default=True)
    ai_insights: bool = Field(default=True)
    working_hours_start: str = Field(default="09:00")
    working_hours_end: str = Field(default="18:00")
    urgent_only: bool = Field(default=False)
    outlook_calendar_url: Optional[str] = Field(default=None)
    outlook_calendar_enabled: bool = Field(default=False)
    time_format: Literal["12", "24"] = Field(default="12")
    timezone: str = Field(default="UTC")
    updated_at: Optional[datetime] = Field(default=None)

    @property
    def id(self) -> str:
        # record store keys settings by owner
        return self.user_id


class UserSettingsUpdate(BaseModel):
    email_notifications: Optional[bool] = None
    morning_briefing: Optional[bool] = None
    lunch_reminder: Optional[bool] = None
    end_of_day_summary: Optional[bool] = None
    meeting_reminders: Optional[bool] = None
    task_deadline_alerts: Optional[bool] = None
    ai_insights: Optional[bool] = None
    working_hours_start: Optional[str] = Field(default=None, pattern=r"^\d{2}:\d{2}$")
    working_hours_end: Optional[str] = Field(default=None, pattern=r"^\d{2}:\d{2}$")
    urgent_only: Optional[bool] = None
    time_format: Optional[Literal["12", "24"]] = None
    timezone: Optional[str] = None


class Notification(BaseModel):
    id: str
    user_id: str
    title: str
    message: str
    type: str  # meeting, task, project, invitation, ai_insight
    read: bool = Field(default=False)
    data: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
