from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from projecthub.schemas.meetings import Meeting


class DashboardStats(BaseModel):
    total_projects: int = Field(default=0)
    active_tasks: int = Field(default=0)
    completed_tasks: int = Field(default=0)
    team_members: int = Field(default=0)


class ActivityItem(BaseModel):
    id: str
    type: str  # created, completed, updated, ai
    user: str
    action: str
    target: Optional[str] = Field(default=None)
    time: datetime


class TodaysMeeting(Meeting):
    project_name: Optional[str] = Field(default=None)
    creator_name: str = Field(default="Someone")
