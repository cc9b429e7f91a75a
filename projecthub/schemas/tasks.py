from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from projecthub.util.time import ensure_utc

TaskStatus = Literal["todo", "in_progress", "completed"]
TaskPriority = Literal["low", "medium", "high", "urgent"]

PRIORITY_RANK: dict[str, int] = {"urgent": 4, "high": 3, "medium": 2, "low": 1}


class Task(BaseModel):
    id: str
    title: str
    description: Optional[str] = Field(default=None)
    status: TaskStatus = Field(default="todo")
    priority: TaskPriority = Field(default="medium")
    project_id: str
    assignee_id: Optional[str] = Field(default=None)
    updated_by: Optional[str] = Field(default=None)
    due_date: Optional[datetime] = Field(default=None)
    created_at: datetime
    updated_at: datetime


class TaskView(Task):
    automatic_priority: TaskPriority = Field(default="medium")
    auto_prioritized: bool = Field(default=False)


class TaskCreate(BaseModel):
    title: str = Field(min_length=1, max_length=500)
    description: Optional[str] = Field(default=None)
    status: TaskStatus = Field(default="todo")
    priority: TaskPriority = Field(default="medium")
    project_id: str
    assignee_id: Optional[str] = Field(default=None)
    due_date: Optional[datetime] = Field(default=None)

    @field_validator("due_date")
    @classmethod
    def _utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)


class TaskUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=500)
    description: Optional[str] = Field(default=None)
    status: Optional[TaskStatus] = Field(default=None)
    priority: Optional[TaskPriority] = Field(default=None)
    assignee_id: Optional[str] = Field(default=None)
    due_date: Optional[datetime] = Field(default=None)

    @field_validator("due_date")
    @classmethod
    def _utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)


class BatchDeleteRequest(BaseModel):
    task_ids: list[str] = Field(default_factory=list)
