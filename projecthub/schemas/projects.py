from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from projecthub.schemas.users import UserSummary
from projecthub.util.time import ensure_utc

ProjectStatus = Literal["active", "completed", "paused"]
MemberRole = Literal["owner", "admin", "collaborator", "member"]
InvitationStatus = Literal["pending", "accepted", "declined", "expired"]


class Project(BaseModel):
    id: str
    name: str
    description: Optional[str] = Field(default=None)
    status: ProjectStatus = Field(default="active")
    progress: int = Field(default=0, ge=0, le=100)
    owner_id: str
    due_date: Optional[datetime] = Field(default=None)
    created_at: datetime
    updated_at: datetime


class ProjectView(Project):
    """Project as returned by list/detail endpoints, with derived counters."""
    member_count: int = Field(default=1)
    total_tasks: int = Field(default=0)
    completed_tasks: int = Field(default=0)
    my_tasks: int = Field(default=0)
    actual_progress: int = Field(default=0)
    is_owner: bool = Field(default=False)


class ProjectCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: Optional[str] = Field(default=None)
    status: ProjectStatus = Field(default="active")
    due_date: Optional[datetime] = Field(default=None)

    @field_validator("due_date")
    @classmethod
    def _utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)


class ProjectUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None)
    status: Optional[ProjectStatus] = Field(default=None)
    progress: Optional[int] = Field(default=None, ge=0, le=100)
    due_date: Optional[datetime] = Field(default=None)

    @field_validator("due_date")
    @classmethod
    def _utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)


class ProjectMember(BaseModel):
    id: str
    project_id: str
    user_id: str
    role: MemberRole = Field(default="member")
    joined_at: datetime


class ProjectMemberView(ProjectMember):
    user: Optional[UserSummary] = Field(default=None)


class Invitation(BaseModel):
    id: str
    project_id: str
    inviter_user_id: str
    invitee_email: str
    role: MemberRole = Field(default="member")
    status: InvitationStatus = Field(default="pending")
    token: str
    expires_at: datetime
    created_at: datetime
    responded_at: Optional[datetime] = Field(default=None)


class InviteRequest(BaseModel):
    email: str = Field(default="")
    role: MemberRole = Field(default="member")
