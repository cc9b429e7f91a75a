from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class User(BaseModel):
    id: str
    username: str
    email: str
    name: str
    role: str = Field(default="member")
    avatar: Optional[str] = Field(default=None)
    password_hash: str = Field(default="")
    created_at: datetime


class UserSummary(BaseModel):
    """Public view of a user; never carries the password hash."""
    id: str
    username: str = Field(default="")
    email: str = Field(default="")
    name: str = Field(default="")
    role: str = Field(default="member")
    avatar: Optional[str] = Field(default=None)

    @classmethod
    def of(cls, user: User) -> "UserSummary":
        return cls(
            id=user.id,
            username=user.username,
            email=user.email,
            name=user.name,
            role=user.role,
            avatar=user.avatar,
        )


class RegisterRequest(BaseModel):
    username: str = Field(min_length=3, max_length=64)
    email: str = Field(min_length=3)
    password: str = Field(min_length=6)
    name: str = Field(min_length=1)


class LoginRequest(BaseModel):
    username: str = Field(description="Username or email")
    password: str


class ProfileUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    email: Optional[str] = Field(default=None)
    avatar: Optional[str] = Field(default=None)
