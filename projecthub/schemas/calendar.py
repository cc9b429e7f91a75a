from __future__ import annotations

from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

EventSource = Literal["internal", "outlook", "task"]


class CalendarEvent(BaseModel):
    """One entry in a day cell of the merged calendar."""
    id: str
    title: str
    type: Literal["meeting", "task"]
    source: EventSource
    time: Optional[str] = Field(default=None)
    start: Optional[datetime] = Field(default=None)
    duration: Optional[int] = Field(default=None)
    description: Optional[str] = Field(default=None)
    location: Optional[str] = Field(default=None)
    project_id: Optional[str] = Field(default=None)
    priority: Optional[str] = Field(default=None)
    status: Optional[str] = Field(default=None)


class CalendarDay(BaseModel):
    date: date
    is_today: bool = Field(default=False)
    events: list[CalendarEvent] = Field(default_factory=list)


class CalendarView(BaseModel):
    view: Literal["day", "three_day", "week", "month"]
    timezone: str
    # month view keeps leading None cells so the 1st lands on its weekday column
    days: list[Optional[CalendarDay]] = Field(default_factory=list)
    upcoming: list[CalendarEvent] = Field(default_factory=list)


class FeedEvent(BaseModel):
    """Event parsed from an external ICS feed."""
    uid: str
    title: str = Field(default="Untitled Event")
    description: Optional[str] = Field(default=None)
    start: datetime
    end: datetime
    location: Optional[str] = Field(default=None)
    attendees: list[str] = Field(default_factory=list)
    organizer: Optional[str] = Field(default=None)
    all_day: bool = Field(default=False)


class CalendarConfigure(BaseModel):
    calendar_url: Optional[str] = Field(default=None)
    enabled: bool = Field(default=True)
