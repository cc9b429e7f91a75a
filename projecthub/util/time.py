from __future__ import annotations

import calendar
import math
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Naive datetimes are treated as UTC; aware ones are converted to UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def resolve_tz(name: str | None) -> tzinfo:
    if not name:
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return timezone.utc


def local_date(dt: datetime, tz: tzinfo) -> date:
    return ensure_utc(dt).astimezone(tz).date()


def day_bounds(d: date, tz: tzinfo) -> tuple[datetime, datetime]:
    """[start, end) of a local calendar day, expressed in UTC."""
    start = datetime.combine(d, time.min, tzinfo=tz)
    end = datetime.combine(d + timedelta(days=1), time.min, tzinfo=tz)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def days_until(due: datetime, now: datetime) -> int:
    seconds = (ensure_utc(due) - ensure_utc(now)).total_seconds()
    return math.ceil(seconds / 86400)


def add_months(dt: datetime, months: int) -> datetime:
    """Calendar month step; the day is clamped to the target month's length."""
    month_index = dt.month - 1 + months
    year = dt.year + month_index // 12
    month = month_index % 12 + 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return dt.replace(year=year, month=month, day=day)


def add_years(dt: datetime, years: int) -> datetime:
    try:
        return dt.replace(year=dt.year + years)
    except ValueError:
        # Feb 29 on a non-leap target year
        return dt.replace(year=dt.year + years, day=28)


def format_clock(dt: datetime, tz: tzinfo, time_format: str = "12") -> str:
    local = ensure_utc(dt).astimezone(tz)
    hour, minute = local.hour, local.minute
    if time_format == "12":
        period = "PM" if hour >= 12 else "AM"
        display_hour = 12 if hour == 0 else hour - 12 if hour > 12 else hour
        return f"{display_hour}:{minute:02d} {period}"
    return f"{hour:02d}:{minute:02d}"


def sunday_week_start(d: date) -> date:
    # date.weekday(): Monday=0 ... Sunday=6
    return d - timedelta(days=(d.weekday() + 1) % 7)


def sunday_based_weekday(d: date) -> int:
    """Weekday numbered Sunday=0 ... Saturday=6."""
    return (d.weekday() + 1) % 7
