"""
External calendar feed (ICS) fetching, parsing and caching.

Feeds are fetched with httpx, parsed into FeedEvent models and cached in Redis
for CALENDAR_CACHE_TTL_SECONDS. Every successful fetch also upserts the events
into the user's external meetings, keyed by the event UID.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import httpx
from pydantic import TypeAdapter, ValidationError

from projecthub.schemas.calendar import FeedEvent
from projecthub.services.redis_client import get_redis_str
from projecthub.services.settings_service import get_user_settings
from projecthub.settings import get_settings
from projecthub.util.time import resolve_tz

logger = logging.getLogger(__name__)

_feed_adapter = TypeAdapter(list[FeedEvent])


class CalendarSyncError(Exception):
    pass


def cache_key(user_id: str) -> str:
    return f"calendar_feed:{user_id}"


def normalize_feed_url(url: str) -> str:
    url = url.strip()
    if url.startswith("webcal://"):
        url = "https://" + url[len("webcal://") :]
    # Outlook publishes an HTML viewer next to the .ics feed
    if "outlook" in url and url.endswith(".html"):
        url = url[: -len(".html")] + ".ics"
    return url


def _unescape(text: str) -> str:
    return (
        text.replace("\\n", "\n")
        .replace("\\N", "\n")
        .replace("\\,", ",")
        .replace("\\;", ";")
        .replace("\\\\", "\\")
    )


def _unfold(content: str) -> list[str]:
    lines: list[str] = []
    for raw in content.splitlines():
        if raw.startswith((" ", "\t")) and lines:
            lines[-1] += raw[1:]
        else:
            lines.append(raw.rstrip())
    return lines


def parse_ics_datetime(value: str, params: dict[str, str]) -> tuple[datetime, bool]:
    """
    Returns (utc datetime, all_day). Handles UTC ('Z'), TZID-qualified, floating
    (treated as UTC) and DATE-only values.
    """
    value = value.strip()
    # 1601 dates are placeholders some exporters emit for recurring series
    if len(value) < 8 or value.startswith("1601"):
        raise ValueError(f"Invalid date: {value}")

    if len(value) == 8 or params.get("VALUE") == "DATE":
        d = datetime.strptime(value[:8], "%Y%m%d")
        return d.replace(tzinfo=timezone.utc), True

    utc = value.endswith("Z")
    dt = datetime.strptime(value.rstrip("Z")[:15], "%Y%m%dT%H%M%S")
    if utc:
        return dt.replace(tzinfo=timezone.utc), False
    tzid = params.get("TZID")
    tz = resolve_tz(tzid.strip('"')) if tzid else timezone.utc
    return dt.replace(tzinfo=tz).astimezone(timezone.utc), False


def _split_property(line: str) -> tuple[str, dict[str, str], str]:
    head, _, value = line.partition(":")
    name, *raw_params = head.split(";")
    params: dict[str, str] = {}
    for p in raw_params:
        k, _, v = p.partition("=")
        params[k.upper()] = v
    return name.upper(), params, value


def parse_ics(content: str) -> list[FeedEvent]:
    events: list[FeedEvent] = []
    current: Optional[dict] = None

    for line in _unfold(content):
        if line == "BEGIN:VEVENT":
            current = {"attendees": []}
            continue
        if line == "END:VEVENT":
            if current is not None and current.get("start") is not None:
                if current.get("status") != "CANCELLED":
                    events.append(_to_feed_event(current))
            current = None
            continue
        if current is None or ":" not in line:
            continue

        name, params, value = _split_property(line)
        try:
            if name == "UID":
                current["uid"] = value
            elif name == "SUMMARY":
                current["title"] = _unescape(value)
            elif name == "DESCRIPTION":
                current["description"] = _unescape(value)
            elif name == "LOCATION":
                current["location"] = _unescape(value)
            elif name == "DTSTART":
                current["start"], current["all_day"] = parse_ics_datetime(value, params)
            elif name == "DTEND":
                current["end"], _ = parse_ics_datetime(value, params)
            elif name == "STATUS":
                current["status"] = value.upper()
            elif name == "ATTENDEE":
                current["attendees"].append(value.removeprefix("mailto:").removeprefix("MAILTO:"))
            elif name == "ORGANIZER":
                current["organizer"] = _unescape(value.removeprefix("mailto:").removeprefix("MAILTO:"))
        except ValueError as e:
            logger.debug("Skipping unparseable ICS property. name=%s error=%s", name, e)

    logger.info("Parsed ICS feed. events=%s", len(events))
    return events


def _to_feed_event(raw: dict) -> FeedEvent:
    start: datetime = raw["start"]
    all_day = bool(raw.get("all_day"))
    end = raw.get("end") or (start + (timedelta(days=1) if all_day else timedelta(hours=1)))
    uid = raw.get("uid") or f"{start.isoformat()}-{raw.get('title', '')}"
    return FeedEvent(
        uid=uid,
        title=raw.get("title") or "Untitled Event",
        description=raw.get("description"),
        start=start,
        end=end,
        location=raw.get("location"),
        attendees=raw.get("attendees", []),
        organizer=raw.get("organizer"),
        all_day=all_day,
    )


def fetch_feed(url: str) -> list[FeedEvent]:
    settings = get_settings()
    url = normalize_feed_url(url)
    try:
        with httpx.Client(timeout=settings.CALENDAR_FETCH_TIMEOUT_SECONDS, follow_redirects=True) as client:
            resp = client.get(url, headers={"Accept": "text/calendar, */*"})
            resp.raise_for_status()
    except httpx.HTTPStatusError as e:
        raise CalendarSyncError(f"Calendar feed returned HTTP {e.response.status_code}") from e
    except httpx.HTTPError as e:
        raise CalendarSyncError(f"Calendar feed could not be fetched: {e}") from e

    content = resp.text
    head = content[:2000].lower()
    if "<!doctype html" in head or "<html" in head:
        raise CalendarSyncError(
            "Received HTML page instead of calendar data. Please check your calendar sharing URL and permissions."
        )
    if "BEGIN:VCALENDAR" not in content:
        raise CalendarSyncError("Response is not an ICS calendar feed")
    return parse_ics(content)


def get_cached_events(user_id: str) -> Optional[list[FeedEvent]]:
    raw = get_redis_str().get(cache_key(user_id))
    if not raw:
        return None
    try:
        return _feed_adapter.validate_json(raw)
    except ValidationError:
        logger.warning("Dropping unreadable calendar cache. user_id=%s", user_id)
        clear_cache(user_id)
        return None


def store_cached_events(user_id: str, events: list[FeedEvent]) -> None:
    settings = get_settings()
    payload = json.dumps([e.model_dump(mode="json") for e in events])
    get_redis_str().set(cache_key(user_id), payload, ex=settings.CALENDAR_CACHE_TTL_SECONDS)


def clear_cache(user_id: str) -> None:
    get_redis_str().delete(cache_key(user_id))


def get_events(user_id: str, refresh: bool = False) -> list[FeedEvent]:
    """
    Feed events for the user. Empty when sync is disabled or no feed URL is
    configured. Served from cache unless refresh is set or the cache expired.
    """
    user_settings = get_user_settings(user_id)
    if not user_settings.outlook_calendar_enabled or not user_settings.outlook_calendar_url:
        return []

    if not refresh:
        cached = get_cached_events(user_id)
        if cached is not None:
            return cached

    events = fetch_feed(user_settings.outlook_calendar_url)
    store_cached_events(user_id, events)

    # Local import: calendar_service depends on this module for the merge
    from projecthub.services.calendar_service import upsert_feed_events

    upsert_feed_events(user_id, events)
    logger.info("Calendar feed synced. user_id=%s events=%s", user_id, len(events))
    return events
