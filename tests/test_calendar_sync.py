from __future__ import annotations

from datetime import datetime, timezone

import httpx
import pytest

from projecthub.services import calendar_service, calendar_sync_service
from projecthub.services.settings_service import set_calendar_feed

ICS = "\r\n".join(
    [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        "BEGIN:VEVENT",
        "UID:evt-1",
        "SUMMARY:Design review\\, round 2",
        "DESCRIPTION:Walk through the new\\nmockups with the",
        "  whole team",
        "DTSTART;TZID=America/New_York:20260115T090000",
        "DTEND;TZID=America/New_York:20260115T100000",
        "LOCATION:Room 4",
        "ATTENDEE;CN=Bob:mailto:bob@example.com",
        "END:VEVENT",
        "BEGIN:VEVENT",
        "UID:evt-2",
        "SUMMARY:Company holiday",
        "DTSTART;VALUE=DATE:20260120",
        "END:VEVENT",
        "BEGIN:VEVENT",
        "UID:evt-3",
        "SUMMARY:Cancelled sync",
        "STATUS:CANCELLED",
        "DTSTART:20260116T090000Z",
        "END:VEVENT",
        "BEGIN:VEVENT",
        "UID:evt-4",
        "SUMMARY:Quick chat",
        "DTSTART:20260117T140000Z",
        "END:VEVENT",
        "END:VCALENDAR",
    ]
)


def test_parse_ics_handles_folding_tzid_and_dates():
    events = {e.uid: e for e in calendar_sync_service.parse_ics(ICS)}
    assert set(events) == {"evt-1", "evt-2", "evt-4"}

    review = events["evt-1"]
    assert review.title == "Design review, round 2"
    assert review.description == "Walk through the new\nmockups with the whole team"
    assert review.start == datetime(2026, 1, 15, 14, 0, tzinfo=timezone.utc)
    assert review.end == datetime(2026, 1, 15, 15, 0, tzinfo=timezone.utc)
    assert review.attendees == ["bob@example.com"]

    holiday = events["evt-2"]
    assert holiday.all_day is True
    assert holiday.end == datetime(2026, 1, 21, tzinfo=timezone.utc)

    chat = events["evt-4"]
    assert chat.end == datetime(2026, 1, 17, 15, 0, tzinfo=timezone.utc)


def test_placeholder_dates_are_rejected():
    with pytest.raises(ValueError):
        calendar_sync_service.parse_ics_datetime("16010101T000000", {})
    with pytest.raises(ValueError):
        calendar_sync_service.parse_ics_datetime("2026", {})


def test_normalize_feed_url():
    assert calendar_sync_service.normalize_feed_url("webcal://example.com/cal.ics") == "https://example.com/cal.ics"
    assert (
        calendar_sync_service.normalize_feed_url("https://outlook.office365.com/owa/calendar/x/calendar.html")
        == "https://outlook.office365.com/owa/calendar/x/calendar.ics"
    )


def _mock_http(monkeypatch, body: str, status: int = 200) -> list[str]:
    requested: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requested.append(str(request.url))
        return httpx.Response(status, text=body)

    real_client = httpx.Client
    monkeypatch.setattr(
        calendar_sync_service.httpx,
        "Client",
        lambda **kw: real_client(transport=httpx.MockTransport(handler), **kw),
    )
    return requested


def test_fetch_feed_rejects_html(monkeypatch):
    _mock_http(monkeypatch, "<!DOCTYPE html><html><body>Sign in</body></html>")
    with pytest.raises(calendar_sync_service.CalendarSyncError, match="Received HTML page"):
        calendar_sync_service.fetch_feed("https://example.com/cal.ics")


def test_fetch_feed_maps_http_errors(monkeypatch):
    _mock_http(monkeypatch, "nope", status=404)
    with pytest.raises(calendar_sync_service.CalendarSyncError, match="HTTP 404"):
        calendar_sync_service.fetch_feed("https://example.com/cal.ics")


def test_get_events_caches_and_upserts(monkeypatch, fake_redis, alice):
    requested = _mock_http(monkeypatch, ICS)
    assert calendar_sync_service.get_events(alice.id) == []

    set_calendar_feed(alice.id, "webcal://example.com/cal.ics", True)
    first = calendar_sync_service.get_events(alice.id)
    second = calendar_sync_service.get_events(alice.id)

    assert len(first) == 3
    assert [e.uid for e in second] == [e.uid for e in first]
    assert requested == ["https://example.com/cal.ics"]
    assert fake_redis.ttls[calendar_sync_service.cache_key(alice.id)] == 30 * 60
    assert len(calendar_service.list_external_meetings(alice.id)) == 3

    calendar_sync_service.get_events(alice.id, refresh=True)
    assert len(requested) == 2
    assert len(calendar_service.list_external_meetings(alice.id)) == 3
