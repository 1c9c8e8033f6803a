"""
Unit tests for iCalendar feed parsing.
"""

from __future__ import annotations

from datetime import date, datetime, time, timezone

import pytest

from sync_calendars.errors import FeedParseError
from sync_calendars.normalizers.events import AllDay, TimestampAbsolute, TimestampFloating
from sync_calendars.normalizers.ical import parse_feed


def _calendar(*events: str) -> str:
    body = "".join(events)
    return (
        "BEGIN:VCALENDAR\r\n"
        "VERSION:2.0\r\n"
        "PRODID:-//Channel//Export//EN\r\n"
        f"{body}"
        "END:VCALENDAR\r\n"
    )


def _event(*lines: str) -> str:
    return "BEGIN:VEVENT\r\n" + "".join(f"{line}\r\n" for line in lines) + "END:VEVENT\r\n"


@pytest.mark.unit
def test_parse_all_day_event() -> None:
    """Test that VALUE=DATE boundaries become AllDay parts."""
    parsed = parse_feed(
        _calendar(
            _event(
                "UID:abc123@booking.com",
                "SUMMARY:CLOSED - Not available",
                "DTSTART;VALUE=DATE:20250410",
                "DTEND;VALUE=DATE:20250413",
            )
        )
    )

    assert parsed.malformed == 0
    assert len(parsed.events) == 1
    event = parsed.events[0]
    assert event.uid == "abc123@booking.com"
    assert event.summary == "CLOSED - Not available"
    assert event.start == AllDay(date(2025, 4, 10))
    assert event.end == AllDay(date(2025, 4, 13))
    assert event.is_cancelled is False


@pytest.mark.unit
def test_parse_utc_and_tzid_timestamps_as_absolute() -> None:
    """Test that Z-suffixed and TZID timestamps are anchored to UTC."""
    parsed = parse_feed(
        _calendar(
            _event("UID:utc-1", "DTSTART:20250410T120000Z", "DTEND:20250413T090000Z"),
            _event(
                "UID:tz-1",
                "DTSTART;TZID=Europe/Bucharest:20250410T150000",
                "DTEND;TZID=Europe/Bucharest:20250413T110000",
            ),
        )
    )

    utc_event, tz_event = parsed.events
    assert utc_event.start == TimestampAbsolute(datetime(2025, 4, 10, 12, 0, tzinfo=timezone.utc))
    # Bucharest is UTC+3 in April
    assert tz_event.start == TimestampAbsolute(datetime(2025, 4, 10, 12, 0, tzinfo=timezone.utc))
    assert tz_event.end == TimestampAbsolute(datetime(2025, 4, 13, 8, 0, tzinfo=timezone.utc))


@pytest.mark.unit
def test_parse_floating_timestamp() -> None:
    """Test that timestamps without an offset stay floating."""
    parsed = parse_feed(
        _calendar(_event("UID:float-1", "DTSTART:20250410T140000", "DTEND:20250412T110000"))
    )

    assert parsed.events[0].start == TimestampFloating(date(2025, 4, 10), time(14, 0))
    assert parsed.events[0].end == TimestampFloating(date(2025, 4, 12), time(11, 0))


@pytest.mark.unit
def test_parse_missing_dtend_leaves_end_open() -> None:
    """Test that an event without DTEND or DURATION has no end."""
    parsed = parse_feed(_calendar(_event("UID:open-1", "DTSTART;VALUE=DATE:20250410")))

    assert parsed.events[0].end is None


@pytest.mark.unit
def test_parse_duration_is_applied_to_start() -> None:
    """Test that DURATION is turned into an end boundary of the same shape."""
    parsed = parse_feed(
        _calendar(_event("UID:dur-1", "DTSTART;VALUE=DATE:20250410", "DURATION:P3D"))
    )

    assert parsed.events[0].end == AllDay(date(2025, 4, 13))


@pytest.mark.unit
def test_parse_cancelled_status() -> None:
    """Test that STATUS:CANCELLED marks the event as cancelled."""
    parsed = parse_feed(
        _calendar(
            _event(
                "UID:cx-1",
                "STATUS:cancelled",
                "DTSTART;VALUE=DATE:20250410",
                "DTEND;VALUE=DATE:20250411",
            )
        )
    )

    assert parsed.events[0].status == "CANCELLED"
    assert parsed.events[0].is_cancelled is True


@pytest.mark.unit
def test_parse_skips_event_without_dtstart() -> None:
    """Test that one malformed event is counted and the rest of the batch survives."""
    parsed = parse_feed(
        _calendar(
            _event("UID:broken", "SUMMARY:No start"),
            _event("UID:ok", "DTSTART;VALUE=DATE:20250410", "DTEND;VALUE=DATE:20250411"),
        )
    )

    assert parsed.malformed == 1
    assert [event.uid for event in parsed.events] == ["ok"]


@pytest.mark.unit
def test_parse_event_without_uid_is_kept() -> None:
    """Test that a missing UID is not malformed; the event simply has no identity."""
    parsed = parse_feed(
        _calendar(_event("DTSTART;VALUE=DATE:20250410", "DTEND;VALUE=DATE:20250411"))
    )

    assert parsed.malformed == 0
    assert parsed.events[0].uid is None


@pytest.mark.unit
def test_parse_empty_calendar_returns_no_events() -> None:
    """Test that a valid calendar without events is an empty feed, not an error."""
    parsed = parse_feed(_calendar())

    assert parsed.events == []
    assert parsed.malformed == 0


@pytest.mark.unit
def test_parse_garbage_raises_feed_parse_error() -> None:
    """Test that a document that is not iCalendar at all raises FeedParseError."""
    with pytest.raises(FeedParseError):
        parse_feed("<html><body>Service unavailable</body></html>")


@pytest.mark.unit
def test_parse_non_calendar_component_raises() -> None:
    """Test that a bare VEVENT document is rejected instead of read as empty."""
    with pytest.raises(FeedParseError):
        parse_feed(_event("UID:x", "DTSTART;VALUE=DATE:20250410"))
