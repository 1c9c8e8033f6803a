"""
Parse an iCalendar document into normalized feed events.

``icalendar`` handles line unfolding and value decoding. This module maps each
VEVENT's boundaries onto the DatePart variants and isolates bad events: one
malformed VEVENT is skipped and counted, it never fails the batch. A document
that is not a calendar at all raises ``FeedParseError`` so that callers can
never mistake a broken feed for an empty one.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Any, Optional, Union

import structlog
from icalendar import Calendar

from sync_calendars.errors import FeedParseError, MalformedEventError
from sync_calendars.normalizers.events import (
    AllDay,
    DatePart,
    FeedEvent,
    ParsedFeed,
    TimestampAbsolute,
    TimestampFloating,
    shift,
)

logger = structlog.get_logger(__name__)


def parse_feed(document: Union[str, bytes]) -> ParsedFeed:
    """
    Parse a feed document.

    Args:
        document: Raw iCalendar text as fetched

    Returns:
        ParsedFeed: usable events plus the number of malformed ones skipped

    Raises:
        FeedParseError: if the document is not a parsable VCALENDAR
    """
    try:
        calendar = Calendar.from_ical(document)
    except Exception as exc:
        raise FeedParseError("Feed document is not a valid calendar", error=str(exc)) from exc

    if getattr(calendar, "name", None) != "VCALENDAR":
        raise FeedParseError(
            "Feed document is not a VCALENDAR", component=getattr(calendar, "name", None)
        )

    parsed = ParsedFeed()
    for component in calendar.walk("VEVENT"):
        try:
            parsed.events.append(parse_event(component))
        except MalformedEventError as exc:
            parsed.malformed += 1
            logger.warning("feed_event_malformed", reason=exc.message, **exc.context)

    return parsed


def parse_event(component: Any) -> FeedEvent:
    """
    Build a FeedEvent from one VEVENT component.

    Raises:
        MalformedEventError: if DTSTART is missing or unreadable, or DTEND is unreadable
    """
    uid = _text(component.get("UID"))
    summary = _text(component.get("SUMMARY"))
    status = _text(component.get("STATUS"))

    start = _date_part(component.get("DTSTART"), "DTSTART", uid)

    end: Optional[DatePart] = None
    if component.get("DTEND") is not None:
        end = _date_part(component.get("DTEND"), "DTEND", uid)
    else:
        duration = getattr(component.get("DURATION"), "dt", None)
        if isinstance(duration, timedelta):
            end = shift(start, duration)

    return FeedEvent(
        uid=uid,
        summary=summary,
        start=start,
        end=end,
        status=status.upper() if status else None,
    )


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _date_part(prop: Any, name: str, uid: Optional[str]) -> DatePart:
    if prop is None:
        raise MalformedEventError(f"{name} missing", uid=uid)

    value = getattr(prop, "dt", None)
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return TimestampFloating(value.date(), value.time())
        return TimestampAbsolute(value.astimezone(timezone.utc))
    if isinstance(value, date):
        return AllDay(value)

    raise MalformedEventError(f"{name} is not a date or date-time", uid=uid)
