"""
Normalized feed event types.

A feed boundary is one of three shapes and the distinction matters for
conflict checks, so it is kept as a tagged variant instead of a loose string:

- ``AllDay``: a calendar date, no time of day.
- ``TimestampAbsolute``: an instant anchored to UTC (``Z`` suffix or a TZID).
- ``TimestampFloating``: a wall-clock date and time with no offset, read as
  local to the property.

Nothing is resolved to an instant until the property's timezone is known.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Union
from zoneinfo import ZoneInfo

from sync_calendars.errors import MalformedEventError

CANCELLED_STATUS = "CANCELLED"


@dataclass(frozen=True)
class AllDay:
    date: date


@dataclass(frozen=True)
class TimestampAbsolute:
    instant: datetime  # aware, UTC


@dataclass(frozen=True)
class TimestampFloating:
    date: date
    time: time


DatePart = Union[AllDay, TimestampAbsolute, TimestampFloating]


def shift(part: DatePart, delta: timedelta) -> DatePart:
    """Move a boundary by a duration, keeping its shape."""
    if isinstance(part, AllDay):
        return AllDay(part.date + timedelta(days=delta.days))
    if isinstance(part, TimestampAbsolute):
        return TimestampAbsolute(part.instant + delta)
    moved = datetime.combine(part.date, part.time) + delta
    return TimestampFloating(moved.date(), moved.time())


def localize(part: DatePart, tz: ZoneInfo) -> tuple[date, Optional[time]]:
    """
    Express a boundary as a property-local (date, time-of-day) pair.

    All-day boundaries have no time of day; the property's check-in or
    check-out default applies later.
    """
    if isinstance(part, AllDay):
        return part.date, None
    if isinstance(part, TimestampAbsolute):
        local = part.instant.astimezone(tz)
        return local.date(), local.time()
    return part.date, part.time


@dataclass(frozen=True)
class StayWindow:
    """
    A property-local stay window ``[start, end)``.

    Times are optional; ``None`` means "use the property default".
    """

    start_date: date
    end_date: date
    start_time: Optional[time] = None
    end_time: Optional[time] = None

    def validate(self) -> "StayWindow":
        """Reject empty or inverted windows."""
        if self.end_date < self.start_date:
            raise MalformedEventError(
                "Stay ends before it starts",
                start_date=self.start_date.isoformat(),
                end_date=self.end_date.isoformat(),
            )
        if self.end_date == self.start_date:
            if self.start_time is None or self.end_time is None or self.end_time <= self.start_time:
                raise MalformedEventError(
                    "Stay has zero length",
                    start_date=self.start_date.isoformat(),
                    end_date=self.end_date.isoformat(),
                )
        return self

    def same_dates(self, other: "StayWindow") -> bool:
        return self.start_date == other.start_date and self.end_date == other.end_date

    def as_dict(self) -> dict[str, Optional[str]]:
        return {
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "start_time": self.start_time.isoformat() if self.start_time else None,
            "end_time": self.end_time.isoformat() if self.end_time else None,
        }


@dataclass(frozen=True)
class FeedEvent:
    uid: Optional[str]
    summary: Optional[str]
    start: DatePart
    end: Optional[DatePart] = None
    status: Optional[str] = None

    @property
    def is_cancelled(self) -> bool:
        return self.status == CANCELLED_STATUS

    def to_window(self, tz: ZoneInfo) -> StayWindow:
        """
        Resolve this event to a property-local window.

        A missing end means a one-night stay: the following day, with the
        check-out time left to the property default.

        Raises:
            MalformedEventError: if the resulting window is empty or inverted
        """
        start_date, start_time = localize(self.start, tz)
        if self.end is None:
            end_date, end_time = start_date + timedelta(days=1), None
        else:
            end_date, end_time = localize(self.end, tz)
        try:
            return StayWindow(start_date, end_date, start_time, end_time).validate()
        except MalformedEventError as exc:
            exc.context["uid"] = self.uid
            raise

    def as_payload(self) -> dict[str, Optional[str]]:
        """JSON-safe snapshot used for inbox entries."""
        return {
            "uid": self.uid,
            "summary": self.summary,
            "status": self.status,
            "start": _describe(self.start),
            "end": _describe(self.end) if self.end is not None else None,
        }


def _describe(part: DatePart) -> str:
    if isinstance(part, AllDay):
        return part.date.isoformat()
    if isinstance(part, TimestampAbsolute):
        return part.instant.astimezone(timezone.utc).isoformat()
    return datetime.combine(part.date, part.time).isoformat()


@dataclass
class ParsedFeed:
    events: list[FeedEvent] = field(default_factory=list)
    malformed: int = 0
