"""
Error taxonomy for the reconciliation engine.

Every error carries a ``context`` dict (property, room, dates, uid, ...) so that
an operator reading the logs or an API response has enough detail to resolve
the situation manually.
"""

from __future__ import annotations

from typing import Any


class CalendarSyncError(Exception):
    """Base class for all reconciliation errors."""

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> dict[str, Any]:
        return {"error": type(self).__name__, "message": self.message, **self.context}


class FeedFetchError(CalendarSyncError):
    """Feed unreachable, timed out or answered with an error status. Retried next cycle."""


class FeedParseError(CalendarSyncError):
    """The whole feed document could not be parsed as a calendar."""


class MalformedEventError(CalendarSyncError):
    """A single feed event is unusable. It is skipped and counted."""


class ConflictError(CalendarSyncError):
    """A write would overlap another live reservation on the same room, or overfill its category."""

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message, **context)
        self.room_id = context.get("room_id")
        self.conflicting_reservation_id = context.get("conflicting_reservation_id")


class ConfigurationError(CalendarSyncError):
    """Property timezone or check-in/check-out defaults are missing or invalid."""


class InvalidTransitionError(CalendarSyncError):
    """A soft-hold state change that the lifecycle does not allow."""


class MergeRefusedError(CalendarSyncError):
    """The Merge Operator declined to merge a placeholder into a reservation."""

    def __init__(self, message: str, reason: str, **context: Any) -> None:
        super().__init__(message, reason=reason, **context)
        self.reason = reason


class NotFoundError(CalendarSyncError):
    pass


class ValidationError(CalendarSyncError):
    pass
