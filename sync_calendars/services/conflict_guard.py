"""
Conflict guard: no two live reservations may overlap on the same room.

Every path that creates a reservation or changes its room or dates calls
``assert_room_available`` inside the property lock, immediately before writing.
Windows are compared as absolute instants: the property's timezone turns local
dates and times into UTC, and its check-in/check-out defaults fill missing
times. Intervals are half-open, so an 11:00 check-out and an 11:00 check-in on
the same room do not collide.

A stay that has a category but no room yet still consumes one room of that
category, so room-less stays and category auto-allocation are checked against
the category's remaining capacity.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

import structlog
from sqlalchemy.engine import Connection

from sync_calendars.db.readers.properties import PropertySettings
from sync_calendars.db.readers.reservations import (
    find_room_overlap_candidates,
    find_unplaced_overlap_candidates,
)
from sync_calendars.db.readers.rooms import list_rooms_in_category
from sync_calendars.errors import ConflictError
from sync_calendars.metrics import conflicts_rejected
from sync_calendars.normalizers.events import StayWindow

logger = structlog.get_logger(__name__)


def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """Half-open interval overlap: ``[a_start, a_end)`` and ``[b_start, b_end)``."""
    return a_start < b_end and b_start < a_end


def resolve_window(window: StayWindow, settings: PropertySettings) -> tuple[datetime, datetime]:
    """
    Turn a property-local window into UTC instants.

    Raises:
        ConfigurationError: if the property lacks a timezone or default times
    """
    zone = settings.require_complete()
    check_in = window.start_time or settings.check_in_time
    check_out = window.end_time or settings.check_out_time
    start = datetime.combine(window.start_date, check_in, tzinfo=zone)  # type: ignore[arg-type]
    end = datetime.combine(window.end_date, check_out, tzinfo=zone)  # type: ignore[arg-type]
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def window_of(row: Any) -> StayWindow:
    return StayWindow(row.start_date, row.end_date, row.start_time, row.end_time)


def find_conflict(
    conn: Connection,
    settings: PropertySettings,
    room_id: int,
    window: StayWindow,
    exclude_reservation_id: Optional[int] = None,
) -> Optional[Any]:
    """Return the first live reservation on the room overlapping the window, or None."""
    start, end = resolve_window(window, settings)
    for other in find_room_overlap_candidates(
        conn, room_id, window.start_date, window.end_date, exclude_reservation_id
    ):
        other_start, other_end = resolve_window(window_of(other), settings)
        if overlaps(start, end, other_start, other_end):
            return other
    return None


def assert_room_available(
    conn: Connection,
    settings: PropertySettings,
    room_id: Optional[int],
    window: StayWindow,
    exclude_reservation_id: Optional[int] = None,
    source: str = "manual",
    room_category_id: Optional[int] = None,
) -> None:
    """
    Reject a write that would overlap a live reservation on ``room_id``.

    A stay without a room is checked against its category instead: it needs
    one room that is free for the whole window and not already spoken for by
    another room-less stay. A stay with neither room nor category passes.

    Args:
        conn: Connection holding the property lock
        settings: Property configuration (timezone and default times)
        room_id: Target room, or None
        window: Proposed stay
        exclude_reservation_id: The reservation being edited, if any
        source: Provenance label for metrics
        room_category_id: Category of a room-less stay

    Raises:
        ConflictError: if an overlapping live reservation exists, or the
            category has no room left for a room-less stay
        ConfigurationError: if the property configuration is incomplete
    """
    if room_id is None:
        if room_category_id is not None:
            _assert_category_available(
                conn, settings, room_category_id, window, exclude_reservation_id, source
            )
        return

    other = find_conflict(conn, settings, room_id, window, exclude_reservation_id)
    if other is not None:
        _reject(
            "Room is already occupied for part of this stay",
            settings,
            window,
            source,
            room_id=room_id,
            conflicting_reservation_id=other.id,
        )


def category_capacity(
    conn: Connection,
    settings: PropertySettings,
    room_category_id: int,
    window: StayWindow,
    exclude_reservation_id: Optional[int] = None,
) -> tuple[list[int], list[Any]]:
    """
    Rooms of the category free for the window, and the room-less stays claiming them.

    Returns:
        ``(free_room_ids, unplaced)``: free rooms in id order, and the live
        room-less reservations of the category overlapping the window
    """
    free = [
        room.id
        for room in list_rooms_in_category(conn, room_category_id)
        if find_conflict(conn, settings, room.id, window, exclude_reservation_id) is None
    ]
    start, end = resolve_window(window, settings)
    unplaced = []
    for other in find_unplaced_overlap_candidates(
        conn, room_category_id, window.start_date, window.end_date, exclude_reservation_id
    ):
        other_start, other_end = resolve_window(window_of(other), settings)
        if overlaps(start, end, other_start, other_end):
            unplaced.append(other)
    return free, unplaced


def first_free_room(
    conn: Connection,
    settings: PropertySettings,
    room_category_id: int,
    window: StayWindow,
    exclude_reservation_id: Optional[int] = None,
) -> Optional[int]:
    """
    Return the lowest-id room of the category that can take the window, or None.

    Room-less stays overlapping the window each hold back one free room.
    """
    free, unplaced = category_capacity(
        conn, settings, room_category_id, window, exclude_reservation_id
    )
    if len(free) > len(unplaced):
        return free[0]
    return None


def _assert_category_available(
    conn: Connection,
    settings: PropertySettings,
    room_category_id: int,
    window: StayWindow,
    exclude_reservation_id: Optional[int],
    source: str,
) -> None:
    free, unplaced = category_capacity(
        conn, settings, room_category_id, window, exclude_reservation_id
    )
    if len(free) > len(unplaced):
        return
    _reject(
        "No room left in this category for part of this stay",
        settings,
        window,
        source,
        room_id=None,
        room_category_id=room_category_id,
        conflicting_reservation_id=unplaced[0].id if unplaced else None,
    )


def _reject(
    message: str, settings: PropertySettings, window: StayWindow, source: str, **context: Any
) -> None:
    conflicts_rejected.labels(source=source).inc()
    logger.warning(
        "conflict_rejected",
        property_id=settings.id,
        start_date=window.start_date.isoformat(),
        end_date=window.end_date.isoformat(),
        source=source,
        **context,
    )
    raise ConflictError(
        message,
        property_id=settings.id,
        start_date=window.start_date.isoformat(),
        end_date=window.end_date.isoformat(),
        **context,
    )
