"""Guest self-submission: placeholder (soft hold) creation and cancellation."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Optional

import structlog
from sqlalchemy.engine import Connection, Engine

from sync_calendars.config import HOLD_TTL_HOURS
from sync_calendars.db.readers.properties import lock_property
from sync_calendars.db.readers.reservations import find_confirmed_for_stay, get_reservation
from sync_calendars.db.writers.contacts import fill_empty_contact
from sync_calendars.db.writers.events import emit_event
from sync_calendars.db.writers.reservations import insert_reservation
from sync_calendars.errors import NotFoundError, ValidationError
from sync_calendars.metrics import hold_transitions
from sync_calendars.models.enums import HoldStatus, Provenance, ReservationStatus
from sync_calendars.normalizers.events import StayWindow
from sync_calendars.services.conflict_guard import assert_room_available
from sync_calendars.services.holds import cancel_hold
from sync_calendars.services.merge import is_locked, merge_placeholder
from sync_calendars.services.reservations import resolve_room_scope, validate_window

logger = structlog.get_logger(__name__)


@dataclass
class PlaceholderResult:
    reservation_id: int
    hold_status: str
    hold_expires_at: datetime
    merged_into: Optional[int] = None

    def as_dict(self) -> dict[str, Any]:
        return {
            "reservation_id": self.reservation_id,
            "hold_status": self.hold_status,
            "hold_expires_at": self.hold_expires_at.isoformat(),
            "merged_into": self.merged_into,
        }


def _existing_stay(
    conn: Connection,
    property_id: int,
    window: StayWindow,
    room_id: Optional[int],
    room_category_id: Optional[int],
) -> Optional[Any]:
    """
    The single unlocked confirmed reservation this submission describes, if any.

    A guest filling in the form for a booking that already exists (entered by
    staff or pulled from a channel) should enrich that booking, not collide with it.
    """
    matches = [
        row
        for row in find_confirmed_for_stay(conn, property_id, window.start_date, window.end_date)
        if not is_locked(row)
        and (
            row.room_id == room_id
            if room_id is not None
            else row.category_id is not None and row.category_id == room_category_id
        )
    ]
    return matches[0] if len(matches) == 1 else None


def create_placeholder(
    engine: Engine,
    property_id: int,
    window: StayWindow,
    now: datetime,
    room_id: Optional[int] = None,
    room_category_id: Optional[int] = None,
    guest_first_name: Optional[str] = None,
    guest_last_name: Optional[str] = None,
    contact: Optional[dict[str, Any]] = None,
    hold_hours: Optional[int] = None,
) -> PlaceholderResult:
    """
    Record a guest's stay request as a pending soft hold.

    The hold occupies capacity until it is promoted, expires or is cancelled,
    so it passes the conflict guard like any reservation. When the submission
    matches exactly one existing confirmed reservation, the placeholder is
    merged into it straight away.

    Raises:
        ValidationError, ConflictError, ConfigurationError
    """
    validate_window(window)
    expires_at = now + timedelta(hours=hold_hours if hold_hours is not None else HOLD_TTL_HOURS)

    with engine.begin() as conn:
        settings = lock_property(conn, property_id)
        room_id, room_category_id = resolve_room_scope(conn, property_id, room_id, room_category_id)

        target = _existing_stay(conn, property_id, window, room_id, room_category_id)
        assert_room_available(
            conn,
            settings,
            room_id,
            window,
            exclude_reservation_id=target.id if target is not None else None,
            source=Provenance.GUEST_FORM.value,
            room_category_id=room_category_id,
        )

        placeholder_id = insert_reservation(
            conn,
            {
                "property_id": property_id,
                "room_id": room_id,
                "room_category_id": room_category_id,
                "start_date": window.start_date,
                "end_date": window.end_date,
                "start_time": window.start_time,
                "end_time": window.end_time,
                "status": ReservationStatus.CONFIRMED.value,
                "provenance": Provenance.GUEST_FORM.value,
                "is_soft_hold": True,
                "hold_status": HoldStatus.PENDING.value,
                "hold_expires_at": expires_at,
                "guest_first_name": guest_first_name,
                "guest_last_name": guest_last_name,
                "form_submitted_at": now,
            },
        )
        fill_empty_contact(conn, placeholder_id, contact)
        hold_transitions.labels(transition="created").inc()
        emit_event(
            conn,
            "hold.created",
            property_id,
            placeholder_id,
            expires_at=expires_at.isoformat(),
            **window.as_dict(),
        )

        if target is None:
            return PlaceholderResult(placeholder_id, HoldStatus.PENDING.value, expires_at)

        merge_placeholder(conn, get_reservation(conn, placeholder_id), target, now)
        return PlaceholderResult(
            placeholder_id, HoldStatus.CANCELLED.value, expires_at, merged_into=target.id
        )


def cancel_placeholder(engine: Engine, reservation_id: int, now: datetime) -> None:
    """
    Cancel a guest hold on operator or guest request.

    Raises:
        NotFoundError: unknown reservation
        ValidationError: the reservation is not a hold
        InvalidTransitionError: the hold already expired or was cancelled
    """
    with engine.begin() as conn:
        row = get_reservation(conn, reservation_id)
        if row is None:
            raise NotFoundError("Reservation not found", reservation_id=reservation_id)
        lock_property(conn, row.property_id)
        row = get_reservation(conn, reservation_id)
        if row.hold_status is None:
            raise ValidationError("Reservation is not a placeholder", reservation_id=reservation_id)
        cancel_hold(conn, row, now, reason="requested")
