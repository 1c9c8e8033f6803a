"""Staff-facing reservation operations: create, move, cancel."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

import structlog
from sqlalchemy.engine import Connection, Engine

from sync_calendars.db.readers.properties import lock_property
from sync_calendars.db.readers.reservations import get_reservation, is_live
from sync_calendars.db.readers.rooms import get_category, get_room
from sync_calendars.db.writers.contacts import fill_empty_contact
from sync_calendars.db.writers.events import emit_event
from sync_calendars.db.writers.reservations import insert_reservation, update_reservation
from sync_calendars.errors import MalformedEventError, NotFoundError, ValidationError
from sync_calendars.models.enums import HoldStatus, Provenance, ReservationStatus
from sync_calendars.normalizers.events import StayWindow
from sync_calendars.services.conflict_guard import assert_room_available, window_of
from sync_calendars.services.holds import cancel_hold
from sync_calendars.services.merge import MergeResult, reconcile_placeholders

logger = structlog.get_logger(__name__)


def validate_window(window: StayWindow) -> StayWindow:
    """
    Raises:
        ValidationError: if the window is empty or inverted
    """
    try:
        return window.validate()
    except MalformedEventError as exc:
        raise ValidationError(exc.message, **exc.context) from exc


def resolve_room_scope(
    conn: Connection,
    property_id: int,
    room_id: Optional[int],
    room_category_id: Optional[int],
) -> tuple[Optional[int], Optional[int]]:
    """
    Check a room/category pair against the registry.

    Returns:
        tuple: (room_id, room_category_id) with the category filled in from the room

    Raises:
        ValidationError: unknown room/category, wrong property, or mismatched pair
    """
    if room_id is not None:
        room = get_room(conn, room_id)
        if room is None or room.property_id != property_id:
            raise ValidationError("Room does not belong to property", room_id=room_id, property_id=property_id)
        if room_category_id is not None and room.room_category_id != room_category_id:
            raise ValidationError(
                "Room is not in the requested category",
                room_id=room_id,
                room_category_id=room_category_id,
            )
        return room_id, room.room_category_id

    if room_category_id is not None:
        category = get_category(conn, room_category_id)
        if category is None or category.property_id != property_id:
            raise ValidationError(
                "Category does not belong to property",
                room_category_id=room_category_id,
                property_id=property_id,
            )
        return None, room_category_id

    raise ValidationError("A room or a room category is required", property_id=property_id)


def retire_reservation(conn: Connection, row: Any, now: datetime, reason: str) -> None:
    """Cancel a live reservation; holds go through the hold lifecycle."""
    if row.hold_status in (HoldStatus.PENDING.value, HoldStatus.PROMOTED.value):
        cancel_hold(conn, row, now, reason=reason)
    else:
        update_reservation(conn, row.id, {"status": ReservationStatus.CANCELLED.value})
    emit_event(conn, "reservation.cancelled", row.property_id, row.id, reason=reason)
    logger.info("reservation_cancelled", reservation_id=row.id, reason=reason)


def _load(conn: Connection, reservation_id: int) -> Any:
    row = get_reservation(conn, reservation_id)
    if row is None:
        raise NotFoundError("Reservation not found", reservation_id=reservation_id)
    return row


def create_reservation(
    engine: Engine,
    property_id: int,
    window: StayWindow,
    now: datetime,
    room_id: Optional[int] = None,
    room_category_id: Optional[int] = None,
    guest_first_name: Optional[str] = None,
    guest_last_name: Optional[str] = None,
    contact: Optional[dict[str, Any]] = None,
    ota_reservation_id: Optional[str] = None,
) -> tuple[int, MergeResult]:
    """
    Create a confirmed manual reservation.

    After the insert, a pending placeholder for the same stay (if exactly one)
    is merged into the new reservation.

    Returns:
        tuple[int, MergeResult]: new reservation id and the reconcile outcome

    Raises:
        ValidationError: bad window or room/category
        ConflictError: the room is taken, or a room-less stay finds its category full
        ConfigurationError: property configuration incomplete
    """
    validate_window(window)
    with engine.begin() as conn:
        settings = lock_property(conn, property_id)
        room_id, room_category_id = resolve_room_scope(conn, property_id, room_id, room_category_id)
        assert_room_available(
            conn,
            settings,
            room_id,
            window,
            source=Provenance.MANUAL.value,
            room_category_id=room_category_id,
        )

        reservation_id = insert_reservation(
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
                "provenance": Provenance.MANUAL.value,
                "is_soft_hold": False,
                "guest_first_name": guest_first_name,
                "guest_last_name": guest_last_name,
                "ota_reservation_id": ota_reservation_id,
            },
        )
        fill_empty_contact(conn, reservation_id, contact)
        emit_event(conn, "reservation.created", property_id, reservation_id, provenance="manual")

        merge = reconcile_placeholders(conn, settings, _load(conn, reservation_id), now)

    return reservation_id, merge


def update_reservation_stay(
    engine: Engine,
    reservation_id: int,
    now: datetime,
    window: Optional[StayWindow] = None,
    room_id: Optional[int] = None,
) -> None:
    """
    Move a reservation to new dates/times and/or another room.

    Raises:
        NotFoundError, ValidationError, ConflictError, ConfigurationError
    """
    with engine.begin() as conn:
        row = _load(conn, reservation_id)
        settings = lock_property(conn, row.property_id)
        row = _load(conn, reservation_id)
        if not is_live(row):
            raise ValidationError("Reservation is not live", reservation_id=reservation_id)

        new_window = validate_window(window) if window is not None else window_of(row)
        new_room_id, new_category_id = row.room_id, row.room_category_id
        if room_id is not None and room_id != row.room_id:
            new_room_id, new_category_id = resolve_room_scope(conn, row.property_id, room_id, None)

        if new_window == window_of(row) and new_room_id == row.room_id:
            return

        assert_room_available(
            conn,
            settings,
            new_room_id,
            new_window,
            exclude_reservation_id=row.id,
            source=row.provenance,
            room_category_id=new_category_id,
        )
        update_reservation(
            conn,
            row.id,
            {
                "room_id": new_room_id,
                "room_category_id": new_category_id,
                "start_date": new_window.start_date,
                "end_date": new_window.end_date,
                "start_time": new_window.start_time,
                "end_time": new_window.end_time,
            },
        )
        emit_event(
            conn, "reservation.updated", row.property_id, row.id, room_id=new_room_id, **new_window.as_dict()
        )
        logger.info("reservation_updated", reservation_id=row.id, room_id=new_room_id)


def cancel_reservation(engine: Engine, reservation_id: int, now: datetime) -> bool:
    """
    Cancel a reservation. Cancelling an already-retired reservation is a no-op.

    Returns:
        bool: True if this call cancelled it
    """
    with engine.begin() as conn:
        row = _load(conn, reservation_id)
        lock_property(conn, row.property_id)
        row = _load(conn, reservation_id)
        if not is_live(row):
            return False
        retire_reservation(conn, row, now, reason="operator")
        return True
