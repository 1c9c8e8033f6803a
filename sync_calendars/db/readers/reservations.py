"""
Read-side queries over reservations.

"Live" means the reservation still occupies capacity: not cancelled, and not a
soft hold that has expired or been cancelled.
"""

from datetime import date
from typing import Any, Optional

from sqlalchemy import and_, func, or_, select
from sqlalchemy.engine import Connection
from sqlalchemy.sql.elements import ColumnElement

from sync_calendars.models.enums import HoldStatus, ReservationStatus
from sync_calendars.models.properties import Room
from sync_calendars.models.reservations import Reservation

LIVE_HOLD_STATUSES = (HoldStatus.PENDING.value, HoldStatus.PROMOTED.value)


def live_clause() -> ColumnElement[bool]:
    return and_(
        Reservation.status != ReservationStatus.CANCELLED.value,
        or_(Reservation.hold_status.is_(None), Reservation.hold_status.in_(LIVE_HOLD_STATUSES)),
    )


def is_live(row: Any) -> bool:
    """Python-side twin of ``live_clause`` for rows already loaded."""
    if row.status == ReservationStatus.CANCELLED.value:
        return False
    return row.hold_status is None or row.hold_status in LIVE_HOLD_STATUSES


def is_placeholder(row: Any) -> bool:
    """A still-provisional guest hold."""
    return bool(row.is_soft_hold) and row.hold_status == HoldStatus.PENDING.value


def _with_category():  # type: ignore[no-untyped-def]
    """Reservation columns plus the effective category (own, or the room's)."""
    table = Reservation.__table__
    rooms = Room.__table__
    category = func.coalesce(table.c.room_category_id, rooms.c.room_category_id).label(
        "category_id"
    )
    return (
        select(*table.c, category).select_from(
            table.outerjoin(rooms, rooms.c.id == table.c.room_id)
        ),
        category,
    )


def get_reservation(conn: Connection, reservation_id: int) -> Optional[Any]:
    """Return one reservation row, including ``category_id``, or None."""
    query, _ = _with_category()
    return conn.execute(query.where(Reservation.__table__.c.id == reservation_id)).fetchone()


def find_room_overlap_candidates(
    conn: Connection,
    room_id: int,
    start_date: date,
    end_date: date,
    exclude_reservation_id: Optional[int] = None,
) -> list[Any]:
    """
    Live reservations on a room whose dates touch ``[start_date, end_date]``.

    The range is inclusive on both ends because same-day turnovers are only
    decided once times of day are applied.
    """
    query = select(Reservation).where(
        Reservation.room_id == room_id,
        live_clause(),
        Reservation.start_date <= end_date,
        Reservation.end_date >= start_date,
    )
    if exclude_reservation_id is not None:
        query = query.where(Reservation.id != exclude_reservation_id)
    return list(conn.execute(query.order_by(Reservation.id)).fetchall())


def find_unplaced_overlap_candidates(
    conn: Connection,
    room_category_id: int,
    start_date: date,
    end_date: date,
    exclude_reservation_id: Optional[int] = None,
) -> list[Any]:
    """Live room-less reservations of a category whose dates touch ``[start_date, end_date]``."""
    query = select(Reservation).where(
        Reservation.room_id.is_(None),
        Reservation.room_category_id == room_category_id,
        live_clause(),
        Reservation.start_date <= end_date,
        Reservation.end_date >= start_date,
    )
    if exclude_reservation_id is not None:
        query = query.where(Reservation.id != exclude_reservation_id)
    return list(conn.execute(query.order_by(Reservation.id)).fetchall())


def find_exact_date_candidates(
    conn: Connection,
    property_id: int,
    start_date: date,
    end_date: date,
    uid: Optional[str] = None,
) -> list[Any]:
    """
    Live reservations on the property with exactly this ``(start, end)`` pair.

    Reservations already linked to a different channel UID are another
    channel's stay and never candidates.
    """
    query, _ = _with_category()
    table = Reservation.__table__
    unclaimed = table.c.external_uid.is_(None)
    if uid is not None:
        unclaimed = or_(unclaimed, table.c.external_uid == uid)
    query = query.where(
        table.c.property_id == property_id,
        table.c.start_date == start_date,
        table.c.end_date == end_date,
        table.c.status != ReservationStatus.CANCELLED.value,
        or_(table.c.hold_status.is_(None), table.c.hold_status.in_(LIVE_HOLD_STATUSES)),
        unclaimed,
    )
    return list(conn.execute(query.order_by(table.c.id)).fetchall())


def find_placeholders_for_stay(
    conn: Connection,
    property_id: int,
    start_date: date,
    end_date: date,
    exclude_reservation_id: int,
) -> list[Any]:
    """Pending placeholders with exactly these dates, including ``category_id``."""
    query, _ = _with_category()
    table = Reservation.__table__
    query = query.where(
        table.c.property_id == property_id,
        table.c.start_date == start_date,
        table.c.end_date == end_date,
        table.c.id != exclude_reservation_id,
        table.c.status != ReservationStatus.CANCELLED.value,
        table.c.is_soft_hold.is_(True),
        table.c.hold_status == HoldStatus.PENDING.value,
    )
    return list(conn.execute(query.order_by(table.c.id)).fetchall())


def list_live_for_room(conn: Connection, room_id: int) -> list[Any]:
    return list(
        conn.execute(
            select(Reservation)
            .where(Reservation.room_id == room_id, live_clause())
            .order_by(Reservation.start_date, Reservation.id)
        ).fetchall()
    )


def list_live_for_category(conn: Connection, category_id: int) -> list[Any]:
    """Live reservations on any room of the category, or held at category level."""
    query, category = _with_category()
    table = Reservation.__table__
    query = query.where(
        category == category_id,
        table.c.status != ReservationStatus.CANCELLED.value,
        or_(table.c.hold_status.is_(None), table.c.hold_status.in_(LIVE_HOLD_STATUSES)),
    )
    return list(conn.execute(query.order_by(table.c.start_date, table.c.id)).fetchall())


def find_confirmed_for_stay(
    conn: Connection, property_id: int, start_date: date, end_date: date
) -> list[Any]:
    """Live non-placeholder reservations with exactly these dates, including ``category_id``."""
    query, _ = _with_category()
    table = Reservation.__table__
    query = query.where(
        table.c.property_id == property_id,
        table.c.start_date == start_date,
        table.c.end_date == end_date,
        table.c.status != ReservationStatus.CANCELLED.value,
        or_(table.c.hold_status.is_(None), table.c.hold_status == HoldStatus.PROMOTED.value),
    )
    return list(conn.execute(query.order_by(table.c.id)).fetchall())
