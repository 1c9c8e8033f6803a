import json
from typing import Any

import structlog
from sqlalchemy import insert, update
from sqlalchemy.engine import Connection

from sync_calendars.config import DEBUG
from sync_calendars.models.reservations import Reservation
from sync_calendars.utils.datetime import utc_now

logger = structlog.get_logger(__name__)


def insert_reservation(conn: Connection, values: dict[str, Any]) -> int:
    """
    Insert one reservation row.

    Callers run the conflict guard first; this function only writes.

    Args:
        conn (Connection): Active connection inside the property lock.
        values (dict[str, Any]): Column values.

    Returns:
        int: The new reservation id.
    """
    now = utc_now()
    row = {"created_at": now, "updated_at": now, **values}

    if DEBUG:
        logger.debug("Reservation to insert:\n%s", json.dumps(row, indent=2, default=str))

    result = conn.execute(insert(Reservation).values(row))
    reservation_id = int(result.inserted_primary_key[0])
    logger.info(
        "reservation_inserted",
        reservation_id=reservation_id,
        property_id=row.get("property_id"),
        room_id=row.get("room_id"),
        start_date=str(row.get("start_date")),
        end_date=str(row.get("end_date")),
        provenance=row.get("provenance"),
    )
    return reservation_id


def update_reservation(conn: Connection, reservation_id: int, values: dict[str, Any]) -> None:
    """
    Update columns of one reservation and bump updated_at.

    Args:
        conn (Connection): Active connection inside the property lock.
        reservation_id (int): Reservation to change.
        values (dict[str, Any]): Columns to set; empty means no-op.
    """
    if not values:
        return
    conn.execute(
        update(Reservation)
        .where(Reservation.id == reservation_id)
        .values(**values, updated_at=utc_now())
    )
