from typing import Any, Optional

from sqlalchemy import insert, update
from sqlalchemy.engine import Connection

from sync_calendars.db.readers.contacts import CONTACT_FIELDS, get_contact
from sync_calendars.models.contacts import ReservationContact, ReservationDocument
from sync_calendars.utils.datetime import utc_now


def is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def fill_empty_contact(
    conn: Connection, reservation_id: int, source: Optional[dict[str, Any]]
) -> list[str]:
    """
    Copy contact fields onto a reservation where its own field is empty.

    Populated fields are never overwritten.

    Args:
        conn (Connection): Active connection.
        reservation_id (int): Target reservation.
        source (Optional[dict]): Contact values to copy from.

    Returns:
        list[str]: Names of the fields that were written.
    """
    if not source:
        return []

    current = get_contact(conn, reservation_id)
    if current is None:
        values = {f: source.get(f) for f in CONTACT_FIELDS if not is_blank(source.get(f))}
        if not values:
            return []
        conn.execute(
            insert(ReservationContact).values(
                reservation_id=reservation_id, updated_at=utc_now(), **values
            )
        )
        return sorted(values)

    values = {
        f: source[f]
        for f in CONTACT_FIELDS
        if is_blank(current.get(f)) and not is_blank(source.get(f))
    }
    if values:
        conn.execute(
            update(ReservationContact)
            .where(ReservationContact.reservation_id == reservation_id)
            .values(updated_at=utc_now(), **values)
        )
    return sorted(values)


def move_documents(conn: Connection, from_reservation_id: int, to_reservation_id: int) -> int:
    """
    Re-point every document of one reservation to another.

    Returns:
        int: number of documents moved
    """
    result = conn.execute(
        update(ReservationDocument)
        .where(ReservationDocument.reservation_id == from_reservation_id)
        .values(reservation_id=to_reservation_id)
    )
    return int(result.rowcount or 0)
