from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.engine import Connection

from sync_calendars.models.contacts import ReservationContact, ReservationDocument

CONTACT_FIELDS = ("email", "phone", "address", "city", "country")


def get_contact(conn: Connection, reservation_id: int) -> Optional[dict[str, Any]]:
    """Return the contact fields for a reservation as a dict, or None."""
    row = (
        conn.execute(
            select(ReservationContact).where(ReservationContact.reservation_id == reservation_id)
        )
        .mappings()
        .fetchone()
    )
    return {field: row[field] for field in CONTACT_FIELDS} if row else None


def list_documents(conn: Connection, reservation_id: int) -> list[Any]:
    return list(
        conn.execute(
            select(ReservationDocument)
            .where(ReservationDocument.reservation_id == reservation_id)
            .order_by(ReservationDocument.id)
        ).fetchall()
    )
