from datetime import date
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.engine import Connection

from sync_calendars.models.inbox import UnassignedEvent


def get_inbox_entry(conn: Connection, entry_id: int) -> Optional[Any]:
    return conn.execute(select(UnassignedEvent).where(UnassignedEvent.id == entry_id)).fetchone()


def list_unresolved(conn: Connection, property_id: Optional[int] = None) -> list[Any]:
    """
    Unresolved inbox entries, oldest first.

    Args:
        conn (Connection): Active connection.
        property_id (Optional[int]): Restrict to one property; all properties if None.
    """
    query = select(UnassignedEvent).where(UnassignedEvent.resolved.is_(False))
    if property_id is not None:
        query = query.where(UnassignedEvent.property_id == property_id)
    return list(conn.execute(query.order_by(UnassignedEvent.id)).fetchall())


def find_open_entry(
    conn: Connection,
    property_id: int,
    uid: Optional[str],
    start_date: date,
    end_date: date,
    summary: Optional[str],
) -> Optional[Any]:
    """
    Find the unresolved entry an event would duplicate.

    Keyed by UID when there is one, otherwise by dates plus summary.
    """
    query = select(UnassignedEvent).where(
        UnassignedEvent.property_id == property_id,
        UnassignedEvent.resolved.is_(False),
    )
    if uid:
        query = query.where(UnassignedEvent.uid == uid)
    else:
        query = query.where(
            UnassignedEvent.uid.is_(None),
            UnassignedEvent.start_date == start_date,
            UnassignedEvent.end_date == end_date,
            (
                UnassignedEvent.summary.is_(None)
                if summary is None
                else UnassignedEvent.summary == summary
            ),
        )
    return conn.execute(query.order_by(UnassignedEvent.id).limit(1)).fetchone()
