from datetime import datetime
from typing import Any, Optional

import structlog
from sqlalchemy import insert, update
from sqlalchemy.engine import Connection

from sync_calendars.db.readers.inbox import find_open_entry
from sync_calendars.metrics import inbox_entries_recorded
from sync_calendars.models.inbox import UnassignedEvent
from sync_calendars.normalizers.events import StayWindow

logger = structlog.get_logger(__name__)


def record_unassigned(
    conn: Connection,
    property_id: int,
    window: StayWindow,
    reason: str,
    now: datetime,
    uid: Optional[str] = None,
    summary: Optional[str] = None,
    integration_id: Optional[int] = None,
    room_id: Optional[int] = None,
    room_category_id: Optional[int] = None,
    detail: Optional[str] = None,
    raw_payload: Optional[dict[str, Any]] = None,
) -> tuple[int, bool]:
    """
    Write an inbox entry, or refresh the open one for the same event.

    Re-running a sync on a feed whose events are still ambiguous must not pile
    up duplicate entries, so an unresolved entry with the same key (UID, or
    dates plus summary without a UID) is updated in place.

    Returns:
        tuple[int, bool]: entry id and whether a new entry was created
    """
    values = {
        "integration_id": integration_id,
        "room_id": room_id,
        "room_category_id": room_category_id,
        "summary": summary,
        "start_date": window.start_date,
        "end_date": window.end_date,
        "start_time": window.start_time,
        "end_time": window.end_time,
        "reason": reason,
        "detail": detail,
        "raw_payload": raw_payload,
        "updated_at": now,
    }

    existing = find_open_entry(
        conn, property_id, uid, window.start_date, window.end_date, summary
    )
    if existing is not None:
        conn.execute(
            update(UnassignedEvent).where(UnassignedEvent.id == existing.id).values(**values)
        )
        return existing.id, False

    result = conn.execute(
        insert(UnassignedEvent).values(
            property_id=property_id, uid=uid, resolved=False, created_at=now, **values
        )
    )
    entry_id = int(result.inserted_primary_key[0])
    inbox_entries_recorded.labels(reason=reason).inc()
    logger.info(
        "inbox_entry_recorded",
        entry_id=entry_id,
        property_id=property_id,
        uid=uid,
        reason=reason,
        start_date=window.start_date.isoformat(),
        end_date=window.end_date.isoformat(),
    )
    return entry_id, True


def resolve_entry(
    conn: Connection, entry_id: int, reservation_id: Optional[int], now: datetime
) -> None:
    """Mark one inbox entry resolved, by the given reservation if known."""
    conn.execute(
        update(UnassignedEvent)
        .where(UnassignedEvent.id == entry_id)
        .values(
            resolved=True, resolved_reservation_id=reservation_id, resolved_at=now, updated_at=now
        )
    )


def resolve_entries_for_uid(
    conn: Connection,
    property_id: int,
    uid: str,
    reservation_id: Optional[int],
    now: datetime,
) -> int:
    """
    Resolve open entries for a UID once it has been linked to a reservation,
    or (``reservation_id`` None) once the channel has cancelled the stay.

    Returns:
        int: number of entries resolved
    """
    result = conn.execute(
        update(UnassignedEvent)
        .where(
            UnassignedEvent.property_id == property_id,
            UnassignedEvent.uid == uid,
            UnassignedEvent.resolved.is_(False),
        )
        .values(
            resolved=True, resolved_reservation_id=reservation_id, resolved_at=now, updated_at=now
        )
    )
    return int(result.rowcount or 0)
