"""Operator and job paths that resolve unassigned events."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

import structlog
from sqlalchemy.engine import Connection, Engine

from sync_calendars.db.readers.inbox import get_inbox_entry, list_unresolved
from sync_calendars.db.readers.integrations import get_integration
from sync_calendars.db.readers.properties import lock_property
from sync_calendars.db.readers.reservations import get_reservation, is_live
from sync_calendars.db.readers.rooms import get_room
from sync_calendars.db.readers.uid_mappings import get_uid_mapping
from sync_calendars.db.writers.events import emit_event
from sync_calendars.db.writers.inbox import resolve_entry
from sync_calendars.errors import CalendarSyncError, NotFoundError, ValidationError
from sync_calendars.models.enums import InboxReason
from sync_calendars.normalizers.events import StayWindow
from sync_calendars.services.reconcile import (
    ADDED,
    LINKED,
    PROMOTED,
    UNCHANGED,
    Allocation,
    FeedScope,
    allocate,
    create_channel_reservation,
    link_reservation,
)

logger = structlog.get_logger(__name__)

RETRYABLE_REASONS = (
    InboxReason.AMBIGUOUS.value,
    InboxReason.NO_FREE_ROOM.value,
    InboxReason.CONFLICT.value,
)


def _entry_scope(conn: Connection, entry: Any) -> FeedScope:
    integration = (
        get_integration(conn, entry.integration_id) if entry.integration_id is not None else None
    )
    if integration is not None:
        return FeedScope.from_integration(conn, integration)
    return FeedScope(
        integration_id=None,
        property_id=entry.property_id,
        provider=None,
        room_id=entry.room_id,
        room_category_id=entry.room_category_id,
        category_hint=entry.room_category_id,
    )


def _entry_allocation(entry: Any) -> Allocation:
    return Allocation(
        uid=entry.uid,
        summary=entry.summary,
        window=StayWindow(entry.start_date, entry.end_date, entry.start_time, entry.end_time),
        raw_payload=entry.raw_payload,
    )


def _load_open_entry(conn: Connection, entry_id: int) -> Any:
    entry = get_inbox_entry(conn, entry_id)
    if entry is None:
        raise NotFoundError("Inbox entry not found", entry_id=entry_id)
    if entry.resolved:
        raise ValidationError("Inbox entry is already resolved", entry_id=entry_id)
    return entry


def assign_entry(
    engine: Engine,
    entry_id: int,
    now: datetime,
    room_id: Optional[int] = None,
    reservation_id: Optional[int] = None,
) -> int:
    """
    Resolve an inbox entry by hand: place it on a room, or link it to an
    existing reservation for the same stay.

    Args:
        engine (Engine): Database engine.
        entry_id (int): Inbox entry.
        now (datetime): Current time.
        room_id (Optional[int]): Room to create the channel reservation on.
        reservation_id (Optional[int]): Reservation the event describes.

    Returns:
        int: the reservation that now represents the event

    Raises:
        NotFoundError: unknown entry or reservation
        ValidationError: bad arguments, or a room/reservation that does not fit the entry
        ConflictError: the room is taken
    """
    if (room_id is None) == (reservation_id is None):
        raise ValidationError("Pass exactly one of room_id or reservation_id", entry_id=entry_id)

    with engine.begin() as conn:
        entry = _load_open_entry(conn, entry_id)
        settings = lock_property(conn, entry.property_id)
        entry = _load_open_entry(conn, entry_id)
        if entry.reason == InboxReason.AMBIGUOUS_MERGE.value:
            raise ValidationError(
                "Ambiguous merges are resolved by merging a placeholder", entry_id=entry_id
            )
        mapping = get_uid_mapping(conn, entry.property_id, entry.uid) if entry.uid else None
        if mapping is not None:
            raise ValidationError(
                "Event is already linked; edit the linked reservation instead",
                entry_id=entry_id,
                reservation_id=mapping.reservation_id,
            )

        scope = _entry_scope(conn, entry)
        alloc = _entry_allocation(entry)

        if room_id is not None:
            room = get_room(conn, room_id)
            if room is None or room.property_id != entry.property_id:
                raise ValidationError(
                    "Room does not belong to property", room_id=room_id, entry_id=entry_id
                )
            if entry.room_category_id is not None and room.room_category_id != entry.room_category_id:
                raise ValidationError(
                    "Room is not in the feed's category",
                    room_id=room_id,
                    room_category_id=entry.room_category_id,
                    entry_id=entry_id,
                )
            target_id = create_channel_reservation(conn, settings, scope, alloc, room_id, now)
        else:
            row = get_reservation(conn, reservation_id)
            if row is None:
                raise NotFoundError("Reservation not found", reservation_id=reservation_id)
            if row.property_id != entry.property_id or not is_live(row):
                raise ValidationError(
                    "Reservation is not a live reservation of this property",
                    reservation_id=reservation_id,
                    entry_id=entry_id,
                )
            if (row.start_date, row.end_date) != (entry.start_date, entry.end_date):
                raise ValidationError(
                    "Reservation dates differ from the event",
                    reservation_id=reservation_id,
                    entry_id=entry_id,
                )
            if row.external_uid is not None and row.external_uid != entry.uid:
                raise ValidationError(
                    "Reservation is linked to another channel event",
                    reservation_id=reservation_id,
                    entry_id=entry_id,
                )
            link_reservation(conn, settings, scope, alloc, row, now)
            target_id = row.id

        resolve_entry(conn, entry_id, target_id, now)
        emit_event(conn, "inbox.resolved", entry.property_id, target_id, entry_id=entry_id, by="operator")

    logger.info("inbox_entry_assigned", entry_id=entry_id, reservation_id=target_id)
    return target_id


@dataclass
class RetryReport:
    resolved: list[int] = field(default_factory=list)
    still_open: list[int] = field(default_factory=list)
    failed: list[int] = field(default_factory=list)

    def as_dict(self) -> dict[str, Any]:
        return {
            "resolved": len(self.resolved),
            "still_open": len(self.still_open),
            "failed": len(self.failed),
            "resolved_ids": self.resolved,
        }


def _retry_one(engine: Engine, entry_id: int, now: datetime) -> bool:
    with engine.begin() as conn:
        entry = get_inbox_entry(conn, entry_id)
        settings = lock_property(conn, entry.property_id)
        entry = get_inbox_entry(conn, entry_id)
        if entry.resolved:
            return True
        if entry.uid and get_uid_mapping(conn, entry.property_id, entry.uid) is not None:
            # Refresh conflicts of linked events are retried by the next feed sync
            return False

        outcome = allocate(conn, settings, _entry_scope(conn, entry), _entry_allocation(entry), now)
        if outcome not in (ADDED, LINKED, PROMOTED, UNCHANGED):
            return False

        # UID entries are resolved by the link itself
        entry = get_inbox_entry(conn, entry_id)
        if not entry.resolved:
            resolve_entry(conn, entry_id, None, now)
        emit_event(conn, "inbox.resolved", entry.property_id, None, entry_id=entry_id, by="retry")
        return True


def retry_unassigned(
    engine: Engine, now: datetime, property_id: Optional[int] = None
) -> RetryReport:
    """
    Re-run allocation for open inbox entries whose ambiguity may have cleared.

    An entry that still cannot be placed keeps its id; its reason and detail
    are refreshed in place.
    """
    report = RetryReport()
    with engine.connect() as conn:
        entries = [
            entry.id
            for entry in list_unresolved(conn, property_id)
            if entry.reason in RETRYABLE_REASONS and entry.integration_id is not None
        ]

    for entry_id in entries:
        try:
            if _retry_one(engine, entry_id, now):
                report.resolved.append(entry_id)
            else:
                report.still_open.append(entry_id)
        except CalendarSyncError as exc:
            logger.warning("inbox_retry_failed", entry_id=entry_id, reason=exc.message, **exc.context)
            report.failed.append(entry_id)

    logger.info(
        "inbox_retry_completed",
        resolved=len(report.resolved),
        still_open=len(report.still_open),
        failed=len(report.failed),
    )
    return report
