"""
Feed ingestion: turn parsed channel events into reservations.

Per event, inside one transaction holding the property lock:

1. Identity: a UID already in the identity map refreshes the linked reservation.
2. Allocation: otherwise the matcher looks for the existing reservation with the
   same dates. A unique match is linked (and promoted if it is a placeholder);
   an ambiguous one goes to the inbox; no match creates a channel reservation.
3. Every write that places a stay on a room passes the conflict guard first.

After all events, reservations whose UID vanished from the feed are cancelled.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Iterator, Optional

import structlog
from sqlalchemy.engine import Connection, Engine

from sync_calendars.db.readers.properties import PropertySettings, lock_property
from sync_calendars.db.readers.reservations import get_reservation, is_live, is_placeholder
from sync_calendars.db.readers.rooms import get_room
from sync_calendars.db.readers.uid_mappings import get_uid_mapping, list_mappings_for_integration
from sync_calendars.db.writers.events import emit_event
from sync_calendars.db.writers.inbox import record_unassigned, resolve_entries_for_uid
from sync_calendars.db.writers.reservations import insert_reservation, update_reservation
from sync_calendars.db.writers.uid_mappings import upsert_uid_mapping
from sync_calendars.errors import ConfigurationError, ConflictError, MalformedEventError
from sync_calendars.metrics import reconcile_outcomes
from sync_calendars.models.enums import (
    HoldStatus,
    InboxReason,
    Provenance,
    ReservationStatus,
)
from sync_calendars.normalizers.events import FeedEvent, ParsedFeed, StayWindow
from sync_calendars.services.conflict_guard import assert_room_available, first_free_room, window_of
from sync_calendars.services.holds import promote_hold
from sync_calendars.services.matcher import AllocationRequest, MatchOutcome, match_allocation
from sync_calendars.services.reservations import retire_reservation

logger = structlog.get_logger(__name__)

GUEST_NAME_MAX_LENGTH = 120

ADDED = "added"
UPDATED = "updated"
LINKED = "linked"
PROMOTED = "promoted"
CANCELLED = "cancelled"
UNASSIGNED = "unassigned"
CONFLICTS = "conflicts"
MALFORMED = "malformed"
FAILED = "failed"
UNCHANGED = "unchanged"


@dataclass
class SyncCounters:
    added: int = 0
    updated: int = 0
    linked: int = 0
    promoted: int = 0
    cancelled: int = 0
    unassigned: int = 0
    conflicts: int = 0
    malformed: int = 0
    failed: int = 0
    unchanged: int = 0

    def bump(self, outcome: str) -> None:
        setattr(self, outcome, getattr(self, outcome) + 1)
        reconcile_outcomes.labels(outcome=outcome).inc()

    def as_dict(self) -> dict[str, int]:
        return asdict(self)


@dataclass(frozen=True)
class FeedScope:
    """Where a feed's events belong and which hints they carry into matching."""

    integration_id: Optional[int]
    property_id: int
    provider: Optional[str]
    room_id: Optional[int] = None
    room_category_id: Optional[int] = None
    category_hint: Optional[int] = None

    @classmethod
    def from_integration(cls, conn: Connection, row: Any) -> "FeedScope":
        category_hint = row.room_category_id
        if row.room_id is not None:
            room = get_room(conn, row.room_id)
            category_hint = room.room_category_id if room is not None else None
        return cls(
            integration_id=row.id,
            property_id=row.property_id,
            provider=row.provider,
            room_id=row.room_id,
            room_category_id=row.room_category_id,
            category_hint=category_hint,
        )


@dataclass(frozen=True)
class Allocation:
    """A stay that still needs a reservation: a fresh feed event or an inbox entry."""

    uid: Optional[str]
    summary: Optional[str]
    window: StayWindow
    raw_payload: Optional[dict[str, Any]] = None


def _park(
    conn: Connection,
    scope: FeedScope,
    alloc: Allocation,
    reason: str,
    now: datetime,
    detail: Optional[str] = None,
) -> int:
    entry_id, _ = record_unassigned(
        conn,
        property_id=scope.property_id,
        window=alloc.window,
        reason=reason,
        now=now,
        uid=alloc.uid,
        summary=alloc.summary,
        integration_id=scope.integration_id,
        room_id=scope.room_id,
        room_category_id=scope.room_category_id,
        detail=detail,
        raw_payload=alloc.raw_payload,
    )
    return entry_id


def _link_uid(
    conn: Connection,
    scope: FeedScope,
    alloc: Allocation,
    reservation_id: int,
    room_id: Optional[int],
    now: datetime,
) -> None:
    if not alloc.uid:
        return
    upsert_uid_mapping(
        conn,
        property_id=scope.property_id,
        uid=alloc.uid,
        reservation_id=reservation_id,
        room_id=room_id,
        window=alloc.window,
        integration_id=scope.integration_id,
        now=now,
    )
    resolve_entries_for_uid(conn, scope.property_id, alloc.uid, reservation_id, now)


def create_channel_reservation(
    conn: Connection,
    settings: PropertySettings,
    scope: FeedScope,
    alloc: Allocation,
    room_id: int,
    now: datetime,
) -> int:
    """
    Create a confirmed channel-feed reservation on ``room_id`` and link its UID.

    Raises:
        ConflictError: the room is taken
        ConfigurationError: property configuration incomplete
    """
    assert_room_available(
        conn, settings, room_id, alloc.window, source=Provenance.CHANNEL_FEED.value
    )
    room = get_room(conn, room_id)
    reservation_id = insert_reservation(
        conn,
        {
            "property_id": scope.property_id,
            "room_id": room_id,
            "room_category_id": room.room_category_id if room is not None else None,
            "start_date": alloc.window.start_date,
            "end_date": alloc.window.end_date,
            "start_time": alloc.window.start_time,
            "end_time": alloc.window.end_time,
            "status": ReservationStatus.CONFIRMED.value,
            "provenance": Provenance.CHANNEL_FEED.value,
            "is_soft_hold": False,
            "external_uid": alloc.uid,
            "integration_id": scope.integration_id,
            "channel_name": scope.provider,
            "guest_name": (alloc.summary or "")[:GUEST_NAME_MAX_LENGTH] or None,
        },
    )
    _link_uid(conn, scope, alloc, reservation_id, room_id, now)
    emit_event(
        conn,
        "reservation.created",
        scope.property_id,
        reservation_id,
        provenance=Provenance.CHANNEL_FEED.value,
        integration_id=scope.integration_id,
        uid=alloc.uid,
    )
    return reservation_id


def link_reservation(
    conn: Connection,
    settings: PropertySettings,
    scope: FeedScope,
    alloc: Allocation,
    row: Any,
    now: datetime,
) -> str:
    """
    Attach a channel event to an existing reservation for the same stay.

    A placeholder is promoted: the channel has confirmed the guest's request,
    and the held capacity carries over without consuming more. A category-level
    reservation picked up by a room-scoped feed is placed on that room.

    Returns:
        str: ``promoted``, ``linked`` or ``unchanged``

    Raises:
        ConflictError: placing the reservation on the feed's room would overlap
    """
    if (
        not alloc.uid
        and row.integration_id == scope.integration_id
        and row.room_id is not None
    ):
        return UNCHANGED

    values: dict[str, Any] = {"integration_id": scope.integration_id}
    if alloc.uid:
        values["external_uid"] = alloc.uid
    if not row.channel_name:
        values["channel_name"] = scope.provider
    if not row.guest_name and alloc.summary:
        values["guest_name"] = alloc.summary[:GUEST_NAME_MAX_LENGTH]

    room_id = row.room_id
    if room_id is None and scope.room_id is not None:
        assert_room_available(
            conn,
            settings,
            scope.room_id,
            window_of(row),
            exclude_reservation_id=row.id,
            source=Provenance.CHANNEL_FEED.value,
        )
        room_id = scope.room_id
        values["room_id"] = room_id

    update_reservation(conn, row.id, values)
    _link_uid(conn, scope, alloc, row.id, room_id, now)

    outcome = LINKED
    if is_placeholder(row) and promote_hold(conn, row, now, trigger="feed"):
        outcome = PROMOTED

    emit_event(
        conn,
        "reservation.linked",
        scope.property_id,
        row.id,
        integration_id=scope.integration_id,
        uid=alloc.uid,
    )
    logger.info(
        "reservation_linked",
        reservation_id=row.id,
        uid=alloc.uid,
        room_id=room_id,
        outcome=outcome,
    )
    return outcome


def allocate(
    conn: Connection,
    settings: PropertySettings,
    scope: FeedScope,
    alloc: Allocation,
    now: datetime,
) -> str:
    """
    Find or create the reservation for a stay nobody has linked yet.

    Returns:
        str: the per-event outcome
    """
    result = match_allocation(
        conn,
        AllocationRequest(
            property_id=scope.property_id,
            start_date=alloc.window.start_date,
            end_date=alloc.window.end_date,
            uid=alloc.uid,
            room_hint=scope.room_id,
            category_hint=scope.category_hint,
        ),
    )

    if result.outcome is MatchOutcome.AMBIGUOUS:
        _park(
            conn,
            scope,
            alloc,
            InboxReason.AMBIGUOUS.value,
            now,
            detail=f"candidates: {', '.join(str(i) for i in result.candidate_ids)}",
        )
        return UNASSIGNED

    try:
        if result.outcome is MatchOutcome.UNIQUE and result.candidate is not None:
            return link_reservation(
                conn, settings, scope, alloc, get_reservation(conn, result.candidate.id), now
            )

        room_id = scope.room_id
        if room_id is None and scope.room_category_id is not None:
            room_id = first_free_room(conn, settings, scope.room_category_id, alloc.window)
        if room_id is None:
            _park(conn, scope, alloc, InboxReason.NO_FREE_ROOM.value, now)
            return UNASSIGNED

        create_channel_reservation(conn, settings, scope, alloc, room_id, now)
        return ADDED
    except ConflictError as exc:
        _park(
            conn,
            scope,
            alloc,
            InboxReason.CONFLICT.value,
            now,
            detail=f"overlaps reservation {exc.conflicting_reservation_id}",
        )
        return CONFLICTS


def _refresh_linked(
    conn: Connection,
    settings: PropertySettings,
    scope: FeedScope,
    event: FeedEvent,
    window: StayWindow,
    mapping: Any,
    row: Any,
    now: datetime,
) -> str:
    """
    Apply a known UID's event to its reservation.

    Changes are detected against the window the feed reported last time, not
    the reservation itself, so a staff edit to a linked reservation survives
    until the channel actually changes the stay.
    """
    alloc = Allocation(event.uid, event.summary, window, event.as_payload())

    if event.is_cancelled:
        if is_live(row) and row.external_uid == event.uid:
            retire_reservation(conn, row, now, reason="channel_cancelled")
            resolve_entries_for_uid(conn, scope.property_id, event.uid, None, now)
            return CANCELLED
        return UNCHANGED

    outcome = UNCHANGED
    if is_placeholder(row) and promote_hold(conn, row, now, trigger="feed"):
        outcome = PROMOTED
        row = get_reservation(conn, row.id)

    if not is_live(row):
        if row.hold_status not in (None, HoldStatus.PROMOTED.value):
            # Expired or cancelled holds stay retired
            return outcome
        try:
            assert_room_available(
                conn,
                settings,
                row.room_id,
                window,
                exclude_reservation_id=row.id,
                source=Provenance.CHANNEL_FEED.value,
                room_category_id=row.room_category_id,
            )
        except ConflictError as exc:
            _park(
                conn,
                scope,
                alloc,
                InboxReason.CONFLICT.value,
                now,
                detail=f"reactivation overlaps reservation {exc.conflicting_reservation_id}",
            )
            return CONFLICTS
        update_reservation(
            conn,
            row.id,
            {
                "status": ReservationStatus.CONFIRMED.value,
                "start_date": window.start_date,
                "end_date": window.end_date,
                "start_time": window.start_time,
                "end_time": window.end_time,
            },
        )
        _link_uid(conn, scope, alloc, row.id, row.room_id, now)
        emit_event(conn, "reservation.reactivated", scope.property_id, row.id, **window.as_dict())
        logger.info("reservation_reactivated", reservation_id=row.id, uid=event.uid)
        return UPDATED

    if window == window_of(mapping):
        if scope.integration_id is not None and mapping.integration_id != scope.integration_id:
            # Whichever feed last reported the UID decides when it goes stale
            _link_uid(conn, scope, alloc, row.id, row.room_id, now)
        return outcome

    if window != window_of(row):
        try:
            assert_room_available(
                conn,
                settings,
                row.room_id,
                window,
                exclude_reservation_id=row.id,
                source=Provenance.CHANNEL_FEED.value,
                room_category_id=row.room_category_id,
            )
        except ConflictError as exc:
            _park(
                conn,
                scope,
                alloc,
                InboxReason.CONFLICT.value,
                now,
                detail=f"date change overlaps reservation {exc.conflicting_reservation_id}",
            )
            return CONFLICTS
        update_reservation(
            conn,
            row.id,
            {
                "start_date": window.start_date,
                "end_date": window.end_date,
                "start_time": window.start_time,
                "end_time": window.end_time,
            },
        )
        emit_event(conn, "reservation.updated", scope.property_id, row.id, **window.as_dict())
        logger.info(
            "reservation_refreshed",
            reservation_id=row.id,
            uid=event.uid,
            start_date=window.start_date.isoformat(),
            end_date=window.end_date.isoformat(),
        )

    _link_uid(conn, scope, alloc, row.id, row.room_id, now)
    return UPDATED


def apply_event(
    conn: Connection,
    settings: PropertySettings,
    scope: FeedScope,
    event: FeedEvent,
    now: datetime,
) -> str:
    """
    Reconcile one feed event inside the caller's locked transaction.

    Raises:
        MalformedEventError: the event's window is empty or inverted
        ConfigurationError: the property has no usable timezone or default times
    """
    window = event.to_window(settings.zone())

    if event.uid:
        mapping = get_uid_mapping(conn, scope.property_id, event.uid)
        if mapping is not None:
            row = get_reservation(conn, mapping.reservation_id)
            if row is not None:
                return _refresh_linked(conn, settings, scope, event, window, mapping, row, now)

    if event.is_cancelled:
        if event.uid:
            resolve_entries_for_uid(conn, scope.property_id, event.uid, None, now)
        return UNCHANGED

    return allocate(
        conn, settings, scope, Allocation(event.uid, event.summary, window, event.as_payload()), now
    )


def _cancel_stale(
    conn: Connection, scope: FeedScope, seen_uids: set[str], now: datetime
) -> list[int]:
    cancelled = []
    for mapping in list_mappings_for_integration(conn, scope.integration_id):
        if mapping.uid in seen_uids:
            continue
        row = get_reservation(conn, mapping.reservation_id)
        if row is None or not is_live(row) or row.external_uid != mapping.uid:
            continue
        retire_reservation(conn, row, now, reason="removed_from_feed")
        cancelled.append(row.id)
    return cancelled


@contextmanager
def _event_transaction(engine: Engine, dry_run: bool) -> Iterator[Connection]:
    """One transaction per event; dry runs do all the work and roll it back."""
    with engine.connect() as conn:
        trans = conn.begin()
        try:
            yield conn
        except BaseException:
            trans.rollback()
            raise
        if dry_run:
            trans.rollback()
        else:
            trans.commit()


def reconcile_feed(
    engine: Engine,
    scope: FeedScope,
    parsed: ParsedFeed,
    now: datetime,
    dry_run: bool = False,
) -> SyncCounters:
    """
    Reconcile every event of one successfully fetched feed.

    Each event runs in its own transaction, so a failing event rolls back only
    itself and the rest of the batch continues.

    Args:
        engine (Engine): Database engine.
        scope (FeedScope): Integration the feed belongs to.
        parsed (ParsedFeed): Normalized events plus the malformed count.
        now (datetime): Injected clock value.
        dry_run (bool): Roll back every transaction.

    Returns:
        SyncCounters: per-outcome counts for this run

    Raises:
        ConfigurationError: the property cannot resolve times; the run is aborted
    """
    counters = SyncCounters(malformed=parsed.malformed)
    seen_uids: set[str] = set()

    for event in parsed.events:
        if event.uid:
            seen_uids.add(event.uid)
        try:
            with _event_transaction(engine, dry_run) as conn:
                settings = lock_property(conn, scope.property_id)
                outcome = apply_event(conn, settings, scope, event, now)
        except MalformedEventError as exc:
            logger.warning("event_malformed", reason=exc.message, **exc.context)
            outcome = MALFORMED
        except ConfigurationError:
            raise
        except Exception:
            logger.exception("event_reconcile_failed", uid=event.uid)
            outcome = FAILED
        counters.bump(outcome)

    if counters.malformed:
        logger.warning(
            "stale_check_skipped",
            integration_id=scope.integration_id,
            malformed=counters.malformed,
        )
        return counters

    with _event_transaction(engine, dry_run) as conn:
        lock_property(conn, scope.property_id)
        for reservation_id in _cancel_stale(conn, scope, seen_uids, now):
            counters.bump(CANCELLED)
            logger.info("stale_reservation_cancelled", reservation_id=reservation_id)

    return counters
