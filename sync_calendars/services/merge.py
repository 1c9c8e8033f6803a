"""
Merge operator: fold a guest placeholder into the confirmed reservation for the same stay.

The confirmed reservation receives the placeholder's guest names and contact
details only where its own fields are empty, takes over the placeholder's
documents, and becomes "locked" (``form_submitted_at`` set) so that a second,
unrelated placeholder can never overwrite it. The placeholder is cancelled.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

import structlog
from sqlalchemy.engine import Connection, Engine

from sync_calendars.db.readers.contacts import get_contact
from sync_calendars.db.readers.properties import PropertySettings, lock_property
from sync_calendars.db.readers.reservations import (
    find_placeholders_for_stay,
    get_reservation,
    is_live,
    is_placeholder,
)
from sync_calendars.db.writers.contacts import fill_empty_contact, is_blank, move_documents
from sync_calendars.db.writers.events import emit_event
from sync_calendars.db.writers.inbox import record_unassigned, resolve_entries_for_uid
from sync_calendars.db.writers.reservations import update_reservation
from sync_calendars.errors import MergeRefusedError, NotFoundError
from sync_calendars.metrics import merges_total
from sync_calendars.models.enums import InboxReason
from sync_calendars.normalizers.events import StayWindow
from sync_calendars.services.holds import cancel_hold

logger = structlog.get_logger(__name__)

NAME_FIELDS = ("guest_first_name", "guest_last_name")


def merge_entry_uid(reservation_id: int) -> str:
    """Inbox key for an ambiguous-merge entry about one reservation."""
    return f"merge:{reservation_id}"


@dataclass
class MergeResult:
    merged: bool
    reason: str
    reservation_id: int
    placeholder_id: Optional[int] = None
    copied_fields: list[str] = field(default_factory=list)
    moved_documents: int = 0
    inbox_entry_id: Optional[int] = None

    def as_dict(self) -> dict[str, Any]:
        return {
            "merged": self.merged,
            "reason": self.reason,
            "reservation_id": self.reservation_id,
            "placeholder_id": self.placeholder_id,
            "copied_fields": self.copied_fields,
            "moved_documents": self.moved_documents,
            "inbox_entry_id": self.inbox_entry_id,
        }


def is_locked(row: Any) -> bool:
    """A reservation already populated from a guest form refuses further merges."""
    return row.form_submitted_at is not None


def same_stay_scope(placeholder: Any, target: Any) -> bool:
    """Same room, or (placeholder without a room) same category."""
    if placeholder.room_id is not None:
        return placeholder.room_id == target.room_id
    return placeholder.category_id is not None and placeholder.category_id == target.category_id


def check_mergeable(placeholder: Any, target: Any) -> None:
    """
    Raises:
        MergeRefusedError: with a machine-readable ``reason``
    """
    context = {"placeholder_id": placeholder.id, "reservation_id": target.id}

    if placeholder.id == target.id:
        raise MergeRefusedError("Cannot merge a reservation into itself", "same_reservation", **context)
    if placeholder.property_id != target.property_id:
        raise MergeRefusedError("Reservations belong to different properties", "different_property", **context)
    if not is_placeholder(placeholder):
        raise MergeRefusedError("Source is not a pending placeholder", "not_a_placeholder", **context)
    if not is_live(target) or is_placeholder(target):
        raise MergeRefusedError("Target is not a live confirmed reservation", "target_not_confirmed", **context)
    if (placeholder.start_date, placeholder.end_date) != (target.start_date, target.end_date):
        raise MergeRefusedError("Stay dates differ", "dates_differ", **context)
    if not same_stay_scope(placeholder, target):
        raise MergeRefusedError("Room or category differs", "scope_differs", **context)
    if is_locked(target):
        raise MergeRefusedError("Target already holds guest form data", "target_locked", **context)


def merge_placeholder(
    conn: Connection,
    placeholder: Any,
    target: Any,
    now: datetime,
    move_docs: bool = True,
) -> MergeResult:
    """
    Merge ``placeholder`` into ``target`` inside the caller's locked transaction.

    Args:
        conn: Transaction holding the property lock
        placeholder: Placeholder reservation row (with ``category_id``)
        target: Confirmed reservation row (with ``category_id``)
        now: Current time
        move_docs: Re-point the placeholder's documents to the target

    Raises:
        MergeRefusedError: if the pair does not qualify
    """
    try:
        check_mergeable(placeholder, target)
    except MergeRefusedError as exc:
        merges_total.labels(result="refused").inc()
        logger.warning("merge_refused", **exc.context)
        raise

    values: dict[str, Any] = {
        name: getattr(placeholder, name)
        for name in NAME_FIELDS
        if is_blank(getattr(target, name)) and not is_blank(getattr(placeholder, name))
    }
    copied = sorted(values)
    values["form_submitted_at"] = placeholder.form_submitted_at or now
    update_reservation(conn, target.id, values)

    copied += fill_empty_contact(conn, target.id, get_contact(conn, placeholder.id))
    moved = move_documents(conn, placeholder.id, target.id) if move_docs else 0

    cancel_hold(conn, placeholder, now, reason=f"merged_into:{target.id}")
    resolve_entries_for_uid(conn, target.property_id, merge_entry_uid(target.id), target.id, now)

    emit_event(
        conn,
        "merge.completed",
        target.property_id,
        target.id,
        placeholder_id=placeholder.id,
        copied_fields=copied,
        moved_documents=moved,
    )
    merges_total.labels(result="merged").inc()
    logger.info(
        "placeholder_merged",
        placeholder_id=placeholder.id,
        reservation_id=target.id,
        copied_fields=copied,
        moved_documents=moved,
    )
    return MergeResult(True, "merged", target.id, placeholder.id, copied, moved)


def reconcile_placeholders(
    conn: Connection, settings: PropertySettings, target: Any, now: datetime
) -> MergeResult:
    """
    Look for the single placeholder that describes ``target``'s stay and merge it.

    More than one qualifying placeholder is ambiguous and goes to the inbox
    instead: guessing could attach one guest's documents to another's stay.
    """
    if not is_live(target) or is_placeholder(target):
        return MergeResult(False, "target_not_confirmed", target.id)
    if is_locked(target):
        return MergeResult(False, "target_locked", target.id)

    candidates = [
        row
        for row in find_placeholders_for_stay(
            conn, target.property_id, target.start_date, target.end_date, target.id
        )
        if same_stay_scope(row, target)
    ]

    if not candidates:
        merges_total.labels(result="no_candidates").inc()
        return MergeResult(False, "no_candidates", target.id)

    if len(candidates) > 1:
        entry_id, _ = record_unassigned(
            conn,
            property_id=target.property_id,
            window=StayWindow(target.start_date, target.end_date, target.start_time, target.end_time),
            reason=InboxReason.AMBIGUOUS_MERGE.value,
            now=now,
            uid=merge_entry_uid(target.id),
            summary=f"Several placeholders match reservation {target.id}",
            integration_id=target.integration_id,
            room_id=target.room_id,
            room_category_id=target.category_id,
            raw_payload={
                "reservation_id": target.id,
                "placeholder_ids": [row.id for row in candidates],
            },
        )
        merges_total.labels(result="ambiguous").inc()
        logger.warning(
            "merge_ambiguous",
            property_id=settings.id,
            reservation_id=target.id,
            placeholder_ids=[row.id for row in candidates],
        )
        return MergeResult(False, "multiple_candidates", target.id, inbox_entry_id=entry_id)

    return merge_placeholder(conn, candidates[0], target, now)


def _load(conn: Connection, reservation_id: int) -> Any:
    row = get_reservation(conn, reservation_id)
    if row is None:
        raise NotFoundError("Reservation not found", reservation_id=reservation_id)
    return row


def merge_into(
    engine: Engine,
    reservation_id: int,
    placeholder_id: int,
    now: datetime,
    move_docs: bool = True,
) -> MergeResult:
    """
    Operator-initiated merge of a specific placeholder into a specific reservation.

    Raises:
        NotFoundError: if either reservation does not exist
        MergeRefusedError: if the pair does not qualify
    """
    with engine.begin() as conn:
        target = _load(conn, reservation_id)
        lock_property(conn, target.property_id)
        target = _load(conn, reservation_id)
        placeholder = _load(conn, placeholder_id)
        return merge_placeholder(conn, placeholder, target, now, move_docs)


def reconcile_reservation(engine: Engine, reservation_id: int, now: datetime) -> MergeResult:
    """Operator-initiated reconcile pass for one reservation."""
    with engine.begin() as conn:
        target = _load(conn, reservation_id)
        settings = lock_property(conn, target.property_id)
        target = _load(conn, reservation_id)
        return reconcile_placeholders(conn, settings, target, now)
