"""
Soft-hold lifecycle: pending -> promoted | expired | cancelled, promoted -> cancelled.

Every transition is a compare-and-set on ``hold_status`` so that overlapping
sweeps, or a sweep racing an ingestion run, flip each placeholder exactly once.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

import structlog
from sqlalchemy import or_, select, update
from sqlalchemy.engine import Connection, Engine

from sync_calendars.db.writers.events import emit_event
from sync_calendars.errors import InvalidTransitionError
from sync_calendars.metrics import hold_transitions
from sync_calendars.models.enums import HoldStatus, Provenance, ReservationStatus
from sync_calendars.models.reservations import Reservation

logger = structlog.get_logger(__name__)

ALLOWED_TRANSITIONS: dict[Optional[str], set[str]] = {
    HoldStatus.PENDING.value: {
        HoldStatus.PROMOTED.value,
        HoldStatus.EXPIRED.value,
        HoldStatus.CANCELLED.value,
    },
    HoldStatus.PROMOTED.value: {HoldStatus.CANCELLED.value},
}


def ensure_transition(reservation_id: int, current: Optional[str], target: str) -> None:
    """
    Raises:
        InvalidTransitionError: if ``current -> target`` is not allowed
    """
    if target not in ALLOWED_TRANSITIONS.get(current, set()):
        raise InvalidTransitionError(
            f"Hold cannot move from {current} to {target}",
            reservation_id=reservation_id,
            current=current,
            target=target,
        )


def _compare_and_set(
    conn: Connection, reservation_id: int, expected: str, values: dict[str, Any], now: datetime
) -> bool:
    result = conn.execute(
        update(Reservation)
        .where(Reservation.id == reservation_id, Reservation.hold_status == expected)
        .values(**values, updated_at=now)
    )
    return bool(result.rowcount)


def promote_hold(conn: Connection, row: Any, now: datetime, trigger: str) -> bool:
    """
    Promote a pending placeholder now that a channel has confirmed the stay.

    Args:
        conn: Active transaction
        row: Reservation row
        now: Current time
        trigger: What confirmed it (for the event payload)

    Returns:
        bool: True if this call performed the promotion
    """
    if row.hold_status != HoldStatus.PENDING.value:
        return False
    promoted = _compare_and_set(
        conn,
        row.id,
        HoldStatus.PENDING.value,
        {"is_soft_hold": False, "hold_status": HoldStatus.PROMOTED.value},
        now,
    )
    if promoted:
        hold_transitions.labels(transition="promoted").inc()
        emit_event(conn, "hold.promoted", row.property_id, row.id, trigger=trigger)
        logger.info("hold_promoted", reservation_id=row.id, trigger=trigger)
    return promoted


def cancel_hold(conn: Connection, row: Any, now: datetime, reason: str) -> None:
    """
    Cancel a pending or promoted hold and the reservation it represents.

    Raises:
        InvalidTransitionError: if the hold is already expired or cancelled
    """
    ensure_transition(row.id, row.hold_status, HoldStatus.CANCELLED.value)
    cancelled = _compare_and_set(
        conn,
        row.id,
        row.hold_status,
        {
            "is_soft_hold": False,
            "hold_status": HoldStatus.CANCELLED.value,
            "status": ReservationStatus.CANCELLED.value,
        },
        now,
    )
    if not cancelled:
        raise InvalidTransitionError(
            "Hold changed state concurrently", reservation_id=row.id, current=row.hold_status
        )
    hold_transitions.labels(transition="cancelled").inc()
    emit_event(conn, "hold.cancelled", row.property_id, row.id, reason=reason)
    logger.info("hold_cancelled", reservation_id=row.id, reason=reason)


@dataclass
class SweepReport:
    promoted: list[int] = field(default_factory=list)
    expired: list[int] = field(default_factory=list)

    def as_dict(self) -> dict[str, Any]:
        return {
            "promoted": len(self.promoted),
            "expired": len(self.expired),
            "promoted_ids": self.promoted,
            "expired_ids": self.expired,
        }


def sweep_holds(engine: Engine, now: datetime, property_id: Optional[int] = None) -> SweepReport:
    """
    Promote confirmed placeholders, then expire lapsed ones.

    Safe to run at any frequency and concurrently with itself: a placeholder
    already promoted or expired no longer matches, and each flip is a
    compare-and-set, so a second pass is a no-op.

    Args:
        engine (Engine): Database engine.
        now (datetime): Injected clock value; holds with ``hold_expires_at <= now`` expire.
        property_id (Optional[int]): Limit the sweep to one property.

    Returns:
        SweepReport: ids flipped by this pass
    """
    report = SweepReport()
    pending = [
        Reservation.hold_status == HoldStatus.PENDING.value,
        Reservation.status != ReservationStatus.CANCELLED.value,
    ]
    if property_id is not None:
        pending.append(Reservation.property_id == property_id)

    confirmed_signal = or_(
        Reservation.external_uid.is_not(None),
        Reservation.ota_reservation_id.is_not(None),
        Reservation.integration_id.is_not(None),
        Reservation.provenance == Provenance.CHANNEL_FEED.value,
    )

    with engine.begin() as conn:
        for row in conn.execute(
            select(Reservation).where(*pending, confirmed_signal).order_by(Reservation.id)
        ).fetchall():
            if promote_hold(conn, row, now, trigger="sweep"):
                report.promoted.append(row.id)

        for row in conn.execute(
            select(Reservation)
            .where(*pending, Reservation.hold_expires_at <= now)
            .order_by(Reservation.id)
        ).fetchall():
            expired = _compare_and_set(
                conn,
                row.id,
                HoldStatus.PENDING.value,
                {"is_soft_hold": False, "hold_status": HoldStatus.EXPIRED.value},
                now,
            )
            if expired:
                report.expired.append(row.id)
                hold_transitions.labels(transition="expired").inc()
                emit_event(
                    conn,
                    "hold.expired",
                    row.property_id,
                    row.id,
                    start_date=row.start_date.isoformat(),
                    end_date=row.end_date.isoformat(),
                    room_id=row.room_id,
                )

    logger.info(
        "hold_sweep_completed",
        promoted=len(report.promoted),
        expired=len(report.expired),
        property_id=property_id,
    )
    return report
