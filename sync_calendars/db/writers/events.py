from typing import Any, Optional

import structlog
from sqlalchemy import insert
from sqlalchemy.engine import Connection

from sync_calendars.models.events import DomainEvent
from sync_calendars.utils.datetime import utc_now

logger = structlog.get_logger(__name__)


def emit_event(
    conn: Connection,
    event_type: str,
    property_id: int,
    reservation_id: Optional[int] = None,
    **payload: Any,
) -> None:
    """
    Append a domain event to the outbox inside the caller's transaction.

    The event becomes visible only if the surrounding change commits.
    Payload values must be JSON serializable.

    Args:
        conn (Connection): The transaction doing the change.
        event_type (str): Dotted name, e.g. "hold.expired".
        property_id (int): Owning property.
        reservation_id (Optional[int]): Reservation the event is about.
        **payload: Extra JSON fields.
    """
    conn.execute(
        insert(DomainEvent).values(
            event_type=event_type,
            property_id=property_id,
            reservation_id=reservation_id,
            payload=payload or None,
            created_at=utc_now(),
        )
    )
    logger.debug("domain_event_queued", event_type=event_type, reservation_id=reservation_id)
