from typing import Any

from sqlalchemy import select
from sqlalchemy.engine import Connection

from sync_calendars.models.events import DomainEvent


def list_events(conn: Connection, after_id: int = 0, limit: int = 100) -> list[dict[str, Any]]:
    """
    Page through the outbox in commit order.

    Consumers remember the last id they processed and pass it as ``after_id``.
    """
    rows = conn.execute(
        select(DomainEvent).where(DomainEvent.id > after_id).order_by(DomainEvent.id).limit(limit)
    ).mappings()
    return [dict(row) for row in rows]
