from typing import Any

from fastapi import APIRouter, Depends, Query
from sqlalchemy.engine import Engine

from sync_calendars.db.readers.events import list_events
from sync_calendars.dependencies import get_db_engine
from sync_calendars.routes._helpers import internal_error

router = APIRouter()


@router.get("/events")
def read_events(
    after_id: int = Query(0, ge=0, description="Return events with a larger id"),
    limit: int = Query(100, ge=1, le=1000, description="Page size"),
    engine: Engine = Depends(get_db_engine),
) -> list[dict[str, Any]]:
    """
    Page through committed domain events (holds, merges, reservation changes)
    for downstream consumers such as notification senders.
    """
    try:
        with engine.connect() as conn:
            return list_events(conn, after_id=after_id, limit=limit)
    except Exception as e:
        raise internal_error("events_read_failed", e, after_id=after_id)
