from typing import Any

import structlog
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.engine import Engine

from sync_calendars.db.readers.inbox import list_unresolved
from sync_calendars.db.readers.properties import get_property_settings
from sync_calendars.dependencies import get_db_engine
from sync_calendars.errors import CalendarSyncError
from sync_calendars.routes._helpers import http_error, internal_error, row_to_dict
from sync_calendars.schemas.inbox import InboxAssignPayload
from sync_calendars.services.inbox import assign_entry
from sync_calendars.utils.datetime import utc_now

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.get("/properties/{property_id}/inbox", status_code=status.HTTP_200_OK)
def list_inbox(
    property_id: int,
    engine: Engine = Depends(get_db_engine),
) -> list[dict[str, Any]]:
    """Unresolved inbox entries of a property, oldest first."""
    try:
        with engine.connect() as conn:
            get_property_settings(conn, property_id)
            return [row_to_dict(row) for row in list_unresolved(conn, property_id)]

    except CalendarSyncError as e:
        raise http_error(e)
    except HTTPException:
        raise
    except Exception as e:
        raise internal_error("inbox_list_failed", e, property_id=property_id)


@router.post("/inbox/{entry_id}/assign", status_code=status.HTTP_200_OK)
def assign_inbox_entry(
    entry_id: int,
    payload: InboxAssignPayload,
    engine: Engine = Depends(get_db_engine),
) -> dict[str, Any]:
    """
    Resolve an inbox entry onto a room or an existing reservation.

    Returns:
        dict: the reservation now representing the event
    """
    try:
        reservation_id = assign_entry(
            engine,
            entry_id,
            utc_now(),
            room_id=payload.room_id,
            reservation_id=payload.reservation_id,
        )
        return {"entry_id": entry_id, "reservation_id": reservation_id}

    except CalendarSyncError as e:
        raise http_error(e)
    except HTTPException:
        raise
    except Exception as e:
        raise internal_error("inbox_assign_failed", e, entry_id=entry_id)
