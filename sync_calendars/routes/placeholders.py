from typing import Any

import structlog
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.engine import Engine

from sync_calendars.dependencies import get_db_engine
from sync_calendars.errors import CalendarSyncError
from sync_calendars.routes._helpers import http_error, internal_error
from sync_calendars.schemas.placeholders import PlaceholderCreatePayload
from sync_calendars.services.placeholders import cancel_placeholder, create_placeholder
from sync_calendars.utils.datetime import utc_now

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.post("/placeholders", status_code=status.HTTP_201_CREATED)
def create_placeholder_endpoint(
    payload: PlaceholderCreatePayload,
    engine: Engine = Depends(get_db_engine),
) -> dict[str, Any]:
    """
    Record a guest-form submission as a soft hold.

    Returns:
        dict: placeholder id, hold status and expiry, and ``merged_into`` when
        the submission matched an existing reservation
    """
    try:
        result = create_placeholder(
            engine,
            property_id=payload.property_id,
            window=payload.window(),
            now=utc_now(),
            room_id=payload.room_id,
            room_category_id=payload.room_category_id,
            guest_first_name=payload.guest_first_name,
            guest_last_name=payload.guest_last_name,
            contact=payload.contact.values() if payload.contact else None,
            hold_hours=payload.hold_hours,
        )
        return result.as_dict()

    except CalendarSyncError as e:
        raise http_error(e)
    except HTTPException:
        raise
    except Exception as e:
        raise internal_error("placeholder_creation_failed", e)


@router.post("/placeholders/{reservation_id}/cancel", status_code=status.HTTP_200_OK)
def cancel_placeholder_endpoint(
    reservation_id: int,
    engine: Engine = Depends(get_db_engine),
) -> dict[str, str]:
    """Cancel a pending or promoted hold. Expired or cancelled holds answer 409."""
    try:
        cancel_placeholder(engine, reservation_id, utc_now())
        return {"message": f"Placeholder {reservation_id} cancelled"}

    except CalendarSyncError as e:
        raise http_error(e)
    except HTTPException:
        raise
    except Exception as e:
        raise internal_error("placeholder_cancel_failed", e, reservation_id=reservation_id)
