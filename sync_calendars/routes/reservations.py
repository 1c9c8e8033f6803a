from typing import Any

import structlog
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.engine import Engine

from sync_calendars.dependencies import get_db_engine
from sync_calendars.errors import CalendarSyncError
from sync_calendars.routes._helpers import http_error, internal_error
from sync_calendars.schemas.reservations import (
    MergePayload,
    ReservationCreatePayload,
    ReservationUpdatePayload,
)
from sync_calendars.services.merge import merge_into, reconcile_reservation
from sync_calendars.services.reservations import (
    cancel_reservation,
    create_reservation,
    update_reservation_stay,
)
from sync_calendars.utils.datetime import utc_now

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.post("/reservations", status_code=status.HTTP_201_CREATED)
def create_reservation_endpoint(
    payload: ReservationCreatePayload,
    engine: Engine = Depends(get_db_engine),
) -> dict[str, Any]:
    """
    Create a confirmed manual reservation.

    A pending placeholder for exactly the same stay is merged into it.

    Returns:
        dict: new reservation id and the merge outcome
    """
    try:
        reservation_id, merge = create_reservation(
            engine,
            property_id=payload.property_id,
            window=payload.window(),
            now=utc_now(),
            room_id=payload.room_id,
            room_category_id=payload.room_category_id,
            guest_first_name=payload.guest_first_name,
            guest_last_name=payload.guest_last_name,
            contact=payload.contact.values() if payload.contact else None,
            ota_reservation_id=payload.ota_reservation_id,
        )
        logger.info("reservation_created", reservation_id=reservation_id)
        return {"reservation_id": reservation_id, "merge": merge.as_dict()}

    except CalendarSyncError as e:
        raise http_error(e)
    except HTTPException:
        raise
    except Exception as e:
        raise internal_error("reservation_creation_failed", e)


@router.patch("/reservations/{reservation_id}", status_code=status.HTTP_200_OK)
def update_reservation_endpoint(
    reservation_id: int,
    payload: ReservationUpdatePayload,
    engine: Engine = Depends(get_db_engine),
) -> dict[str, str]:
    """Move a reservation to new dates and/or another room."""
    try:
        window = payload.window()
        if window is None and payload.room_id is None:
            return {"message": "No fields to update"}

        update_reservation_stay(
            engine, reservation_id, utc_now(), window=window, room_id=payload.room_id
        )
        return {"message": f"Reservation {reservation_id} updated successfully"}

    except CalendarSyncError as e:
        raise http_error(e)
    except HTTPException:
        raise
    except Exception as e:
        raise internal_error("reservation_update_failed", e, reservation_id=reservation_id)


@router.post("/reservations/{reservation_id}/cancel", status_code=status.HTTP_200_OK)
def cancel_reservation_endpoint(
    reservation_id: int,
    engine: Engine = Depends(get_db_engine),
) -> dict[str, str]:
    """Cancel a reservation; cancelling twice is a no-op."""
    try:
        if cancel_reservation(engine, reservation_id, utc_now()):
            return {"message": f"Reservation {reservation_id} cancelled"}
        return {"message": f"Reservation {reservation_id} was already cancelled"}

    except CalendarSyncError as e:
        raise http_error(e)
    except HTTPException:
        raise
    except Exception as e:
        raise internal_error("reservation_cancel_failed", e, reservation_id=reservation_id)


@router.post("/reservations/{reservation_id}/merge", status_code=status.HTTP_200_OK)
def merge_reservation_endpoint(
    reservation_id: int,
    payload: MergePayload,
    engine: Engine = Depends(get_db_engine),
) -> dict[str, Any]:
    """
    Merge a specific placeholder into this reservation.

    Returns 409 with a ``reason`` when the pair does not qualify.
    """
    try:
        result = merge_into(
            engine, reservation_id, payload.placeholder_id, utc_now(), payload.move_documents
        )
        return result.as_dict()

    except CalendarSyncError as e:
        raise http_error(e)
    except HTTPException:
        raise
    except Exception as e:
        raise internal_error("reservation_merge_failed", e, reservation_id=reservation_id)


@router.post("/reservations/{reservation_id}/reconcile", status_code=status.HTTP_200_OK)
def reconcile_reservation_endpoint(
    reservation_id: int,
    engine: Engine = Depends(get_db_engine),
) -> dict[str, Any]:
    """Look for the single placeholder describing this reservation and merge it."""
    try:
        return reconcile_reservation(engine, reservation_id, utc_now()).as_dict()

    except CalendarSyncError as e:
        raise http_error(e)
    except HTTPException:
        raise
    except Exception as e:
        raise internal_error("reservation_reconcile_failed", e, reservation_id=reservation_id)
