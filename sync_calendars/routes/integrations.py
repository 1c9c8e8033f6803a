from typing import Any, Optional

import structlog
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, status
from sqlalchemy.engine import Engine

from sync_calendars.config import DRY_RUN
from sync_calendars.db.readers.integrations import get_integration, list_integrations_for_property
from sync_calendars.db.readers.properties import get_property_settings
from sync_calendars.db.writers.integrations import deactivate_integration, insert_integration
from sync_calendars.dependencies import get_db_engine
from sync_calendars.errors import CalendarSyncError, NotFoundError, ValidationError
from sync_calendars.routes._helpers import http_error, internal_error, row_to_dict
from sync_calendars.schemas.integrations import IntegrationCreatePayload
from sync_calendars.services.reservations import resolve_room_scope
from sync_calendars.services.sync import sync_integration

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.post("/properties/{property_id}/integrations", status_code=status.HTTP_201_CREATED)
def create_integration(
    property_id: int,
    payload: IntegrationCreatePayload,
    background_tasks: BackgroundTasks,
    engine: Engine = Depends(get_db_engine),
) -> dict[str, Any]:
    """
    Register an inbound channel feed and schedule its first sync.

    Returns:
        dict: the new integration id
    """
    try:
        with engine.begin() as conn:
            get_property_settings(conn, property_id)
            resolve_room_scope(conn, property_id, payload.room_id, payload.room_category_id)
            integration_id = insert_integration(
                conn,
                property_id=property_id,
                provider=payload.provider,
                url=str(payload.url),
                room_id=payload.room_id,
                room_category_id=payload.room_category_id,
            )

        background_tasks.add_task(
            sync_integration, engine, integration_id=integration_id, dry_run=DRY_RUN
        )
        return {"integration_id": integration_id, "message": "Integration created. Initial sync scheduled."}

    except CalendarSyncError as e:
        raise http_error(e)
    except HTTPException:
        raise
    except Exception as e:
        raise internal_error("integration_creation_failed", e, property_id=property_id)


@router.get("/properties/{property_id}/integrations", status_code=status.HTTP_200_OK)
def list_integrations(
    property_id: int,
    engine: Engine = Depends(get_db_engine),
) -> list[dict[str, Any]]:
    """All feeds of a property with their last sync status."""
    try:
        with engine.connect() as conn:
            get_property_settings(conn, property_id)
            return [row_to_dict(row) for row in list_integrations_for_property(conn, property_id)]

    except CalendarSyncError as e:
        raise http_error(e)
    except HTTPException:
        raise
    except Exception as e:
        raise internal_error("integration_list_failed", e, property_id=property_id)


@router.delete("/integrations/{integration_id}", status_code=status.HTTP_200_OK)
def delete_integration(
    integration_id: int,
    engine: Engine = Depends(get_db_engine),
) -> dict[str, str]:
    """
    Deactivate a feed. Its identity map and history are kept, and the
    reservations it created stay in place.
    """
    try:
        with engine.begin() as conn:
            if get_integration(conn, integration_id) is None:
                raise NotFoundError("Integration not found", integration_id=integration_id)
            deactivate_integration(conn, integration_id)

        logger.info("integration_deactivated", integration_id=integration_id)
        return {"message": f"Integration {integration_id} deactivated"}

    except CalendarSyncError as e:
        raise http_error(e)
    except HTTPException:
        raise
    except Exception as e:
        raise internal_error("integration_delete_failed", e, integration_id=integration_id)


@router.post("/integrations/{integration_id}/sync", status_code=status.HTTP_202_ACCEPTED)
def trigger_integration_sync(
    integration_id: int,
    background_tasks: BackgroundTasks,
    dry_run: Optional[bool] = Query(None, description="Override DRY_RUN setting"),
    engine: Engine = Depends(get_db_engine),
) -> dict[str, str]:
    """
    Manually trigger a sync of one feed. The sync runs in the background.
    """
    try:
        with engine.connect() as conn:
            integration = get_integration(conn, integration_id)
        if integration is None:
            raise NotFoundError("Integration not found", integration_id=integration_id)
        if not integration.is_active:
            raise ValidationError("Integration is not active", integration_id=integration_id)

        use_dry_run = DRY_RUN if dry_run is None else dry_run
        background_tasks.add_task(
            sync_integration, engine, integration_id=integration_id, dry_run=use_dry_run
        )

        logger.info("sync_triggered", integration_id=integration_id, dry_run=use_dry_run)
        return {"message": f"Sync scheduled for integration {integration_id} (dry_run={use_dry_run})"}

    except CalendarSyncError as e:
        raise http_error(e)
    except HTTPException:
        raise
    except Exception as e:
        raise internal_error("sync_trigger_failed", e, integration_id=integration_id)
