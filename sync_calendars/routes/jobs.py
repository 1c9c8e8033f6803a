"""
Job trigger endpoints for an external scheduler.

Each job is idempotent: firing a trigger twice, or while a previous run is
still going, is safe.
"""

from __future__ import annotations

from typing import Any, Optional

import structlog
from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.engine import Engine

from sync_calendars.config import DRY_RUN
from sync_calendars.dependencies import get_db_engine
from sync_calendars.routes._helpers import internal_error
from sync_calendars.services.holds import sweep_holds
from sync_calendars.services.inbox import retry_unassigned
from sync_calendars.services.sync import sync_all_integrations
from sync_calendars.utils.datetime import utc_now

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.post("/jobs/feed-sync", status_code=status.HTTP_202_ACCEPTED)
def trigger_feed_sync(
    background_tasks: BackgroundTasks,
    dry_run: Optional[bool] = Query(None, description="Override DRY_RUN setting"),
    engine: Engine = Depends(get_db_engine),
) -> dict[str, str]:
    """Schedule a sync of every active feed in the background."""
    use_dry_run = DRY_RUN if dry_run is None else dry_run
    background_tasks.add_task(sync_all_integrations, engine, dry_run=use_dry_run)
    logger.info("feed_sync_job_triggered", dry_run=use_dry_run)
    return {"message": f"Feed sync scheduled (dry_run={use_dry_run})"}


@router.post("/jobs/hold-sweep", status_code=status.HTTP_200_OK)
def trigger_hold_sweep(
    property_id: Optional[int] = Query(None, description="Limit the sweep to one property"),
    engine: Engine = Depends(get_db_engine),
) -> dict[str, Any]:
    """Promote confirmed placeholders and expire lapsed ones."""
    try:
        return sweep_holds(engine, utc_now(), property_id=property_id).as_dict()
    except Exception as e:
        raise internal_error("hold_sweep_failed", e, property_id=property_id)


@router.post("/jobs/inbox-retry", status_code=status.HTTP_200_OK)
def trigger_inbox_retry(
    property_id: Optional[int] = Query(None, description="Limit the retry to one property"),
    engine: Engine = Depends(get_db_engine),
) -> dict[str, Any]:
    """Re-run allocation for open inbox entries."""
    try:
        return retry_unassigned(engine, utc_now(), property_id=property_id).as_dict()
    except Exception as e:
        raise internal_error("inbox_retry_job_failed", e, property_id=property_id)
