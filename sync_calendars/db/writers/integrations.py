from datetime import datetime
from typing import Optional

import structlog
from sqlalchemy import insert, update
from sqlalchemy.engine import Connection

from sync_calendars.models.integrations import FeedIntegration
from sync_calendars.utils.datetime import utc_now

logger = structlog.get_logger(__name__)


def insert_integration(
    conn: Connection,
    property_id: int,
    provider: str,
    url: str,
    room_id: Optional[int] = None,
    room_category_id: Optional[int] = None,
) -> int:
    """
    Register a new inbound feed.

    Returns:
        int: the new integration id
    """
    now = utc_now()
    result = conn.execute(
        insert(FeedIntegration).values(
            property_id=property_id,
            provider=provider,
            url=url,
            room_id=room_id,
            room_category_id=room_category_id,
            is_active=True,
            created_at=now,
            updated_at=now,
        )
    )
    integration_id = int(result.inserted_primary_key[0])
    logger.info(
        "integration_created",
        integration_id=integration_id,
        property_id=property_id,
        provider=provider,
    )
    return integration_id


def deactivate_integration(conn: Connection, integration_id: int) -> None:
    """Soft delete: the feed stops being polled, its history and UID map stay."""
    conn.execute(
        update(FeedIntegration)
        .where(FeedIntegration.id == integration_id)
        .values(is_active=False, updated_at=utc_now())
    )


def record_sync_result(
    conn: Connection,
    integration_id: int,
    status: str,
    finished_at: datetime,
    error: Optional[str] = None,
) -> None:
    """
    Store the outcome of the latest run on the integration row.

    ``last_sync_at`` only moves forward on success, so a feed that keeps
    failing is visibly stale.
    """
    values: dict[str, object] = {
        "last_status": status,
        "last_error": error,
        "updated_at": finished_at,
    }
    if error is None:
        values["last_sync_at"] = finished_at
    conn.execute(
        update(FeedIntegration).where(FeedIntegration.id == integration_id).values(**values)
    )
