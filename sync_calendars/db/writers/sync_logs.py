from datetime import datetime
from typing import Any, Optional

from sqlalchemy import insert
from sqlalchemy.engine import Connection

from sync_calendars.models.sync_logs import FeedSyncLog


def insert_sync_log(
    conn: Connection,
    integration_id: int,
    status: str,
    started_at: datetime,
    finished_at: datetime,
    counters: Optional[dict[str, Any]] = None,
    error_message: Optional[str] = None,
) -> None:
    conn.execute(
        insert(FeedSyncLog).values(
            integration_id=integration_id,
            status=status,
            started_at=started_at,
            finished_at=finished_at,
            counters=counters,
            error_message=error_message,
        )
    )
