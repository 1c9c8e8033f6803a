from datetime import datetime
from typing import Optional

from sqlalchemy.engine import Connection

from sync_calendars.db.writers._upsert import upsert_with_distinct_check
from sync_calendars.models.uid_mappings import UidMapping
from sync_calendars.normalizers.events import StayWindow

SNAPSHOT_COLUMNS = ["reservation_id", "room_id", "start_date", "end_date", "start_time", "end_time"]


def upsert_uid_mapping(
    conn: Connection,
    property_id: int,
    uid: str,
    reservation_id: int,
    room_id: Optional[int],
    window: StayWindow,
    integration_id: Optional[int],
    now: datetime,
) -> None:
    """
    Create or refresh the identity map entry for ``(property_id, uid)``.

    The unique constraint makes this safe against a concurrent run inserting the
    same UID: one insert wins, the other becomes an update. The feed that
    reported the UID last owns the entry, so only that feed's next complete
    sync can cancel it as removed. A run without an integration (an operator
    assignment) leaves the owner as it is.
    """
    columns = SNAPSHOT_COLUMNS if integration_id is None else [*SNAPSHOT_COLUMNS, "integration_id"]
    upsert_with_distinct_check(
        conn=conn,
        table=UidMapping,
        rows=[
            {
                "property_id": property_id,
                "uid": uid,
                "integration_id": integration_id,
                "reservation_id": reservation_id,
                "room_id": room_id,
                "start_date": window.start_date,
                "end_date": window.end_date,
                "start_time": window.start_time,
                "end_time": window.end_time,
                "last_changed_at": now,
                "created_at": now,
                "updated_at": now,
            }
        ],
        conflict_columns=["property_id", "uid"],
        distinct_columns=columns,
        update_columns=[*columns, "last_changed_at", "updated_at"],
    )
