from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.engine import Connection

from sync_calendars.models.uid_mappings import UidMapping


def get_uid_mapping(conn: Connection, property_id: int, uid: str) -> Optional[Any]:
    """
    Look up the identity map entry for a channel UID.

    Args:
        conn (Connection): Active connection (inside the property lock for writers).
        property_id (int): Owning property; UIDs are scoped per property.
        uid (str): Channel event UID.

    Returns:
        Optional[Row]: The mapping row or None.
    """
    return conn.execute(
        select(UidMapping).where(UidMapping.property_id == property_id, UidMapping.uid == uid)
    ).fetchone()


def list_mappings_for_integration(conn: Connection, integration_id: int) -> list[Any]:
    return list(
        conn.execute(
            select(UidMapping)
            .where(UidMapping.integration_id == integration_id)
            .order_by(UidMapping.id)
        ).fetchall()
    )
