from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.engine import Connection

from sync_calendars.models.integrations import FeedIntegration


def get_integration(conn: Connection, integration_id: int) -> Optional[Any]:
    return conn.execute(
        select(FeedIntegration).where(FeedIntegration.id == integration_id)
    ).fetchone()


def list_active_integrations(conn: Connection) -> list[Any]:
    """Active feeds across all properties, in id order."""
    return list(
        conn.execute(
            select(FeedIntegration)
            .where(FeedIntegration.is_active.is_(True))
            .order_by(FeedIntegration.id)
        ).fetchall()
    )


def list_integrations_for_property(conn: Connection, property_id: int) -> list[Any]:
    return list(
        conn.execute(
            select(FeedIntegration)
            .where(FeedIntegration.property_id == property_id)
            .order_by(FeedIntegration.id)
        ).fetchall()
    )
