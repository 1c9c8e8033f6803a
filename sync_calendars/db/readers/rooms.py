from typing import Any, Optional

from sqlalchemy import func, select
from sqlalchemy.engine import Connection

from sync_calendars.models.properties import Room, RoomCategory


def get_room(conn: Connection, room_id: int) -> Optional[Any]:
    """Return the room row (id, property_id, room_category_id, name) or None."""
    return conn.execute(select(Room).where(Room.id == room_id)).fetchone()


def get_category(conn: Connection, category_id: int) -> Optional[Any]:
    return conn.execute(select(RoomCategory).where(RoomCategory.id == category_id)).fetchone()


def list_rooms_in_category(conn: Connection, category_id: int) -> list[Any]:
    """Rooms of a category in id order, which is also the room allocation order."""
    return list(
        conn.execute(
            select(Room).where(Room.room_category_id == category_id).order_by(Room.id)
        ).fetchall()
    )


def count_rooms_in_category(conn: Connection, category_id: int) -> int:
    return int(
        conn.execute(
            select(func.count()).select_from(Room).where(Room.room_category_id == category_id)
        ).scalar_one()
    )
