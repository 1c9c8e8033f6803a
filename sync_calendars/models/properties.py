# models/properties.py

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Time
from sqlalchemy.sql import func

from sync_calendars.models.base import Base, fk, table_args


class Property(Base):
    """
    A lodging property as seen by the reconciliation engine.

    Owned by the surrounding CRUD system. The engine only reads the timezone and
    the default check-in/check-out times, and locks the row to serialize writes
    that touch the property's reservations. Missing values are configuration
    gaps: guarded writes fail closed instead of assuming a default.
    """

    __tablename__ = "properties"
    __table_args__ = table_args()

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False)
    timezone = Column(String, nullable=True)  # IANA name, e.g. "Europe/Bucharest"
    check_in_time = Column(Time, nullable=True)
    check_out_time = Column(Time, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )


class RoomCategory(Base):
    """Room category (room type) registry entry. Read-only reference data."""

    __tablename__ = "room_categories"
    __table_args__ = table_args()

    id = Column(Integer, primary_key=True, autoincrement=True)
    property_id = Column(
        Integer, ForeignKey(fk("properties.id"), ondelete="CASCADE"), nullable=False, index=True
    )
    name = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class Room(Base):
    """Physical room registry entry. Read-only reference data."""

    __tablename__ = "rooms"
    __table_args__ = table_args()

    id = Column(Integer, primary_key=True, autoincrement=True)
    property_id = Column(
        Integer, ForeignKey(fk("properties.id"), ondelete="CASCADE"), nullable=False, index=True
    )
    room_category_id = Column(
        Integer, ForeignKey(fk("room_categories.id"), ondelete="SET NULL"), nullable=True
    )
    name = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
