# models/inbox.py

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Time,
)
from sqlalchemy.sql import func

from sync_calendars.models.base import Base, JSONType, fk, table_args


class UnassignedEvent(Base):
    """
    Inbox entry for a channel event (or merge) that could not be resolved automatically.

    ``raw_payload`` keeps the parsed event fields as JSON for the operator.
    ``room_id`` / ``room_category_id`` are the hints from the feed's scope.
    """

    __tablename__ = "unassigned_events"
    __table_args__ = table_args(
        Index("ix_unassigned_events_property_resolved", "property_id", "resolved"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    property_id = Column(
        Integer, ForeignKey(fk("properties.id"), ondelete="CASCADE"), nullable=False
    )
    integration_id = Column(
        Integer, ForeignKey(fk("feed_integrations.id"), ondelete="SET NULL"), nullable=True
    )
    room_id = Column(Integer, nullable=True)
    room_category_id = Column(Integer, nullable=True)
    uid = Column(String, nullable=True)
    summary = Column(String, nullable=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=True)
    end_time = Column(Time, nullable=True)
    reason = Column(String, nullable=False)
    detail = Column(String, nullable=True)
    raw_payload = Column(JSONType, nullable=True)
    resolved = Column(Boolean, nullable=False, default=False)
    resolved_reservation_id = Column(
        Integer, ForeignKey(fk("reservations.id"), ondelete="SET NULL"), nullable=True
    )
    resolved_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )
