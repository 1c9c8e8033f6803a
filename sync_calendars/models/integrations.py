# models/integrations.py

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
)
from sqlalchemy.sql import func

from sync_calendars.models.base import Base, fk, table_args


class FeedIntegration(Base):
    """
    An inbound channel calendar feed.

    Scoped to exactly one room or one room category of a property: the scope
    becomes the room or category hint handed to the allocation matcher.
    """

    __tablename__ = "feed_integrations"
    __table_args__ = table_args(
        CheckConstraint(
            "(room_id IS NULL) <> (room_category_id IS NULL)",
            name="ck_feed_integrations_single_scope",
        ),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    property_id = Column(
        Integer, ForeignKey(fk("properties.id"), ondelete="CASCADE"), nullable=False, index=True
    )
    room_id = Column(Integer, ForeignKey(fk("rooms.id"), ondelete="CASCADE"), nullable=True)
    room_category_id = Column(
        Integer, ForeignKey(fk("room_categories.id"), ondelete="CASCADE"), nullable=True
    )
    provider = Column(String, nullable=False)  # e.g. "booking", "airbnb"
    url = Column(String, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    last_sync_at = Column(DateTime(timezone=True), nullable=True)
    last_status = Column(String, nullable=True)
    last_error = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )
