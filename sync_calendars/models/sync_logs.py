# models/sync_logs.py

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.sql import func

from sync_calendars.models.base import Base, JSONType, fk, table_args


class FeedSyncLog(Base):
    """One row per feed run: outcome counters, status and error message."""

    __tablename__ = "feed_sync_logs"
    __table_args__ = table_args()

    id = Column(Integer, primary_key=True, autoincrement=True)
    integration_id = Column(
        Integer,
        ForeignKey(fk("feed_integrations.id"), ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    started_at = Column(DateTime(timezone=True), nullable=False)
    finished_at = Column(DateTime(timezone=True), nullable=True)
    status = Column(String, nullable=False)
    counters = Column(JSONType, nullable=True)
    error_message = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
