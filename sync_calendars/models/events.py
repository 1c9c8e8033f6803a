# models/events.py

from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy.sql import func

from sync_calendars.models.base import Base, JSONType, table_args


class DomainEvent(Base):
    """
    Outbox of things that happened (reservation created, hold expired, ...).

    Written in the same transaction as the change it describes, so consumers
    (notifications, dashboards) only ever see committed facts and a consumer
    failure can never roll back a reconciliation.
    """

    __tablename__ = "domain_events"
    __table_args__ = table_args()

    id = Column(Integer, primary_key=True, autoincrement=True)
    event_type = Column(String, nullable=False, index=True)
    property_id = Column(Integer, nullable=False)
    reservation_id = Column(Integer, nullable=True)
    payload = Column(JSONType, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
