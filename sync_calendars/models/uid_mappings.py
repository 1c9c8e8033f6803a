# models/uid_mappings.py

from sqlalchemy import (
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Time,
    UniqueConstraint,
)
from sqlalchemy.sql import func

from sync_calendars.models.base import Base, fk, table_args


class UidMapping(Base):
    """
    Identity map entry: channel event UID -> internal reservation.

    UIDs are scoped per property, so two properties receiving the same vendor
    UID never collide. The row also snapshots the window and room observed at
    the last sync, which is what the next sync compares against.
    """

    __tablename__ = "uid_mappings"
    __table_args__ = table_args(
        UniqueConstraint("property_id", "uid", name="uq_uid_mappings_property_uid"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    property_id = Column(
        Integer, ForeignKey(fk("properties.id"), ondelete="CASCADE"), nullable=False
    )
    uid = Column(String, nullable=False)
    integration_id = Column(
        Integer, ForeignKey(fk("feed_integrations.id"), ondelete="SET NULL"), nullable=True
    )
    reservation_id = Column(
        Integer, ForeignKey(fk("reservations.id"), ondelete="SET NULL"), nullable=True
    )
    room_id = Column(Integer, nullable=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=True)
    end_time = Column(Time, nullable=True)
    last_changed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )
