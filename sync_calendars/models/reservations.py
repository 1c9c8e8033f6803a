# models/reservations.py

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

from sync_calendars.models.base import Base, fk, table_args


class Reservation(Base):
    """
    ORM model for a stay: a contiguous ``[start_date, end_date)`` on a room.

    Covers every provenance (manual staff entry, guest-form placeholder,
    channel feed). Placeholders are reservations with ``is_soft_hold`` set and a
    ``hold_status``. Rows are never deleted; they are retired by setting
    ``status`` to cancelled (or ``hold_status`` to expired for lapsed holds).

    Times of day are local to the property and optional; the property's
    check-in/check-out defaults fill them in when conflicts are evaluated.
    """

    __tablename__ = "reservations"
    __table_args__ = table_args(
        Index("ix_reservations_property_dates", "property_id", "start_date", "end_date"),
        Index("ix_reservations_room_dates", "room_id", "start_date", "end_date"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    property_id = Column(
        Integer, ForeignKey(fk("properties.id"), ondelete="CASCADE"), nullable=False
    )
    room_id = Column(Integer, ForeignKey(fk("rooms.id"), ondelete="SET NULL"), nullable=True)
    room_category_id = Column(
        Integer, ForeignKey(fk("room_categories.id"), ondelete="SET NULL"), nullable=True
    )

    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)  # exclusive
    start_time = Column(Time, nullable=True)
    end_time = Column(Time, nullable=True)

    status = Column(String, nullable=False, default="confirmed")
    provenance = Column(String, nullable=False)

    # Soft hold
    is_soft_hold = Column(Boolean, nullable=False, default=False)
    hold_status = Column(String, nullable=True)
    hold_expires_at = Column(DateTime(timezone=True), nullable=True)

    # Channel linkage
    external_uid = Column(String, nullable=True, index=True)
    integration_id = Column(
        Integer, ForeignKey(fk("feed_integrations.id"), ondelete="SET NULL"), nullable=True
    )
    channel_name = Column(String, nullable=True)
    ota_reservation_id = Column(String, nullable=True)

    # Guest identity
    guest_first_name = Column(String, nullable=True)
    guest_last_name = Column(String, nullable=True)
    guest_name = Column(String, nullable=True)  # free text from the channel summary
    form_submitted_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )
