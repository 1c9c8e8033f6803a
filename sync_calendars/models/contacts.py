# models/contacts.py

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.sql import func

from sync_calendars.models.base import Base, fk, table_args


class ReservationContact(Base):
    """Guest contact details, one row per reservation."""

    __tablename__ = "reservation_contacts"
    __table_args__ = table_args()

    reservation_id = Column(
        Integer, ForeignKey(fk("reservations.id"), ondelete="CASCADE"), primary_key=True
    )
    email = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    address = Column(String, nullable=True)
    city = Column(String, nullable=True)
    country = Column(String, nullable=True)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )


class ReservationDocument(Base):
    """
    Pointer to a guest document (ID scan, signed form) held in external storage.

    Only ``reservation_id`` is ever changed by this service, when a merge moves
    documents from a placeholder onto the confirmed reservation.
    """

    __tablename__ = "reservation_documents"
    __table_args__ = table_args()

    id = Column(Integer, primary_key=True, autoincrement=True)
    reservation_id = Column(
        Integer,
        ForeignKey(fk("reservations.id"), ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    kind = Column(String, nullable=False)
    storage_path = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
