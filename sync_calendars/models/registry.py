"""Import every model so ``Base.metadata`` knows the full schema (Alembic, create_all)."""

from sync_calendars.models.base import Base
from sync_calendars.models.contacts import ReservationContact, ReservationDocument
from sync_calendars.models.events import DomainEvent
from sync_calendars.models.inbox import UnassignedEvent
from sync_calendars.models.integrations import FeedIntegration
from sync_calendars.models.properties import Property, Room, RoomCategory
from sync_calendars.models.reservations import Reservation
from sync_calendars.models.sync_logs import FeedSyncLog
from sync_calendars.models.uid_mappings import UidMapping

__all__ = [
    "Base",
    "DomainEvent",
    "FeedIntegration",
    "FeedSyncLog",
    "Property",
    "Reservation",
    "ReservationContact",
    "ReservationDocument",
    "Room",
    "RoomCategory",
    "UidMapping",
    "UnassignedEvent",
]
