from enum import Enum


class ReservationStatus(str, Enum):
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class Provenance(str, Enum):
    MANUAL = "manual"
    GUEST_FORM = "guest-form"
    CHANNEL_FEED = "channel-feed"


class HoldStatus(str, Enum):
    PENDING = "pending"
    PROMOTED = "promoted"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


class InboxReason(str, Enum):
    AMBIGUOUS = "ambiguous"
    NO_FREE_ROOM = "no_free_room"
    CONFLICT = "conflict"
    AMBIGUOUS_MERGE = "ambiguous_merge"


class SyncStatus(str, Enum):
    OK = "ok"
    ERROR = "error"
