from typing import Optional

from pydantic import Field

from sync_calendars.schemas.reservations import ContactPayload, StayPayload


class PlaceholderCreatePayload(StayPayload):
    """
    Schema for a guest self-submission.

    The stay is held for ``hold_hours`` (server default when omitted) waiting
    for a channel to confirm it.
    """

    property_id: int = Field(..., description="Owning property")
    room_id: Optional[int] = Field(None, description="Requested room")
    room_category_id: Optional[int] = Field(None, description="Requested room category")
    guest_first_name: Optional[str] = None
    guest_last_name: Optional[str] = None
    contact: Optional[ContactPayload] = None
    hold_hours: Optional[int] = Field(None, gt=0, description="Hold lifetime override")
