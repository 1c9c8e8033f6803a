from typing import Optional

from pydantic import BaseModel, Field, model_validator


class InboxAssignPayload(BaseModel):
    """Resolve an inbox entry onto a room or onto an existing reservation, not both."""

    room_id: Optional[int] = Field(None, description="Room to place the stay on")
    reservation_id: Optional[int] = Field(None, description="Existing reservation for the stay")

    @model_validator(mode="after")
    def check_exactly_one(self) -> "InboxAssignPayload":
        if (self.room_id is None) == (self.reservation_id is None):
            raise ValueError("Provide exactly one of room_id or reservation_id")
        return self
