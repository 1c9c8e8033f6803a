from datetime import date, time
from typing import Any, Optional

from pydantic import BaseModel, Field, model_validator

from sync_calendars.normalizers.events import StayWindow


class ContactPayload(BaseModel):
    """Guest contact details. Empty fields are simply not stored."""

    email: Optional[str] = Field(None, description="Guest email")
    phone: Optional[str] = Field(None, description="Guest phone number")
    address: Optional[str] = Field(None, description="Street address")
    city: Optional[str] = Field(None, description="City")
    country: Optional[str] = Field(None, description="Country")

    def values(self) -> dict[str, Any]:
        return {key: value for key, value in self.model_dump().items() if value}


class StayPayload(BaseModel):
    """
    A stay window in the property's local time.

    Times are optional; the property's check-in/check-out defaults apply when
    they are omitted. ``end_date`` is exclusive.
    """

    start_date: date = Field(..., description="First night")
    end_date: date = Field(..., description="Departure day (exclusive)")
    start_time: Optional[time] = Field(None, description="Local check-in time")
    end_time: Optional[time] = Field(None, description="Local check-out time")

    def window(self) -> StayWindow:
        return StayWindow(self.start_date, self.end_date, self.start_time, self.end_time)


class ReservationCreatePayload(StayPayload):
    property_id: int = Field(..., description="Owning property")
    room_id: Optional[int] = Field(None, description="Room, if already assigned")
    room_category_id: Optional[int] = Field(None, description="Category, when no room is chosen yet")
    guest_first_name: Optional[str] = None
    guest_last_name: Optional[str] = None
    ota_reservation_id: Optional[str] = Field(None, description="Channel booking reference")
    contact: Optional[ContactPayload] = None


class ReservationUpdatePayload(BaseModel):
    """
    Move a reservation. Dates are replaced together; omitted times fall back to
    the property defaults.
    """

    start_date: Optional[date] = None
    end_date: Optional[date] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    room_id: Optional[int] = None

    @model_validator(mode="after")
    def check_dates_together(self) -> "ReservationUpdatePayload":
        has_times = self.start_time is not None or self.end_time is not None
        if (self.start_date is None) != (self.end_date is None) or (
            has_times and self.start_date is None
        ):
            raise ValueError("start_date and end_date must be given together")
        return self

    def window(self) -> Optional[StayWindow]:
        if self.start_date is None or self.end_date is None:
            return None
        return StayWindow(self.start_date, self.end_date, self.start_time, self.end_time)


class MergePayload(BaseModel):
    placeholder_id: int = Field(..., description="Placeholder to fold into the reservation")
    move_documents: bool = Field(True, description="Re-point the placeholder's documents")
