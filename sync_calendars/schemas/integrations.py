from typing import Optional

from pydantic import BaseModel, Field, HttpUrl, model_validator


class IntegrationCreatePayload(BaseModel):
    """
    Schema for registering an inbound channel feed.

    A feed covers exactly one room or one room category.
    """

    provider: str = Field(..., min_length=1, description="Channel name, e.g. booking or airbnb")
    url: HttpUrl = Field(..., description="iCalendar export URL")
    room_id: Optional[int] = Field(None, description="Room the feed describes")
    room_category_id: Optional[int] = Field(None, description="Category the feed describes")

    @model_validator(mode="after")
    def check_single_scope(self) -> "IntegrationCreatePayload":
        if (self.room_id is None) == (self.room_category_id is None):
            raise ValueError("Provide exactly one of room_id or room_category_id")
        return self
