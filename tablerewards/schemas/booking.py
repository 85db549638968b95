"""
Pydantic schemas for booking-related request/response validation.

Range and slot checks for new bookings live in the booking engine rather
than here, so that every rejection comes back as the same structured error.
"""

from datetime import date, datetime, time
from typing import Literal, Optional

from pydantic import BaseModel, field_serializer


class BookingCreate(BaseModel):
    restaurant_id: int
    date: date
    time: str
    party_size: int
    special_requests: Optional[str] = None


class BookingStatusUpdate(BaseModel):
    status: Literal["confirmed", "cancelled"]


class BookingResponse(BaseModel):
    id: int
    user_id: int
    restaurant_id: int
    date: date
    time: time
    party_size: int
    status: str
    special_requests: Optional[str]
    created_at: datetime

    model_config = {"from_attributes": True}

    @field_serializer("time")
    def serialize_time(self, value: time) -> str:
        return value.strftime("%H:%M")


class BookingCreatedResponse(BaseModel):
    booking_id: int
    booking: BookingResponse


class BookingTransitionResponse(BaseModel):
    message: str
    booking: BookingResponse
    changed: bool
    rewarded: bool
