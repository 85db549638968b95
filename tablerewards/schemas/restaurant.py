"""
Pydantic schemas for restaurant directory and availability responses.
"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class RestaurantCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    cuisine: Optional[str] = Field(None, max_length=50)
    location: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    capacity: int = Field(50, gt=0, le=1000)
    # Only honoured for system admins; managers always own what they create
    admin_id: Optional[int] = None


class RestaurantUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    cuisine: Optional[str] = Field(None, max_length=50)
    location: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    capacity: Optional[int] = Field(None, gt=0, le=1000)

    @field_validator("name", "capacity")
    @classmethod
    def reject_null(cls, value):
        # Omit the field to leave it unchanged; these columns cannot be cleared
        if value is None:
            raise ValueError("may not be null")
        return value


class RestaurantResponse(BaseModel):
    id: int
    name: str
    cuisine: Optional[str]
    location: Optional[str]
    description: Optional[str]
    capacity: int
    admin_id: Optional[int]
    created_at: datetime

    model_config = {"from_attributes": True}


class RestaurantListResponse(BaseModel):
    restaurants: list[RestaurantResponse]
    total: int
    page: int
    page_size: int
    cached: bool = False


class SlotAvailability(BaseModel):
    time: str
    remaining: int


class AvailabilityResponse(BaseModel):
    restaurant_id: int
    date: date
    party_size: int
    total_capacity: int
    current_bookings: int
    available_times: list[str]
    slots: list[SlotAvailability]
