"""
Slot enumeration and occupancy computation.

Service runs in two sittings with half-hourly slots. Occupancy for a slot is
the sum of party sizes of its pending and confirmed bookings; remaining
capacity is the restaurant's capacity minus that sum. Nothing here is cached:
admission and the "available_times" hint always read the live store.
"""

from dataclasses import dataclass
from datetime import date, time
from typing import Optional, Union

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from tablerewards.core.errors import InvalidRequestError
from tablerewards.models.booking import ACTIVE_STATUSES, Booking
from tablerewards.models.restaurant import Restaurant

LUNCH_SLOTS = tuple(time(h, m) for h in (11, 12, 13) for m in (0, 30))
DINNER_SLOTS = tuple(time(h, m) for h in range(17, 21) for m in (0, 30)) + (time(21, 0),)
SERVICE_SLOTS = LUNCH_SLOTS + DINNER_SLOTS


def format_slot(value: time) -> str:
    return value.strftime("%H:%M")


def parse_slot(value: Union[str, time]) -> time:
    """Map "19:00" (or "19:00:00", or a time) onto a service slot."""
    if isinstance(value, time):
        candidate = value.replace(tzinfo=None)
    else:
        try:
            candidate = time.fromisoformat(str(value).strip())
        except ValueError:
            raise InvalidRequestError(f"Invalid time format: {value!r}")

    if candidate not in SERVICE_SLOTS:
        raise InvalidRequestError(
            f"{format_slot(candidate)} is not a bookable time. "
            f"Choose one of: {', '.join(format_slot(s) for s in SERVICE_SLOTS)}"
        )
    return candidate


async def slot_occupancy(
    db: AsyncSession,
    restaurant_id: int,
    booking_date: date,
    booking_time: Optional[time] = None,
) -> dict[time, int]:
    """Covers held by non-cancelled bookings, per slot, for one restaurant and day."""
    query = (
        select(Booking.time, func.coalesce(func.sum(Booking.party_size), 0))
        .where(
            Booking.restaurant_id == restaurant_id,
            Booking.date == booking_date,
            Booking.status.in_(ACTIVE_STATUSES),
        )
        .group_by(Booking.time)
    )
    if booking_time is not None:
        query = query.where(Booking.time == booking_time)

    result = await db.execute(query)
    return {slot: int(covers) for slot, covers in result.all()}


async def available_times(
    db: AsyncSession,
    restaurant_id: int,
    capacity: int,
    booking_date: date,
    party_size: int,
) -> list[str]:
    """Service slots on `booking_date` with room for `party_size` more covers."""
    occupancy = await slot_occupancy(db, restaurant_id, booking_date)
    return [
        format_slot(slot)
        for slot in SERVICE_SLOTS
        if capacity - occupancy.get(slot, 0) >= party_size
    ]


@dataclass
class AvailabilitySummary:
    restaurant_id: int
    date: date
    party_size: int
    total_capacity: int
    current_bookings: int
    available_times: list[str]
    slots: list[dict]


async def get_availability(
    db: AsyncSession,
    restaurant: Restaurant,
    booking_date: date,
    party_size: int,
    today: Optional[date] = None,
) -> AvailabilitySummary:
    """Per-slot remaining seats for a day. Past days report no available times."""
    today = today or date.today()
    occupancy = await slot_occupancy(db, restaurant.id, booking_date)

    slots = [
        {"time": format_slot(slot), "remaining": max(restaurant.capacity - occupancy.get(slot, 0), 0)}
        for slot in SERVICE_SLOTS
    ]
    bookable = booking_date >= today
    return AvailabilitySummary(
        restaurant_id=restaurant.id,
        date=booking_date,
        party_size=party_size,
        total_capacity=restaurant.capacity,
        current_bookings=sum(occupancy.values()),
        available_times=[s["time"] for s in slots if bookable and s["remaining"] >= party_size],
        slots=slots,
    )
