"""
Booking endpoints: admission and status changes.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from tablerewards.api.errors import raise_for_error
from tablerewards.core.errors import ForbiddenError, NotFoundError
from tablerewards.core.logging import get_logger
from tablerewards.core.security import get_current_actor
from tablerewards.db.session import get_db
from tablerewards.models.booking import BookingStatus
from tablerewards.schemas.booking import (
    BookingCreate,
    BookingCreatedResponse,
    BookingResponse,
    BookingStatusUpdate,
    BookingTransitionResponse,
)
from tablerewards.services.access_service import Actor, can_act_on_booking
from tablerewards.services.booking_service import find_booking, get_user_bookings, request_booking
from tablerewards.services.interfaces.notifier import BookingNotifier
from tablerewards.services.notifier_factory import get_notifier
from tablerewards.services.transition_service import transition_booking

logger = get_logger(__name__)
router = APIRouter(prefix="/bookings", tags=["Bookings"])

_TRANSITION_MESSAGES = {
    BookingStatus.CONFIRMED.value: "Booking confirmed",
    BookingStatus.CANCELLED.value: "Booking cancelled",
}


@router.post("/", response_model=BookingCreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    booking_data: BookingCreate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """
    Book a table for one service slot.

    New bookings start as `pending`. If the slot cannot seat the party the
    response is 409 with the other times that day that still can.
    """
    result = await request_booking(
        db,
        user_id=actor.user_id,
        restaurant_id=booking_data.restaurant_id,
        booking_date=booking_data.date,
        booking_time=booking_data.time,
        party_size=booking_data.party_size,
        special_requests=booking_data.special_requests,
    )
    if not result.ok:
        raise_for_error(result.error, result.message, result.available_times)
    return {"booking_id": result.booking_id, "booking": result.booking}


@router.get("/", response_model=list[BookingResponse])
async def list_user_bookings(
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """Get all bookings for the authenticated user, newest first."""
    return await get_user_bookings(db, actor.user_id)


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking_endpoint(
    booking_id: int,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    booking = await find_booking(db, booking_id)
    if booking is None:
        raise NotFoundError(f"Booking {booking_id} not found")
    if not await can_act_on_booking(db, actor, booking):
        raise ForbiddenError("You cannot view this booking")
    return booking


async def _transition(
    db: AsyncSession,
    actor: Actor,
    booking_id: int,
    new_status: str,
    notifier: BookingNotifier,
) -> dict:
    result = await transition_booking(db, actor, booking_id, new_status, notifier=notifier)
    if not result.ok:
        raise_for_error(result.error, result.message)

    message = _TRANSITION_MESSAGES[new_status]
    if not result.changed:
        message = f"Booking already {result.booking.status}"
    return {
        "message": message,
        "booking": result.booking,
        "changed": result.changed,
        "rewarded": result.rewarded,
    }


@router.patch("/{booking_id}", response_model=BookingTransitionResponse)
async def update_booking_status(
    booking_id: int,
    update: BookingStatusUpdate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    notifier: BookingNotifier = Depends(get_notifier),
):
    """Set a booking's status to `confirmed` or `cancelled`."""
    return await _transition(db, actor, booking_id, update.status, notifier)


@router.post("/{booking_id}/confirm", response_model=BookingTransitionResponse)
async def confirm_booking(
    booking_id: int,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    notifier: BookingNotifier = Depends(get_notifier),
):
    """
    Confirm a booking. The first confirmation credits the diner with
    loyalty points and sends a confirmation email; repeats are no-ops.
    """
    return await _transition(db, actor, booking_id, BookingStatus.CONFIRMED.value, notifier)


@router.post("/{booking_id}/cancel", response_model=BookingTransitionResponse)
async def cancel_booking(
    booking_id: int,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    notifier: BookingNotifier = Depends(get_notifier),
):
    """Cancel a booking and release its seats."""
    return await _transition(db, actor, booking_id, BookingStatus.CANCELLED.value, notifier)
