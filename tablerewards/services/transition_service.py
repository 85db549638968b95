"""
Booking status transitions and the confirmation reward.

    pending   -> confirmed | cancelled
    confirmed -> confirmed (no-op) | cancelled
    cancelled -> (terminal)

The status change is a compare-and-set on the previous status, so two
concurrent confirmations cannot both see "pending" and both pay out. The
ledger's unique (booking_id, reason) constraint backs that up.
"""

from typing import Optional

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from tablerewards.core.errors import (
    BookingError,
    ConflictError,
    ForbiddenError,
    InvalidRequestError,
    InvalidTransitionError,
    NotFoundError,
)
from tablerewards.core.logging import get_logger
from tablerewards.core.metrics import record_retry, record_transition
from tablerewards.models.booking import Booking, BookingStatus
from tablerewards.models.booking_slot import BookingSlot
from tablerewards.services.access_service import Actor, can_act_on_booking
from tablerewards.services.booking_service import find_booking, run_bounded, safe_rollback
from tablerewards.services.interfaces.notifier import BookingNotifier
from tablerewards.services.notification_service import dispatch_after_commit
from tablerewards.services.results import TransitionResult
from tablerewards.services.reward_service import issue_booking_reward

logger = get_logger(__name__)

MAX_TRANSITION_ATTEMPTS = 2

LEGAL_TRANSITIONS = {
    BookingStatus.PENDING.value: frozenset({BookingStatus.CONFIRMED.value, BookingStatus.CANCELLED.value}),
    BookingStatus.CONFIRMED.value: frozenset({BookingStatus.CONFIRMED.value, BookingStatus.CANCELLED.value}),
    BookingStatus.CANCELLED.value: frozenset(),
}

TARGET_STATUSES = (BookingStatus.CONFIRMED.value, BookingStatus.CANCELLED.value)


async def _release_covers(db: AsyncSession, booking: Booking) -> None:
    await db.execute(
        update(BookingSlot)
        .where(
            BookingSlot.restaurant_id == booking.restaurant_id,
            BookingSlot.date == booking.date,
            BookingSlot.time == booking.time,
        )
        .values(
            booked_covers=BookingSlot.booked_covers - booking.party_size,
            version=BookingSlot.version + 1,
        )
        .execution_options(synchronize_session=False)
    )


async def _transition(
    db: AsyncSession,
    actor: Actor,
    booking_id: int,
    new_status: str,
) -> TransitionResult:
    for attempt in range(1, MAX_TRANSITION_ATTEMPTS + 1):
        booking = await find_booking(db, booking_id)
        if booking is None:
            raise NotFoundError(f"Booking {booking_id} not found")

        if not await can_act_on_booking(db, actor, booking):
            raise ForbiddenError()

        previous = booking.status
        if new_status not in LEGAL_TRANSITIONS.get(previous, ()):
            raise InvalidTransitionError(f"Cannot change a {previous} booking to {new_status}")

        if previous == new_status:
            await db.commit()
            return TransitionResult(booking=booking, previous_status=previous)

        owner_id = booking.user_id
        cas = await db.execute(
            update(Booking)
            .where(Booking.id == booking_id, Booking.status == previous)
            .values(status=new_status)
            .execution_options(synchronize_session=False)
        )
        if cas.rowcount == 0:
            logger.info(
                "transition_retry",
                booking_id=booking_id,
                attempt=attempt,
                expected_status=previous,
            )
            record_retry("transition")
            await db.rollback()
            if attempt == MAX_TRANSITION_ATTEMPTS:
                raise ConflictError("Booking was modified concurrently. Please try again.")
            continue

        if new_status == BookingStatus.CANCELLED.value:
            await _release_covers(db, booking)

        rewarded = False
        if new_status == BookingStatus.CONFIRMED.value:
            rewarded = await issue_booking_reward(db, booking_id, owner_id)

        booking = await find_booking(db, booking_id)
        await db.commit()

        logger.info(
            "booking_status_changed",
            booking_id=booking_id,
            actor_id=actor.user_id,
            from_status=previous,
            to_status=new_status,
            rewarded=rewarded,
            attempt=attempt,
        )
        return TransitionResult(
            booking=booking,
            previous_status=previous,
            changed=True,
            rewarded=rewarded,
        )

    raise ConflictError()


async def transition_booking(
    db: AsyncSession,
    actor: Actor,
    booking_id: int,
    new_status: str,
    notifier: Optional[BookingNotifier] = None,
) -> TransitionResult:
    """
    Move a booking to `confirmed` or `cancelled` on behalf of `actor`.

    A fresh confirmation credits the owner and, once committed, schedules the
    confirmation email on `notifier`. Errors come back on the result.
    """
    try:
        if new_status not in TARGET_STATUSES:
            raise InvalidRequestError(f"Status must be one of: {', '.join(TARGET_STATUSES)}")
        result = await run_bounded(_transition(db, actor, booking_id, new_status))
    except BookingError as e:
        await safe_rollback(db)
        record_transition(new_status if new_status in TARGET_STATUSES else "invalid", e.kind.value)
        logger.info(
            "transition_rejected",
            booking_id=booking_id,
            actor_id=actor.user_id,
            to_status=new_status,
            error=e.kind.value,
            reason=e.message,
        )
        return TransitionResult.failure(e)

    record_transition(new_status, "changed" if result.changed else "unchanged")
    if result.changed and new_status == BookingStatus.CONFIRMED.value and notifier is not None:
        dispatch_after_commit(notifier, "confirmation", booking_id)
    return result
