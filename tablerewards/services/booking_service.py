"""
Booking engine: admission of new bookings against per-slot capacity.

CONCURRENCY STRATEGY: Guarded UPDATE on the slot row
====================================================

Problem:
  Two diners try to book the last table for 19:00 simultaneously.
  Both read "4 seats left", both insert a party of 4, both succeed.
  Result: Overbooking.

Solution:
  Every (restaurant, date, time) has a BookingSlot row holding the covers
  already booked and a `version` change counter.

  1. Read the slot row (created lazily, seeded from existing bookings)
  2. UPDATE booking_slots SET booked_covers = booked_covers + N, version = version + 1
     WHERE id = :slot_id AND booked_covers + N <= :capacity
  3. If rows_affected == 0, a competing booking took the seats between the
     read and the update -> roll back, re-read and retry once
  4. Insert the booking (status pending) in the same transaction and commit

  The guard is on capacity, not on the version read in step 1: a competing
  admission that leaves enough room does not make this one fail.

On SQLite every transaction starts with BEGIN IMMEDIATE (see db.session),
which serializes writers outright. On PostgreSQL the guarded UPDATE takes the
row lock and re-evaluates its WHERE clause after a competing commit.
"""

import asyncio
from datetime import date, time
from time import perf_counter
from typing import Awaitable, Optional, TypeVar, Union

from sqlalchemy import exc as sa_exc
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from tablerewards.core.config import get_settings
from tablerewards.core.errors import (
    BookingError,
    ConflictError,
    InvalidRequestError,
    NotFoundError,
    SlotUnavailableError,
    UnavailableError,
)
from tablerewards.core.logging import get_logger
from tablerewards.core.metrics import booking_latency, record_booking_attempt, record_retry
from tablerewards.models.booking import (
    MAX_PARTY_SIZE,
    MAX_SPECIAL_REQUESTS_LENGTH,
    MIN_PARTY_SIZE,
    Booking,
    BookingStatus,
)
from tablerewards.models.booking_slot import BookingSlot
from tablerewards.services.availability_service import (
    available_times,
    format_slot,
    parse_slot,
    slot_occupancy,
)
from tablerewards.services.restaurant_service import find_restaurant
from tablerewards.services.results import BookingRequestResult

logger = get_logger(__name__)
settings = get_settings()

# One attempt plus a single retry after a lost compare-and-update
MAX_ADMISSION_ATTEMPTS = 2

T = TypeVar("T")

_BACKEND_ERRORS = (
    sa_exc.OperationalError,
    sa_exc.InterfaceError,
    sa_exc.TimeoutError,
)


async def run_bounded(awaitable: Awaitable[T], timeout: Optional[float] = None) -> T:
    """
    Await `awaitable` within BOOKING_TIMEOUT_SECONDS.

    Timeouts and backing-store failures become UnavailableError so callers
    see a single retryable kind.
    """
    timeout = settings.BOOKING_TIMEOUT_SECONDS if timeout is None else timeout
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning("booking_timeout", timeout_seconds=timeout)
        raise UnavailableError("Booking request timed out. Please retry.")
    except _BACKEND_ERRORS as e:
        logger.error("booking_store_unavailable", error=str(e))
        raise UnavailableError()


async def safe_rollback(db: AsyncSession) -> None:
    """Roll back, logging rather than masking the original error if that fails too."""
    try:
        await db.rollback()
    except sa_exc.SQLAlchemyError as e:
        logger.error("rollback_failed", error=str(e))


def validate_party_size(party_size: int) -> int:
    if isinstance(party_size, bool) or not isinstance(party_size, int):
        raise InvalidRequestError("Party size must be a whole number")
    if not MIN_PARTY_SIZE <= party_size <= MAX_PARTY_SIZE:
        raise InvalidRequestError(
            f"Party size must be between {MIN_PARTY_SIZE} and {MAX_PARTY_SIZE}"
        )
    return party_size


def normalize_special_requests(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    if len(value) > MAX_SPECIAL_REQUESTS_LENGTH:
        raise InvalidRequestError(
            f"Special requests must be at most {MAX_SPECIAL_REQUESTS_LENGTH} characters"
        )
    return value or None


async def _get_or_create_slot(
    db: AsyncSession,
    restaurant_id: int,
    booking_date: date,
    booking_time: time,
) -> BookingSlot:
    query = (
        select(BookingSlot)
        .where(
            BookingSlot.restaurant_id == restaurant_id,
            BookingSlot.date == booking_date,
            BookingSlot.time == booking_time,
        )
        .execution_options(populate_existing=True)
    )
    slot = (await db.execute(query)).scalar_one_or_none()
    if slot is not None:
        return slot

    occupancy = await slot_occupancy(db, restaurant_id, booking_date, booking_time)
    slot = BookingSlot(
        restaurant_id=restaurant_id,
        date=booking_date,
        time=booking_time,
        booked_covers=occupancy.get(booking_time, 0),
        version=1,
    )
    try:
        async with db.begin_nested():
            db.add(slot)
    except sa_exc.IntegrityError:
        # Another request created the row first
        logger.debug("booking_slot_create_race", restaurant_id=restaurant_id, date=str(booking_date))
        return (await db.execute(query)).scalar_one()
    return slot


async def _admit_booking(
    db: AsyncSession,
    user_id: int,
    restaurant_id: int,
    booking_date: date,
    booking_time: time,
    party_size: int,
    special_requests: Optional[str],
) -> Booking:
    for attempt in range(1, MAX_ADMISSION_ATTEMPTS + 1):
        # Step 1: Read restaurant capacity and the slot's current state
        restaurant = await find_restaurant(db, restaurant_id)
        if restaurant is None:
            raise NotFoundError(f"Restaurant {restaurant_id} not found")
        capacity = restaurant.capacity

        slot = await _get_or_create_slot(db, restaurant_id, booking_date, booking_time)
        slot_id = slot.id
        remaining = capacity - slot.booked_covers

        if remaining < party_size:
            logger.warning(
                "booking_rejected_no_capacity",
                restaurant_id=restaurant_id,
                date=str(booking_date),
                time=format_slot(booking_time),
                requested=party_size,
                remaining=remaining,
            )
            await db.rollback()
            hint = await available_times(db, restaurant_id, capacity, booking_date, party_size)
            raise SlotUnavailableError(
                f"Not enough capacity at {format_slot(booking_time)}. "
                f"Requested: {party_size}, Available: {max(remaining, 0)}",
                available_times=hint,
            )

        # Step 2: Guarded update - only if the party still fits at write time
        update_result = await db.execute(
            update(BookingSlot)
            .where(
                BookingSlot.id == slot_id,
                BookingSlot.booked_covers + party_size <= capacity,
            )
            .values(
                booked_covers=BookingSlot.booked_covers + party_size,
                version=BookingSlot.version + 1,
            )
            .execution_options(synchronize_session=False)
        )

        if update_result.rowcount == 0:
            logger.info(
                "booking_retry",
                restaurant_id=restaurant_id,
                slot_id=slot_id,
                attempt=attempt,
                reason="capacity_changed",
            )
            record_retry("admit")
            await db.rollback()
            if attempt == MAX_ADMISSION_ATTEMPTS:
                raise ConflictError()
            continue

        # Step 3: Create booking record in the same transaction
        booking = Booking(
            user_id=user_id,
            restaurant_id=restaurant_id,
            date=booking_date,
            time=booking_time,
            party_size=party_size,
            status=BookingStatus.PENDING.value,
            special_requests=special_requests,
        )
        db.add(booking)
        await db.flush()
        await db.refresh(booking)
        await db.commit()

        logger.info(
            "booking_created",
            booking_id=booking.id,
            user_id=user_id,
            restaurant_id=restaurant_id,
            date=str(booking_date),
            time=format_slot(booking_time),
            party_size=party_size,
            attempt=attempt,
        )
        return booking

    raise ConflictError()


async def _request_booking(
    db: AsyncSession,
    user_id: int,
    restaurant_id: int,
    booking_date: date,
    booking_time: Union[str, time],
    party_size: int,
    special_requests: Optional[str],
    today: date,
) -> Booking:
    restaurant = await find_restaurant(db, restaurant_id)
    if restaurant is None:
        raise NotFoundError(f"Restaurant {restaurant_id} not found")

    if booking_date < today:
        raise InvalidRequestError("Cannot book a date in the past")
    slot_time = parse_slot(booking_time)
    validate_party_size(party_size)
    special_requests = normalize_special_requests(special_requests)

    return await _admit_booking(
        db, user_id, restaurant_id, booking_date, slot_time, party_size, special_requests
    )


async def request_booking(
    db: AsyncSession,
    user_id: int,
    restaurant_id: int,
    booking_date: date,
    booking_time: Union[str, time],
    party_size: int,
    special_requests: Optional[str] = None,
    today: Optional[date] = None,
) -> BookingRequestResult:
    """
    Admit a booking for one service slot, or explain why not.

    Never raises a BookingError: validation failures, a full slot (with the
    other times that would fit), lost races and store outages all come back
    as a BookingRequestResult with `error` set.
    """
    started = perf_counter()
    try:
        booking = await run_bounded(
            _request_booking(
                db,
                user_id,
                restaurant_id,
                booking_date,
                booking_time,
                party_size,
                special_requests,
                today or date.today(),
            )
        )
    except BookingError as e:
        await safe_rollback(db)
        record_booking_attempt(e.kind.value)
        logger.info(
            "booking_rejected",
            user_id=user_id,
            restaurant_id=restaurant_id,
            error=e.kind.value,
            reason=e.message,
        )
        return BookingRequestResult.failure(e)
    finally:
        booking_latency.observe(perf_counter() - started)

    record_booking_attempt("created")
    return BookingRequestResult.success(booking)


async def find_booking(db: AsyncSession, booking_id: int) -> Optional[Booking]:
    result = await db.execute(
        select(Booking)
        .where(Booking.id == booking_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_user_bookings(db: AsyncSession, user_id: int) -> list[Booking]:
    """Get all bookings for a user, newest first."""
    result = await db.execute(
        select(Booking)
        .where(Booking.user_id == user_id)
        .order_by(Booking.created_at.desc(), Booking.id.desc())
    )
    return list(result.scalars().all())


async def get_restaurant_bookings(
    db: AsyncSession,
    restaurant_id: int,
    booking_date: Optional[date] = None,
) -> list[Booking]:
    """A restaurant's bookings in service order, optionally for one day."""
    query = select(Booking).where(Booking.restaurant_id == restaurant_id)
    if booking_date is not None:
        query = query.where(Booking.date == booking_date)
    result = await db.execute(query.order_by(Booking.date.asc(), Booking.time.asc(), Booking.id.asc()))
    return list(result.scalars().all())
