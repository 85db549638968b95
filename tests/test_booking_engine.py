"""
Service-level tests for booking admission, including concurrent requests.
"""

import asyncio
from datetime import date, time, timedelta

import pytest
from sqlalchemy import exc as sa_exc
from sqlalchemy import func, select, update

from tablerewards.core.errors import ErrorKind, UnavailableError
from tablerewards.models.booking import Booking
from tablerewards.models.booking_slot import BookingSlot
from tablerewards.services import booking_service
from tablerewards.services.booking_service import request_booking, run_bounded
from tablerewards.services.availability_service import SERVICE_SLOTS, parse_slot


async def _book(db, user, restaurant, booking_date, slot="19:00", party_size=2, **kwargs):
    return await request_booking(
        db,
        user_id=user.id,
        restaurant_id=restaurant.id,
        booking_date=booking_date,
        booking_time=slot,
        party_size=party_size,
        **kwargs,
    )


def test_service_slots():
    assert len(SERVICE_SLOTS) == 15
    assert SERVICE_SLOTS[0] == time(11, 0)
    assert time(13, 30) in SERVICE_SLOTS
    assert time(14, 0) not in SERVICE_SLOTS
    assert SERVICE_SLOTS[-1] == time(21, 0)


def test_parse_slot_accepts_seconds():
    assert parse_slot("19:00") == parse_slot("19:00:00") == time(19, 0)


@pytest.mark.asyncio
async def test_booking_starts_pending(db_session, test_user, test_restaurant, booking_date):
    result = await _book(db_session, test_user, test_restaurant, booking_date, special_requests="  window seat  ")

    assert result.ok
    assert result.booking_id == result.booking.id
    assert result.booking.status == "pending"
    assert result.booking.time == time(19, 0)
    assert result.booking.special_requests == "window seat"


@pytest.mark.asyncio
async def test_exact_fit_is_accepted(db_session, test_user, test_restaurant, booking_date):
    """Capacity 4, 2 already booked, party of 2 fits exactly."""
    first = await _book(db_session, test_user, test_restaurant, booking_date, party_size=2)
    second = await _book(db_session, test_user, test_restaurant, booking_date, party_size=2)

    assert first.ok and second.ok

    slot = (await db_session.execute(select(BookingSlot))).scalar_one()
    assert slot.booked_covers == 4


@pytest.mark.asyncio
async def test_overbooking_rejected_with_alternatives(db_session, test_user, test_restaurant, booking_date):
    await _book(db_session, test_user, test_restaurant, booking_date, slot="19:00", party_size=3)
    await _book(db_session, test_user, test_restaurant, booking_date, slot="19:30", party_size=4)

    result = await _book(db_session, test_user, test_restaurant, booking_date, slot="19:00", party_size=2)

    assert not result.ok
    assert result.error == ErrorKind.SLOT_UNAVAILABLE
    assert not result.retryable
    assert "19:00" not in result.available_times
    assert "19:30" not in result.available_times
    assert "11:00" in result.available_times
    assert "21:00" in result.available_times
    assert len(result.available_times) == 13

    count = (await db_session.execute(select(func.count(Booking.id)))).scalar()
    assert count == 2


@pytest.mark.asyncio
async def test_party_larger_than_capacity_has_no_alternatives(db_session, test_user, test_restaurant, booking_date):
    result = await _book(db_session, test_user, test_restaurant, booking_date, party_size=5)

    assert result.error == ErrorKind.SLOT_UNAVAILABLE
    assert result.available_times == []


@pytest.mark.asyncio
async def test_past_date_rejected(db_session, test_user, test_restaurant):
    result = await _book(db_session, test_user, test_restaurant, date.today() - timedelta(days=1))

    assert result.error == ErrorKind.INVALID_REQUEST
    count = (await db_session.execute(select(func.count(Booking.id)))).scalar()
    assert count == 0


@pytest.mark.asyncio
async def test_today_is_bookable(db_session, test_user, test_restaurant):
    today = date(2030, 5, 1)
    result = await _book(db_session, test_user, test_restaurant, today, today=today)
    assert result.ok


@pytest.mark.asyncio
@pytest.mark.parametrize("slot", ["14:00", "19:15", "10:30", "7pm", ""])
async def test_time_outside_service_rejected(db_session, test_user, test_restaurant, booking_date, slot):
    result = await _book(db_session, test_user, test_restaurant, booking_date, slot=slot)
    assert result.error == ErrorKind.INVALID_REQUEST


@pytest.mark.asyncio
@pytest.mark.parametrize("party_size", [0, -1, 21])
async def test_party_size_out_of_range(db_session, test_user, test_restaurant, booking_date, party_size):
    result = await _book(db_session, test_user, test_restaurant, booking_date, party_size=party_size)
    assert result.error == ErrorKind.INVALID_REQUEST


@pytest.mark.asyncio
async def test_special_requests_too_long(db_session, test_user, test_restaurant, booking_date):
    result = await _book(db_session, test_user, test_restaurant, booking_date, special_requests="x" * 501)
    assert result.error == ErrorKind.INVALID_REQUEST


@pytest.mark.asyncio
async def test_blank_special_requests_stored_as_null(db_session, test_user, test_restaurant, booking_date):
    result = await _book(db_session, test_user, test_restaurant, booking_date, special_requests="   ")
    assert result.ok
    assert result.booking.special_requests is None


@pytest.mark.asyncio
async def test_unknown_restaurant(db_session, test_user, booking_date):
    result = await request_booking(db_session, test_user.id, 9999, booking_date, "19:00", 2)
    assert result.error == ErrorKind.NOT_FOUND


@pytest.mark.asyncio
async def test_slot_seeded_from_existing_bookings(db_session, test_user, test_restaurant, booking_date):
    """Bookings written before the slot row existed still count."""
    db_session.add(
        Booking(
            user_id=test_user.id,
            restaurant_id=test_restaurant.id,
            date=booking_date,
            time=time(12, 0),
            party_size=3,
            status="confirmed",
        )
    )
    await db_session.commit()

    result = await _book(db_session, test_user, test_restaurant, booking_date, slot="12:00", party_size=2)
    assert result.error == ErrorKind.SLOT_UNAVAILABLE

    result = await _book(db_session, test_user, test_restaurant, booking_date, slot="12:00", party_size=1)
    assert result.ok


@pytest.mark.asyncio
async def test_concurrent_requests_never_exceed_capacity(session_factory, test_user, test_restaurant, booking_date):
    """
    CRITICAL TEST: eight parties of 2 race for a slot that seats 4.
    Exactly two may get in; the rest are told the slot is full.
    """
    restaurant_id, user_id = test_restaurant.id, test_user.id

    async def attempt():
        async with session_factory() as db:
            return await request_booking(db, user_id, restaurant_id, booking_date, "19:00", 2)

    results = await asyncio.gather(*(attempt() for _ in range(8)))

    accepted = [r for r in results if r.ok]
    rejected = [r for r in results if not r.ok]
    assert len(accepted) == 2
    assert all(r.error in (ErrorKind.SLOT_UNAVAILABLE, ErrorKind.CONFLICT) for r in rejected)

    async with session_factory() as db:
        covers = (
            await db.execute(
                select(func.sum(Booking.party_size)).where(
                    Booking.restaurant_id == restaurant_id,
                    Booking.date == booking_date,
                    Booking.time == time(19, 0),
                )
            )
        ).scalar()
        slot = (await db.execute(select(BookingSlot))).scalar_one()

    assert covers == 4
    assert slot.booked_covers == 4


def _competing_booking(monkeypatch, covers, times):
    """
    Another party takes `covers` seats after the engine has read the slot
    but before its guarded update, on the first `times` attempts.
    """
    original = booking_service._get_or_create_slot
    calls = {"count": 0}

    async def racing_get_or_create_slot(db, restaurant_id, booking_date, booking_time):
        slot = await original(db, restaurant_id, booking_date, booking_time)
        calls["count"] += 1
        if calls["count"] <= times:
            await db.execute(
                update(BookingSlot)
                .where(BookingSlot.id == slot.id)
                .values(booked_covers=BookingSlot.booked_covers + covers)
                .execution_options(synchronize_session=False)
            )
        return slot

    monkeypatch.setattr(booking_service, "_get_or_create_slot", racing_get_or_create_slot)
    return calls


@pytest.mark.asyncio
async def test_lost_race_is_retried_once(monkeypatch, db_session, test_user, test_restaurant, booking_date):
    calls = _competing_booking(monkeypatch, covers=3, times=1)

    result = await _book(db_session, test_user, test_restaurant, booking_date, party_size=2)

    assert result.ok
    assert calls["count"] == 2
    slot = (await db_session.execute(select(BookingSlot).execution_options(populate_existing=True))).scalar_one()
    assert slot.booked_covers == 2


@pytest.mark.asyncio
async def test_second_lost_race_surfaces_conflict(monkeypatch, db_session, test_user, test_restaurant, booking_date):
    calls = _competing_booking(monkeypatch, covers=3, times=2)

    result = await _book(db_session, test_user, test_restaurant, booking_date, party_size=2)

    assert result.error == ErrorKind.CONFLICT
    assert result.retryable
    assert calls["count"] == 2
    count = (await db_session.execute(select(func.count(Booking.id)))).scalar()
    assert count == 0


@pytest.mark.asyncio
async def test_competing_booking_that_leaves_room_is_not_a_conflict(
    monkeypatch, db_session, test_user, test_restaurant, booking_date
):
    """A competitor took 1 of 4 seats; a party of 2 still fits, first time."""
    calls = _competing_booking(monkeypatch, covers=1, times=1)

    result = await _book(db_session, test_user, test_restaurant, booking_date, party_size=2)

    assert result.ok
    assert calls["count"] == 1
    slot = (await db_session.execute(select(BookingSlot).execution_options(populate_existing=True))).scalar_one()
    assert slot.booked_covers == 3


@pytest.mark.asyncio
async def test_run_bounded_timeout_is_unavailable():
    with pytest.raises(UnavailableError) as exc_info:
        await run_bounded(asyncio.sleep(1), timeout=0.01)
    assert exc_info.value.kind == ErrorKind.UNAVAILABLE
    assert exc_info.value.retryable


@pytest.mark.asyncio
async def test_run_bounded_store_failure_is_unavailable():
    async def locked_database():
        raise sa_exc.OperationalError("UPDATE booking_slots", {}, Exception("database is locked"))

    with pytest.raises(UnavailableError):
        await run_bounded(locked_database(), timeout=1)


@pytest.mark.asyncio
async def test_slow_request_returns_retryable_unavailable(
    monkeypatch, db_session, test_user, test_restaurant, booking_date
):
    original = booking_service._get_or_create_slot

    async def stalled_get_or_create_slot(*args):
        slot = await original(*args)
        await asyncio.sleep(1)
        return slot

    monkeypatch.setattr(booking_service, "_get_or_create_slot", stalled_get_or_create_slot)
    monkeypatch.setattr(booking_service.settings, "BOOKING_TIMEOUT_SECONDS", 0.2)

    result = await _book(db_session, test_user, test_restaurant, booking_date)

    assert result.error == ErrorKind.UNAVAILABLE
    assert result.retryable
    count = (await db_session.execute(select(func.count(Booking.id)))).scalar()
    assert count == 0
