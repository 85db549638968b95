"""
Service-level tests for status transitions and the confirmation reward.
"""

import asyncio

import pytest
import pytest_asyncio
from sqlalchemy import func, select, update

from tablerewards.core.errors import ErrorKind
from tablerewards.models.booking import Booking
from tablerewards.models.booking_slot import BookingSlot
from tablerewards.models.reward import Reward
from tablerewards.models.user import User
from tablerewards.services.access_service import Actor
from tablerewards.services.booking_service import request_booking
from tablerewards.services.notification_service import drain_notifications
from tablerewards.services.reward_service import BOOKING_CONFIRMED_POINTS, BOOKING_CONFIRMED_REASON
from tablerewards.services import transition_service
from tablerewards.services.transition_service import transition_booking


@pytest.fixture
def owner(test_user):
    return Actor(user_id=test_user.id, role=test_user.role)


@pytest_asyncio.fixture
async def pending_booking_id(db_session, test_user, test_restaurant, booking_date):
    result = await request_booking(db_session, test_user.id, test_restaurant.id, booking_date, "19:00", 2)
    assert result.ok
    return result.booking_id


async def _points(db, user_id):
    return (
        await db.execute(select(User.points).where(User.id == user_id).execution_options(populate_existing=True))
    ).scalar_one()


async def _ledger_count(db, booking_id):
    return (
        await db.execute(select(func.count(Reward.id)).where(Reward.booking_id == booking_id))
    ).scalar()


@pytest.mark.asyncio
async def test_confirm_rewards_once(db_session, owner, test_user, pending_booking_id, notifier):
    result = await transition_booking(db_session, owner, pending_booking_id, "confirmed", notifier=notifier)

    assert result.ok
    assert result.changed and result.rewarded
    assert result.previous_status == "pending"
    assert result.booking.status == "confirmed"
    assert await _points(db_session, test_user.id) == BOOKING_CONFIRMED_POINTS

    reward = (await db_session.execute(select(Reward))).scalar_one()
    assert reward.points_change == 10
    assert reward.reason == BOOKING_CONFIRMED_REASON
    assert reward.booking_id == pending_booking_id

    await drain_notifications()
    assert notifier.confirmations == [pending_booking_id]


@pytest.mark.asyncio
async def test_reconfirm_is_idempotent(db_session, owner, test_user, pending_booking_id, notifier):
    await transition_booking(db_session, owner, pending_booking_id, "confirmed", notifier=notifier)
    again = await transition_booking(db_session, owner, pending_booking_id, "confirmed", notifier=notifier)

    assert again.ok
    assert not again.changed and not again.rewarded
    assert await _points(db_session, test_user.id) == 10
    assert await _ledger_count(db_session, pending_booking_id) == 1

    await drain_notifications()
    assert notifier.confirmations == [pending_booking_id]


@pytest.mark.asyncio
async def test_cancelled_booking_cannot_be_confirmed(db_session, owner, test_user, pending_booking_id):
    cancelled = await transition_booking(db_session, owner, pending_booking_id, "cancelled")
    assert cancelled.ok and not cancelled.rewarded

    result = await transition_booking(db_session, owner, pending_booking_id, "confirmed")

    assert result.error == ErrorKind.INVALID_TRANSITION
    assert await _points(db_session, test_user.id) == 0
    assert await _ledger_count(db_session, pending_booking_id) == 0


@pytest.mark.asyncio
async def test_cancel_twice_is_invalid(db_session, owner, pending_booking_id):
    await transition_booking(db_session, owner, pending_booking_id, "cancelled")
    result = await transition_booking(db_session, owner, pending_booking_id, "cancelled")
    assert result.error == ErrorKind.INVALID_TRANSITION


@pytest.mark.asyncio
async def test_cancel_confirmed_keeps_points(db_session, owner, test_user, pending_booking_id):
    await transition_booking(db_session, owner, pending_booking_id, "confirmed")
    result = await transition_booking(db_session, owner, pending_booking_id, "cancelled")

    assert result.ok and result.changed and not result.rewarded
    assert result.previous_status == "confirmed"
    assert await _points(db_session, test_user.id) == 10


@pytest.mark.asyncio
async def test_unknown_status_rejected(db_session, owner, pending_booking_id):
    result = await transition_booking(db_session, owner, pending_booking_id, "seated")
    assert result.error == ErrorKind.INVALID_REQUEST


@pytest.mark.asyncio
async def test_unknown_booking(db_session, owner):
    result = await transition_booking(db_session, owner, 9999, "confirmed")
    assert result.error == ErrorKind.NOT_FOUND


@pytest.mark.asyncio
async def test_stranger_forbidden(db_session, other_user, test_user, pending_booking_id):
    stranger = Actor(user_id=other_user.id, role=other_user.role)

    result = await transition_booking(db_session, stranger, pending_booking_id, "confirmed")

    assert result.error == ErrorKind.FORBIDDEN
    assert await _points(db_session, test_user.id) == 0


@pytest.mark.asyncio
async def test_restaurant_admin_can_confirm(db_session, manager_user, test_user, pending_booking_id):
    manager = Actor(user_id=manager_user.id, role=manager_user.role)

    result = await transition_booking(db_session, manager, pending_booking_id, "confirmed")

    assert result.ok and result.rewarded
    # Points go to the diner, not the confirming manager
    assert await _points(db_session, test_user.id) == 10
    assert await _points(db_session, manager_user.id) == 0


@pytest.mark.asyncio
async def test_system_admin_can_cancel(db_session, admin_user, pending_booking_id):
    admin = Actor(user_id=admin_user.id, role=admin_user.role)
    result = await transition_booking(db_session, admin, pending_booking_id, "cancelled")
    assert result.ok


@pytest.mark.asyncio
async def test_cancel_frees_capacity(db_session, owner, test_user, test_restaurant, booking_date):
    first = await request_booking(db_session, test_user.id, test_restaurant.id, booking_date, "18:00", 4)
    blocked = await request_booking(db_session, test_user.id, test_restaurant.id, booking_date, "18:00", 2)
    assert blocked.error == ErrorKind.SLOT_UNAVAILABLE

    await transition_booking(db_session, owner, first.booking_id, "cancelled")

    slot = (await db_session.execute(select(BookingSlot).execution_options(populate_existing=True))).scalar_one()
    assert slot.booked_covers == 0

    retry = await request_booking(db_session, test_user.id, test_restaurant.id, booking_date, "18:00", 2)
    assert retry.ok


@pytest.mark.asyncio
async def test_confirmation_email_failure_does_not_undo_confirmation(
    db_session, owner, test_user, pending_booking_id, notifier
):
    notifier.fail_confirmations = True

    result = await transition_booking(db_session, owner, pending_booking_id, "confirmed", notifier=notifier)
    await drain_notifications()

    assert result.ok and result.rewarded
    assert await _points(db_session, test_user.id) == 10


@pytest.mark.asyncio
async def test_concurrent_confirmations_reward_once(session_factory, test_user, pending_booking_id, manager_user):
    """
    CRITICAL TEST: the diner and the restaurant confirm at the same time.
    Exactly one confirmation pays out.
    """
    actors = [
        Actor(user_id=test_user.id, role=test_user.role),
        Actor(user_id=manager_user.id, role=manager_user.role),
        Actor(user_id=test_user.id, role=test_user.role),
    ]

    async def confirm(actor):
        async with session_factory() as db:
            return await transition_booking(db, actor, pending_booking_id, "confirmed")

    results = await asyncio.gather(*(confirm(a) for a in actors))

    assert all(r.ok for r in results)
    assert sum(r.rewarded for r in results) == 1
    assert sum(r.changed for r in results) == 1

    async with session_factory() as db:
        assert await _points(db, test_user.id) == 10
        assert await _ledger_count(db, pending_booking_id) == 1


def _competing_status_change(monkeypatch, status, times):
    """
    Someone else moves the booking to `status` after it has been read but
    before the compare-and-set, on the first `times` reads.
    """
    original = transition_service.find_booking
    calls = {"count": 0}

    async def racing_find_booking(db, booking_id):
        booking = await original(db, booking_id)
        calls["count"] += 1
        if booking is not None and calls["count"] <= times:
            await db.execute(
                update(Booking)
                .where(Booking.id == booking_id)
                .values(status=status)
                .execution_options(synchronize_session=False)
            )
        return booking

    monkeypatch.setattr(transition_service, "find_booking", racing_find_booking)
    return calls


@pytest.mark.asyncio
async def test_lost_status_race_is_retried(monkeypatch, db_session, owner, test_user, pending_booking_id):
    _competing_status_change(monkeypatch, "cancelled", times=1)

    result = await transition_booking(db_session, owner, pending_booking_id, "confirmed")

    assert result.ok and result.changed and result.rewarded
    assert result.previous_status == "pending"
    assert await _points(db_session, test_user.id) == 10


@pytest.mark.asyncio
async def test_second_lost_status_race_surfaces_conflict(
    monkeypatch, db_session, owner, test_user, pending_booking_id
):
    calls = _competing_status_change(monkeypatch, "cancelled", times=2)

    result = await transition_booking(db_session, owner, pending_booking_id, "confirmed")

    assert result.error == ErrorKind.CONFLICT
    assert calls["count"] == 2
    assert await _points(db_session, test_user.id) == 0
    assert await _ledger_count(db_session, pending_booking_id) == 0
    status = (
        await db_session.execute(select(Booking.status).where(Booking.id == pending_booking_id))
    ).scalar_one()
    assert status == "pending"
