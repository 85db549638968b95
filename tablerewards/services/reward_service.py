"""
Loyalty ledger: confirmation rewards and reporting.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import exc as sa_exc
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from tablerewards.core.logging import get_logger
from tablerewards.core.metrics import reward_duplicates, rewards_issued
from tablerewards.models.reward import Reward
from tablerewards.models.user import User

logger = get_logger(__name__)

BOOKING_CONFIRMED_POINTS = 10
BOOKING_CONFIRMED_REASON = "booking confirmed"
RECENT_REWARDS_LIMIT = 5


async def issue_booking_reward(db: AsyncSession, booking_id: int, user_id: int) -> bool:
    """
    Credit the booking's owner for a confirmation, at most once per booking.

    Must run inside the caller's transaction. The ledger row goes in first,
    in a savepoint; if the (booking_id, reason) constraint rejects it the
    booking was rewarded before and the points increment is skipped.
    Returns True when points were credited.
    """
    try:
        async with db.begin_nested():
            db.add(
                Reward(
                    user_id=user_id,
                    booking_id=booking_id,
                    points_change=BOOKING_CONFIRMED_POINTS,
                    reason=BOOKING_CONFIRMED_REASON,
                )
            )
    except sa_exc.IntegrityError:
        reward_duplicates.inc()
        logger.info("reward_already_issued", booking_id=booking_id, user_id=user_id)
        return False

    await db.execute(
        update(User)
        .where(User.id == user_id)
        .values(points=User.points + BOOKING_CONFIRMED_POINTS)
        .execution_options(synchronize_session=False)
    )
    rewards_issued.inc()
    logger.info(
        "reward_issued",
        booking_id=booking_id,
        user_id=user_id,
        points=BOOKING_CONFIRMED_POINTS,
    )
    return True


async def list_rewards(db: AsyncSession, user_id: Optional[int] = None) -> list[Reward]:
    """Ledger entries newest first; all users when `user_id` is None."""
    query = select(Reward)
    if user_id is not None:
        query = query.where(Reward.user_id == user_id)
    result = await db.execute(query.order_by(Reward.created_at.desc(), Reward.id.desc()))
    return list(result.scalars().all())


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive timestamps written by CURRENT_TIMESTAMP (UTC)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _month_of(value: datetime) -> tuple[int, int]:
    value = _as_utc(value)
    return value.year, value.month


async def get_rewards_summary(
    db: AsyncSession,
    user_id: int,
    now: Optional[datetime] = None,
) -> dict:
    now = now or datetime.now(timezone.utc)
    points = (await db.execute(select(User.points).where(User.id == user_id))).scalar_one_or_none()
    rewards = await list_rewards(db, user_id)

    this_month = _month_of(now)
    monthly_points = sum(r.points_change for r in rewards if _month_of(r.created_at) == this_month)
    return {
        "total_points": points or 0,
        "monthly_points": monthly_points,
        "total_rewards": len(rewards),
        "recent_rewards": rewards[:RECENT_REWARDS_LIMIT],
    }
