"""
Access/Role gate.

The caller's identity is resolved once per request (see core.security) into
an Actor and passed explicitly into every service call. These helpers answer
"may this actor act on that restaurant / booking"; they never look at
request or session state themselves.
"""

from dataclasses import dataclass

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tablerewards.models.booking import Booking
from tablerewards.models.restaurant import Restaurant
from tablerewards.models.user import UserRole


@dataclass(frozen=True)
class Actor:
    user_id: int
    role: str = UserRole.CUSTOMER.value

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value

    @property
    def is_manager(self) -> bool:
        return self.role == UserRole.RESTAURANT_MANAGER.value


async def can_act_on_restaurant(db: AsyncSession, actor: Actor, restaurant_id: int) -> bool:
    """System admins act on every restaurant; otherwise only the restaurant's own admin."""
    if actor.is_admin:
        return True

    result = await db.execute(select(Restaurant.admin_id).where(Restaurant.id == restaurant_id))
    return result.scalar_one_or_none() == actor.user_id


async def can_act_on_booking(db: AsyncSession, actor: Actor, booking: Booking) -> bool:
    """Booking owner, the restaurant's admin, or a system admin."""
    if booking.user_id == actor.user_id:
        return True
    return await can_act_on_restaurant(db, actor, booking.restaurant_id)


def require_admin(actor: Actor) -> None:
    if not actor.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Administrator role required",
        )


async def require_restaurant_access(db: AsyncSession, actor: Actor, restaurant_id: int) -> None:
    if not await can_act_on_restaurant(db, actor, restaurant_id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You cannot manage this restaurant",
        )
