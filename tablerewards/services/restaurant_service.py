"""
Restaurant directory: CRUD and listing.
"""

from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from tablerewards.core.logging import get_logger
from tablerewards.models.restaurant import Restaurant
from tablerewards.schemas.restaurant import RestaurantCreate, RestaurantUpdate
from tablerewards.services.access_service import Actor

logger = get_logger(__name__)


async def find_restaurant(db: AsyncSession, restaurant_id: int) -> Optional[Restaurant]:
    """Fresh read of a restaurant, or None. Used by the booking engine for capacity."""
    result = await db.execute(
        select(Restaurant)
        .where(Restaurant.id == restaurant_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_restaurant(db: AsyncSession, restaurant_id: int) -> Restaurant:
    """Get a single restaurant by ID."""
    restaurant = await find_restaurant(db, restaurant_id)
    if not restaurant:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Restaurant {restaurant_id} not found",
        )
    return restaurant


async def create_restaurant(db: AsyncSession, data: RestaurantCreate, actor: Actor) -> Restaurant:
    """Managers own what they create; system admins may assign another owner."""
    if not (actor.is_admin or actor.is_manager):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only restaurant managers and admins can add restaurants",
        )

    admin_id = data.admin_id if actor.is_admin and data.admin_id is not None else actor.user_id
    restaurant = Restaurant(
        name=data.name,
        cuisine=data.cuisine,
        location=data.location,
        description=data.description,
        capacity=data.capacity,
        admin_id=admin_id,
    )
    db.add(restaurant)
    await db.flush()
    await db.refresh(restaurant)
    await db.commit()

    logger.info("restaurant_created", restaurant_id=restaurant.id, name=restaurant.name, capacity=restaurant.capacity)
    return restaurant


async def update_restaurant(db: AsyncSession, restaurant: Restaurant, data: RestaurantUpdate) -> Restaurant:
    """
    Apply a partial update. A capacity change only affects future admissions;
    bookings already accepted are not re-validated.
    """
    changes = data.model_dump(exclude_unset=True)
    for field, value in changes.items():
        setattr(restaurant, field, value)

    await db.flush()
    await db.refresh(restaurant)
    await db.commit()

    logger.info("restaurant_updated", restaurant_id=restaurant.id, fields=sorted(changes))
    return restaurant


async def list_restaurants(
    db: AsyncSession,
    page: int = 1,
    page_size: int = 20,
    cuisine: Optional[str] = None,
    location: Optional[str] = None,
) -> tuple[list[Restaurant], int]:
    """List restaurants alphabetically with optional cuisine/location filters."""
    query = select(Restaurant)

    if cuisine:
        query = query.where(func.lower(Restaurant.cuisine) == cuisine.lower())
    if location:
        query = query.where(Restaurant.location.ilike(f"%{location}%"))

    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar()

    restaurants_query = (
        query
        .order_by(Restaurant.name.asc(), Restaurant.id.asc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    result = await db.execute(restaurants_query)
    restaurants = list(result.scalars().all())

    return restaurants, total
