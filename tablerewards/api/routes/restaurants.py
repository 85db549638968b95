"""
Restaurant endpoints with Redis caching on list operations.
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from tablerewards.core.logging import get_logger
from tablerewards.core.security import get_current_actor
from tablerewards.db.session import get_db
from tablerewards.models.booking import MAX_PARTY_SIZE, MIN_PARTY_SIZE
from tablerewards.models.menu_item import MenuCategory
from tablerewards.schemas.booking import BookingResponse
from tablerewards.schemas.menu import MenuItemCreate, MenuItemResponse, MenuItemUpdate
from tablerewards.schemas.restaurant import (
    AvailabilityResponse,
    RestaurantCreate,
    RestaurantListResponse,
    RestaurantResponse,
    RestaurantUpdate,
)
from tablerewards.services.access_service import Actor, require_restaurant_access
from tablerewards.services.availability_service import get_availability
from tablerewards.services.booking_service import get_restaurant_bookings
from tablerewards.services.cache_service import (
    get_cached_restaurants,
    invalidate_restaurant_cache,
    set_cached_restaurants,
)
from tablerewards.services.menu_service import (
    create_menu_item,
    delete_menu_item,
    get_menu_item,
    list_menu_items,
    update_menu_item,
)
from tablerewards.services.restaurant_service import (
    create_restaurant,
    get_restaurant,
    list_restaurants,
    update_restaurant,
)

logger = get_logger(__name__)
router = APIRouter(prefix="/restaurants", tags=["Restaurants"])


@router.post("/", response_model=RestaurantResponse, status_code=status.HTTP_201_CREATED)
async def create_restaurant_endpoint(
    restaurant_data: RestaurantCreate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """Add a restaurant. Restaurant managers and admins only."""
    restaurant = await create_restaurant(db, restaurant_data, actor)
    await invalidate_restaurant_cache()
    return restaurant


@router.get("/", response_model=RestaurantListResponse)
async def list_restaurants_endpoint(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    cuisine: Optional[str] = Query(None, max_length=50),
    location: Optional[str] = Query(None, max_length=200),
    db: AsyncSession = Depends(get_db),
):
    """
    List restaurants with pagination and optional filters.
    Results are cached in Redis and invalidated on restaurant writes.
    """
    cached = await get_cached_restaurants(page, page_size, cuisine, location)
    if cached:
        logger.info("restaurants_list_cache_hit", page=page)
        cached["cached"] = True
        return RestaurantListResponse(**cached)

    restaurants, total = await list_restaurants(db, page, page_size, cuisine, location)

    response_data = {
        "restaurants": [RestaurantResponse.model_validate(r).model_dump() for r in restaurants],
        "total": total,
        "page": page,
        "page_size": page_size,
        "cached": False,
    }
    await set_cached_restaurants(page, page_size, cuisine, location, response_data)

    return RestaurantListResponse(**response_data)


@router.get("/{restaurant_id}", response_model=RestaurantResponse)
async def get_restaurant_endpoint(
    restaurant_id: int,
    db: AsyncSession = Depends(get_db),
):
    return await get_restaurant(db, restaurant_id)


@router.patch("/{restaurant_id}", response_model=RestaurantResponse)
async def update_restaurant_endpoint(
    restaurant_id: int,
    restaurant_data: RestaurantUpdate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """Update a restaurant. Its own admin or a system admin only."""
    restaurant = await get_restaurant(db, restaurant_id)
    await require_restaurant_access(db, actor, restaurant_id)
    restaurant = await update_restaurant(db, restaurant, restaurant_data)
    await invalidate_restaurant_cache()
    return restaurant


@router.get("/{restaurant_id}/availability", response_model=AvailabilityResponse)
async def get_availability_endpoint(
    restaurant_id: int,
    booking_date: date = Query(..., alias="date"),
    party_size: int = Query(2, ge=MIN_PARTY_SIZE, le=MAX_PARTY_SIZE),
    db: AsyncSession = Depends(get_db),
):
    """Remaining seats per service slot. Never cached."""
    restaurant = await get_restaurant(db, restaurant_id)
    summary = await get_availability(db, restaurant, booking_date, party_size)
    return AvailabilityResponse(
        restaurant_id=summary.restaurant_id,
        date=summary.date,
        party_size=summary.party_size,
        total_capacity=summary.total_capacity,
        current_bookings=summary.current_bookings,
        available_times=summary.available_times,
        slots=summary.slots,
    )


@router.get("/{restaurant_id}/bookings", response_model=list[BookingResponse])
async def list_restaurant_bookings(
    restaurant_id: int,
    booking_date: Optional[date] = Query(None, alias="date"),
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """A restaurant's bookings. Its own admin or a system admin only."""
    await get_restaurant(db, restaurant_id)
    await require_restaurant_access(db, actor, restaurant_id)
    return await get_restaurant_bookings(db, restaurant_id, booking_date)


@router.get("/{restaurant_id}/menu", response_model=list[MenuItemResponse])
async def get_menu(
    restaurant_id: int,
    category: Optional[MenuCategory] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    """The restaurant's menu grouped by course, optionally a single category."""
    await get_restaurant(db, restaurant_id)
    return await list_menu_items(db, restaurant_id, category)


@router.post(
    "/{restaurant_id}/menu",
    response_model=MenuItemResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_menu_item(
    restaurant_id: int,
    item_data: MenuItemCreate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    await get_restaurant(db, restaurant_id)
    await require_restaurant_access(db, actor, restaurant_id)
    return await create_menu_item(db, restaurant_id, item_data)


@router.patch("/{restaurant_id}/menu/{item_id}", response_model=MenuItemResponse)
async def edit_menu_item(
    restaurant_id: int,
    item_id: int,
    item_data: MenuItemUpdate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    await require_restaurant_access(db, actor, restaurant_id)
    item = await get_menu_item(db, restaurant_id, item_id)
    return await update_menu_item(db, item, item_data)


@router.delete("/{restaurant_id}/menu/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_menu_item(
    restaurant_id: int,
    item_id: int,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    await require_restaurant_access(db, actor, restaurant_id)
    item = await get_menu_item(db, restaurant_id, item_id)
    await delete_menu_item(db, item)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
