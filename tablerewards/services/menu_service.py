"""
Restaurant menus: listing grouped by course, and owner-managed CRUD.
"""

from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tablerewards.core.logging import get_logger
from tablerewards.models.menu_item import CATEGORY_ORDER, MenuCategory, MenuItem
from tablerewards.schemas.menu import MenuItemCreate, MenuItemUpdate

logger = get_logger(__name__)


def _column_values(changes: dict) -> dict:
    if isinstance(changes.get("category"), MenuCategory):
        changes["category"] = changes["category"].value
    return changes


async def list_menu_items(
    db: AsyncSession,
    restaurant_id: int,
    category: Optional[MenuCategory] = None,
) -> list[MenuItem]:
    """A restaurant's menu, by course then name."""
    query = select(MenuItem).where(MenuItem.restaurant_id == restaurant_id)
    if category is not None:
        query = query.where(MenuItem.category == category.value)
    result = await db.execute(query)
    return sorted(
        result.scalars().all(),
        key=lambda item: (CATEGORY_ORDER.get(item.category, len(CATEGORY_ORDER)), item.name.lower(), item.id),
    )


async def get_menu_item(db: AsyncSession, restaurant_id: int, item_id: int) -> MenuItem:
    result = await db.execute(
        select(MenuItem).where(MenuItem.id == item_id, MenuItem.restaurant_id == restaurant_id)
    )
    item = result.scalar_one_or_none()
    if item is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Menu item {item_id} not found",
        )
    return item


async def create_menu_item(db: AsyncSession, restaurant_id: int, data: MenuItemCreate) -> MenuItem:
    item = MenuItem(restaurant_id=restaurant_id, **_column_values(data.model_dump()))
    db.add(item)
    await db.flush()
    await db.refresh(item)
    await db.commit()

    logger.info("menu_item_created", restaurant_id=restaurant_id, menu_item_id=item.id, category=item.category)
    return item


async def update_menu_item(db: AsyncSession, item: MenuItem, data: MenuItemUpdate) -> MenuItem:
    changes = _column_values(data.model_dump(exclude_unset=True))
    for field, value in changes.items():
        setattr(item, field, value)

    await db.flush()
    await db.refresh(item)
    await db.commit()

    logger.info("menu_item_updated", menu_item_id=item.id, fields=sorted(changes))
    return item


async def delete_menu_item(db: AsyncSession, item: MenuItem) -> None:
    item_id = item.id
    await db.delete(item)
    await db.commit()
    logger.info("menu_item_deleted", menu_item_id=item_id)
