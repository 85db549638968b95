"""
Dishes on a restaurant's menu.

Menus are display data only; nothing in booking admission or rewards reads
them.
"""

from enum import Enum

from sqlalchemy import CheckConstraint, Column, ForeignKey, Integer, Numeric, String

from tablerewards.db.base import Base, TimestampMixin


class MenuCategory(str, Enum):
    APPETIZER = "Appetizer"
    MAIN_COURSE = "Main Course"
    DESSERT = "Dessert"
    SIDE = "Side"
    DRINK = "Drink"


# Menu display order: courses first, then sides and drinks
CATEGORY_ORDER = {category.value: position for position, category in enumerate(MenuCategory)}


class MenuItem(Base, TimestampMixin):
    __tablename__ = "menu_items"

    id = Column(Integer, primary_key=True, index=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    description = Column(String(500), nullable=True)
    price = Column(Numeric(10, 2), nullable=False)
    category = Column(String(20), nullable=False)

    __table_args__ = (
        CheckConstraint("price >= 0", name="check_menu_item_price_non_negative"),
        CheckConstraint(
            "category IN ('Appetizer', 'Main Course', 'Dessert', 'Side', 'Drink')",
            name="check_menu_item_category",
        ),
    )

    def __repr__(self) -> str:
        return f"<MenuItem(id={self.id}, restaurant={self.restaurant_id}, name={self.name})>"
