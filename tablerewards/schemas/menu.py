"""
Pydantic schemas for restaurant menus.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from tablerewards.models.menu_item import MenuCategory


class MenuItemCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    category: MenuCategory


class MenuItemUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    price: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    category: Optional[MenuCategory] = None

    @field_validator("name", "price", "category")
    @classmethod
    def reject_null(cls, value):
        if value is None:
            raise ValueError("may not be null")
        return value


class MenuItemResponse(BaseModel):
    id: int
    restaurant_id: int
    name: str
    description: Optional[str]
    price: float
    category: str
    created_at: datetime

    model_config = {"from_attributes": True}
