"""Menu items per restaurant.

Revision ID: 002
Revises: 001
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "menu_items",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("restaurant_id", sa.Integer(), sa.ForeignKey("restaurants.id"), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.String(500), nullable=True),
        sa.Column("price", sa.Numeric(10, 2), nullable=False),
        sa.Column("category", sa.String(20), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("price >= 0", name="check_menu_item_price_non_negative"),
        sa.CheckConstraint(
            "category IN ('Appetizer', 'Main Course', 'Dessert', 'Side', 'Drink')",
            name="check_menu_item_category",
        ),
    )
    op.create_index("ix_menu_items_id", "menu_items", ["id"])
    op.create_index("ix_menu_items_restaurant_id", "menu_items", ["restaurant_id"])


def downgrade() -> None:
    op.drop_table("menu_items")
