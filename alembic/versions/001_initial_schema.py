"""Initial schema: users, restaurants, bookings, slots, rewards and email log.

Revision ID: 001
Revises: None
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    # Users table
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("name", sa.String(100), nullable=True),
        sa.Column("hashed_password", sa.String(255), nullable=False),
        sa.Column("role", sa.String(32), nullable=False, server_default=sa.text("'customer'")),
        sa.Column("points", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        *_timestamps(),
        sa.CheckConstraint("role IN ('customer', 'restaurant_manager', 'admin')", name="check_user_role"),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    # Restaurants table
    op.create_table(
        "restaurants",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("cuisine", sa.String(50), nullable=True),
        sa.Column("location", sa.String(200), nullable=True),
        sa.Column("description", sa.String(1000), nullable=True),
        sa.Column("capacity", sa.Integer(), nullable=False, server_default=sa.text("50")),
        sa.Column("admin_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("capacity > 0", name="check_restaurant_capacity_positive"),
    )
    op.create_index("ix_restaurants_id", "restaurants", ["id"])
    op.create_index("ix_restaurants_admin_id", "restaurants", ["admin_id"])
    op.create_index("ix_restaurants_cuisine", "restaurants", ["cuisine"])

    # Bookings table
    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("restaurant_id", sa.Integer(), sa.ForeignKey("restaurants.id"), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("time", sa.Time(), nullable=False),
        sa.Column("party_size", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'pending'")),
        sa.Column("special_requests", sa.String(500), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("party_size BETWEEN 1 AND 20", name="check_booking_party_size"),
        sa.CheckConstraint("status IN ('pending', 'confirmed', 'cancelled')", name="check_booking_status"),
    )
    op.create_index("ix_bookings_id", "bookings", ["id"])
    op.create_index("ix_bookings_user_id", "bookings", ["user_id"])
    # Occupancy is always summed per (restaurant, date, time)
    op.create_index("ix_bookings_restaurant_slot", "bookings", ["restaurant_id", "date", "time"])
    # Reminder sweep: "confirmed bookings for tomorrow"
    op.create_index("ix_bookings_date_status", "bookings", ["date", "status"])

    # Per-slot occupancy rows (admission serialization point)
    op.create_table(
        "booking_slots",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("restaurant_id", sa.Integer(), sa.ForeignKey("restaurants.id"), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("time", sa.Time(), nullable=False),
        sa.Column("booked_covers", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("1")),
        *_timestamps(),
        sa.UniqueConstraint("restaurant_id", "date", "time", name="uq_booking_slot"),
        sa.CheckConstraint("booked_covers >= 0", name="check_booked_covers_non_negative"),
    )
    op.create_index("ix_booking_slots_id", "booking_slots", ["id"])

    # Loyalty ledger
    op.create_table(
        "rewards",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("booking_id", sa.Integer(), sa.ForeignKey("bookings.id"), nullable=True),
        sa.Column("points_change", sa.Integer(), nullable=False),
        sa.Column("reason", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        # One "booking confirmed" entry per booking
        sa.UniqueConstraint("booking_id", "reason", name="uq_reward_booking_reason"),
    )
    op.create_index("ix_rewards_id", "rewards", ["id"])
    op.create_index("ix_rewards_user_id", "rewards", ["user_id"])
    op.create_index("ix_rewards_booking_id", "rewards", ["booking_id"])

    # Email log / reminder claims
    op.create_table(
        "email_notifications",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("booking_id", sa.Integer(), sa.ForeignKey("bookings.id"), nullable=True),
        sa.Column("kind", sa.String(20), nullable=False),
        sa.Column("recipient_email", sa.String(255), nullable=True),
        sa.Column("subject", sa.String(255), nullable=True),
        sa.Column("sent_on", sa.Date(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("booking_id", "kind", "sent_on", name="uq_notification_booking_kind_day"),
    )
    op.create_index("ix_email_notifications_id", "email_notifications", ["id"])
    op.create_index("ix_email_notifications_booking_id", "email_notifications", ["booking_id"])


def downgrade() -> None:
    op.drop_table("email_notifications")
    op.drop_table("rewards")
    op.drop_table("booking_slots")
    op.drop_table("bookings")
    op.drop_table("restaurants")
    op.drop_table("users")
