"""
Booking model representing a table reservation for one service slot.

Key design decisions:
- New bookings always start `pending`; confirmation is a separate transition
  and is what earns loyalty points
- Status field allows cancellation without deleting records
- Composite index on (restaurant_id, date, time) backs occupancy queries
"""

from enum import Enum

from sqlalchemy import CheckConstraint, Column, Date, ForeignKey, Index, Integer, String, Time
from sqlalchemy.orm import relationship

from tablerewards.db.base import Base, TimestampMixin

MIN_PARTY_SIZE = 1
MAX_PARTY_SIZE = 20
MAX_SPECIAL_REQUESTS_LENGTH = 500


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


# Statuses that hold seats in a slot
ACTIVE_STATUSES = (BookingStatus.PENDING.value, BookingStatus.CONFIRMED.value)


class Booking(Base, TimestampMixin):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), nullable=False)
    date = Column(Date, nullable=False)
    time = Column(Time, nullable=False)
    party_size = Column(Integer, nullable=False)
    status = Column(String(20), nullable=False, default=BookingStatus.PENDING.value)
    special_requests = Column(String(MAX_SPECIAL_REQUESTS_LENGTH), nullable=True)

    user = relationship("User", lazy="selectin")
    restaurant = relationship("Restaurant", lazy="selectin")

    __table_args__ = (
        Index("ix_bookings_restaurant_slot", "restaurant_id", "date", "time"),
        Index("ix_bookings_date_status", "date", "status"),
        CheckConstraint("party_size BETWEEN 1 AND 20", name="check_booking_party_size"),
        CheckConstraint(
            "status IN ('pending', 'confirmed', 'cancelled')",
            name="check_booking_status",
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<Booking(id={self.id}, user={self.user_id}, restaurant={self.restaurant_id}, "
            f"slot={self.date} {self.time}, status={self.status})>"
        )
