"""
Restaurant directory record.

`capacity` is the maximum number of simultaneous covers per service slot.
It bounds admission at booking time only; lowering it later does not touch
bookings that already exist.
"""

from sqlalchemy import CheckConstraint, Column, ForeignKey, Index, Integer, String

from tablerewards.db.base import Base, TimestampMixin

DEFAULT_CAPACITY = 50


class Restaurant(Base, TimestampMixin):
    __tablename__ = "restaurants"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    cuisine = Column(String(50), nullable=True)
    location = Column(String(200), nullable=True)
    description = Column(String(1000), nullable=True)
    capacity = Column(Integer, nullable=False, default=DEFAULT_CAPACITY)
    admin_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)

    __table_args__ = (
        CheckConstraint("capacity > 0", name="check_restaurant_capacity_positive"),
        Index("ix_restaurants_cuisine", "cuisine"),
    )

    def __repr__(self) -> str:
        return f"<Restaurant(id={self.id}, name={self.name}, capacity={self.capacity})>"
