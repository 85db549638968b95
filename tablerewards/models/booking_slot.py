"""
Per-slot occupancy row: the serialization point for booking admission.

Key design decisions:
- `booked_covers` is the denormalized sum of party sizes of non-cancelled
  bookings for (restaurant, date, time); it avoids a SUM over bookings on
  the write path and gives concurrent requests a single row to contend on
- `version` counts changes to the row; admission is a guarded
  UPDATE ... WHERE booked_covers + :n <= :capacity that bumps it
- Unique (restaurant_id, date, time) makes lazy creation race-safe
"""

from sqlalchemy import CheckConstraint, Column, Date, ForeignKey, Integer, Time, UniqueConstraint

from tablerewards.db.base import Base, TimestampMixin


class BookingSlot(Base, TimestampMixin):
    __tablename__ = "booking_slots"

    id = Column(Integer, primary_key=True, index=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), nullable=False)
    date = Column(Date, nullable=False)
    time = Column(Time, nullable=False)
    booked_covers = Column(Integer, nullable=False, default=0)

    # Bumped on every admission and release
    version = Column(Integer, nullable=False, default=1)

    __table_args__ = (
        UniqueConstraint("restaurant_id", "date", "time", name="uq_booking_slot"),
        CheckConstraint("booked_covers >= 0", name="check_booked_covers_non_negative"),
    )

    def __repr__(self) -> str:
        return (
            f"<BookingSlot(restaurant={self.restaurant_id}, slot={self.date} {self.time}, "
            f"covers={self.booked_covers}, v={self.version})>"
        )
