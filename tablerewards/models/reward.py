"""
Append-only loyalty ledger.

The unique (booking_id, reason) constraint is what makes the confirmation
reward idempotent: a second "booking confirmed" row for the same booking is
rejected by the database, and the caller skips the points increment.
Rows with no booking (manual adjustments) are not constrained.
"""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, UniqueConstraint, func

from tablerewards.db.base import Base


class Reward(Base):
    __tablename__ = "rewards"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=True, index=True)
    points_change = Column(Integer, nullable=False)
    reason = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("booking_id", "reason", name="uq_reward_booking_reason"),
    )

    def __repr__(self) -> str:
        return f"<Reward(id={self.id}, user={self.user_id}, booking={self.booking_id}, change={self.points_change})>"
