"""
User profile with role and running loyalty points total.

`points` is denormalized from the rewards ledger; it is only ever changed by
an atomic `points = points + n` UPDATE issued together with a ledger insert.
"""

from enum import Enum

from sqlalchemy import Boolean, CheckConstraint, Column, Integer, String

from tablerewards.db.base import Base, TimestampMixin


class UserRole(str, Enum):
    CUSTOMER = "customer"
    RESTAURANT_MANAGER = "restaurant_manager"
    ADMIN = "admin"


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    name = Column(String(100), nullable=True)
    hashed_password = Column(String(255), nullable=False)
    role = Column(String(32), nullable=False, default=UserRole.CUSTOMER.value)
    points = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, default=True, nullable=False)

    __table_args__ = (
        CheckConstraint(
            "role IN ('customer', 'restaurant_manager', 'admin')",
            name="check_user_role",
        ),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"
