"""
Log of emails sent about bookings.

For reminders the row doubles as the "reminder sent" marker: it is inserted
before sending, and unique (booking_id, kind, sent_on) limits a booking to
one reminder per calendar day.
"""

from enum import Enum

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, String, UniqueConstraint, func

from tablerewards.db.base import Base


class NotificationKind(str, Enum):
    CONFIRMATION = "confirmation"
    REMINDER = "reminder"


class EmailNotification(Base):
    __tablename__ = "email_notifications"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=True, index=True)
    kind = Column(String(20), nullable=False)
    recipient_email = Column(String(255), nullable=True)
    subject = Column(String(255), nullable=True)
    sent_on = Column(Date, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("booking_id", "kind", "sent_on", name="uq_notification_booking_kind_day"),
    )

    def __repr__(self) -> str:
        return f"<EmailNotification(booking={self.booking_id}, kind={self.kind}, sent_on={self.sent_on})>"
