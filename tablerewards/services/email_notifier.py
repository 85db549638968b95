"""
Booking emails through the Resend API.

The Resend SDK is synchronous, so each send runs in a worker thread. The
notifier opens its own short-lived sessions: it runs after the booking
transaction has committed, usually in a detached task that outlives the
request's session.
"""

import asyncio
import html
from datetime import date
from typing import Callable

import resend
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tablerewards.core.config import get_settings
from tablerewards.core.logging import get_logger
from tablerewards.models.booking import Booking
from tablerewards.models.notification import EmailNotification, NotificationKind
from tablerewards.services.availability_service import format_slot
from tablerewards.services.interfaces.notifier import BookingNotifier

logger = get_logger(__name__)
settings = get_settings()


class NotificationError(Exception):
    """An email could not be composed or handed to the provider."""


def confirmation_subject(restaurant_name: str) -> str:
    return f"Booking Confirmed - {restaurant_name}"


def reminder_subject(restaurant_name: str) -> str:
    return f"Reminder: Your booking tomorrow at {restaurant_name}"


def _escape(value) -> str:
    if value is None:
        return ""
    return html.escape(str(value), quote=True)


def _booking_html(heading: str, booking: Booking) -> str:
    """Short HTML summary. Every interpolated value is escaped; names and requests are user text."""
    guest = booking.user.name or booking.user.email
    rows = [
        ("Restaurant", booking.restaurant.name),
        ("Location", booking.restaurant.location),
        ("Date", booking.date.strftime("%A, %d %B %Y")),
        ("Time", format_slot(booking.time)),
        ("Party size", booking.party_size),
    ]
    if booking.special_requests:
        rows.append(("Special requests", booking.special_requests))

    details = "".join(
        f"<tr><td><strong>{_escape(label)}</strong></td><td>{_escape(value)}</td></tr>"
        for label, value in rows
    )
    return (
        f"<h2>{_escape(heading)}</h2>"
        f"<p>Hi {_escape(guest)},</p>"
        f"<table>{details}</table>"
        f"<p>Booking reference: #{booking.id}</p>"
    )


class ResendEmailNotifier(BookingNotifier):
    def __init__(self, session_factory: Callable[[], AsyncSession], api_key: str, from_address: str):
        self._session_factory = session_factory
        self._api_key = api_key
        self._from_address = from_address

    async def _load_booking(self, db: AsyncSession, booking_id: int) -> Booking:
        result = await db.execute(select(Booking).where(Booking.id == booking_id))
        booking = result.scalar_one_or_none()
        if booking is None:
            raise NotificationError(f"Booking {booking_id} not found")
        if not booking.user or not booking.user.email:
            raise NotificationError(f"Booking {booking_id} has no recipient email")
        return booking

    async def _send(self, to: str, subject: str, html: str) -> dict:
        resend.api_key = self._api_key
        payload = {
            "from": self._from_address,
            "to": [to],
            "subject": subject,
            "html": html,
        }
        try:
            response = await asyncio.to_thread(resend.Emails.send, payload)
        except Exception as e:
            raise NotificationError(f"Failed to send email: {e}") from e
        logger.info("email_sent", to=to, subject=subject, provider_id=(response or {}).get("id"))
        return response

    async def notify_booking_confirmed(self, booking_id: int) -> None:
        async with self._session_factory() as db:
            booking = await self._load_booking(db, booking_id)
            subject = confirmation_subject(booking.restaurant.name)
            await self._send(
                booking.user.email,
                subject,
                _booking_html("Your booking is confirmed", booking),
            )

            db.add(
                EmailNotification(
                    booking_id=booking.id,
                    kind=NotificationKind.CONFIRMATION.value,
                    recipient_email=booking.user.email,
                    subject=subject,
                    sent_on=date.today(),
                )
            )
            await db.commit()

    async def send_booking_reminder(self, booking_id: int) -> None:
        async with self._session_factory() as db:
            booking = await self._load_booking(db, booking_id)
            await self._send(
                booking.user.email,
                reminder_subject(booking.restaurant.name),
                _booking_html("See you tomorrow", booking),
            )
