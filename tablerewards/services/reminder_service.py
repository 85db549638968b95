"""
Daily reminder sweep for tomorrow's confirmed bookings.

Each reminder is claimed before it is sent by inserting a notification-log
row keyed by (booking, "reminder", today). The unique constraint means two
overlapping sweeps cannot both claim a booking, and a second sweep on the
same day finds the claim and skips. A failed send releases its claim so a
later run the same day can try again.
"""

from datetime import date, timedelta
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy import exc as sa_exc
from sqlalchemy.ext.asyncio import AsyncSession

from tablerewards.core.logging import get_logger
from tablerewards.core.metrics import record_notification, reminder_sweeps
from tablerewards.models.booking import Booking, BookingStatus
from tablerewards.models.notification import EmailNotification, NotificationKind
from tablerewards.services.email_notifier import reminder_subject
from tablerewards.services.interfaces.notifier import BookingNotifier
from tablerewards.services.results import ReminderSweepResult

logger = get_logger(__name__)

REMINDER = NotificationKind.REMINDER.value


async def _claim(db: AsyncSession, booking: Booking, today: date) -> Optional[int]:
    """Insert the reminder marker; None if this booking already has one today."""
    claim = EmailNotification(
        booking_id=booking.id,
        kind=REMINDER,
        recipient_email=booking.user.email,
        subject=reminder_subject(booking.restaurant.name),
        sent_on=today,
    )
    try:
        async with db.begin_nested():
            db.add(claim)
    except sa_exc.IntegrityError:
        return None
    claim_id = claim.id
    await db.commit()
    return claim_id


async def _release(db: AsyncSession, claim_id: int) -> None:
    await db.execute(delete(EmailNotification).where(EmailNotification.id == claim_id))
    await db.commit()


async def run_reminder_sweep(
    db: AsyncSession,
    notifier: BookingNotifier,
    today: Optional[date] = None,
) -> ReminderSweepResult:
    """Send one reminder per confirmed booking dated tomorrow."""
    today = today or date.today()
    tomorrow = today + timedelta(days=1)
    summary = ReminderSweepResult()

    result = await db.execute(
        select(Booking)
        .where(Booking.date == tomorrow, Booking.status == BookingStatus.CONFIRMED.value)
        .order_by(Booking.time.asc(), Booking.id.asc())
    )
    bookings = list(result.scalars().all())
    logger.info("reminder_sweep_started", date=str(tomorrow), candidates=len(bookings))

    for booking in bookings:
        booking_id = booking.id
        claim_id = await _claim(db, booking, today)
        if claim_id is None:
            summary.skipped += 1
            record_notification(REMINDER, "skipped")
            logger.info("reminder_already_sent", booking_id=booking_id, sent_on=str(today))
            continue

        try:
            await notifier.send_booking_reminder(booking_id)
        except Exception as e:
            summary.failed += 1
            summary.errors.append(f"booking {booking_id}: {e}")
            record_notification(REMINDER, "failed")
            logger.error("reminder_failed", booking_id=booking_id, error=str(e))
            await _release(db, claim_id)
            continue

        summary.sent += 1
        record_notification(REMINDER, "sent")

    await db.commit()
    reminder_sweeps.inc()
    logger.info(
        "reminder_sweep_completed",
        date=str(tomorrow),
        sent=summary.sent,
        skipped=summary.skipped,
        failed=summary.failed,
    )
    return summary
