"""
Log-only notifier - no email provider.
Used in development, in tests and whenever no Resend API key is configured.
"""

from tablerewards.core.logging import get_logger
from tablerewards.services.interfaces.notifier import BookingNotifier

logger = get_logger(__name__)


class LogOnlyNotifier(BookingNotifier):
    """Record the notification in the log and do nothing else."""

    async def notify_booking_confirmed(self, booking_id: int) -> None:
        logger.info("notification_logged", kind="confirmation", booking_id=booking_id)

    async def send_booking_reminder(self, booking_id: int) -> None:
        logger.info("notification_logged", kind="reminder", booking_id=booking_id)
