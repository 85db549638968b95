"""
Notifier factory.
Configures which notification channel booking changes go out on.
"""

from typing import Optional

from tablerewards.core.config import get_settings
from tablerewards.core.logging import get_logger
from tablerewards.db.session import SessionLocal
from tablerewards.services.email_notifier import ResendEmailNotifier
from tablerewards.services.interfaces.log_notifier import LogOnlyNotifier
from tablerewards.services.interfaces.notifier import BookingNotifier

logger = get_logger(__name__)


def build_notifier() -> BookingNotifier:
    """
    Build the configured notifier.

    - NOTIFIER=email with RESEND_API_KEY set: ResendEmailNotifier
    - Anything else: LogOnlyNotifier
    """
    settings = get_settings()

    if settings.NOTIFIER == "email":
        if settings.RESEND_API_KEY:
            return ResendEmailNotifier(SessionLocal, settings.RESEND_API_KEY, settings.EMAIL_FROM_ADDRESS)
        logger.warning("notifier_fallback", reason="RESEND_API_KEY not set", using="log")

    return LogOnlyNotifier()


# Singleton instance
_notifier: Optional[BookingNotifier] = None


def get_notifier() -> BookingNotifier:
    """Get notifier singleton. Also used as a FastAPI dependency."""
    global _notifier
    if _notifier is None:
        _notifier = build_notifier()
    return _notifier
