"""
Post-commit notification dispatch.

Notifications run as detached asyncio tasks so the HTTP response never waits
on the email provider. A failed notification is logged and counted; it
never reaches the caller and never touches booking or ledger state.
"""

import asyncio
from typing import Awaitable

from tablerewards.core.logging import get_logger
from tablerewards.core.metrics import record_notification
from tablerewards.services.interfaces.notifier import BookingNotifier

logger = get_logger(__name__)

# Strong references so pending tasks are not garbage collected
_pending: set[asyncio.Task] = set()


async def _deliver(kind: str, booking_id: int, send: Awaitable[None]) -> None:
    try:
        await send
    except Exception as e:
        record_notification(kind, "failed")
        logger.error("notification_failed", kind=kind, booking_id=booking_id, error=str(e))
        return
    record_notification(kind, "sent")
    logger.info("notification_sent", kind=kind, booking_id=booking_id)


def dispatch_after_commit(notifier: BookingNotifier, kind: str, booking_id: int) -> asyncio.Task:
    """Schedule a notification for a change that has already been committed."""
    if kind == "reminder":
        send = notifier.send_booking_reminder(booking_id)
    else:
        send = notifier.notify_booking_confirmed(booking_id)

    task = asyncio.create_task(_deliver(kind, booking_id, send))
    _pending.add(task)
    task.add_done_callback(_pending.discard)
    return task


async def drain_notifications() -> None:
    """Wait for in-flight notifications (shutdown, tests)."""
    while _pending:
        await asyncio.gather(*list(_pending), return_exceptions=True)
