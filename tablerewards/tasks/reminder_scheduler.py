"""
Scheduled reminder sweep.

Runs `run_reminder_sweep` once a day from an APScheduler cron job. The same
sweep is exposed on demand through POST /api/v1/cron/reminders.
"""

from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from tablerewards.core.config import get_settings
from tablerewards.core.logging import get_logger
from tablerewards.db.session import SessionLocal
from tablerewards.services.notifier_factory import get_notifier
from tablerewards.services.reminder_service import run_reminder_sweep

logger = get_logger(__name__)


class ReminderScheduler:
    """Owns the AsyncIOScheduler that triggers the daily sweep"""

    def __init__(self, hour: int):
        self.scheduler = AsyncIOScheduler()
        self.job_id = "booking_reminder_sweep"
        self.hour = hour
        self.is_running = False

    def start(self) -> None:
        if self.is_running:
            logger.warning("reminder_scheduler_already_running")
            return

        self.scheduler.add_job(
            func=self._sweep_task,
            trigger=CronTrigger(hour=self.hour, minute=0),
            id=self.job_id,
            name="Booking Reminder Sweep",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self.scheduler.start()
        self.is_running = True
        logger.info("reminder_scheduler_started", hour=self.hour)

    def stop(self) -> None:
        if not self.is_running:
            return
        self.scheduler.shutdown(wait=False)
        self.is_running = False
        logger.info("reminder_scheduler_stopped")

    async def _sweep_task(self) -> None:
        try:
            async with SessionLocal() as db:
                await run_reminder_sweep(db, get_notifier())
        except Exception as e:
            logger.error("reminder_sweep_failed", error=str(e), exc_info=True)


_scheduler: Optional[ReminderScheduler] = None


def start_reminder_scheduler() -> Optional[ReminderScheduler]:
    """Start the daily sweep if REMINDER_SWEEP_ENABLED."""
    global _scheduler
    settings = get_settings()
    if not settings.REMINDER_SWEEP_ENABLED:
        logger.info("reminder_scheduler_disabled")
        return None

    if _scheduler is None:
        _scheduler = ReminderScheduler(hour=settings.REMINDER_SWEEP_HOUR)
    _scheduler.start()
    return _scheduler


def stop_reminder_scheduler() -> None:
    if _scheduler is not None:
        _scheduler.stop()
