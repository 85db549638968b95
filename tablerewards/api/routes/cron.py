"""
Scheduled-job trigger endpoints for external cron runners.
"""

import secrets
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from tablerewards.core.config import get_settings
from tablerewards.db.session import get_db
from tablerewards.services.interfaces.notifier import BookingNotifier
from tablerewards.services.notifier_factory import get_notifier
from tablerewards.services.reminder_service import run_reminder_sweep

router = APIRouter(prefix="/cron", tags=["Cron"])
cron_bearer = HTTPBearer(auto_error=False)


def verify_cron_secret(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(cron_bearer),
) -> None:
    """Require `Authorization: Bearer <CRON_SECRET>` when a secret is configured."""
    secret = get_settings().CRON_SECRET
    if not secret:
        return
    if credentials is None or not secrets.compare_digest(credentials.credentials, secret):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid cron secret",
            headers={"WWW-Authenticate": "Bearer"},
        )


@router.post("/reminders", dependencies=[Depends(verify_cron_secret)])
async def send_reminders(
    db: AsyncSession = Depends(get_db),
    notifier: BookingNotifier = Depends(get_notifier),
):
    """Send reminders for tomorrow's confirmed bookings."""
    result = await run_reminder_sweep(db, notifier)
    return {
        "message": "Reminder sweep completed",
        "sent": result.sent,
        "skipped": result.skipped,
        "failed": result.failed,
        "errors": result.errors,
    }
