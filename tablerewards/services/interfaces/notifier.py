"""
Booking notification interface.
Allows swapping the email provider (or turning email off) without touching
the booking engine.
"""

from abc import ABC, abstractmethod


class BookingNotifier(ABC):
    """
    Interface for booking notifications.

    Implementations:
    - ResendEmailNotifier: Sends email through the Resend API
    - LogOnlyNotifier: Logs what would have been sent

    Both methods are called after the booking change is committed, never
    inside a transaction. Failures are raised to the caller, which logs them.
    """

    @abstractmethod
    async def notify_booking_confirmed(self, booking_id: int) -> None:
        """
        Tell the diner their booking is confirmed.

        Args:
            booking_id: Booking that just moved to confirmed
        """
        pass

    @abstractmethod
    async def send_booking_reminder(self, booking_id: int) -> None:
        """
        Remind the diner of tomorrow's booking.

        Args:
            booking_id: Confirmed booking dated tomorrow
        """
        pass
