"""
Structured results returned by the booking engine.

The engine never lets a BookingError escape to its callers; it returns one
of these instead, with `error` set to the ErrorKind when the call failed.
"""

from dataclasses import dataclass, field
from typing import Optional

from tablerewards.core.errors import RETRYABLE_KINDS, BookingError, ErrorKind, SlotUnavailableError
from tablerewards.models.booking import Booking


@dataclass(frozen=True)
class BookingRequestResult:
    booking_id: Optional[int] = None
    booking: Optional[Booking] = None
    error: Optional[ErrorKind] = None
    message: Optional[str] = None
    available_times: Optional[list[str]] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def retryable(self) -> bool:
        return self.error in RETRYABLE_KINDS

    @classmethod
    def success(cls, booking: Booking) -> "BookingRequestResult":
        return cls(booking_id=booking.id, booking=booking)

    @classmethod
    def failure(cls, exc: BookingError) -> "BookingRequestResult":
        hint = exc.available_times if isinstance(exc, SlotUnavailableError) else None
        return cls(error=exc.kind, message=exc.message, available_times=hint)


@dataclass(frozen=True)
class TransitionResult:
    booking: Optional[Booking] = None
    previous_status: Optional[str] = None
    changed: bool = False
    rewarded: bool = False
    error: Optional[ErrorKind] = None
    message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failure(cls, exc: BookingError) -> "TransitionResult":
        return cls(error=exc.kind, message=exc.message)


@dataclass
class ReminderSweepResult:
    sent: int = 0
    skipped: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=list)
