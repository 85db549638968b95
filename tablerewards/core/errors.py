"""
Error taxonomy for the booking engine.

Every failure the engine can report is one of the ErrorKind values below.
Inside the engine they travel as BookingError subclasses; the public engine
functions catch them and hand callers a structured result instead, so a
caller can tell "rejected" (don't retry) from "unavailable" (retry later).
"""

from enum import Enum
from typing import Optional

from fastapi import status


class ErrorKind(str, Enum):
    INVALID_REQUEST = "invalid_request"
    NOT_FOUND = "not_found"
    SLOT_UNAVAILABLE = "slot_unavailable"
    FORBIDDEN = "forbidden"
    INVALID_TRANSITION = "invalid_transition"
    CONFLICT = "conflict"
    UNAVAILABLE = "unavailable"


HTTP_STATUS_BY_KIND = {
    ErrorKind.INVALID_REQUEST: status.HTTP_400_BAD_REQUEST,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.SLOT_UNAVAILABLE: status.HTTP_409_CONFLICT,
    ErrorKind.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorKind.INVALID_TRANSITION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
}

# Kinds a caller may retry as-is
RETRYABLE_KINDS = frozenset({ErrorKind.CONFLICT, ErrorKind.UNAVAILABLE})


class BookingError(Exception):
    """Base class for failures raised inside the booking engine."""

    kind: ErrorKind = ErrorKind.INVALID_REQUEST
    default_message = "Booking request failed"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    @property
    def retryable(self) -> bool:
        return self.kind in RETRYABLE_KINDS


class InvalidRequestError(BookingError):
    kind = ErrorKind.INVALID_REQUEST
    default_message = "Invalid booking request"


class NotFoundError(BookingError):
    kind = ErrorKind.NOT_FOUND
    default_message = "Resource not found"


class SlotUnavailableError(BookingError):
    kind = ErrorKind.SLOT_UNAVAILABLE
    default_message = "Not enough capacity for the requested time"

    def __init__(self, message: Optional[str] = None, available_times: Optional[list[str]] = None):
        super().__init__(message)
        self.available_times = available_times or []


class ForbiddenError(BookingError):
    kind = ErrorKind.FORBIDDEN
    default_message = "Insufficient permissions to modify this booking"


class InvalidTransitionError(BookingError):
    kind = ErrorKind.INVALID_TRANSITION
    default_message = "Illegal booking status change"


class ConflictError(BookingError):
    kind = ErrorKind.CONFLICT
    default_message = "Booking failed due to high demand. Please try again."


class UnavailableError(BookingError):
    kind = ErrorKind.UNAVAILABLE
    default_message = "Booking service temporarily unavailable. Please retry."
