"""
Translate booking-engine error kinds into HTTP responses.

Error bodies keep FastAPI's {"detail": ...} envelope with a structured detail:
    {"detail": {"error": "slot_unavailable", "message": "...", "available_times": [...]}}
"""

from typing import NoReturn, Optional

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse

from tablerewards.core.errors import HTTP_STATUS_BY_KIND, BookingError, ErrorKind

RETRY_AFTER_SECONDS = 1


def _detail(kind: ErrorKind, message: Optional[str], available_times: Optional[list[str]] = None) -> dict:
    detail = {"error": kind.value, "message": message}
    if kind == ErrorKind.SLOT_UNAVAILABLE:
        detail["available_times"] = available_times or []
    return detail


def _headers(kind: ErrorKind) -> Optional[dict]:
    if kind == ErrorKind.UNAVAILABLE:
        return {"Retry-After": str(RETRY_AFTER_SECONDS)}
    return None


def raise_for_error(
    kind: ErrorKind,
    message: Optional[str],
    available_times: Optional[list[str]] = None,
) -> NoReturn:
    raise HTTPException(
        status_code=HTTP_STATUS_BY_KIND.get(kind, status.HTTP_400_BAD_REQUEST),
        detail=_detail(kind, message, available_times),
        headers=_headers(kind),
    )


async def booking_error_handler(request: Request, exc: BookingError) -> JSONResponse:
    """For BookingErrors raised outside the engine's result-returning entry points."""
    return JSONResponse(
        status_code=HTTP_STATUS_BY_KIND.get(exc.kind, status.HTTP_400_BAD_REQUEST),
        content={"detail": _detail(exc.kind, exc.message, getattr(exc, "available_times", None))},
        headers=_headers(exc.kind),
    )
