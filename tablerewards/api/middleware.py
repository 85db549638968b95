"""
Request correlation, access logging and per-route HTTP metrics.

Booking and transition logs emitted deeper in the stack carry the same
request_id, so one reservation attempt can be followed end to end. Metrics
are labelled by route template ("/api/v1/bookings/{booking_id}/confirm"),
never by raw path, to keep label cardinality bounded.
"""

import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from tablerewards.core.logging import get_logger
from tablerewards.core.metrics import record_http_request

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
RESPONSE_TIME_HEADER = "X-Response-Time"

# Health checks and scrapes: measured, not logged
QUIET_PATHS = frozenset({"/health", "/metrics"})

SLOW_REQUEST_MS = 1000


def _route_template(request: Request) -> str:
    route = request.scope.get("route")
    return getattr(route, "path", None) or "unmatched"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:12]
        started = time.perf_counter()

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )

        try:
            response = await call_next(request)
        except Exception as e:
            elapsed = time.perf_counter() - started
            record_http_request(request.method, _route_template(request), 500, elapsed)
            logger.error("request_failed", error=str(e), duration_ms=round(elapsed * 1000, 2))
            raise

        elapsed = time.perf_counter() - started
        duration_ms = round(elapsed * 1000, 2)
        record_http_request(request.method, _route_template(request), response.status_code, elapsed)

        if response.status_code >= 500:
            logger.error("request_completed", status_code=response.status_code, duration_ms=duration_ms)
        elif duration_ms >= SLOW_REQUEST_MS:
            logger.warning("request_slow", status_code=response.status_code, duration_ms=duration_ms)
        elif request.url.path not in QUIET_PATHS:
            logger.info("request_completed", status_code=response.status_code, duration_ms=duration_ms)

        response.headers[REQUEST_ID_HEADER] = request_id
        response.headers[RESPONSE_TIME_HEADER] = f"{duration_ms}ms"
        return response
