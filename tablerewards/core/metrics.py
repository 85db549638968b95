"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from fastapi import Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

# Booking admission
booking_attempts = Counter(
    'booking_attempts_total',
    'Total booking requests',
    ['outcome']  # created, invalid_request, not_found, slot_unavailable, conflict, unavailable
)

booking_latency = Histogram(
    'booking_latency_seconds',
    'Booking request latency',
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5]
)

admission_retries = Counter(
    'booking_admission_retries_total',
    'Slot compare-and-update retries after a lost race',
    ['operation']  # admit, transition
)

# Status transitions and rewards
booking_transitions = Counter(
    'booking_transitions_total',
    'Booking status transition requests',
    ['to_status', 'outcome']
)

rewards_issued = Counter(
    'rewards_issued_total',
    'Booking confirmation rewards written to the ledger'
)

reward_duplicates = Counter(
    'reward_duplicates_skipped_total',
    'Confirmation rewards skipped because the ledger already held one'
)

# Notifications
notifications = Counter(
    'notifications_total',
    'Notification deliveries',
    ['kind', 'result']  # confirmation/reminder, sent/failed/skipped
)

reminder_sweeps = Counter(
    'reminder_sweeps_total',
    'Reminder sweep runs'
)

# HTTP
http_requests = Counter(
    'http_requests_total',
    'HTTP requests by route template',
    ['method', 'route', 'status_code']
)

http_request_latency = Histogram(
    'http_request_duration_seconds',
    'HTTP request latency by route template',
    ['route'],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0]
)

# Cache
cache_operations = Counter(
    'cache_operations_total',
    'Cache operations',
    ['operation', 'result']  # get/set, hit/miss
)


def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_booking_attempt(outcome: str):
    booking_attempts.labels(outcome=outcome).inc()


def record_transition(to_status: str, outcome: str):
    booking_transitions.labels(to_status=to_status, outcome=outcome).inc()


def record_retry(operation: str):
    admission_retries.labels(operation=operation).inc()


def record_notification(kind: str, result: str):
    notifications.labels(kind=kind, result=result).inc()


def record_cache_operation(operation: str, hit: bool):
    result = "hit" if hit else "miss"
    cache_operations.labels(operation=operation, result=result).inc()


def record_http_request(method: str, route: str, status_code: int, seconds: float):
    http_requests.labels(method=method, route=route, status_code=str(status_code)).inc()
    http_request_latency.labels(route=route).observe(seconds)
