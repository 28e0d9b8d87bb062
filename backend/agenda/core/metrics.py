"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# RSVP metrics
rsvp_requests = Counter(
    'rsvp_requests_total',
    'RSVP requests by outcome',
    ['result']  # confirmed, waitlisted, already_registered, closed, not_found, conflict
)

rsvp_cancellations = Counter(
    'rsvp_cancellations_total',
    'RSVP cancellations',
    ['outcome']  # promoted, seat_released, waitlist_left
)

waitlist_promotions = Counter(
    'waitlist_promotions_total',
    'Waitlisted RSVPs promoted to confirmed',
    ['trigger']  # cancellation, capacity_increase
)

admission_latency = Histogram(
    'admission_operation_latency_seconds',
    'Latency of a full admission operation including retries',
    ['operation'],
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0]
)

# Optimistic locking
cas_retries = Counter(
    'session_cas_retries_total',
    'Session compare-and-set retries due to concurrent writers',
    ['operation']
)

# Cache metrics
cache_operations = Counter(
    'cache_operations_total',
    'Cache operations',
    ['operation', 'result']  # get/set, hit/miss
)


def metrics_endpoint() -> Response:
    """Prometheus scrape response."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_rsvp(result: str):
    rsvp_requests.labels(result=result).inc()


def record_cancellation(outcome: str):
    rsvp_cancellations.labels(outcome=outcome).inc()


def record_promotion(trigger: str, count: int = 1):
    if count:
        waitlist_promotions.labels(trigger=trigger).inc(count)


def record_retry(operation: str):
    cas_retries.labels(operation=operation).inc()


def record_cache_operation(operation: str, hit: bool):
    result = "hit" if hit else "miss"
    cache_operations.labels(operation=operation, result=result).inc()
