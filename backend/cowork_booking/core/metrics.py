"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Admission control metrics
admission_decisions = Counter(
    'booking_admission_decisions_total',
    'Admission decisions on the booking request path',
    ['decision']  # auto_confirmed, pending_review, reject_full
)

# Transition guard metrics
booking_transitions = Counter(
    'booking_transitions_total',
    'Guarded booking status transitions',
    ['to_status', 'outcome']  # outcome: applied, lost
)

# Reconciliation metrics
reconcile_runs = Counter(
    'booking_reconcile_runs_total',
    'Reconciliation cycles executed'
)

reconcile_outcomes = Counter(
    'booking_reconcile_outcomes_total',
    'Per-pass reconciliation outcomes',
    ['pass_name', 'outcome']  # auto_confirm/capacity_warning/expire, applied/skipped/failed
)

# Side-effect metrics
notifications_created = Counter(
    'booking_notifications_created_total',
    'Notifications written to the notification sink',
    ['type']
)

refund_failures = Counter(
    'booking_refund_failures_total',
    'Refund requests that failed after a cancellation'
)

# Cache metrics
cache_operations = Counter(
    'cache_operations_total',
    'Cache operations',
    ['operation', 'result']  # get/set, hit/miss/error
)

redis_connection_errors = Counter(
    'redis_connection_errors_total',
    'Redis connection errors'
)


def metrics_endpoint() -> Response:
    """
    Prometheus metrics endpoint.

    Usage:
        @app.get("/metrics")
        def metrics():
            return metrics_endpoint()
    """
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_admission(decision: str):
    """Record an admission decision kind."""
    admission_decisions.labels(decision=decision).inc()


def record_transition(to_status: str, applied: int, requested: int = 1):
    """Record guard results; anything not applied lost its precondition."""
    if applied:
        booking_transitions.labels(to_status=to_status, outcome="applied").inc(applied)
    lost = requested - applied
    if lost > 0:
        booking_transitions.labels(to_status=to_status, outcome="lost").inc(lost)


def record_reconcile(pass_name: str, outcome: str, amount: int = 1):
    if amount:
        reconcile_outcomes.labels(pass_name=pass_name, outcome=outcome).inc(amount)


def record_notification(notification_type: str):
    notifications_created.labels(type=notification_type).inc()


def record_cache_operation(operation: str, result: str):
    """Record cache operation. Result: hit, miss, error"""
    cache_operations.labels(operation=operation, result=result).inc()
