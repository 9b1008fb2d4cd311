"""
Prometheus instrumentation for the sessions API.

Service timings come from ``BaseService.measure_operation``; the booking
coordinator adds reservation and outcome counters. Everything registers on
a private REGISTRY so the exposition only carries our own families.
"""

from threading import Lock
from time import monotonic
from typing import Optional

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

REGISTRY = CollectorRegistry()

service_operation_duration_seconds = Histogram(
    "mentorhub_service_operation_duration_seconds",
    "Wall time spent in measured service operations",
    ["service", "operation"],
    registry=REGISTRY,
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

service_operations_total = Counter(
    "mentorhub_service_operations_total",
    "Measured service operations by result",
    ["service", "operation", "status"],
    registry=REGISTRY,
)

errors_total = Counter(
    "mentorhub_errors_total",
    "Exceptions raised out of measured service operations",
    ["service", "operation", "error_type"],
    registry=REGISTRY,
)

# action: acquire, release or sweep; outcome: success, blocked, error or not_found
booking_lock_operations_total = Counter(
    "mentorhub_booking_lock_operations_total",
    "Booking reservation operations by outcome",
    ["action", "outcome"],
    registry=REGISTRY,
)

# outcome: created, rescheduled or an error code such as SLOT_FULL
booking_outcomes_total = Counter(
    "mentorhub_session_booking_outcomes_total",
    "Session booking attempts by terminal outcome",
    ["outcome"],
    registry=REGISTRY,
)

booking_locks_swept = Gauge(
    "mentorhub_booking_locks_swept_last_run",
    "Expired booking reservations removed by the most recent sweep",
    registry=REGISTRY,
)


class PrometheusMetrics:
    """Recording helpers plus a short-lived cache of the rendered exposition."""

    def __init__(self, cache_ttl_seconds: float = 1.0):
        self._lock = Lock()
        self._payload: Optional[bytes] = None
        self._rendered_at = 0.0
        self._ttl = cache_ttl_seconds

    def record_service_operation(
        self,
        service: str,
        operation: str,
        duration: float,
        status: str = "success",
        error_type: Optional[str] = None,
    ) -> None:
        service_operation_duration_seconds.labels(service=service, operation=operation).observe(duration)
        service_operations_total.labels(service=service, operation=operation, status=status).inc()
        if status == "error" and error_type:
            errors_total.labels(service=service, operation=operation, error_type=error_type).inc()
        self.invalidate()

    def record_booking_lock(self, action: str, outcome: str) -> None:
        booking_lock_operations_total.labels(action=action, outcome=outcome).inc()
        self.invalidate()

    def record_booking_outcome(self, outcome: str) -> None:
        booking_outcomes_total.labels(outcome=outcome).inc()
        self.invalidate()

    def set_locks_swept(self, count: int) -> None:
        booking_locks_swept.set(count)
        self.invalidate()

    def get_metrics(self) -> bytes:
        """Render REGISTRY in text exposition format, reusing a fresh render."""
        with self._lock:
            if self._payload is None or monotonic() - self._rendered_at > self._ttl:
                self._payload = generate_latest(REGISTRY)
                self._rendered_at = monotonic()
            return self._payload

    def get_content_type(self) -> str:
        return CONTENT_TYPE_LATEST

    def invalidate(self) -> None:
        with self._lock:
            self._payload = None


prometheus_metrics = PrometheusMetrics()

# Seed one series so the histogram buckets are exported before the first request.
service_operation_duration_seconds.labels(service="bootstrap", operation="init").observe(0.0)
