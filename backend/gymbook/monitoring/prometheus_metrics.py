"""
Prometheus metrics for the booking service.

Service timings come from the @measure_operation decorator; booking and
anti-abuse counters are incremented by their services.
"""

from typing import Optional

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

# Custom registry so test re-imports don't collide with default metrics
REGISTRY = CollectorRegistry()

service_operation_duration_seconds = Histogram(
    "gymbook_service_operation_duration_seconds",
    "Service operation duration in seconds",
    ["service", "operation"],
    registry=REGISTRY,
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

service_operations_total = Counter(
    "gymbook_service_operations_total",
    "Total number of service operations",
    ["service", "operation", "status"],
    registry=REGISTRY,
)

errors_total = Counter(
    "gymbook_errors_total",
    "Total number of errors by type",
    ["service", "operation", "error_type"],
    registry=REGISTRY,
)

bookings_total = Counter(
    "gymbook_bookings_total",
    "Bookings created by kind",
    ["kind"],  # free | card | cash
    registry=REGISTRY,
)

booking_rejections_total = Counter(
    "gymbook_booking_rejections_total",
    "Booking attempts rejected by reason code",
    ["reason"],
    registry=REGISTRY,
)

rate_limit_trips_total = Counter(
    "gymbook_rate_limit_trips_total",
    "Requests rejected by the daily per-address limiter",
    ["category"],  # booking | signup | contact
    registry=REGISTRY,
)

captcha_checks_total = Counter(
    "gymbook_captcha_checks_total",
    "Captcha verifications by result",
    ["result"],  # passed | failed | missing | bypassed
    registry=REGISTRY,
)


class PrometheusMetrics:
    """Thin facade used by services and the metrics route."""

    @staticmethod
    def record_service_operation(
        service: str,
        operation: str,
        duration: float,
        status: str = "success",
        error_type: Optional[str] = None,
    ) -> None:
        service_operation_duration_seconds.labels(service=service, operation=operation).observe(
            duration
        )
        service_operations_total.labels(service=service, operation=operation, status=status).inc()
        if status == "error" and error_type:
            errors_total.labels(service=service, operation=operation, error_type=error_type).inc()

    @staticmethod
    def record_booking(kind: str) -> None:
        bookings_total.labels(kind=kind).inc()

    @staticmethod
    def record_booking_rejection(reason: str) -> None:
        booking_rejections_total.labels(reason=reason).inc()

    @staticmethod
    def record_rate_limit_trip(category: str) -> None:
        rate_limit_trips_total.labels(category=category).inc()

    @staticmethod
    def record_captcha(result: str) -> None:
        captcha_checks_total.labels(result=result).inc()

    @staticmethod
    def export() -> bytes:
        return generate_latest(REGISTRY)

    content_type = CONTENT_TYPE_LATEST


prometheus_metrics = PrometheusMetrics()
