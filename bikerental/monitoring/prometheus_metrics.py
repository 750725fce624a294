"""
Prometheus metrics for the reservation service.

Service operations are recorded from ``@BaseService.measure_operation``;
reservation outcomes are recorded by the orchestrator. Everything lives in a
dedicated registry exposed at ``/metrics/prometheus``.
"""

from typing import Optional, cast

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

REGISTRY = CollectorRegistry()

service_operation_duration_seconds = Histogram(
    "bikerental_service_operation_duration_seconds",
    "Service operation duration in seconds",
    ["service", "operation"],
    registry=REGISTRY,
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

service_operations_total = Counter(
    "bikerental_service_operations_total",
    "Total number of service operations",
    ["service", "operation", "status"],
    registry=REGISTRY,
)

errors_total = Counter(
    "bikerental_errors_total",
    "Total number of service operation errors",
    ["service", "operation", "error_type"],
    registry=REGISTRY,
)

reservation_outcomes_total = Counter(
    "bikerental_reservation_outcomes_total",
    "Reservation requests by outcome",
    ["outcome"],
    registry=REGISTRY,
)


class PrometheusMetrics:
    """Records service metrics and renders the exposition payload."""

    CONTENT_TYPE = CONTENT_TYPE_LATEST

    @staticmethod
    def record_service_operation(
        service: str,
        operation: str,
        duration: float,
        status: str = "success",
        error_type: Optional[str] = None,
    ) -> None:
        """
        Record one measured service call.

        Args:
            service: Service class name (e.g. 'ReservationService')
            operation: Operation name (e.g. 'make_reservation')
            duration: Duration in seconds
            status: 'success' or 'error'
            error_type: Exception class name when status is 'error'
        """
        service_operation_duration_seconds.labels(service=service, operation=operation).observe(
            duration
        )
        service_operations_total.labels(service=service, operation=operation, status=status).inc()
        if status == "error" and error_type:
            errors_total.labels(service=service, operation=operation, error_type=error_type).inc()

    @staticmethod
    def record_reservation_outcome(outcome: str) -> None:
        """Count an approved, rejected or failed reservation request."""
        reservation_outcomes_total.labels(outcome=outcome).inc()

    @staticmethod
    def get_metrics() -> bytes:
        """Metrics in Prometheus text exposition format."""
        return cast(bytes, generate_latest(REGISTRY))


prometheus_metrics = PrometheusMetrics()
