"""
Prometheus metrics for the sports center core.

Service timings come from @BaseService.measure_operation; the domain
counters below are incremented by the ledger, payment and reservation
services.
"""

from typing import Optional, cast

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

# Custom registry so test runs can import the module repeatedly
REGISTRY = CollectorRegistry()

http_request_duration_seconds = Histogram(
    "sportcenter_http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint", "status_code"],
    registry=REGISTRY,
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

http_requests_total = Counter(
    "sportcenter_http_requests_total",
    "Total number of HTTP requests",
    ["method", "endpoint", "status_code"],
    registry=REGISTRY,
)

service_operation_duration_seconds = Histogram(
    "sportcenter_service_operation_duration_seconds",
    "Service operation duration in seconds",
    ["service", "operation"],
    registry=REGISTRY,
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

service_operations_total = Counter(
    "sportcenter_service_operations_total",
    "Total number of service operations",
    ["service", "operation", "status"],
    registry=REGISTRY,
)

errors_total = Counter(
    "sportcenter_errors_total",
    "Total number of errors",
    ["service", "operation", "error_type"],
    registry=REGISTRY,
)

ledger_entries_total = Counter(
    "sportcenter_ledger_entries_total",
    "Wallet ledger entries appended",
    ["type", "reason"],
    registry=REGISTRY,
)

ledger_replays_total = Counter(
    "sportcenter_ledger_replays_total",
    "Ledger applications short-circuited by an existing idempotency key",
    registry=REGISTRY,
)

reservation_conflicts_total = Counter(
    "sportcenter_reservation_conflicts_total",
    "Reservation creations rejected by the conflict check",
    ["reason"],
    registry=REGISTRY,
)

payments_total = Counter(
    "sportcenter_payments_total",
    "Processed reservation payments",
    ["method", "outcome"],
    registry=REGISTRY,
)

promotion_applications_total = Counter(
    "sportcenter_promotion_applications_total",
    "Promotion applications recorded",
    ["promotion_type"],
    registry=REGISTRY,
)


class PrometheusMetrics:
    """Manages Prometheus metrics collection and exposure."""

    @staticmethod
    def record_http_request(method: str, endpoint: str, duration: float, status_code: int) -> None:
        labels = {"method": method, "endpoint": endpoint, "status_code": str(status_code)}
        http_request_duration_seconds.labels(**labels).observe(duration)
        http_requests_total.labels(**labels).inc()

    @staticmethod
    def record_service_operation(
        service: str,
        operation: str,
        duration: float,
        status: str = "success",
        error_type: Optional[str] = None,
    ) -> None:
        """
        Record service operation metrics from @measure_operation decorator.

        Args:
            service: Service name (e.g., 'WalletLedger')
            operation: Operation name (e.g., 'apply_entry')
            duration: Operation duration in seconds
            status: Operation status ('success' or 'error')
            error_type: Type of error if status is 'error'
        """
        service_operation_duration_seconds.labels(service=service, operation=operation).observe(
            duration
        )
        service_operations_total.labels(service=service, operation=operation, status=status).inc()
        if status == "error" and error_type:
            errors_total.labels(service=service, operation=operation, error_type=error_type).inc()

    # Domain helpers
    @staticmethod
    def inc_ledger_entry(entry_type: str, reason: str) -> None:
        ledger_entries_total.labels(type=entry_type, reason=reason).inc()

    @staticmethod
    def inc_ledger_replay() -> None:
        ledger_replays_total.inc()

    @staticmethod
    def inc_reservation_conflict(reason: str) -> None:
        reservation_conflicts_total.labels(reason=reason).inc()

    @staticmethod
    def inc_payment(method: str, outcome: str) -> None:
        payments_total.labels(method=method, outcome=outcome).inc()

    @staticmethod
    def inc_promotion_application(promotion_type: str) -> None:
        promotion_applications_total.labels(promotion_type=promotion_type).inc()

    @staticmethod
    def get_metrics() -> bytes:
        """Generate Prometheus metrics in exposition format."""
        return cast(bytes, generate_latest(REGISTRY))

    @staticmethod
    def get_content_type() -> str:
        return cast(str, CONTENT_TYPE_LATEST)


# Singleton instance
prometheus_metrics = PrometheusMetrics()
