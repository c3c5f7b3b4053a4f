"""
Prometheus metrics for the reservation backend.

Service timings come from the @measure_operation decorator; the domain
counters below track slot conflicts, availability write retries and the
expiry scheduler.
"""

from threading import Lock
from time import monotonic
from typing import Optional, cast

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

# Create a custom registry to avoid conflicts with default metrics
REGISTRY = CollectorRegistry()

service_operation_duration_seconds = Histogram(
    "studiohub_service_operation_duration_seconds",
    "Service operation duration in seconds",
    ["service", "operation"],
    registry=REGISTRY,
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

service_operations_total = Counter(
    "studiohub_service_operations_total",
    "Total number of service operations",
    ["service", "operation", "status"],
    registry=REGISTRY,
)

errors_total = Counter(
    "studiohub_errors_total",
    "Total number of errors",
    ["service", "operation", "error_type"],
    registry=REGISTRY,
)

slot_conflicts_total = Counter(
    "studiohub_slot_conflicts_total",
    "Reservation attempts refused because a slot was already taken",
    ["reason"],  # unavailable | contention
    registry=REGISTRY,
)

availability_write_retries_total = Counter(
    "studiohub_availability_write_retries_total",
    "Versioned availability writes retried after a concurrent update",
    ["operation"],  # acquire | release
    registry=REGISTRY,
)

reservations_expired_total = Counter(
    "studiohub_reservations_expired_total",
    "Pending reservations transitioned to expired by the sweep",
    registry=REGISTRY,
)

reservation_release_failures_total = Counter(
    "studiohub_reservation_release_failures_total",
    "Slot releases that failed during an expiry sweep and were left pending",
    registry=REGISTRY,
)

scheduler_job_runs_total = Counter(
    "studiohub_scheduler_job_runs_total",
    "Scheduler job executions",
    ["job", "status"],  # status: success | error | skipped
    registry=REGISTRY,
)


class PrometheusMetrics:
    """Manages Prometheus metrics collection and exposure."""

    _cache_lock: Lock = Lock()
    _cache_payload: Optional[bytes] = None
    _cache_ts: Optional[float] = None
    _cache_ttl_seconds: float = 1.0

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
            service: Service name (e.g., 'ReservationService')
            operation: Operation/method name (e.g., 'create_reservation')
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
        PrometheusMetrics._invalidate_cache()

    @staticmethod
    def inc_slot_conflict(reason: str) -> None:
        slot_conflicts_total.labels(reason=reason).inc()
        PrometheusMetrics._invalidate_cache()

    @staticmethod
    def inc_availability_retry(operation: str) -> None:
        availability_write_retries_total.labels(operation=operation).inc()
        PrometheusMetrics._invalidate_cache()

    @staticmethod
    def record_expiry_sweep(expired: int, failed: int) -> None:
        if expired:
            reservations_expired_total.inc(expired)
        if failed:
            reservation_release_failures_total.inc(failed)
        PrometheusMetrics._invalidate_cache()

    @staticmethod
    def record_scheduler_run(job: str, status: str) -> None:
        scheduler_job_runs_total.labels(job=job, status=status).inc()
        PrometheusMetrics._invalidate_cache()

    @staticmethod
    def get_metrics() -> bytes:
        """
        Generate Prometheus metrics in exposition format.

        Returns:
            Metrics data in Prometheus text format
        """
        now = monotonic()
        payload = PrometheusMetrics._cache_payload
        ts = PrometheusMetrics._cache_ts
        if payload is not None and ts is not None and (now - ts) <= PrometheusMetrics._cache_ttl_seconds:
            return payload

        with PrometheusMetrics._cache_lock:
            PrometheusMetrics._cache_payload = cast(bytes, generate_latest(REGISTRY))
            PrometheusMetrics._cache_ts = monotonic()
            return PrometheusMetrics._cache_payload

    @staticmethod
    def get_content_type() -> str:
        return cast(str, CONTENT_TYPE_LATEST)

    @staticmethod
    def _invalidate_cache() -> None:
        with PrometheusMetrics._cache_lock:
            PrometheusMetrics._cache_ts = None
            PrometheusMetrics._cache_payload = None


# Singleton instance
prometheus_metrics = PrometheusMetrics()
