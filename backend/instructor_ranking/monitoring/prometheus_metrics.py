"""
Prometheus metrics module for the instructor ranking engine.

Service timings come from the @measure_operation decorator; the domain
helpers below count stats mutations, ranking passes and lock outcomes.
"""

from threading import Lock
from time import monotonic
from typing import Optional, cast

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

# Create a custom registry to avoid conflicts with default metrics
REGISTRY = CollectorRegistry()

service_operation_duration_seconds = Histogram(
    "instructor_ranking_service_operation_duration_seconds",
    "Service operation duration in seconds",
    ["service", "operation"],
    registry=REGISTRY,
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

service_operations_total = Counter(
    "instructor_ranking_service_operations_total",
    "Total number of service operations",
    ["service", "operation", "status"],
    registry=REGISTRY,
)

errors_total = Counter(
    "instructor_ranking_errors_total",
    "Total number of errors",
    ["service", "operation", "error_type"],
    registry=REGISTRY,
)

stats_mutations_total = Counter(
    "instructor_ranking_stats_mutations_total",
    "Stats mutations by event type and outcome",
    ["event", "outcome"],
    registry=REGISTRY,
)

skipped_inputs_total = Counter(
    "instructor_ranking_skipped_inputs_total",
    "Lessons or reviews rejected as invalid input and skipped",
    ["kind"],
    registry=REGISTRY,
)

ranking_pass_total = Counter(
    "instructor_ranking_pass_total",
    "Ranking batch passes by outcome",
    ["outcome"],
    registry=REGISTRY,
)

ranking_pass_instructors = Gauge(
    "instructor_ranking_pass_instructors",
    "Number of instructors ordered by the most recent ranking pass",
    registry=REGISTRY,
)

ranking_pass_rank_changes = Gauge(
    "instructor_ranking_pass_rank_changes",
    "Number of instructors whose rank moved in the most recent ranking pass",
    registry=REGISTRY,
)

ranking_lock_total = Counter(
    "instructor_ranking_lock_total",
    "Ranking pass lock operations",
    ["action", "outcome"],
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
            service: Service name (e.g., 'InstructorStatsService')
            operation: Operation/method name (e.g., 'on_lesson_completed')
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
    def record_stats_mutation(event: str, outcome: str) -> None:
        """Count an aggregation event ('applied', 'duplicate', 'failed')."""
        stats_mutations_total.labels(event=event, outcome=outcome).inc()
        PrometheusMetrics._invalidate_cache()

    @staticmethod
    def record_skipped_input(kind: str) -> None:
        skipped_inputs_total.labels(kind=kind).inc()
        PrometheusMetrics._invalidate_cache()

    @staticmethod
    def record_ranking_pass(outcome: str, instructors: int = 0, rank_changes: int = 0) -> None:
        """Record a batch pass ('completed', 'clean', 'locked')."""
        ranking_pass_total.labels(outcome=outcome).inc()
        if outcome == "completed":
            ranking_pass_instructors.set(instructors)
            ranking_pass_rank_changes.set(rank_changes)
        PrometheusMetrics._invalidate_cache()

    @staticmethod
    def record_ranking_lock(action: str, outcome: str) -> None:
        ranking_lock_total.labels(action=action, outcome=outcome).inc()
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
        """Get the content type for Prometheus metrics."""
        return cast(str, CONTENT_TYPE_LATEST)

    @staticmethod
    def _invalidate_cache() -> None:
        """Invalidate cached metrics so next scrape refreshes."""
        with PrometheusMetrics._cache_lock:
            PrometheusMetrics._cache_ts = None
            PrometheusMetrics._cache_payload = None


prometheus_metrics = PrometheusMetrics()
