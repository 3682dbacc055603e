"""Prometheus metrics for monitoring."""

from __future__ import annotations

from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest

from reliqueue.core.config import get_settings

# Create a custom registry
REGISTRY = CollectorRegistry()


QUEUE_PUSHED_TOTAL = Counter(
    "reliqueue_pushed_total",
    "Total values pushed",
    ["queue"],
    registry=REGISTRY,
)

QUEUE_SHIFTED_TOTAL = Counter(
    "reliqueue_shifted_total",
    "Total shift operations",
    ["queue", "status"],
    registry=REGISTRY,
)

HANDLER_DURATION = Histogram(
    "reliqueue_handler_duration_seconds",
    "Handler execution duration, retries included",
    ["queue"],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 30.0, 60.0, 300.0],
    registry=REGISTRY,
)

RECOVERY_PASSES_TOTAL = Counter(
    "reliqueue_recovery_passes_total",
    "Total completed recovery passes",
    ["queue"],
    registry=REGISTRY,
)

RECOVERED_TOTAL = Counter(
    "reliqueue_recovered_total",
    "Total abandoned transactions returned to the queue",
    ["queue"],
    registry=REGISTRY,
)

DEAD_LETTERED_TOTAL = Counter(
    "reliqueue_dead_lettered_total",
    "Total records written to dead letter lists",
    ["queue", "reason"],
    registry=REGISTRY,
)


class MetricsCollector:
    """
    Thin wrapper over the module-level metrics.

    Recording is a no-op when metrics are disabled in settings.
    """

    def __init__(self, enabled: bool | None = None) -> None:
        if enabled is None:
            enabled = get_settings().observability.metrics_enabled
        self.enabled = enabled

    def record_push(self, queue: str) -> None:
        """Record a pushed value."""
        if self.enabled:
            QUEUE_PUSHED_TOTAL.labels(queue=queue).inc()

    def record_shift(self, queue: str, status: str) -> None:
        """Record a shift outcome (success, failure or empty)."""
        if self.enabled:
            QUEUE_SHIFTED_TOTAL.labels(queue=queue, status=status).inc()

    def observe_handler(self, queue: str, duration_seconds: float) -> None:
        """Record handler duration."""
        if self.enabled:
            HANDLER_DURATION.labels(queue=queue).observe(duration_seconds)

    def record_recovery_pass(self, queue: str, recovered: int) -> None:
        """Record a completed recovery pass."""
        if not self.enabled:
            return
        RECOVERY_PASSES_TOTAL.labels(queue=queue).inc()
        if recovered:
            RECOVERED_TOTAL.labels(queue=queue).inc(recovered)

    def record_dead_letter(self, queue: str, reason: str) -> None:
        """Record a dead letter write."""
        if self.enabled:
            DEAD_LETTERED_TOTAL.labels(queue=queue, reason=reason).inc()

    def get_metrics(self) -> bytes:
        """Generate metrics in Prometheus format."""
        return generate_latest(REGISTRY)


# Global metrics collector instance
_collector: MetricsCollector | None = None


def get_metrics_collector() -> MetricsCollector:
    """Get the global metrics collector."""
    global _collector
    if _collector is None:
        _collector = MetricsCollector()
    return _collector
