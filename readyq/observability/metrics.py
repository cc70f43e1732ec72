"""
Prometheus metrics collection.
"""

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

from readyq.constants import (
    METRIC_LEASE_EXPIRED,
    METRIC_QUEUE_DEPTH,
    METRIC_STORE_ERRORS,
    METRIC_TASK_DURATION,
    METRIC_TASKS_CLAIMED,
    METRIC_TASKS_COMPLETED,
    METRIC_TASKS_DISCARDED,
    METRIC_TASKS_ENQUEUED,
    METRIC_TASKS_RETRIED,
)

# Global metrics instance
_metrics: "MetricsCollector | None" = None


class MetricsCollector:
    """
    Prometheus metrics collector for the task queue.

    Collects metrics for:
    - Queue depth
    - Enqueue, claim, retry and discard counts
    - Handler duration
    - Store failures and expired leases

    Discards are the only trace of a dropped task (there is no dead-letter
    set), so ``tasks_discarded`` carries the reason as a label.
    """

    def __init__(self, registry: CollectorRegistry | None = None):
        """
        Initialize the metrics collector.

        Args:
            registry: Optional custom registry. Uses default if not provided.
        """
        self._registry = registry or REGISTRY

        self.queue_depth = Gauge(
            METRIC_QUEUE_DEPTH,
            "Number of entries in the sorted set",
            ["queue"],
            registry=self._registry,
        )

        self.tasks_enqueued = Counter(
            METRIC_TASKS_ENQUEUED,
            "Total number of tasks enqueued (including requeues)",
            ["queue", "task_type"],
            registry=self._registry,
        )

        self.tasks_claimed = Counter(
            METRIC_TASKS_CLAIMED,
            "Total number of entries removed by atomic claims",
            ["queue", "worker_id"],
            registry=self._registry,
        )

        self.tasks_completed = Counter(
            METRIC_TASKS_COMPLETED,
            "Total number of delivered tasks by outcome",
            ["queue", "outcome"],
            registry=self._registry,
        )

        self.tasks_retried = Counter(
            METRIC_TASKS_RETRIED,
            "Total number of failed tasks requeued with backoff",
            ["queue"],
            registry=self._registry,
        )

        self.tasks_discarded = Counter(
            METRIC_TASKS_DISCARDED,
            "Total number of tasks permanently discarded",
            ["queue", "reason"],
            registry=self._registry,
        )

        self.task_duration = Histogram(
            METRIC_TASK_DURATION,
            "Time from delivery to completion signal in seconds",
            ["queue", "outcome"],
            buckets=(0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0),
            registry=self._registry,
        )

        self.store_errors = Counter(
            METRIC_STORE_ERRORS,
            "Total number of failed store operations",
            ["operation"],
            registry=self._registry,
        )

        self.lease_expired = Counter(
            METRIC_LEASE_EXPIRED,
            "Total number of expired leases returned to the queue",
            ["queue"],
            registry=self._registry,
        )

    def record_enqueued(self, queue: str, task_type: str) -> None:
        """Record a task insert."""
        self.tasks_enqueued.labels(queue=queue, task_type=task_type).inc()

    def record_claimed(self, queue: str, worker_id: str, count: int) -> None:
        """Record entries removed by a claim."""
        if count:
            self.tasks_claimed.labels(queue=queue, worker_id=worker_id).inc(count)

    def record_completed(self, queue: str, outcome: str, duration_seconds: float) -> None:
        """Record a delivery outcome (succeeded / retried / discarded)."""
        self.tasks_completed.labels(queue=queue, outcome=outcome).inc()
        self.task_duration.labels(queue=queue, outcome=outcome).observe(duration_seconds)

    def record_retried(self, queue: str) -> None:
        """Record a requeue after failure."""
        self.tasks_retried.labels(queue=queue).inc()

    def record_discarded(self, queue: str, reason: str) -> None:
        """Record a permanent discard."""
        self.tasks_discarded.labels(queue=queue, reason=reason).inc()

    def record_store_error(self, operation: str) -> None:
        """Record a failed store call."""
        self.store_errors.labels(operation=operation).inc()

    def record_lease_expired(self, queue: str, count: int) -> None:
        """Record leases returned to the queue by the reaper."""
        if count:
            self.lease_expired.labels(queue=queue).inc(count)

    def update_queue_depth(self, queue: str, depth: int) -> None:
        """Update queue depth."""
        self.queue_depth.labels(queue=queue).set(depth)

    def get_metrics(self) -> bytes:
        """Get all metrics in Prometheus format."""
        return generate_latest(self._registry)

    def get_content_type(self) -> str:
        """Get the content type for metrics response."""
        return CONTENT_TYPE_LATEST


def setup_metrics(registry: CollectorRegistry | None = None) -> MetricsCollector:
    """
    Set up and return the metrics collector.

    Args:
        registry: Optional registry, only honoured on first call.

    Returns:
        MetricsCollector: The metrics collector instance.
    """
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector(registry)
    return _metrics


def get_metrics() -> MetricsCollector:
    """
    Get the metrics collector instance, creating it on first use.

    Returns:
        MetricsCollector: The metrics collector instance.
    """
    if _metrics is None:
        return setup_metrics()
    return _metrics
