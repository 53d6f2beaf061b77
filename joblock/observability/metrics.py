"""
Prometheus metrics collection.
"""

from prometheus_client import (
    REGISTRY,
    CollectorRegistry,
    Counter,
    Histogram,
)

from joblock.constants import (
    METRIC_JOB_DURATION,
    METRIC_JOBS_ENQUEUED,
    METRIC_LOCK_CONTENTION,
    METRIC_LOCK_STORE_ERRORS,
    METRIC_LOCKS_ACQUIRED,
    METRIC_LOCKS_RELEASED,
)

# Global metrics instance
_metrics: "MetricsCollector | None" = None


class MetricsCollector:
    """
    Prometheus metrics collector for job locks.

    Collects metrics for:
    - Lock acquisitions and contention
    - Lock releases, by release path
    - Store errors
    - Enqueued jobs and job execution duration
    """

    def __init__(self, registry: CollectorRegistry | None = None):
        """
        Initialize the metrics collector.

        Args:
            registry: Optional custom registry. Uses default if not provided.
        """
        self._registry = registry or REGISTRY

        self.locks_acquired = Counter(
            METRIC_LOCKS_ACQUIRED,
            "Total number of job locks acquired",
            ["job"],
            registry=self._registry,
        )

        self.lock_contention = Counter(
            METRIC_LOCK_CONTENTION,
            "Total number of enqueue attempts refused because the lock was held",
            ["job"],
            registry=self._registry,
        )

        self.locks_released = Counter(
            METRIC_LOCKS_RELEASED,
            "Total number of job lock releases",
            ["job", "path"],
            registry=self._registry,
        )

        self.lock_store_errors = Counter(
            METRIC_LOCK_STORE_ERRORS,
            "Total number of store errors during lock operations",
            ["operation"],
            registry=self._registry,
        )

        self.jobs_enqueued = Counter(
            METRIC_JOBS_ENQUEUED,
            "Total number of jobs placed on a queue",
            ["queue"],
            registry=self._registry,
        )

        self.job_duration = Histogram(
            METRIC_JOB_DURATION,
            "Locked job execution duration in seconds",
            ["job", "status"],
            buckets=(0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0),
            registry=self._registry,
        )

    def record_lock_acquired(self, job: str) -> None:
        """Record a successful lock acquisition."""
        self.locks_acquired.labels(job=job).inc()

    def record_lock_contention(self, job: str) -> None:
        """Record an enqueue refused by an existing lock."""
        self.lock_contention.labels(job=job).inc()

    def record_lock_released(self, job: str, path: str) -> None:
        """Record a lock release on the given path."""
        self.locks_released.labels(job=job, path=path).inc()

    def record_store_error(self, operation: str) -> None:
        """Record a failed store operation."""
        self.lock_store_errors.labels(operation=operation).inc()

    def record_job_enqueued(self, queue: str) -> None:
        """Record a job placed on a queue."""
        self.jobs_enqueued.labels(queue=queue).inc()

    def record_job_duration(self, job: str, status: str, duration_seconds: float) -> None:
        """Record how long a locked job ran."""
        self.job_duration.labels(job=job, status=status).observe(duration_seconds)


def setup_metrics() -> MetricsCollector:
    """
    Set up and return the metrics collector.

    Returns:
        MetricsCollector: The metrics collector instance.
    """
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
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
