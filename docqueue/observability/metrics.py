"""
Prometheus metrics collection.
"""

from prometheus_client import (
    REGISTRY,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

from docqueue.constants import (
    METRIC_CLAIM_CONFLICTS,
    METRIC_EXPIRED_RECLAIMS,
    METRIC_JOB_DURATION,
    METRIC_JOBS_CLAIMED,
    METRIC_JOBS_CREATED,
    METRIC_JOBS_FINISHED,
    METRIC_POLL_ERRORS,
)

# Global metrics instance
_metrics: "MetricsCollector | None" = None


class MetricsCollector:
    """
    Prometheus metrics collector for queue activity.

    Collects metrics for:
    - Job creation
    - Claims won, lost to conflicts, and reclaimed after expiry
    - Terminal outcomes and handler duration
    - Poll cycle faults
    """

    def __init__(self, registry: CollectorRegistry | None = None):
        """
        Initialize the metrics collector.

        Args:
            registry: Optional custom registry. Uses default if not provided.
        """
        self._registry = registry or REGISTRY

        self.jobs_created = Counter(
            METRIC_JOBS_CREATED,
            "Total number of job documents created",
            ["job_type"],
            registry=self._registry,
        )

        self.jobs_claimed = Counter(
            METRIC_JOBS_CLAIMED,
            "Total number of claims won",
            ["job_type", "worker_id"],
            registry=self._registry,
        )

        self.claim_conflicts = Counter(
            METRIC_CLAIM_CONFLICTS,
            "Total number of claims lost to a version conflict",
            ["job_type"],
            registry=self._registry,
        )

        self.expired_reclaims = Counter(
            METRIC_EXPIRED_RECLAIMS,
            "Total number of expired claims taken over by a new claim",
            ["job_type"],
            registry=self._registry,
        )

        self.jobs_finished = Counter(
            METRIC_JOBS_FINISHED,
            "Total number of jobs reaching a terminal status",
            ["job_type", "status"],
            registry=self._registry,
        )

        self.job_duration = Histogram(
            METRIC_JOB_DURATION,
            "Handler execution duration in seconds",
            ["job_type", "status"],
            buckets=(0.01, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0),
            registry=self._registry,
        )

        self.poll_errors = Counter(
            METRIC_POLL_ERRORS,
            "Total number of store faults seen by workers",
            ["job_type", "operation"],
            registry=self._registry,
        )

    def record_job_created(self, job_type: str) -> None:
        self.jobs_created.labels(job_type=job_type).inc()

    def record_claim(self, job_type: str, worker_id: str, reclaimed: bool = False) -> None:
        """Record a claim won; ``reclaimed`` marks a takeover of an expired claim."""
        self.jobs_claimed.labels(job_type=job_type, worker_id=worker_id).inc()
        if reclaimed:
            self.expired_reclaims.labels(job_type=job_type).inc()

    def record_conflict(self, job_type: str) -> None:
        self.claim_conflicts.labels(job_type=job_type).inc()

    def record_job_finished(
        self,
        job_type: str,
        status: str,
        duration_seconds: float | None = None,
    ) -> None:
        """Record a terminal transition."""
        self.jobs_finished.labels(job_type=job_type, status=status).inc()
        if duration_seconds is not None:
            self.job_duration.labels(job_type=job_type, status=status).observe(
                duration_seconds
            )

    def record_store_error(self, job_type: str, operation: str) -> None:
        self.poll_errors.labels(job_type=job_type, operation=operation).inc()

    def get_metrics(self) -> bytes:
        """Get all metrics in Prometheus format."""
        return generate_latest(self._registry)


def setup_metrics(registry: CollectorRegistry | None = None) -> MetricsCollector:
    """
    Set up and return the process-wide metrics collector.

    Args:
        registry: Registry for a fresh collector; ignored once set up.
    """
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector(registry)
    return _metrics


def get_metrics() -> MetricsCollector:
    """Get the metrics collector, creating it on first use."""
    if _metrics is None:
        return setup_metrics()
    return _metrics
