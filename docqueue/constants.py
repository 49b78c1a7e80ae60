"""
Application constants.
Centralized location for all constant values used across the queue.
"""

from enum import StrEnum


class JobStatus(StrEnum):
    """
    Job lifecycle states.

    State transitions:
    - PENDING -> PROCESSING (claim won)
    - PROCESSING -> COMPLETED (handler succeeded)
    - PROCESSING -> FAILED (handler failed)
    - PROCESSING -> PROCESSING (expired claim reclaimed by a later poll)
    """

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


# Default values
DEFAULT_JOB_TIMEOUT_MS = 10000
DEFAULT_WORKER_INTERVAL_MS = 1500
DEFAULT_WORKER_SIZE = 10
DEFAULT_QUEUE_INDEX = "jobs"

MAX_ATTEMPTS_ERROR = "max attempts reached"

# Event names
EVENT_JOB_CREATED = "job.created"
EVENT_JOB_ERROR = "job.error"
EVENT_JOB_CLAIMED = "job.claimed"
EVENT_JOB_COMPLETED = "job.completed"
EVENT_JOB_FAILED = "job.failed"
EVENT_WORKER_ERROR = "worker.error"

# Metrics names
METRIC_JOBS_CREATED = "docqueue_jobs_created_total"
METRIC_JOBS_CLAIMED = "docqueue_jobs_claimed_total"
METRIC_CLAIM_CONFLICTS = "docqueue_claim_conflicts_total"
METRIC_EXPIRED_RECLAIMS = "docqueue_expired_reclaims_total"
METRIC_JOBS_FINISHED = "docqueue_jobs_finished_total"
METRIC_JOB_DURATION = "docqueue_job_duration_seconds"
METRIC_POLL_ERRORS = "docqueue_poll_errors_total"

# Trace span names
SPAN_CLAIM_JOB = "claim_job"
SPAN_EXECUTE_JOB = "execute_job"
