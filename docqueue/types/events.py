"""
Event type definitions for lifecycle notifications.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel

from docqueue.constants import (
    EVENT_JOB_CLAIMED,
    EVENT_JOB_COMPLETED,
    EVENT_JOB_CREATED,
    EVENT_JOB_ERROR,
    EVENT_JOB_FAILED,
    EVENT_WORKER_ERROR,
    JobStatus,
)
from docqueue.utils import utcnow


class JobEvent(BaseModel):
    """
    Event emitted when job state changes.
    Passed as the single argument to every EventEmitter listener.
    """

    event_type: str
    job_id: str | None
    job_type: str
    status: JobStatus | None = None
    timestamp: datetime
    worker_id: str | None = None
    data: dict[str, Any] | None = None

    @classmethod
    def job_created(
        cls,
        job_id: str,
        job_type: str,
        payload: dict[str, Any],
    ) -> "JobEvent":
        """Create a job created event."""
        return cls(
            event_type=EVENT_JOB_CREATED,
            job_id=job_id,
            job_type=job_type,
            status=JobStatus.PENDING,
            timestamp=utcnow(),
            data={"payload": payload},
        )

    @classmethod
    def job_error(
        cls,
        job_type: str,
        error: str,
    ) -> "JobEvent":
        """Create an event for a job document that could not be created."""
        return cls(
            event_type=EVENT_JOB_ERROR,
            job_id=None,
            job_type=job_type,
            timestamp=utcnow(),
            data={"error": error},
        )

    @classmethod
    def job_claimed(
        cls,
        job_id: str,
        job_type: str,
        worker_id: str,
        attempt: int,
        process_expiration: str,
    ) -> "JobEvent":
        """Create a job claimed event."""
        return cls(
            event_type=EVENT_JOB_CLAIMED,
            job_id=job_id,
            job_type=job_type,
            status=JobStatus.PROCESSING,
            timestamp=utcnow(),
            worker_id=worker_id,
            data={"attempt": attempt, "process_expiration": process_expiration},
        )

    @classmethod
    def job_completed(
        cls,
        job_id: str,
        job_type: str,
        worker_id: str,
        output: Any = None,
    ) -> "JobEvent":
        """Create a job completed event."""
        return cls(
            event_type=EVENT_JOB_COMPLETED,
            job_id=job_id,
            job_type=job_type,
            status=JobStatus.COMPLETED,
            timestamp=utcnow(),
            worker_id=worker_id,
            data={"output": output},
        )

    @classmethod
    def job_failed(
        cls,
        job_id: str,
        job_type: str,
        worker_id: str,
        error: str,
        attempt: int,
    ) -> "JobEvent":
        """Create a job failed event."""
        return cls(
            event_type=EVENT_JOB_FAILED,
            job_id=job_id,
            job_type=job_type,
            status=JobStatus.FAILED,
            timestamp=utcnow(),
            worker_id=worker_id,
            data={"error": error, "attempt": attempt},
        )

    @classmethod
    def worker_error(
        cls,
        job_type: str,
        worker_id: str,
        error: str,
        job_id: str | None = None,
    ) -> "JobEvent":
        """Create an event for a store fault seen by a worker."""
        return cls(
            event_type=EVENT_WORKER_ERROR,
            job_id=job_id,
            job_type=job_type,
            timestamp=utcnow(),
            worker_id=worker_id,
            data={"error": error},
        )
