"""
Job-related type definitions for internal use.
"""

from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field

from docqueue.constants import DEFAULT_JOB_TIMEOUT_MS, JobStatus

if TYPE_CHECKING:
    from docqueue.store.base import StoredDocument


class JobDocument(BaseModel):
    """
    Local view of a job document read back from the store.

    The store copy is authoritative; instances are disposable snapshots
    tied to the version they were read at.
    """

    model_config = ConfigDict(extra="ignore")

    id: str
    index: str
    job_type: str
    version: Any = None

    payload: dict[str, Any] = Field(default_factory=dict)
    status: JobStatus = JobStatus.PENDING
    attempts: int = 0
    timeout: int | None = None

    created: str | None = None
    started: str | None = None
    completed: str | None = None
    process_expiration: str | None = None

    claimed_by: str | None = None
    output: Any = None
    error: str | None = None

    @classmethod
    def from_stored(cls, stored: "StoredDocument") -> "JobDocument":
        """Build a view from a store hit."""
        return cls.model_validate(
            {
                **stored.source,
                "id": stored.id,
                "index": stored.index,
                "job_type": stored.job_type,
                "version": stored.version,
            }
        )

    def effective_timeout(self, default: int = DEFAULT_JOB_TIMEOUT_MS) -> int:
        """The job's own claim duration, or the given default when unset."""
        return self.timeout if self.timeout else default


class JobResult(BaseModel):
    """
    Result of job execution.

    Handlers may return one to report failure without raising; any other
    return value is recorded as the job output.
    """

    success: bool
    output: Any = None
    error: str | None = None
    duration_ms: float | None = None
