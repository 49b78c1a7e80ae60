"""
docqueue

A distributed job queue kept entirely in a document store. Workers claim jobs
with version-conditioned updates and reclaim expired claims on later polls,
so no broker or lock coordinator is needed.
"""

__version__ = "1.0.0"

from docqueue.constants import JobStatus  # noqa: E402
from docqueue.job import Job  # noqa: E402
from docqueue.queue import Queue  # noqa: E402
from docqueue.store import (  # noqa: E402
    DocumentNotFoundError,
    DocumentStore,
    MemoryDocumentStore,
    StoreError,
    VersionConflictError,
)
from docqueue.types import JobDocument, JobEvent, JobResult  # noqa: E402
from docqueue.worker import Worker  # noqa: E402

__all__ = [
    "Job",
    "JobDocument",
    "JobEvent",
    "JobResult",
    "JobStatus",
    "Queue",
    "Worker",
    "DocumentStore",
    "MemoryDocumentStore",
    "StoreError",
    "VersionConflictError",
    "DocumentNotFoundError",
]
