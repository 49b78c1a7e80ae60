"""
Type definitions for the document queue.
"""

from docqueue.types.events import JobEvent
from docqueue.types.job import JobDocument, JobResult

__all__ = [
    "JobDocument",
    "JobResult",
    "JobEvent",
]
