"""
Job entity.

A Job is a local handle on one job document. Constructing it validates the
input and issues the create call against the store; the document in the store
stays the source of truth and the handle can be refreshed from it at any time.
"""

import asyncio
import logging
from collections.abc import Awaitable, Mapping
from typing import Any

from docqueue.config import get_settings
from docqueue.constants import EVENT_JOB_CREATED, EVENT_JOB_ERROR, JobStatus
from docqueue.events import EventEmitter, Listener
from docqueue.observability.metrics import get_metrics
from docqueue.store.base import DocumentStore, StoredDocument
from docqueue.types.events import JobEvent
from docqueue.types.job import JobDocument
from docqueue.utils import to_iso, utcnow

logger = logging.getLogger(__name__)


class Job:
    """
    A unit of work persisted as one store document.

    Lifecycle events (``job.created``, ``job.error`` and, when created through
    a Queue, the worker's ``job.claimed``/``job.completed``/``job.failed``)
    are published on ``job.events``.
    """

    def __init__(
        self,
        store: DocumentStore,
        index: str,
        job_type: str | None = None,
        payload: Mapping[str, Any] | None = None,
        timeout: int | None = None,
    ):
        """
        Validate the job and issue its create call.

        Must be called with an event loop running; the create call is
        scheduled as a task and can be awaited through ``indexed()``.

        Args:
            store: Document store holding the queue.
            index: Index (collection) name.
            job_type: Job type workers subscribe to.
            payload: Mapping handed to the worker's handler.
            timeout: Claim duration in milliseconds; defaults to
                ``Settings.job_timeout_ms``.

        Raises:
            TypeError: If job_type is not a non-empty string or payload is
                not a mapping.
            ValueError: If timeout is not a positive integer.
        """
        if not isinstance(job_type, str) or not job_type:
            raise TypeError("Job type must be a string")
        if not isinstance(payload, Mapping):
            raise TypeError("Job payload must be a plain object (mapping)")
        if timeout is not None and (
            isinstance(timeout, bool) or not isinstance(timeout, int) or timeout <= 0
        ):
            raise ValueError("Job timeout must be a positive integer of milliseconds")

        loop = asyncio.get_running_loop()

        self.index = index
        self.job_type = job_type
        self.payload = payload
        self.timeout = timeout or get_settings().job_timeout_ms
        self.id: str | None = None
        self.version: Any = None
        self.document: JobDocument | None = None
        self.events = EventEmitter()

        self._store = store
        self.body: dict[str, Any] = {
            "payload": payload,
            "created": to_iso(utcnow()),
            "started": None,
            "completed": None,
            "attempts": 0,
            "status": JobStatus.PENDING.value,
            "timeout": self.timeout,
        }

        self._indexing = loop.create_task(
            self._create(store.index(index, job_type, self.body))
        )
        self._indexing.add_done_callback(self._consume_result)

    def __repr__(self) -> str:
        return f"<Job {self.job_type} id={self.id} status={self.status}>"

    @property
    def status(self) -> JobStatus:
        if self.document is None:
            return JobStatus.PENDING
        return self.document.status

    @property
    def attempts(self) -> int:
        if self.document is None:
            return 0
        return self.document.attempts

    def on(self, event: str, listener: Listener) -> Listener:
        return self.events.on(event, listener)

    def once(self, event: str, listener: Listener) -> Listener:
        return self.events.once(event, listener)

    def off(self, event: str, listener: Listener) -> bool:
        return self.events.off(event, listener)

    def emit(self, event: str, *args: Any) -> bool:
        return self.events.emit(event, *args)

    async def _create(self, pending: Awaitable[StoredDocument]) -> None:
        try:
            stored = await pending
        except Exception as e:
            logger.exception(
                "Failed to create job document",
                extra={"job_type": self.job_type, "index": self.index}
            )
            self.emit(EVENT_JOB_ERROR, JobEvent.job_error(self.job_type, str(e)))
            raise

        self.id = stored.id
        self.version = stored.version
        self.document = JobDocument.from_stored(stored)

        get_metrics().record_job_created(self.job_type)
        logger.info(
            "Created job",
            extra={"job_id": self.id, "job_type": self.job_type, "index": self.index}
        )
        self.emit(
            EVENT_JOB_CREATED,
            JobEvent.job_created(self.id, self.job_type, dict(self.payload)),
        )

    @staticmethod
    def _consume_result(task: asyncio.Task) -> None:
        # Failures were logged and emitted in _create; this only marks the
        # exception as retrieved when nobody awaits indexed().
        if not task.cancelled():
            task.exception()

    async def indexed(self) -> "Job":
        """
        Wait for the create call to finish.

        Raises:
            StoreError: If the store rejected the document.
        """
        await self._indexing
        return self

    async def refresh(self) -> JobDocument:
        """
        Re-read the job document from the store.

        Returns:
            The fresh JobDocument view, also kept on ``job.document``.
        """
        await self.indexed()
        stored = await self._store.get(self.index, self.job_type, self.id)
        self.version = stored.version
        self.document = JobDocument.from_stored(stored)
        return self.document
