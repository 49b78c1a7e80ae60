"""
Queue context.

Binds a document store to an index name and hands both to the jobs and
workers it creates. Worker events are re-published on the queue and on any
Job object this queue created for the same job id, so producers can wait on
their own jobs without polling.
"""

import logging
import weakref
from collections.abc import Mapping
from typing import Any

from docqueue.config import Settings, get_settings
from docqueue.constants import (
    EVENT_JOB_CLAIMED,
    EVENT_JOB_COMPLETED,
    EVENT_JOB_CREATED,
    EVENT_JOB_FAILED,
    EVENT_WORKER_ERROR,
)
from docqueue.events import EventEmitter
from docqueue.job import Job
from docqueue.store import DocumentStore, create_store
from docqueue.types.events import JobEvent
from docqueue.types.job import JobDocument
from docqueue.worker.handlers import JobHandler
from docqueue.worker.main import Worker

logger = logging.getLogger(__name__)

FORWARDED_EVENTS = (
    EVENT_JOB_CLAIMED,
    EVENT_JOB_COMPLETED,
    EVENT_JOB_FAILED,
    EVENT_WORKER_ERROR,
)


class Queue:
    """A named job index on a document store."""

    def __init__(
        self,
        store: DocumentStore,
        index: str | None = None,
        settings: Settings | None = None,
    ):
        """
        Args:
            store: Document store holding the jobs.
            index: Index name; defaults to ``Settings.queue_index``.
            settings: Settings used for defaults.
        """
        settings = settings or get_settings()
        self.store = store
        self.index = index or settings.queue_index
        self.events = EventEmitter()
        self.workers: list[Worker] = []
        self._jobs: weakref.WeakValueDictionary[str, Job] = weakref.WeakValueDictionary()

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "Queue":
        """Build a queue on the store selected by settings."""
        settings = settings or get_settings()
        return cls(create_store(settings), settings.queue_index, settings)

    def add_job(
        self,
        job_type: str,
        payload: Mapping[str, Any],
        timeout: int | None = None,
    ) -> Job:
        """
        Create a job in this queue.

        The create call is issued immediately; ``await job.indexed()`` waits
        for the store to acknowledge it.
        """
        job = Job(self.store, self.index, job_type, payload, timeout)
        job.once(EVENT_JOB_CREATED, lambda event: self._track(job, event))
        return job

    def _track(self, job: Job, event: JobEvent) -> None:
        self._jobs[event.job_id] = job

    def register_worker(
        self,
        job_type: str,
        handler: JobHandler,
        **options: Any,
    ) -> Worker:
        """
        Start a worker polling this queue.

        Args:
            job_type: Job type to process.
            handler: Callable receiving each job payload.
            **options: Worker options (interval, size, timeout, max_attempts).
        """
        worker = Worker(self, job_type, handler, **options)
        for event in FORWARDED_EVENTS:
            worker.on(event, self._forward(event))
        self.workers.append(worker)
        return worker

    def _forward(self, event_name: str):
        def forward(event: JobEvent) -> None:
            self.events.emit(event_name, event)
            job = self._jobs.get(event.job_id) if event.job_id else None
            if job is not None:
                job.emit(event_name, event)

        return forward

    async def get_job(self, job_id: str, job_type: str) -> JobDocument:
        """
        Read a job document.

        Raises:
            DocumentNotFoundError: If no job of that type has the id.
        """
        stored = await self.store.get(self.index, job_type, job_id)
        return JobDocument.from_stored(stored)

    async def close(self) -> None:
        """Stop every registered worker and close the store."""
        for worker in self.workers:
            await worker.stop()
        self.workers.clear()
        await self.store.close()
        logger.info("Queue closed", extra={"index": self.index})
