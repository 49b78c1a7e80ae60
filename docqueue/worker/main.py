"""
Worker for claiming and executing jobs.

The worker polls the store for jobs of one type, claims them one at a time
with a version-conditioned update, runs the handler and records the outcome.
There is no lock coordinator and no heartbeat: a claim is only valid until its
process_expiration, and an expired claim is picked up again by whichever
worker polls next.
"""

import asyncio
import logging
import os
import socket
from datetime import datetime
from typing import Any, Protocol
from uuid import uuid4

from docqueue.config import get_settings
from docqueue.constants import (
    EVENT_JOB_CLAIMED,
    EVENT_JOB_COMPLETED,
    EVENT_JOB_FAILED,
    EVENT_WORKER_ERROR,
    MAX_ATTEMPTS_ERROR,
    SPAN_CLAIM_JOB,
    SPAN_EXECUTE_JOB,
    JobStatus,
)
from docqueue.events import EventEmitter, Listener
from docqueue.observability.logging import bind_worker_context, clear_context
from docqueue.observability.metrics import MetricsCollector, get_metrics
from docqueue.observability.tracing import get_tracer
from docqueue.store.base import CandidateQuery, DocumentStore, StoredDocument
from docqueue.store.errors import VersionConflictError
from docqueue.types.events import JobEvent
from docqueue.types.job import JobDocument
from docqueue.utils import add_ms, to_iso, utcnow
from docqueue.worker.handlers import JobHandler, run_handler

logger = logging.getLogger(__name__)


class QueueContext(Protocol):
    """What a worker needs from its queue."""

    store: DocumentStore
    index: str


def _positive(name: str, value: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValueError(f"Worker {name} must be a positive integer")
    return value


class Worker:
    """
    Job worker that polls for and executes jobs of a single type.

    Features:
    - Claims through version-conditioned updates; a lost race is skipped
    - Lazy reclamation of claims whose process_expiration has lapsed
    - Optional attempt ceiling
    - Graceful stop that lets the in-flight job finish
    """

    def __init__(
        self,
        queue: QueueContext,
        job_type: str | None = None,
        handler: JobHandler | None = None,
        *,
        interval: int | None = None,
        size: int | None = None,
        timeout: int | None = None,
        max_attempts: int | None = None,
        metrics: MetricsCollector | None = None,
    ):
        """
        Validate the worker and arm its polling task.

        No store call is made here; the first search happens one full
        ``interval`` after construction. Must be called with an event loop
        running.

        Args:
            queue: Context exposing ``store`` and ``index``.
            job_type: Job type to poll for.
            handler: Callable invoked with each claimed job's payload.
            interval: Milliseconds between polls.
            size: Maximum candidates fetched per poll.
            timeout: Claim duration in milliseconds for jobs without their own.
            max_attempts: Attempt ceiling; None means unlimited.
            metrics: Metrics collector; defaults to the process-wide one.

        Raises:
            TypeError: If job_type is not a non-empty string or handler is
                not callable.
            ValueError: If a numeric option is not a positive integer.
        """
        if not isinstance(job_type, str) or not job_type:
            raise TypeError("Worker type must be a string")
        if not callable(handler):
            raise TypeError("Worker handler must be a function")

        settings = get_settings()

        self.id = f"{socket.gethostname()}-{os.getpid()}-{uuid4().hex[:8]}"
        self.job_type = job_type
        self.handler = handler
        self.store = queue.store
        self.index = queue.index
        if interval is None:
            interval = settings.worker_interval_ms
        if size is None:
            size = settings.worker_size
        if timeout is None:
            timeout = settings.job_timeout_ms
        self.interval = _positive("interval", interval)
        self.size = _positive("size", size)
        self.timeout = _positive("timeout", timeout)
        if max_attempts is None:
            max_attempts = settings.worker_max_attempts
        self.max_attempts = (
            None if max_attempts is None else _positive("max_attempts", max_attempts)
        )
        self.events = EventEmitter()

        self._metrics = metrics or get_metrics()
        self._stopping = asyncio.Event()
        self._task = asyncio.get_running_loop().create_task(
            self._poll_loop(),
            name=f"docqueue-worker-{self.id}",
        )

    def __repr__(self) -> str:
        return f"<Worker {self.id} type={self.job_type}>"

    @property
    def running(self) -> bool:
        return not self._task.done() and not self._stopping.is_set()

    def on(self, event: str, listener: Listener) -> Listener:
        return self.events.on(event, listener)

    def off(self, event: str, listener: Listener) -> bool:
        return self.events.off(event, listener)

    async def stop(self) -> None:
        """
        Stop polling.

        The job being executed, if any, runs to completion and its result
        is recorded; remaining candidates of the current batch are left for
        other workers. Safe to call more than once.
        """
        if not self._stopping.is_set():
            logger.info("Worker stopping", extra={"worker_id": self.id})
            self._stopping.set()

        if asyncio.current_task() is not self._task:
            await self._task

    async def _poll_loop(self) -> None:
        bind_worker_context(self.id, self.job_type)
        logger.info(
            "Worker started",
            extra={
                "worker_id": self.id,
                "job_type": self.job_type,
                "interval_ms": self.interval,
                "size": self.size,
            }
        )

        while not self._stopping.is_set():
            try:
                await asyncio.wait_for(
                    self._stopping.wait(),
                    timeout=self.interval / 1000,
                )
            except asyncio.TimeoutError:
                await self._poll_jobs()

        logger.info("Worker stopped", extra={"worker_id": self.id})
        clear_context()

    async def _poll_jobs(self) -> int:
        """
        Run one poll cycle: search for candidates and claim them in order.

        Store faults are logged and reported on ``worker.error``; a fault on
        one candidate does not stop the rest of the batch.

        Returns:
            Number of jobs claimed and finished in this cycle.
        """
        query = CandidateQuery(self.job_type, utcnow())

        try:
            hits = await self.store.search(self.index, self.job_type, query, self.size)
        except Exception as e:
            logger.exception(
                f"Error searching for jobs: {e}",
                extra={"worker_id": self.id}
            )
            self._report_error("search", e)
            return 0

        if hits:
            logger.debug(
                f"Found {len(hits)} candidate jobs",
                extra={"worker_id": self.id}
            )

        processed = 0
        for hit in hits:
            if self._stopping.is_set():
                break
            try:
                if await self._claim_job(hit) is not None:
                    processed += 1
            except Exception as e:
                logger.exception(
                    f"Error processing job: {e}",
                    extra={"worker_id": self.id, "job_id": hit.id}
                )
                self._report_error("update", e, job_id=hit.id)

        return processed

    async def _claim_job(
        self,
        hit: StoredDocument,
        now: datetime | None = None,
    ) -> JobDocument | None:
        """
        Claim a candidate and, if the claim wins, execute it.

        The claim is an update conditioned on the version the candidate was
        read at. Losing that race is a normal outcome: the candidate is
        dropped and the same version is never retried.

        Args:
            hit: Candidate as returned by search.
            now: Claim time; defaults to the current UTC time.

        Returns:
            The job's final view, or None if the claim was lost or the
            result could not be recorded because the claim had been taken over.
        """
        now = now or utcnow()
        job = JobDocument.from_stored(hit)

        if self.max_attempts is not None and job.attempts >= self.max_attempts:
            return await self._retire_job(job, now)

        reclaimed = job.status == JobStatus.PROCESSING
        expiration = to_iso(add_ms(now, job.effective_timeout(self.timeout)))
        doc: dict[str, Any] = {
            "attempts": job.attempts + 1,
            "status": JobStatus.PROCESSING.value,
            "process_expiration": expiration,
            "claimed_by": self.id,
        }
        if job.started is None:
            doc["started"] = to_iso(now)

        with get_tracer().start_as_current_span(SPAN_CLAIM_JOB) as span:
            span.set_attribute("job_id", job.id)
            span.set_attribute("job_type", job.job_type)
            span.set_attribute("worker_id", self.id)

            try:
                claimed = await self.store.update(
                    self.index, job.job_type, job.id, job.version, doc
                )
            except VersionConflictError:
                logger.debug(
                    "Claim lost to a concurrent update",
                    extra={"job_id": job.id, "version": str(job.version)}
                )
                self._metrics.record_conflict(self.job_type)
                span.set_attribute("conflict", True)
                return None

        claimed_job = JobDocument.from_stored(claimed)
        self._metrics.record_claim(self.job_type, self.id, reclaimed=reclaimed)
        logger.info(
            "Reclaimed expired job" if reclaimed else "Claimed job",
            extra={
                "job_id": job.id,
                "worker_id": self.id,
                "attempt": claimed_job.attempts,
                "process_expiration": expiration,
            }
        )
        self.events.emit(
            EVENT_JOB_CLAIMED,
            JobEvent.job_claimed(
                job.id, self.job_type, self.id, claimed_job.attempts, expiration
            ),
        )

        return await self._execute_job(claimed_job)

    async def _execute_job(self, job: JobDocument) -> JobDocument | None:
        """
        Run the handler on a claimed job and record the terminal status.

        The result update is conditioned on the version produced by the
        claim, so it is dropped if another worker reclaimed the job after
        it expired.
        """
        with get_tracer().start_as_current_span(SPAN_EXECUTE_JOB) as span:
            span.set_attribute("job_id", job.id)
            span.set_attribute("attempt", job.attempts)
            result = await run_handler(self.handler, job.payload, job_id=job.id)
            span.set_attribute("success", result.success)

        completed = to_iso(utcnow())
        if result.success:
            status = JobStatus.COMPLETED
            doc = {"status": status.value, "completed": completed, "output": result.output}
        else:
            status = JobStatus.FAILED
            doc = {"status": status.value, "completed": completed, "error": result.error}

        try:
            final = await self.store.update(
                self.index, job.job_type, job.id, job.version, doc
            )
        except VersionConflictError:
            logger.warning(
                "Job was reclaimed before its result was recorded",
                extra={"job_id": job.id, "worker_id": self.id, "status": status.value}
            )
            self._metrics.record_conflict(self.job_type)
            return None

        duration = (result.duration_ms or 0.0) / 1000
        self._metrics.record_job_finished(self.job_type, status.value, duration)

        if result.success:
            logger.info(
                "Job completed successfully",
                extra={"job_id": job.id, "duration": f"{duration:.2f}s"}
            )
            self.events.emit(
                EVENT_JOB_COMPLETED,
                JobEvent.job_completed(job.id, self.job_type, self.id, result.output),
            )
        else:
            logger.warning(
                "Job failed",
                extra={"job_id": job.id, "error": result.error, "attempt": job.attempts}
            )
            self.events.emit(
                EVENT_JOB_FAILED,
                JobEvent.job_failed(
                    job.id, self.job_type, self.id, result.error, job.attempts
                ),
            )

        return JobDocument.from_stored(final)

    async def _retire_job(self, job: JobDocument, now: datetime) -> JobDocument | None:
        """Mark a job that has used up its attempts as failed without running it."""
        doc = {
            "status": JobStatus.FAILED.value,
            "completed": to_iso(now),
            "error": MAX_ATTEMPTS_ERROR,
        }
        try:
            final = await self.store.update(
                self.index, job.job_type, job.id, job.version, doc
            )
        except VersionConflictError:
            self._metrics.record_conflict(self.job_type)
            return None

        self._metrics.record_job_finished(self.job_type, JobStatus.FAILED.value)
        logger.warning(
            f"Job failed after {job.attempts} attempts",
            extra={"job_id": job.id, "max_attempts": self.max_attempts}
        )
        self.events.emit(
            EVENT_JOB_FAILED,
            JobEvent.job_failed(
                job.id, self.job_type, self.id, MAX_ATTEMPTS_ERROR, job.attempts
            ),
        )
        return JobDocument.from_stored(final)

    def _report_error(self, operation: str, error: Exception, job_id: str | None = None) -> None:
        self._metrics.record_store_error(self.job_type, operation)
        self.events.emit(
            EVENT_WORKER_ERROR,
            JobEvent.worker_error(self.job_type, self.id, str(error), job_id=job_id),
        )
