"""
Handler invocation.

Workers are given one user handler. It is called with the job payload and may
be a coroutine function or a plain function; plain functions run in a thread
so a blocking handler does not stall the event loop. Handlers should be
idempotent: an expired claim can hand the same job to another worker.
"""

import asyncio
import inspect
import logging
import time
from collections.abc import Callable
from typing import Any

from docqueue.types.job import JobResult

logger = logging.getLogger(__name__)

# Type alias for job handler functions
JobHandler = Callable[[dict[str, Any]], Any]


async def run_handler(
    handler: JobHandler,
    payload: dict[str, Any],
    job_id: str | None = None,
) -> JobResult:
    """
    Execute a handler and normalize its outcome.

    A raised exception or a returned ``JobResult(success=False)`` is a
    failure. Any other return value is a success with that value as output.

    Args:
        handler: The user-supplied handler.
        payload: The job payload passed as the only argument.
        job_id: Job id, used for logging.

    Returns:
        JobResult describing the outcome.
    """
    start = time.monotonic()

    try:
        if inspect.iscoroutinefunction(handler):
            result = await handler(payload)
        else:
            result = await asyncio.to_thread(handler, payload)
            if inspect.isawaitable(result):
                result = await result
    except Exception as e:
        logger.exception(
            "Handler raised exception",
            extra={"job_id": job_id, "error": str(e)}
        )
        return JobResult(
            success=False,
            error=f"{type(e).__name__}: {e}",
            duration_ms=(time.monotonic() - start) * 1000,
        )

    duration_ms = (time.monotonic() - start) * 1000

    if isinstance(result, JobResult):
        if result.duration_ms is None:
            result = result.model_copy(update={"duration_ms": duration_ms})
        if not result.success and not result.error:
            result = result.model_copy(update={"error": "handler reported failure"})
        return result

    return JobResult(success=True, output=result, duration_ms=duration_ms)
