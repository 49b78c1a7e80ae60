"""
Structured logging setup using structlog.

Library modules log through ``logging.getLogger(__name__)`` with ``extra``
fields; setup_logging() routes those records through structlog so they come
out as JSON (or colored console lines) with worker and trace context.
"""

import logging
import sys
from typing import Any

import structlog
from opentelemetry import trace

from docqueue.config import get_settings

QUIET_LOGGERS = ("elasticsearch", "elastic_transport")


def add_trace_context(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Add the current OpenTelemetry trace and span ids, when a span is recording."""
    span = trace.get_current_span()
    if span and span.is_recording():
        ctx = span.get_span_context()
        event_dict["trace_id"] = format(ctx.trace_id, "032x")
        event_dict["span_id"] = format(ctx.span_id, "016x")
    return event_dict


def setup_logging(level: str | None = None, log_format: str | None = None) -> None:
    """
    Configure structured logging for the process.

    Args:
        level: Log level name; defaults to ``Settings.log_level``.
        log_format: ``json`` or ``console``; defaults to ``Settings.log_format``.
    """
    settings = get_settings()
    level_name = (level or settings.log_level).upper()
    log_level = getattr(logging, level_name, logging.INFO)

    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        add_trace_context,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.stdlib.ExtraAdder(),
    ]

    if (log_format or settings.log_format) == "json":
        renderer: Any = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(log_level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def bind_worker_context(worker_id: str, job_type: str) -> None:
    """Tag every log line emitted from the current task with the worker identity."""
    structlog.contextvars.bind_contextvars(worker_id=worker_id, job_type=job_type)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()
