"""
Unit tests for logging, metrics and tracing.
"""

import json
import logging

import pytest
import structlog
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from prometheus_client import CollectorRegistry

from docqueue.observability import logging as log_setup
from docqueue.observability import tracing
from docqueue.observability.metrics import MetricsCollector
from docqueue.store.errors import StoreError
from docqueue.worker.main import Worker

IDLE_INTERVAL = 60_000


@pytest.fixture
def root_logger():
    """Restore the root logger after setup_logging() replaced its handlers."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    root.handlers = handlers
    root.setLevel(level)
    structlog.reset_defaults()
    log_setup.clear_context()


@pytest.fixture
def registry() -> CollectorRegistry:
    return CollectorRegistry()


@pytest.fixture
def metrics(registry: CollectorRegistry) -> MetricsCollector:
    return MetricsCollector(registry)


@pytest.fixture
def spans(monkeypatch) -> InMemorySpanExporter:
    """Route worker spans to an in-memory exporter."""
    exporter = InMemorySpanExporter()
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(exporter))
    monkeypatch.setattr(tracing, "_tracer", provider.get_tracer("test"))
    return exporter


class TestLogging:
    """Tests for setup_logging."""

    def test_json_output_carries_extra_and_context(self, root_logger, capsys):
        log_setup.setup_logging(level="debug", log_format="json")
        log_setup.bind_worker_context("worker-1", "report")

        logging.getLogger("docqueue.test").info("Claimed job", extra={"job_id": "abc"})

        line = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
        assert line["event"] == "Claimed job"
        assert line["level"] == "info"
        assert line["job_id"] == "abc"
        assert line["worker_id"] == "worker-1"
        assert line["job_type"] == "report"
        assert root_logger.level == logging.DEBUG

    def test_clear_context(self, root_logger, capsys):
        log_setup.setup_logging(log_format="json")
        log_setup.bind_worker_context("worker-1", "report")
        log_setup.clear_context()

        log_setup.get_logger("docqueue.test").info("Worker stopped")

        line = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
        assert line["event"] == "Worker stopped"
        assert "worker_id" not in line

    def test_client_loggers_are_quiet(self, root_logger):
        log_setup.setup_logging(level="debug", log_format="console")

        assert logging.getLogger("elastic_transport").level == logging.WARNING


class TestMetrics:
    """Tests for MetricsCollector and the worker's use of it."""

    def test_record_claim(self, metrics, registry):
        metrics.record_claim("report", "w1")
        metrics.record_claim("report", "w1", reclaimed=True)

        labels = {"job_type": "report", "worker_id": "w1"}
        assert registry.get_sample_value("docqueue_jobs_claimed_total", labels) == 2
        assert registry.get_sample_value(
            "docqueue_expired_reclaims_total", {"job_type": "report"}
        ) == 1

    def test_exposition(self, metrics):
        metrics.record_job_created("report")
        assert b"docqueue_jobs_created_total" in metrics.get_metrics()

    async def test_worker_counts_outcomes(self, queue_context, put_job, metrics, registry, anchor):
        hit = await put_job()
        worker = Worker(
            queue_context, "test", lambda payload: None,
            interval=IDLE_INTERVAL, metrics=metrics,
        )
        loser = Worker(
            queue_context, "test", lambda payload: None,
            interval=IDLE_INTERVAL, metrics=metrics,
        )

        await worker._claim_job(hit, now=anchor)
        await loser._claim_job(hit, now=anchor)
        await worker.stop()
        await loser.stop()

        assert registry.get_sample_value(
            "docqueue_jobs_finished_total", {"job_type": "test", "status": "completed"}
        ) == 1
        assert registry.get_sample_value(
            "docqueue_claim_conflicts_total", {"job_type": "test"}
        ) == 1

    async def test_worker_counts_store_errors(self, queue_context, metrics, registry):
        queue_context.store.search.side_effect = StoreError("down")
        worker = Worker(
            queue_context, "test", lambda payload: None,
            interval=IDLE_INTERVAL, metrics=metrics,
        )

        await worker._poll_jobs()
        await worker.stop()

        assert registry.get_sample_value(
            "docqueue_poll_errors_total", {"job_type": "test", "operation": "search"}
        ) == 1


class TestTracing:
    """Tests for tracer setup and worker spans."""

    async def test_worker_spans(self, spans, queue_context, put_job, anchor):
        hit = await put_job()
        worker = Worker(queue_context, "test", lambda payload: None, interval=IDLE_INTERVAL)

        await worker._claim_job(hit, now=anchor)
        await worker.stop()

        finished = {span.name: span for span in spans.get_finished_spans()}
        assert set(finished) == {"claim_job", "execute_job"}
        assert finished["claim_job"].attributes["job_id"] == hit.id
        assert finished["execute_job"].attributes["success"] is True

    def test_setup_without_endpoint(self, monkeypatch):
        installed = []
        monkeypatch.setattr(tracing, "_tracer", None)
        monkeypatch.setattr(tracing.trace, "set_tracer_provider", installed.append)

        tracer = tracing.setup_tracing()

        assert tracing.get_tracer() is tracer
        assert len(installed) == 1
        assert installed[0].resource.attributes["service.name"] == "docqueue"
