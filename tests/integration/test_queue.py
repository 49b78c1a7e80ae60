"""
Integration tests for the queue context.
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from docqueue.config import Settings
from docqueue.constants import JobStatus
from docqueue.queue import Queue
from docqueue.store.errors import DocumentNotFoundError
from docqueue.store.memory import MemoryDocumentStore


class TestQueue:
    """Tests for Queue."""

    @pytest.mark.asyncio
    async def test_add_job_uses_queue_index(self, queue: Queue, store: MemoryDocumentStore):
        """Test that jobs are written to the queue's index."""
        job = await queue.add_job("report", {"id": "123"}, timeout=4567).indexed()

        assert job.index == queue.index
        assert store.count(queue.index) == 1
        document = await queue.get_job(job.id, "report")
        assert document.payload == {"id": "123"}
        assert document.timeout == 4567
        assert document.status == JobStatus.PENDING

    @pytest.mark.asyncio
    async def test_get_job_missing(self, queue: Queue):
        """Test that reading an unknown job raises."""
        with pytest.raises(DocumentNotFoundError):
            await queue.get_job("missing", "report")

    @pytest.mark.asyncio
    async def test_get_job_wrong_type(self, queue: Queue):
        """Test that a job is only visible under its own type."""
        job = await queue.add_job("report", {}).indexed()

        with pytest.raises(DocumentNotFoundError):
            await queue.get_job(job.id, "email")

    @pytest.mark.asyncio
    async def test_events_reach_queue_and_job(self, queue: Queue):
        """Test that worker events are re-published on the queue and the job."""
        on_queue = []
        on_job = []
        job = await queue.add_job("report", {}).indexed()
        job.on("job.claimed", on_job.append)
        job.on("job.completed", on_job.append)
        queue.events.on("job.completed", on_queue.append)
        completed = asyncio.get_running_loop().create_future()
        job.once("job.completed", completed.set_result)

        queue.register_worker("report", lambda payload: None, interval=20)
        await asyncio.wait_for(completed, timeout=2)

        assert [event.event_type for event in on_job] == ["job.claimed", "job.completed"]
        assert [event.job_id for event in on_queue] == [job.id]

    @pytest.mark.asyncio
    async def test_close_stops_workers_and_store(self):
        """Test that closing the queue stops workers and closes the store."""
        store = MemoryDocumentStore()
        store.close = AsyncMock(wraps=store.close)
        queue = Queue(store, "close-test")
        first = queue.register_worker("report", lambda payload: None, interval=20)
        second = queue.register_worker("email", lambda payload: None, interval=20)

        await queue.close()

        assert not first.running
        assert not second.running
        assert queue.workers == []
        store.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_from_settings(self):
        """Test building a queue from settings."""
        settings = Settings(queue_index="from-settings", store_backend="memory")

        queue = Queue.from_settings(settings)

        assert queue.index == "from-settings"
        assert isinstance(queue.store, MemoryDocumentStore)
        await queue.close()

    def test_default_index(self, store: MemoryDocumentStore):
        """Test that the index falls back to settings."""
        queue = Queue(store, settings=Settings(queue_index="jobs"))
        assert queue.index == "jobs"
