"""
Unit tests for the Job entity.
"""

from unittest.mock import AsyncMock

import pytest

from docqueue.constants import DEFAULT_JOB_TIMEOUT_MS, JobStatus
from docqueue.events import EventEmitter
from docqueue.job import Job
from docqueue.store.errors import StoreError
from docqueue.store.memory import MemoryDocumentStore

INDEX = "test"


class TestInvalidConstruction:
    """Validation happens before any store call."""

    def test_missing_type(self, spy_store: MemoryDocumentStore):
        with pytest.raises(TypeError, match=r"type.+string"):
            Job(spy_store, INDEX)
        spy_store.index.assert_not_called()

    def test_invalid_type(self, spy_store: MemoryDocumentStore):
        with pytest.raises(TypeError, match=r"type.+string"):
            Job(spy_store, INDEX, {"not a string": True})
        spy_store.index.assert_not_called()

    def test_empty_type(self, spy_store: MemoryDocumentStore):
        with pytest.raises(TypeError, match=r"type.+string"):
            Job(spy_store, INDEX, "", {})

    @pytest.mark.parametrize("payload", [[1, 2, 3], "payload", 42, None, (1, 2)])
    def test_invalid_payload(self, spy_store: MemoryDocumentStore, payload):
        with pytest.raises(TypeError, match=r"plain.+object"):
            Job(spy_store, INDEX, "type1", payload)
        spy_store.index.assert_not_called()

    @pytest.mark.parametrize("timeout", [0, -5, "100", 1.5, True])
    def test_invalid_timeout(self, spy_store: MemoryDocumentStore, timeout):
        with pytest.raises(ValueError, match="timeout"):
            Job(spy_store, INDEX, "type1", {}, timeout)
        spy_store.index.assert_not_called()


class TestConstruction:
    """Tests for the create-document call issued by the constructor."""

    def created_body(self, spy_store: MemoryDocumentStore) -> dict:
        assert spy_store.index.call_count == 1
        index, job_type, body = spy_store.index.call_args.args
        assert index == INDEX
        assert job_type == "type1"
        return body

    async def test_is_an_event_source(self, spy_store: MemoryDocumentStore):
        job = Job(spy_store, INDEX, "test", {})
        assert isinstance(job.events, EventEmitter)
        await job.indexed()

    async def test_indexes_the_payload(self, spy_store: MemoryDocumentStore):
        payload = {"id": "123"}

        job = Job(spy_store, INDEX, "type1", payload)

        # The call is issued before the constructor returns
        body = self.created_body(spy_store)
        assert body["payload"] is payload
        await job.indexed()

    async def test_indexes_timeout_value(self, spy_store: MemoryDocumentStore):
        job = Job(spy_store, INDEX, "type1", {"id": "123"}, 4567)

        body = self.created_body(spy_store)
        assert body["timeout"] == 4567
        await job.indexed()

    async def test_default_timeout(self, spy_store: MemoryDocumentStore):
        job = Job(spy_store, INDEX, "type1", {"id": "123"})

        body = self.created_body(spy_store)
        assert body["timeout"] == DEFAULT_JOB_TIMEOUT_MS
        await job.indexed()

    async def test_sets_event_times(self, spy_store: MemoryDocumentStore):
        job = Job(spy_store, INDEX, "type1", {"id": "123"})

        body = self.created_body(spy_store)
        assert body["created"].endswith("Z")
        assert "started" in body and body["started"] is None
        assert "completed" in body and body["completed"] is None
        await job.indexed()

    async def test_sets_attempts_and_status(self, spy_store: MemoryDocumentStore):
        job = Job(spy_store, INDEX, "type1", {"id": "123"})

        body = self.created_body(spy_store)
        assert body["attempts"] == 0
        assert body["status"] == JobStatus.PENDING
        await job.indexed()


class TestLifecycle:
    """Tests for the local view after creation."""

    async def test_indexed_sets_identity(self, store: MemoryDocumentStore):
        job = Job(store, INDEX, "type1", {"id": "123"})
        assert job.id is None

        await job.indexed()

        assert job.id is not None
        assert job.version == 1
        assert job.status == JobStatus.PENDING
        assert job.attempts == 0

    async def test_emits_created(self, store: MemoryDocumentStore):
        events = []
        job = Job(store, INDEX, "type1", {"id": "123"})
        job.on("job.created", events.append)

        await job.indexed()

        assert len(events) == 1
        assert events[0].job_id == job.id
        assert events[0].data == {"payload": {"id": "123"}}

    async def test_emits_error_when_store_fails(self):
        store = MemoryDocumentStore()
        store.index = AsyncMock(side_effect=StoreError("cluster unavailable"))
        errors = []

        job = Job(store, INDEX, "type1", {"id": "123"})
        job.on("job.error", errors.append)

        with pytest.raises(StoreError):
            await job.indexed()
        assert errors[0].data == {"error": "cluster unavailable"}
        assert job.id is None

    async def test_refresh_reads_store_copy(self, store: MemoryDocumentStore):
        job = Job(store, INDEX, "type1", {"id": "123"})
        await job.indexed()

        await store.update(INDEX, "type1", job.id, job.version, {"status": "processing", "attempts": 1})
        document = await job.refresh()

        assert document.status == JobStatus.PROCESSING
        assert job.attempts == 1
        assert job.version == 2

    def test_requires_running_loop(self, spy_store: MemoryDocumentStore):
        with pytest.raises(RuntimeError):
            Job(spy_store, INDEX, "type1", {})
        spy_store.index.assert_not_called()
