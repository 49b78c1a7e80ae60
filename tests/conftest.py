"""
Pytest configuration and shared fixtures.
"""

from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import datetime, timezone
from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio

from docqueue.queue import Queue
from docqueue.store.base import StoredDocument
from docqueue.store.memory import MemoryDocumentStore

TEST_INDEX = "test-index"


@pytest.fixture
def anchor() -> datetime:
    """Frozen claim time (a Saturday)."""
    return datetime(2016, 4, 2, 1, 2, 3, 456000, tzinfo=timezone.utc)


@pytest.fixture
def noop() -> Callable[[dict[str, Any]], None]:
    """Handler that does nothing."""
    def handler(payload: dict[str, Any]) -> None:
        return None

    return handler


@pytest.fixture
def store() -> MemoryDocumentStore:
    """Create an empty in-memory store."""
    return MemoryDocumentStore()


@pytest.fixture
def spy_store(store: MemoryDocumentStore) -> MemoryDocumentStore:
    """Memory store whose methods record their calls."""
    store.index = AsyncMock(wraps=store.index)
    store.search = AsyncMock(wraps=store.search)
    store.update = AsyncMock(wraps=store.update)
    store.get = AsyncMock(wraps=store.get)
    return store


@pytest.fixture
def queue_context(spy_store: MemoryDocumentStore) -> SimpleNamespace:
    """Minimal queue context: just a store and an index name."""
    return SimpleNamespace(store=spy_store, index=TEST_INDEX)


@pytest_asyncio.fixture
async def queue(store: MemoryDocumentStore) -> AsyncGenerator[Queue]:
    """Create a queue on the memory store; stops its workers afterwards."""
    queue = Queue(store, TEST_INDEX)
    yield queue
    await queue.close()


@pytest.fixture
def sample_payload() -> dict[str, Any]:
    """Create a sample job payload."""
    return {"id": "123", "message": "Hello, World!"}


@pytest.fixture
def put_job(store: MemoryDocumentStore) -> Callable[..., Awaitable[StoredDocument]]:
    """Index a raw job document, bypassing Job validation."""
    async def put(job_type: str = "test", **fields: Any) -> StoredDocument:
        body = {
            "payload": {"id": "123"},
            "created": "2016-04-02T00:00:00.000Z",
            "started": None,
            "completed": None,
            "attempts": 0,
            "status": "pending",
            "timeout": 10000,
        }
        body.update(fields)
        return await store.index(TEST_INDEX, job_type, body)

    return put
