"""
In-process document store.

Keeps documents in a dict guarded by an asyncio.Lock. Each write bumps the
document's integer version, so concurrent workers sharing one instance see
the same optimistic-concurrency behavior as a networked store. Sources are
deep-copied in and out so callers never hold the stored copy.
"""

import asyncio
import copy
import logging
from dataclasses import dataclass
from typing import Any
from uuid import uuid4

from docqueue.store.base import CandidateQuery, StoredDocument
from docqueue.store.errors import DocumentNotFoundError, VersionConflictError

logger = logging.getLogger(__name__)


@dataclass
class _Entry:
    job_type: str
    version: int
    source: dict[str, Any]
    seq: int


class MemoryDocumentStore:
    """DocumentStore backed by process memory; for tests and single-process use."""

    def __init__(self):
        self._indices: dict[str, dict[str, _Entry]] = {}
        self._lock = asyncio.Lock()
        self._seq = 0

    def _snapshot(self, index: str, doc_id: str, entry: _Entry) -> StoredDocument:
        return StoredDocument(
            index=index,
            job_type=entry.job_type,
            id=doc_id,
            version=entry.version,
            source=copy.deepcopy(entry.source),
        )

    async def index(
        self,
        index: str,
        job_type: str,
        document: dict[str, Any],
    ) -> StoredDocument:
        doc_id = uuid4().hex
        async with self._lock:
            self._seq += 1
            entry = _Entry(
                job_type=job_type,
                version=1,
                source=copy.deepcopy(document),
                seq=self._seq,
            )
            self._indices.setdefault(index, {})[doc_id] = entry
            return self._snapshot(index, doc_id, entry)

    async def get(self, index: str, job_type: str, doc_id: str) -> StoredDocument:
        entry = self._indices.get(index, {}).get(doc_id)
        if entry is None or entry.job_type != job_type:
            raise DocumentNotFoundError(index, doc_id)
        return self._snapshot(index, doc_id, entry)

    async def search(
        self,
        index: str,
        job_type: str,
        query: CandidateQuery,
        size: int,
    ) -> list[StoredDocument]:
        entries = self._indices.get(index, {})
        hits = [
            (doc_id, entry)
            for doc_id, entry in entries.items()
            if query.matches(entry.job_type, entry.source)
        ]
        hits.sort(key=lambda item: item[1].seq)
        return [self._snapshot(index, doc_id, entry) for doc_id, entry in hits[:size]]

    async def update(
        self,
        index: str,
        job_type: str,
        doc_id: str,
        version: Any,
        partial: dict[str, Any],
    ) -> StoredDocument:
        async with self._lock:
            entry = self._indices.get(index, {}).get(doc_id)
            if entry is None or entry.job_type != job_type:
                raise DocumentNotFoundError(index, doc_id)
            if entry.version != version:
                raise VersionConflictError(doc_id, version)

            entry.source.update(copy.deepcopy(partial))
            entry.version += 1
            return self._snapshot(index, doc_id, entry)

    async def close(self) -> None:
        logger.debug("Memory store closed", extra={"indices": len(self._indices)})

    def count(self, index: str) -> int:
        """Number of documents held in an index."""
        return len(self._indices.get(index, {}))
