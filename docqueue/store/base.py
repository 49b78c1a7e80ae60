"""
Document store contract consumed by jobs and workers.

Any backend offering create, read, bounded search and a version-conditioned
partial update can host the queue. Versions are opaque tokens: callers only
hand back what the store gave them.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol, runtime_checkable

from docqueue.constants import JobStatus
from docqueue.utils import parse_iso, to_iso


@dataclass
class StoredDocument:
    """A document as the store last reported it."""

    index: str
    job_type: str
    id: str
    version: Any
    source: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class CandidateQuery:
    """
    Selects documents a worker may claim.

    A document is a candidate when it has the worker's job type and is either
    pending or processing with a process_expiration earlier than ``now``.
    """

    job_type: str
    now: datetime

    def matches(self, job_type: str, source: dict[str, Any]) -> bool:
        if job_type != self.job_type:
            return False

        status = source.get("status")
        if status == JobStatus.PENDING:
            return True
        if status != JobStatus.PROCESSING:
            return False

        expiration = source.get("process_expiration")
        if not expiration:
            return False
        return parse_iso(expiration) < self.now

    def to_dsl(self, type_field: str = "jobtype") -> dict[str, Any]:
        """Render as an Elasticsearch bool query."""
        return {
            "bool": {
                "filter": [{"term": {type_field: self.job_type}}],
                "should": [
                    {"term": {"status": JobStatus.PENDING.value}},
                    {
                        "bool": {
                            "filter": [
                                {"term": {"status": JobStatus.PROCESSING.value}},
                                {"range": {"process_expiration": {"lt": to_iso(self.now)}}},
                            ]
                        }
                    },
                ],
                "minimum_should_match": 1,
            }
        }


@runtime_checkable
class DocumentStore(Protocol):
    """
    Protocol every store backend implements.

    ``update`` raises VersionConflictError when ``version`` no longer matches
    the stored document; ``get`` raises DocumentNotFoundError. Every other
    failure surfaces as StoreError.
    """

    async def index(
        self,
        index: str,
        job_type: str,
        document: dict[str, Any],
    ) -> StoredDocument: ...

    async def get(self, index: str, job_type: str, doc_id: str) -> StoredDocument: ...

    async def search(
        self,
        index: str,
        job_type: str,
        query: CandidateQuery,
        size: int,
    ) -> list[StoredDocument]: ...

    async def update(
        self,
        index: str,
        job_type: str,
        doc_id: str,
        version: Any,
        partial: dict[str, Any],
    ) -> StoredDocument: ...

    async def close(self) -> None: ...
