"""
Elasticsearch document store.

Jobs live as documents in a single index. Elasticsearch no longer has
mapping types, so the job type is kept in a ``jobtype`` keyword field and
stripped again when documents are read back. The opaque version handed to
callers is the ``(seq_no, primary_term)`` pair used by
``if_seq_no``/``if_primary_term`` conditional writes.
"""

import logging
from typing import Any

from elasticsearch import (
    ApiError,
    AsyncElasticsearch,
    ConflictError,
    NotFoundError,
    TransportError,
)

from docqueue.config import Settings
from docqueue.store.base import CandidateQuery, StoredDocument
from docqueue.store.errors import (
    DocumentNotFoundError,
    StoreError,
    VersionConflictError,
)

logger = logging.getLogger(__name__)

TYPE_FIELD = "jobtype"

JOB_MAPPINGS: dict[str, Any] = {
    "properties": {
        TYPE_FIELD: {"type": "keyword"},
        "payload": {"type": "object", "enabled": False},
        "output": {"type": "object", "enabled": False},
        "status": {"type": "keyword"},
        "attempts": {"type": "integer"},
        "timeout": {"type": "integer"},
        "created": {"type": "date"},
        "started": {"type": "date"},
        "completed": {"type": "date"},
        "process_expiration": {"type": "date"},
        "claimed_by": {"type": "keyword"},
        "error": {"type": "text"},
    }
}


class ElasticsearchDocumentStore:
    """DocumentStore backed by an Elasticsearch cluster."""

    def __init__(
        self,
        client: AsyncElasticsearch,
        refresh: str = "wait_for",
    ):
        """
        Initialize the store.

        Args:
            client: Connected async Elasticsearch client.
            refresh: Refresh policy applied to writes. ``wait_for`` makes a
                freshly claimed job invisible to the next search.
        """
        self._client = client
        self._refresh = refresh

    @classmethod
    def from_settings(cls, settings: Settings) -> "ElasticsearchDocumentStore":
        basic_auth = None
        if settings.elasticsearch_username:
            basic_auth = (
                settings.elasticsearch_username,
                settings.elasticsearch_password or "",
            )
        client = AsyncElasticsearch(
            hosts=[settings.elasticsearch_url],
            basic_auth=basic_auth,
        )
        return cls(client, refresh=settings.elasticsearch_refresh)

    @staticmethod
    def _body(response: Any) -> dict[str, Any]:
        return getattr(response, "body", response)

    @staticmethod
    def _version(response: Any) -> tuple[int, int]:
        return (response["_seq_no"], response["_primary_term"])

    @staticmethod
    def _strip(source: dict[str, Any]) -> dict[str, Any]:
        return {key: value for key, value in source.items() if key != TYPE_FIELD}

    def _hit(self, index: str, job_type: str, hit: Any) -> StoredDocument:
        return StoredDocument(
            index=index,
            job_type=job_type,
            id=hit["_id"],
            version=self._version(hit),
            source=self._strip(hit.get("_source") or {}),
        )

    async def ensure_index(self, index: str) -> bool:
        """
        Create the index with the job mapping if it does not exist.

        Returns:
            True if the index was created.
        """
        try:
            if await self._client.indices.exists(index=index):
                return False
            await self._client.indices.create(index=index, mappings=JOB_MAPPINGS)
        except (ApiError, TransportError) as e:
            raise StoreError(f"failed to create index {index}: {e}") from e

        logger.info("Created job index", extra={"index": index})
        return True

    async def index(
        self,
        index: str,
        job_type: str,
        document: dict[str, Any],
    ) -> StoredDocument:
        try:
            response = await self._client.index(
                index=index,
                document={**document, TYPE_FIELD: job_type},
                refresh=self._refresh,
            )
        except (ApiError, TransportError) as e:
            raise StoreError(f"failed to index {job_type} job: {e}") from e

        response = self._body(response)
        return StoredDocument(
            index=index,
            job_type=job_type,
            id=response["_id"],
            version=self._version(response),
            source=dict(document),
        )

    async def get(self, index: str, job_type: str, doc_id: str) -> StoredDocument:
        try:
            response = await self._client.get(index=index, id=doc_id)
        except NotFoundError as e:
            raise DocumentNotFoundError(index, doc_id) from e
        except (ApiError, TransportError) as e:
            raise StoreError(f"failed to get document {doc_id}: {e}") from e

        response = self._body(response)
        source = response.get("_source") or {}
        if source.get(TYPE_FIELD) != job_type:
            raise DocumentNotFoundError(index, doc_id)
        return self._hit(index, job_type, response)

    async def search(
        self,
        index: str,
        job_type: str,
        query: CandidateQuery,
        size: int,
    ) -> list[StoredDocument]:
        try:
            response = await self._client.search(
                index=index,
                query=query.to_dsl(TYPE_FIELD),
                size=size,
                sort=[{"created": {"order": "asc"}}],
                seq_no_primary_term=True,
            )
        except NotFoundError:
            # Nothing has been queued yet
            return []
        except (ApiError, TransportError) as e:
            raise StoreError(f"failed to search {job_type} jobs: {e}") from e

        hits = self._body(response)["hits"]["hits"]
        return [self._hit(index, job_type, hit) for hit in hits]

    async def update(
        self,
        index: str,
        job_type: str,
        doc_id: str,
        version: Any,
        partial: dict[str, Any],
    ) -> StoredDocument:
        seq_no, primary_term = version
        try:
            response = await self._client.update(
                index=index,
                id=doc_id,
                doc=partial,
                if_seq_no=seq_no,
                if_primary_term=primary_term,
                refresh=self._refresh,
                source=True,
            )
        except ConflictError as e:
            raise VersionConflictError(doc_id, version) from e
        except NotFoundError as e:
            raise DocumentNotFoundError(index, doc_id) from e
        except (ApiError, TransportError) as e:
            raise StoreError(f"failed to update document {doc_id}: {e}") from e

        response = self._body(response)
        source = (response.get("get") or {}).get("_source") or partial
        return StoredDocument(
            index=index,
            job_type=job_type,
            id=doc_id,
            version=self._version(response),
            source=self._strip(source),
        )

    async def close(self) -> None:
        await self._client.close()
