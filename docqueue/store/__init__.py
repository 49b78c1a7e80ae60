"""
Store module.
Contains the document store contract, its errors and the concrete backends.
"""

from docqueue.config import Settings, get_settings
from docqueue.store.base import CandidateQuery, DocumentStore, StoredDocument
from docqueue.store.errors import (
    DocumentNotFoundError,
    StoreError,
    VersionConflictError,
)
from docqueue.store.memory import MemoryDocumentStore


def create_store(settings: Settings | None = None) -> DocumentStore:
    """
    Build the store selected by ``store_backend``.

    Args:
        settings: Settings to read; defaults to the cached application settings.

    Returns:
        A DocumentStore implementation.
    """
    settings = settings or get_settings()

    if settings.store_backend == "elasticsearch":
        from docqueue.store.elasticsearch import ElasticsearchDocumentStore

        return ElasticsearchDocumentStore.from_settings(settings)

    return MemoryDocumentStore()


__all__ = [
    "CandidateQuery",
    "DocumentStore",
    "StoredDocument",
    "StoreError",
    "VersionConflictError",
    "DocumentNotFoundError",
    "MemoryDocumentStore",
    "create_store",
]
