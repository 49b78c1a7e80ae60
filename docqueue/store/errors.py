"""
Store error taxonomy.

StoreError covers transport and store-level faults. Its two subclasses are
expected outcomes the queue reacts to rather than failures.
"""


class StoreError(Exception):
    """Raised when a store call fails for a reason other than a known outcome."""


class VersionConflictError(StoreError):
    """
    Raised by a conditional update whose expected version is stale.

    A concurrent writer changed the document first; the caller lost the race.
    """

    def __init__(self, doc_id: str, expected_version: object):
        super().__init__(
            f"version conflict on document {doc_id} (expected version {expected_version!r})"
        )
        self.doc_id = doc_id
        self.expected_version = expected_version


class DocumentNotFoundError(StoreError):
    """Raised when a document id does not exist in the index."""

    def __init__(self, index: str, doc_id: str):
        super().__init__(f"document {doc_id} not found in index {index}")
        self.index = index
        self.doc_id = doc_id
