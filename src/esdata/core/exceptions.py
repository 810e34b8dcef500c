"""Domain exceptions raised by esdata.

Transport errors never leave the template untranslated; callers only need to
handle subclasses of ``EsDataError``.
"""

from __future__ import annotations

from typing import Any


class EsDataError(Exception):
    """Base exception for all esdata errors."""


class InvalidArgumentError(EsDataError, ValueError):
    """Raised before any network activity when a required argument is missing or invalid."""


class MappingError(EsDataError):
    """Raised when a document cannot be converted to or from an entity."""


class UnsupportedOperationError(EsDataError, NotImplementedError):
    """Raised by operations that are intentionally not implemented."""


class BackendContractError(EsDataError):
    """Raised when a store response violates an expected invariant."""


class BulkFailureError(EsDataError):
    """Raised when at least one item of a bulk request failed.

    Attributes:
        failed_documents: Mapping of document id to failure reason, one entry
            per failed item. Items the store reported without an id (failed
            auto-id creates) are keyed by their position in the request.
    """

    def __init__(self, message: str, failed_documents: dict[str | int, str]) -> None:
        super().__init__(message)
        self.failed_documents = failed_documents


# ── Translated store errors ──────────────────────────────────────────────────


class DataAccessError(EsDataError):
    """Base class for errors translated from the transport layer."""


class DataAccessResourceFailureError(DataAccessError):
    """Raised when the cluster cannot be reached (connection, timeout, TLS)."""


class NoSuchIndexError(DataAccessError):
    """Raised when the target index does not exist."""

    def __init__(self, message: str, index: str | None = None) -> None:
        super().__init__(message)
        self.index = index


class DocumentNotFoundError(DataAccessError):
    """Raised when a document addressed by id does not exist."""


class OptimisticLockingFailureError(DataAccessError):
    """Raised on a version or seq_no/primary_term conflict."""


class InvalidDataAccessApiUsageError(DataAccessError):
    """Raised when the store rejects a request as malformed."""


class PermissionDeniedError(DataAccessError):
    """Raised when authentication or authorization fails."""


class UncategorizedElasticsearchError(DataAccessError):
    """Raised for store errors that have no more specific translation."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_body: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body


def check_not_none(value: Any, message: str) -> None:
    """Raise ``InvalidArgumentError`` with *message* if *value* is None."""
    if value is None:
        raise InvalidArgumentError(message)
