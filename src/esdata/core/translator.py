"""Exception Translator — Maps Elasticsearch client errors to esdata errors.

Every exception is first normalised to an ``ErrorCause``; the translation
table is then walked in order and the first matching rule builds the domain
error. The original exception is always kept as ``__cause__`` by the caller
(``raise translated from original``).
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from enum import Enum
from typing import Any

from elasticsearch import ApiError, ConnectionError, ConnectionTimeout, SerializationError, TransportError

from esdata.core.exceptions import (
    DataAccessResourceFailureError,
    DocumentNotFoundError,
    EsDataError,
    InvalidDataAccessApiUsageError,
    MappingError,
    NoSuchIndexError,
    OptimisticLockingFailureError,
    PermissionDeniedError,
    UncategorizedElasticsearchError,
)
from esdata.core.json_utils import to_json

logger = logging.getLogger(__name__)


class ErrorCause(str, Enum):
    """Normalised reason of a failed store call."""

    CONNECTION = "connection"
    TIMEOUT = "timeout"
    SERIALIZATION = "serialization"
    INDEX_NOT_FOUND = "index_not_found"
    DOCUMENT_NOT_FOUND = "document_not_found"
    VERSION_CONFLICT = "version_conflict"
    BAD_REQUEST = "bad_request"
    UNAUTHORIZED = "unauthorized"
    STORE = "store"
    UNKNOWN = "unknown"


Translation = tuple[Callable[[ErrorCause], bool], Callable[[Exception], EsDataError]]


def _error_info(exc: Exception) -> dict[str, Any]:
    body = getattr(exc, "body", None)
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        return body["error"]
    return {}


def _error_type(exc: Exception) -> str | None:
    info = _error_info(exc)
    if "type" in info:
        return str(info["type"])
    message = getattr(exc, "message", None)
    return message if isinstance(message, str) else None


def _status_code(exc: Exception) -> int | None:
    meta = getattr(exc, "meta", None)
    status = getattr(meta, "status", None)
    return status if isinstance(status, int) else None


def _reason(exc: Exception) -> str:
    info = _error_info(exc)
    return str(info.get("reason") or exc)


def classify(exc: Exception) -> ErrorCause:
    """Normalise *exc* to an ``ErrorCause``."""
    if isinstance(exc, ApiError):
        status = _status_code(exc)
        error_type = _error_type(exc) or ""
        if status == 409 or "version_conflict" in error_type:
            return ErrorCause.VERSION_CONFLICT
        if status == 404:
            if error_type == "index_not_found_exception":
                return ErrorCause.INDEX_NOT_FOUND
            return ErrorCause.DOCUMENT_NOT_FOUND
        if status == 400:
            return ErrorCause.BAD_REQUEST
        if status in (401, 403):
            return ErrorCause.UNAUTHORIZED
        return ErrorCause.STORE
    if isinstance(exc, ConnectionTimeout):
        return ErrorCause.TIMEOUT
    if isinstance(exc, SerializationError):
        return ErrorCause.SERIALIZATION
    if isinstance(exc, (ConnectionError, TransportError, OSError)):
        return ErrorCause.CONNECTION
    return ErrorCause.UNKNOWN


def _resource_failure(exc: Exception) -> EsDataError:
    return DataAccessResourceFailureError(f"Elasticsearch is not reachable: {exc}")


def _serialization_failure(exc: Exception) -> EsDataError:
    return MappingError(f"Could not (de)serialize Elasticsearch payload: {exc}")


def _no_such_index(exc: Exception) -> EsDataError:
    index = _error_info(exc).get("index")
    return NoSuchIndexError(f"Index {index} not found.", index=index)


def _document_not_found(exc: Exception) -> EsDataError:
    return DocumentNotFoundError(_reason(exc))


def _optimistic_locking(exc: Exception) -> EsDataError:
    return OptimisticLockingFailureError(
        f"Cannot index a document due to seq_no+primary_term conflict: {_reason(exc)}"
    )


def _bad_request(exc: Exception) -> EsDataError:
    return InvalidDataAccessApiUsageError(_reason(exc))


def _permission_denied(exc: Exception) -> EsDataError:
    return PermissionDeniedError(_reason(exc))


def _uncategorized(exc: Exception) -> EsDataError:
    return UncategorizedElasticsearchError(
        str(exc),
        status_code=_status_code(exc),
        response_body=to_json(getattr(exc, "body", None) or {}),
    )


_TRANSLATIONS: tuple[Translation, ...] = (
    (lambda cause: cause is ErrorCause.VERSION_CONFLICT, _optimistic_locking),
    (lambda cause: cause is ErrorCause.INDEX_NOT_FOUND, _no_such_index),
    (lambda cause: cause is ErrorCause.DOCUMENT_NOT_FOUND, _document_not_found),
    (lambda cause: cause is ErrorCause.BAD_REQUEST, _bad_request),
    (lambda cause: cause is ErrorCause.UNAUTHORIZED, _permission_denied),
    (lambda cause: cause in (ErrorCause.CONNECTION, ErrorCause.TIMEOUT), _resource_failure),
    (lambda cause: cause is ErrorCause.SERIALIZATION, _serialization_failure),
)


class ElasticsearchExceptionTranslator:
    """Translates client exceptions into the esdata error hierarchy.

    Exceptions that already are ``EsDataError`` instances are returned as-is.
    Anything without a specific rule becomes an
    ``UncategorizedElasticsearchError``.
    """

    def __init__(self, translations: tuple[Translation, ...] = _TRANSLATIONS) -> None:
        self._translations = translations

    def translate(self, exc: Exception) -> EsDataError:
        """Return the domain error for *exc*."""
        if isinstance(exc, EsDataError):
            return exc

        cause = classify(exc)
        for matches, factory in self._translations:
            if matches(cause):
                translated = factory(exc)
                break
        else:
            translated = _uncategorized(exc)

        logger.debug("Translated %s (%s) to %s", type(exc).__name__, cause.value, type(translated).__name__)
        return translated
