"""Shared test fixtures and configuration."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any
from unittest.mock import MagicMock

import pytest
from elastic_transport import ApiResponseMeta, HttpHeaders, NodeConfig
from elasticsearch import ApiError, Elasticsearch

from esdata.config.settings import Settings
from esdata.core.template import ElasticsearchTemplate
from esdata.mapping.converter import EntityConverter

from sample_entities import Book

# ── Fixtures ─────────────────────────────────────────────────────────────────


@pytest.fixture
def settings() -> Settings:
    """Create a test Settings instance with defaults."""
    return Settings(_env_file=None)  # type: ignore[call-arg]


@pytest.fixture
def converter() -> EntityConverter:
    return EntityConverter()


@pytest.fixture
def book() -> Book:
    return Book(
        title="Dune",
        author_name="Frank Herbert",
        pages=412,
        rating=4.8,
        cached_label="sci-fi classic",
    )


@pytest.fixture
def mock_client() -> MagicMock:
    """An ``Elasticsearch`` client double; responses are plain dicts."""
    return MagicMock(spec=Elasticsearch)


@pytest.fixture
def template(mock_client: MagicMock) -> ElasticsearchTemplate:
    return ElasticsearchTemplate(mock_client)


@pytest.fixture
def make_api_error() -> Callable[..., ApiError]:
    """Factory for real client ``ApiError``s with a given status and body."""

    def _make(status: int, body: Any = None, message: str = "error", cls: type[ApiError] = ApiError) -> ApiError:
        meta = ApiResponseMeta(
            status=status,
            http_version="1.1",
            headers=HttpHeaders(),
            duration=0.01,
            node=NodeConfig("http", "localhost", 9200),
        )
        return cls(message, meta=meta, body=body)

    return _make


def error_body(error_type: str, reason: str, status: int, **extra: Any) -> dict[str, Any]:
    return {"error": {"type": error_type, "reason": reason, **extra}, "status": status}


@pytest.fixture
def es_error_body() -> Callable[..., dict[str, Any]]:
    """Builds an Elasticsearch error response body."""
    return error_body


# ── Raw responses ────────────────────────────────────────────────────────────


@pytest.fixture
def search_response() -> dict[str, Any]:
    """A search response with two hits and an aggregation."""
    return {
        "took": 3,
        "timed_out": False,
        "hits": {
            "total": {"value": 2, "relation": "eq"},
            "max_score": 1.7,
            "hits": [
                {
                    "_index": "books",
                    "_id": "1",
                    "_score": 1.7,
                    "_version": 2,
                    "_seq_no": 5,
                    "_primary_term": 1,
                    "_source": {"title": "Dune", "author": "Frank Herbert", "pages": 412},
                    "highlight": {"title": ["<em>Dune</em>"]},
                    "sort": [1.7, "1"],
                    "matched_queries": ["by_title"],
                },
                {
                    "_index": "books",
                    "_id": "2",
                    "_score": 0.9,
                    "_version": 1,
                    "_seq_no": 6,
                    "_primary_term": 1,
                    "_source": {"title": "Dune Messiah", "author": "Frank Herbert"},
                },
            ],
        },
        "aggregations": {"authors": {"buckets": [{"key": "Frank Herbert", "doc_count": 2}]}},
    }
