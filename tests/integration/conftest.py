"""Integration test fixtures: a real Elasticsearch node with a seeded index.

Expects a node running at localhost:9200, e.g.:
    docker run -p 9200:9200 -e discovery.type=single-node -e xpack.security.enabled=false \
        docker.elastic.co/elasticsearch/elasticsearch:8.13.4

Tests are skipped when no node answers.
"""

from __future__ import annotations

import time
from typing import Any

import httpx
import pytest
from elasticsearch import Elasticsearch

from esdata.core.template import ElasticsearchTemplate
from esdata.models.query import RefreshPolicy

ES_HOST = "http://localhost:9200"
BOOKS_INDEX = "it-books"

SEED_BOOKS: list[dict[str, Any]] = [
    {"id": "b-1", "title": "Dune", "author": "Frank Herbert", "pages": 412},
    {"id": "b-2", "title": "Dune Messiah", "author": "Frank Herbert", "pages": 256},
    {"id": "b-3", "title": "Hyperion", "author": "Dan Simmons", "pages": 482},
    {"id": "b-4", "title": "The Left Hand of Darkness", "author": "Ursula K. Le Guin", "pages": 304},
    {"id": "b-5", "title": "The Dispossessed", "author": "Ursula K. Le Guin", "pages": 387},
]


def _wait_for_service(url: str, timeout: float = 60.0) -> bool:
    """Block until *url* returns HTTP 200, or timeout."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        try:
            r = httpx.get(url, timeout=10)
            if r.status_code == 200:
                return True
        except httpx.HTTPError:
            pass
        time.sleep(2)
    return False


def _seed_books(host: str, index: str = BOOKS_INDEX) -> None:
    with httpx.Client(base_url=host, timeout=30) as client:
        client.delete(f"/{index}", params={"ignore_unavailable": "true"})

        mapping = {
            "mappings": {
                "properties": {
                    "title": {"type": "text"},
                    "author": {"type": "keyword"},
                    "pages": {"type": "integer"},
                }
            }
        }
        resp = client.put(f"/{index}", json=mapping)
        resp.raise_for_status()

        for book in SEED_BOOKS:
            source = {k: v for k, v in book.items() if k != "id"}
            resp = client.put(f"/{index}/_doc/{book['id']}", json=source)
            resp.raise_for_status()

        client.post(f"/{index}/_refresh")


@pytest.fixture(scope="session")
def elasticsearch_ready() -> str:
    """Ensure Elasticsearch is running."""
    if not _wait_for_service(ES_HOST):
        pytest.skip(f"Elasticsearch not available at {ES_HOST}")
    return ES_HOST


@pytest.fixture
def seeded_index(elasticsearch_ready: str) -> str:
    """Recreate and seed the books index for each test."""
    _seed_books(elasticsearch_ready)
    return BOOKS_INDEX


@pytest.fixture
def template(elasticsearch_ready: str):
    template = ElasticsearchTemplate(
        Elasticsearch(elasticsearch_ready), refresh_policy=RefreshPolicy.IMMEDIATE
    )
    yield template
    template.close()
