"""Search Response Builder — Assembles typed search results from raw responses.

Building happens in two steps: ``SearchDocumentResponseBuilder`` extracts the
response-level data and converts each hit's document with an entity creator;
``SearchHitMapping`` then shapes the result as ``SearchHits`` or
``SearchScrollHits``.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from esdata.core.document import DocumentAdapters
from esdata.core.response_converter import response_body
from esdata.models.document import Document
from esdata.models.response import SearchHit, SearchHits, SearchScrollHits, TotalHitsRelation

T = TypeVar("T")


class SearchDocument(BaseModel, Generic[T]):
    """A hit's document plus its search metadata and converted content."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    document: Document
    score: float | None = None
    sort_values: list[Any] = Field(default_factory=list)
    highlight_fields: dict[str, list[str]] = Field(default_factory=dict)
    inner_hits: dict[str, Any] = Field(default_factory=dict)
    explanation: dict[str, Any] | None = None
    matched_queries: list[str] = Field(default_factory=list)
    content: T | None = None


class SearchDocumentResponse(BaseModel, Generic[T]):
    """Response-level data of a search, independent of the result shape."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    total_hits: int = 0
    total_hits_relation: TotalHitsRelation = TotalHitsRelation.OFF
    max_score: float | None = None
    scroll_id: str | None = None
    search_documents: list[SearchDocument[T]] = Field(default_factory=list)
    aggregations: dict[str, Any] | None = None
    suggest: dict[str, Any] | None = None


class SearchDocumentResponseBuilder:
    """Extract totals, scroll id, aggregations and hits from a search response."""

    @staticmethod
    def from_response(
        raw: Any, entity_creator: Callable[[Document], Any] | None = None
    ) -> SearchDocumentResponse[Any]:
        """Build a ``SearchDocumentResponse`` from a search or scroll response.

        Args:
            raw: The raw search response.
            entity_creator: Converts each hit's document into its content.
                Without it hits carry no content.
        """
        body = response_body(raw)
        hits = body.get("hits") or {}
        total_hits, relation = _total(hits.get("total"))

        documents = []
        for hit in hits.get("hits") or []:
            document = DocumentAdapters.from_hit(hit)
            documents.append(
                SearchDocument(
                    document=document,
                    score=hit.get("_score"),
                    sort_values=list(hit.get("sort") or []),
                    highlight_fields=hit.get("highlight") or {},
                    inner_hits=hit.get("inner_hits") or {},
                    explanation=hit.get("_explanation"),
                    matched_queries=_matched_queries(hit.get("matched_queries")),
                    content=entity_creator(document) if entity_creator is not None else None,
                )
            )

        return SearchDocumentResponse(
            total_hits=total_hits,
            total_hits_relation=relation,
            max_score=hits.get("max_score"),
            scroll_id=body.get("_scroll_id"),
            search_documents=documents,
            aggregations=body.get("aggregations"),
            suggest=body.get("suggest"),
        )


def _total(total: Any) -> tuple[int, TotalHitsRelation]:
    if isinstance(total, dict):
        return int(total.get("value", 0)), TotalHitsRelation(total.get("relation", "eq"))
    if isinstance(total, int):
        return total, TotalHitsRelation.EQUAL_TO
    # track_total_hits=false
    return 0, TotalHitsRelation.OFF


def _matched_queries(value: Any) -> list[str]:
    # Named queries come back as a list, or as a name -> score dict with include_named_queries_score.
    if isinstance(value, dict):
        return list(value)
    return list(value or [])


class SearchHitMapping(Generic[T]):
    """Shape a ``SearchDocumentResponse`` as typed search hits."""

    def map_hits(self, response: SearchDocumentResponse[Any]) -> SearchHits[T]:
        return SearchHits(**self._fields(response))

    def map_scroll_hits(self, response: SearchDocumentResponse[Any]) -> SearchScrollHits[T]:
        return SearchScrollHits(**self._fields(response))

    @staticmethod
    def _fields(response: SearchDocumentResponse[Any]) -> dict[str, Any]:
        hits = [
            SearchHit(
                index=doc.document.index,
                id=doc.document.id,
                score=doc.score,
                sort_values=doc.sort_values,
                highlight_fields=doc.highlight_fields,
                inner_hits=doc.inner_hits,
                explanation=doc.explanation,
                matched_queries=doc.matched_queries,
                routing=doc.document.routing,
                seq_no=doc.document.seq_no,
                primary_term=doc.document.primary_term,
                version=doc.document.version,
                content=doc.content,
            )
            for doc in response.search_documents
        ]
        return {
            "total_hits": response.total_hits,
            "total_hits_relation": response.total_hits_relation,
            "max_score": response.max_score,
            "search_hits": hits,
            "aggregations": response.aggregations,
            "suggest": response.suggest,
            "scroll_id": response.scroll_id,
        }
