"""Search and by-query result models."""

from __future__ import annotations

from enum import Enum
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class TotalHitsRelation(str, Enum):
    """How ``total_hits`` relates to the real number of matches."""

    EQUAL_TO = "eq"
    GREATER_THAN_OR_EQUAL_TO = "gte"
    OFF = "off"


class SearchHit(BaseModel, Generic[T]):
    """One search hit with its converted content and hit metadata."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    index: str | None = None
    id: str | None = None
    score: float | None = None
    sort_values: list[Any] = Field(default_factory=list)
    highlight_fields: dict[str, list[str]] = Field(default_factory=dict)
    inner_hits: dict[str, Any] = Field(default_factory=dict, description="Raw inner hits per name")
    explanation: dict[str, Any] | None = None
    matched_queries: list[str] = Field(default_factory=list)
    routing: str | None = None
    seq_no: int | None = None
    primary_term: int | None = None
    version: int | None = None
    content: T | None = None

    def get_highlight_field(self, field: str) -> list[str]:
        return self.highlight_fields.get(field, [])


class SearchHits(BaseModel, Generic[T]):
    """Ordered search hits plus total count and response-level metadata."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    total_hits: int = 0
    total_hits_relation: TotalHitsRelation = TotalHitsRelation.OFF
    max_score: float | None = None
    search_hits: list[SearchHit[T]] = Field(default_factory=list)
    aggregations: dict[str, Any] | None = None
    suggest: dict[str, Any] | None = None
    scroll_id: str | None = None

    @property
    def has_search_hits(self) -> bool:
        return bool(self.search_hits)

    @property
    def has_aggregations(self) -> bool:
        return self.aggregations is not None

    def contents(self) -> list[T | None]:
        return [hit.content for hit in self.search_hits]


class SearchScrollHits(SearchHits[T], Generic[T]):
    """Search hits of one scroll page; ``scroll_id`` continues the scroll."""


class ByQueryFailure(BaseModel):
    """A document-level failure of a delete/update-by-query."""

    model_config = ConfigDict(frozen=True)

    index: str | None = None
    id: str | None = None
    cause_type: str | None = None
    reason: str | None = None
    status: int | None = None
    aborted: bool | None = None


class SearchFailure(BaseModel):
    """A shard-level search failure of a by-query operation."""

    model_config = ConfigDict(frozen=True)

    reason: str | None = None
    index: str | None = None
    shard_id: int | None = None
    node_id: str | None = None
    status: int | None = None


class ByQueryResponse(BaseModel):
    """Aggregate outcome of a delete-by-query or update-by-query."""

    model_config = ConfigDict(frozen=True)

    took: int = 0
    timed_out: bool = False
    total: int = Field(default=0, description="Number of documents matched")
    updated: int = 0
    deleted: int = 0
    batches: int = 0
    version_conflicts: int = 0
    noops: int = 0
    bulk_retries: int = 0
    search_retries: int = 0
    reason_cancelled: str | None = None
    throttled_until_millis: int | None = None
    failures: list[ByQueryFailure] = Field(default_factory=list)
    search_failures: list[SearchFailure] = Field(default_factory=list)
