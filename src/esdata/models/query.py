"""Query and write-operation models.

Queries are immutable once built. The query DSL itself is opaque to esdata:
``NativeQuery`` carries plain dicts that are forwarded to Elasticsearch
unchanged, ``StringQuery`` carries the same as a JSON string.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from esdata.core.exceptions import InvalidArgumentError


class RefreshPolicy(str, Enum):
    """When a write becomes visible to searches."""

    NONE = "none"
    IMMEDIATE = "immediate"
    WAIT_UNTIL = "wait_until"

    def to_param(self) -> str:
        """Value of the ``refresh`` request parameter for document writes."""
        return {"none": "false", "immediate": "true", "wait_until": "wait_for"}[self.value]


class Direction(str, Enum):
    ASC = "asc"
    DESC = "desc"


class Order(BaseModel):
    """A single sort order."""

    model_config = ConfigDict(frozen=True)

    field: str = Field(description="Document field to sort on")
    direction: Direction = Field(default=Direction.ASC, description="Sort direction")
    missing: str | None = Field(default=None, description="Placement of documents missing the field (_first/_last)")

    @classmethod
    def asc(cls, prop: str) -> Order:
        return cls(field=prop, direction=Direction.ASC)

    @classmethod
    def desc(cls, prop: str) -> Order:
        return cls(field=prop, direction=Direction.DESC)

    def to_dsl(self) -> dict[str, Any]:
        options: dict[str, Any] = {"order": self.direction.value}
        if self.missing is not None:
            options["missing"] = self.missing
        return {self.field: options}


class Pageable(BaseModel):
    """Page request. An unpaged pageable has no ``size``."""

    model_config = ConfigDict(frozen=True)

    page: int = Field(default=0, ge=0, description="Zero-based page number")
    size: int | None = Field(default=None, ge=1, description="Page size; None means unpaged")
    sort: tuple[Order, ...] = Field(default=(), description="Sort orders")

    @classmethod
    def of(cls, page: int, size: int, *orders: Order) -> Pageable:
        return cls(page=page, size=size, sort=orders)

    @classmethod
    def unpaged(cls, *orders: Order) -> Pageable:
        return cls(sort=orders)

    @property
    def paged(self) -> bool:
        return self.size is not None

    @property
    def offset(self) -> int:
        return self.page * (self.size or 0)

    def next(self) -> Pageable:
        if not self.paged:
            return self
        return self.model_copy(update={"page": self.page + 1})


class SourceFilter(BaseModel):
    """Source fields to include in or exclude from returned documents."""

    model_config = ConfigDict(frozen=True)

    includes: list[str] = Field(default_factory=list)
    excludes: list[str] = Field(default_factory=list)

    def to_dsl(self) -> dict[str, list[str]]:
        dsl: dict[str, list[str]] = {}
        if self.includes:
            dsl["includes"] = list(self.includes)
        if self.excludes:
            dsl["excludes"] = list(self.excludes)
        return dsl


class Query(BaseModel, ABC):
    """Abstract search request description.

    Concrete subclasses only decide how the ``query`` clause is produced; all
    paging, routing and result-shaping options live here.
    """

    model_config = ConfigDict(frozen=True)

    pageable: Pageable = Field(default_factory=Pageable.unpaged, description="Paging and sorting")
    sort: tuple[Order, ...] = Field(default=(), description="Sort orders in addition to the pageable's")
    ids: list[str] | None = Field(default=None, description="Document ids for multi-get")
    routing: str | None = Field(default=None, description="Routing value; overrides the template routing")
    source_filter: SourceFilter | None = Field(default=None, description="Source includes/excludes")
    stored_fields: list[str] | None = Field(default=None, description="Stored fields to return")
    highlight: dict[str, Any] | None = Field(default=None, description="Highlight DSL")
    min_score: float | None = Field(default=None, description="Minimum score of returned hits")
    track_scores: bool = Field(default=False, description="Compute scores even when sorting")
    track_total_hits: bool | int | None = Field(default=None, description="Total hits tracking")
    max_results: int | None = Field(default=None, ge=1, description="Upper bound on returned hits")
    preference: str | None = Field(default=None, description="Shard preference")
    timeout: str | None = Field(default=None, description="Search timeout, e.g. '5s'")
    explain: bool = Field(default=False, description="Return score explanations")
    scroll_time_ms: int | None = Field(default=None, ge=1, description="Scroll window used by by-query operations")
    search_type: Literal["query_then_fetch", "dfs_query_then_fetch"] | None = None
    request_cache: bool | None = None
    search_after: list[Any] | None = Field(default=None, description="Sort values to search after")
    collapse: dict[str, Any] | None = Field(default=None, description="Field collapsing DSL")

    @abstractmethod
    def query_dsl(self) -> dict[str, Any] | None:
        """The ``query`` clause, or None for match-all."""

    @property
    def is_limiting(self) -> bool:
        return self.max_results is not None

    def all_orders(self) -> list[Order]:
        return [*self.pageable.sort, *self.sort]

    def with_pageable(self, pageable: Pageable) -> Query:
        return self.model_copy(update={"pageable": pageable})


class NativeQuery(Query):
    """Query built from raw Elasticsearch DSL dicts."""

    query: dict[str, Any] | None = Field(default=None, description="Query clause")
    filter: dict[str, Any] | None = Field(default=None, description="Post filter clause")
    aggregations: dict[str, Any] | None = Field(default=None, description="Aggregations DSL")
    suggest: dict[str, Any] | None = Field(default=None, description="Suggester DSL")

    def query_dsl(self) -> dict[str, Any] | None:
        return self.query


class StringQuery(Query):
    """Query whose ``query`` clause is given as a JSON string."""

    source: str = Field(description="JSON of the query clause")

    def query_dsl(self) -> dict[str, Any] | None:
        try:
            parsed = json.loads(self.source)
        except json.JSONDecodeError as e:
            raise InvalidArgumentError(f"StringQuery source is not valid JSON: {e}") from e
        if not isinstance(parsed, dict):
            raise InvalidArgumentError("StringQuery source must be a JSON object")
        return parsed


class MoreLikeThisQuery(BaseModel):
    """Find documents similar to the document with ``id``."""

    model_config = ConfigDict(frozen=True)

    id: str | None = Field(default=None, description="Id of the reference document")
    fields: list[str] = Field(default_factory=list, description="Fields to compare")
    pageable: Pageable = Field(default_factory=Pageable.unpaged)
    min_term_freq: int | None = None
    max_query_terms: int | None = None
    min_doc_freq: int | None = None
    max_doc_freq: int | None = None
    min_word_len: int | None = None
    max_word_len: int | None = None
    stop_words: list[str] | None = None
    boost_terms: float | None = None
    minimum_should_match: str | None = None
    include: bool | None = Field(default=None, description="Include the reference document in the results")


class IndexQuery(BaseModel):
    """A single document write.

    Either ``object`` (an entity) or ``source`` (a raw document) must be set.
    After a successful write the template replaces ``object`` with the entity
    carrying the assigned id and version information.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    id: str | None = Field(default=None, description="Document id; taken from the entity when missing")
    object: Any = Field(default=None, description="Entity to write")
    source: dict[str, Any] | None = Field(default=None, description="Raw document source")
    version: int | None = Field(default=None, description="External version for optimistic locking")
    seq_no: int | None = Field(default=None, description="Expected sequence number")
    primary_term: int | None = Field(default=None, description="Expected primary term")
    routing: str | None = None
    op_type: Literal["index", "create"] | None = Field(default=None, description="'create' fails if the id exists")
    index_name: str | None = Field(default=None, description="Overrides the target index for this item")


class UpdateQuery(BaseModel):
    """A partial document update or scripted update."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Id of the document to update")
    document: dict[str, Any] | None = Field(default=None, description="Partial document")
    script: str | None = Field(default=None, description="Script source")
    params: dict[str, Any] | None = Field(default=None, description="Script parameters")
    lang: str | None = None
    upsert: dict[str, Any] | None = None
    doc_as_upsert: bool | None = None
    scripted_upsert: bool | None = None
    fetch_source: bool | None = None
    seq_no: int | None = None
    primary_term: int | None = None
    retry_on_conflict: int | None = None
    routing: str | None = None
    index_name: str | None = None


class DeleteQuery(BaseModel):
    """A single delete-by-id item of a bulk request."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Id of the document to delete")
    seq_no: int | None = None
    primary_term: int | None = None
    version: int | None = None
    routing: str | None = None
    index_name: str | None = None


class BulkOptions(BaseModel):
    """Settings applied to a whole bulk request."""

    model_config = ConfigDict(frozen=True)

    refresh_policy: RefreshPolicy | None = Field(default=None, description="Overrides the template refresh policy")
    timeout: str | None = Field(default=None, description="Per-request timeout, e.g. '1m'")
    wait_for_active_shards: int | str | None = None
    pipeline: str | None = None
    routing: str | None = None
