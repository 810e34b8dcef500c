"""Abstract template — Operations shared by every template implementation.

Subclasses provide the store round trips (get, index, bulk, search, scroll,
...). Everything that can be expressed on top of those lives here: saving
entities, streaming, single-hit searches, more-like-this and index
resolution.
"""

from __future__ import annotations

import copy
from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any, TypeVar

from esdata.core.exceptions import InvalidArgumentError, UnsupportedOperationError, check_not_none
from esdata.core.request_converter import BulkItem, RequestConverter
from esdata.core.response_converter import ResponseConverter
from esdata.core.scroll import SearchHitsIterator
from esdata.mapping.converter import EntityConverter
from esdata.mapping.metadata import EntityMetadata
from esdata.models.document import IndexCoordinates, IndexedObjectInformation, MultiGetItem
from esdata.models.query import (
    BulkOptions,
    IndexQuery,
    MoreLikeThisQuery,
    NativeQuery,
    Pageable,
    Query,
    RefreshPolicy,
    UpdateQuery,
)
from esdata.models.reindex import ReindexRequest, ReindexResponse
from esdata.models.response import ByQueryResponse, SearchHit, SearchHits, SearchScrollHits

T = TypeVar("T")

IndexArg = IndexCoordinates | str | None

# Scroll window used by search_for_stream.
DEFAULT_STREAM_SCROLL_TIME_MS = 60_000


class AbstractElasticsearchTemplate(ABC):
    """Base class of the Elasticsearch templates.

    The index argument of every operation may be an ``IndexCoordinates``, an
    index name, or omitted; when omitted the index declared by the entity
    type's ``__index_name__`` is used.

    Args:
        converter: Entity converter; a default one is created if omitted.
        refresh_policy: Refresh policy of write operations; None leaves the
            store default.
        routing: Routing used when a request carries none of its own.
        stream_scroll_time_ms: Scroll window of ``search_for_stream``.
    """

    def __init__(
        self,
        converter: EntityConverter | None = None,
        refresh_policy: RefreshPolicy | None = None,
        routing: str | None = None,
        stream_scroll_time_ms: int = DEFAULT_STREAM_SCROLL_TIME_MS,
    ) -> None:
        self.converter = converter or EntityConverter()
        self.request_converter = RequestConverter(self.converter)
        self.response_converter = ResponseConverter()
        self.refresh_policy = refresh_policy
        self.routing = routing
        self.stream_scroll_time_ms = stream_scroll_time_ms

    # ── Copies ───────────────────────────────────────────────────────────

    def with_refresh_policy(self, refresh_policy: RefreshPolicy | None):
        """A copy of this template using *refresh_policy*; the client is shared."""
        template = copy.copy(self)
        template.refresh_policy = refresh_policy
        return template

    def with_routing(self, routing: str | None):
        """A copy of this template using *routing*; the client is shared."""
        template = copy.copy(self)
        template.routing = routing
        return template

    # ── Index resolution ─────────────────────────────────────────────────

    def get_index_coordinates_for(self, entity_type: type) -> IndexCoordinates:
        """The index declared by *entity_type* with ``__index_name__``.

        Raises:
            InvalidArgumentError: If the type declares no index.
        """
        check_not_none(entity_type, "entity type must not be None")
        index_name = EntityMetadata.of(entity_type).index_name
        if not index_name:
            raise InvalidArgumentError(f"{entity_type.__name__} declares no __index_name__")
        return IndexCoordinates.of(index_name)

    def _coordinates(self, index: IndexArg, entity_type: type | None) -> IndexCoordinates:
        if isinstance(index, IndexCoordinates):
            return index
        if isinstance(index, str):
            return IndexCoordinates.of(index)
        if entity_type is None:
            raise InvalidArgumentError("index must be given when no entity type is known")
        return self.get_index_coordinates_for(entity_type)

    def _routed(self, query: Query) -> Query:
        check_not_none(query, "query must not be None")
        if query.routing is None and self.routing is not None:
            return query.model_copy(update={"routing": self.routing})
        return query

    # ── Queries ──────────────────────────────────────────────────────────

    @staticmethod
    def match_all_query() -> NativeQuery:
        return NativeQuery(query={"match_all": {}})

    @staticmethod
    def ids_query(ids: Sequence[str]) -> NativeQuery:
        return NativeQuery(ids=list(ids))

    # ── Documents ────────────────────────────────────────────────────────

    def save(self, entity: T, index: IndexArg = None) -> T:
        """Index *entity* and return it with the assigned id and version information."""
        check_not_none(entity, "entity must not be None")
        query = IndexQuery(object=entity)
        self.index(query, self._coordinates(index, type(entity)))
        return query.object

    def save_all(self, entities: Sequence[T], index: IndexArg = None) -> list[T]:
        """Bulk index *entities*; all or nothing.

        Raises:
            BulkFailureError: If any entity could not be indexed. No entity is
                updated in that case.
        """
        check_not_none(entities, "entities must not be None")
        entities = list(entities)
        if not entities:
            return []
        coordinates = self._coordinates(index, type(entities[0]))
        queries = [IndexQuery(object=entity) for entity in entities]
        self.bulk_index(queries, index=coordinates)
        return [query.object for query in queries]

    def bulk_index(
        self,
        queries: Sequence[IndexQuery],
        options: BulkOptions | None = None,
        index: IndexArg = None,
    ) -> list[IndexedObjectInformation]:
        return self.bulk_operation(queries, options, index)

    def delete_entity(self, entity: Any, index: IndexArg = None) -> str:
        """Delete the document of *entity* by its id."""
        check_not_none(entity, "entity must not be None")
        id = self.converter.entity_id(entity)
        if id is None:
            raise InvalidArgumentError(f"{type(entity).__name__} has no id to delete by")
        return self.delete(id, type(entity), index)

    def update(self, query: UpdateQuery, index: IndexArg = None) -> Any:
        raise UnsupportedOperationError("update is not supported")

    def update_by_query(self, query: UpdateQuery, index: IndexArg = None) -> ByQueryResponse:
        raise UnsupportedOperationError("update by query is not supported")

    def bulk_update(
        self, queries: Sequence[UpdateQuery], options: BulkOptions | None = None, index: IndexArg = None
    ) -> None:
        raise UnsupportedOperationError("bulk update is not supported")

    # ── Search ───────────────────────────────────────────────────────────

    def search_one(self, query: Query, entity_type: type[T], index: IndexArg = None) -> SearchHit[T] | None:
        """The first hit of *query*, or None."""
        check_not_none(query, "query must not be None")
        hits = self.search(query.with_pageable(Pageable.of(0, 1, *query.pageable.sort)), entity_type, index)
        return hits.search_hits[0] if hits.search_hits else None

    def search_more_like_this(
        self, query: MoreLikeThisQuery, entity_type: type[T], index: IndexArg = None
    ) -> SearchHits[T]:
        """Documents similar to the document ``query.id``."""
        check_not_none(query, "query must not be None")
        coordinates = self._coordinates(index, entity_type)
        clause = self.request_converter.more_like_this_query(query, coordinates)
        return self.search(NativeQuery(query=clause, pageable=query.pageable), entity_type, coordinates)

    def search_for_stream(self, query: Query, entity_type: type[T], index: IndexArg = None) -> SearchHitsIterator[T]:
        """Iterate every hit of *query* through a scroll.

        The returned iterator clears its scroll ids when exhausted or closed;
        use it as a context manager when it may be abandoned early.
        """
        check_not_none(query, "query must not be None")
        coordinates = self._coordinates(index, entity_type)
        scroll_time_ms = self.stream_scroll_time_ms
        first_page = self.search_scroll_start(scroll_time_ms, query, entity_type, coordinates)
        return SearchHitsIterator(
            first_page,
            lambda scroll_id: self.search_scroll_continue(scroll_id, scroll_time_ms, entity_type, coordinates),
            self.search_scroll_clear,
            query.max_results,
        )

    # ── Store operations ─────────────────────────────────────────────────

    @abstractmethod
    def get(self, id: Any, entity_type: type[T], index: IndexArg = None) -> T | None:
        """The entity with *id*, or None if there is no such document."""

    @abstractmethod
    def multi_get(self, query: Query, entity_type: type[T], index: IndexArg = None) -> list[MultiGetItem[T]]:
        """One slot per id of *query*, in order."""

    @abstractmethod
    def exists(self, id: Any, entity_type: type | None = None, index: IndexArg = None) -> bool: ...

    @abstractmethod
    def index(self, query: IndexQuery, index: IndexArg = None) -> str | None:
        """Index one document and return its id."""

    @abstractmethod
    def bulk_operation(
        self,
        queries: Sequence[BulkItem],
        options: BulkOptions | None = None,
        index: IndexArg = None,
    ) -> list[IndexedObjectInformation]: ...

    @abstractmethod
    def delete(self, id: Any, entity_type: type | None = None, index: IndexArg = None) -> str: ...

    @abstractmethod
    def delete_by_query(
        self, query: Query, entity_type: type | None = None, index: IndexArg = None
    ) -> ByQueryResponse: ...

    @abstractmethod
    def reindex(self, request: ReindexRequest) -> ReindexResponse: ...

    @abstractmethod
    def submit_reindex(self, request: ReindexRequest) -> str:
        """Start a reindex without waiting and return its task id."""

    @abstractmethod
    def count(self, query: Query, entity_type: type | None = None, index: IndexArg = None) -> int: ...

    @abstractmethod
    def search(self, query: Query, entity_type: type[T], index: IndexArg = None) -> SearchHits[T]: ...

    @abstractmethod
    def search_scroll_start(
        self, scroll_time_ms: int, query: Query, entity_type: type[T], index: IndexArg = None
    ) -> SearchScrollHits[T]: ...

    @abstractmethod
    def search_scroll_continue(
        self, scroll_id: str, scroll_time_ms: int, entity_type: type[T], index: IndexArg = None
    ) -> SearchScrollHits[T]: ...

    @abstractmethod
    def search_scroll_clear(self, scroll_ids: Sequence[str]) -> None: ...

    @abstractmethod
    def multi_search(
        self, queries: Sequence[Query], entity_type: type[T], index: IndexArg = None
    ) -> list[SearchHits[T]]: ...

    @abstractmethod
    def multi_search_for_types(
        self, queries: Sequence[Query], entity_types: Sequence[type], index: IndexArg = None
    ) -> list[SearchHits[Any]]: ...

    # ── Cluster ──────────────────────────────────────────────────────────

    @abstractmethod
    def cluster_version(self) -> str | None: ...

    @abstractmethod
    def close(self) -> None: ...
