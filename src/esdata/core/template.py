"""Elasticsearch template — Runs esdata operations against an Elasticsearch cluster.

All client calls go through ``execute``: client exceptions never escape the
template untranslated. The template holds the client and immutable
configuration only, so one instance can serve concurrent callers when the
client can.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING, Any, TypeVar

import elasticsearch
from elasticsearch import Elasticsearch

from esdata.core.document import DocumentAdapters, ReadDocumentCallback
from esdata.core.exceptions import (
    BackendContractError,
    BulkFailureError,
    DocumentNotFoundError,
    EsDataError,
    InvalidArgumentError,
    UnsupportedOperationError,
    check_not_none,
)
from esdata.core.json_utils import to_json
from esdata.core.operations import (
    DEFAULT_STREAM_SCROLL_TIME_MS,
    AbstractElasticsearchTemplate,
    IndexArg,
)
from esdata.core.request_converter import BulkItem
from esdata.core.response_converter import response_body
from esdata.core.search_response import SearchDocumentResponseBuilder, SearchHitMapping
from esdata.core.translator import ElasticsearchExceptionTranslator
from esdata.mapping.converter import EntityConverter
from esdata.models.document import IndexCoordinates, IndexedObjectInformation, MultiGetFailure, MultiGetItem
from esdata.models.query import BulkOptions, IndexQuery, Query, RefreshPolicy
from esdata.models.reindex import ReindexRequest, ReindexResponse
from esdata.models.response import ByQueryResponse, SearchHits, SearchScrollHits

if TYPE_CHECKING:
    from esdata.config.settings import Settings

T = TypeVar("T")
R = TypeVar("R")

logger = logging.getLogger(__name__)


class ElasticsearchTemplate(AbstractElasticsearchTemplate):
    """Template on top of the synchronous ``elasticsearch.Elasticsearch`` client.

    Args:
        client: The client; owned by the template from now on.
        converter: Entity converter.
        refresh_policy: Refresh policy of write operations.
        routing: Default routing.
        stream_scroll_time_ms: Scroll window of ``search_for_stream``.
        translator: Exception translator.

    Example::

        template = ElasticsearchTemplate(Elasticsearch("http://localhost:9200"))
        book = template.save(Book(title="Dune"))
        template.get(book.id, Book)
    """

    def __init__(
        self,
        client: Elasticsearch,
        converter: EntityConverter | None = None,
        refresh_policy: RefreshPolicy | None = None,
        routing: str | None = None,
        stream_scroll_time_ms: int = DEFAULT_STREAM_SCROLL_TIME_MS,
        translator: ElasticsearchExceptionTranslator | None = None,
    ) -> None:
        check_not_none(client, "client must not be None")
        super().__init__(converter, refresh_policy, routing, stream_scroll_time_ms)
        self.client = client
        self.translator = translator or ElasticsearchExceptionTranslator()

    @classmethod
    def from_settings(cls, settings: Settings) -> ElasticsearchTemplate:
        """Create the client and the template from application settings."""
        from esdata.client.factory import create_client

        return cls(
            create_client(settings.elasticsearch),
            refresh_policy=settings.template.refresh_policy,
            routing=settings.template.routing,
            stream_scroll_time_ms=settings.template.stream_scroll_time_ms,
        )

    # ── Execution ────────────────────────────────────────────────────────

    def execute(self, callback: Callable[[Elasticsearch], R]) -> R:
        """Run *callback* with the client, translating every failure.

        Raises:
            InvalidArgumentError: If *callback* is None.
            EsDataError: The translated failure; the client exception is its
                ``__cause__``.
        """
        check_not_none(callback, "callback must not be None")
        try:
            return callback(self.client)
        except EsDataError:
            raise
        except Exception as e:
            raise self.translator.translate(e) from e

    # ── Documents ────────────────────────────────────────────────────────

    def get(self, id: Any, entity_type: type[T], index: IndexArg = None) -> T | None:
        coordinates = self._coordinates(index, entity_type)
        request = self.request_converter.document_get_request(
            self.converter.convert_id(id), self.routing, coordinates
        )
        logger.debug("get %s from %s", request["id"], coordinates)
        try:
            raw = self.execute(lambda client: client.get(**request))
        except DocumentNotFoundError:
            return None
        callback = ReadDocumentCallback(self.converter, entity_type, coordinates)
        return callback.do_with(DocumentAdapters.from_get_response(raw))

    def multi_get(self, query: Query, entity_type: type[T], index: IndexArg = None) -> list[MultiGetItem[T]]:
        coordinates = self._coordinates(index, entity_type)
        request = self.request_converter.document_mget_request(self._routed(query), entity_type, coordinates)
        logger.debug("multi get %d documents from %s", len(request["docs"]), coordinates)
        raw = self.execute(lambda client: client.mget(**request))

        callback = ReadDocumentCallback(self.converter, entity_type, coordinates)
        items: list[MultiGetItem[T]] = []
        for result in DocumentAdapters.from_mget_response(raw):
            if isinstance(result, MultiGetFailure):
                items.append(MultiGetItem(failure=result))
                continue
            entity = callback.do_with(result)
            if entity is None:
                items.append(
                    MultiGetItem(
                        failure=MultiGetFailure(
                            index=result.index, id=result.id, type="not_found", reason="document not found"
                        )
                    )
                )
            else:
                items.append(MultiGetItem(item=entity))
        return items

    def exists(self, id: Any, entity_type: type | None = None, index: IndexArg = None) -> bool:
        coordinates = self._coordinates(index, entity_type)
        request = self.request_converter.document_get_request(
            self.converter.convert_id(id), self.routing, coordinates, source_only_check=True
        )
        try:
            raw = self.execute(lambda client: client.get(**request))
        except DocumentNotFoundError:
            return False
        return bool(response_body(raw).get("found", False))

    def index(self, query: IndexQuery, index: IndexArg = None) -> str | None:
        """Index one document.

        On success the entity of ``query.object`` is replaced by one carrying
        the assigned id, version and seq_no/primary_term.
        """
        check_not_none(query, "query must not be None")
        entity_type = type(query.object) if query.object is not None else None
        coordinates = self._coordinates(index or query.index_name, entity_type)
        request = self.request_converter.document_index_request(query, coordinates, self.refresh_policy)
        if self.routing is not None:
            request.setdefault("routing", self.routing)
        logger.debug("index into %s: %s", request["index"], to_json(request["document"]))

        raw = self.execute(lambda client: client.index(**request))
        info = self.response_converter.indexed_object_information(raw)
        if query.object is not None:
            query.object = self.converter.update_indexed_object(query.object, info)
        return info.id

    def bulk_operation(
        self,
        queries: Sequence[BulkItem],
        options: BulkOptions | None = None,
        index: IndexArg = None,
    ) -> list[IndexedObjectInformation]:
        """Run index, update and delete items in one bulk request.

        Results align with *queries* by position. The call is all or nothing:
        on any item failure ``BulkFailureError`` is raised and no entity is
        updated.
        """
        check_not_none(queries, "queries must not be None")
        queries = list(queries)
        if not queries:
            return []
        entity_type = next(
            (type(q.object) for q in queries if isinstance(q, IndexQuery) and q.object is not None), None
        )
        coordinates = self._coordinates(index, entity_type)
        request = self.request_converter.document_bulk_request(queries, options, coordinates, self.refresh_policy)
        if self.routing is not None:
            request.setdefault("routing", self.routing)
        logger.debug("bulk %d operations into %s", len(queries), coordinates)

        raw = self.execute(lambda client: client.bulk(**request))
        try:
            results = self.response_converter.check_bulk_response(raw, expected_items=len(queries))
        except BulkFailureError as e:
            logger.warning("Bulk request into %s failed for %d item(s)", coordinates, len(e.failed_documents))
            raise

        for query, info in zip(queries, results, strict=True):
            if isinstance(query, IndexQuery) and query.object is not None:
                query.object = self.converter.update_indexed_object(query.object, info)
        return results

    def delete(self, id: Any, entity_type: type | None = None, index: IndexArg = None) -> str:
        """Delete a document by id and return the id; a missing document is not an error."""
        coordinates = self._coordinates(index, entity_type)
        request = self.request_converter.document_delete_request(
            self.converter.convert_id(id), self.routing, coordinates, self.refresh_policy
        )
        logger.debug("delete %s from %s", request["id"], coordinates)
        try:
            self.execute(lambda client: client.delete(**request))
        except DocumentNotFoundError:
            logger.debug("document %s to delete was not found in %s", request["id"], coordinates)
        return request["id"]

    def delete_by_query(
        self, query: Query, entity_type: type | None = None, index: IndexArg = None
    ) -> ByQueryResponse:
        coordinates = self._coordinates(index, entity_type)
        request = self.request_converter.document_delete_by_query_request(
            self._routed(query), entity_type, coordinates, self.refresh_policy
        )
        logger.debug("delete by query from %s: %s", coordinates, to_json(request["query"]))
        raw = self.execute(lambda client: client.delete_by_query(**request))
        return self.response_converter.by_query_response(raw)

    def reindex(self, request: ReindexRequest) -> ReindexResponse:
        params = self.request_converter.reindex(request, wait_for_completion=True)
        logger.debug("reindex %s into %s", params["source"]["index"], params["dest"]["index"])
        raw = self.execute(lambda client: client.reindex(**params))
        return self.response_converter.reindex_response(raw)

    def submit_reindex(self, request: ReindexRequest) -> str:
        params = self.request_converter.reindex(request, wait_for_completion=False)
        raw = self.execute(lambda client: client.reindex(**params))
        task = response_body(raw).get("task")
        if task is None:
            raise BackendContractError("Start of reindex did not return a task id")
        logger.debug("submitted reindex task %s", task)
        return str(task)

    # ── Search ───────────────────────────────────────────────────────────

    def count(self, query: Query, entity_type: type | None = None, index: IndexArg = None) -> int:
        coordinates = self._coordinates(index, entity_type)
        request = self.request_converter.search_request(self._routed(query), entity_type, coordinates, count_only=True)
        raw = self.execute(lambda client: client.search(**request))
        return SearchDocumentResponseBuilder.from_response(raw).total_hits

    def search(self, query: Query, entity_type: type[T], index: IndexArg = None) -> SearchHits[T]:
        coordinates = self._coordinates(index, entity_type)
        request = self.request_converter.search_request(self._routed(query), entity_type, coordinates)
        logger.debug("search %s: %s", coordinates, to_json(request.get("query")))
        raw = self.execute(lambda client: client.search(**request))
        return SearchHitMapping().map_hits(self._search_document_response(raw, entity_type, coordinates))

    def search_scroll_start(
        self, scroll_time_ms: int, query: Query, entity_type: type[T], index: IndexArg = None
    ) -> SearchScrollHits[T]:
        coordinates = self._coordinates(index, entity_type)
        request = self.request_converter.search_request(
            self._routed(query), entity_type, coordinates, scroll_time_ms=scroll_time_ms
        )
        logger.debug("scroll start %s (%d ms)", coordinates, scroll_time_ms)
        raw = self.execute(lambda client: client.search(**request))
        return SearchHitMapping().map_scroll_hits(self._search_document_response(raw, entity_type, coordinates))

    def search_scroll_continue(
        self, scroll_id: str, scroll_time_ms: int, entity_type: type[T], index: IndexArg = None
    ) -> SearchScrollHits[T]:
        coordinates = self._coordinates(index, entity_type)
        request = self.request_converter.scroll_request(scroll_id, scroll_time_ms)
        raw = self.execute(lambda client: client.scroll(**request))
        return SearchHitMapping().map_scroll_hits(self._search_document_response(raw, entity_type, coordinates))

    def search_scroll_clear(self, scroll_ids: Sequence[str]) -> None:
        """Release *scroll_ids*. An empty list is a no-op."""
        if not scroll_ids:
            return
        request = self.request_converter.clear_scroll_request(scroll_ids)
        self.execute(lambda client: client.clear_scroll(**request))

    def multi_search(
        self, queries: Sequence[Query], entity_type: type[T], index: IndexArg = None
    ) -> list[SearchHits[T]]:
        """Not supported.

        The per-query searches are prepared in order, so invalid arguments are
        still reported as ``InvalidArgumentError``.

        Raises:
            UnsupportedOperationError: Always, after validation.
        """
        check_not_none(queries, "queries must not be None")
        if not queries:
            raise InvalidArgumentError("multi search needs at least one query")
        coordinates = self._coordinates(index, entity_type)
        searches = self.request_converter.multi_search_request(
            [self._routed(query) for query in queries], entity_type, coordinates
        )
        raise UnsupportedOperationError(f"multi search is not supported ({len(searches) // 2} searches prepared)")

    def multi_search_for_types(
        self, queries: Sequence[Query], entity_types: Sequence[type], index: IndexArg = None
    ) -> list[SearchHits[Any]]:
        """Not supported. Like :meth:`multi_search` with one entity type per query.

        Raises:
            InvalidArgumentError: If *queries* and *entity_types* differ in length.
            UnsupportedOperationError: Always, after validation.
        """
        check_not_none(queries, "queries must not be None")
        check_not_none(entity_types, "entity types must not be None")
        if not queries:
            raise InvalidArgumentError("multi search needs at least one query")
        if len(queries) != len(entity_types):
            raise InvalidArgumentError(
                f"{len(queries)} queries but {len(entity_types)} entity types; sizes must match"
            )
        searches: list[dict[str, Any]] = []
        for query, entity_type in zip(queries, entity_types):
            coordinates = self._coordinates(index, entity_type)
            searches.extend(self.request_converter.multi_search_request([self._routed(query)], entity_type, coordinates))
        raise UnsupportedOperationError(f"multi search is not supported ({len(searches) // 2} searches prepared)")

    def _search_document_response(self, raw: Any, entity_type: type[T], coordinates: IndexCoordinates) -> Any:
        callback = ReadDocumentCallback(self.converter, entity_type, coordinates)
        return SearchDocumentResponseBuilder.from_response(raw, callback.do_with)

    # ── Cluster ──────────────────────────────────────────────────────────

    def cluster_version(self) -> str | None:
        info = response_body(self.execute(lambda client: client.info()))
        return (info.get("version") or {}).get("number")

    @staticmethod
    def vendor() -> str:
        return "Elasticsearch"

    @staticmethod
    def runtime_library_version() -> str:
        """Version of the ``elasticsearch`` client library."""
        return elasticsearch.__versionstr__

    def close(self) -> None:
        self.client.close()
