"""Request Converter — Builds Elasticsearch client requests from esdata queries.

Every method returns the keyword arguments of the matching
``elasticsearch.Elasticsearch`` method, e.g.
``client.search(**converter.search_request(query, Book, index))``. Nothing here
touches the network; missing required arguments fail with
``InvalidArgumentError`` before a request is built.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from esdata.core.exceptions import InvalidArgumentError, check_not_none
from esdata.mapping.converter import EntityConverter
from esdata.mapping.metadata import EntityMetadata
from esdata.models.document import IndexCoordinates
from esdata.models.query import (
    BulkOptions,
    DeleteQuery,
    IndexQuery,
    MoreLikeThisQuery,
    NativeQuery,
    Query,
    RefreshPolicy,
    UpdateQuery,
)
from esdata.models.reindex import ReindexRequest

# Page size of an unpaged search (the store's default max_result_window).
UNPAGED_SEARCH_SIZE = 10_000
# Page size of each scroll batch when the query is unpaged.
UNPAGED_SCROLL_SIZE = 500

BulkItem = IndexQuery | UpdateQuery | DeleteQuery


def scroll_time(scroll_time_ms: int) -> str:
    """Format a scroll window for the ``scroll`` parameter."""
    return f"{scroll_time_ms}ms"


def _put(target: dict[str, Any], key: str, value: Any) -> None:
    if value is not None:
        target[key] = value


def _refresh(params: dict[str, Any], refresh_policy: RefreshPolicy | None) -> None:
    if refresh_policy is not None and refresh_policy is not RefreshPolicy.NONE:
        params["refresh"] = refresh_policy.to_param()


class RequestConverter:
    """Stateless translation of esdata queries into client keyword arguments.

    Args:
        converter: Entity converter used to write entity sources and to read
            id and concurrency values from entities.
    """

    def __init__(self, converter: EntityConverter | None = None) -> None:
        self._converter = converter or EntityConverter()

    # ── Get ──────────────────────────────────────────────────────────────

    def document_get_request(
        self,
        id: str,
        routing: str | None,
        index: IndexCoordinates,
        source_only_check: bool = False,
    ) -> dict[str, Any]:
        """Fetch one document by id. ``source_only_check`` asks for existence only."""
        check_not_none(id, "id must not be None")
        check_not_none(index, "index must not be None")

        params: dict[str, Any] = {"index": index.index_name, "id": id}
        _put(params, "routing", routing)
        if source_only_check:
            params["source"] = False
        return params

    def document_mget_request(self, query: Query, entity_type: type, index: IndexCoordinates) -> dict[str, Any]:
        """Expand the ids of *query* into one ``docs`` entry each, in order."""
        check_not_none(query, "query must not be None")
        check_not_none(entity_type, "entity type must not be None")
        check_not_none(index, "index must not be None")
        if not query.ids:
            raise InvalidArgumentError("multi-get needs a query with ids")

        docs: list[dict[str, Any]] = []
        for id in query.ids:
            doc: dict[str, Any] = {"_index": index.index_name, "_id": id}
            _put(doc, "routing", query.routing)
            if query.source_filter is not None:
                doc["_source"] = query.source_filter.to_dsl()
            if query.stored_fields:
                doc["stored_fields"] = list(query.stored_fields)
            docs.append(doc)
        return {"docs": docs}

    # ── Index ────────────────────────────────────────────────────────────

    def document_index_request(
        self,
        query: IndexQuery,
        index: IndexCoordinates,
        refresh_policy: RefreshPolicy | None = None,
    ) -> dict[str, Any]:
        """Create or overwrite one document.

        ``if_seq_no``/``if_primary_term`` are sent when both are known, else an
        external ``version`` when one is known, else no concurrency control.
        """
        check_not_none(query, "query must not be None")
        check_not_none(index, "index must not be None")

        params: dict[str, Any] = {
            "index": query.index_name or index.index_name,
            "document": self._source_of(query),
        }
        _put(params, "id", self._id_of(query))
        _put(params, "routing", query.routing)
        _put(params, "op_type", query.op_type)
        params.update(self._concurrency_of(query))
        _refresh(params, refresh_policy)
        return params

    # ── Delete ───────────────────────────────────────────────────────────

    def document_delete_request(
        self,
        id: str,
        routing: str | None,
        index: IndexCoordinates,
        refresh_policy: RefreshPolicy | None = None,
    ) -> dict[str, Any]:
        check_not_none(id, "id must not be None")
        check_not_none(index, "index must not be None")

        params: dict[str, Any] = {"index": index.index_name, "id": id}
        _put(params, "routing", routing)
        _refresh(params, refresh_policy)
        return params

    def document_delete_by_query_request(
        self,
        query: Query,
        entity_type: type | None,
        index: IndexCoordinates,
        refresh_policy: RefreshPolicy | None = None,
    ) -> dict[str, Any]:
        """Delete every document matching *query*.

        Delete-by-query has no wait-for refresh, so both ``IMMEDIATE`` and
        ``WAIT_UNTIL`` refresh the affected shards once the request completes.
        """
        check_not_none(query, "query must not be None")
        check_not_none(index, "index must not be None")

        params: dict[str, Any] = {
            "index": list(index.index_names),
            "query": self._query_clause(query),
        }
        _put(params, "routing", query.routing)
        _put(params, "max_docs", query.max_results)
        _put(params, "timeout", query.timeout)
        if query.scroll_time_ms is not None:
            params["scroll"] = scroll_time(query.scroll_time_ms)
        if refresh_policy is not None and refresh_policy is not RefreshPolicy.NONE:
            params["refresh"] = True
        return params

    # ── Bulk ─────────────────────────────────────────────────────────────

    def document_bulk_request(
        self,
        queries: Sequence[BulkItem],
        options: BulkOptions | None,
        index: IndexCoordinates,
        refresh_policy: RefreshPolicy | None = None,
    ) -> dict[str, Any]:
        """One bulk request for *queries*, keeping their order.

        The refresh policy of *options* takes precedence over *refresh_policy*.
        """
        check_not_none(queries, "queries must not be None")
        check_not_none(index, "index must not be None")
        if not queries:
            raise InvalidArgumentError("bulk request needs at least one query")
        options = options or BulkOptions()

        operations: list[dict[str, Any]] = []
        for query in queries:
            if isinstance(query, IndexQuery):
                operations.extend(self._bulk_index_operation(query, index))
            elif isinstance(query, UpdateQuery):
                operations.extend(self._bulk_update_operation(query, index))
            elif isinstance(query, DeleteQuery):
                operations.append(self._bulk_delete_operation(query, index))
            else:
                raise InvalidArgumentError(f"unsupported bulk query type {type(query).__name__}")

        params: dict[str, Any] = {"operations": operations}
        _put(params, "timeout", options.timeout)
        _put(params, "wait_for_active_shards", options.wait_for_active_shards)
        _put(params, "pipeline", options.pipeline)
        _put(params, "routing", options.routing)
        _refresh(params, options.refresh_policy or refresh_policy)
        return params

    def _bulk_index_operation(self, query: IndexQuery, index: IndexCoordinates) -> list[dict[str, Any]]:
        action: dict[str, Any] = {"_index": query.index_name or index.index_name}
        _put(action, "_id", self._id_of(query))
        _put(action, "routing", query.routing)
        action.update(self._concurrency_of(query))
        return [{query.op_type or "index": action}, self._source_of(query)]

    def _bulk_update_operation(self, query: UpdateQuery, index: IndexCoordinates) -> list[dict[str, Any]]:
        action: dict[str, Any] = {"_index": query.index_name or index.index_name, "_id": query.id}
        _put(action, "routing", query.routing)
        _put(action, "if_seq_no", query.seq_no)
        _put(action, "if_primary_term", query.primary_term)
        _put(action, "retry_on_conflict", query.retry_on_conflict)

        body: dict[str, Any] = {}
        _put(body, "doc", query.document)
        if query.script is not None:
            script: dict[str, Any] = {"source": query.script}
            _put(script, "params", query.params)
            _put(script, "lang", query.lang)
            body["script"] = script
        _put(body, "upsert", query.upsert)
        _put(body, "doc_as_upsert", query.doc_as_upsert)
        _put(body, "scripted_upsert", query.scripted_upsert)
        _put(body, "_source", query.fetch_source)
        return [{"update": action}, body]

    def _bulk_delete_operation(self, query: DeleteQuery, index: IndexCoordinates) -> dict[str, Any]:
        action: dict[str, Any] = {"_index": query.index_name or index.index_name, "_id": query.id}
        _put(action, "routing", query.routing)
        _put(action, "if_seq_no", query.seq_no)
        _put(action, "if_primary_term", query.primary_term)
        if query.version is not None and query.seq_no is None:
            action["version"] = query.version
            action["version_type"] = "external"
        return {"delete": action}

    # ── Search ───────────────────────────────────────────────────────────

    def search_request(
        self,
        query: Query,
        entity_type: type | None,
        index: IndexCoordinates,
        count_only: bool = False,
        scroll_time_ms: int | None = None,
    ) -> dict[str, Any]:
        """Build a search.

        Args:
            query: What to search for.
            entity_type: Target type; entities with a seq_no/primary_term
                property request those values per hit.
            index: Indices to search.
            count_only: Only compute the total; no hit is returned.
            scroll_time_ms: Start a scroll with this window. Scrolls page by
                ``size`` only, never by ``from``.
        """
        check_not_none(query, "query must not be None")
        check_not_none(index, "index must not be None")

        params: dict[str, Any] = {"index": list(index.index_names)}
        clause = self._query_clause(query, match_all_default=False)
        _put(params, "query", clause)
        _put(params, "routing", query.routing)
        _put(params, "preference", query.preference)
        _put(params, "min_score", query.min_score)
        _put(params, "timeout", query.timeout)

        if count_only:
            params["size"] = 0
            params["track_total_hits"] = True
            params["source"] = False
            return params

        metadata = EntityMetadata.of(entity_type) if entity_type is not None else None
        if metadata is not None and metadata.has_seq_no_primary_term_property:
            params["seq_no_primary_term"] = True
        params["version"] = True

        if scroll_time_ms is not None:
            params["scroll"] = scroll_time(scroll_time_ms)
            size = query.pageable.size if query.pageable.paged else UNPAGED_SCROLL_SIZE
        elif query.pageable.paged:
            params["from_"] = query.pageable.offset
            size = query.pageable.size
        else:
            params["from_"] = 0
            size = UNPAGED_SEARCH_SIZE
        if query.max_results is not None:
            size = min(size, query.max_results)
        params["size"] = size

        orders = query.all_orders()
        if orders:
            params["sort"] = [order.to_dsl() for order in orders]
        if query.source_filter is not None:
            params["source"] = query.source_filter.to_dsl()
        _put(params, "stored_fields", query.stored_fields)
        _put(params, "highlight", query.highlight)
        _put(params, "track_total_hits", query.track_total_hits)
        _put(params, "search_type", query.search_type)
        _put(params, "request_cache", query.request_cache)
        _put(params, "search_after", query.search_after)
        _put(params, "collapse", query.collapse)
        if query.track_scores:
            params["track_scores"] = True
        if query.explain:
            params["explain"] = True

        if isinstance(query, NativeQuery):
            _put(params, "post_filter", query.filter)
            _put(params, "aggregations", query.aggregations)
            _put(params, "suggest", query.suggest)
        return params

    def multi_search_request(
        self, queries: Sequence[Query], entity_type: type | None, index: IndexCoordinates
    ) -> list[dict[str, Any]]:
        """The ``searches`` of a multi-search: a header and a body per query, in query order."""
        check_not_none(queries, "queries must not be None")
        searches: list[dict[str, Any]] = []
        for query in queries:
            body = self.search_request(query, entity_type, index)
            header: dict[str, Any] = {"index": body.pop("index")}
            for name in _MSEARCH_HEADER_PARAMS:
                if name in body:
                    header[name] = body.pop(name)
            searches.append(header)
            searches.append({_MSEARCH_BODY_KEYS.get(key, key): value for key, value in body.items()})
        return searches

    @staticmethod
    def scroll_request(scroll_id: str, scroll_time_ms: int) -> dict[str, Any]:
        check_not_none(scroll_id, "scroll id must not be None")
        return {"scroll_id": scroll_id, "scroll": scroll_time(scroll_time_ms)}

    @staticmethod
    def clear_scroll_request(scroll_ids: Sequence[str]) -> dict[str, Any]:
        return {"scroll_id": list(scroll_ids)}

    @staticmethod
    def more_like_this_query(query: MoreLikeThisQuery, index: IndexCoordinates) -> dict[str, Any]:
        """The ``more_like_this`` clause for the document ``query.id``."""
        check_not_none(query, "query must not be None")
        check_not_none(index, "index must not be None")
        check_not_none(query.id, "more-like-this needs the id of the reference document")

        mlt: dict[str, Any] = {"like": [{"_index": index.index_name, "_id": query.id}]}
        if query.fields:
            mlt["fields"] = list(query.fields)
        for name in (
            "min_term_freq",
            "max_query_terms",
            "min_doc_freq",
            "max_doc_freq",
            "min_word_length",
            "max_word_length",
            "stop_words",
            "boost_terms",
            "minimum_should_match",
            "include",
        ):
            _put(mlt, name, getattr(query, _MLT_ATTRIBUTES.get(name, name)))
        return {"more_like_this": mlt}

    # ── Reindex ──────────────────────────────────────────────────────────

    def reindex(self, request: ReindexRequest, wait_for_completion: bool = True) -> dict[str, Any]:
        """Server-side reindex. Without waiting the server answers with a task id."""
        check_not_none(request, "reindex request must not be None")

        source: dict[str, Any] = {"index": list(request.source.indexes)}
        if request.source.query is not None:
            source["query"] = self._query_clause(request.source.query)
        _put(source, "size", request.source.size)
        _put(source, "_source", request.source.source_fields)
        if request.source.slice is not None:
            source["slice"] = request.source.slice.model_dump()
        if request.source.remote is not None:
            source["remote"] = request.source.remote.model_dump(exclude_none=True)

        dest: dict[str, Any] = request.dest.model_dump(exclude_none=True)

        params: dict[str, Any] = {"source": source, "dest": dest, "wait_for_completion": wait_for_completion}
        for name in (
            "conflicts",
            "max_docs",
            "script",
            "refresh",
            "requests_per_second",
            "slices",
            "timeout",
            "wait_for_active_shards",
            "scroll",
            "require_alias",
        ):
            _put(params, name, getattr(request, name))
        return params

    # ── Helpers ──────────────────────────────────────────────────────────

    @staticmethod
    def _query_clause(query: Query, match_all_default: bool = True) -> dict[str, Any] | None:
        clause = query.query_dsl()
        if query.ids:
            ids = {"ids": {"values": list(query.ids)}}
            clause = ids if clause is None else {"bool": {"must": [clause], "filter": [ids]}}
        if clause is None and match_all_default:
            clause = {"match_all": {}}
        return clause

    def _id_of(self, query: IndexQuery) -> str | None:
        if query.id is not None:
            return query.id
        return self._converter.entity_id(query.object) if query.object is not None else None

    def _source_of(self, query: IndexQuery) -> dict[str, Any]:
        if query.source is not None:
            return query.source
        if query.object is None:
            raise InvalidArgumentError("index query needs an object or a source")
        return self._converter.write(query.object)

    def _concurrency_of(self, query: IndexQuery) -> dict[str, Any]:
        seq_no, primary_term = query.seq_no, query.primary_term
        if (seq_no is None or primary_term is None) and query.object is not None:
            entity_seq_no = self._converter.entity_seq_no_primary_term(query.object)
            if entity_seq_no is not None:
                seq_no, primary_term = entity_seq_no.seq_no, entity_seq_no.primary_term
        if seq_no is not None and primary_term is not None:
            return {"if_seq_no": seq_no, "if_primary_term": primary_term}

        version = query.version
        if version is None and query.object is not None:
            version = self._converter.entity_version(query.object)
        if version is not None:
            return {"version": version, "version_type": "external"}
        return {}


# Request parameter names that differ from the MoreLikeThisQuery attribute names.
_MLT_ATTRIBUTES = {"min_word_length": "min_word_len", "max_word_length": "max_word_len"}
# Search parameters that go into the multi-search header instead of the body.
_MSEARCH_HEADER_PARAMS = ("routing", "preference", "search_type", "request_cache")
# Client keyword arguments whose multi-search body key differs.
_MSEARCH_BODY_KEYS = {"from_": "from", "source": "_source"}
