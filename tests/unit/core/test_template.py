"""Tests for ElasticsearchTemplate document operations."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from elasticsearch import ConnectionError, NotFoundError

from esdata.core.exceptions import (
    BackendContractError,
    BulkFailureError,
    DataAccessResourceFailureError,
    DocumentNotFoundError,
    InvalidArgumentError,
    NoSuchIndexError,
    OptimisticLockingFailureError,
    UnsupportedOperationError,
)
from esdata.core.template import ElasticsearchTemplate
from esdata.mapping.metadata import SeqNoPrimaryTerm
from esdata.models.document import IndexCoordinates
from esdata.models.query import DeleteQuery, IndexQuery, NativeQuery, RefreshPolicy, UpdateQuery
from esdata.models.reindex import ReindexRequest
from sample_entities import Book, Note, Unindexed


def index_response(id: str, seq_no: int = 0, version: int = 1) -> dict:
    return {"_index": "books", "_id": id, "_version": version, "_seq_no": seq_no, "_primary_term": 1, "result": "created"}


# ── Execute ──────────────────────────────────────────────────────────────────


class TestExecute:
    def test_returns_callback_result(self, template: ElasticsearchTemplate, mock_client: MagicMock) -> None:
        assert template.execute(lambda client: client is mock_client) is True

    def test_none_callback_rejected(self, template: ElasticsearchTemplate) -> None:
        with pytest.raises(InvalidArgumentError):
            template.execute(None)  # type: ignore[arg-type]

    def test_client_error_translated_with_cause(self, template: ElasticsearchTemplate) -> None:
        original = ConnectionError("connection refused")

        def fail(client):
            raise original

        with pytest.raises(DataAccessResourceFailureError) as exc_info:
            template.execute(fail)
        assert exc_info.value.__cause__ is original

    def test_domain_errors_not_rewrapped(self, template: ElasticsearchTemplate) -> None:
        def fail(client):
            raise InvalidArgumentError("bad")

        with pytest.raises(InvalidArgumentError, match="bad"):
            template.execute(fail)

    def test_translator_is_pluggable(self, mock_client: MagicMock) -> None:
        translator = MagicMock()
        translator.translate.return_value = NoSuchIndexError("custom")
        template = ElasticsearchTemplate(mock_client, translator=translator)

        def fail(client):
            raise RuntimeError("boom")

        with pytest.raises(NoSuchIndexError, match="custom"):
            template.execute(fail)

    def test_client_required(self) -> None:
        with pytest.raises(InvalidArgumentError):
            ElasticsearchTemplate(None)  # type: ignore[arg-type]


# ── Index resolution ─────────────────────────────────────────────────────────


class TestIndexResolution:
    def test_entity_index(self, template: ElasticsearchTemplate) -> None:
        assert template.get_index_coordinates_for(Book) == IndexCoordinates.of("books")

    def test_entity_without_index(self, template: ElasticsearchTemplate) -> None:
        with pytest.raises(InvalidArgumentError):
            template.get_index_coordinates_for(Unindexed)

    def test_explicit_index_wins(self, template: ElasticsearchTemplate, mock_client: MagicMock) -> None:
        mock_client.get.return_value = {"_index": "archive", "_id": "1", "found": True, "_source": {"title": "x"}}
        template.get("1", Book, "archive")
        assert mock_client.get.call_args.kwargs["index"] == "archive"

    def test_query_helpers(self) -> None:
        assert ElasticsearchTemplate.match_all_query().query == {"match_all": {}}
        assert ElasticsearchTemplate.ids_query(("1", "2")).ids == ["1", "2"]

    def test_copies_share_client(self, template: ElasticsearchTemplate, mock_client: MagicMock) -> None:
        copy = template.with_refresh_policy(RefreshPolicy.IMMEDIATE).with_routing("r")
        assert copy.client is mock_client
        assert copy.refresh_policy is RefreshPolicy.IMMEDIATE
        assert copy.routing == "r"
        assert template.refresh_policy is None
        assert template.routing is None


# ── Get / exists ─────────────────────────────────────────────────────────────


class TestGet:
    def test_get(self, template: ElasticsearchTemplate, mock_client: MagicMock) -> None:
        mock_client.get.return_value = {
            "_index": "books",
            "_id": "1",
            "_version": 3,
            "_seq_no": 8,
            "_primary_term": 1,
            "found": True,
            "_source": {"title": "Dune", "author": "Frank Herbert"},
        }
        book = template.get(1, Book)
        mock_client.get.assert_called_once_with(index="books", id="1")
        assert book.id == "1"
        assert book.author_name == "Frank Herbert"
        assert book.seq_no_primary_term == SeqNoPrimaryTerm(seq_no=8, primary_term=1)

    def test_missing_document_is_none(
        self, template: ElasticsearchTemplate, mock_client: MagicMock, make_api_error
    ) -> None:
        mock_client.get.side_effect = make_api_error(404, {"_index": "books", "_id": "1", "found": False}, cls=NotFoundError)
        assert template.get("1", Book) is None

    def test_missing_index_raises(
        self, template: ElasticsearchTemplate, mock_client: MagicMock, make_api_error, es_error_body
    ) -> None:
        mock_client.get.side_effect = make_api_error(
            404, es_error_body("index_not_found_exception", "no such index [books]", 404, index="books")
        )
        with pytest.raises(NoSuchIndexError):
            template.get("1", Book)

    def test_template_routing_used(self, template: ElasticsearchTemplate, mock_client: MagicMock) -> None:
        mock_client.get.return_value = {"found": False}
        template.with_routing("shard-a").get("1", Book)
        assert mock_client.get.call_args.kwargs["routing"] == "shard-a"

    def test_none_id_rejected_before_network(self, template: ElasticsearchTemplate, mock_client: MagicMock) -> None:
        with pytest.raises(InvalidArgumentError):
            template.get(None, Book)
        mock_client.get.assert_not_called()


class TestExists:
    def test_found(self, template: ElasticsearchTemplate, mock_client: MagicMock) -> None:
        mock_client.get.return_value = {"_index": "books", "_id": "1", "found": True}
        assert template.exists("1", Book) is True
        assert mock_client.get.call_args.kwargs["source"] is False

    def test_not_found(self, template: ElasticsearchTemplate, mock_client: MagicMock, make_api_error) -> None:
        mock_client.get.side_effect = make_api_error(404, {"found": False}, cls=NotFoundError)
        assert template.exists("1", Book) is False


class TestMultiGet:
    def test_slots_in_request_order(self, template: ElasticsearchTemplate, mock_client: MagicMock) -> None:
        mock_client.mget.return_value = {
            "docs": [
                {"_index": "books", "_id": "2", "found": True, "_source": {"title": "b"}},
                {"_index": "books", "_id": "9", "found": False},
                {"_index": "books", "_id": "1", "error": {"type": "exception", "reason": "shard failure"}},
            ]
        }
        items = template.multi_get(NativeQuery(ids=["2", "9", "1"]), Book)

        assert items[0].has_item and items[0].item.title == "b"
        assert items[1].is_failed and items[1].failure.id == "9"
        assert items[1].failure.type == "not_found"
        assert items[2].failure.reason == "shard failure"

    def test_ids_required(self, template: ElasticsearchTemplate, mock_client: MagicMock) -> None:
        with pytest.raises(InvalidArgumentError):
            template.multi_get(NativeQuery(), Book)
        mock_client.mget.assert_not_called()


# ── Writes ───────────────────────────────────────────────────────────────────


class TestIndex:
    def test_save_writes_back_identity(
        self, template: ElasticsearchTemplate, mock_client: MagicMock, book: Book
    ) -> None:
        mock_client.index.return_value = index_response("abc", seq_no=4)
        saved = template.save(book)

        kwargs = mock_client.index.call_args.kwargs
        assert kwargs["index"] == "books"
        assert kwargs["document"] == {"title": "Dune", "author": "Frank Herbert", "pages": 412}
        assert "id" not in kwargs
        assert saved.id == "abc"
        assert saved.version == 1
        assert saved.seq_no_primary_term == SeqNoPrimaryTerm(seq_no=4, primary_term=1)

    def test_frozen_entity_replaced(self, template: ElasticsearchTemplate, mock_client: MagicMock) -> None:
        mock_client.index.return_value = index_response("5")
        note = Note(text="hi")
        saved = template.save(note)
        assert saved is not note
        assert saved.id == 5

    def test_index_returns_id(self, template: ElasticsearchTemplate, mock_client: MagicMock) -> None:
        mock_client.index.return_value = index_response("1")
        query = IndexQuery(id="1", source={"title": "raw"})
        assert template.index(query, "books") == "1"

    def test_refresh_policy_and_routing(self, template: ElasticsearchTemplate, mock_client: MagicMock, book: Book) -> None:
        mock_client.index.return_value = index_response("1")
        template.with_refresh_policy(RefreshPolicy.WAIT_UNTIL).with_routing("r").save(book)
        kwargs = mock_client.index.call_args.kwargs
        assert kwargs["refresh"] == "wait_for"
        assert kwargs["routing"] == "r"

    def test_conflict_leaves_entity_untouched(
        self, template: ElasticsearchTemplate, mock_client: MagicMock, make_api_error, es_error_body
    ) -> None:
        mock_client.index.side_effect = make_api_error(
            409, es_error_body("version_conflict_engine_exception", "[1]: version conflict", 409)
        )
        book = Book(id="1", title="Dune", seq_no_primary_term=SeqNoPrimaryTerm(seq_no=1, primary_term=1))
        with pytest.raises(OptimisticLockingFailureError):
            template.save(book)
        assert book.seq_no_primary_term.seq_no == 1

    def test_raw_source_needs_index(self, template: ElasticsearchTemplate) -> None:
        with pytest.raises(InvalidArgumentError):
            template.index(IndexQuery(source={"a": 1}))

    def test_raw_source_uses_query_index_name(self, template: ElasticsearchTemplate, mock_client: MagicMock) -> None:
        mock_client.index.return_value = index_response("1")
        assert template.index(IndexQuery(id="1", source={"a": 1}, index_name="archive")) == "1"
        assert mock_client.index.call_args.kwargs["index"] == "archive"


class TestBulk:
    def test_save_all_writes_back_in_order(self, template: ElasticsearchTemplate, mock_client: MagicMock) -> None:
        mock_client.bulk.return_value = {
            "errors": False,
            "items": [{"index": index_response("a", 0)}, {"index": index_response("b", 1)}],
        }
        first, second = template.save_all([Book(title="x"), Book(title="y")])
        assert (first.id, second.id) == ("a", "b")
        assert second.seq_no_primary_term.seq_no == 1
        assert mock_client.bulk.call_args.kwargs["operations"][0] == {"index": {"_index": "books"}}

    def test_save_all_empty(self, template: ElasticsearchTemplate, mock_client: MagicMock) -> None:
        assert template.save_all([]) == []
        mock_client.bulk.assert_not_called()

    def test_partial_failure_fails_all_without_writeback(
        self, template: ElasticsearchTemplate, mock_client: MagicMock
    ) -> None:
        mock_client.bulk.return_value = {
            "errors": True,
            "items": [
                {"index": index_response("id1")},
                {
                    "index": {
                        "_index": "books",
                        "_id": "id2",
                        "status": 409,
                        "error": {"type": "version_conflict_engine_exception", "reason": "version conflict"},
                    }
                },
                {"index": index_response("id3")},
            ],
        }
        books = [Book(id="id1", title="a"), Book(id="id2", title="b"), Book(id="id3", title="c")]
        queries = [IndexQuery(object=b) for b in books]

        with pytest.raises(BulkFailureError) as exc_info:
            template.bulk_index(queries)

        assert exc_info.value.failed_documents == {"id2": "version conflict"}
        assert all(q.object.version is None for q in queries)

    def test_mixed_operations(self, template: ElasticsearchTemplate, mock_client: MagicMock) -> None:
        mock_client.bulk.return_value = {
            "errors": False,
            "items": [{"update": index_response("1", version=2)}, {"delete": index_response("2")}],
        }
        infos = template.bulk_operation([UpdateQuery(id="1", document={"title": "t"}), DeleteQuery(id="2")], index="books")
        assert [info.id for info in infos] == ["1", "2"]
        assert infos[0].version == 2

    def test_item_count_mismatch(self, template: ElasticsearchTemplate, mock_client: MagicMock) -> None:
        mock_client.bulk.return_value = {"errors": False, "items": [{"delete": index_response("1")}]}
        with pytest.raises(BackendContractError):
            template.bulk_operation([DeleteQuery(id="1"), DeleteQuery(id="2")], index="books")


class TestDelete:
    def test_delete_returns_id(self, template: ElasticsearchTemplate, mock_client: MagicMock) -> None:
        assert template.with_refresh_policy(RefreshPolicy.IMMEDIATE).delete(1, Book) == "1"
        mock_client.delete.assert_called_once_with(index="books", id="1", refresh="true")

    def test_delete_missing_is_not_an_error(
        self, template: ElasticsearchTemplate, mock_client: MagicMock, make_api_error
    ) -> None:
        mock_client.delete.side_effect = make_api_error(404, {"result": "not_found"}, cls=NotFoundError)
        assert template.delete("1", Book) == "1"

    def test_delete_entity(self, template: ElasticsearchTemplate, mock_client: MagicMock) -> None:
        template.delete_entity(Book(id="7", title="x"))
        assert mock_client.delete.call_args.kwargs["id"] == "7"

    def test_delete_entity_without_id(self, template: ElasticsearchTemplate) -> None:
        with pytest.raises(InvalidArgumentError):
            template.delete_entity(Book(title="x"))

    def test_delete_by_query(self, template: ElasticsearchTemplate, mock_client: MagicMock) -> None:
        mock_client.delete_by_query.return_value = {"took": 3, "total": 2, "deleted": 2, "failures": []}
        response = template.with_refresh_policy(RefreshPolicy.WAIT_UNTIL).delete_by_query(
            NativeQuery(query={"term": {"author": "x"}}), Book
        )
        assert response.deleted == 2
        kwargs = mock_client.delete_by_query.call_args.kwargs
        assert kwargs["refresh"] is True
        assert kwargs["index"] == ["books"]


# ── Reindex ──────────────────────────────────────────────────────────────────


class TestReindex:
    def test_reindex_waits(self, template: ElasticsearchTemplate, mock_client: MagicMock) -> None:
        mock_client.reindex.return_value = {"took": 10, "total": 4, "created": 4}
        response = template.reindex(ReindexRequest.of("books", "books-v2"))
        assert response.created == 4
        assert mock_client.reindex.call_args.kwargs["wait_for_completion"] is True

    def test_submit_returns_task(self, template: ElasticsearchTemplate, mock_client: MagicMock) -> None:
        mock_client.reindex.return_value = {"task": "node-1:42"}
        assert template.submit_reindex(ReindexRequest.of("books", "books-v2")) == "node-1:42"
        assert mock_client.reindex.call_args.kwargs["wait_for_completion"] is False

    def test_submit_without_task(self, template: ElasticsearchTemplate, mock_client: MagicMock) -> None:
        mock_client.reindex.return_value = {"took": 1}
        with pytest.raises(BackendContractError, match="did not return a task id"):
            template.submit_reindex(ReindexRequest.of("books", "books-v2"))


# ── Unsupported ──────────────────────────────────────────────────────────────


class TestUnsupported:
    def test_update(self, template: ElasticsearchTemplate) -> None:
        with pytest.raises(UnsupportedOperationError):
            template.update(UpdateQuery(id="1", document={}))

    def test_update_by_query(self, template: ElasticsearchTemplate) -> None:
        with pytest.raises(UnsupportedOperationError):
            template.update_by_query(UpdateQuery(id="1"))

    def test_bulk_update(self, template: ElasticsearchTemplate) -> None:
        with pytest.raises(UnsupportedOperationError):
            template.bulk_update([UpdateQuery(id="1")])

    def test_unsupported_is_not_implemented(self) -> None:
        assert issubclass(UnsupportedOperationError, NotImplementedError)


# ── Cluster ──────────────────────────────────────────────────────────────────


class TestCluster:
    def test_cluster_version(self, template: ElasticsearchTemplate, mock_client: MagicMock) -> None:
        mock_client.info.return_value = {"version": {"number": "8.13.4"}}
        assert template.cluster_version() == "8.13.4"

    def test_vendor_and_library(self) -> None:
        assert ElasticsearchTemplate.vendor() == "Elasticsearch"
        assert ElasticsearchTemplate.runtime_library_version()

    def test_close(self, template: ElasticsearchTemplate, mock_client: MagicMock) -> None:
        template.close()
        mock_client.close.assert_called_once()

    def test_not_found_error_is_translated(
        self, template: ElasticsearchTemplate, mock_client: MagicMock, make_api_error
    ) -> None:
        mock_client.info.side_effect = make_api_error(404, None, cls=NotFoundError)
        with pytest.raises(DocumentNotFoundError):
            template.cluster_version()
