"""Integration tests for ElasticsearchTemplate against a real Elasticsearch instance."""

from __future__ import annotations

from typing import ClassVar

import pytest
from pydantic import BaseModel

from esdata.core.exceptions import BulkFailureError, NoSuchIndexError, OptimisticLockingFailureError
from esdata.core.scroll import ScrollState
from esdata.mapping.annotations import IdField, MappedField, SeqNoPrimaryTermField, VersionField
from esdata.mapping.metadata import SeqNoPrimaryTerm
from esdata.models.query import IndexQuery, NativeQuery, Order, Pageable
from esdata.models.reindex import ReindexRequest

BOOKS_INDEX = "it-books"

pytestmark = [pytest.mark.integration]


class StoredBook(BaseModel):
    __index_name__: ClassVar[str] = BOOKS_INDEX

    id: str | None = IdField()
    title: str
    author_name: str | None = MappedField(None, name="author")
    pages: int | None = None
    version: int | None = VersionField()
    seq_no_primary_term: SeqNoPrimaryTerm | None = SeqNoPrimaryTermField()


class TestDocuments:
    def test_save_and_get(self, template, seeded_index):
        book = template.save(StoredBook(title="Solaris", author_name="Stanislaw Lem"))
        assert book.id is not None
        assert book.seq_no_primary_term is not None

        loaded = template.get(book.id, StoredBook)
        assert loaded.title == "Solaris"
        assert loaded.author_name == "Stanislaw Lem"

    def test_get_missing(self, template, seeded_index):
        assert template.get("nope", StoredBook) is None
        assert template.exists("nope", StoredBook) is False
        assert template.exists("b-1", StoredBook) is True

    def test_stale_seq_no_conflicts(self, template, seeded_index):
        book = template.get("b-1", StoredBook)
        template.save(book.model_copy(update={"pages": 413}))
        with pytest.raises(OptimisticLockingFailureError):
            template.save(book)

    def test_missing_index(self, template, elasticsearch_ready):
        with pytest.raises(NoSuchIndexError):
            template.search(NativeQuery(), StoredBook, "it-does-not-exist")

    def test_multi_get(self, template, seeded_index):
        items = template.multi_get(NativeQuery(ids=["b-2", "missing", "b-1"]), StoredBook)
        assert items[0].item.title == "Dune Messiah"
        assert items[1].is_failed
        assert items[2].item.title == "Dune"

    def test_delete(self, template, seeded_index):
        assert template.delete("b-3", StoredBook) == "b-3"
        assert template.get("b-3", StoredBook) is None
        assert template.delete("b-3", StoredBook) == "b-3"


class TestBulk:
    def test_save_all(self, template, seeded_index):
        saved = template.save_all([StoredBook(title="A"), StoredBook(title="B")])
        assert all(book.id and book.version for book in saved)

    def test_conflict_fails_bulk(self, template, seeded_index):
        queries = [
            IndexQuery(object=StoredBook(id="new-1", title="fresh")),
            IndexQuery(object=StoredBook(id="b-1", title="taken"), op_type="create"),
        ]
        with pytest.raises(BulkFailureError) as exc_info:
            template.bulk_index(queries)
        assert list(exc_info.value.failed_documents) == ["b-1"]
        assert queries[0].object.version is None


class TestSearch:
    def test_search_paged_and_sorted(self, template, seeded_index):
        query = NativeQuery(
            query={"term": {"author": "Frank Herbert"}},
            pageable=Pageable.of(0, 10, Order.desc("pages")),
        )
        hits = template.search(query, StoredBook)
        assert hits.total_hits == 2
        assert [book.title for book in hits.contents()] == ["Dune", "Dune Messiah"]

    def test_count(self, template, seeded_index):
        assert template.count(NativeQuery(query={"term": {"author": "Ursula K. Le Guin"}}), StoredBook) == 2

    def test_stream(self, template, seeded_index):
        query = NativeQuery(pageable=Pageable.of(0, 2))
        with template.search_for_stream(query, StoredBook) as stream:
            ids = sorted(hit.id for hit in stream)
        assert ids == ["b-1", "b-2", "b-3", "b-4", "b-5"]
        assert stream.state is ScrollState.EXHAUSTED

    def test_delete_by_query(self, template, seeded_index):
        response = template.delete_by_query(NativeQuery(query={"term": {"author": "Dan Simmons"}}), StoredBook)
        assert response.deleted == 1
        assert template.count(NativeQuery(), StoredBook) == 4


class TestReindex:
    def test_reindex(self, template, seeded_index):
        response = template.reindex(ReindexRequest.of(BOOKS_INDEX, f"{BOOKS_INDEX}-copy", refresh=True))
        assert response.created + response.updated == 5
        assert template.count(NativeQuery(), StoredBook, f"{BOOKS_INDEX}-copy") == 5
        template.execute(lambda client: client.indices.delete(index=f"{BOOKS_INDEX}-copy"))

    def test_cluster_version(self, template, elasticsearch_ready):
        assert template.cluster_version()
