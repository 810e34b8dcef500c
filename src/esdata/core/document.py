"""Document adapters and the typed document read callback.

``DocumentAdapters`` normalise the different raw payload shapes (get, mget
``docs`` entries, search hits) into one ``Document``. ``ReadDocumentCallback``
turns such a ``Document`` into an entity of a fixed type.
"""

from __future__ import annotations

from typing import Any, Generic, TypeVar

from esdata.core.exceptions import check_not_none
from esdata.core.response_converter import response_body
from esdata.mapping.converter import EntityConverter
from esdata.models.document import Document, IndexCoordinates, MultiGetFailure

T = TypeVar("T")


class DocumentAdapters:
    """Build ``Document`` instances from raw store payloads."""

    @staticmethod
    def from_get_response(raw: Any) -> Document:
        body = response_body(raw)
        return Document(
            id=body.get("_id"),
            index=body.get("_index"),
            routing=body.get("_routing"),
            found=bool(body.get("found", False)),
            source=body.get("_source"),
            version=body.get("_version"),
            seq_no=body.get("_seq_no"),
            primary_term=body.get("_primary_term"),
            fields=body.get("fields") or {},
        )

    @classmethod
    def from_mget_response(cls, raw: Any) -> list[Document | MultiGetFailure]:
        """One entry per requested id, in request order.

        Entries the store reported as errors become ``MultiGetFailure``.
        """
        results: list[Document | MultiGetFailure] = []
        for doc in response_body(raw).get("docs", []):
            error = doc.get("error")
            if error is not None:
                results.append(
                    MultiGetFailure(
                        index=doc.get("_index"),
                        id=doc.get("_id"),
                        type=error.get("type") if isinstance(error, dict) else None,
                        reason=str(error.get("reason") if isinstance(error, dict) else error),
                    )
                )
            else:
                results.append(cls.from_get_response(doc))
        return results

    @staticmethod
    def from_hit(hit: dict[str, Any]) -> Document:
        return Document(
            id=hit.get("_id"),
            index=hit.get("_index"),
            routing=hit.get("_routing"),
            source=hit.get("_source"),
            version=hit.get("_version"),
            seq_no=hit.get("_seq_no"),
            primary_term=hit.get("_primary_term"),
            fields=hit.get("fields") or {},
        )


class ReadDocumentCallback(Generic[T]):
    """Reads documents of one index as entities of type ``T``.

    Args:
        converter: Converter used for the mapping.
        entity_type: Target type (a pydantic model or ``dict``).
        index: Index the documents come from; kept for diagnostics.
    """

    def __init__(self, converter: EntityConverter, entity_type: type[T], index: IndexCoordinates) -> None:
        check_not_none(entity_type, "entity type must not be None")
        self.converter = converter
        self.entity_type = entity_type
        self.index = index

    def do_with(self, document: Document | None) -> T | None:
        """Return the entity of *document*, or None if it is absent or has no source.

        Raises:
            MappingError: If a source value does not fit the entity type.
        """
        if document is None or not document.found or not document.source:
            return None
        return self.converter.read(self.entity_type, document)
