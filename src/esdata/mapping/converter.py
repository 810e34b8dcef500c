"""Entity converter — Writes entities to document sources and reads them back.

Read-only and transient properties never reach the document source. Version
and seq_no/primary_term properties are metadata: they are filled from the
document on read and from the store's write result after indexing, but never
written to the source.
"""

from __future__ import annotations

import logging
from typing import Any, TypeVar

from pydantic import BaseModel, TypeAdapter, ValidationError

from esdata.core.exceptions import MappingError, check_not_none
from esdata.mapping.metadata import EntityMetadata, PropertyMetadata, SeqNoPrimaryTerm
from esdata.models.document import Document, IndexedObjectInformation

T = TypeVar("T")

logger = logging.getLogger(__name__)


class EntityConverter:
    """Converts between pydantic entities and Elasticsearch document sources."""

    def metadata(self, entity_type: type) -> EntityMetadata:
        return EntityMetadata.of(entity_type)

    # ── Write ────────────────────────────────────────────────────────────

    def write(self, entity: Any) -> dict[str, Any]:
        """Convert *entity* into a JSON-compatible document source.

        ``None`` values are omitted. ``dict`` entities are returned as a copy.

        Raises:
            MappingError: If *entity* is neither a pydantic model nor a dict.
        """
        if isinstance(entity, dict):
            return dict(entity)
        if not isinstance(entity, BaseModel):
            raise MappingError(f"Cannot write {type(entity).__name__}: not a pydantic model")

        metadata = self.metadata(type(entity))
        writable = metadata.writable_properties
        dumped = entity.model_dump(mode="json", include={p.name for p in writable}, exclude_none=True)
        return {p.field_name: dumped[p.name] for p in writable if p.name in dumped}

    # ── Read ─────────────────────────────────────────────────────────────

    def read(self, entity_type: type[T], document: Document) -> T:
        """Build an instance of *entity_type* from *document*.

        The document id, version and seq_no/primary_term are applied to the
        matching properties. Properties missing from the source keep their
        defaults.

        Raises:
            MappingError: If a source value is incompatible with the property type
                or a required property is missing.
        """
        source = document.source or {}
        if entity_type is dict:
            return dict(source)  # type: ignore[return-value]

        metadata = self.metadata(entity_type)
        data: dict[str, Any] = {}
        for prop in metadata.readable_properties:
            if prop.field_name in source:
                data[prop.input_key] = source[prop.field_name]

        if document.id is not None and metadata.id_property is not None:
            data[metadata.id_property.input_key] = document.id
        if document.version is not None and metadata.version_property is not None:
            data[metadata.version_property.input_key] = document.version

        try:
            if document.has_seq_no_primary_term and metadata.seq_no_primary_term_property is not None:
                data[metadata.seq_no_primary_term_property.input_key] = SeqNoPrimaryTerm(
                    seq_no=document.seq_no, primary_term=document.primary_term
                )
            return entity_type.model_validate(data)  # type: ignore[attr-defined,no-any-return]
        except ValidationError as e:
            raise MappingError(
                f"Could not read document {document.id} from index {document.index} as {entity_type.__name__}: {e}"
            ) from e

    # ── Identity ─────────────────────────────────────────────────────────

    @staticmethod
    def convert_id(id: Any) -> str:
        check_not_none(id, "id must not be None")
        return str(id)

    def entity_id(self, entity: Any) -> str | None:
        prop = self._property(entity, "id_property")
        if prop is None:
            return None
        value = getattr(entity, prop.name)
        return None if value is None else self.convert_id(value)

    def entity_version(self, entity: Any) -> int | None:
        prop = self._property(entity, "version_property")
        return None if prop is None else getattr(entity, prop.name)

    def entity_seq_no_primary_term(self, entity: Any) -> SeqNoPrimaryTerm | None:
        prop = self._property(entity, "seq_no_primary_term_property")
        return None if prop is None else getattr(entity, prop.name)

    def update_indexed_object(self, entity: Any, info: IndexedObjectInformation) -> Any:
        """Write the store-assigned id, version and seq_no/primary_term back onto *entity*.

        Mutable models are updated in place; frozen models are copied. Other
        objects are returned unchanged.
        """
        if not isinstance(entity, BaseModel):
            return entity

        metadata = self.metadata(type(entity))
        updates: dict[str, Any] = {}
        if info.id is not None and metadata.id_property is not None:
            updates[metadata.id_property.name] = _coerce(metadata.id_property, info.id)
        if info.version is not None and metadata.version_property is not None:
            updates[metadata.version_property.name] = info.version
        if info.has_seq_no_primary_term and metadata.seq_no_primary_term_property is not None:
            updates[metadata.seq_no_primary_term_property.name] = SeqNoPrimaryTerm(
                seq_no=info.seq_no, primary_term=info.primary_term
            )
        if not updates:
            return entity

        if entity.model_config.get("frozen"):
            return entity.model_copy(update=updates)
        for name, value in updates.items():
            setattr(entity, name, value)
        return entity

    def _property(self, entity: Any, role_property: str) -> PropertyMetadata | None:
        if not isinstance(entity, BaseModel):
            return None
        return getattr(self.metadata(type(entity)), role_property)


def _coerce(prop: PropertyMetadata, value: Any) -> Any:
    try:
        return TypeAdapter(prop.annotation).validate_python(value)
    except ValidationError as e:
        raise MappingError(f"Cannot assign id {value!r} to property {prop.name}") from e
