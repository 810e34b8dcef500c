"""Entity metadata — Resolves mapping roles of a pydantic model's fields.

Metadata is computed once per entity type and cached; all lookups are
read-only.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from esdata.core.exceptions import MappingError
from esdata.mapping.annotations import MARKER_KEY, ROLE_ID, ROLE_SEQ_NO_PRIMARY_TERM, ROLE_VERSION


class SeqNoPrimaryTerm(BaseModel):
    """Sequence number and primary term of the last write of a document."""

    model_config = ConfigDict(frozen=True)

    seq_no: int = Field(ge=0)
    primary_term: int = Field(ge=1)


class PropertyMetadata(BaseModel):
    """Mapping information of a single entity property."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str = Field(description="Attribute name on the model")
    field_name: str = Field(description="Field name in the document source")
    input_key: str = Field(description="Key the model expects when validating (alias or name)")
    annotation: Any = None
    role: str | None = None
    read_only: bool = False
    transient: bool = False

    @property
    def is_writable(self) -> bool:
        return not (self.read_only or self.transient or self.role in (ROLE_VERSION, ROLE_SEQ_NO_PRIMARY_TERM))

    @property
    def is_readable(self) -> bool:
        return self.is_writable


class EntityMetadata(BaseModel):
    """Mapping information of an entity type."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    entity_type: Any = Field(description="The entity class")
    index_name: str | None = Field(default=None, description="Index declared with __index_name__")
    properties: tuple[PropertyMetadata, ...] = ()

    @classmethod
    def of(cls, entity_type: type) -> EntityMetadata:
        """Return the (cached) metadata of *entity_type*.

        ``dict`` is accepted and yields metadata without properties.

        Raises:
            MappingError: If the type is neither a pydantic model nor ``dict``.
        """
        cached = _cache.get(entity_type)
        if cached is not None:
            return cached

        if entity_type is dict:
            metadata = cls(entity_type=dict)
        elif isinstance(entity_type, type) and issubclass(entity_type, BaseModel):
            metadata = cls(
                entity_type=entity_type,
                index_name=getattr(entity_type, "__index_name__", None),
                properties=tuple(_property(name, info) for name, info in entity_type.model_fields.items()),
            )
        else:
            raise MappingError(f"{entity_type!r} is not a pydantic model")

        _cache[entity_type] = metadata
        return metadata

    def _with_role(self, role: str) -> PropertyMetadata | None:
        return next((p for p in self.properties if p.role == role), None)

    @property
    def id_property(self) -> PropertyMetadata | None:
        return self._with_role(ROLE_ID)

    @property
    def version_property(self) -> PropertyMetadata | None:
        return self._with_role(ROLE_VERSION)

    @property
    def seq_no_primary_term_property(self) -> PropertyMetadata | None:
        return self._with_role(ROLE_SEQ_NO_PRIMARY_TERM)

    @property
    def has_seq_no_primary_term_property(self) -> bool:
        return self.seq_no_primary_term_property is not None

    @property
    def writable_properties(self) -> list[PropertyMetadata]:
        return [p for p in self.properties if p.is_writable]

    @property
    def readable_properties(self) -> list[PropertyMetadata]:
        return [p for p in self.properties if p.is_readable]


_cache: dict[type, EntityMetadata] = {}


def _property(name: str, info: Any) -> PropertyMetadata:
    extra = info.json_schema_extra if isinstance(info.json_schema_extra, dict) else {}
    marker = extra.get(MARKER_KEY) or {}
    return PropertyMetadata(
        name=name,
        field_name=marker.get("name", name),
        input_key=info.alias or name,
        annotation=info.annotation,
        role=marker.get("role"),
        read_only=bool(marker.get("read_only", False)),
        transient=bool(marker.get("transient", False)),
    )
