"""Entity mapping — Field markers, metadata resolution and the document converter."""

from esdata.mapping.annotations import (
    IdField,
    MappedField,
    ReadOnlyField,
    SeqNoPrimaryTermField,
    TransientField,
    VersionField,
)
from esdata.mapping.converter import EntityConverter
from esdata.mapping.metadata import EntityMetadata, SeqNoPrimaryTerm

__all__ = [
    "EntityConverter",
    "EntityMetadata",
    "IdField",
    "MappedField",
    "ReadOnlyField",
    "SeqNoPrimaryTerm",
    "SeqNoPrimaryTermField",
    "TransientField",
    "VersionField",
]
