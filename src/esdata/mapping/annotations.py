"""Field markers for entity models.

Each helper wraps ``pydantic.Field`` and records the field's mapping role in
``json_schema_extra`` under the ``esdata`` key::

    class Book(BaseModel):
        __index_name__: ClassVar[str] = "books"

        id: str | None = IdField()
        title: str
        author_name: str | None = MappedField(name="author")
        version: int | None = VersionField()
        seq_no_primary_term: SeqNoPrimaryTerm | None = SeqNoPrimaryTermField()
        rating: float | None = ReadOnlyField()
        cached_label: str | None = TransientField()
"""

from __future__ import annotations

from typing import Any

from pydantic import Field

MARKER_KEY = "esdata"

ROLE_ID = "id"
ROLE_VERSION = "version"
ROLE_SEQ_NO_PRIMARY_TERM = "seq_no_primary_term"


def _marked(default: Any, marker: dict[str, Any], **kwargs: Any) -> Any:
    extra = dict(kwargs.pop("json_schema_extra", None) or {})
    extra[MARKER_KEY] = marker
    return Field(default=default, json_schema_extra=extra, **kwargs)


def IdField(default: Any = None, **kwargs: Any) -> Any:  # noqa: N802
    """The property holding the document id."""
    return _marked(default, {"role": ROLE_ID}, **kwargs)


def VersionField(default: Any = None, **kwargs: Any) -> Any:  # noqa: N802
    """The property receiving the document version. Never written to the source."""
    return _marked(default, {"role": ROLE_VERSION}, **kwargs)


def SeqNoPrimaryTermField(default: Any = None, **kwargs: Any) -> Any:  # noqa: N802
    """The property receiving seq_no and primary_term. Never written to the source."""
    return _marked(default, {"role": ROLE_SEQ_NO_PRIMARY_TERM}, **kwargs)


def ReadOnlyField(default: Any = None, **kwargs: Any) -> Any:  # noqa: N802
    """A property that is never written to the source and not read back."""
    return _marked(default, {"read_only": True}, **kwargs)


def TransientField(default: Any = None, **kwargs: Any) -> Any:  # noqa: N802
    """A property that is not persisted at all."""
    return _marked(default, {"transient": True}, **kwargs)


def MappedField(default: Any = ..., *, name: str, **kwargs: Any) -> Any:  # noqa: N802
    """A property stored under the document field *name*."""
    return _marked(default, {"name": name}, **kwargs)
