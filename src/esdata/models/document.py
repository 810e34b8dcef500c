"""Document-level models — index coordinates, raw documents and write results."""

from __future__ import annotations

from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, model_validator

from esdata.core.exceptions import InvalidArgumentError

T = TypeVar("T")


class IndexCoordinates(BaseModel):
    """One or more index names an operation is addressed to."""

    model_config = ConfigDict(frozen=True)

    index_names: tuple[str, ...] = Field(min_length=1, description="Index names")

    @classmethod
    def of(cls, *index_names: str) -> IndexCoordinates:
        if not index_names or not all(index_names):
            raise InvalidArgumentError("index names must not be empty")
        return cls(index_names=index_names)

    @property
    def index_name(self) -> str:
        return self.index_names[0]

    def __str__(self) -> str:
        return ",".join(self.index_names)


class IndexedObjectInformation(BaseModel):
    """Identity and concurrency metadata the store assigned to a written document."""

    model_config = ConfigDict(frozen=True)

    id: str | None = Field(default=None, description="Document id")
    index: str | None = Field(default=None, description="Index the document was written to")
    seq_no: int | None = Field(default=None, description="Sequence number")
    primary_term: int | None = Field(default=None, description="Primary term")
    version: int | None = Field(default=None, description="Document version")

    @property
    def has_seq_no_primary_term(self) -> bool:
        return self.seq_no is not None and self.seq_no >= 0 and self.primary_term is not None and self.primary_term >= 1


class Document(BaseModel):
    """A raw document as returned by get, multi-get or search.

    ``source`` is None when the store returned no ``_source`` (not found,
    source disabled, or existence-only requests).
    """

    id: str | None = None
    index: str | None = None
    routing: str | None = None
    found: bool = True
    source: dict[str, Any] | None = None
    version: int | None = None
    seq_no: int | None = None
    primary_term: int | None = None
    fields: dict[str, Any] = Field(default_factory=dict, description="Returned stored/docvalue fields")

    @property
    def has_seq_no_primary_term(self) -> bool:
        # The store reports seq_no -2 and primary_term 0 when none was assigned.
        return self.seq_no is not None and self.seq_no >= 0 and self.primary_term is not None and self.primary_term >= 1


class MultiGetFailure(BaseModel):
    """Why a single multi-get slot could not be filled."""

    model_config = ConfigDict(frozen=True)

    index: str | None = None
    id: str | None = None
    type: str | None = Field(default=None, description="Error type reported by the store")
    reason: str = Field(description="Failure reason")


class MultiGetItem(BaseModel, Generic[T]):
    """A multi-get result slot: either an item or a failure, never both."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    item: T | None = None
    failure: MultiGetFailure | None = None

    @model_validator(mode="after")
    def _exactly_one(self) -> MultiGetItem[T]:
        if (self.item is None) == (self.failure is None):
            raise ValueError("exactly one of item or failure must be set")
        return self

    @property
    def has_item(self) -> bool:
        return self.item is not None

    @property
    def is_failed(self) -> bool:
        return self.failure is not None
