"""Reindex request and response models."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from esdata.models.query import Query


class Remote(BaseModel):
    """A remote cluster to reindex from."""

    model_config = ConfigDict(frozen=True)

    host: str = Field(description="Remote host URL, e.g. 'https://other:9200'")
    username: str | None = None
    password: str | None = None
    socket_timeout: str | None = None
    connect_timeout: str | None = None


class Slice(BaseModel):
    """Manual slicing of the source scroll."""

    model_config = ConfigDict(frozen=True)

    id: int = Field(ge=0)
    max: int = Field(ge=1)


class ReindexSource(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    indexes: tuple[str, ...] = Field(min_length=1, description="Source index names")
    query: Query | None = Field(default=None, description="Restricts the copied documents")
    size: int | None = Field(default=None, description="Scroll batch size")
    remote: Remote | None = None
    slice: Slice | None = None
    source_fields: list[str] | None = Field(default=None, description="Fields of _source to copy")


class ReindexDest(BaseModel):
    model_config = ConfigDict(frozen=True)

    index: str = Field(description="Destination index name")
    version_type: Literal["internal", "external", "external_gte"] | None = None
    op_type: Literal["index", "create"] | None = None
    pipeline: str | None = None
    routing: str | None = None


class ReindexRequest(BaseModel):
    """Server-side copy of documents from one or more indices into another."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    source: ReindexSource
    dest: ReindexDest
    conflicts: Literal["abort", "proceed"] | None = None
    max_docs: int | None = None
    script: dict[str, Any] | None = Field(default=None, description="Script DSL applied to each document")
    refresh: bool | None = None
    requests_per_second: float | None = None
    slices: int | Literal["auto"] | None = None
    timeout: str | None = None
    wait_for_active_shards: int | str | None = None
    scroll: str | None = None
    require_alias: bool | None = None

    @classmethod
    def of(cls, source_index: str | list[str], dest_index: str, **kwargs: Any) -> ReindexRequest:
        indexes = (source_index,) if isinstance(source_index, str) else tuple(source_index)
        return cls(source=ReindexSource(indexes=indexes), dest=ReindexDest(index=dest_index), **kwargs)


class ReindexFailure(BaseModel):
    model_config = ConfigDict(frozen=True)

    index: str | None = None
    id: str | None = None
    cause_type: str | None = None
    reason: str | None = None
    status: int | None = None
    seq_no: int | None = None
    aborted: bool | None = None


class ReindexResponse(BaseModel):
    """Outcome of a synchronous reindex."""

    model_config = ConfigDict(frozen=True)

    took: int = 0
    timed_out: bool = False
    total: int = 0
    created: int = 0
    updated: int = 0
    deleted: int = 0
    batches: int = 0
    version_conflicts: int = 0
    noops: int = 0
    bulk_retries: int = 0
    search_retries: int = 0
    throttled_millis: int = 0
    requests_per_second: float = 0.0
    throttled_until_millis: int = 0
    task: str | None = Field(default=None, description="Task id when the request did not wait for completion")
    failures: list[ReindexFailure] = Field(default_factory=list)
