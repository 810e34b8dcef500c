"""Response Converter — Maps raw Elasticsearch responses to esdata result models.

Also home of the bulk failure policy: a bulk call either succeeds as a whole,
yielding one ``IndexedObjectInformation`` per item in request order, or fails
as a whole with a ``BulkFailureError`` listing every failed item.
"""

from __future__ import annotations

from typing import Any

from esdata.core.exceptions import BackendContractError, BulkFailureError
from esdata.models.document import IndexedObjectInformation
from esdata.models.reindex import ReindexFailure, ReindexResponse
from esdata.models.response import ByQueryFailure, ByQueryResponse, SearchFailure


def response_body(raw: Any) -> dict[str, Any]:
    """Return the plain dict body of a client response.

    The client returns ``ObjectApiResponse`` wrappers; tests and callbacks may
    hand in plain dicts.
    """
    body = getattr(raw, "body", raw)
    return body if isinstance(body, dict) else {}


class ResponseConverter:
    """Stateless converter for write, by-query and reindex responses."""

    # ── Single writes ────────────────────────────────────────────────────

    @staticmethod
    def indexed_object_information(raw: Any) -> IndexedObjectInformation:
        """Identity and concurrency metadata of a single index response or bulk item."""
        body = response_body(raw)
        return IndexedObjectInformation(
            id=body.get("_id"),
            index=body.get("_index"),
            seq_no=body.get("_seq_no"),
            primary_term=body.get("_primary_term"),
            version=body.get("_version"),
        )

    # ── Bulk ─────────────────────────────────────────────────────────────

    def check_bulk_response(
        self, raw: Any, expected_items: int | None = None
    ) -> list[IndexedObjectInformation]:
        """Apply the all-or-nothing bulk policy to *raw*.

        Args:
            raw: The bulk response.
            expected_items: Number of items sent. When given, a response with a
                different number of items is rejected.

        Returns:
            One ``IndexedObjectInformation`` per item, in request order.

        Raises:
            BackendContractError: If the item count does not match ``expected_items``.
            BulkFailureError: If the response flags errors. Carries ``{id: reason}``
                for exactly the failed items; nothing is returned for the others.
        """
        body = response_body(raw)
        items = [_item_result(item) for item in body.get("items", [])]

        if expected_items is not None and len(items) != expected_items:
            raise BackendContractError(
                f"Bulk response has {len(items)} items, but {expected_items} were sent"
            )

        if body.get("errors"):
            failed: dict[str | int, str] = {
                _failure_key(result, position): _failure_reason(result["error"])
                for position, result in enumerate(items)
                if result.get("error")
            }
            raise BulkFailureError(
                "Bulk operation has failures. Use BulkFailureError.failed_documents "
                f"for detailed messages [{failed}]",
                failed,
            )

        return [self.indexed_object_information(result) for result in items]

    # ── By-query ─────────────────────────────────────────────────────────

    @staticmethod
    def by_query_response(raw: Any) -> ByQueryResponse:
        """Map a delete-by-query or update-by-query response."""
        body = response_body(raw)
        retries = body.get("retries") or {}

        failures: list[ByQueryFailure] = []
        search_failures: list[SearchFailure] = []
        for failure in body.get("failures") or []:
            if "shard" in failure or "node" in failure:
                search_failures.append(_search_failure(failure))
            else:
                cause = failure.get("cause") or {}
                failures.append(
                    ByQueryFailure(
                        index=failure.get("index"),
                        id=failure.get("id"),
                        cause_type=cause.get("type"),
                        reason=cause.get("reason"),
                        status=failure.get("status"),
                        aborted=failure.get("aborted"),
                    )
                )

        return ByQueryResponse(
            took=body.get("took", 0),
            timed_out=body.get("timed_out", False),
            total=body.get("total", 0),
            updated=body.get("updated", 0),
            deleted=body.get("deleted", 0),
            batches=body.get("batches", 0),
            version_conflicts=body.get("version_conflicts", 0),
            noops=body.get("noops", 0),
            bulk_retries=retries.get("bulk", 0),
            search_retries=retries.get("search", 0),
            reason_cancelled=body.get("canceled"),
            throttled_until_millis=body.get("throttled_until_millis"),
            failures=failures,
            search_failures=search_failures,
        )

    # ── Reindex ──────────────────────────────────────────────────────────

    @staticmethod
    def reindex_response(raw: Any) -> ReindexResponse:
        """Map a reindex response, or the task handle of a submitted reindex."""
        body = response_body(raw)
        retries = body.get("retries") or {}
        failures = [
            ReindexFailure(
                index=f.get("index"),
                id=f.get("id"),
                cause_type=(f.get("cause") or {}).get("type"),
                reason=(f.get("cause") or {}).get("reason"),
                status=f.get("status"),
                seq_no=f.get("seq_no"),
                aborted=f.get("aborted"),
            )
            for f in body.get("failures") or []
        ]
        return ReindexResponse(
            took=body.get("took", 0),
            timed_out=body.get("timed_out", False),
            total=body.get("total", 0),
            created=body.get("created", 0),
            updated=body.get("updated", 0),
            deleted=body.get("deleted", 0),
            batches=body.get("batches", 0),
            version_conflicts=body.get("version_conflicts", 0),
            noops=body.get("noops", 0),
            bulk_retries=retries.get("bulk", 0),
            search_retries=retries.get("search", 0),
            throttled_millis=body.get("throttled_millis", 0),
            requests_per_second=body.get("requests_per_second", 0.0),
            throttled_until_millis=body.get("throttled_until_millis", 0),
            task=body.get("task"),
            failures=failures,
        )


def _item_result(item: dict[str, Any]) -> dict[str, Any]:
    # Each bulk item is keyed by its action: {"index": {...}}, {"delete": {...}}, ...
    return next(iter(item.values()), {}) if item else {}


def _failure_key(result: dict[str, Any], position: int) -> str | int:
    item_id = result.get("_id")
    return item_id if item_id is not None else position


def _failure_reason(error: Any) -> str:
    if isinstance(error, dict):
        return str(error.get("reason") or error.get("type") or error)
    return str(error)


def _search_failure(failure: dict[str, Any]) -> SearchFailure:
    reason = failure.get("reason")
    if isinstance(reason, dict):
        reason = reason.get("reason") or reason.get("type")
    return SearchFailure(
        reason=reason,
        index=failure.get("index"),
        shard_id=failure.get("shard"),
        node_id=failure.get("node"),
        status=failure.get("status"),
    )
