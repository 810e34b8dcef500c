"""Scroll stream — Iterates all hits of a query page by page through a scroll.

State machine::

    STARTED    ──next page──────────────▶ CONTINUING ──next page──▶ CONTINUING
    STARTED    ──empty page, max_results─▶ EXHAUSTED
    CONTINUING ──empty page, max_results─▶ EXHAUSTED
    STARTED    ──close()────────────────▶ CLEARED
    CONTINUING ──close()────────────────▶ CLEARED

Every scroll id seen during the stream is cleared exactly once, on exhaustion
or on ``close()``. A ``SearchHitsIterator`` must not be shared between threads.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from enum import Enum
from typing import Any, Generic, TypeVar

from esdata.models.response import SearchHit, SearchScrollHits

T = TypeVar("T")

logger = logging.getLogger(__name__)


class ScrollState(str, Enum):
    STARTED = "started"
    CONTINUING = "continuing"
    CLEARED = "cleared"
    EXHAUSTED = "exhausted"


class SearchHitsIterator(Generic[T]):
    """Iterator over every hit of a scroll.

    Args:
        first_page: Result of the scroll start.
        continue_scroll: Fetches the next page for a scroll id.
        clear_scroll: Releases the given scroll ids.
        max_results: Stop after this many hits; None for all.

    Example::

        with template.search_for_stream(query, Book) as hits:
            for hit in hits:
                print(hit.content)
    """

    def __init__(
        self,
        first_page: SearchScrollHits[T],
        continue_scroll: Callable[[str], SearchScrollHits[T]],
        clear_scroll: Callable[[list[str]], None],
        max_results: int | None = None,
    ) -> None:
        self._continue_scroll = continue_scroll
        self._clear_scroll = clear_scroll
        self._max_results = max_results
        self._delivered = 0
        self._scroll_ids: list[str] = []
        self._scroll_id: str | None = None
        self._page_empty = False

        self.total_hits = first_page.total_hits
        self.total_hits_relation = first_page.total_hits_relation
        self.aggregations: dict[str, Any] | None = first_page.aggregations
        self.state = ScrollState.STARTED
        self._buffer: Iterator[SearchHit[T]] = self._accept(first_page)

    # ── Iterator protocol ────────────────────────────────────────────────

    def __iter__(self) -> SearchHitsIterator[T]:
        return self

    def __next__(self) -> SearchHit[T]:
        if self.state in (ScrollState.CLEARED, ScrollState.EXHAUSTED):
            raise StopIteration
        if self._max_results is not None and self._delivered >= self._max_results:
            self._finish(ScrollState.EXHAUSTED)
            raise StopIteration

        hit = next(self._buffer, None)
        if hit is None:
            if self._scroll_id is None or self._page_empty:
                self._finish(ScrollState.EXHAUSTED)
                raise StopIteration
            self._buffer = self._accept(self._continue_scroll(self._scroll_id))
            self.state = ScrollState.CONTINUING
            hit = next(self._buffer, None)
            if hit is None:
                self._finish(ScrollState.EXHAUSTED)
                raise StopIteration

        self._delivered += 1
        return hit

    # ── Resource handling ────────────────────────────────────────────────

    def close(self) -> None:
        """Release all scroll ids. Further iteration yields nothing."""
        if self.state not in (ScrollState.CLEARED, ScrollState.EXHAUSTED):
            self._finish(ScrollState.CLEARED)

    def __enter__(self) -> SearchHitsIterator[T]:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _accept(self, page: SearchScrollHits[T]) -> Iterator[SearchHit[T]]:
        self._scroll_id = page.scroll_id
        self._page_empty = not page.search_hits
        if page.scroll_id is not None and page.scroll_id not in self._scroll_ids:
            self._scroll_ids.append(page.scroll_id)
        return iter(page.search_hits)

    def _finish(self, state: ScrollState) -> None:
        self.state = state
        scroll_ids, self._scroll_ids = self._scroll_ids, []
        if scroll_ids:
            logger.debug("Clearing %d scroll id(s) after %d hits", len(scroll_ids), self._delivered)
            self._clear_scroll(scroll_ids)
