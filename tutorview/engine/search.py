from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from .page_store import PageStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SearchState:
    query: str = ""
    matches: tuple[int, ...] = ()
    pointer: int = 0

    @property
    def active(self) -> bool:
        return bool(self.query)

    @property
    def current_page(self) -> Optional[int]:
        if not self.matches:
            return None
        return self.matches[self.pointer]


def find_matching_pages(contents: Iterable[str], query: str) -> list[int]:
    """Indices of pages containing ``query`` anywhere, ignoring case."""
    needle = (query or "").lower()
    if not needle.strip():
        return []
    return [idx for idx, text in enumerate(contents) if needle in (text or "").lower()]


class SearchIndex:
    """Per-page search over the page store with cyclic navigation."""

    def __init__(self, store: PageStore) -> None:
        self._store = store
        self._state = SearchState()

    @property
    def state(self) -> SearchState:
        return self._state

    def set_query(self, query: str) -> Optional[int]:
        """Recompute matches; returns the first matching page to jump to."""
        if not (query or "").strip():
            self.reset()
            return None
        matches = tuple(find_matching_pages(self._store.contents(), query))
        self._state = SearchState(query, matches, 0)
        logger.debug("Search %r matched pages %s", query, list(matches))
        return matches[0] if matches else None

    def next_match(self) -> Optional[int]:
        return self._step(1)

    def prev_match(self) -> Optional[int]:
        return self._step(-1)

    def reset(self) -> None:
        self._state = SearchState()

    def _step(self, delta: int) -> Optional[int]:
        state = self._state
        count = len(state.matches)
        if not count:
            return None
        pointer = (state.pointer + delta + count) % count
        self._state = SearchState(state.query, state.matches, pointer)
        return state.matches[pointer]
