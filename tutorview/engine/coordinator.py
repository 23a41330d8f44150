from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Sequence

from PySide6.QtCore import QObject, Signal

from .annotations import CHAR_INTERVAL_MS, COOLDOWN_MS, AnnotationQueue
from .models import Citation, HighlightState
from .page_store import PageStore, page_store
from .scheduler import QtScheduler, Scheduler, TimerHandle
from .search import SearchIndex, SearchState
from .styling import MatchMode, Segment, render_segments, term_words

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ViewerTimings:
    char_interval_ms: int = CHAR_INTERVAL_MS
    cooldown_ms: int = COOLDOWN_MS
    blink_ms: int = 2000
    highlight_dwell_ms: int = 5000


class NavigationCoordinator(QObject):
    """Owns the current page, blinks, highlights, search and annotations.

    The view listens to the signals below and renders; it reports user
    scrolling back through ``report_visible_page`` and ``user_scrolled``.
    A programmatic jump pins the current page until the user scrolls.
    """

    pageRequested = Signal(int)  # scroll page into view
    currentPageChanged = Signal(int)
    blinkChanged = Signal(int, bool)  # page, on
    pageStylesChanged = Signal(int)  # restyle one page
    stylesChanged = Signal()  # restyle every page
    annotationsChanged = Signal(int)  # annotation block of a page changed
    searchChanged = Signal(object)  # SearchState
    documentReset = Signal(int)  # generation

    def __init__(
        self,
        store: Optional[PageStore] = None,
        scheduler: Optional[Scheduler] = None,
        *,
        timings: ViewerTimings = ViewerTimings(),
        match_mode: MatchMode = MatchMode(),
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self._store = store if store is not None else page_store
        self._scheduler = scheduler if scheduler is not None else QtScheduler(self)
        self.timings = timings
        self._match_mode = match_mode
        self._search = SearchIndex(self._store)
        self.annotations = AnnotationQueue(
            self._scheduler,
            self._store,
            char_interval_ms=timings.char_interval_ms,
            cooldown_ms=timings.cooldown_ms,
            parent=self,
        )
        self._current_page = 0
        self._pinned_page: Optional[int] = None
        self._highlight_term = ""
        self._highlight_state: Optional[HighlightState] = None
        self._highlight_timer: Optional[TimerHandle] = None
        self._blink_timers: dict[int, TimerHandle] = {}
        self._turn_citations: dict[int, list[str]] = {}

        self.annotations.typingStarted.connect(self._on_typing_started)
        self.annotations.typingProgress.connect(lambda page, _text: self.annotationsChanged.emit(page))
        self.annotations.annotationCommitted.connect(lambda page, _text: self.annotationsChanged.emit(page))
        self._unsubscribe = self._store.subscribe(self._on_document_replaced)
        self.destroyed.connect(self._unsubscribe)

    # --- Read side ----------------------------------------------------
    @property
    def store(self) -> PageStore:
        return self._store

    @property
    def current_page(self) -> int:
        return self._current_page

    @property
    def highlight_term(self) -> str:
        return self._highlight_term

    @property
    def highlight_state(self) -> Optional[HighlightState]:
        return self._highlight_state

    @property
    def search_state(self) -> SearchState:
        return self._search.state

    @property
    def match_mode(self) -> MatchMode:
        return self._match_mode

    def detach(self) -> None:
        """Stop following the page store; pending timers are cancelled."""
        self._unsubscribe()
        self._cancel_timers()
        self.annotations.reset()

    def is_blinking(self, page: int) -> bool:
        handle = self._blink_timers.get(page)
        return handle is not None and handle.active

    def segments_for(self, page: int) -> list[Segment]:
        text = self._store.text(page)
        if text is None:
            return []
        active = self._highlight_state
        return render_segments(
            text,
            citation_active=active.term if active and active.page == page else None,
            highlight=self._highlight_term or None,
            search=self._search.state.query or None,
            citations=self._turn_citations.get(page, ()),
            mode=self._match_mode,
        )

    def annotation_lines(self, page: int) -> tuple[list[str], Optional[str]]:
        """Committed annotations and the partially typed one, if any."""
        typing = self.annotations.typing
        in_flight = typing.visible_text if typing and typing.page == page and typing.active else None
        return self.annotations.annotations_for(page), in_flight

    # --- ViewerHandle -------------------------------------------------
    def goto_page(self, page: int, *, blink: bool = False) -> bool:
        if not self._store.contains(page):
            logger.debug("Ignoring jump to page %s (document has %s pages)", page, self._store.page_count)
            return False
        self._pinned_page = page
        self._set_current_page(page)
        self.pageRequested.emit(page)
        if blink:
            self._blink(page)
        return True

    def highlight(self, term: str, page: Optional[int] = None) -> None:
        term = " ".join(term_words(term))
        if term != self._highlight_term:
            self._highlight_term = term
            self.stylesChanged.emit()
        if not term:
            return
        if page is not None:
            self.goto_page(page, blink=True)
        else:
            self.search(term)

    def scroll_to_position(self, page: int, term: str, annotation: Optional[str] = None) -> None:
        if not self._store.contains(page):
            logger.debug("Ignoring citation for missing page %s", page)
            return
        self.goto_page(page, blink=True)
        self._set_highlight_state(page, term, annotation)
        if annotation:
            self.annotations.enqueue(page, annotation)

    def process_new_annotations(self, citations: Sequence[Citation]) -> int:
        queued = 0
        for citation in citations:
            if not citation.annotation or not self._store.contains(citation.page):
                continue
            if self.annotations.enqueue(citation.page, citation.annotation):
                queued += 1
        return queued

    # --- Search -------------------------------------------------------
    def search(self, query: str) -> Optional[int]:
        page = self._search.set_query(query)
        self.searchChanged.emit(self._search.state)
        self.stylesChanged.emit()
        if page is not None:
            self.goto_page(page, blink=True)
        return page

    def next_match(self) -> Optional[int]:
        return self._jump_to_match(self._search.next_match)

    def prev_match(self) -> Optional[int]:
        return self._jump_to_match(self._search.prev_match)

    def _jump_to_match(self, step: Callable[[], Optional[int]]) -> Optional[int]:
        page = step()
        if page is None:
            return None
        self.searchChanged.emit(self._search.state)
        self.goto_page(page, blink=True)
        return page

    # --- Styling inputs -----------------------------------------------
    def set_match_mode(self, mode: MatchMode) -> None:
        if mode != self._match_mode:
            self._match_mode = mode
            self.stylesChanged.emit()

    def set_turn_citations(self, citations: Iterable[Citation]) -> None:
        by_page: dict[int, list[str]] = {}
        for citation in citations:
            if citation.term:
                by_page.setdefault(citation.page, []).append(citation.term)
        self._turn_citations = by_page
        self.stylesChanged.emit()

    # --- Viewport feedback --------------------------------------------
    def report_visible_page(self, page: int) -> None:
        if self._pinned_page is not None or not self._store.contains(page):
            return
        self._set_current_page(page)

    def user_scrolled(self) -> None:
        self._pinned_page = None

    # --- Internals ----------------------------------------------------
    def _set_current_page(self, page: int) -> None:
        if page != self._current_page:
            self._current_page = page
            self.currentPageChanged.emit(page)

    def _blink(self, page: int) -> None:
        previous = self._blink_timers.pop(page, None)
        if previous is not None:
            previous.cancel()
        self.blinkChanged.emit(page, True)

        def _clear() -> None:
            self._blink_timers.pop(page, None)
            self.blinkChanged.emit(page, False)

        self._blink_timers[page] = self._schedule(self.timings.blink_ms, _clear)

    def _set_highlight_state(self, page: int, term: str, annotation: Optional[str]) -> None:
        if self._highlight_timer is not None:
            self._highlight_timer.cancel()
        previous = self._highlight_state
        dwell = self.timings.highlight_dwell_ms
        state = HighlightState(page, term, annotation, self._scheduler.now_ms() + dwell)
        self._highlight_state = state
        if previous is not None and previous.page != page:
            self.pageStylesChanged.emit(previous.page)
        self.pageStylesChanged.emit(page)

        def _expire() -> None:
            self._highlight_timer = None
            if self._highlight_state is state:
                self._highlight_state = None
                self.pageStylesChanged.emit(page)

        self._highlight_timer = self._schedule(dwell, _expire)

    def _on_typing_started(self, page: int, _text: str) -> None:
        self.goto_page(page, blink=True)
        self.annotationsChanged.emit(page)

    def _schedule(self, delay_ms: int, callback: Callable[[], None]) -> TimerHandle:
        generation = self._store.generation

        def _guarded() -> None:
            if self._store.generation != generation:
                logger.debug("Dropping stale viewer timer (generation %s)", generation)
                return
            callback()

        return self._scheduler.schedule(delay_ms, _guarded)

    def _cancel_timers(self) -> None:
        for handle in self._blink_timers.values():
            handle.cancel()
        self._blink_timers.clear()
        if self._highlight_timer is not None:
            self._highlight_timer.cancel()
            self._highlight_timer = None

    def _on_document_replaced(self, generation: int) -> None:
        self._cancel_timers()
        self._highlight_state = None
        self._highlight_term = ""
        self._turn_citations = {}
        self._search.reset()
        self.annotations.reset()
        self._pinned_page = None
        self._current_page = 0
        self.documentReset.emit(generation)
        self.searchChanged.emit(self._search.state)
        self.currentPageChanged.emit(0)
