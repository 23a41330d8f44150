from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, Optional

from PySide6.QtCore import QObject, Signal

from .models import PendingAnnotation
from .page_store import PageStore
from .scheduler import Scheduler, TimerHandle

logger = logging.getLogger(__name__)

CHAR_INTERVAL_MS = 30
COOLDOWN_MS = 500


class TypewriterPhase(str, Enum):
    IDLE = "idle"
    TYPING = "typing"
    COOLDOWN = "cooldown"


@dataclass(frozen=True)
class TypingState:
    page: int
    text: str
    revealed: int = 0
    active: bool = True

    @property
    def visible_text(self) -> str:
        return self.text[: self.revealed]

    @property
    def complete(self) -> bool:
        return self.revealed >= len(self.text)


class AnnotationQueue(QObject):
    """FIFO of annotations revealed one character at a time.

    Idle -> Typing -> Cooldown -> Idle. Only one annotation is ever being
    typed; it is committed to the per-page log once its cooldown elapses.
    """

    typingStarted = Signal(int, str)  # page, full text
    typingProgress = Signal(int, str)  # page, visible text
    annotationCommitted = Signal(int, str)  # page, text
    cleared = Signal()

    def __init__(
        self,
        scheduler: Scheduler,
        store: PageStore,
        *,
        char_interval_ms: int = CHAR_INTERVAL_MS,
        cooldown_ms: int = COOLDOWN_MS,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self._scheduler = scheduler
        self._store = store
        self.char_interval_ms = char_interval_ms
        self.cooldown_ms = cooldown_ms
        self._queue: deque[PendingAnnotation] = deque()
        self._log: dict[int, list[str]] = {}
        self._typing: Optional[TypingState] = None
        self._phase = TypewriterPhase.IDLE
        self._timer: Optional[TimerHandle] = None

    @property
    def phase(self) -> TypewriterPhase:
        return self._phase

    @property
    def typing(self) -> Optional[TypingState]:
        return self._typing

    @property
    def pending(self) -> tuple[PendingAnnotation, ...]:
        return tuple(self._queue)

    @property
    def log(self) -> dict[int, list[str]]:
        return {page: list(texts) for page, texts in self._log.items()}

    def annotations_for(self, page: int) -> list[str]:
        return list(self._log.get(page, ()))

    def is_known(self, page: int, text: str) -> bool:
        """True if the annotation is committed, queued or being typed."""
        if text in self._log.get(page, ()):
            return True
        item = PendingAnnotation(page, text)
        if item in self._queue:
            return True
        typing = self._typing
        return typing is not None and typing.page == page and typing.text == text

    def enqueue(self, page: int, text: str) -> bool:
        text = (text or "").strip()
        if not text or self.is_known(page, text):
            return False
        self._queue.append(PendingAnnotation(page, text))
        logger.debug("Queued annotation for page %s (%s pending)", page, len(self._queue))
        self._drain()
        return True

    def enqueue_many(self, items: Iterable[PendingAnnotation]) -> int:
        return sum(1 for item in items if self.enqueue(item.page, item.text))

    def reset(self) -> None:
        """Drop everything without committing the annotation in flight."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._queue.clear()
        self._log.clear()
        self._typing = None
        self._phase = TypewriterPhase.IDLE
        self.cleared.emit()

    # --- State machine ----------------------------------------------
    def _drain(self) -> None:
        if self._phase is not TypewriterPhase.IDLE or not self._queue:
            return
        item = self._queue.popleft()
        self._typing = TypingState(item.page, item.text)
        self._phase = TypewriterPhase.TYPING
        self.typingStarted.emit(item.page, item.text)
        self._schedule(self.char_interval_ms, self._tick)

    def _tick(self) -> None:
        typing = self._typing
        if typing is None or self._phase is not TypewriterPhase.TYPING:
            return
        typing = TypingState(typing.page, typing.text, typing.revealed + 1)
        self._typing = typing
        self.typingProgress.emit(typing.page, typing.visible_text)
        if typing.complete:
            self._phase = TypewriterPhase.COOLDOWN
            self._schedule(self.cooldown_ms, self._commit_typed)
        else:
            self._schedule(self.char_interval_ms, self._tick)

    def _commit_typed(self) -> None:
        typing = self._typing
        if typing is None or self._phase is not TypewriterPhase.COOLDOWN:
            return
        entries = self._log.setdefault(typing.page, [])
        if typing.text not in entries:
            entries.append(typing.text)
        self._typing = None
        self._phase = TypewriterPhase.IDLE
        self.annotationCommitted.emit(typing.page, typing.text)
        self._drain()

    def _schedule(self, delay_ms: int, callback: Callable[[], None]) -> None:
        generation = self._store.generation

        def _guarded() -> None:
            self._timer = None
            if self._store.generation != generation:
                logger.debug("Dropping stale typewriter timer (generation %s)", generation)
                return
            callback()

        self._timer = self._scheduler.schedule(delay_ms, _guarded)
