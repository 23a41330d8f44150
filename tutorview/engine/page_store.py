from __future__ import annotations

import logging
from dataclasses import dataclass
from threading import RLock
from typing import Callable, Iterable, Mapping, Optional, Union

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PageText:
    index: int
    content: str


PageBlock = Union[PageText, Mapping, tuple, str]
StoreListener = Callable[[int], None]


def _coerce_block(position: int, block: PageBlock) -> PageText:
    if isinstance(block, PageText):
        return block
    if isinstance(block, str):
        return PageText(position, block)
    try:
        if isinstance(block, Mapping):
            return PageText(int(block["index"]), str(block.get("content") or ""))
        if isinstance(block, tuple) and len(block) == 2:
            index, content = block
            return PageText(int(index), str(content or ""))
    except (KeyError, TypeError, ValueError) as exc:
        raise ValueError(f"Invalid page block at position {position}: {block!r}") from exc
    raise ValueError(f"Unsupported page block at position {position}: {block!r}")


class PageStore:
    """Ordered page texts of the loaded document.

    The page sequence is replaced wholesale by ``load``/``clear``; each
    replacement bumps ``generation`` so timers scheduled against an older
    document can tell they are stale.
    """

    def __init__(self) -> None:
        self._pages: tuple[PageText, ...] = ()
        self._generation = 0
        self._lock = RLock()
        self._listeners: list[StoreListener] = []

    @property
    def pages(self) -> tuple[PageText, ...]:
        with self._lock:
            return self._pages

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    @property
    def page_count(self) -> int:
        return len(self.pages)

    def contents(self) -> list[str]:
        return [page.content for page in self.pages]

    def text(self, index: int) -> Optional[str]:
        pages = self.pages
        if 0 <= index < len(pages):
            return pages[index].content
        return None

    def contains(self, index: int) -> bool:
        return 0 <= index < self.page_count

    def load(self, blocks: Iterable[PageBlock]) -> int:
        pages = sorted(
            (_coerce_block(pos, block) for pos, block in enumerate(blocks)),
            key=lambda page: page.index,
        )
        for expected, page in enumerate(pages):
            if page.index != expected:
                raise ValueError(
                    f"Page indices must be contiguous from 0; expected {expected}, got {page.index}"
                )
        return self._replace(tuple(pages))

    def clear(self) -> int:
        return self._replace(())

    def subscribe(self, listener: StoreListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            try:
                self._listeners.remove(listener)
            except ValueError:
                pass

        return _unsubscribe

    def _replace(self, pages: tuple[PageText, ...]) -> int:
        with self._lock:
            self._pages = pages
            self._generation += 1
            generation = self._generation
        logger.debug("Page store generation %s holds %s pages", generation, len(pages))
        for listener in list(self._listeners):
            try:
                listener(generation)
            except Exception:
                logger.warning("Page store listener %r failed", listener, exc_info=True)
        return generation


page_store = PageStore()
