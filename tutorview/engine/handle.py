from __future__ import annotations

from typing import Iterable, Optional, Protocol, Sequence, runtime_checkable

from .models import Citation


@runtime_checkable
class ViewerHandle(Protocol):
    """Commands the document viewer accepts from the chat side.

    All page numbers are 0-based.
    """

    def goto_page(self, page: int, *, blink: bool = False) -> bool: ...

    def highlight(self, term: str, page: Optional[int] = None) -> None: ...

    def scroll_to_position(self, page: int, term: str, annotation: Optional[str] = None) -> None: ...

    def process_new_annotations(self, citations: Sequence[Citation]) -> int: ...


@runtime_checkable
class TurnCitationSink(Protocol):
    """Receives the citations of the latest tutor reply for inline styling."""

    def set_turn_citations(self, citations: Iterable[Citation]) -> None: ...
