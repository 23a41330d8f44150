from __future__ import annotations

import logging
from typing import Optional

from .commands import (
    AnnotateMany,
    CommandGrammar,
    Directive,
    Highlight,
    PageJump,
    ParsedResponse,
    get_grammar,
    parse_response,
)
from .models import Citation
from .handle import TurnCitationSink, ViewerHandle

logger = logging.getLogger(__name__)


class TutorController:
    """Feeds tutor replies and citation clicks into a viewer handle."""

    def __init__(
        self,
        handle: ViewerHandle,
        grammar: Optional[CommandGrammar] = None,
        citation_sink: Optional[TurnCitationSink] = None,
    ) -> None:
        self._handle = handle
        self._citation_sink = citation_sink
        self.grammar = grammar or get_grammar(None)
        self._last: Optional[ParsedResponse] = None

    @property
    def last_response(self) -> Optional[ParsedResponse]:
        return self._last

    def handle_response(self, raw_text: str) -> ParsedResponse:
        parsed = parse_response(raw_text, self.grammar)
        self._last = parsed
        if self._citation_sink is not None:
            self._citation_sink.set_turn_citations(parsed.citations)
        for directive in parsed.directives:
            try:
                self._apply(directive)
            except Exception:
                logger.warning("Failed to apply directive %r", directive, exc_info=True)
        return parsed

    def open_page_reference(self, page: int) -> bool:
        return self._handle.goto_page(page, blink=True)

    def open_citation(self, citation: Citation) -> None:
        self._handle.scroll_to_position(citation.page, citation.term, citation.annotation)

    def _apply(self, directive: Directive) -> None:
        if isinstance(directive, PageJump):
            self._handle.goto_page(directive.page, blink=True)
        elif isinstance(directive, Highlight):
            self._handle.highlight(directive.term, directive.page)
        elif isinstance(directive, AnnotateMany):
            citations = [Citation(item.page, "", item.text) for item in directive.items]
            self._handle.process_new_annotations(citations)
