"""Directive extraction from tutor replies.

Replies may end with a block such as::

    commands:
    /highlight/3/"non-violence"
    /annotate/2/Ashoka's transformation after the Kalinga War

Page numbers are 1-based in text and 0-based everywhere else. Malformed
lines are skipped; parsing never raises.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Optional, Union

from .models import Citation, PendingAnnotation

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PageJump:
    page: int


@dataclass(frozen=True)
class Highlight:
    term: str
    page: Optional[int] = None


@dataclass(frozen=True)
class AnnotateMany:
    items: tuple[PendingAnnotation, ...]


Directive = Union[PageJump, Highlight, AnnotateMany]


@dataclass(frozen=True)
class CommandGrammar:
    version: str
    marker: str = "commands:"
    page_qualified_highlight: bool = True
    unqualified_highlight: bool = False
    page_jump: bool = True
    annotate: bool = True


GRAMMARS: dict[str, CommandGrammar] = {
    "v1": CommandGrammar("v1", page_qualified_highlight=False, unqualified_highlight=True),
    "v2": CommandGrammar("v2"),
    "permissive": CommandGrammar("permissive", unqualified_highlight=True),
}
DEFAULT_GRAMMAR = "permissive"


def get_grammar(version: Optional[str]) -> CommandGrammar:
    return GRAMMARS.get((version or DEFAULT_GRAMMAR).strip().lower(), GRAMMARS[DEFAULT_GRAMMAR])


_PAGE_NUM = r"\{?\s*(?P<page>-?\d+)\s*\}?"
_PAGE_RE = re.compile(rf"^/page/{_PAGE_NUM}/?$", re.IGNORECASE)
_HIGHLIGHT_PAGED_RE = re.compile(rf"^/highlight/{_PAGE_NUM}/(?P<term>.+)$", re.IGNORECASE)
_HIGHLIGHT_RE = re.compile(r"^/highlight/(?P<term>.+)$", re.IGNORECASE)
_ANNOTATE_RE = re.compile(rf"^/annotate/{_PAGE_NUM}/(?P<text>.+)$", re.IGNORECASE)
_DIRECTIVE_PREFIX = re.compile(r"^/(page|highlight|annotate)/", re.IGNORECASE)
_BULLET = re.compile(r"^(?:[-*+•]\s+|\d+[.)]\s+)")
_PAGE_REFERENCE = re.compile(r"page\[(\d+)\]", re.IGNORECASE)
_QUOTE_PAIRS = (('"', '"'), ("'", "'"), ("“", "”"), ("‘", "’"))


@dataclass(frozen=True)
class PageReference:
    start: int
    end: int
    page: int
    label: str


@dataclass
class ParsedResponse:
    display_text: str
    directives: list[Directive] = field(default_factory=list)

    @property
    def directive(self) -> Optional[Directive]:
        return self.directives[0] if self.directives else None

    @property
    def citations(self) -> list[Citation]:
        result: list[Citation] = []
        for directive in self.directives:
            if isinstance(directive, Highlight) and directive.page is not None:
                result.append(Citation(directive.page, directive.term))
            elif isinstance(directive, AnnotateMany):
                result.extend(Citation(item.page, "", item.text) for item in directive.items)
        return result


def strip_quotes(term: str) -> str:
    cleaned = (term or "").strip()
    for left, right in _QUOTE_PAIRS:
        if len(cleaned) >= 2 and cleaned.startswith(left) and cleaned.endswith(right):
            return cleaned[1:-1].strip()
    return cleaned


def to_zero_based(number: Union[int, str]) -> Optional[int]:
    """Convert a 1-based page number from reply text; ``None`` when invalid."""
    try:
        value = int(number)
    except (TypeError, ValueError):
        return None
    return value - 1 if value >= 1 else None


def find_page_references(text: str) -> list[PageReference]:
    refs: list[PageReference] = []
    for match in _PAGE_REFERENCE.finditer(text or ""):
        page = to_zero_based(match.group(1))
        if page is None:
            continue
        refs.append(PageReference(match.start(), match.end(), page, match.group(0)))
    return refs


def _drop_stray_quote(line: str) -> str:
    # A closing double quote with no opening partner is copy noise.
    if line.endswith('"') and line.count('"') % 2 == 1:
        return line[:-1].rstrip()
    if line.endswith("\u201d") and "\u201c" not in line:
        return line[:-1].rstrip()
    return line


def _clean_line(line: str) -> str:
    cleaned = line.strip().strip("`").strip()
    cleaned = _BULLET.sub("", cleaned).strip().strip("`").strip()
    return _drop_stray_quote(cleaned)


def _is_marker(line: str, grammar: CommandGrammar) -> bool:
    cleaned = line.strip().strip("*_`#> ").strip().lower()
    return cleaned == grammar.marker.lower()


def _split_command_block(lines: list[str], grammar: CommandGrammar) -> tuple[int, int]:
    """Return (display_end, commands_start) line indices."""
    for idx in range(len(lines) - 1, -1, -1):
        if _is_marker(lines[idx], grammar):
            return idx, idx + 1
    # No marker: accept a trailing run of directive-looking lines.
    start = len(lines)
    for idx in range(len(lines) - 1, -1, -1):
        cleaned = _clean_line(lines[idx])
        if not cleaned:
            if start == len(lines):
                continue
            break
        if not _DIRECTIVE_PREFIX.match(cleaned):
            break
        start = idx
    return start, start


def parse_directive_line(line: str, grammar: CommandGrammar) -> Optional[Directive]:
    cleaned = _clean_line(line)
    if not cleaned:
        return None
    if grammar.page_jump:
        match = _PAGE_RE.match(cleaned)
        if match:
            page = to_zero_based(match.group("page"))
            return PageJump(page) if page is not None else None
    if grammar.annotate:
        match = _ANNOTATE_RE.match(cleaned)
        if match:
            page = to_zero_based(match.group("page"))
            text = strip_quotes(match.group("text"))
            if page is None or not text:
                return None
            return AnnotateMany((PendingAnnotation(page, text),))
    if grammar.page_qualified_highlight:
        match = _HIGHLIGHT_PAGED_RE.match(cleaned)
        if match:
            page = to_zero_based(match.group("page"))
            term = strip_quotes(match.group("term"))
            if page is None or not term:
                return None
            return Highlight(term, page)
    if grammar.unqualified_highlight:
        match = _HIGHLIGHT_RE.match(cleaned)
        if match:
            term = strip_quotes(match.group("term"))
            # "/highlight/3" is a page-qualified line missing its term
            if not term or term.strip("{}/ ").isdigit():
                return None
            return Highlight(term)
    return None


def parse_response(text: str, grammar: Optional[CommandGrammar] = None) -> ParsedResponse:
    grammar = grammar or get_grammar(None)
    lines = (text or "").splitlines()
    display_end, commands_start = _split_command_block(lines, grammar)
    display_text = "\n".join(lines[:display_end]).rstrip()

    directives: list[Directive] = []
    annotations: list[PendingAnnotation] = []
    annotate_slot: Optional[int] = None
    for line in lines[commands_start:]:
        if not line.strip():
            continue
        directive = parse_directive_line(line, grammar)
        if directive is None:
            logger.debug("Ignoring unrecognised directive line: %r", line)
            continue
        if isinstance(directive, AnnotateMany):
            if annotate_slot is None:
                annotate_slot = len(directives)
                directives.append(directive)
            annotations.extend(directive.items)
            continue
        directives.append(directive)
    if annotate_slot is not None:
        directives[annotate_slot] = AnnotateMany(tuple(annotations))
    return ParsedResponse(display_text, directives)
