"""Split page text into styled segments.

Text is tokenised on whitespace; every non-whitespace run (or run of runs,
for multi-word terms) is tested against the active terms. Each run receives
at most one style, chosen by priority, and concatenating the segments always
reproduces the input text.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional, Sequence

from .commands import strip_quotes

_WHITESPACE_SPLIT = re.compile(r"(\s+)")


class StyleClass(str, Enum):
    CITATION_ACTIVE = "citation-active"
    HIGHLIGHT = "highlight"
    SEARCH_MATCH = "search-match"
    CITATION = "citation"


# Highest priority first.
STYLE_PRIORITY: tuple[StyleClass, ...] = (
    StyleClass.CITATION_ACTIVE,
    StyleClass.HIGHLIGHT,
    StyleClass.SEARCH_MATCH,
    StyleClass.CITATION,
)


@dataclass(frozen=True)
class MatchMode:
    case_sensitive: bool = False
    whole_token: bool = False


@dataclass(frozen=True)
class Segment:
    text: str
    style: Optional[StyleClass] = None


@dataclass(frozen=True)
class StyleRule:
    term: str
    style: StyleClass


def tokenize(text: str) -> list[str]:
    return [part for part in _WHITESPACE_SPLIT.split(text or "") if part]


def term_words(term: Optional[str]) -> list[str]:
    return strip_quotes(term or "").split()


def compile_term(term: Optional[str], mode: MatchMode) -> Optional[re.Pattern]:
    words = term_words(term)
    if not words:
        return None
    body = r"\s+".join(re.escape(word) for word in words)
    if mode.whole_token:
        body = rf"(?<!\w){body}(?!\w)"
    flags = 0 if mode.case_sensitive else re.IGNORECASE
    return re.compile(body, flags)


def term_matches(text: str, term: Optional[str], mode: MatchMode = MatchMode()) -> bool:
    """True when ``term`` occurs in ``text`` under ``mode``."""
    pattern = compile_term(term, mode)
    return bool(pattern and pattern.search(text or ""))


def match_spans(tokens: Sequence[str], term: Optional[str], mode: MatchMode) -> list[tuple[int, int]]:
    """Inclusive token index ranges covered by ``term``.

    A term of n words is tested against every window of n consecutive
    non-whitespace tokens; a window can only match with its words aligned
    on the whitespace between tokens.
    """
    pattern = compile_term(term, mode)
    if pattern is None:
        return []
    width = len(term_words(term))
    word_positions = [idx for idx, token in enumerate(tokens) if not token.isspace()]
    spans: list[tuple[int, int]] = []
    for k in range(len(word_positions) - width + 1):
        first = word_positions[k]
        last = word_positions[k + width - 1]
        if pattern.search("".join(tokens[first : last + 1])):
            spans.append((first, last))
    return spans


def style_tokens(
    tokens: Sequence[str], rules: Iterable[StyleRule], mode: MatchMode
) -> list[Optional[StyleClass]]:
    styles: list[Optional[StyleClass]] = [None] * len(tokens)
    ordered = sorted(rules, key=lambda rule: STYLE_PRIORITY.index(rule.style))
    for rule in ordered:
        for first, last in match_spans(tokens, rule.term, mode):
            if any(styles[idx] is not None for idx in range(first, last + 1)):
                continue
            for idx in range(first, last + 1):
                styles[idx] = rule.style
    return styles


def render_segments(
    text: str,
    *,
    citation_active: Optional[str] = None,
    highlight: Optional[str] = None,
    search: Optional[str] = None,
    citations: Iterable[str] = (),
    mode: MatchMode = MatchMode(),
) -> list[Segment]:
    rules: list[StyleRule] = []
    if citation_active:
        rules.append(StyleRule(citation_active, StyleClass.CITATION_ACTIVE))
    if highlight:
        rules.append(StyleRule(highlight, StyleClass.HIGHLIGHT))
    if search:
        rules.append(StyleRule(search, StyleClass.SEARCH_MATCH))
    rules.extend(StyleRule(term, StyleClass.CITATION) for term in citations if term)

    tokens = tokenize(text)
    styles = style_tokens(tokens, rules, mode)
    segments: list[Segment] = []
    for token, style in zip(tokens, styles):
        if segments and segments[-1].style == style:
            segments[-1] = Segment(segments[-1].text + token, style)
        else:
            segments.append(Segment(token, style))
    return segments
