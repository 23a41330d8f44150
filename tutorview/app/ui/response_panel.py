from __future__ import annotations

import html
import re
from typing import Optional, Sequence

from PySide6.QtCore import Qt, Signal
from PySide6.QtGui import QKeyEvent, QPalette, QTextCursor
from PySide6.QtWidgets import (
    QHBoxLayout,
    QTextBrowser,
    QTextEdit,
    QToolButton,
    QVBoxLayout,
    QWidget,
)
from markdown import markdown

from tutorview.engine.commands import ParsedResponse, find_page_references
from tutorview.engine.controller import TutorController
from tutorview.engine.models import Citation

_TAG_SPLIT = re.compile(r"(<[^>]+>)")
_OPEN_QUOTE = r"(?:&quot;|\"|“|&#x27;|&#39;|')"
_CLOSE_QUOTE = r"(?:&quot;|\"|”|&#x27;|&#39;|')"


def _linkify_text(text: str, message_id: int, citations: Sequence[Citation]) -> str:
    # First citation wins when several share a term.
    term_index: dict[str, int] = {}
    for idx, citation in enumerate(citations):
        if citation.term:
            term_index.setdefault(html.escape(citation.term, quote=False).lower(), idx)

    alternatives = [r"(?P<page>page\[\d+\])"]
    if term_index:
        terms = "|".join(re.escape(term) for term in sorted(term_index, key=len, reverse=True))
        alternatives.append(f"{_OPEN_QUOTE}(?P<term>{terms}){_CLOSE_QUOTE}")
    pattern = re.compile("|".join(alternatives), re.IGNORECASE)

    def _link(match: re.Match) -> str:
        if match.group("page"):
            refs = find_page_references(match.group(0))
            if not refs:
                return match.group(0)
            return f"<a href='page:{refs[0].page}'>{match.group(0)}</a>"
        idx = term_index.get(match.group("term").lower())
        if idx is None:
            return match.group(0)
        return f"<a class='citation' href='cite:{message_id}:{idx}'>{match.group(0)}</a>"

    return pattern.sub(_link, text)


def linkify_response_html(markup: str, message_id: int, citations: Sequence[Citation]) -> str:
    """Turn ``page[n]`` markers and quoted citation terms into anchors.

    Only text between tags is rewritten, and text already inside a link is
    left untouched.
    """
    parts = _TAG_SPLIT.split(markup or "")
    link_depth = 0
    for idx, part in enumerate(parts):
        if part.startswith("<"):
            lowered = part.lower()
            if lowered.startswith("<a ") or lowered == "<a>":
                link_depth += 1
            elif lowered.startswith("</a"):
                link_depth = max(0, link_depth - 1)
            continue
        if link_depth == 0 and part:
            parts[idx] = _linkify_text(part, message_id, citations)
    return "".join(parts)


class ReplyInput(QTextEdit):
    sendRequested = Signal()

    def __init__(self, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self.setPlaceholderText("Paste a tutor reply…  (Ctrl+Enter to apply)")
        self.setAcceptRichText(False)
        self.setTabChangesFocus(False)

    def keyPressEvent(self, event: QKeyEvent) -> None:  # type: ignore[override]
        if event.key() in (Qt.Key_Return, Qt.Key_Enter) and (event.modifiers() & Qt.ControlModifier):
            event.accept()
            self.sendRequested.emit()
            return
        super().keyPressEvent(event)


class TutorResponsePanel(QWidget):
    """Conversation column: tutor replies with clickable page and citation links."""

    responseApplied = Signal(object)  # ParsedResponse

    def __init__(self, controller: TutorController, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self._controller = controller
        self._messages: list[ParsedResponse] = []
        self._build_ui()

    def _build_ui(self) -> None:
        layout = QVBoxLayout(self)
        layout.setContentsMargins(6, 6, 6, 6)
        layout.setSpacing(6)

        self.chat_view = QTextBrowser(self)
        self.chat_view.setOpenExternalLinks(False)
        self.chat_view.setOpenLinks(False)
        self.chat_view.anchorClicked.connect(self._on_anchor_clicked)
        layout.addWidget(self.chat_view, 1)

        input_row = QHBoxLayout()
        self.input = ReplyInput(self)
        self.input.setFixedHeight(72)
        self.input.sendRequested.connect(self._send_input)
        input_row.addWidget(self.input, 1)
        self.send_btn = QToolButton(self)
        self.send_btn.setText("Apply")
        self.send_btn.setToolTip("Apply reply (Ctrl+Enter)")
        self.send_btn.clicked.connect(self._send_input)
        input_row.addWidget(self.send_btn)
        layout.addLayout(input_row)

    @property
    def messages(self) -> list[ParsedResponse]:
        return list(self._messages)

    def submit_response(self, raw_text: str) -> Optional[ParsedResponse]:
        if not (raw_text or "").strip():
            return None
        parsed = self._controller.handle_response(raw_text)
        self._messages.append(parsed)
        self._render_messages()
        self.responseApplied.emit(parsed)
        return parsed

    def clear(self) -> None:
        self._messages = []
        self._render_messages()

    def _send_input(self) -> None:
        text = self.input.toPlainText()
        if self.submit_response(text) is not None:
            self.input.clear()

    def _render_messages(self) -> None:
        base_color = self.palette().color(QPalette.Base).name()
        text_color = self.palette().color(QPalette.Text).name()
        accent = self.palette().color(QPalette.Highlight).name()
        parts = [
            f"<style>body {{ background:{base_color}; color:{text_color}; }}"
            f".bubble {{ border-radius:6px; padding:6px 8px; margin-bottom:8px; background:rgba(60,200,140,0.10); }}"
            f".role {{ font-weight:bold; color:{accent}; }}"
            f"a {{ color:{accent}; }}"
            f"a.citation {{ background:#bbdefb; color:#000000; }}</style>"
        ]
        for idx, parsed in enumerate(self._messages):
            rendered = markdown(parsed.display_text, extensions=["fenced_code", "tables"])
            rendered = linkify_response_html(rendered, idx, parsed.citations)
            parts.append(
                f"<div class='bubble' id='msg-{idx}'><span class='role'>Tutor:</span><br>{rendered}</div>"
            )
        self.chat_view.setHtml("".join(parts))
        cursor = self.chat_view.textCursor()
        cursor.movePosition(QTextCursor.End)
        self.chat_view.setTextCursor(cursor)

    def _on_anchor_clicked(self, url) -> None:
        self.open_link(url.toString())

    def open_link(self, href: str) -> None:
        if href.startswith("page:"):
            try:
                page = int(href.split(":", 1)[1])
            except ValueError:
                return
            self._controller.open_page_reference(page)
            return
        if href.startswith("cite:"):
            try:
                _, message_idx, citation_idx = href.split(":")
                citation = self._messages[int(message_idx)].citations[int(citation_idx)]
            except (ValueError, IndexError):
                return
            self._controller.open_citation(citation)
