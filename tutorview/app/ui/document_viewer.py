from __future__ import annotations

import html
import logging
from pathlib import Path
from typing import Optional, Sequence

from PySide6.QtCore import QPropertyAnimation, Qt
from PySide6.QtGui import QPdfWriter, QTextDocument
from PySide6.QtWidgets import (
    QFileDialog,
    QFrame,
    QLabel,
    QMessageBox,
    QScrollArea,
    QVBoxLayout,
    QWidget,
)

from tutorview.app import config as viewer_config
from tutorview.engine.coordinator import NavigationCoordinator, ViewerTimings
from tutorview.engine.page_store import PageStore
from tutorview.engine.scheduler import Scheduler
from tutorview.engine.search import SearchState
from tutorview.engine.styling import MatchMode, Segment, StyleClass
from .viewer_controls import ViewerControls

logger = logging.getLogger(__name__)

ZOOM_STEP = 0.2
BASE_POINT_SIZE = 11.0
BLINK_BACKGROUND = "#fff59d"

HIGHLIGHT_CSS = {
    "red-circle": "background-color:#ffcdd2; color:#b71c1c; font-weight:600;",
    "underline": "text-decoration:underline; color:#c62828;",
}
SEARCH_CSS = {
    "bg-yellow": "background-color:#fff176; color:#000000;",
    "bg-green": "background-color:#a5d6a7; color:#000000;",
}
CITATION_CSS = "background-color:#90caf9; color:#000000;"
CITATION_ACTIVE_CSS = "background-color:#1e88e5; color:#ffffff; font-weight:600;"


def style_css(style: StyleClass, highlight_style: str = "red-circle", search_style: str = "bg-yellow") -> str:
    if style is StyleClass.HIGHLIGHT:
        return HIGHLIGHT_CSS.get(highlight_style, HIGHLIGHT_CSS["red-circle"])
    if style is StyleClass.SEARCH_MATCH:
        return SEARCH_CSS.get(search_style, SEARCH_CSS["bg-yellow"])
    if style is StyleClass.CITATION_ACTIVE:
        return CITATION_ACTIVE_CSS
    return CITATION_CSS


def segments_to_html(
    segments: Sequence[Segment],
    highlight_style: str = "red-circle",
    search_style: str = "bg-yellow",
) -> str:
    parts: list[str] = []
    for segment in segments:
        text = html.escape(segment.text)
        if segment.style is None:
            parts.append(text)
        else:
            css = style_css(segment.style, highlight_style, search_style)
            parts.append(f"<span class='{segment.style.value}' style='{css}'>{text}</span>")
    return "<div style='white-space: pre-wrap;'>" + "".join(parts) + "</div>"


def annotations_to_html(committed: Sequence[str], typing: Optional[str]) -> str:
    if not committed and typing is None:
        return ""
    items = [f"<li style='color:#8e0000;'>{html.escape(text)}</li>" for text in committed]
    if typing is not None:
        items.append(f"<li style='color:#8e0000;'>{html.escape(typing)}<b>|</b></li>")
    return (
        "<hr/><span style='color:#9e9e9e;'>Annotations:</span>"
        f"<ul style='margin-top:2px;'>{''.join(items)}</ul>"
    )


class PageView(QFrame):
    """One page segment: header, styled text and annotation list."""

    def __init__(self, index: int, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self.index = index
        self.setObjectName(f"page-{index}")
        self.setFrameShape(QFrame.NoFrame)
        layout = QVBoxLayout(self)
        layout.setContentsMargins(16, 12, 16, 12)
        layout.setSpacing(4)
        self.header = QLabel(f"[Page {index + 1}]")
        self.header.setStyleSheet("color: #9e9e9e;")
        layout.addWidget(self.header)
        self.body = QLabel()
        self.body.setTextFormat(Qt.RichText)
        self.body.setWordWrap(True)
        self.body.setTextInteractionFlags(Qt.TextSelectableByMouse)
        layout.addWidget(self.body)
        self.notes = QLabel()
        self.notes.setTextFormat(Qt.RichText)
        self.notes.setWordWrap(True)
        self.notes.setVisible(False)
        layout.addWidget(self.notes)
        self._blinking = False
        self._apply_frame_style()

    @property
    def blinking(self) -> bool:
        return self._blinking

    def set_blink(self, on: bool) -> None:
        if on != self._blinking:
            self._blinking = on
            self._apply_frame_style()

    def set_body_html(self, markup: str) -> None:
        self.body.setText(markup)

    def set_notes_html(self, markup: str) -> None:
        self.notes.setText(markup)
        self.notes.setVisible(bool(markup))

    def _apply_frame_style(self) -> None:
        background = BLINK_BACKGROUND if self._blinking else "transparent"
        self.setStyleSheet(
            f"QFrame#{self.objectName()} {{ background: {background}; border-radius: 6px; }}"
        )


class ParsedDocumentViewer(QWidget):
    """Scrollable page-segmented text view driven by a NavigationCoordinator."""

    def __init__(
        self,
        store: Optional[PageStore] = None,
        scheduler: Optional[Scheduler] = None,
        *,
        timings: Optional[ViewerTimings] = None,
        match_mode: Optional[MatchMode] = None,
        highlight_style: Optional[str] = None,
        search_style: Optional[str] = None,
        zoom: Optional[float] = None,
        parent: Optional[QWidget] = None,
    ) -> None:
        super().__init__(parent)
        self.coordinator = NavigationCoordinator(
            store,
            scheduler,
            timings=timings or viewer_config.load_viewer_timings(),
            match_mode=match_mode or viewer_config.load_match_mode(),
            parent=self,
        )
        self.highlight_style = highlight_style or viewer_config.load_highlight_style()
        self.search_style = search_style or viewer_config.load_search_style()
        self._scale = zoom if zoom is not None else viewer_config.load_zoom()
        self._pages: list[PageView] = []
        self._scroll_anim: Optional[QPropertyAnimation] = None

        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(0)
        self.controls = ViewerControls(self)
        layout.addWidget(self.controls)

        self.scroll_area = QScrollArea(self)
        self.scroll_area.setWidgetResizable(True)
        self.scroll_area.setFrameShape(QFrame.NoFrame)
        self._container = QWidget()
        self._container.setObjectName("pdf-content")
        self._pages_layout = QVBoxLayout(self._container)
        self._pages_layout.setContentsMargins(12, 12, 12, 12)
        self._pages_layout.setSpacing(12)
        self.scroll_area.setWidget(self._container)
        layout.addWidget(self.scroll_area, 1)

        self.empty_label = QLabel("No document loaded.")
        self.empty_label.setAlignment(Qt.AlignCenter)
        self.empty_label.setStyleSheet("color: #9e9e9e; padding: 48px;")

        coordinator = self.coordinator
        coordinator.pageRequested.connect(self._scroll_to_page)
        coordinator.currentPageChanged.connect(self._update_page_info)
        coordinator.blinkChanged.connect(self._on_blink_changed)
        coordinator.pageStylesChanged.connect(self._render_page)
        coordinator.stylesChanged.connect(self._render_all)
        coordinator.annotationsChanged.connect(self._render_notes)
        coordinator.searchChanged.connect(self._on_search_changed)
        coordinator.documentReset.connect(lambda _generation: self._rebuild_pages())

        self.controls.pageChangeRequested.connect(lambda page: coordinator.goto_page(page, blink=False))
        self.controls.zoomInRequested.connect(self.zoom_in)
        self.controls.zoomOutRequested.connect(self.zoom_out)
        self.controls.searchRequested.connect(coordinator.search)
        self.controls.nextMatchRequested.connect(coordinator.next_match)
        self.controls.prevMatchRequested.connect(coordinator.prev_match)
        self.controls.exportRequested.connect(self._export_requested)
        self.controls.matchModeChanged.connect(self._on_match_mode_changed)
        mode = coordinator.match_mode
        self.controls.set_match_mode(mode.case_sensitive, mode.whole_token)

        scrollbar = self.scroll_area.verticalScrollBar()
        scrollbar.valueChanged.connect(lambda _value: self._track_visible_page())
        # actionTriggered fires for wheel, keyboard and mouse scrolling, never for setValue().
        scrollbar.actionTriggered.connect(lambda _action: coordinator.user_scrolled())
        scrollbar.sliderPressed.connect(coordinator.user_scrolled)

        self._apply_scale()
        self._rebuild_pages()

    # --- Public API ---------------------------------------------------
    @property
    def handle(self) -> NavigationCoordinator:
        return self.coordinator

    @property
    def scale(self) -> float:
        return self._scale

    def page_view(self, index: int) -> Optional[PageView]:
        if 0 <= index < len(self._pages):
            return self._pages[index]
        return None

    def zoom_in(self) -> None:
        self._set_scale(self._scale + ZOOM_STEP)

    def zoom_out(self) -> None:
        self._set_scale(self._scale - ZOOM_STEP)

    def export_pdf(self, path: Path) -> Path:
        """Write every page, with its annotations, to a PDF file."""
        path = Path(path)
        parts = []
        for view in self._pages:
            committed, typing = self.coordinator.annotation_lines(view.index)
            parts.append(
                f"<h4>[Page {view.index + 1}]</h4>"
                + segments_to_html(self.coordinator.segments_for(view.index), self.highlight_style, self.search_style)
                + annotations_to_html(committed, typing)
            )
        document = QTextDocument()
        document.setHtml("<br/>".join(parts))
        writer = QPdfWriter(str(path))
        writer.setTitle(path.stem)
        document.print_(writer)
        logger.debug("Exported %s pages to %s", len(parts), path)
        return path

    def closeEvent(self, event) -> None:  # type: ignore[override]
        self.coordinator.detach()
        super().closeEvent(event)

    # --- Rendering ----------------------------------------------------
    def _rebuild_pages(self) -> None:
        if self._scroll_anim is not None:
            self._scroll_anim.stop()
            self._scroll_anim = None
        while self._pages_layout.count():
            item = self._pages_layout.takeAt(0)
            widget = item.widget()
            if widget is not None and widget is not self.empty_label:
                widget.deleteLater()
        self._pages = []
        count = self.coordinator.store.page_count
        if count == 0:
            self._pages_layout.addWidget(self.empty_label)
            self.empty_label.show()
        else:
            self.empty_label.hide()
            self.empty_label.setParent(None)
            for index in range(count):
                view = PageView(index, self._container)
                self._pages.append(view)
                self._pages_layout.addWidget(view)
                self._render_page(index)
                self._render_notes(index)
        self._pages_layout.addStretch(1)
        self.scroll_area.verticalScrollBar().setValue(0)
        self._update_page_info(self.coordinator.current_page)
        self._on_search_changed(self.coordinator.search_state)

    def _render_page(self, index: int) -> None:
        view = self.page_view(index)
        if view is None:
            return
        segments = self.coordinator.segments_for(index)
        view.set_body_html(segments_to_html(segments, self.highlight_style, self.search_style))

    def _render_all(self) -> None:
        for view in self._pages:
            self._render_page(view.index)

    def _render_notes(self, index: int) -> None:
        view = self.page_view(index)
        if view is None:
            return
        committed, typing = self.coordinator.annotation_lines(index)
        view.set_notes_html(annotations_to_html(committed, typing))

    def _on_blink_changed(self, index: int, on: bool) -> None:
        view = self.page_view(index)
        if view is not None:
            view.set_blink(on)

    def _on_search_changed(self, state: SearchState) -> None:
        self.controls.set_match_info(len(state.matches), state.pointer)

    def _update_page_info(self, current: int) -> None:
        self.controls.set_page_info(current, len(self._pages))

    # --- Scrolling ----------------------------------------------------
    def _scroll_to_page(self, index: int) -> None:
        view = self.page_view(index)
        if view is None:
            return
        scrollbar = self.scroll_area.verticalScrollBar()
        target = min(scrollbar.maximum(), max(0, view.y()))
        current = scrollbar.value()
        if self._scroll_anim and self._scroll_anim.state() == QPropertyAnimation.Running:
            self._scroll_anim.stop()
        if not self.isVisible() or abs(target - current) <= 2:
            scrollbar.setValue(target)
            return
        anim = QPropertyAnimation(scrollbar, b"value", self)
        anim.setDuration(min(300, max(60, abs(target - current) // 4)))
        anim.setStartValue(current)
        anim.setEndValue(target)
        anim.start()
        self._scroll_anim = anim

    def _track_visible_page(self) -> None:
        """Report the page occupying most of the viewport."""
        if not self._pages:
            return
        top = self.scroll_area.verticalScrollBar().value()
        bottom = top + self.scroll_area.viewport().height()
        best_index = None
        best_visible = 0
        for view in self._pages:
            visible = min(bottom, view.y() + view.height()) - max(top, view.y())
            if visible > best_visible:
                best_index, best_visible = view.index, visible
        if best_index is not None:
            self.coordinator.report_visible_page(best_index)

    # --- Zoom ---------------------------------------------------------
    def _set_scale(self, scale: float) -> None:
        scale = round(min(viewer_config.MAX_ZOOM, max(viewer_config.MIN_ZOOM, scale)), 2)
        if scale == self._scale:
            return
        self._scale = scale
        self._apply_scale()
        viewer_config.save_zoom(scale)

    def _apply_scale(self) -> None:
        font = self._container.font()
        font.setPointSizeF(BASE_POINT_SIZE * self._scale)
        self._container.setFont(font)
        self.controls.set_scale(self._scale)

    def _on_match_mode_changed(self, case_sensitive: bool, whole_word: bool) -> None:
        mode = MatchMode(case_sensitive=case_sensitive, whole_token=whole_word)
        self.coordinator.set_match_mode(mode)
        viewer_config.save_match_mode(mode)

    def _export_requested(self) -> None:
        path, _ = QFileDialog.getSaveFileName(self, "Export PDF", "exported.pdf", "PDF files (*.pdf)")
        if not path:
            return
        try:
            self.export_pdf(Path(path))
        except OSError as exc:
            QMessageBox.warning(self, "Export PDF", f"Failed to export: {exc}")
