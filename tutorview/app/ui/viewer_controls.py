from __future__ import annotations

from PySide6.QtCore import Qt, Signal, QEvent, QObject
from PySide6.QtWidgets import (
    QWidget,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QPushButton,
    QSpinBox,
)


class ViewerControls(QWidget):
    pageChangeRequested = Signal(int)  # 0-based page
    zoomInRequested = Signal()
    zoomOutRequested = Signal()
    searchRequested = Signal(str)
    nextMatchRequested = Signal()
    prevMatchRequested = Signal()
    exportRequested = Signal()
    matchModeChanged = Signal(bool, bool)  # case sensitive, whole word

    def __init__(self, parent=None) -> None:
        super().__init__(parent)
        self.setStyleSheet(
            "QWidget {"
            "  background: palette(base);"
            "}"
            "QLineEdit {"
            "  border: 1px solid #777;"
            "  border-radius: 4px;"
            "  padding: 4px 6px;"
            "}"
            "QLineEdit:focus {"
            "  border: 1px solid #5aa1ff;"
            "}"
            "QPushButton {"
            "  padding: 4px 8px;"
            "}"
        )
        self._updating = False
        layout = QHBoxLayout(self)
        layout.setContentsMargins(6, 4, 6, 4)
        layout.setSpacing(4)

        layout.addWidget(QLabel("Page"))
        self.page_spin = QSpinBox()
        self.page_spin.setMinimum(1)
        self.page_spin.setMaximum(1)
        self.page_spin.valueChanged.connect(self._emit_page_change)
        layout.addWidget(self.page_spin)
        self.total_label = QLabel("/ 0")
        layout.addWidget(self.total_label)

        self.zoom_out_btn = QPushButton("−")
        self.zoom_out_btn.setToolTip("Zoom out")
        self.zoom_out_btn.clicked.connect(lambda: self.zoomOutRequested.emit())
        layout.addWidget(self.zoom_out_btn)
        self.zoom_label = QLabel("100%")
        layout.addWidget(self.zoom_label)
        self.zoom_in_btn = QPushButton("+")
        self.zoom_in_btn.setToolTip("Zoom in")
        self.zoom_in_btn.clicked.connect(lambda: self.zoomInRequested.emit())
        layout.addWidget(self.zoom_in_btn)

        self.query_edit = QLineEdit()
        self.query_edit.setPlaceholderText("Search document…")
        layout.addWidget(self.query_edit, 1)
        self.prev_btn = QPushButton("Prev")
        self.prev_btn.clicked.connect(lambda: self.prevMatchRequested.emit())
        layout.addWidget(self.prev_btn)
        self.next_btn = QPushButton("Next")
        self.next_btn.clicked.connect(lambda: self.nextMatchRequested.emit())
        layout.addWidget(self.next_btn)
        self.match_label = QLabel("")
        layout.addWidget(self.match_label)
        self.case_btn = QPushButton("Aa")
        self.case_btn.setCheckable(True)
        self.case_btn.setToolTip("Match case")
        self.case_btn.toggled.connect(lambda _checked: self._emit_match_mode())
        layout.addWidget(self.case_btn)
        self.word_btn = QPushButton("W")
        self.word_btn.setCheckable(True)
        self.word_btn.setToolTip("Match whole words")
        self.word_btn.toggled.connect(lambda _checked: self._emit_match_mode())
        layout.addWidget(self.word_btn)

        self.export_btn = QPushButton("Export PDF")
        self.export_btn.clicked.connect(lambda: self.exportRequested.emit())
        layout.addWidget(self.export_btn)

        self.query_edit.installEventFilter(self)
        self.set_match_info(0, 0)

    def current_query(self) -> str:
        return self.query_edit.text()

    def set_page_info(self, current: int, total: int) -> None:
        """Show 0-based ``current`` as a 1-based page number."""
        self._updating = True
        try:
            self.page_spin.setMaximum(max(1, total))
            self.page_spin.setValue(min(max(1, current + 1), max(1, total)))
            self.page_spin.setEnabled(total > 0)
            self.total_label.setText(f"/ {total}")
        finally:
            self._updating = False

    def set_match_info(self, count: int, current: int) -> None:
        self.match_label.setText(f"{current + 1}/{count}" if count else "")
        self.prev_btn.setEnabled(count > 0)
        self.next_btn.setEnabled(count > 0)

    def set_scale(self, scale: float) -> None:
        self.zoom_label.setText(f"{round(scale * 100)}%")

    def set_match_mode(self, case_sensitive: bool, whole_word: bool) -> None:
        self._updating = True
        try:
            self.case_btn.setChecked(case_sensitive)
            self.word_btn.setChecked(whole_word)
        finally:
            self._updating = False

    def _emit_match_mode(self) -> None:
        if self._updating:
            return
        self.matchModeChanged.emit(self.case_btn.isChecked(), self.word_btn.isChecked())

    def _emit_page_change(self, value: int) -> None:
        if self._updating:
            return
        self.pageChangeRequested.emit(value - 1)

    def eventFilter(self, obj: QObject, event: QEvent):  # type: ignore[override]
        if obj == self.query_edit and event.type() == QEvent.KeyPress:
            if event.key() in (Qt.Key_Return, Qt.Key_Enter):
                if event.modifiers() & Qt.ShiftModifier:
                    self.prevMatchRequested.emit()
                elif self.query_edit.isModified():
                    self.query_edit.setModified(False)
                    self.searchRequested.emit(self.query_edit.text())
                else:
                    self.nextMatchRequested.emit()
                return True
            if event.key() == Qt.Key_Escape:
                self.query_edit.clear()
                self.searchRequested.emit("")
                return True
        return super().eventFilter(obj, event)
