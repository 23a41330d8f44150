from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from PySide6.QtCore import Qt
from PySide6.QtGui import QAction, QGuiApplication, QKeySequence
from PySide6.QtWidgets import (
    QFileDialog,
    QMainWindow,
    QSplitter,
)

from tutorview.app import config as viewer_config
from tutorview.engine.commands import CommandGrammar, get_grammar
from tutorview.engine.controller import TutorController
from tutorview.engine.page_store import PageStore, page_store
from tutorview.engine.prompt import build_system_prompt
from tutorview.ingest.page_text import DocumentLoadError, load_page_texts
from .document_viewer import ParsedDocumentViewer
from .response_panel import TutorResponsePanel

logger = logging.getLogger(__name__)


class TutorWindow(QMainWindow):
    """Tutor replies on the left, the parsed document on the right."""

    def __init__(
        self,
        store: Optional[PageStore] = None,
        grammar: Optional[CommandGrammar] = None,
        parent=None,
    ) -> None:
        super().__init__(parent)
        self.setWindowTitle("Tutor View")
        self._store = store if store is not None else page_store
        self.viewer = ParsedDocumentViewer(self._store, parent=self)
        self.controller = TutorController(
            self.viewer.handle,
            grammar or get_grammar(viewer_config.load_command_grammar()),
            citation_sink=self.viewer.coordinator,
        )
        self.responses = TutorResponsePanel(self.controller, self)

        splitter = QSplitter(Qt.Horizontal, self)
        splitter.addWidget(self.responses)
        splitter.addWidget(self.viewer)
        splitter.setStretchFactor(0, 1)
        splitter.setStretchFactor(1, 1)
        self.setCentralWidget(splitter)
        self._build_menu()
        unsubscribe = self._store.subscribe(lambda _generation: self.responses.clear())
        self.destroyed.connect(unsubscribe)

    def _build_menu(self) -> None:
        file_menu = self.menuBar().addMenu("&File")
        open_action = QAction("&Open Document…", self)
        open_action.setShortcut(QKeySequence.Open)
        open_action.triggered.connect(self._choose_document)
        file_menu.addAction(open_action)
        prompt_action = QAction("Copy Tutor &Prompt", self)
        prompt_action.triggered.connect(self.copy_tutor_prompt)
        file_menu.addAction(prompt_action)
        file_menu.addSeparator()
        quit_action = QAction("&Quit", self)
        quit_action.setShortcut(QKeySequence.Quit)
        quit_action.triggered.connect(self.close)
        file_menu.addAction(quit_action)

    def open_document(self, path: Path) -> bool:
        try:
            pages = load_page_texts(Path(path))
            self._store.load(pages)
        except (DocumentLoadError, ValueError) as exc:
            logger.warning("Could not open %s: %s", path, exc)
            self.statusBar().showMessage(f"Could not open {Path(path).name}: {exc}", 8000)
            return False
        viewer_config.save_last_document(str(path))
        self.setWindowTitle(f"Tutor View - {Path(path).name}")
        self.statusBar().showMessage(f"Loaded {self._store.page_count} pages", 4000)
        return True

    def tutor_prompt(self) -> str:
        return build_system_prompt(self._store.contents(), self.controller.grammar)

    def copy_tutor_prompt(self) -> None:
        QGuiApplication.clipboard().setText(self.tutor_prompt())
        self.statusBar().showMessage("Tutor prompt copied to clipboard", 4000)

    def _choose_document(self) -> None:
        start = viewer_config.load_last_document() or str(Path.home())
        path, _ = QFileDialog.getOpenFileName(
            self, "Open Document", start, "Documents (*.pdf *.txt *.json)"
        )
        if path:
            self.open_document(Path(path))
