from pathlib import Path

from PySide6.QtCore import QCoreApplication, QEvent

from tutorview.app import config
from tutorview.app.ui.tutor_window import TutorWindow
from tutorview.engine.commands import get_grammar
from tutorview.engine.page_store import PageStore


def _window(qtbot, grammar=None):
    window = TutorWindow(PageStore(), grammar)
    qtbot.addWidget(window)
    return window


def test_open_text_document(qtbot, tmp_path: Path):
    path = tmp_path / "ashoka.txt"
    path.write_text("Maurya empire\fKalinga War\fDhamma", encoding="utf-8")
    window = _window(qtbot)
    assert window.open_document(path)
    assert window.viewer.page_view(2) is not None
    assert window.viewer.controls.total_label.text() == "/ 3"
    assert config.load_last_document() == str(path)
    window.viewer.coordinator.detach()


def test_failed_open_keeps_current_document(qtbot, tmp_path: Path):
    broken = tmp_path / "broken.json"
    broken.write_text("[", encoding="utf-8")
    window = _window(qtbot)
    assert not window.open_document(broken)
    assert window.viewer.page_view(0) is None
    assert "broken.json" in window.statusBar().currentMessage()
    assert config.load_last_document() is None
    window.viewer.coordinator.detach()


def test_loading_a_document_clears_old_replies(qtbot, tmp_path: Path):
    path = tmp_path / "one.txt"
    path.write_text("Ashoka ruled.", encoding="utf-8")
    window = _window(qtbot)
    window.open_document(path)
    window.responses.submit_response("About page[1].")
    assert len(window.responses.messages) == 1
    window.open_document(path)
    assert window.responses.messages == []
    window.viewer.coordinator.detach()


def test_tutor_prompt_uses_document_and_grammar(qtbot, tmp_path: Path):
    path = tmp_path / "two.txt"
    path.write_text("Ashoka\fKalinga", encoding="utf-8")
    window = _window(qtbot, get_grammar("v1"))
    window.open_document(path)
    prompt = window.tutor_prompt()
    assert "[Page 1]\nAshoka" in prompt
    assert "[Page 2]\nKalinga" in prompt
    assert "/highlight/{term}" in prompt
    window.copy_tutor_prompt()
    assert window.statusBar().currentMessage() == "Tutor prompt copied to clipboard"
    window.viewer.coordinator.detach()


def test_closed_window_stops_listening_to_shared_store(qtbot):
    store = PageStore()
    first = TutorWindow(store)
    second = TutorWindow(store)
    qtbot.addWidget(second)
    first.close()
    first.deleteLater()
    QCoreApplication.sendPostedEvents(None, QEvent.DeferredDelete)

    store.load(["one", "two"])
    assert second.viewer.page_view(1) is not None
    assert second.viewer.controls.total_label.text() == "/ 2"
    second.responses.submit_response("About page[2].")
    store.clear()
    assert second.responses.messages == []
    second.viewer.coordinator.detach()
