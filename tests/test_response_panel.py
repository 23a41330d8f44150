import pytest
from PySide6.QtCore import Qt

from tutorview.app.ui.response_panel import TutorResponsePanel, linkify_response_html
from tutorview.engine.controller import TutorController
from tutorview.engine.coordinator import NavigationCoordinator, ViewerTimings
from tutorview.engine.models import Citation

REPLY = "Ashoka preached 'non-violence' as seen on page[3].\n\ncommands:\n/highlight/3/non-violence"


@pytest.fixture
def coordinator(qapp, store, scheduler):
    timings = ViewerTimings(char_interval_ms=5, cooldown_ms=50, blink_ms=100, highlight_dwell_ms=200)
    coordinator = NavigationCoordinator(store, scheduler, timings=timings)
    yield coordinator
    coordinator.detach()


@pytest.fixture
def panel(qtbot, coordinator):
    panel = TutorResponsePanel(TutorController(coordinator))
    qtbot.addWidget(panel)
    return panel


def test_linkify_page_references_and_quoted_terms():
    markup = linkify_response_html(
        "<p>Ashoka preached 'non-violence' on page[3].</p>", 0, [Citation(2, "non-violence")]
    )
    assert "<a href='page:2'>page[3]</a>" in markup
    assert "<a class='citation' href='cite:0:0'>'non-violence'</a>" in markup


def test_linkify_leaves_existing_links_and_tags_alone():
    markup = "<a href='https://example.org/page[2]'>page[2]</a> and <b>page[1]</b>"
    result = linkify_response_html(markup, 1, [])
    assert result.startswith("<a href='https://example.org/page[2]'>page[2]</a>")
    assert "<b><a href='page:0'>page[1]</a></b>" in result


def test_repeated_citation_terms_link_once():
    citations = [Citation(2, "non-violence"), Citation(4, "Non-Violence"), Citation(1, "Dhamma")]
    markup = linkify_response_html("<p>He taught 'non-violence' and \"Dhamma\" on page[3].</p>", 0, citations)
    assert markup.count("<a ") == 3
    assert "<a class='citation' href='cite:0:0'>'non-violence'</a>" in markup
    assert "<a class='citation' href='cite:0:2'>\"Dhamma\"</a>" in markup
    assert "cite:0:1" not in markup


def test_citation_term_containing_a_page_marker():
    markup = linkify_response_html("<p>See 'page[3] notes'.</p>", 0, [Citation(2, "page[3] notes")])
    assert markup.count("<a ") == 1
    assert "<a class='citation' href='cite:0:0'>'page[3] notes'</a>" in markup


def test_unquoted_terms_and_invalid_pages_stay_plain():
    markup = linkify_response_html("<p>non-violence on page[0]</p>", 0, [Citation(2, "non-violence")])
    assert markup == "<p>non-violence on page[0]</p>"


def test_submit_response_applies_and_renders(panel, coordinator):
    applied = []
    panel.responseApplied.connect(applied.append)
    parsed = panel.submit_response(REPLY)
    assert applied == [parsed]
    assert parsed.display_text == "Ashoka preached 'non-violence' as seen on page[3]."
    assert coordinator.current_page == 2
    assert coordinator.highlight_term == "non-violence"
    rendered = panel.chat_view.toPlainText()
    assert "Tutor:" in rendered
    assert "commands:" not in rendered
    assert panel.submit_response("   ") is None
    assert len(panel.messages) == 1


def test_links_navigate_the_viewer(panel, coordinator):
    panel.submit_response(REPLY)
    coordinator.goto_page(0)
    panel.open_link("page:4")
    assert coordinator.current_page == 4
    panel.open_link("cite:0:0")
    assert coordinator.current_page == 2
    assert coordinator.highlight_state.term == "non-violence"
    panel.open_link("cite:5:0")
    panel.open_link("page:oops")
    assert coordinator.current_page == 2


def test_ctrl_enter_sends_input(qtbot, panel):
    panel.input.setPlainText(REPLY)
    qtbot.keyClick(panel.input, Qt.Key_Return, Qt.ControlModifier)
    assert len(panel.messages) == 1
    assert panel.input.toPlainText() == ""


def test_clear_forgets_messages(panel):
    panel.submit_response(REPLY)
    panel.clear()
    assert panel.messages == []
