import pytest

from tutorview.engine.commands import get_grammar
from tutorview.engine.controller import TutorController
from tutorview.engine.coordinator import NavigationCoordinator, ViewerTimings
from tutorview.engine.handle import TurnCitationSink
from tutorview.engine.models import Citation


class RecordingHandle:
    def __init__(self, fail_on=()):
        self.calls = []
        self.fail_on = set(fail_on)

    def _record(self, name, *args):
        self.calls.append((name,) + args)
        if name in self.fail_on:
            raise RuntimeError(f"{name} failed")

    def goto_page(self, page, *, blink=False):
        self._record("goto_page", page, blink)
        return True

    def highlight(self, term, page=None):
        self._record("highlight", term, page)

    def scroll_to_position(self, page, term, annotation=None):
        self._record("scroll_to_position", page, term, annotation)

    def process_new_annotations(self, citations):
        self._record("process_new_annotations", list(citations))
        return len(citations)


@pytest.fixture
def coordinator(qapp, store, scheduler):
    timings = ViewerTimings(char_interval_ms=5, cooldown_ms=50, blink_ms=100, highlight_dwell_ms=200)
    coordinator = NavigationCoordinator(store, scheduler, timings=timings)
    yield coordinator
    coordinator.detach()


def test_annotations_from_successive_turns_accumulate(coordinator, scheduler):
    controller = TutorController(coordinator)
    controller.handle_response("First point.\ncommands:\n/annotate/1/text-A")
    scheduler.run_all()
    controller.handle_response("Second point.\ncommands:\n/annotate/1/text-B")
    scheduler.run_all()
    controller.handle_response("Repeating myself.\ncommands:\n/annotate/1/text-A")
    scheduler.run_all()
    assert coordinator.annotation_lines(0) == (["text-A", "text-B"], None)


def test_directives_are_dispatched_in_order():
    handle = RecordingHandle()
    controller = TutorController(handle)
    parsed = controller.handle_response(
        "See page[2].\ncommands:\n/page/2\n/highlight/3/tolerance\n/annotate/4/Edicts\n/highlight/Ashoka"
    )
    assert controller.last_response is parsed
    assert handle.calls == [
        ("goto_page", 1, True),
        ("highlight", "tolerance", 2),
        ("process_new_annotations", [Citation(3, "", "Edicts")]),
        ("highlight", "Ashoka", None),
    ]


def test_failing_directive_does_not_stop_the_rest():
    handle = RecordingHandle(fail_on={"goto_page"})
    controller = TutorController(handle)
    controller.handle_response("Text.\ncommands:\n/page/2\n/highlight/1/Ashoka")
    assert [call[0] for call in handle.calls] == ["goto_page", "highlight"]


def test_grammar_controls_what_is_applied():
    handle = RecordingHandle()
    controller = TutorController(handle, get_grammar("v2"))
    controller.handle_response("Text.\ncommands:\n/highlight/Ashoka")
    assert handle.calls == []


def test_links_route_to_the_handle():
    handle = RecordingHandle()
    controller = TutorController(handle)
    assert controller.open_page_reference(3)
    controller.open_citation(Citation(2, "tolerance", "Ashoka's policy"))
    assert handle.calls == [
        ("goto_page", 3, True),
        ("scroll_to_position", 2, "tolerance", "Ashoka's policy"),
    ]


def test_turn_citations_reach_the_coordinator(coordinator):
    controller = TutorController(coordinator, citation_sink=coordinator)
    controller.handle_response("Look.\ncommands:\n/highlight/4/pillars")
    styled = [segment.text for segment in coordinator.segments_for(3) if segment.style is not None]
    assert styled == ["pillars"]


class RecordingSink:
    def __init__(self):
        self.turns = []

    def set_turn_citations(self, citations):
        self.turns.append(list(citations))


def test_citation_sink_receives_each_turn():
    handle = RecordingHandle()
    sink = RecordingSink()
    controller = TutorController(handle, citation_sink=sink)
    controller.handle_response("Look.\ncommands:\n/highlight/2/tolerance")
    controller.handle_response("Nothing to do here.")
    assert sink.turns == [[Citation(1, "tolerance")], []]
    assert isinstance(sink, TurnCitationSink)
