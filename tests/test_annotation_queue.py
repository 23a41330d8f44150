import pytest

from tutorview.engine.annotations import AnnotationQueue, TypewriterPhase
from tutorview.engine.models import PendingAnnotation


@pytest.fixture
def queue(qapp, scheduler, store):
    return AnnotationQueue(scheduler, store, char_interval_ms=10, cooldown_ms=100)


def test_typewriter_reveals_then_commits_after_cooldown(queue, scheduler):
    progress = []
    committed = []
    queue.typingProgress.connect(lambda page, text: progress.append((page, text)))
    queue.annotationCommitted.connect(lambda page, text: committed.append((page, text)))

    assert queue.enqueue(0, "abc")
    assert queue.phase is TypewriterPhase.TYPING
    scheduler.advance(30)
    assert progress == [(0, "a"), (0, "ab"), (0, "abc")]
    assert queue.phase is TypewriterPhase.COOLDOWN
    assert queue.typing.visible_text == "abc"
    scheduler.advance(99)
    assert committed == []
    scheduler.advance(1)
    assert committed == [(0, "abc")]
    assert queue.phase is TypewriterPhase.IDLE
    assert queue.annotations_for(0) == ["abc"]


def test_only_one_annotation_types_at_a_time(queue, scheduler):
    queue.enqueue(0, "ab")
    queue.enqueue(1, "cd")
    assert queue.typing.text == "ab"
    assert queue.pending == (PendingAnnotation(1, "cd"),)
    scheduler.advance(20)
    assert queue.typing.text == "ab"
    scheduler.advance(100)
    assert queue.typing.text == "cd"
    assert queue.pending == ()
    scheduler.run_all()
    assert queue.log == {0: ["ab"], 1: ["cd"]}


def test_queue_order_is_fifo(queue, scheduler):
    queue.enqueue_many(
        [PendingAnnotation(0, "first"), PendingAnnotation(0, "second"), PendingAnnotation(0, "third")]
    )
    scheduler.run_all()
    assert queue.annotations_for(0) == ["first", "second", "third"]


def test_duplicates_are_ignored(queue, scheduler):
    assert queue.enqueue(0, "note")
    assert not queue.enqueue(0, "note")
    assert not queue.enqueue(0, "  note  ")
    assert not queue.enqueue(0, "   ")
    scheduler.run_all()
    assert not queue.enqueue(0, "note")
    assert queue.enqueue(1, "note")
    scheduler.run_all()
    assert queue.log == {0: ["note"], 1: ["note"]}


def test_reset_drops_queue_and_in_flight_typing(queue, scheduler):
    cleared = []
    queue.cleared.connect(lambda: cleared.append(True))
    queue.enqueue(0, "abcdef")
    queue.enqueue(1, "next")
    scheduler.advance(20)
    queue.reset()
    scheduler.run_all()
    assert cleared == [True]
    assert queue.typing is None
    assert queue.pending == ()
    assert queue.log == {}
    assert queue.phase is TypewriterPhase.IDLE


def test_timers_from_an_older_document_do_nothing(queue, scheduler, store):
    progress = []
    queue.typingProgress.connect(lambda page, text: progress.append(text))
    queue.enqueue(0, "abc")
    scheduler.advance(10)
    store.load(["replacement"])
    scheduler.run_all()
    assert progress == ["a"]
    assert queue.log == {}
