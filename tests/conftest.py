import os

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import pytest

from tutorview.app import config
from tutorview.engine.page_store import PageStore


class ManualTimer:
    def __init__(self, due_ms: float, seq: int, callback) -> None:
        self.due_ms = due_ms
        self.seq = seq
        self.callback = callback
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self) -> None:
        self._active = False


class ManualScheduler:
    """Virtual clock: timers only fire when the test advances time."""

    def __init__(self) -> None:
        self._now = 0.0
        self._seq = 0
        self._timers: list[ManualTimer] = []

    def schedule(self, delay_ms, callback) -> ManualTimer:
        self._seq += 1
        timer = ManualTimer(self._now + max(0, delay_ms), self._seq, callback)
        self._timers.append(timer)
        return timer

    def now_ms(self) -> float:
        return self._now

    @property
    def pending(self) -> list[ManualTimer]:
        return [timer for timer in self._timers if timer.active]

    def advance(self, ms: float) -> None:
        target = self._now + ms
        while True:
            due = [t for t in self._timers if t.active and t.due_ms <= target]
            if not due:
                break
            timer = min(due, key=lambda t: (t.due_ms, t.seq))
            self._timers.remove(timer)
            timer._active = False
            self._now = timer.due_ms
            timer.callback()
        self._timers = [t for t in self._timers if t.active]
        self._now = target

    def run_all(self, limit_ms: float = 600_000) -> None:
        self.advance(limit_ms)


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    path = tmp_path / "tutorview_config.json"
    monkeypatch.setattr(config, "GLOBAL_CONFIG", path)
    return path


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def store() -> PageStore:
    store = PageStore()
    store.load(
        [
            "Ashoka ruled the Maurya empire.",
            "After the Kalinga War Ashoka embraced Buddhism.",
            "He preached non-violence and tolerance.",
            "Edicts carved on pillars spread the message.",
            "The empire declined after his death.",
        ]
    )
    return store
