from __future__ import annotations

import time
from typing import Callable, Optional, Protocol

from PySide6.QtCore import QObject, QTimer


class TimerHandle(Protocol):
    def cancel(self) -> None: ...

    @property
    def active(self) -> bool: ...


class Scheduler(Protocol):
    """Single-threaded timer source used by the engine."""

    def schedule(self, delay_ms: int, callback: Callable[[], None]) -> TimerHandle: ...

    def now_ms(self) -> float: ...


class _QtTimerHandle:
    def __init__(self, timer: QTimer) -> None:
        self._timer: Optional[QTimer] = timer

    @property
    def active(self) -> bool:
        return self._timer is not None and self._timer.isActive()

    def cancel(self) -> None:
        timer = self._timer
        self._timer = None
        if timer is not None:
            timer.stop()
            timer.deleteLater()

    def _finished(self) -> None:
        timer = self._timer
        self._timer = None
        if timer is not None:
            timer.deleteLater()


class QtScheduler(QObject):
    """Scheduler backed by single-shot QTimers on the Qt event loop."""

    def __init__(self, parent: Optional[QObject] = None) -> None:
        super().__init__(parent)

    def schedule(self, delay_ms: int, callback: Callable[[], None]) -> TimerHandle:
        timer = QTimer(self)
        timer.setSingleShot(True)
        timer.setInterval(max(0, int(delay_ms)))
        handle = _QtTimerHandle(timer)

        def _fire() -> None:
            if handle._timer is None:
                return
            handle._finished()
            callback()

        timer.timeout.connect(_fire)
        timer.start()
        return handle

    def now_ms(self) -> float:
        return time.monotonic() * 1000.0
