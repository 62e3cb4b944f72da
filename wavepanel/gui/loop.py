"""Cooperative loop backed by Qt single-shot timers."""
from __future__ import annotations

from typing import Callable, Set

from ._qt import require_qt


class _QtTimerHandle:
    def __init__(self, loop: "QtTimerLoop", timer) -> None:
        self._loop = loop
        self._timer = timer

    def cancel(self) -> None:
        if self._timer is not None:
            self._timer.stop()
            self._loop._release(self._timer)
            self._timer = None


class QtTimerLoop:
    """``call_later`` on the Qt event loop; needs a running QApplication."""

    def __init__(self) -> None:
        qt = require_qt()
        if qt is None:
            raise RuntimeError("PySide6 is required for QtTimerLoop")
        self._qt = qt
        self._clock = qt.QElapsedTimer()
        self._clock.start()
        self._live: Set[object] = set()

    def now_ms(self) -> float:
        return float(self._clock.elapsed())

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> _QtTimerHandle:
        timer = self._qt.QTimer()
        timer.setSingleShot(True)
        handle = _QtTimerHandle(self, timer)

        def _run() -> None:
            self._release(timer)
            handle._timer = None
            callback()

        timer.timeout.connect(_run)
        self._live.add(timer)
        timer.start(max(0, int(round(delay_ms))))
        return handle

    def _release(self, timer) -> None:
        self._live.discard(timer)

    def pending(self) -> int:
        return len(self._live)
