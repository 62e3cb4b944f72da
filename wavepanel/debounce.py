"""Debounce scheduler and the cooperative loops it runs on.

The scheduler never sleeps or spawns threads. It asks a loop object for
``call_later(delay_ms, callback)`` and keeps the returned handle so it can
cancel it. ``ManualLoop`` is a virtual-time loop used for headless runs and
tests; the Qt GUI supplies ``wavepanel.gui.loop.QtTimerLoop`` instead.
"""
from __future__ import annotations

import heapq
import itertools
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Protocol, Tuple

from .logging import get_logger

__all__ = [
    "DEFAULT_DEBOUNCE_MS",
    "TimerHandle",
    "CooperativeLoop",
    "ManualLoop",
    "DebounceState",
    "DebounceScheduler",
]

DEFAULT_DEBOUNCE_MS = 500

log = get_logger()


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class CooperativeLoop(Protocol):
    def now_ms(self) -> float: ...

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle: ...


class _ManualHandle:
    __slots__ = ("deadline", "seq", "callback", "cancelled")

    def __init__(self, deadline: float, seq: int, callback: Callable[[], None]) -> None:
        self.deadline = deadline
        self.seq = seq
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True

    def __lt__(self, other: "_ManualHandle") -> bool:
        return (self.deadline, self.seq) < (other.deadline, other.seq)


class ManualLoop:
    """Single-threaded loop driven by explicit ``advance()`` calls.

    Callbacks due at the same instant run in scheduling order. A callback
    may schedule further callbacks; those run within the same ``advance``
    if their deadline falls inside the advanced window.
    """

    def __init__(self, start_ms: float = 0.0) -> None:
        self._now = float(start_ms)
        self._queue: List[_ManualHandle] = []
        self._seq = itertools.count()

    def now_ms(self) -> float:
        return self._now

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> _ManualHandle:
        handle = _ManualHandle(self._now + max(0.0, float(delay_ms)), next(self._seq), callback)
        heapq.heappush(self._queue, handle)
        return handle

    def pending(self) -> int:
        return sum(1 for h in self._queue if not h.cancelled)

    def advance(self, ms: float) -> int:
        """Move virtual time forward by ``ms`` and run due callbacks.

        Returns the number of callbacks executed.
        """
        target = self._now + max(0.0, float(ms))
        ran = 0
        while self._queue and self._queue[0].deadline <= target:
            handle = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            self._now = handle.deadline
            handle.callback()
            ran += 1
        self._now = target
        return ran

    def run_until_idle(self, limit_ms: float = 60_000.0) -> int:
        """Advance until no live timers remain (bounded by ``limit_ms``)."""
        ran = 0
        end = self._now + limit_ms
        while self.pending() and self._now < end:
            live = [h for h in self._queue if not h.cancelled]
            step = min(h.deadline for h in live) - self._now
            ran += self.advance(max(step, 0.0))
        return ran


@dataclass
class DebounceState:
    pending: bool = False
    deadline: Optional[float] = None


class DebounceScheduler:
    """Collapse bursts of notifications per key into one deferred callback."""

    def __init__(self, loop: CooperativeLoop, interval_ms: float = DEFAULT_DEBOUNCE_MS) -> None:
        if interval_ms < 0:
            raise ValueError("interval_ms must be >= 0")
        self.loop = loop
        self.interval_ms = float(interval_ms)
        self._callbacks: Dict[str, Callable[[], None]] = {}
        self._timers: Dict[str, Tuple[TimerHandle, float]] = {}

    def register(self, key: str, callback: Callable[[], None]) -> None:
        self._callbacks[key] = callback

    def notify(self, key: str) -> None:
        """Arm (or re-arm) the timer for ``key``."""
        if key not in self._callbacks:
            raise KeyError(f"No debounce callback registered for '{key}'")
        self.cancel(key)
        deadline = self.loop.now_ms() + self.interval_ms
        handle = self.loop.call_later(self.interval_ms, lambda: self._fire(key, deadline))
        self._timers[key] = (handle, deadline)

    def _fire(self, key: str, deadline: float) -> None:
        current = self._timers.get(key)
        if current is None or current[1] != deadline:
            return  # superseded
        del self._timers[key]
        callback = self._callbacks.get(key)
        if callback is None:
            return
        log.debug("debounce fired: %s", key)
        callback()

    def cancel(self, key: str) -> bool:
        entry = self._timers.pop(key, None)
        if entry is None:
            return False
        entry[0].cancel()
        return True

    def cancel_all(self) -> int:
        keys = list(self._timers)
        for key in keys:
            self.cancel(key)
        return len(keys)

    def is_pending(self, key: str) -> bool:
        return key in self._timers

    def state(self, key: str) -> DebounceState:
        entry = self._timers.get(key)
        if entry is None:
            return DebounceState()
        return DebounceState(pending=True, deadline=entry[1])

    def pending_keys(self) -> list[str]:
        return list(self._timers)
