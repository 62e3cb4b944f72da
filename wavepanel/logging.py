"""Logging helpers: setup_logging/get_logger plus the flat on_log event."""
from __future__ import annotations

import logging as _logging
from typing import Callable, List

_logger = None

LogListener = Callable[[str], None]


def setup_logging(verbose: bool = False):
    global _logger
    level = _logging.DEBUG if verbose else _logging.INFO
    _logging.basicConfig(level=level, format='[%(levelname)s] %(message)s')
    _logger = _logging.getLogger('wavepanel')


def get_logger():  # returns global logger
    global _logger
    if _logger is None:
        setup_logging(False)
    return _logger


class LogEvent:
    """Plain-text log channel consumed by the surrounding application.

    Listeners receive the bare message string. Every message is also
    forwarded to the package logger so headless runs keep a record.
    """

    def __init__(self, source: str = "") -> None:
        self.source = source
        self._listeners: List[LogListener] = []

    def subscribe(self, listener: LogListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unsubscribe(self, listener: LogListener) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    def emit(self, message: str, level: int = _logging.INFO) -> None:
        log = get_logger()
        if self.source:
            log.log(level, "%s: %s", self.source, message)
        else:
            log.log(level, "%s", message)
        for listener in list(self._listeners):
            try:
                listener(message)
            except Exception:  # pragma: no cover - listener bug must not stop the engine
                log.exception("on_log listener failed")

    __call__ = emit
