"""Log sinks receiving human-readable status events from bulk runs."""

from __future__ import annotations

import logging
import queue
from dataclasses import dataclass, field
from typing import Callable, List, Optional


@dataclass
class LogVM:
    """Ordered message list fed from any thread and drained on the UI thread.

    Attributes:
        on_message: Called once per message during :meth:`drain`.
        on_clear: Called during :meth:`drain` when a clear was requested.
        messages: Messages already delivered to the view.
    """

    on_message: Optional[Callable[[str], None]] = None
    on_clear: Optional[Callable[[], None]] = None
    messages: List[str] = field(default_factory=list)

    _CLEAR = object()

    def __post_init__(self) -> None:
        self._queue: "queue.Queue[object]" = queue.Queue()

    def log_event(self, message: str) -> None:
        self._queue.put(str(message))

    def clear(self) -> None:
        self._queue.put(self._CLEAR)

    def drain(self) -> List[str]:
        """Apply queued events in production order; returns new messages."""
        delivered: List[str] = []
        while True:
            try:
                item = self._queue.get_nowait()
            except queue.Empty:
                return delivered
            if item is self._CLEAR:
                self.messages.clear()
                delivered.clear()
                if self.on_clear:
                    self.on_clear()
                continue
            self.messages.append(item)
            delivered.append(item)
            if self.on_message:
                self.on_message(item)


class LoggingLogSink:
    """Forward status events to a :mod:`logging` logger."""

    def __init__(self, logger: Optional[logging.Logger] = None, level: int = logging.INFO) -> None:
        self._log = logger or logging.getLogger("bulkctl.events")
        self._level = level

    def log_event(self, message: str) -> None:
        self._log.log(self._level, "%s", message)

    def clear(self) -> None:
        return None


class TeeLogSink:
    """Fan one event stream out to several sinks in order."""

    def __init__(self, *sinks) -> None:
        self._sinks = list(sinks)

    def log_event(self, message: str) -> None:
        for sink in self._sinks:
            sink.log_event(message)

    def clear(self) -> None:
        for sink in self._sinks:
            sink.clear()


__all__ = ["LogVM", "LoggingLogSink", "TeeLogSink"]
