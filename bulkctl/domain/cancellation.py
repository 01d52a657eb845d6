"""Cooperative cancellation signal shared between a caller and a run."""

from __future__ import annotations

import threading
from typing import Optional

from .errors import RunCancelledError


class CancellationToken:
    """Settable flag backed by :class:`threading.Event`.

    Once cancelled the token stays cancelled. Runs poll it at well-defined
    points; nothing is interrupted preemptively.
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self._reason: Optional[str] = None

    def cancel(self, reason: Optional[str] = None) -> None:
        if not self._event.is_set():
            self._reason = reason
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def wait(self, timeout: Optional[float]) -> bool:
        """Sleep up to ``timeout`` seconds; returns True as soon as cancelled."""
        return self._event.wait(timeout)

    def raise_if_cancelled(self, *, at_step: Optional[int] = None) -> None:
        if self._event.is_set():
            raise RunCancelledError(self._reason or "Run cancelled", at_step=at_step)


__all__ = ["CancellationToken"]
