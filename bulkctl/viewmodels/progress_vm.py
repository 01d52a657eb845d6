from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Callable, List, Optional


@dataclass
class ProgressVM:
    """Progress sink for one bulk run, safe to feed from a worker thread.

    ``report_progress`` records the value immediately and queues it;
    ``drain`` runs on the UI thread and fans queued values out to the view in
    the order they were reported.
    """

    on_progress: Optional[Callable[[int, int], None]] = None

    total: int = 0
    current: int = 0
    history: List[int] = field(default_factory=list)

    def __post_init__(self) -> None:
        self._lock = threading.Lock()
        self._pending: List[int] = []

    def reset(self, total: int) -> None:
        if total < 0:
            raise ValueError("total must be >= 0")
        with self._lock:
            self.total = int(total)
            self.current = 0
            self.history = []
            self._pending = []

    def report_progress(self, current: int) -> None:
        value = int(current)
        with self._lock:
            if value < self.current:
                raise ValueError(f"Progress went backwards: {value} < {self.current}")
            if self.total and value > self.total:
                raise ValueError(f"Progress {value} exceeds total {self.total}")
            self.current = value
            self.history.append(value)
            self._pending.append(value)

    def drain(self) -> List[int]:
        """Deliver queued values to ``on_progress``; returns them."""
        with self._lock:
            pending, self._pending = self._pending, []
            total = self.total
        if self.on_progress:
            for value in pending:
                self.on_progress(value, total)
        return pending

    @property
    def fraction(self) -> float:
        if not self.total:
            return 0.0
        return self.current / self.total

    def label(self) -> str:
        if not self.total:
            return f"{self.current}"
        return f"{self.current} / {self.total} ({self.fraction * 100:.0f}%)"
