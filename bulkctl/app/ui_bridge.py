"""Owner-thread pump tying a running bulk job to its view models.

A bulk job runs on a worker thread. Everything the operator sees or answers
(confirmation prompts, log lines, progress ticks) is handed over through the
gate and view-model queues and applied here, on the thread that owns the UI.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from bulkctl.viewmodels.log_vm import LogVM
from bulkctl.viewmodels.progress_vm import ProgressVM

from .confirmation import MarshalledConfirmationGate

log = logging.getLogger(__name__)


class UiBridge:
    """Pump gate, log and progress queues on the owner thread."""

    def __init__(
        self,
        gate: MarshalledConfirmationGate,
        log_vm: LogVM,
        progress_vm: ProgressVM,
        *,
        interval_ms: int = 50,
    ) -> None:
        self.gate = gate
        self.log_vm = log_vm
        self.progress_vm = progress_vm
        self.interval_ms = interval_ms

    def tick(self) -> None:
        """Drain one round of events; prompts first so the worker can resume."""
        self.gate.pump()
        self.log_vm.drain()
        self.progress_vm.drain()

    def run_until_done(
        self,
        worker: threading.Thread,
        *,
        on_interrupt: Optional[Callable[[], None]] = None,
    ) -> None:
        """Pump until ``worker`` exits; Ctrl-C calls ``on_interrupt`` once."""
        interrupted = False
        while worker.is_alive():
            try:
                self.tick()
                worker.join(self.interval_ms / 1000.0)
            except KeyboardInterrupt:
                if interrupted or on_interrupt is None:
                    raise
                interrupted = True
                log.info("Interrupt received; cancelling bulk run")
                on_interrupt()
        self.tick()


__all__ = ["UiBridge"]
