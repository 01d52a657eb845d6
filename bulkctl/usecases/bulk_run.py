"""Bulk controller driving N confirmable, cancellable unit operations.

The controller runs on one worker thread. It suspends only at confirmation
gates, at the inter-step pacing delay, and inside the executor's blocking I/O.
Cancellation is cooperative: the token is polled at the top of each step,
before the pacing delay, and wakes the delay early. An in-flight unit
operation always runs to completion.

Progress only advances on success. A failed step whose error confirmation is
accepted is skipped without a progress report; steps that already succeeded
are never rolled back.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from bulkctl.domain.cancellation import CancellationToken
from bulkctl.domain.entities import (
    BulkRunRequest,
    CancelledByUser,
    Completed,
    ConnectionState,
    DeclinedByUser,
    RunOutcome,
    RunState,
    StoppedAfterError,
)
from bulkctl.domain.errors import (
    NotConnectedError,
    OperationError,
    RunCancelledError,
    RunInProgressError,
)
from bulkctl.domain.ports import (
    ConfirmationPort,
    ConnectionPort,
    LogSink,
    ProgressSink,
    UnitExecutorPort,
)

from .execute_unit import UnitOperationExecutor

log = logging.getLogger(__name__)

PayloadFactory = Callable[[int, int], str]

DEFAULT_PACING_DELAY_S = 0.5
DEFAULT_PAYLOAD_TEMPLATE = "Unit {step} of {total}"


def template_payload_factory(template: str = DEFAULT_PAYLOAD_TEMPLATE) -> PayloadFactory:
    """Return a factory rendering ``template`` with ``step`` and ``total``."""

    def _factory(step: int, total: int) -> str:
        return template.format(step=step, total=total)

    return _factory


class _ProgressTracker:
    """Forward progress to the sink, enforcing monotonic values in ``[0, total]``."""

    def __init__(self, sink: ProgressSink, total: int) -> None:
        self._sink = sink
        self._total = total
        self.current = 0

    def report(self, value: int) -> None:
        if value < self.current or value > self._total:
            raise ValueError(
                f"Progress {value} outside [{self.current}, {self._total}]"
            )
        self.current = value
        self._sink.report_progress(value)


class BulkController:
    """Orchestrates one bulk run at a time against an owned connection."""

    def __init__(
        self,
        connection: ConnectionPort,
        confirmation: ConfirmationPort,
        *,
        executor: Optional[UnitExecutorPort] = None,
        payload_factory: Optional[PayloadFactory] = None,
        pacing_delay_s: float = DEFAULT_PACING_DELAY_S,
    ) -> None:
        if pacing_delay_s < 0:
            raise ValueError("pacing_delay_s must be >= 0")
        self.connection = connection
        self.confirmation = confirmation
        self.executor = executor or UnitOperationExecutor(connection)
        self.payload_factory = payload_factory or template_payload_factory()
        self.pacing_delay_s = pacing_delay_s
        self._guard = threading.Lock()
        self._active = False
        self._state = RunState.IDLE

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def is_active(self) -> bool:
        return self._active

    def run(self, request: BulkRunRequest) -> RunOutcome:
        """Execute ``request.total`` unit operations and return the terminal outcome.

        Raises:
            RunInProgressError: Another run is active on this controller.
            NotConnectedError: The connection is not Connected, before or
                during the run.
        """
        with self._guard:
            if self._active:
                raise RunInProgressError("A bulk run is already in progress")
            self._active = True
        try:
            self._transition(RunState.IDLE)
            return self._run(request)
        finally:
            with self._guard:
                self._active = False

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------
    def _run(self, request: BulkRunRequest) -> RunOutcome:
        sink = request.log
        token = request.cancel_token
        total = request.total

        if self.connection.state is not ConnectionState.CONNECTED:
            message = "Not connected to device"
            sink.log_event(f"Error: {message}")
            raise NotConnectedError(message)

        progress = _ProgressTracker(request.progress, total)

        self._transition(RunState.AWAITING_PREFLIGHT)
        proceed = self._confirm(
            f"About to run {total} operations. Do you want to proceed?", token
        )
        if token.is_cancelled:
            return self._cancelled(sink, at_step=1, progress=progress)
        if not proceed:
            self._transition(RunState.DECLINED)
            sink.log_event("Bulk run declined by user")
            return DeclinedByUser()

        self._transition(RunState.RUNNING)
        sink.log_event(f"Starting bulk run of {total} operations...")
        succeeded = 0

        for step in range(1, total + 1):
            if token.is_cancelled:
                return self._cancelled(sink, at_step=step, progress=progress)

            sink.log_event(f"Running operation {step} of {total}...")
            self._transition(RunState.EXECUTING)
            try:
                self.executor.execute_one(self.payload_factory(step, total))
            except OperationError as exc:
                exc.step = step
                detail = exc.message or str(exc)
                sink.log_event(f"Error on operation {step}: {detail}")
                self._transition(RunState.AWAITING_ERROR_CONFIRMATION)
                keep_going = self._confirm(
                    f"Error on operation {step}: {detail}\n\nDo you want to continue?",
                    token,
                )
                if token.is_cancelled:
                    return self._cancelled(sink, at_step=step, progress=progress)
                if not keep_going:
                    self._transition(RunState.STOPPED_AFTER_ERROR)
                    sink.log_event(
                        f"Bulk run stopped by user after error on operation {step}"
                    )
                    return StoppedAfterError(at_step=step, error=detail)
                sink.log_event(f"Skipping operation {step}")
            except RunCancelledError:
                return self._cancelled(sink, at_step=step, progress=progress)
            except NotConnectedError as exc:
                sink.log_event(f"Error on operation {step}: {exc}")
                raise
            except Exception as exc:
                sink.log_event(f"Unexpected error on operation {step}: {exc}")
                raise
            else:
                succeeded += 1
                sink.log_event(f"Operation {step} succeeded")
                progress.report(step)
            self._transition(RunState.RUNNING)

            if step < total:
                if token.is_cancelled or self._pause(token):
                    return self._cancelled(sink, at_step=step + 1, progress=progress)

        self._transition(RunState.COMPLETED)
        skipped = total - succeeded
        summary = f"Bulk run completed. Total: {total} operations"
        if skipped:
            summary += f" ({succeeded} succeeded, {skipped} skipped)"
        sink.log_event(summary)
        return Completed(count=total, succeeded=succeeded)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _confirm(self, prompt: str, token: CancellationToken) -> bool:
        if token.is_cancelled:
            return False
        return bool(self.confirmation.request_confirmation(prompt, token))

    def _pause(self, token: CancellationToken) -> bool:
        """Sleep for the pacing delay; True if cancellation cut it short."""
        if self.pacing_delay_s <= 0:
            return token.is_cancelled
        return token.wait(self.pacing_delay_s)

    def _cancelled(
        self, sink: LogSink, *, at_step: int, progress: _ProgressTracker
    ) -> CancelledByUser:
        self._transition(RunState.CANCELLED)
        sink.log_event(f"Bulk run cancelled by user before operation {at_step}")
        return CancelledByUser(at_step=at_step, last_progress=progress.current)

    def _transition(self, state: RunState) -> None:
        if state is not self._state:
            log.debug("bulk run: %s -> %s", self._state.value, state.value)
        self._state = state


__all__ = [
    "BulkController",
    "DEFAULT_PACING_DELAY_S",
    "DEFAULT_PAYLOAD_TEMPLATE",
    "PayloadFactory",
    "template_payload_factory",
]
