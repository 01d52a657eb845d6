from __future__ import annotations

import threading
import time
from typing import Callable, Dict, List, Optional

import pytest

from bulkctl.adapters.device_mock import DeviceMock
from bulkctl.app.confirmation import PolicyConfirmationGate
from bulkctl.domain.cancellation import CancellationToken
from bulkctl.domain.entities import (
    BulkRunRequest,
    CancelledByUser,
    Completed,
    DeclinedByUser,
    OutcomeKind,
    RunState,
    StoppedAfterError,
)
from bulkctl.domain.errors import NotConnectedError, OperationError, RunInProgressError
from bulkctl.usecases.bulk_run import BulkController, _ProgressTracker


class _RecordingLog:
    def __init__(self) -> None:
        self.events: List[str] = []
        self.clears = 0

    def log_event(self, message: str) -> None:
        self.events.append(message)

    def clear(self) -> None:
        self.clears += 1


class _RecordingProgress:
    def __init__(self, on_report: Optional[Callable[[int], None]] = None) -> None:
        self.values: List[int] = []
        self._on_report = on_report

    def report_progress(self, current: int) -> None:
        self.values.append(current)
        if self._on_report:
            self._on_report(current)


class _ScriptedExecutor:
    """Fails the steps listed in ``failures``; records every payload."""

    def __init__(self, failures: Optional[Dict[int, Exception]] = None) -> None:
        self.failures = dict(failures or {})
        self.payloads: List[str] = []

    def execute_one(self, payload: str) -> None:
        self.payloads.append(payload)
        step = len(self.payloads)
        if step in self.failures:
            raise self.failures[step]


def _connected_mock() -> DeviceMock:
    device = DeviceMock.reliable()
    device.connect("mock-device")
    return device


def _request(total: int, *, progress=None, token=None, log=None) -> BulkRunRequest:
    return BulkRunRequest(
        total=total,
        progress=progress or _RecordingProgress(),
        log=log or _RecordingLog(),
        cancel_token=token or CancellationToken(),
    )


def _answer_preflight_only(decision_on_error: bool) -> Callable[[str], bool]:
    def _policy(prompt: str) -> bool:
        if prompt.startswith("About to run"):
            return True
        return decision_on_error

    return _policy


def test_all_steps_succeed_reports_every_step() -> None:
    executor = _ScriptedExecutor()
    gate = PolicyConfirmationGate(True)
    controller = BulkController(_connected_mock(), gate, executor=executor, pacing_delay_s=0)
    progress = _RecordingProgress()
    log = _RecordingLog()

    outcome = controller.run(_request(3, progress=progress, log=log))

    assert outcome == Completed(count=3, succeeded=3)
    assert outcome.kind is OutcomeKind.COMPLETED
    assert progress.values == [1, 2, 3]
    assert executor.payloads == ["Unit 1 of 3", "Unit 2 of 3", "Unit 3 of 3"]
    assert gate.prompts == ["About to run 3 operations. Do you want to proceed?"]
    assert log.events[0] == "Starting bulk run of 3 operations..."
    assert log.events[-1] == "Bulk run completed. Total: 3 operations"
    assert controller.state is RunState.COMPLETED
    assert controller.is_active is False


def test_declined_preflight_runs_nothing() -> None:
    executor = _ScriptedExecutor()
    controller = BulkController(
        _connected_mock(), PolicyConfirmationGate(False), executor=executor, pacing_delay_s=0
    )
    progress = _RecordingProgress()
    log = _RecordingLog()

    outcome = controller.run(_request(5, progress=progress, log=log))

    assert outcome == DeclinedByUser()
    assert progress.values == []
    assert executor.payloads == []
    assert log.events == ["Bulk run declined by user"]
    assert controller.state is RunState.DECLINED


def test_declined_error_confirmation_stops_at_failed_step() -> None:
    executor = _ScriptedExecutor({3: OperationError("Device not ready: Cover open")})
    gate = PolicyConfirmationGate(_answer_preflight_only(False))
    controller = BulkController(_connected_mock(), gate, executor=executor, pacing_delay_s=0)
    progress = _RecordingProgress()
    log = _RecordingLog()

    outcome = controller.run(_request(5, progress=progress, log=log))

    assert outcome == StoppedAfterError(at_step=3, error="Device not ready: Cover open")
    assert progress.values == [1, 2]
    assert len(executor.payloads) == 3
    assert gate.prompts[-1] == (
        "Error on operation 3: Device not ready: Cover open\n\nDo you want to continue?"
    )
    assert "Error on operation 3: Device not ready: Cover open" in log.events
    assert log.events[-1] == "Bulk run stopped by user after error on operation 3"


def test_accepted_error_skips_step_without_progress() -> None:
    executor = _ScriptedExecutor({2: OperationError("Data transmission error", sent=True)})
    controller = BulkController(
        _connected_mock(),
        PolicyConfirmationGate(True),
        executor=executor,
        pacing_delay_s=0,
    )
    progress = _RecordingProgress()
    log = _RecordingLog()

    outcome = controller.run(_request(3, progress=progress, log=log))

    assert outcome == Completed(count=3, succeeded=2)
    assert outcome.skipped == 1
    assert progress.values == [1, 3]
    assert "Skipping operation 2" in log.events
    assert log.events[-1] == "Bulk run completed. Total: 3 operations (2 succeeded, 1 skipped)"


def test_failed_step_is_not_retried() -> None:
    executor = _ScriptedExecutor({1: OperationError("boom"), 2: OperationError("boom")})
    controller = BulkController(
        _connected_mock(), PolicyConfirmationGate(True), executor=executor, pacing_delay_s=0
    )

    outcome = controller.run(_request(2))

    assert outcome == Completed(count=2, succeeded=0)
    assert executor.payloads == ["Unit 1 of 2", "Unit 2 of 2"]


def test_failed_step_records_step_on_error() -> None:
    error = OperationError("boom")
    executor = _ScriptedExecutor({2: error})
    controller = BulkController(
        _connected_mock(),
        PolicyConfirmationGate(_answer_preflight_only(False)),
        executor=executor,
        pacing_delay_s=0,
    )

    controller.run(_request(4))

    assert error.step == 2


def test_cancel_after_step_returns_last_progress() -> None:
    token = CancellationToken()

    def _cancel_at_two(value: int) -> None:
        if value == 2:
            token.cancel("stop")

    executor = _ScriptedExecutor()
    controller = BulkController(
        _connected_mock(), PolicyConfirmationGate(True), executor=executor, pacing_delay_s=0.01
    )
    progress = _RecordingProgress(on_report=_cancel_at_two)
    log = _RecordingLog()

    outcome = controller.run(_request(5, progress=progress, token=token, log=log))

    assert outcome == CancelledByUser(at_step=3, last_progress=2)
    assert progress.values == [1, 2]
    assert len(executor.payloads) == 2
    assert log.events[-1] == "Bulk run cancelled by user before operation 3"
    assert controller.state is RunState.CANCELLED


def test_cancel_wakes_pacing_delay_early() -> None:
    token = CancellationToken()
    started = threading.Event()

    def _signal(value: int) -> None:
        started.set()

    executor = _ScriptedExecutor()
    controller = BulkController(
        _connected_mock(), PolicyConfirmationGate(True), executor=executor, pacing_delay_s=30
    )
    progress = _RecordingProgress(on_report=_signal)

    canceller = threading.Thread(target=lambda: (started.wait(5), token.cancel()))
    canceller.start()
    began = time.monotonic()
    outcome = controller.run(_request(3, progress=progress, token=token))
    elapsed = time.monotonic() - began
    canceller.join(5)

    assert outcome == CancelledByUser(at_step=2, last_progress=1)
    assert elapsed < 10
    assert len(executor.payloads) == 1


def test_cancelled_before_start_skips_confirmation() -> None:
    token = CancellationToken()
    token.cancel()
    gate = PolicyConfirmationGate(True)
    executor = _ScriptedExecutor()
    controller = BulkController(_connected_mock(), gate, executor=executor, pacing_delay_s=0)

    outcome = controller.run(_request(3, token=token))

    assert outcome == CancelledByUser(at_step=1, last_progress=0)
    assert gate.prompts == []
    assert executor.payloads == []


def test_cancel_during_error_confirmation_wins_over_answer() -> None:
    token = CancellationToken()

    def _policy(prompt: str) -> bool:
        if prompt.startswith("Error on operation"):
            token.cancel()
        return True

    executor = _ScriptedExecutor({2: OperationError("boom")})
    controller = BulkController(
        _connected_mock(), PolicyConfirmationGate(_policy), executor=executor, pacing_delay_s=0
    )

    outcome = controller.run(_request(4, token=token))

    assert outcome == CancelledByUser(at_step=2, last_progress=1)
    assert len(executor.payloads) == 2


def test_run_requires_connected_connection() -> None:
    device = DeviceMock.reliable()
    log = _RecordingLog()
    controller = BulkController(device, PolicyConfirmationGate(True), pacing_delay_s=0)

    with pytest.raises(NotConnectedError):
        controller.run(_request(2, log=log))

    assert log.events == ["Error: Not connected to device"]
    assert controller.is_active is False


def test_connection_dropping_mid_run_propagates() -> None:
    executor = _ScriptedExecutor({2: NotConnectedError("Connection is closed")})
    progress = _RecordingProgress()
    controller = BulkController(
        _connected_mock(), PolicyConfirmationGate(True), executor=executor, pacing_delay_s=0
    )

    with pytest.raises(NotConnectedError):
        controller.run(_request(3, progress=progress))

    assert progress.values == [1]


def test_concurrent_run_is_rejected() -> None:
    rejected: List[Exception] = []
    controller: Optional[BulkController] = None

    def _policy(prompt: str) -> bool:
        try:
            controller.run(_request(1))
        except RunInProgressError as exc:
            rejected.append(exc)
        return False

    controller = BulkController(_connected_mock(), PolicyConfirmationGate(_policy), pacing_delay_s=0)

    outcome = controller.run(_request(2))

    assert outcome == DeclinedByUser()
    assert len(rejected) == 1
    assert controller.is_active is False


def test_default_executor_sends_payloads_through_connection() -> None:
    device = _connected_mock()
    controller = BulkController(
        device,
        PolicyConfirmationGate(True),
        payload_factory=lambda step, total: f"label-{step}/{total}",
        pacing_delay_s=0,
    )

    outcome = controller.run(_request(2))

    assert outcome == Completed(count=2, succeeded=2)
    assert device.sent_payloads == ["label-1/2", "label-2/2"]


def test_negative_pacing_delay_rejected() -> None:
    with pytest.raises(ValueError):
        BulkController(_connected_mock(), PolicyConfirmationGate(True), pacing_delay_s=-1)


def test_progress_tracker_enforces_monotonic_bounds() -> None:
    sink = _RecordingProgress()
    tracker = _ProgressTracker(sink, total=3)

    tracker.report(1)
    tracker.report(1)
    tracker.report(3)
    with pytest.raises(ValueError):
        tracker.report(2)
    with pytest.raises(ValueError):
        tracker.report(4)

    assert sink.values == [1, 1, 3]


def test_transient_failure_needs_user_decision_instead_of_retry() -> None:
    executor = _ScriptedExecutor({2: OperationError("Data transmission error", sent=True)})
    gate = PolicyConfirmationGate(True)
    controller = BulkController(_connected_mock(), gate, executor=executor, pacing_delay_s=0)
    progress = _RecordingProgress()

    outcome = controller.run(_request(3, progress=progress))

    assert executor.payloads.count("Unit 2 of 3") == 1
    assert gate.prompts[1] == "Error on operation 2: Data transmission error\n\nDo you want to continue?"
    assert progress.values == [1, 3]
    assert outcome == Completed(count=3, succeeded=2)


def test_cancellation_raised_inside_step_becomes_outcome() -> None:
    token = CancellationToken()

    class _CancellingExecutor:
        def __init__(self) -> None:
            self.calls = 0

        def execute_one(self, payload: str) -> None:
            self.calls += 1
            if self.calls == 2:
                token.cancel()
                token.raise_if_cancelled(at_step=2)

    executor = _CancellingExecutor()
    controller = BulkController(
        _connected_mock(), PolicyConfirmationGate(True), executor=executor, pacing_delay_s=0
    )

    outcome = controller.run(_request(3, token=token))

    assert outcome == CancelledByUser(at_step=2, last_progress=1)
    assert executor.calls == 2
