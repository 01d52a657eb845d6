from __future__ import annotations

import threading
from typing import List

from bulkctl.app.confirmation import (
    MarshalledConfirmationGate,
    PolicyConfirmationGate,
    console_responder,
)
from bulkctl.domain.cancellation import CancellationToken


def _pump_until_done(gate: MarshalledConfirmationGate, worker: threading.Thread) -> int:
    handled = 0
    while worker.is_alive():
        handled += gate.pump()
        worker.join(0.01)
    return handled + gate.pump()


def test_owner_thread_request_is_answered_inline() -> None:
    seen: List[str] = []

    def _responder(prompt: str) -> bool:
        seen.append(prompt)
        return True

    gate = MarshalledConfirmationGate(_responder)

    assert gate.request_confirmation("Proceed?") is True
    assert seen == ["Proceed?"]
    assert gate.pending == 0


def test_worker_request_is_answered_on_owner_thread() -> None:
    owner = threading.current_thread()
    answered_on: List[threading.Thread] = []
    results: List[bool] = []

    def _responder(prompt: str) -> bool:
        answered_on.append(threading.current_thread())
        return prompt == "About to run 2 operations. Do you want to proceed?"

    gate = MarshalledConfirmationGate(_responder, owner=owner, poll_interval_s=0.01)

    def _work() -> None:
        results.append(gate.request_confirmation("About to run 2 operations. Do you want to proceed?"))
        results.append(gate.request_confirmation("Error on operation 1: boom\n\nDo you want to continue?"))

    worker = threading.Thread(target=_work)
    worker.start()
    handled = _pump_until_done(gate, worker)

    assert results == [True, False]
    assert handled == 2
    assert answered_on == [owner, owner]


def test_cancellation_abandons_pending_request() -> None:
    responder_calls: List[str] = []
    gate = MarshalledConfirmationGate(
        lambda prompt: responder_calls.append(prompt) or True, poll_interval_s=0.01
    )
    token = CancellationToken()
    results: List[bool] = []

    worker = threading.Thread(
        target=lambda: results.append(gate.request_confirmation("Proceed?", token))
    )
    worker.start()
    while gate.pending == 0 and worker.is_alive():
        worker.join(0.01)
    token.cancel()
    worker.join(5)

    assert results == [False]
    assert gate.pump() == 0
    assert responder_calls == []


def test_failing_responder_declines() -> None:
    def _responder(prompt: str) -> bool:
        raise RuntimeError("dialog crashed")

    gate = MarshalledConfirmationGate(_responder)

    assert gate.request_confirmation("Proceed?") is False


def test_policy_gate_records_prompts() -> None:
    gate = PolicyConfirmationGate(lambda prompt: "continue" in prompt)

    assert gate.request_confirmation("Do you want to continue?") is True
    assert gate.request_confirmation("Do you want to proceed?") is False
    assert gate.prompts == ["Do you want to continue?", "Do you want to proceed?"]


def test_policy_gate_declines_once_cancelled() -> None:
    token = CancellationToken()
    token.cancel()
    gate = PolicyConfirmationGate(True)

    assert gate.request_confirmation("Proceed?", token) is False


def test_console_responder_accepts_only_yes() -> None:
    printed: List[str] = []
    answers = iter(["y", " YES ", "n", ""])
    responder = console_responder(input_fn=lambda _: next(answers), output_fn=printed.append)

    assert [responder("Proceed?") for _ in range(4)] == [True, True, False, False]
    assert printed.count("Proceed?") == 4


def test_console_responder_treats_eof_as_no() -> None:
    def _eof(_: str) -> str:
        raise EOFError

    responder = console_responder(input_fn=_eof, output_fn=lambda _: None)

    assert responder("Proceed?") is False
