"""Confirmation gates answering yes/no prompts raised by bulk runs.

The bulk controller calls ``request_confirmation`` from its worker thread and
blocks until a decision arrives. :class:`MarshalledConfirmationGate` moves
the prompt to the thread that owns the user interaction through a queue and
moves the decision back through a future, so no mutable state is shared
between the two threads.
"""

from __future__ import annotations

import logging
import queue
import threading
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Callable, List, Optional, Union

from bulkctl.domain.cancellation import CancellationToken
from bulkctl.domain.entities import ConfirmationRequest
from bulkctl.domain.ports import ConfirmationPort

log = logging.getLogger(__name__)

Responder = Callable[[str], bool]


class MarshalledConfirmationGate(ConfirmationPort):
    """Gate whose prompts are answered on the owner thread via :meth:`pump`.

    The owner thread is the one allowed to talk to the user (the Tk main loop
    or the CLI's main thread). Requests raised on the owner thread itself are
    answered inline so the gate cannot deadlock against its own pump.
    """

    def __init__(
        self,
        responder: Responder,
        *,
        owner: Optional[threading.Thread] = None,
        poll_interval_s: float = 0.05,
    ) -> None:
        self._responder = responder
        self._owner = owner or threading.current_thread()
        self._poll_interval_s = poll_interval_s
        self._queue: "queue.Queue[ConfirmationRequest]" = queue.Queue()
        self._outstanding = threading.Lock()

    def request_confirmation(
        self, prompt: str, cancel_token: Optional[CancellationToken] = None
    ) -> bool:
        with self._outstanding:
            request = ConfirmationRequest(prompt)
            if threading.current_thread() is self._owner:
                return self._answer(request)

            self._queue.put(request)
            while True:
                if cancel_token is not None and cancel_token.is_cancelled:
                    if request.abandon():
                        log.info("Confirmation abandoned after cancellation: %s", prompt)
                    return False
                try:
                    return request.result(timeout=self._poll_interval_s)
                except FutureTimeoutError:
                    continue

    def pump(self) -> int:
        """Answer every queued request on the calling thread; returns the count."""
        handled = 0
        while True:
            try:
                request = self._queue.get_nowait()
            except queue.Empty:
                return handled
            if request.answered:
                continue
            self._answer(request)
            handled += 1

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def _answer(self, request: ConfirmationRequest) -> bool:
        try:
            decision = bool(self._responder(request.prompt))
        except Exception:
            log.exception("Confirmation responder failed; treating prompt as declined")
            decision = False
        request.resolve(decision)
        return request.result()


class PolicyConfirmationGate(ConfirmationPort):
    """Gate answering from a fixed policy or a callable, on the calling thread.

    Every prompt is recorded in :attr:`prompts` for inspection.
    """

    def __init__(self, policy: Union[bool, Responder] = True) -> None:
        self._policy = policy
        self.prompts: List[str] = []

    def request_confirmation(
        self, prompt: str, cancel_token: Optional[CancellationToken] = None
    ) -> bool:
        self.prompts.append(prompt)
        if cancel_token is not None and cancel_token.is_cancelled:
            return False
        if callable(self._policy):
            return bool(self._policy(prompt))
        return bool(self._policy)


def console_responder(
    input_fn: Callable[[str], str] = input,
    output_fn: Callable[[str], None] = print,
) -> Responder:
    """Build a responder asking on the console; anything but yes declines."""

    def _ask(prompt: str) -> bool:
        output_fn("")
        output_fn(prompt)
        try:
            answer = input_fn("Proceed? [y/N] ")
        except EOFError:
            return False
        return answer.strip().lower() in {"y", "yes"}

    return _ask


__all__ = [
    "MarshalledConfirmationGate",
    "PolicyConfirmationGate",
    "Responder",
    "console_responder",
]
