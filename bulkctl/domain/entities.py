from __future__ import annotations

"""Domain value objects shared across adapters, use-cases, and view models."""

from concurrent.futures import Future
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Optional, Union

if TYPE_CHECKING:  # pragma: no cover - type checking helper
    from .cancellation import CancellationToken
    from .ports import LogSink, ProgressSink


class ConnectionState(str, Enum):
    """Lifecycle of a device connection."""

    DISCONNECTED = "disconnected"
    CONNECTED = "connected"
    CLOSED = "closed"


class RunState(str, Enum):
    """States of the bulk controller state machine."""

    IDLE = "idle"
    AWAITING_PREFLIGHT = "awaiting_preflight_confirmation"
    RUNNING = "running"
    EXECUTING = "executing"
    AWAITING_ERROR_CONFIRMATION = "awaiting_error_confirmation"
    COMPLETED = "completed"
    DECLINED = "declined"
    STOPPED_AFTER_ERROR = "stopped_after_error"
    CANCELLED = "cancelled"


class OutcomeKind(str, Enum):
    """Discriminator for :data:`RunOutcome` variants."""

    COMPLETED = "completed"
    CANCELLED_BY_USER = "cancelled_by_user"
    DECLINED_BY_USER = "declined_by_user"
    STOPPED_AFTER_ERROR = "stopped_after_error"


@dataclass(frozen=True)
class ReadinessResult:
    """Outcome of one readiness query; never cached."""

    ready: bool
    message: Optional[str] = None

    def __bool__(self) -> bool:
        return self.ready

    def describe(self) -> str:
        if self.ready:
            return self.message or "Ready"
        return self.message or "Device not ready"


@dataclass(frozen=True)
class Completed:
    """All steps were attempted; ``succeeded`` counts the ones that went through."""

    count: int
    succeeded: int
    kind: OutcomeKind = field(default=OutcomeKind.COMPLETED, init=False)

    @property
    def skipped(self) -> int:
        return self.count - self.succeeded


@dataclass(frozen=True)
class CancelledByUser:
    """Cancellation observed before ``at_step`` executed."""

    at_step: int
    last_progress: int = 0
    kind: OutcomeKind = field(default=OutcomeKind.CANCELLED_BY_USER, init=False)


@dataclass(frozen=True)
class DeclinedByUser:
    """The pre-flight confirmation was declined; nothing ran."""

    kind: OutcomeKind = field(default=OutcomeKind.DECLINED_BY_USER, init=False)


@dataclass(frozen=True)
class StoppedAfterError:
    """A failed step's error confirmation was declined."""

    at_step: int
    error: str = ""
    kind: OutcomeKind = field(default=OutcomeKind.STOPPED_AFTER_ERROR, init=False)


RunOutcome = Union[Completed, CancelledByUser, DeclinedByUser, StoppedAfterError]


@dataclass
class ConfirmationRequest:
    """Prompt plus a decision slot filled exactly once by the responder."""

    prompt: str
    _future: "Future[bool]" = field(default_factory=Future, repr=False)

    def resolve(self, decision: bool) -> bool:
        """Fill the decision slot. Returns False if it was already filled."""
        if self._future.done():
            return False
        try:
            self._future.set_result(bool(decision))
        except Exception:
            # Lost a race against another resolver or abandon().
            return False
        return True

    def abandon(self) -> bool:
        """Resolve to ``False`` on behalf of a cancelled run."""
        return self.resolve(False)

    @property
    def answered(self) -> bool:
        return self._future.done()

    def result(self, timeout: Optional[float] = None) -> bool:
        """Block for the decision; raises ``TimeoutError`` after ``timeout``."""
        return self._future.result(timeout=timeout)


@dataclass
class BulkRunRequest:
    """Parameters for one bulk run. Sinks and token are shared, not owned."""

    total: int
    progress: "ProgressSink"
    log: "LogSink"
    cancel_token: "CancellationToken"

    def __post_init__(self) -> None:
        if isinstance(self.total, bool) or not isinstance(self.total, int):
            raise TypeError("BulkRunRequest.total must be an integer.")
        if self.total < 1:
            raise ValueError("BulkRunRequest.total must be a positive integer.")


__all__ = [
    "BulkRunRequest",
    "CancelledByUser",
    "Completed",
    "ConfirmationRequest",
    "ConnectionState",
    "DeclinedByUser",
    "OutcomeKind",
    "ReadinessResult",
    "RunOutcome",
    "RunState",
    "StoppedAfterError",
]
