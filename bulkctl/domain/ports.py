from __future__ import annotations
from typing import Dict, Optional, Protocol

from .cancellation import CancellationToken
from .entities import ConnectionState, ReadinessResult

EndpointAddress = str


# ---- Error model ----
class UseCaseError(Exception):
    """Base class for use case level errors (user-presentable)."""

    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = code
        self.message = message


# ---- Ports (Hexagonal boundaries) ----
class ConnectionPort(Protocol):
    """Stateful channel to one remote device.

    Adapters raise ``DeviceConnectionError`` for transport faults and
    ``NotConnectedError`` when used outside the Connected state.
    """

    @property
    def state(self) -> ConnectionState: ...
    @property
    def address(self) -> Optional[EndpointAddress]: ...
    def connect(self, address: EndpointAddress) -> None: ...
    def is_ready(self) -> ReadinessResult: ...
    def send(self, payload: str) -> None: ...
    def close(self) -> None: ...
    def __enter__(self) -> "ConnectionPort": ...
    def __exit__(self, *exc_info: object) -> None: ...


class UnitExecutorPort(Protocol):
    """Performs exactly one unit of work against an established connection."""

    def execute_one(self, payload: str) -> None: ...


class ConfirmationPort(Protocol):
    """Synchronous yes/no decision point serviced by an external actor."""

    def request_confirmation(
        self, prompt: str, cancel_token: Optional[CancellationToken] = None
    ) -> bool: ...


class ProgressSink(Protocol):
    """Receives progress ticks in ``[0, total]``."""

    def report_progress(self, current: int) -> None: ...


class LogSink(Protocol):
    """Receives human-readable status events in production order."""

    def log_event(self, message: str) -> None: ...
    def clear(self) -> None: ...


class StoragePort(Protocol):
    """Persistence for user settings."""

    def save_user_settings(self, payload: Dict) -> None: ...
    def load_user_settings(self) -> Optional[Dict]: ...
