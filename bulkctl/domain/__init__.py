"""Domain package exports for value objects, errors and the cancellation token."""

from .cancellation import CancellationToken
from .entities import (
    BulkRunRequest,
    CancelledByUser,
    Completed,
    ConfirmationRequest,
    ConnectionState,
    DeclinedByUser,
    OutcomeKind,
    ReadinessResult,
    RunOutcome,
    RunState,
    StoppedAfterError,
)
from .errors import (
    DeviceConnectionError,
    DeviceError,
    DeviceNotReadyError,
    NotConnectedError,
    OperationError,
    RunCancelledError,
    RunInProgressError,
    TransmissionError,
)

__all__ = [
    "BulkRunRequest",
    "CancellationToken",
    "CancelledByUser",
    "Completed",
    "ConfirmationRequest",
    "ConnectionState",
    "DeclinedByUser",
    "DeviceConnectionError",
    "DeviceError",
    "DeviceNotReadyError",
    "NotConnectedError",
    "OperationError",
    "OutcomeKind",
    "ReadinessResult",
    "RunCancelledError",
    "RunInProgressError",
    "RunOutcome",
    "RunState",
    "StoppedAfterError",
    "TransmissionError",
]
