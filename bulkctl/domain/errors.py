"""Domain-level error types for device connections and bulk runs.

Adapters translate transport failures into these types so use cases never see
``requests`` or socket exceptions directly.
"""
from __future__ import annotations

from typing import Any, Optional


class DeviceError(RuntimeError):
    """Base class for failures talking to a remote device."""

    def __init__(self, message: str, *, context: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context


class DeviceConnectionError(DeviceError):
    """Connection refused, dropped, or otherwise unusable."""

    def __init__(
        self,
        message: str,
        *,
        address: Optional[str] = None,
        status: Optional[int] = None,
        payload: Any = None,
        context: Optional[str] = None,
    ) -> None:
        super().__init__(message, context=context)
        self.address = address
        self.status = status
        self.payload = payload


class TransmissionError(DeviceConnectionError):
    """Payload transmission failed.

    ``sent`` is True when the payload reached (or may have reached) the device
    before the failure, False when nothing reached the device.
    """

    def __init__(
        self,
        message: str,
        *,
        sent: bool,
        address: Optional[str] = None,
        status: Optional[int] = None,
        payload: Any = None,
        context: Optional[str] = None,
    ) -> None:
        super().__init__(
            message,
            address=address,
            status=status,
            payload=payload,
            context=context,
        )
        self.sent = sent


class NotConnectedError(DeviceError):
    """Operation attempted on a connection that is not in the Connected state."""


class DeviceNotReadyError(DeviceError):
    """Readiness check failed before a bulk job could start."""

    def __init__(self, message: str, *, status_message: Optional[str] = None) -> None:
        super().__init__(message)
        self.status_message = status_message


class OperationError(DeviceError):
    """A single unit operation failed; recoverable via the error gate."""

    def __init__(
        self,
        message: str,
        *,
        sent: bool = False,
        step: Optional[int] = None,
        context: Optional[str] = None,
    ) -> None:
        super().__init__(message, context=context)
        self.sent = sent
        self.step = step


class RunCancelledError(DeviceError):
    """Raised by a cancellation token; converted to an outcome by the controller."""

    def __init__(self, message: str = "Run cancelled", *, at_step: Optional[int] = None) -> None:
        super().__init__(message)
        self.at_step = at_step


class RunInProgressError(DeviceError):
    """A second run was requested while one is still active."""


__all__ = [
    "DeviceConnectionError",
    "DeviceError",
    "DeviceNotReadyError",
    "NotConnectedError",
    "OperationError",
    "RunCancelledError",
    "RunInProgressError",
    "TransmissionError",
]
