"""Translate device errors into user-facing UseCaseError instances."""

from __future__ import annotations

from typing import Optional

from bulkctl.domain.errors import (
    DeviceConnectionError,
    DeviceError,
    DeviceNotReadyError,
    NotConnectedError,
    OperationError,
    RunInProgressError,
)
from bulkctl.domain.ports import UseCaseError


def map_device_error(
    exc: Exception,
    *,
    default_code: str = "UNEXPECTED_ERROR",
    default_message: Optional[str] = None,
) -> UseCaseError:
    """Map domain/adapter exceptions to stable UseCaseError codes.

    Args:
        exc: Exception raised by an adapter or use case.
        default_code: Code used for exceptions outside the device hierarchy.
        default_message: Message used when ``exc`` has no text.

    Returns:
        UseCaseError: Error carrying a stable code and a readable message.
    """
    if isinstance(exc, UseCaseError):
        return exc
    if isinstance(exc, DeviceNotReadyError):
        return UseCaseError("DEVICE_NOT_READY", _compose("Device not ready", exc.status_message))
    if isinstance(exc, NotConnectedError):
        return UseCaseError("NOT_CONNECTED", _compose("Not connected to device", str(exc)))
    if isinstance(exc, RunInProgressError):
        return UseCaseError("RUN_IN_PROGRESS", "A bulk run is already in progress.")
    if isinstance(exc, OperationError):
        return UseCaseError("OPERATION_FAILED", _compose("Operation failed", str(exc)))
    if isinstance(exc, DeviceConnectionError):
        return UseCaseError("CONNECTION_FAILED", _compose("Connection failed", str(exc)))
    if isinstance(exc, DeviceError):
        return UseCaseError("DEVICE_ERROR", str(exc) or "Device error.")

    message = default_message or str(exc) or "Unexpected error."
    return UseCaseError(default_code, message)


def _compose(base: str, hint: Optional[str]) -> str:
    hint_text = (hint or "").strip()
    if hint_text and hint_text != base:
        return f"{base}: {hint_text}"
    if base.endswith("."):
        return base
    return f"{base}."


__all__ = ["map_device_error"]
