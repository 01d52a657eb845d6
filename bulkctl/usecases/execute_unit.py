"""Use case for transmitting exactly one payload to a connected device."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from bulkctl.domain.entities import ConnectionState
from bulkctl.domain.errors import (
    DeviceConnectionError,
    NotConnectedError,
    OperationError,
    TransmissionError,
)
from bulkctl.domain.ports import ConnectionPort

log = logging.getLogger(__name__)


@dataclass
class UnitOperationExecutor:
    """Readiness-checked single transmission against an established connection.

    Attributes:
        connection: Connection owned by the surrounding run.
    """
    connection: ConnectionPort

    def execute_one(self, payload: str) -> None:
        """Send one payload after a fresh readiness check.

        Raises:
            NotConnectedError: The connection is not in the Connected state.
            OperationError: The device was not ready, the channel dropped during
                the check, or the transmission failed. ``sent`` tells whether
                the payload reached the device before the failure.
        """
        if self.connection.state is not ConnectionState.CONNECTED:
            raise NotConnectedError(
                f"Cannot execute operation: connection is {self.connection.state.value}"
            )

        try:
            readiness = self.connection.is_ready()
        except DeviceConnectionError as exc:
            log.warning("Readiness check failed: %s", exc)
            raise OperationError(
                f"Connection lost while checking device status: {exc}", sent=False
            ) from exc
        if not readiness.ready:
            message = f"Device not ready: {readiness.describe()}"
            log.info(message)
            raise OperationError(message, sent=False)

        try:
            self.connection.send(payload)
        except TransmissionError as exc:
            stage = "after transmission" if exc.sent else "before transmission"
            log.warning("Transmission failed %s: %s", stage, exc)
            raise OperationError(str(exc), sent=exc.sent) from exc
        except DeviceConnectionError as exc:
            log.warning("Transmission failed: %s", exc)
            raise OperationError(str(exc), sent=False) from exc

    __call__ = execute_one


__all__ = ["UnitOperationExecutor"]
