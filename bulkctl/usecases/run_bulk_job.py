"""Use case wrapping one bulk run in a scoped device connection.

The workflow opens a fresh connection, checks readiness once, hands the
connection to a :class:`BulkController`, and closes the connection on every
exit path.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from bulkctl.domain.cancellation import CancellationToken
from bulkctl.domain.entities import BulkRunRequest, RunOutcome
from bulkctl.domain.errors import DeviceError, DeviceNotReadyError
from bulkctl.domain.ports import (
    ConfirmationPort,
    ConnectionPort,
    EndpointAddress,
    LogSink,
    ProgressSink,
)

from .bulk_run import DEFAULT_PACING_DELAY_S, BulkController, PayloadFactory
from .error_mapping import map_device_error

log = logging.getLogger(__name__)

ConnectionFactory = Callable[[], ConnectionPort]


@dataclass
class RunBulkJob:
    """Use-case callable for one connect → check → run → close cycle.

    Attributes:
        connection_factory: Builds a fresh connection per job so two jobs
            never share one channel.
        confirmation: Gate consulted before the run and after failed steps.
        pacing_delay_s: Delay between unit operations.
        payload_factory: Optional override for per-step payload text.
    """
    connection_factory: ConnectionFactory
    confirmation: ConfirmationPort
    pacing_delay_s: float = DEFAULT_PACING_DELAY_S
    payload_factory: Optional[PayloadFactory] = None

    def __call__(
        self,
        address: EndpointAddress,
        total: int,
        *,
        progress: ProgressSink,
        log_sink: LogSink,
        cancel_token: Optional[CancellationToken] = None,
    ) -> RunOutcome:
        """Run ``total`` unit operations against the device at ``address``.

        Returns:
            RunOutcome: Terminal outcome reported by the controller.

        Raises:
            ValueError: ``total`` is not a positive integer.
            UseCaseError: Connecting, the readiness check, or a run precondition
                failed. The underlying device error is chained as ``__cause__``.
        """
        request = BulkRunRequest(
            total=total,
            progress=progress,
            log=log_sink,
            cancel_token=cancel_token or CancellationToken(),
        )
        connection = self.connection_factory()
        with connection:
            try:
                return self._run(connection, address, request)
            except DeviceError as exc:
                log.warning("Bulk job against %s failed: %s", address, exc)
                raise map_device_error(exc) from exc

    def _run(
        self,
        connection: ConnectionPort,
        address: EndpointAddress,
        request: BulkRunRequest,
    ) -> RunOutcome:
        sink = request.log
        sink.clear()
        sink.log_event(f"Connecting to device at {address}...")
        try:
            connection.connect(address)
            readiness = connection.is_ready()
        except DeviceError as exc:
            sink.log_event(f"Error: {exc}")
            raise

        if not readiness.ready:
            sink.log_event(f"Error: Device not ready: {readiness.describe()}")
            raise DeviceNotReadyError(
                f"Device not ready: {readiness.describe()}",
                status_message=readiness.message,
            )
        sink.log_event("Device connected and ready.")

        controller = BulkController(
            connection,
            self.confirmation,
            payload_factory=self.payload_factory,
            pacing_delay_s=self.pacing_delay_s,
        )
        outcome = controller.run(request)
        log.info("Bulk job against %s finished: %s", address, outcome.kind.value)
        return outcome


__all__ = ["ConnectionFactory", "RunBulkJob"]
