from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from bulkctl.domain.entities import ConnectionState, ReadinessResult
from bulkctl.domain.errors import (
    DeviceConnectionError,
    NotConnectedError,
    TransmissionError,
)
from bulkctl.domain.ports import ConnectionPort, EndpointAddress

log = logging.getLogger(__name__)

STATUS_MESSAGES: Tuple[str, ...] = (
    "Device is paused",
    "Device head is open",
    "Media is out",
    "Ribbon out",
    "Device not responding",
    "Communication error",
    "Device buffer full",
    "Temperature warning",
    "Media jam detected",
    "Head dirty",
)


@dataclass
class DeviceMock(ConnectionPort):
    """Offline substitute for ``DeviceRestConnection`` with injected faults.

    All randomness comes from one ``random.Random`` seeded from ``seed`` so a
    run can be replayed. Rates are probabilities in ``[0, 1]``. Readiness is
    rolled twice, before and after the simulated latency, so the default
    device reports "not ready" on about 19% of checks.
    """

    seed: Optional[int] = None
    connect_fail_rate: float = 0.10
    not_ready_rate: float = 0.10
    connection_lost_rate: float = 0.02
    send_fail_rate: float = 0.05
    latency_s: Tuple[float, float] = (0.0, 0.0)

    sent_payloads: List[str] = field(default_factory=list, init=False)
    close_calls: int = field(default=0, init=False)

    def __post_init__(self) -> None:
        self._rng = random.Random(self.seed)
        self._state = ConnectionState.DISCONNECTED
        self._address: Optional[EndpointAddress] = None

    # ---------- ConnectionPort ----------

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def address(self) -> Optional[EndpointAddress]:
        return self._address

    def connect(self, address: EndpointAddress) -> None:
        if self._state is ConnectionState.CLOSED:
            raise NotConnectedError("Connection has been closed")
        if self._roll(self.connect_fail_rate):
            log.warning("Failed to connect to device at %s: Connection refused", address)
            raise DeviceConnectionError(f"Unable to connect to {address}", address=address)
        self._address = address
        self._state = ConnectionState.CONNECTED
        log.info("Successfully connected to device at %s", address)

    def is_ready(self) -> ReadinessResult:
        if self._state is not ConnectionState.CONNECTED:
            raise NotConnectedError("Not connected to device")

        if self._roll(self.not_ready_rate):
            return self._not_ready()

        if self._roll(self.connection_lost_rate):
            log.warning("Connection lost while checking device status")
            raise DeviceConnectionError("Connection lost", address=self._address)

        self._pause()
        # status can change while the query is in flight
        if self._roll(self.not_ready_rate):
            return self._not_ready()
        return ReadinessResult(ready=True, message="Ready")

    def send(self, payload: str) -> None:
        if self._state is not ConnectionState.CONNECTED:
            raise NotConnectedError("Cannot send data: not connected to device")
        self._pause()
        self.sent_payloads.append(payload)
        log.debug("Sent payload to %s: %s", self._address, payload)
        if self._roll(self.send_fail_rate):
            log.warning("Data transmission failed mid-send")
            raise TransmissionError(
                "Data transmission error", sent=True, address=self._address
            )

    def close(self) -> None:
        self.close_calls += 1
        if self._state is ConnectionState.CONNECTED:
            log.info("Disconnected from device at %s", self._address)
        self._state = ConnectionState.CLOSED

    def __enter__(self) -> "DeviceMock":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ---------- Helpers ----------

    def _not_ready(self) -> ReadinessResult:
        message = self._rng.choice(STATUS_MESSAGES)
        log.info("Device not ready: %s", message)
        return ReadinessResult(ready=False, message=message)

    def _roll(self, rate: float) -> bool:
        if rate <= 0:
            return False
        return self._rng.random() < rate

    def _pause(self) -> None:
        low, high = self.latency_s
        if high <= 0:
            return
        time.sleep(self._rng.uniform(max(0.0, low), high))

    @classmethod
    def reliable(cls) -> "DeviceMock":
        """A mock that never fails; handy for smoke runs."""
        return cls(
            connect_fail_rate=0.0,
            not_ready_rate=0.0,
            connection_lost_rate=0.0,
            send_fail_rate=0.0,
        )


__all__ = ["DeviceMock", "STATUS_MESSAGES"]
