from __future__ import annotations

import pytest

from bulkctl.adapters.device_mock import DeviceMock
from bulkctl.domain.ports import UseCaseError
from bulkctl.usecases.test_connection import TestConnection as ConnectionCheck


class _Factory:
    def __init__(self, **rates: float) -> None:
        self.rates = {
            "connect_fail_rate": 0.0,
            "not_ready_rate": 0.0,
            "connection_lost_rate": 0.0,
            "send_fail_rate": 0.0,
        }
        self.rates.update(rates)
        self.devices = []

    def __call__(self) -> DeviceMock:
        device = DeviceMock(seed=3, **self.rates)
        self.devices.append(device)
        return device


def test_connection_check_reports_ready_device() -> None:
    factory = _Factory()

    result = ConnectionCheck(factory)("192.168.0.1")

    assert result == {"address": "192.168.0.1", "ok": True, "message": "Ready"}
    assert factory.devices[0].close_calls == 1
    assert factory.devices[0].sent_payloads == []


def test_connection_check_reports_not_ready_status() -> None:
    factory = _Factory(not_ready_rate=1.0)

    result = ConnectionCheck(factory)("dev")

    assert result["ok"] is False
    assert result["message"]
    assert factory.devices[0].close_calls == 1


def test_connection_check_maps_refused_connection() -> None:
    factory = _Factory(connect_fail_rate=1.0)

    with pytest.raises(UseCaseError) as excinfo:
        ConnectionCheck(factory)("dev")

    assert excinfo.value.code == "CONNECTION_FAILED"
    assert "Unable to connect to dev" in excinfo.value.message
    assert factory.devices[0].close_calls == 1


def test_connection_check_maps_connection_lost_during_status() -> None:
    factory = _Factory(connection_lost_rate=1.0)

    with pytest.raises(UseCaseError) as excinfo:
        ConnectionCheck(factory)("dev")

    assert excinfo.value.code == "CONNECTION_FAILED"
    assert factory.devices[0].close_calls == 1
