"""Adapter and use-case wiring for the bulkctl runtime.

This module owns lazy construction of connection factories and use-case
objects that depend on values in :class:`bulkctl.viewmodels.settings_vm.SettingsVM`.
It is invoked by the CLI before network actions.
"""

from __future__ import annotations

from typing import Optional

from ..adapters.device_mock import DeviceMock
from ..adapters.device_rest import DeviceRestConnection
from ..domain.ports import ConfirmationPort, ConnectionPort
from ..usecases.bulk_run import template_payload_factory
from ..usecases.run_bulk_job import RunBulkJob
from ..usecases.test_connection import TestConnection
from ..viewmodels.settings_vm import SettingsVM


class AppController:
    """Create and cache runtime use-cases from settings state.

    Call chain:
        ``bulkctl.app.main`` creates one instance per invocation and calls
        ``ensure_ready`` before running a job or a connection test.
    """

    def __init__(self, settings_vm: SettingsVM, confirmation: ConfirmationPort) -> None:
        """Initialize controller with settings-backed lazy dependencies.

        Args:
            settings_vm: Settings holding the device address, timeouts and
                pacing used to build adapters and use cases.
            confirmation: Gate handed to every bulk job.
        """
        self.settings_vm = settings_vm
        self.confirmation = confirmation
        self.uc_run_bulk: Optional[RunBulkJob] = None
        self.uc_test_connection: Optional[TestConnection] = None

    def reset(self) -> None:
        """Drop cached use-cases so the next ``ensure_ready`` rebuilds them."""
        self.uc_run_bulk = None
        self.uc_test_connection = None

    def ensure_ready(self) -> bool:
        """Ensure use-cases are available.

        Returns:
            ``True`` when dependencies are available, ``False`` when settings
            are incomplete (no address and no mock).
        """
        if self.uc_run_bulk and self.uc_test_connection:
            return True
        if not self.settings_vm.is_valid():
            return False

        self.uc_run_bulk = RunBulkJob(
            connection_factory=self.make_connection,
            confirmation=self.confirmation,
            pacing_delay_s=self.settings_vm.pacing_delay_s,
            payload_factory=template_payload_factory(self.settings_vm.payload_template),
        )
        self.uc_test_connection = TestConnection(self.make_connection)
        return True

    def make_connection(self) -> ConnectionPort:
        """Build a fresh connection for one job according to settings."""
        settings = self.settings_vm
        if settings.use_mock:
            return DeviceMock(seed=settings.mock_seed)
        return DeviceRestConnection(
            port=settings.endpoint_port or None,
            api_key=settings.api_key or None,
            request_timeout_s=settings.request_timeout_s,
            retries=settings.retries,
        )
