# bulkctl/app/main.py
"""Command line front end for bulk device runs.

The job runs on a worker thread. The main thread owns the console: it answers
confirmation prompts, prints log lines and progress, and turns Ctrl-C into a
cancellation of the running job.
"""
from __future__ import annotations

import argparse
import logging
import os
import sys
import threading
from typing import Dict, List, Optional, Sequence

from ..adapters.storage_local import StorageLocal
from ..domain.cancellation import CancellationToken
from ..domain.entities import OutcomeKind, RunOutcome
from ..domain.ports import UseCaseError
from ..utils.logging import apply_preferences, configure_root, level_name
from ..viewmodels.log_vm import LoggingLogSink, LogVM, TeeLogSink
from ..viewmodels.progress_vm import ProgressVM
from ..viewmodels.settings_vm import SettingsVM
from .confirmation import (
    MarshalledConfirmationGate,
    PolicyConfirmationGate,
    console_responder,
)
from .controller import AppController
from .ui_bridge import UiBridge

log = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_DECLINED = 2
EXIT_USAGE = 64
EXIT_CANCELLED = 130

_EXIT_CODES: Dict[OutcomeKind, int] = {
    OutcomeKind.COMPLETED: EXIT_OK,
    OutcomeKind.STOPPED_AFTER_ERROR: EXIT_FAILED,
    OutcomeKind.DECLINED_BY_USER: EXIT_DECLINED,
    OutcomeKind.CANCELLED_BY_USER: EXIT_CANCELLED,
}

DEFAULT_SETTINGS_DIR = os.path.join(os.path.expanduser("~"), ".bulkctl")
MOCK_ADDRESS = "mock-device"


def exit_code_for(outcome: RunOutcome) -> int:
    return _EXIT_CODES[outcome.kind]


def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse CLI args for the bulkctl entry point."""
    parser = argparse.ArgumentParser(
        prog="bulkctl", description="Run confirmable bulk operations against a remote device."
    )
    parser.add_argument(
        "--settings-dir",
        default=os.environ.get("BULKCTL_SETTINGS_DIR", DEFAULT_SETTINGS_DIR),
        help="Directory holding user_settings.json",
    )
    parser.add_argument("--address", help="Device address (IP, host, or URL)")
    parser.add_argument("--port", type=int, help="Device HTTP port")
    parser.add_argument("--api-key", help="Value for the X-API-Key header")
    parser.add_argument("--timeout", type=int, help="Request timeout in seconds")
    parser.add_argument("--mock", action="store_true", help="Use the fault-injecting device mock")
    parser.add_argument("--seed", type=int, help="Seed for the device mock")
    parser.add_argument("--debug", action="store_true", help="Enable DEBUG logging")
    parser.add_argument(
        "--save-settings", action="store_true", help="Persist the effective settings"
    )

    sub = parser.add_subparsers(dest="command", required=True)
    run = sub.add_parser("run", help="Run N unit operations")
    run.add_argument("--count", type=int, help="Number of unit operations")
    run.add_argument("--delay-ms", type=int, help="Pacing delay between operations")
    run.add_argument("--template", help="Payload template using {step} and {total}")
    run.add_argument("--yes", action="store_true", help="Answer every confirmation with yes")

    sub.add_parser("test-connection", help="Connect and check readiness")
    return parser.parse_args(argv)


def _build_settings(args: argparse.Namespace, storage: StorageLocal) -> SettingsVM:
    settings = SettingsVM(on_save=storage.save_user_settings)
    persisted = storage.load_user_settings()
    if persisted:
        settings.apply_dict(persisted)

    overrides = {
        "endpoint_address": args.address,
        "endpoint_port": args.port,
        "api_key": args.api_key,
        "request_timeout_s": args.timeout,
        "mock_seed": args.seed,
        "pacing_delay_ms": getattr(args, "delay_ms", None),
        "default_unit_count": getattr(args, "count", None),
        "payload_template": getattr(args, "template", None),
    }
    payload = {key: value for key, value in overrides.items() if value is not None}
    if args.mock:
        payload["use_mock"] = True
    settings.apply_dict(payload)
    if args.debug:
        settings.set_debug_logging(True)
    return settings


def _print_line(message: str) -> None:
    print(message, flush=True)


def _print_progress(current: int, total: int) -> None:
    print(f"  progress: {current}/{total}", flush=True)


def _cmd_run(args: argparse.Namespace, settings: SettingsVM) -> int:
    log_vm = LogVM(on_message=_print_line)
    progress_vm = ProgressVM(on_progress=_print_progress)
    if args.yes:
        gate = PolicyConfirmationGate(True)
    else:
        gate = MarshalledConfirmationGate(console_responder(), owner=threading.current_thread())

    controller = AppController(settings, gate)
    if not controller.ensure_ready():
        print("Settings incomplete: set --address (or --mock) and a positive --count.", file=sys.stderr)
        return EXIT_USAGE

    total = settings.default_unit_count
    address = settings.endpoint_address or MOCK_ADDRESS
    progress_vm.reset(total)
    token = CancellationToken()
    sink = TeeLogSink(log_vm, LoggingLogSink())
    result: List[object] = []

    def _work() -> None:
        try:
            result.append(
                controller.uc_run_bulk(
                    address,
                    total,
                    progress=progress_vm,
                    log_sink=sink,
                    cancel_token=token,
                )
            )
        except UseCaseError as exc:
            result.append(exc)
        except Exception as exc:
            log.exception("Bulk job crashed")
            result.append(exc)

    worker = threading.Thread(target=_work, name="bulkctl-run", daemon=True)
    worker.start()
    if isinstance(gate, MarshalledConfirmationGate):
        bridge = UiBridge(gate, log_vm, progress_vm)
        bridge.run_until_done(worker, on_interrupt=lambda: token.cancel("Interrupted"))
    else:
        try:
            while worker.is_alive():
                worker.join(0.05)
                log_vm.drain()
                progress_vm.drain()
        except KeyboardInterrupt:
            token.cancel("Interrupted")
            worker.join()
        log_vm.drain()
        progress_vm.drain()

    outcome = result[0] if result else None
    if isinstance(outcome, UseCaseError):
        print(f"Error [{outcome.code}]: {outcome.message}", file=sys.stderr)
        return EXIT_FAILED
    if isinstance(outcome, Exception) or outcome is None:
        print(f"Error: {outcome}", file=sys.stderr)
        return EXIT_FAILED
    return exit_code_for(outcome)


def _cmd_test_connection(settings: SettingsVM) -> int:
    controller = AppController(settings, PolicyConfirmationGate(False))
    if not controller.ensure_ready():
        print("Settings incomplete: set --address (or --mock) and a positive --count.", file=sys.stderr)
        return EXIT_USAGE
    address = settings.endpoint_address or MOCK_ADDRESS
    print("Testing device connection...")
    try:
        status = controller.uc_test_connection(address)
    except UseCaseError as exc:
        print(f"Error [{exc.code}]: {exc.message}", file=sys.stderr)
        return EXIT_FAILED
    if status["ok"]:
        print("Connection Successful")
        return EXIT_OK
    print(f"Error: {status['message']}", file=sys.stderr)
    return EXIT_FAILED


def main(argv: Optional[Sequence[str]] = None) -> int:
    """CLI entrypoint for bulk runs and connection tests."""
    args = _parse_args(argv)
    configure_root()
    storage = StorageLocal(root_dir=args.settings_dir)
    try:
        settings = _build_settings(args, storage)
    except ValueError as exc:
        print(f"Invalid settings: {exc}", file=sys.stderr)
        return EXIT_USAGE
    level = apply_preferences(settings.debug_logging)
    log.debug("Effective log level: %s", level_name(level))

    if args.save_settings:
        try:
            settings.cmd_save()
        except ValueError as exc:
            print(f"Settings not saved: {exc}", file=sys.stderr)
            return EXIT_USAGE

    if args.command == "run":
        return _cmd_run(args, settings)
    return _cmd_test_connection(settings)


if __name__ == "__main__":
    sys.exit(main())
