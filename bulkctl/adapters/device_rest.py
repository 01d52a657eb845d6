from __future__ import annotations

import logging
from typing import Any, Optional

import requests
from requests import exceptions as req_exc

from bulkctl.domain.entities import ConnectionState, ReadinessResult
from bulkctl.domain.errors import (
    DeviceConnectionError,
    NotConnectedError,
    TransmissionError,
)
from bulkctl.domain.ports import ConnectionPort, EndpointAddress

from .api_errors import (
    build_error_message,
    extract_sent_flag,
    first_string,
    parse_error_payload,
)
from .http_client import HttpConfig, RetryingSession

log = logging.getLogger(__name__)


class DeviceRestConnection(ConnectionPort):
    """Connection to a device exposing ``/health`` and ``/units`` over HTTP."""

    def __init__(
        self,
        *,
        port: Optional[int] = None,
        api_key: Optional[str] = None,
        request_timeout_s: int = 10,
        retries: int = 2,
    ) -> None:
        self.port = port
        self.cfg = HttpConfig(request_timeout_s=request_timeout_s, retries=retries)
        self.session = RetryingSession(api_key, self.cfg)
        self._state = ConnectionState.DISCONNECTED
        self._address: Optional[EndpointAddress] = None
        self._base_url: Optional[str] = None

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def address(self) -> Optional[EndpointAddress]:
        return self._address

    @property
    def base_url(self) -> Optional[str]:
        return self._base_url

    def connect(self, address: EndpointAddress) -> None:
        if self._state is ConnectionState.CLOSED:
            raise NotConnectedError("Connection has been closed")
        base_url = self._make_base_url(address)
        ctx = f"connect[{address}]"
        try:
            resp = self.session.get(f"{base_url}/health")
        except DeviceConnectionError as exc:
            log.warning("Failed to connect to device at %s: %s", address, exc)
            raise DeviceConnectionError(
                f"Unable to connect to {address}", address=address, context=ctx
            ) from exc
        self._ensure_ok(resp, ctx, address)
        self._address = address
        self._base_url = base_url
        self._state = ConnectionState.CONNECTED
        log.info("Connected to device at %s", address)

    def is_ready(self) -> ReadinessResult:
        self._require_connected("is_ready")
        ctx = f"health[{self._address}]"
        resp = self.session.get(self._make_url("/health"))
        self._ensure_ok(resp, ctx, self._address)
        data = self._json_any(resp, ctx)
        if not isinstance(data, dict):
            raise DeviceConnectionError(
                f"{ctx}: expected object response", address=self._address, context=ctx
            )
        ready = bool(data.get("ok", False))
        message = first_string({"status": data.get("status"), "detail": data.get("detail")})
        return ReadinessResult(ready=ready, message=message)

    def send(self, payload: str) -> None:
        self._require_connected("send")
        ctx = f"send[{self._address}]"
        try:
            resp = self.session.post(
                self._make_url("/units"), json_body={"payload": payload}, retry=False
            )
        except DeviceConnectionError as exc:
            # a read timeout means the request already went out
            reached = isinstance(exc.__cause__, req_exc.ReadTimeout)
            raise TransmissionError(
                f"Data transmission error: {exc}",
                sent=reached,
                address=self._address,
                context=ctx,
            ) from exc
        if 200 <= resp.status_code < 300:
            return
        body = parse_error_payload(resp)
        raise TransmissionError(
            build_error_message(ctx, resp.status_code, body),
            sent=extract_sent_flag(body),
            address=self._address,
            status=resp.status_code,
            payload=body,
            context=ctx,
        )

    def close(self) -> None:
        if self._state is ConnectionState.CLOSED:
            return
        was_connected = self._state is ConnectionState.CONNECTED
        self._state = ConnectionState.CLOSED
        closer = getattr(self.session, "close", None)
        if callable(closer):
            closer()
        if was_connected:
            log.info("Disconnected from device at %s", self._address)

    def __enter__(self) -> "DeviceRestConnection":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _require_connected(self, op: str) -> None:
        if self._state is not ConnectionState.CONNECTED:
            raise NotConnectedError(f"{op}: not connected to device (state={self._state.value})")

    def _make_base_url(self, address: EndpointAddress) -> str:
        cleaned = str(address or "").strip()
        if not cleaned:
            raise ValueError("Device address must be a non-empty string.")
        if "://" not in cleaned:
            cleaned = f"http://{cleaned}"
        if cleaned.endswith("/"):
            cleaned = cleaned[:-1]
        if self.port and cleaned.count(":") < 2:
            cleaned = f"{cleaned}:{self.port}"
        return cleaned

    def _make_url(self, path: str) -> str:
        if not self._base_url:
            raise NotConnectedError("No base URL; connect first")
        return f"{self._base_url}{path}"

    @staticmethod
    def _ensure_ok(resp: requests.Response, ctx: str, address: Optional[str]) -> None:
        if 200 <= resp.status_code < 300:
            return
        payload = parse_error_payload(resp)
        raise DeviceConnectionError(
            build_error_message(ctx, resp.status_code, payload),
            address=address,
            status=resp.status_code,
            payload=payload,
            context=ctx,
        )

    @staticmethod
    def _json_any(resp: requests.Response, ctx: str) -> Any:
        try:
            return resp.json()
        except Exception:
            snippet = getattr(resp, "text", "")[:400]
            raise DeviceConnectionError(f"{ctx}: invalid JSON response: {snippet}", context=ctx)


__all__ = ["DeviceRestConnection"]
