"""HTTP transport shared by the REST device connection.

``RetryingSession`` owns one ``requests.Session``, applies the configured
timeout and API key to every call, and retries transport failures (timeouts,
refused or dropped connections). Non-2xx responses are returned unchanged;
the connection adapter decides what they mean.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests
from requests import exceptions as req_exc

from bulkctl.domain.errors import DeviceConnectionError

log = logging.getLogger(__name__)

_TRANSIENT = (req_exc.Timeout, req_exc.ConnectionError)


@dataclass
class HttpConfig:
    """Timeout and retry policy.

    Attributes:
        request_timeout_s: Per-request timeout in seconds.
        retries: Extra attempts after the first one for retryable calls.
    """
    request_timeout_s: int = 10
    retries: int = 2


class RetryingSession:
    """``requests.Session`` wrapper with API-key headers and transport retries."""

    def __init__(self, api_key: Optional[str], cfg: HttpConfig) -> None:
        self.session = requests.Session()
        self.api_key = api_key
        self.cfg = cfg

    def get(
        self,
        url: str,
        *,
        accept: str = "application/json",
        timeout: Optional[int] = None,
    ) -> requests.Response:
        """GET ``url``; raises ``DeviceConnectionError`` once every attempt failed."""
        return self._send("GET", url, headers=self._headers(accept), timeout=timeout)

    def post(
        self,
        url: str,
        *,
        json_body: Optional[Dict[str, Any]] = None,
        timeout: Optional[int] = None,
        retry: bool = True,
    ) -> requests.Response:
        """POST a JSON body.

        Payload transmissions pass ``retry=False``: a request that timed out
        may still have reached the device, so it is never resent silently.
        """
        headers = self._headers()
        data = None
        if json_body is not None:
            headers["Content-Type"] = "application/json"
            data = json.dumps(json_body)
        return self._send(
            "POST", url, headers=headers, timeout=timeout, retry=retry, data=data
        )

    def close(self) -> None:
        self.session.close()

    # ------------------------------------------------------------------
    def _headers(self, accept: str = "application/json") -> Dict[str, str]:
        headers = {"Accept": accept}
        if self.api_key:
            headers["X-API-Key"] = self.api_key
        return headers

    def _send(
        self,
        method: str,
        url: str,
        *,
        headers: Dict[str, str],
        timeout: Optional[int],
        retry: bool = True,
        **kwargs: Any,
    ) -> requests.Response:
        context = f"{method} {url}"
        call = getattr(self.session, method.lower())
        attempts = self.cfg.retries + 1 if retry else 1
        last_exc: Optional[Exception] = None
        for attempt in range(1, attempts + 1):
            try:
                return call(
                    url,
                    headers=headers,
                    timeout=timeout or self.cfg.request_timeout_s,
                    **kwargs,
                )
            except _TRANSIENT as exc:
                last_exc = exc
                log.debug("%s failed (attempt %d/%d): %s", context, attempt, attempts, exc)
        raise DeviceConnectionError(f"Unable to reach {url}", context=context) from last_exc


__all__ = ["HttpConfig", "RetryingSession"]
