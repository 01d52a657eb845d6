"""Helpers for turning device HTTP error responses into readable messages.

The device reports failures either as FastAPI-style ``{"detail": ...}``
bodies, where ``detail`` may itself be an object carrying ``message`` and
``sent``, or as plain text from a proxy in front of it.
"""

from __future__ import annotations

from typing import Any, Iterator, Optional

_MESSAGE_KEYS = ("detail", "message", "status", "error")
_SENT_KEYS = ("sent", "accepted")
_TEXT_LIMIT = 400


def parse_error_payload(resp: Any) -> Any:
    """Decoded JSON body, else the first part of the raw text, else None."""
    try:
        return resp.json()
    except Exception:
        text = getattr(resp, "text", "") or ""
        return text[:_TEXT_LIMIT] or None


def build_error_message(ctx: str, status: int, payload: Any) -> str:
    detail = first_string(payload) or stringify(payload)
    suffix = f"(HTTP {status})"
    return f"{ctx}: {detail} {suffix}" if detail else f"{ctx}: HTTP {status}"


def extract_sent_flag(payload: Any) -> bool:
    """Whether the device says the payload reached it before failing.

    Only an explicit boolean counts; anything else means "not sent".
    """
    if not isinstance(payload, dict):
        return False
    for key in _SENT_KEYS:
        if isinstance(payload.get(key), bool):
            return payload[key]
    return extract_sent_flag(payload.get("detail"))


def _candidates(payload: Any) -> Iterator[str]:
    if isinstance(payload, str):
        yield payload
    elif isinstance(payload, dict):
        for key in _MESSAGE_KEYS:
            yield from _candidates(payload.get(key))
    elif isinstance(payload, list):
        for item in payload:
            yield from _candidates(item)


def first_string(payload: Any) -> Optional[str]:
    """First non-blank message found under the usual keys, depth first."""
    for text in _candidates(payload):
        if text.strip():
            return text.strip()
    return None


def stringify(data: Any, *, limit: int = 200) -> Optional[str]:
    """Compact one-line rendering of an arbitrary JSON value."""
    if data is None:
        return None
    if isinstance(data, list):
        parts = [text for text in (stringify(item, limit=limit) for item in data) if text]
        text = "; ".join(parts[:3])
    elif isinstance(data, dict):
        pairs = []
        for key, value in list(data.items())[:4]:
            rendered = stringify(value, limit=limit)
            if rendered:
                pairs.append(f"{key}={rendered}")
        text = ", ".join(pairs)
    else:
        text = str(data).strip()
    return text[:limit] or None


__all__ = [
    "build_error_message",
    "extract_sent_flag",
    "first_string",
    "parse_error_payload",
    "stringify",
]
