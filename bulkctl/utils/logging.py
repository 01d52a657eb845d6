from __future__ import annotations

import logging
import os
from typing import Optional

# Worker threads log alongside the main thread, so the thread name is part of the line.
_FORMAT = "%(asctime)s %(levelname)-7s [%(threadName)s] %(name)s: %(message)s"
_DATEFMT = "%H:%M:%S"
ENV_LEVEL = "BULKCTL_LOG_LEVEL"
ENV_DEBUG_FLAGS = ("BULKCTL_DEBUG", "BULKCTL_DEBUG_LOGGING")
_NOISY_LOGGERS = ("urllib3", "requests")


def parse_level(value: Optional[str], fallback: int) -> int:
    """Turn ``"debug"``, ``"DEBUG"`` or ``"10"`` into a numeric level."""
    text = (value or "").strip()
    if not text:
        return fallback
    if text.isdigit():
        return int(text)
    resolved = logging.getLevelName(text.upper())
    return resolved if isinstance(resolved, int) else fallback


def _flag_set(name: str) -> bool:
    return (os.getenv(name) or "").strip().lower() in {"1", "true", "yes", "on"}


def env_level() -> Optional[int]:
    """Level forced through the environment, or None when nothing is set."""
    explicit = os.getenv(ENV_LEVEL)
    if explicit and explicit.strip():
        return parse_level(explicit, logging.INFO)
    if any(_flag_set(flag) for flag in ENV_DEBUG_FLAGS):
        return logging.DEBUG
    return None


def _quiet_transport(level: int) -> None:
    # urllib3 logs every connection attempt at DEBUG
    transport_level = level if level <= logging.DEBUG else max(level, logging.WARNING)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(transport_level)


def configure_root(default_level: int | str = logging.WARNING) -> int:
    """
    Install the CLI log format on the root logger and return the level in use.

    ``BULKCTL_LOG_LEVEL`` sets the level explicitly; a truthy ``BULKCTL_DEBUG``
    (or ``BULKCTL_DEBUG_LOGGING``) means DEBUG. Both win over ``default_level``.
    """
    if isinstance(default_level, str):
        default_level = parse_level(default_level, logging.WARNING)
    forced = env_level()
    level = forced if forced is not None else int(default_level)

    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(format=_FORMAT, datefmt=_DATEFMT)
    root.setLevel(level)
    _quiet_transport(level)
    return level


def apply_preferences(debug_enabled: bool) -> int:
    """Switch between DEBUG and WARNING from settings unless the env forces a level."""
    forced = env_level()
    if forced is not None:
        level = forced
    else:
        level = logging.DEBUG if debug_enabled else logging.WARNING
    logging.getLogger().setLevel(level)
    _quiet_transport(level)
    return level


def level_name(level: int) -> str:
    return logging.getLevelName(level)


def env_requests_debug() -> bool:
    """True when the environment asks for DEBUG (or finer) output."""
    forced = env_level()
    return forced is not None and forced <= logging.DEBUG
