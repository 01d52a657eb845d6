from __future__ import annotations

from dataclasses import asdict, dataclass, replace
from typing import Any, Callable, Dict, Mapping, Optional

from ..utils.logging import env_requests_debug


@dataclass
class SettingsConfig:
    """Typed runtime settings that persist via StorageLocal."""

    endpoint_address: str = ""
    endpoint_port: int = 0
    request_timeout_s: int = 10
    retries: int = 2
    pacing_delay_ms: int = 500
    default_unit_count: int = 10
    payload_template: str = "Unit {step} of {total}"
    use_mock: bool = False
    mock_seed: Optional[int] = None


def _default_debug_logging() -> bool:
    return env_requests_debug()


def default_settings_payload() -> Dict[str, Any]:
    """Return the flat settings payload of a fresh :class:`SettingsVM`."""
    return SettingsVM().to_dict()


class SettingsVM:
    """Keeps app settings state and validation, no I/O here."""

    def __init__(
        self,
        *,
        config: Optional[SettingsConfig] = None,
        on_save: Optional[Callable[[dict], None]] = None,
    ) -> None:
        self.config = config or SettingsConfig()
        self.on_save = on_save

        self.api_key: str = ""
        self.debug_logging: bool = _default_debug_logging()

    # ------------------------------------------------------------------
    # Properties bridging to the typed config
    # ------------------------------------------------------------------
    @property
    def endpoint_address(self) -> str:
        return self.config.endpoint_address

    @endpoint_address.setter
    def endpoint_address(self, value: str) -> None:
        self.config = replace(self.config, endpoint_address=self._coerce_optional_str(value))

    @property
    def endpoint_port(self) -> int:
        return self.config.endpoint_port

    @endpoint_port.setter
    def endpoint_port(self, value: int) -> None:
        coerced = self._coerce_int("endpoint_port", value, allow_negative=False)
        self.config = replace(self.config, endpoint_port=coerced)

    @property
    def request_timeout_s(self) -> int:
        return self.config.request_timeout_s

    @request_timeout_s.setter
    def request_timeout_s(self, value: int) -> None:
        coerced = self._coerce_int("request_timeout_s", value, allow_negative=False)
        self.config = replace(self.config, request_timeout_s=coerced)

    @property
    def retries(self) -> int:
        return self.config.retries

    @retries.setter
    def retries(self, value: int) -> None:
        self.config = replace(self.config, retries=self._coerce_int("retries", value, allow_negative=False))

    @property
    def pacing_delay_ms(self) -> int:
        return self.config.pacing_delay_ms

    @pacing_delay_ms.setter
    def pacing_delay_ms(self, value: int) -> None:
        coerced = self._coerce_int("pacing_delay_ms", value, allow_negative=False)
        self.config = replace(self.config, pacing_delay_ms=coerced)

    @property
    def pacing_delay_s(self) -> float:
        return self.config.pacing_delay_ms / 1000.0

    @property
    def default_unit_count(self) -> int:
        return self.config.default_unit_count

    @default_unit_count.setter
    def default_unit_count(self, value: int) -> None:
        coerced = self._coerce_int("default_unit_count", value, allow_negative=False)
        self.config = replace(self.config, default_unit_count=coerced)

    @property
    def payload_template(self) -> str:
        return self.config.payload_template

    @payload_template.setter
    def payload_template(self, value: str) -> None:
        self.config = replace(self.config, payload_template=self._coerce_template(value))

    @property
    def use_mock(self) -> bool:
        return self.config.use_mock

    @use_mock.setter
    def use_mock(self, value: bool) -> None:
        self.config = replace(self.config, use_mock=self._coerce_bool(value))

    @property
    def mock_seed(self) -> Optional[int]:
        return self.config.mock_seed

    @mock_seed.setter
    def mock_seed(self, value: Optional[int]) -> None:
        self.config = replace(self.config, mock_seed=self._coerce_optional_int("mock_seed", value))

    # ------------------------------------------------------------------
    def is_valid(self) -> bool:
        if not self.use_mock and not self.endpoint_address:
            return False
        if self.default_unit_count < 1:
            return False
        if self.request_timeout_s < 1:
            return False
        return True

    def apply_dict(self, payload: Mapping[str, Any]) -> None:
        """Apply persisted settings to the view-model."""

        if not isinstance(payload, Mapping):
            raise ValueError("Settings payload must be a mapping of flat keys.")

        allowed_flat_keys = {
            *SettingsConfig.__annotations__.keys(),
            "api_key",
            "debug_logging",
        }

        unknown = set(payload.keys()) - allowed_flat_keys
        if unknown:
            raise ValueError(f"Unsupported settings keys: {', '.join(sorted(str(key) for key in unknown))}")

        updates: Dict[str, Any] = {}
        for cfg_key in SettingsConfig.__annotations__.keys():
            if cfg_key in payload:
                updates[cfg_key] = self._coerce_config_value(cfg_key, payload[cfg_key])

        if updates:
            self.config = replace(self.config, **updates)

        if "api_key" in payload:
            self.api_key = self._coerce_optional_str(payload["api_key"])

        if "debug_logging" in payload:
            self.debug_logging = self._coerce_bool(payload["debug_logging"])

    def to_dict(self) -> dict:
        snapshot = asdict(self.config)
        snapshot.update(
            {
                "api_key": self.api_key,
                "debug_logging": bool(self.debug_logging),
            }
        )
        return snapshot

    def set_debug_logging(self, enabled: bool) -> None:
        self.debug_logging = self._coerce_bool(enabled)

    def cmd_save(self) -> None:
        if not self.is_valid():
            raise ValueError("Settings invalid")
        if self.on_save:
            self.on_save(self.to_dict())

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _coerce_config_value(self, key: str, raw: Any) -> Any:
        if key == "endpoint_address":
            return self._coerce_optional_str(raw)
        if key in {
            "endpoint_port",
            "request_timeout_s",
            "retries",
            "pacing_delay_ms",
            "default_unit_count",
        }:
            return self._coerce_int(key, raw, allow_negative=False)
        if key == "payload_template":
            return self._coerce_template(raw)
        if key == "use_mock":
            return self._coerce_bool(raw)
        if key == "mock_seed":
            return self._coerce_optional_int(key, raw)
        raise ValueError(f"Unhandled config field: {key}")

    @staticmethod
    def _coerce_optional_str(value: Any) -> str:
        if value is None:
            return ""
        return str(value).strip()

    @staticmethod
    def _coerce_template(value: Any) -> str:
        text = "" if value is None else str(value)
        if not text.strip():
            return SettingsConfig.payload_template
        try:
            text.format(step=1, total=1)
        except (KeyError, IndexError, ValueError) as exc:
            raise ValueError(f"payload_template is not a valid template: {exc}") from exc
        return text

    @staticmethod
    def _coerce_bool(value: Any) -> bool:
        if isinstance(value, bool):
            return value
        if isinstance(value, (int, float)):
            return bool(value)
        if isinstance(value, str):
            return value.strip().lower() in {"1", "true", "yes", "on"}
        return bool(value)

    @staticmethod
    def _coerce_int(name: str, value: Any, *, allow_negative: bool = True) -> int:
        if isinstance(value, bool):
            raise ValueError(f"{name} must be an integer.")
        if isinstance(value, (int, float)):
            coerced = int(value)
        elif isinstance(value, str) and value.strip():
            try:
                coerced = int(value.strip())
            except ValueError as exc:
                raise ValueError(f"{name} must be an integer.") from exc
        else:
            raise ValueError(f"{name} must be an integer.")
        if not allow_negative and coerced < 0:
            raise ValueError(f"{name} must be >= 0.")
        return coerced

    @classmethod
    def _coerce_optional_int(cls, name: str, value: Any) -> Optional[int]:
        if value is None or (isinstance(value, str) and not value.strip()):
            return None
        return cls._coerce_int(name, value)
