"""Config schema and accessor for the message map settings."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from loguru import logger

from relaymap.config.loader import _deep_update
from relaymap.core.errors import RelayMapConfigurationError
from relaymap.durations import normalize_unit

# Env keys that override config (loaded once per reload)
_ENV_OVERRIDE_KEYS = (
    "RELAYMAP_MESSAGE_TIMEOUT_AMOUNT",
    "RELAYMAP_MESSAGE_TIMEOUT_UNIT",
    "RELAYMAP_PERSISTENT_MESSAGE_MAP",
    "RELAYMAP_DATA_DIR",
)

# snake_case key -> camelCase name used by older settings files
_LEGACY_KEYS = {
    "message_timeout_amount": "messageTimeoutAmount",
    "message_timeout_unit": "messageTimeoutUnit",
    "persistent_message_map": "persistentMessageMap",
    "data_dir": "dataDir",
}


def _load_env_overrides() -> dict[str, str]:
    return {k: os.environ.get(k, "") for k in _ENV_OVERRIDE_KEYS}


def _parse_bool(val: str) -> bool | None:
    """Parse an env or config string to bool; None if not a recognized bool."""
    v = val.lower()
    if v in ("1", "true", "yes"):
        return True
    if v in ("0", "false", "no"):
        return False
    return None


class Config:
    """Config accessor for message map settings.

    Keys may sit at the top level or under a ``messages:`` section (the
    section wins), in snake_case or the legacy camelCase spelling.
    RELAYMAP_* environment variables override both.
    """

    def __init__(self, data: dict[str, Any] | None = None) -> None:
        self._data = data or {}
        self._env: dict[str, str] = _load_env_overrides()

    def reload(self, data: dict[str, Any], *, validate: bool = True) -> None:
        """Replace config data (e.g. on SIGHUP reload)."""
        self._data = data or {}
        self._env = _load_env_overrides()
        if validate:
            self._validate()
        logger.debug(
            "Config reloaded: timeout {} {}, persistent={}",
            self.message_timeout_amount,
            self.message_timeout_unit,
            self.persistent_message_map,
        )

    def _validate(self) -> None:
        """Validate settings; raise RelayMapConfigurationError on failure."""
        section = self._data.get("messages")
        if section is not None and not isinstance(section, dict):
            raise RelayMapConfigurationError(
                "messages must be a mapping",
                code="invalid_messages_section",
                details={"type": type(section).__name__},
            )
        try:
            amount = self.message_timeout_amount
        except (TypeError, ValueError) as exc:
            raise RelayMapConfigurationError(
                "message_timeout_amount must be a number",
                code="invalid_timeout_amount",
                original_error=exc,
            ) from exc
        if amount <= 0:
            raise RelayMapConfigurationError(
                "message_timeout_amount must be positive",
                code="invalid_timeout_amount",
                details={"amount": amount},
            )
        normalize_unit(self.message_timeout_unit)

    def _settings(self) -> dict[str, Any]:
        section = self._data.get("messages")
        if isinstance(section, dict):
            return _deep_update(self._data, section)
        return self._data

    def _value(self, key: str, default: Any) -> Any:
        settings = self._settings()
        if key in settings:
            return settings[key]
        return settings.get(_LEGACY_KEYS[key], default)

    @property
    def raw(self) -> dict[str, Any]:
        return self._data

    def get(self, key: str, default: Any = None) -> Any:
        """Get value by dot-separated path (e.g. 'messages.message_timeout_unit')."""
        parts = key.split(".")
        obj: Any = self._data
        for part in parts:
            if isinstance(obj, dict) and part in obj:
                obj = obj[part]
            else:
                return default
        return obj

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __contains__(self, key: str) -> bool:
        return key in self._data

    @property
    def message_timeout_amount(self) -> float:
        """How long a mapping lives, in message_timeout_unit."""
        env_val = self._env.get("RELAYMAP_MESSAGE_TIMEOUT_AMOUNT", "")
        if env_val.strip():
            return float(env_val)
        return float(self._value("message_timeout_amount", 24))

    @property
    def message_timeout_unit(self) -> str:
        env_val = self._env.get("RELAYMAP_MESSAGE_TIMEOUT_UNIT", "")
        if env_val.strip():
            return env_val.strip()
        return str(self._value("message_timeout_unit", "hours"))

    @property
    def persistent_message_map(self) -> bool:
        """Write every insert through to the snapshot file."""
        parsed = _parse_bool(self._env.get("RELAYMAP_PERSISTENT_MESSAGE_MAP", ""))
        if parsed is not None:
            return parsed
        value = self._value("persistent_message_map", False)
        if isinstance(value, str):
            return bool(_parse_bool(value.strip()))
        return bool(value)

    @property
    def data_dir(self) -> Path:
        env_val = self._env.get("RELAYMAP_DATA_DIR", "")
        if env_val.strip():
            return Path(env_val.strip())
        return Path(str(self._value("data_dir", "data")))


cfg: Config = Config({})
