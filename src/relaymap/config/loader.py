"""Settings loading: YAML file, optional .env."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from loguru import logger


def _deep_update(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge override into base without mutating either."""
    result = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_update(result[key], value)
        else:
            result[key] = value
    return result


def load_config(path: str | Path) -> dict[str, Any]:
    """Read a YAML settings file with SafeLoader.

    A missing or empty file gives ``{}``; so does a document that is not a
    mapping (with a warning). YAML syntax errors propagate.
    """
    path = Path(path)
    if not path.exists():
        logger.warning("Config file not found: {}", path)
        return {}

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        logger.error("Failed to parse config {}: {}", path, exc)
        raise
    if data is None:
        logger.debug("Config file {} is empty", path)
        return {}
    if not isinstance(data, dict):
        logger.warning("Config file {} has invalid structure (expected mapping)", path)
        return {}
    return data


def load_config_with_env(path: str | Path, dotenv_path: str | Path | None = None) -> dict[str, Any]:
    """Load .env into the process environment, then the YAML file.

    RELAYMAP_* overrides are applied by Config when it reads the environment.
    """
    from dotenv import load_dotenv

    load_dotenv(dotenv_path)
    return load_config(path)
