"""Configuration: YAML + env overlay."""

from relaymap.config.loader import load_config, load_config_with_env
from relaymap.config.schema import Config, cfg

__all__ = ["Config", "cfg", "load_config", "load_config_with_env"]
