"""YAML configuration loading and validation."""

from .loader import ConfigError, default_config, load_config, load_config_or_default

__all__ = [
    "ConfigError",
    "default_config",
    "load_config",
    "load_config_or_default",
]
