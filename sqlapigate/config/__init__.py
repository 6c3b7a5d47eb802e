"""Configuration module for sqlapigate."""

from sqlapigate.config.loader import load_config, get_config_path, save_config
from sqlapigate.config.schema import Config, validate_startup_config

__all__ = [
    "Config",
    "load_config",
    "get_config_path",
    "save_config",
    "validate_startup_config",
]
