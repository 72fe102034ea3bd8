"""
phonedir.config - Configuration management module

Contains configuration loading, validation, and default settings.
"""

from phonedir.config.generator import generate_default_config, save_config_file
from phonedir.config.loader import (
    CONFIG_FILE_ENV_VAR,
    DEFAULT_CONFIG_FILE,
    ConfigError,
    ConfigLoader,
    Settings,
)

__all__ = [
    "ConfigLoader",
    "ConfigError",
    "Settings",
    "CONFIG_FILE_ENV_VAR",
    "DEFAULT_CONFIG_FILE",
    "generate_default_config",
    "save_config_file",
]
