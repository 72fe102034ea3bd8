"""
phonedir.utils - Utility module

Common utilities including logging configuration.
"""

from phonedir.utils.normalization import clean_name, clean_text, fold
from phonedir.utils.paths import DEFAULT_CONFIG_DIR, resolve_config_dir

__all__ = ["clean_name", "clean_text", "fold", "resolve_config_dir", "DEFAULT_CONFIG_DIR"]
