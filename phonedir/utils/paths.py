"""
Path utilities for configuration directory resolution.

Provides consistent path resolution for the phonedir configuration
directory across all modules.
"""

from __future__ import annotations

import os
from pathlib import Path

# Default configuration directory
DEFAULT_CONFIG_DIR = Path.home() / ".phonedir"

# Environment variable for overriding config directory
CONFIG_DIR_ENV_VAR = "PHONEDIR_CONFIG_DIR"

# Default SQLite database file name inside the config directory
DEFAULT_DATABASE_FILE = "phonedir.db"


def resolve_config_dir(config_dir: Path | str | None = None) -> Path:
    """
    Resolve the configuration directory path.

    Priority:
        1. Explicit config_dir parameter (if provided)
        2. PHONEDIR_CONFIG_DIR environment variable
        3. Default directory (~/.phonedir)

    Args:
        config_dir: Optional explicit configuration directory path.
                   Can be a Path object or string.

    Returns:
        Resolved Path to the configuration directory (expanduser and resolve applied)
    """
    if config_dir is not None:
        return Path(config_dir).expanduser().resolve()

    env_dir = os.environ.get(CONFIG_DIR_ENV_VAR)
    if env_dir:
        return Path(env_dir).expanduser().resolve()

    return DEFAULT_CONFIG_DIR.expanduser().resolve()


def resolve_database_path(
    config_dir: Path, database_path: Path | str | None = None
) -> Path:
    """
    Resolve the SQLite database location.

    Args:
        config_dir: Resolved configuration directory
        database_path: Optional explicit path from the configuration file

    Returns:
        Path to the database file
    """
    if database_path:
        return Path(database_path).expanduser()
    return config_dir / DEFAULT_DATABASE_FILE
