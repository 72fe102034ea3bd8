"""
Configuration file generator for phonedir.

Provides functionality to generate a default configuration file with
documentation for every available option.
"""

import logging
from pathlib import Path

logger = logging.getLogger(__name__)


def generate_default_config() -> str:
    """
    Generate default YAML configuration with all options documented.

    Every option is commented out, so the generated file behaves exactly
    like having no configuration file.

    Returns:
        String containing YAML configuration with comments
    """
    return """# phonedir Configuration
# ======================
#
# Default options for the phonedir command line and background daemon.
# CLI arguments always override these values.
#
# To use this configuration:
#   1. Save as ~/.phonedir/config.yaml (or under $PHONEDIR_CONFIG_DIR)
#   2. Uncomment and modify options as needed


# Logging
# -------

# Enable verbose output with detailed logging
# Default: false
# verbose: true

# Directory for dated log files and sync audit logs
# Default: ~/.phonedir/logs
# log_dir: /var/log/phonedir

# Number of dated log files to keep when cleaning up (0 keeps none)
# Default: 10
# log_retention_count: 10


# Storage
# -------

# SQLite database holding sources, lookups and contacts
# Default: <config dir>/phonedir.db
# database_path: /var/lib/phonedir/phonedir.db


# Background Sync
# ---------------

# Run periodic sync of all active sources in `phonedir daemon start`
# Default: true
# sync_enabled: true

# Time between sync cycles (s, m, h, d; combinations like 1h30m allowed)
# Default: 1h
# sync_interval: 1h

# Time to wait before retrying after a cycle that failed outright
# Default: 5m
# sync_retry_delay: 5m

# PID file of the background daemon
# Default: ~/.phonedir/daemon.pid
# daemon_pid_file: /run/phonedir/daemon.pid


# Directory Access
# ----------------

# Seconds allowed for connecting to and reading from a directory server
# Default: 30
# fetch_timeout: 30

# Entries requested per LDAP page
# Default: 500
# fetch_page_size: 500

# Seconds a per-source sync lease stays valid before another sync may take it
# Default: 900
# lease_timeout: 900


# Reconciliation
# --------------

# Delete divisions, departments, titles and companies that no contact
# references any more after a sync or a source deletion
# Default: true
# collect_orphan_dimensions: true


# Listings
# --------

# Contacts per page for `phonedir list` and `phonedir search`
# Default: 50
# page_size: 50
"""


def save_config_file(
    config_path: Path, overwrite: bool = False
) -> tuple[bool, str | None]:
    """
    Save the default configuration file to the given path.

    Creates parent directories if they don't exist and writes the file
    readable by its owner only.

    Args:
        config_path: Path where the config file should be saved
        overwrite: If True, overwrite an existing file

    Returns:
        (True, None) on success, (False, error_message) on failure
    """
    config_path = config_path.expanduser().resolve()

    if config_path.exists() and not overwrite:
        return (
            False,
            f"Configuration file already exists: {config_path}\n"
            "Use --force to overwrite.",
        )

    try:
        config_path.parent.mkdir(parents=True, mode=0o700, exist_ok=True)
        config_path.write_text(generate_default_config(), encoding="utf-8")
        config_path.chmod(0o600)
    except OSError as e:
        error_msg = f"Failed to create configuration file: {e}"
        logger.error(error_msg)
        return (False, error_msg)

    logger.info(f"Created configuration file: {config_path}")
    return (True, None)
