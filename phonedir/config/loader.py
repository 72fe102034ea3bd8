"""
Configuration loader module for phonedir.

Provides YAML-based configuration file loading with support for:
- Loading configuration from default or custom paths
- Graceful handling of missing configuration files
- Type and range validation of known keys
- Resolution of the effective settings with defaults applied
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import yaml

from phonedir.utils.paths import resolve_config_dir, resolve_database_path

# Default configuration file name
DEFAULT_CONFIG_FILE = "config.yaml"

# Environment variable naming an explicit configuration file
CONFIG_FILE_ENV_VAR = "PHONEDIR_CONFIG_FILE"

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Raised when configuration loading or validation fails."""

    pass


# Known keys and their accepted types
VALID_KEYS: dict[str, Any] = {
    # Logging options
    "verbose": bool,
    "log_dir": str,
    "log_retention_count": int,
    # Storage
    "database_path": str,
    # Background sync
    "sync_enabled": bool,
    "sync_interval": (str, int),
    "sync_retry_delay": (str, int),
    "daemon_pid_file": str,
    # Directory access
    "fetch_timeout": (int, float),
    "fetch_page_size": int,
    "lease_timeout": int,
    # Reconciliation
    "collect_orphan_dimensions": bool,
    # Listings
    "page_size": int,
}


@dataclass(frozen=True)
class Settings:
    """
    Effective configuration with every default applied.

    Attributes:
        config_dir: Resolved configuration directory
        database_path: SQLite database file
        verbose: Verbose logging
        log_dir: Directory for log files (None for the default)
        log_retention_count: Dated log files to keep
        sync_enabled: Whether the daemon syncs at all
        sync_interval: Seconds between background cycles
        sync_retry_delay: Seconds to wait after a failing cycle
        daemon_pid_file: PID file of the daemon (None for the default)
        fetch_timeout: Seconds allowed for one directory fetch
        fetch_page_size: LDAP paged search size
        lease_timeout: Seconds a sync lease stays valid
        collect_orphan_dimensions: Remove unreferenced lookup values
        page_size: Default listing page size
    """

    config_dir: Path
    database_path: Path
    verbose: bool = False
    log_dir: Optional[Path] = None
    log_retention_count: int = 10
    sync_enabled: bool = True
    sync_interval: int = 3600
    sync_retry_delay: int = 300
    daemon_pid_file: Optional[Path] = None
    fetch_timeout: float = 30.0
    fetch_page_size: int = 500
    lease_timeout: int = 900
    collect_orphan_dimensions: bool = True
    page_size: int = 50

    @classmethod
    def from_config(cls, config: dict[str, Any], config_dir: Path) -> "Settings":
        """
        Build settings from a validated configuration dictionary.

        Args:
            config: Validated configuration (may be empty)
            config_dir: Resolved configuration directory

        Returns:
            Settings with defaults for missing keys

        Raises:
            ConfigError: If an interval cannot be parsed
        """
        # Imported here: phonedir.daemon pulls in the scheduler
        from phonedir.daemon import parse_interval

        try:
            interval = parse_interval(config.get("sync_interval", "1h"))
            retry_delay = parse_interval(config.get("sync_retry_delay", "5m"))
        except ValueError as e:
            raise ConfigError(str(e)) from e

        log_dir = config.get("log_dir")
        pid_file = config.get("daemon_pid_file")
        return cls(
            config_dir=config_dir,
            database_path=resolve_database_path(config_dir, config.get("database_path")),
            verbose=config.get("verbose", False),
            log_dir=Path(log_dir).expanduser() if log_dir else None,
            log_retention_count=config.get("log_retention_count", 10),
            sync_enabled=config.get("sync_enabled", True),
            sync_interval=interval,
            sync_retry_delay=retry_delay,
            daemon_pid_file=Path(pid_file).expanduser() if pid_file else None,
            fetch_timeout=float(config.get("fetch_timeout", 30.0)),
            fetch_page_size=config.get("fetch_page_size", 500),
            lease_timeout=config.get("lease_timeout", 900),
            collect_orphan_dimensions=config.get("collect_orphan_dimensions", True),
            page_size=config.get("page_size", 50),
        )


class ConfigLoader:
    """
    YAML configuration file loader.

    Handles loading and validation of YAML configuration files for
    phonedir.

    Attributes:
        config_dir: Directory containing the configuration file
        config_file: Name of the configuration file

    Usage:
        loader = ConfigLoader()
        config = loader.load_and_validate()
        settings = loader.settings(config)

        # With custom path
        loader = ConfigLoader(config_dir=Path("/custom/path"))
    """

    def __init__(
        self, config_dir: Optional[Path] = None, config_file: str = DEFAULT_CONFIG_FILE
    ):
        """
        Initialize the configuration loader.

        Args:
            config_dir: Directory containing the configuration file.
                       Defaults to ~/.phonedir/ or $PHONEDIR_CONFIG_DIR
            config_file: Name of the configuration file (default: config.yaml)
        """
        self.config_dir = resolve_config_dir(config_dir)
        self.config_file = config_file

    @property
    def config_path(self) -> Path:
        return self.config_dir / self.config_file

    def load(self) -> dict[str, Any]:
        """
        Load configuration from the default configuration file.

        Returns:
            Configuration values, or an empty dict if the file doesn't exist

        Raises:
            ConfigError: If the configuration file exists but cannot be parsed
        """
        return self.load_from_file(self.config_path)

    def load_from_file(self, path: Path | str) -> dict[str, Any]:
        """
        Load configuration from a specific file.

        Args:
            path: Path to the configuration file

        Returns:
            Configuration values, or an empty dict if the file doesn't exist

        Raises:
            ConfigError: If the file cannot be read or is not a YAML mapping
        """
        path = Path(path)
        if not path.exists():
            logger.debug(f"Configuration file not found: {path}")
            return {}

        try:
            with open(path, encoding="utf-8") as f:
                config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Failed to parse YAML configuration file: {e}") from e
        except OSError as e:
            raise ConfigError(f"Failed to read configuration file: {e}") from e

        if config is None:
            logger.debug(f"Configuration file is empty: {path}")
            return {}
        if not isinstance(config, dict):
            raise ConfigError(
                f"Configuration file must contain a YAML dictionary, "
                f"got {type(config).__name__}"
            )

        logger.debug(f"Loaded configuration from {path}")
        return config

    def validate(self, config: dict[str, Any]) -> None:
        """
        Validate types and ranges of known configuration keys.

        Unknown keys are ignored with a debug message.

        Args:
            config: Configuration dictionary to validate

        Raises:
            ConfigError: If configuration is invalid
        """
        if not isinstance(config, dict):
            raise ConfigError(
                f"Configuration must be a dictionary, got {type(config).__name__}"
            )

        for key, value in config.items():
            expected = VALID_KEYS.get(key)
            if expected is None:
                logger.debug(f"Ignoring unknown configuration key: {key}")
                continue
            # bool is an int subclass; only accept it where bool is expected
            wrong_bool = isinstance(value, bool) and expected is not bool
            if wrong_bool or not isinstance(value, expected):
                if isinstance(expected, tuple):
                    type_name = " or ".join(t.__name__ for t in expected)
                else:
                    type_name = expected.__name__
                raise ConfigError(
                    f"Invalid type for '{key}': expected {type_name}, "
                    f"got {type(value).__name__}"
                )

        if config.get("log_retention_count", 0) < 0:
            raise ConfigError(
                f"log_retention_count must be >= 0, got {config['log_retention_count']}"
            )

        for key in ("fetch_page_size", "lease_timeout", "page_size"):
            if key in config and config[key] < 1:
                raise ConfigError(f"{key} must be >= 1, got {config[key]}")

        if "fetch_timeout" in config and config["fetch_timeout"] <= 0:
            raise ConfigError(f"fetch_timeout must be > 0, got {config['fetch_timeout']}")

    def load_and_validate(self, path: Path | str | None = None) -> dict[str, Any]:
        """
        Load configuration and validate it.

        Args:
            path: Explicit configuration file (defaults to config_path)

        Returns:
            Validated configuration dictionary

        Raises:
            ConfigError: If configuration cannot be loaded or is invalid
        """
        config = self.load_from_file(path) if path else self.load()
        if config:
            self.validate(config)
        return config

    def settings(self, config: dict[str, Any]) -> Settings:
        """Resolve the effective settings for a validated configuration."""
        return Settings.from_config(config, self.config_dir)
