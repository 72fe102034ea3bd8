"""CLI package for phonedir."""

from phonedir.cli.main import KIND_CHOICES, cli, get_config_file

__all__ = ["KIND_CHOICES", "cli", "get_config_file"]
