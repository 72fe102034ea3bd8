"""
Entry point for running phonedir as a module.

Usage:
    python -m phonedir --help
    python -m phonedir sync --all
    python -m phonedir list --page 2
"""

from phonedir.cli import cli

if __name__ == "__main__":
    cli()
