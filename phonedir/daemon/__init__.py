"""
phonedir.daemon - Background sync scheduling

Periodic sync of all active sources with signal handling and a PID file.
"""

import re

_UNIT_SECONDS = {"s": 1, "m": 60, "h": 3600, "d": 86400}

_INTERVAL_PART = re.compile(r"(\d+)\s*([smhd])")


def parse_interval(interval: str | int) -> int:
    """Parse an interval into seconds.

    Accepts plain integers, numeric strings, and unit strings that may
    combine several parts.

    Args:
        interval: Interval specification. Examples:
            - 3600 or "3600" -> 3600 seconds
            - "30s" -> 30 seconds
            - "5m" -> 300 seconds
            - "1h" -> 3600 seconds
            - "1h30m" -> 5400 seconds
            - "1d" -> 86400 seconds

    Returns:
        Interval in seconds (always >= 1).

    Raises:
        ValueError: If the interval is malformed or not positive.
    """
    if isinstance(interval, bool) or not isinstance(interval, (int, str)):
        raise ValueError(
            f"Invalid interval type: {type(interval).__name__}. Expected str or int."
        )

    if isinstance(interval, int):
        seconds = interval
    else:
        text = interval.lower().replace(" ", "")
        if text.isdigit():
            seconds = int(text)
        else:
            parts = _INTERVAL_PART.findall(text)
            if not parts or "".join(n + u for n, u in parts) != text:
                raise ValueError(
                    f"Invalid interval format: '{interval}'. "
                    "Use format like '30s', '5m', '1h', '1h30m' or '1d'."
                )
            seconds = sum(int(n) * _UNIT_SECONDS[u] for n, u in parts)

    if seconds < 1:
        raise ValueError(f"Interval must be at least 1 second, got {interval!r}")
    return seconds


# Imports after parse_interval to avoid circular dependencies
from phonedir.daemon.scheduler import (  # noqa: E402
    DEFAULT_INTERVAL,
    DEFAULT_PID_DIR,
    DEFAULT_PID_FILE,
    DEFAULT_RETRY_DELAY,
    DaemonAlreadyRunningError,
    DaemonError,
    DaemonScheduler,
    DaemonStats,
    PIDFileError,
    PIDFileManager,
)

__all__ = [
    "parse_interval",
    "DaemonScheduler",
    "DaemonStats",
    "DaemonError",
    "PIDFileError",
    "DaemonAlreadyRunningError",
    "PIDFileManager",
    "DEFAULT_PID_DIR",
    "DEFAULT_PID_FILE",
    "DEFAULT_INTERVAL",
    "DEFAULT_RETRY_DELAY",
]
