"""
Background scheduler for periodic directory synchronization.

Provides a DaemonScheduler class that manages:
- Sync cycles at a configurable interval, with a shorter retry delay after
  a cycle that raised
- Graceful shutdown on SIGTERM/SIGINT while waiting for the next cycle
- A PID file guarding against two daemons on the same configuration

A running cycle is never interrupted; shutdown takes effect at the wait.
"""

from __future__ import annotations

import logging
import os
import signal
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

logger = logging.getLogger(__name__)


# Default PID file location
DEFAULT_PID_DIR = Path.home() / ".phonedir"
DEFAULT_PID_FILE = DEFAULT_PID_DIR / "daemon.pid"

# Default cadence
DEFAULT_INTERVAL = 3600
DEFAULT_RETRY_DELAY = 300


class DaemonError(Exception):
    """Base exception for daemon-related errors."""

    pass


class PIDFileError(DaemonError):
    """Raised when PID file operations fail."""

    pass


class DaemonAlreadyRunningError(DaemonError):
    """Raised when attempting to start a daemon that is already running."""

    pass


@dataclass
class DaemonStats:
    """Counters describing the daemon's cycles since it started."""

    started_at: datetime = field(default_factory=datetime.now)
    cycle_count: int = 0
    success_count: int = 0
    partial_count: int = 0
    error_count: int = 0
    last_cycle_at: datetime | None = None
    last_error: str | None = None


def is_process_running(pid: int) -> bool:
    """Check whether a process with this PID exists."""
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        # Exists, owned by someone else
        return True
    return True


class PIDFileManager:
    """
    Owns the daemon PID file.

    A PID file whose process is gone is treated as stale and replaced.
    """

    def __init__(self, pid_file: Path | None = None):
        self.pid_file = Path(pid_file) if pid_file else DEFAULT_PID_FILE

    def read(self) -> int | None:
        """
        Read the stored PID.

        Returns:
            The PID, or None if there is no PID file.

        Raises:
            PIDFileError: If the file cannot be read or holds no integer.
        """
        try:
            content = self.pid_file.read_text().strip()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise PIDFileError(f"Failed to read PID file {self.pid_file}: {e}") from e
        try:
            return int(content)
        except ValueError as e:
            raise PIDFileError(f"Invalid PID in file {self.pid_file}: {content!r}") from e

    def running_pid(self) -> int | None:
        """Return the stored PID if that process is alive, else None."""
        pid = self.read()
        if pid is not None and is_process_running(pid):
            return pid
        return None

    def create(self) -> None:
        """
        Write the current PID, replacing a stale file.

        Raises:
            DaemonAlreadyRunningError: If the stored process is alive.
            PIDFileError: If the file cannot be written.
        """
        existing = self.read()
        if existing is not None:
            if is_process_running(existing):
                raise DaemonAlreadyRunningError(
                    f"Daemon already running with PID {existing}"
                )
            logger.warning(f"Removing stale PID file (process {existing} not running)")

        try:
            self.pid_file.parent.mkdir(parents=True, exist_ok=True)
            self.pid_file.write_text(str(os.getpid()))
        except OSError as e:
            raise PIDFileError(f"Failed to create PID file {self.pid_file}: {e}") from e
        logger.debug(f"Created PID file: {self.pid_file} (PID: {os.getpid()})")

    def remove(self) -> None:
        """
        Remove the PID file if present.

        Raises:
            PIDFileError: If the file exists but cannot be removed.
        """
        try:
            self.pid_file.unlink()
        except FileNotFoundError:
            return
        except OSError as e:
            raise PIDFileError(f"Failed to remove PID file {self.pid_file}: {e}") from e
        logger.debug(f"Removed PID file: {self.pid_file}")


class DaemonScheduler:
    """
    Runs a sync callback periodically until told to stop.

    The callback returns True when every source synced and False when some
    failed; either way the next cycle follows after ``interval``. If the
    callback raises, the next cycle follows after ``retry_delay``.

    Usage:
        scheduler = DaemonScheduler(interval=3600, retry_delay=300)
        scheduler.set_sync_callback(lambda: reconciler.sync_all().success)
        scheduler.run()  # blocks until SIGTERM/SIGINT

    Attributes:
        interval: Seconds between cycles
        retry_delay: Seconds to wait after a cycle that raised
        enabled: When False, run() returns without syncing
        stats: Daemon statistics
    """

    def __init__(
        self,
        interval: int = DEFAULT_INTERVAL,
        retry_delay: int = DEFAULT_RETRY_DELAY,
        enabled: bool = True,
        pid_file: Path | None = None,
        run_immediately: bool = True,
    ):
        """
        Initialize the scheduler.

        Args:
            interval: Seconds between cycles (default: 3600 = 1 hour)
            retry_delay: Seconds to wait after a failing cycle (default: 300)
            enabled: Whether background sync is switched on
            pid_file: Path to PID file. Defaults to ~/.phonedir/daemon.pid
            run_immediately: Run a cycle at start before the first wait
        """
        if interval < 1:
            raise ValueError(f"interval must be >= 1 second, got {interval}")
        if retry_delay < 1:
            raise ValueError(f"retry_delay must be >= 1 second, got {retry_delay}")
        self.interval = interval
        self.retry_delay = retry_delay
        self.enabled = enabled
        self.run_immediately = run_immediately
        self._pid_manager = PIDFileManager(pid_file)
        self._sync_callback: Callable[[], bool] | None = None
        self._stop_event = threading.Event()
        self._running = False
        self._previous_handlers: dict[int, object] = {}
        self.stats = DaemonStats()

    @property
    def pid_file(self) -> Path:
        return self._pid_manager.pid_file

    def set_sync_callback(self, callback: Callable[[], bool]) -> None:
        """Set the function run on every cycle."""
        self._sync_callback = callback

    # =========================================================================
    # Signals
    # =========================================================================

    def _install_signal_handlers(self) -> None:
        for signum in (signal.SIGTERM, signal.SIGINT):
            self._previous_handlers[signum] = signal.signal(signum, self._on_signal)
        logger.debug("Signal handlers installed for SIGTERM and SIGINT")

    def _restore_signal_handlers(self) -> None:
        for signum, handler in self._previous_handlers.items():
            signal.signal(signum, handler)  # type: ignore[arg-type]
        self._previous_handlers.clear()

    def _on_signal(self, signum: int, frame: object) -> None:
        logger.info(f"Received {signal.Signals(signum).name}, shutting down after this cycle")
        self._stop_event.set()

    # =========================================================================
    # Cycle
    # =========================================================================

    def run_cycle(self) -> int:
        """
        Run the callback once and update statistics.

        Returns:
            Seconds to wait before the next cycle
        """
        if self._sync_callback is None:
            logger.warning("No sync callback configured, skipping cycle")
            return self.interval

        self.stats.cycle_count += 1
        self.stats.last_cycle_at = datetime.now()
        logger.info(f"Starting sync cycle #{self.stats.cycle_count}")

        try:
            success = self._sync_callback()
        except Exception as e:
            self.stats.error_count += 1
            self.stats.last_error = str(e)
            logger.error(
                f"Sync cycle failed: {e}; retrying in {self.retry_delay}s", exc_info=True
            )
            return self.retry_delay

        if success:
            self.stats.success_count += 1
            self.stats.last_error = None
            logger.info("Sync cycle completed successfully")
        else:
            self.stats.partial_count += 1
            logger.warning("Sync cycle completed with failed sources")
        return self.interval

    def wait(self, seconds: float) -> bool:
        """
        Wait for the next cycle.

        Returns:
            True if the wait ran out, False if a stop was requested
        """
        return not self._stop_event.wait(seconds)

    def run(self) -> None:
        """
        Run cycles until a stop is requested.

        Raises:
            DaemonAlreadyRunningError: If another daemon holds the PID file.
            PIDFileError: If the PID file cannot be managed.
        """
        if not self.enabled:
            logger.info("Background sync is disabled (sync_enabled: false), not starting")
            return

        self._pid_manager.create()
        logger.info(
            f"Daemon started (PID: {os.getpid()}, interval: {self.interval}s, "
            f"retry delay: {self.retry_delay}s)"
        )
        if threading.current_thread() is threading.main_thread():
            self._install_signal_handlers()

        self._running = True
        self._stop_event.clear()
        self.stats = DaemonStats()

        try:
            delay = self.run_cycle() if self.run_immediately else self.interval
            while not self._stop_event.is_set():
                logger.debug(f"Next sync cycle in {delay} seconds")
                if not self.wait(delay):
                    break
                delay = self.run_cycle()
        finally:
            self._running = False
            self._restore_signal_handlers()
            self._pid_manager.remove()
            logger.info("Daemon scheduler stopped")

    def stop(self) -> None:
        """Request shutdown at the next wait."""
        logger.info("Stop requested")
        self._stop_event.set()

    def is_running(self) -> bool:
        return self._running

    @classmethod
    def get_running_pid(cls, pid_file: Path | None = None) -> int | None:
        """Get the PID of the running daemon, or None."""
        return PIDFileManager(pid_file).running_pid()

    @classmethod
    def stop_running_daemon(cls, pid_file: Path | None = None) -> bool:
        """
        Send SIGTERM to the running daemon.

        Returns:
            True if the signal was sent, False if no daemon is running.
        """
        pid = cls.get_running_pid(pid_file)
        if pid is None:
            logger.info("No running daemon found")
            return False

        try:
            os.kill(pid, signal.SIGTERM)
        except ProcessLookupError:
            logger.warning(f"Daemon process {pid} not found")
            return False
        except PermissionError:
            logger.error(f"Permission denied sending signal to PID {pid}")
            return False
        logger.info(f"Sent SIGTERM to daemon (PID: {pid})")
        return True


__all__ = [
    "DaemonScheduler",
    "DaemonStats",
    "DaemonError",
    "PIDFileError",
    "DaemonAlreadyRunningError",
    "PIDFileManager",
    "is_process_running",
    "DEFAULT_PID_DIR",
    "DEFAULT_PID_FILE",
    "DEFAULT_INTERVAL",
    "DEFAULT_RETRY_DELAY",
]
