"""
Tests for the logging configuration module.
"""

import logging
import os
import time

import pytest

from phonedir.utils import logging as log_utils
from phonedir.utils.logging import (
    AUDIT_LOGGER_NAME,
    ROOT_LOGGER_NAME,
    ColoredFormatter,
    cleanup_old_logs,
    get_log_file_path,
    get_log_level_from_env,
    get_logger,
    setup_logging,
    setup_sync_audit_logger,
)


@pytest.fixture(autouse=True)
def reset_loggers(monkeypatch):
    """Remove handlers added by a test so log files are closed."""
    monkeypatch.delenv("PHONEDIR_LOG_FILE", raising=False)
    monkeypatch.delenv("PHONEDIR_LOG_LEVEL", raising=False)
    monkeypatch.delenv("PHONEDIR_DEBUG", raising=False)
    yield
    for name in (ROOT_LOGGER_NAME, AUDIT_LOGGER_NAME):
        logger = logging.getLogger(name)
        for handler in list(logger.handlers):
            handler.close()
            logger.removeHandler(handler)
    log_utils._configured_log_dir = None


class TestLogLevelFromEnv:
    """Tests for environment controlled log levels."""

    def test_default_is_info(self):
        """Test INFO is used without environment variables."""
        assert get_log_level_from_env() == logging.INFO

    @pytest.mark.parametrize(
        "value,expected",
        [("debug", logging.DEBUG), ("WARN", logging.WARNING), ("bogus", logging.INFO)],
    )
    def test_log_level_variable(self, monkeypatch, value, expected):
        """Test PHONEDIR_LOG_LEVEL names a level."""
        monkeypatch.setenv("PHONEDIR_LOG_LEVEL", value)
        assert get_log_level_from_env() == expected

    def test_debug_flag_wins(self, monkeypatch):
        """Test PHONEDIR_DEBUG forces DEBUG."""
        monkeypatch.setenv("PHONEDIR_LOG_LEVEL", "ERROR")
        monkeypatch.setenv("PHONEDIR_DEBUG", "true")
        assert get_log_level_from_env() == logging.DEBUG


class TestLogFilePath:
    """Tests for log file location."""

    @pytest.mark.parametrize("value", ["none", "Disabled", ""])
    def test_disabled(self, monkeypatch, value):
        """Test file logging can be switched off."""
        monkeypatch.setenv("PHONEDIR_LOG_FILE", value)
        assert get_log_file_path() is None

    def test_explicit_file(self, monkeypatch, tmp_path):
        """Test an explicit file path is used as given."""
        monkeypatch.setenv("PHONEDIR_LOG_FILE", str(tmp_path / "x.log"))
        assert get_log_file_path() == tmp_path / "x.log"

    def test_dated_file_in_directory(self, tmp_path):
        """Test the default file name carries the date."""
        path = get_log_file_path(tmp_path)
        assert path.parent == tmp_path
        assert path.name.startswith("phonedir_")
        assert path.suffix == ".log"


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_console_only(self):
        """Test disabling file logging leaves one console handler."""
        logger = setup_logging(enable_file_logging=False, use_colors=False)
        assert logger.name == ROOT_LOGGER_NAME
        assert len(logger.handlers) == 1
        assert logger.level == logging.INFO
        assert logger.propagate is False

    def test_verbose_sets_debug(self):
        """Test verbose mode lowers the level to DEBUG."""
        logger = setup_logging(verbose=True, enable_file_logging=False)
        assert logger.level == logging.DEBUG
        assert logger.handlers[0].level == logging.DEBUG

    def test_file_handler_writes(self, tmp_path):
        """Test messages reach the log file."""
        log_file = tmp_path / "logs" / "run.log"
        logger = setup_logging(log_file=log_file, use_colors=False)
        get_logger("sync.reconciler").info("synced HQ")
        for handler in logger.handlers:
            handler.flush()
        assert "synced HQ" in log_file.read_text(encoding="utf-8")

    def test_repeated_setup_replaces_handlers(self):
        """Test calling setup twice does not duplicate handlers."""
        setup_logging(enable_file_logging=False)
        logger = setup_logging(enable_file_logging=False)
        assert len(logger.handlers) == 1

    def test_explicit_level(self):
        """Test an explicit level applies to the console handler."""
        logger = setup_logging(level=logging.ERROR, enable_file_logging=False)
        assert logger.level == logging.ERROR
        assert logger.handlers[0].level == logging.ERROR


class TestGetLogger:
    """Tests for module loggers."""

    def test_prefixes_package_name(self):
        """Test loggers live below the phonedir logger."""
        assert get_logger("storage").name == "phonedir.storage"
        assert get_logger("phonedir.cli").name == "phonedir.cli"


class TestColoredFormatter:
    """Tests for ColoredFormatter."""

    def _record(self):
        return logging.LogRecord("phonedir", logging.ERROR, __file__, 1, "boom", None, None)

    def test_no_colors_when_disabled(self):
        """Test plain output when colors are off."""
        formatter = ColoredFormatter("%(levelname)s: %(message)s", use_colors=False)
        assert formatter.format(self._record()) == "ERROR: boom"

    def test_colors_applied(self):
        """Test ANSI codes wrap the level and message."""
        formatter = ColoredFormatter("%(levelname)s: %(message)s", use_colors=False)
        formatter.use_colors = True
        output = formatter.format(self._record())
        assert ColoredFormatter.COLORS["ERROR"] in output
        assert output.endswith(ColoredFormatter.RESET)

    def test_original_record_untouched(self):
        """Test coloring does not leak into other handlers."""
        formatter = ColoredFormatter("%(levelname)s", use_colors=False)
        formatter.use_colors = True
        record = self._record()
        formatter.format(record)
        assert record.levelname == "ERROR"


class TestCleanupOldLogs:
    """Tests for log retention."""

    def _make_logs(self, directory, prefix, count):
        for i in range(count):
            path = directory / f"{prefix}_{i:02d}.log"
            path.write_text("x")
            stamp = time.time() - (count - i) * 60
            os.utime(path, (stamp, stamp))

    def test_keeps_newest(self, tmp_path):
        """Test only keep_count files of each kind remain."""
        self._make_logs(tmp_path, "phonedir", 5)
        self._make_logs(tmp_path, "sync_audit", 3)

        assert cleanup_old_logs(tmp_path, keep_count=2) == 4
        assert sorted(p.name for p in tmp_path.glob("phonedir_*.log")) == [
            "phonedir_03.log",
            "phonedir_04.log",
        ]
        assert len(list(tmp_path.glob("sync_audit_*.log"))) == 2

    def test_zero_disables(self, tmp_path):
        """Test keep_count 0 deletes nothing."""
        self._make_logs(tmp_path, "phonedir", 3)
        assert cleanup_old_logs(tmp_path, keep_count=0) == 0
        assert len(list(tmp_path.glob("*.log"))) == 3

    def test_missing_directory(self, tmp_path):
        """Test a missing directory is not an error."""
        assert cleanup_old_logs(tmp_path / "missing") == 0


class TestSyncAuditLogger:
    """Tests for the sync audit log."""

    def test_writes_to_file(self, tmp_path):
        """Test audit lines land in their own file only."""
        path = tmp_path / "audit" / "sync_audit_test.log"
        logger = setup_sync_audit_logger(path)
        logger.info("HQ insert cn=ada")
        for handler in logger.handlers:
            handler.flush()

        text = path.read_text(encoding="utf-8")
        assert "Sync audit session started" in text
        assert "HQ insert cn=ada" in text
        assert logger.propagate is False

    def test_default_path_uses_configured_dir(self, tmp_path):
        """Test the audit file follows the directory given to setup_logging."""
        setup_logging(log_dir=tmp_path, enable_file_logging=False)
        logger = setup_sync_audit_logger()
        paths = list(tmp_path.glob("sync_audit_*.log"))
        assert len(paths) == 1
        assert logger.handlers[0].baseFilename == str(paths[0])
