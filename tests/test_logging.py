"""
Tests for logging configuration.
"""

import json
import logging

from trackflow.utils import LoggingConfig, get_logger, setup_trackflow_logging
from trackflow_tasks.utils.logging import ColoredFormatter, JSONFormatter


def _record(message="hello", **extra):
    record = logging.LogRecord("trackflow_tasks.test", logging.WARNING, __file__, 10,
                               message, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestLoggingConfig:
    """Test trackflow library logging setup."""

    def test_log_file(self, temp_dir):
        """Test file logging under a log directory."""
        LoggingConfig.reset()
        try:
            setup_trackflow_logging("DEBUG", log_dir=str(temp_dir / "logs"))
            get_logger("trackflow.tests").info("written to file")
            for handler in logging.getLogger("trackflow").handlers:
                handler.flush()

            assert "written to file" in (temp_dir / "logs" / "trackflow.log").read_text()
        finally:
            LoggingConfig.reset()

    def test_setup_runs_once(self):
        """Test repeated setup does not stack handlers."""
        LoggingConfig.reset()
        try:
            LoggingConfig.setup_logging()
            LoggingConfig.setup_logging()
            assert len(logging.getLogger("trackflow").handlers) == 1
        finally:
            LoggingConfig.reset()


class TestFormatters:
    """Test task log formatters."""

    def test_json_formatter_includes_extras(self):
        """Test extra record fields are serialized."""
        payload = json.loads(JSONFormatter().format(_record(task_id="t-1", user_id="u1")))

        assert payload["message"] == "hello"
        assert payload["level"] == "WARNING"
        assert payload["task_id"] == "t-1"
        assert payload["user_id"] == "u1"

    def test_colored_formatter_restores_levelname(self):
        """Test the record is left unchanged after formatting."""
        record = _record()
        output = ColoredFormatter("%(levelname)s %(message)s").format(record)

        assert "\033[33m" in output
        assert record.levelname == "WARNING"
