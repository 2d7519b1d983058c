"""
Tests for logging helpers.
"""

import json
import logging
from pathlib import Path

import pytest

from blogsmith.utils.logging import (
    LogContext,
    StructuredFormatter,
    context_filter,
    log_performance,
    setup_logging,
)


class TestLogging:
    """Test structured logging and log context."""

    def test_log_context_nesting(self):
        """Test that nested contexts restore the outer values."""
        with LogContext(document="a.md"):
            with LogContext(document="b.md", stage="render"):
                assert context_filter.context == {"document": "b.md", "stage": "render"}
            assert context_filter.context == {"document": "a.md"}
        assert context_filter.context == {}

    def test_structured_formatter(self):
        """Test that records become JSON with context fields."""
        record = logging.LogRecord("blogsmith.test", logging.INFO, __file__, 1, "built %s", ("x",), None)
        with LogContext(document="a.md"):
            context_filter.filter(record)

        payload = json.loads(StructuredFormatter().format(record))

        assert payload["message"] == "built x"
        assert payload["level"] == "INFO"
        assert payload["document"] == "a.md"

    def test_setup_logging_file(self, temp_dir):
        """Test that a log file receives JSON lines."""
        log_file = temp_dir / "build.log"
        setup_logging(log_level="DEBUG", log_file_path=log_file)

        logging.getLogger("blogsmith.test").info("hello")
        for handler in logging.getLogger().handlers:
            handler.flush()

        lines = [json.loads(line) for line in log_file.read_text(encoding="utf-8").splitlines()]
        assert any(line["message"] == "hello" for line in lines)

        for handler in list(logging.getLogger().handlers):
            handler.close()
            logging.getLogger().removeHandler(handler)

    def test_setup_logging_replaces_handlers(self, temp_dir):
        """Test that reconfiguring closes the old handlers instead of stacking them."""
        root_logger = logging.getLogger()
        setup_logging(log_level="INFO", log_file_path=temp_dir / "first.log")
        first_file = next(h for h in root_logger.handlers if isinstance(h, logging.FileHandler))

        setup_logging(log_level="INFO", log_file_path=temp_dir / "second.log")

        file_handlers = [h for h in root_logger.handlers if isinstance(h, logging.FileHandler)]
        assert len(file_handlers) == 1
        assert Path(file_handlers[0].baseFilename).name == "second.log"
        assert first_file not in root_logger.handlers
        assert first_file.stream is None
        assert len(root_logger.handlers) == 2

        for handler in list(root_logger.handlers):
            handler.close()
            root_logger.removeHandler(handler)

    def test_log_performance_propagates(self):
        """Test that the decorator returns results and re-raises errors."""

        @log_performance
        def ok(value):
            return value * 2

        @log_performance
        def broken():
            raise RuntimeError("boom")

        assert ok(2) == 4
        with pytest.raises(RuntimeError, match="boom"):
            broken()
        assert "function" not in context_filter.context
