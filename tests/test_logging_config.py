"""
Unit tests for logging configuration.

Tests structured JSON logging, file rotation, output formats for
development and CI environments, and the engine event helpers.
"""

import json
import logging
import sys
from unittest.mock import MagicMock
import pytest

from harness.core.logging_config import (
    ContextAdapter,
    StructuredFormatter,
    TextFormatter,
    get_logger,
    log_performance_evaluation,
    log_retry_attempt,
    log_security_findings,
    setup_logging,
)
from harness.models.types import SecurityType, Severity, OwaspCategory
from harness.performance.models import (
    PerformanceEvaluation,
    PerformanceReport,
    PerformanceViolation,
    ReportStatus,
    ViolationKind,
)
from harness.security.models import SecurityFinding


def make_record(msg="Test message", level=logging.INFO, **attrs):
    record = logging.LogRecord(
        name="harness.retry.executor",
        level=level,
        pathname="",
        lineno=0,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in attrs.items():
        setattr(record, key, value)
    return record


def installed_handlers(root):
    return [
        h for h in root.handlers if isinstance(h.formatter, (StructuredFormatter, TextFormatter))
    ]


@pytest.fixture
def restore_root_logger():
    """Restore root logger handlers and level after setup_logging tests."""
    root = logging.getLogger()
    level = root.level
    yield root
    for handler in list(root.handlers):
        if isinstance(handler.formatter, (StructuredFormatter, TextFormatter)):
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)


class TestStructuredFormatter:
    """Test cases for StructuredFormatter."""

    def test_format_basic_log_record(self):
        """Test formatting basic log record."""
        formatter = StructuredFormatter("run-123")

        log_data = json.loads(formatter.format(make_record()))

        assert log_data["level"] == "INFO"
        assert log_data["component"] == "harness.retry.executor"
        assert log_data["run_id"] == "run-123"
        assert log_data["message"] == "Test message"
        assert log_data["timestamp"].endswith("Z")

    def test_format_with_metadata(self):
        """Test formatting log record with metadata."""
        formatter = StructuredFormatter("run-123")
        record = make_record(metadata={"operation_id": "LoginTests.test_login", "attempt": 2})

        log_data = json.loads(formatter.format(record))

        assert log_data["metadata"]["operation_id"] == "LoginTests.test_login"
        assert log_data["metadata"]["attempt"] == 2

    def test_format_with_exception(self):
        """Test formatting log record with exception information."""
        formatter = StructuredFormatter("run-123")

        try:
            raise ValueError("Test exception")
        except ValueError:
            record = make_record(level=logging.ERROR)
            record.exc_info = sys.exc_info()

        log_data = json.loads(formatter.format(record))

        assert "ValueError: Test exception" in log_data["exception"]

    def test_format_with_context_fields(self):
        """Test context attributes are lifted to the top level."""
        formatter = StructuredFormatter("run-123")
        record = make_record(operation_id="Cart.test_add", attempt=3, error_kind="TIMEOUT")

        log_data = json.loads(formatter.format(record))

        assert log_data["operation_id"] == "Cart.test_add"
        assert log_data["attempt"] == 3
        assert log_data["error_kind"] == "TIMEOUT"


class TestTextFormatter:
    """Test cases for TextFormatter."""

    def test_format_includes_run_and_metadata(self):
        """Test text output carries the short run id and metadata pairs."""
        formatter = TextFormatter("abcdef123456")
        record = make_record(metadata={"attempt": 1})

        formatted = formatter.format(record)

        assert "Test message" in formatted
        assert "(run: abcdef12)" in formatted
        assert "attempt=1" in formatted


class TestLoggingSetup:
    """Test cases for logging setup functions."""

    def test_setup_logging_development_mode(self, temp_config, restore_root_logger):
        """Test logging setup writes to a rotating log file."""
        temp_config.log_level = "DEBUG"

        root = setup_logging(temp_config, "run-123")

        assert root.level == logging.DEBUG
        handler_types = [type(h).__name__ for h in installed_handlers(root)]
        assert handler_types == ["StreamHandler", "RotatingFileHandler"]

        logging.getLogger("harness.test").info("Test message")
        for handler in root.handlers:
            handler.flush()
        assert "Test message" in temp_config.get_log_file_path().read_text(encoding="utf-8")

    def test_setup_logging_ci_mode(self, temp_config, restore_root_logger):
        """Test CI mode logs to the console only."""
        temp_config.ci_mode = True
        temp_config.log_format = "json"

        root = setup_logging(temp_config, "run-123")

        handlers = installed_handlers(root)
        assert len(handlers) == 1
        assert isinstance(handlers[0].formatter, StructuredFormatter)
        assert not temp_config.logs_dir.exists()

    def test_setup_logging_text_format(self, temp_config, restore_root_logger):
        """Test text format uses the human-readable formatter."""
        root = setup_logging(temp_config, "run-123")

        assert isinstance(installed_handlers(root)[0].formatter, TextFormatter)

    def test_setup_logging_replaces_own_handlers(self, temp_config, restore_root_logger):
        """Test repeated setup replaces its handlers and keeps foreign ones."""
        temp_config.ci_mode = True
        foreign = logging.NullHandler()
        restore_root_logger.addHandler(foreign)
        try:
            setup_logging(temp_config, "run-1")
            root = setup_logging(temp_config, "run-2")

            handlers = installed_handlers(root)
            assert len(handlers) == 1
            assert handlers[0].formatter.run_id == "run-2"
            assert foreign in root.handlers
        finally:
            restore_root_logger.removeHandler(foreign)

    def test_get_logger(self):
        """Test getting logger instance."""
        logger = get_logger("harness.component")

        assert isinstance(logger, logging.Logger)
        assert logger.name == "harness.component"

    def test_get_logger_with_context(self):
        """Test context is merged into every record."""
        logger = get_logger("harness.component", operation_id="Cart.test_add")

        assert isinstance(logger, ContextAdapter)
        msg, kwargs = logger.process("hello", {"extra": {"attempt": 1}})
        assert kwargs["extra"] == {"attempt": 1, "operation_id": "Cart.test_add"}


class TestEventHelpers:
    """Test cases for the engine event logging helpers."""

    def test_log_retry_attempt(self):
        """Test retry attempts are logged as warnings with metadata."""
        logger = MagicMock()

        log_retry_attempt(logger, "Cart.test_add", 1, 3, "TIMEOUT", 1000.0, "x" * 300)

        logger.warning.assert_called_once()
        message = logger.warning.call_args[0][0]
        metadata = logger.warning.call_args[1]["extra"]["metadata"]
        assert "Attempt 1/3 of Cart.test_add failed with TIMEOUT" in message
        assert message.endswith("x" * 100)
        assert metadata["delay_ms"] == 1000.0

    def test_log_performance_evaluation_levels(self):
        """Test failed evaluations log at WARNING and passes at INFO."""
        logger = MagicMock()
        report = PerformanceReport("Cart.test_add", ReportStatus.OK, count=1)
        failed = PerformanceEvaluation(
            "Cart.test_add",
            False,
            report,
            [PerformanceViolation(ViolationKind.RESPONSE_TIME, "too slow")],
        )
        passed = PerformanceEvaluation("Cart.test_add", True, report)

        log_performance_evaluation(logger, failed)
        log_performance_evaluation(logger, passed)

        levels = [c[0][0] for c in logger.log.call_args_list]
        assert levels == [logging.WARNING, logging.INFO]
        assert logger.log.call_args_list[0][1]["extra"]["metadata"]["violations"] == ["too slow"]

    def test_log_security_findings(self):
        """Test findings are summarized as category and pattern pairs."""
        logger = MagicMock()
        finding = SecurityFinding(
            SecurityType.XSS, OwaspCategory.A03_INJECTION, "script_tag", "<script", Severity.HIGH
        )

        log_security_findings(logger, "input", [])
        log_security_findings(logger, "input", [finding])

        logger.debug.assert_called_once()
        metadata = logger.warning.call_args[1]["extra"]["metadata"]
        assert metadata["findings"] == ["XSS:script_tag"]
