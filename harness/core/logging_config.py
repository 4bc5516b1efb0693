"""
Logging configuration for QA Harness.

Provides structured JSON logging with file rotation and different output formats
for development and CI environments, plus helpers that emit the engine's
retry, performance and security events in a consistent shape.
"""

import logging
import logging.handlers
import json
import sys
from datetime import datetime, timezone
from typing import Any, Iterable

from .config import Config


class StructuredFormatter(logging.Formatter):
    """Custom formatter for structured JSON logging."""

    def __init__(self, run_id: str):
        super().__init__()
        self.run_id = run_id

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as structured JSON."""
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "component": record.name,
            "run_id": self.run_id,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        if hasattr(record, "metadata"):
            log_entry["metadata"] = record.metadata

        for attr in ["operation_id", "attempt", "error_kind", "duration", "status"]:
            if hasattr(record, attr):
                log_entry[attr] = getattr(record, attr)

        return json.dumps(log_entry, ensure_ascii=False, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable formatter for development."""

    def __init__(self, run_id: str):
        super().__init__()
        self.run_id = run_id

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as human-readable text."""
        timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")

        message = f"[{timestamp}] {record.levelname:8} {record.name:20} | {record.getMessage()}"
        message += f" (run: {self.run_id[:8]})"

        if hasattr(record, "metadata") and record.metadata:
            metadata_str = " | ".join(f"{k}={v}" for k, v in record.metadata.items())
            message += f" | {metadata_str}"

        if record.exc_info:
            message += "\n" + self.formatException(record.exc_info)

        return message


def setup_logging(config: Config, run_id: str) -> logging.Logger:
    """
    Set up logging configuration based on environment and config.

    Handlers installed by an earlier call are replaced. Other handlers on
    the root logger are left in place.

    Args:
        config: Configuration object with logging settings
        run_id: Unique test run identifier for log correlation

    Returns:
        Configured root logger
    """
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        if isinstance(handler.formatter, (StructuredFormatter, TextFormatter)):
            root_logger.removeHandler(handler)
            handler.close()

    log_level = getattr(logging, config.log_level)
    root_logger.setLevel(log_level)

    if config.log_format == "json":
        formatter = StructuredFormatter(run_id)
    else:
        formatter = TextFormatter(run_id)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    console_handler.setLevel(log_level)
    root_logger.addHandler(console_handler)

    # File handler for non-CI environments
    if not config.is_ci_mode:
        file_handler = logging.handlers.RotatingFileHandler(
            config.get_log_file_path(),
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        file_handler.setLevel(log_level)
        root_logger.addHandler(file_handler)

    logger = logging.getLogger("harness.logging")
    logger.info(
        "Logging configured",
        extra={
            "metadata": {
                "run_id": run_id,
                "log_level": config.log_level,
                "log_format": config.log_format,
                "ci_mode": config.is_ci_mode,
            }
        },
    )

    return root_logger


class ContextAdapter(logging.LoggerAdapter):
    """Logger adapter that merges its context into every record's extras."""

    def process(self, msg, kwargs):
        if "extra" not in kwargs:
            kwargs["extra"] = {}
        kwargs["extra"].update(self.extra)
        return msg, kwargs


def get_logger(name: str, **context) -> logging.Logger:
    """
    Get a logger with optional context.

    Args:
        name: Logger name (typically module name)
        **context: Additional context to include in log records

    Returns:
        Configured logger with context
    """
    logger = logging.getLogger(name)

    if context:
        return ContextAdapter(logger, context)

    return logger


def log_retry_attempt(
    logger: logging.Logger,
    operation_id: Any,
    attempt: int,
    max_attempts: int,
    error_kind: str,
    delay_ms: float,
    error: str = "",
):
    """
    Log a failed attempt that is about to be retried.

    Args:
        logger: Logger instance
        operation_id: Identifier of the retried operation
        attempt: Number of the attempt that just failed
        max_attempts: Attempt budget of the policy
        error_kind: Classified kind of the failure
        delay_ms: Delay before the next attempt in milliseconds
        error: Error message, truncated for readability
    """
    logger.warning(
        f"Attempt {attempt}/{max_attempts} of {operation_id} failed with {error_kind}, "
        f"retrying in {delay_ms:.0f}ms: {error[:100]}",
        extra={
            "metadata": {
                "operation_id": str(operation_id),
                "attempt": attempt,
                "max_attempts": max_attempts,
                "error_kind": error_kind,
                "delay_ms": delay_ms,
            }
        },
    )


def log_performance_evaluation(logger: logging.Logger, evaluation: Any):
    """
    Log the outcome of a performance threshold evaluation.

    Args:
        logger: Logger instance
        evaluation: PerformanceEvaluation to report
    """
    level = logging.INFO if evaluation.passed else logging.WARNING
    status = "PASSED" if evaluation.passed else "FAILED"

    logger.log(
        level,
        f"Performance evaluation for {evaluation.operation_id}: {status} "
        f"({len(evaluation.violations)} violations)",
        extra={
            "metadata": {
                "operation_id": str(evaluation.operation_id),
                "passed": evaluation.passed,
                "violations": evaluation.descriptions,
            }
        },
    )


def log_security_findings(logger: logging.Logger, check: str, findings: Iterable[Any]):
    """
    Log security findings produced by a validation call.

    Args:
        logger: Logger instance
        check: Name of the validation that produced the findings
        findings: SecurityFinding objects
    """
    findings = list(findings)
    if not findings:
        logger.debug(f"Security check {check}: no findings")
        return

    logger.warning(
        f"Security check {check}: {len(findings)} findings",
        extra={
            "metadata": {
                "check": check,
                "findings": [
                    f"{f.category.name}:{f.matched_pattern}" for f in findings
                ],
            }
        },
    )
