"""
QA Harness - Execution engine for annotated test operations

Retries flaky test operations with exponential backoff, aggregates
performance samples against declared thresholds, and validates inputs,
responses and credentials against known vulnerability signatures.
"""

__version__ = "0.1.0"
__author__ = "QA Harness Team"

from .core.config import Config
from .core.exceptions import HarnessError
from .core.logging_config import setup_logging
from .models.types import ErrorKind, SecurityType, TestOperationId
from .performance.monitor import PerformanceMonitor
from .performance.models import PerformanceThresholds
from .retry.executor import RetryExecutor, execute_with_retry
from .retry.models import RetryPolicy
from .security.validator import SecurityValidator

__all__ = [
    "Config",
    "HarnessError",
    "setup_logging",
    "ErrorKind",
    "SecurityType",
    "TestOperationId",
    "PerformanceMonitor",
    "PerformanceThresholds",
    "RetryExecutor",
    "RetryPolicy",
    "execute_with_retry",
    "SecurityValidator",
]
