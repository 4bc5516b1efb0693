"""
Retry components for QA Harness.

This module provides the retry policy model, error classification and the
executor that re-runs failed test operations with exponential backoff.
"""

from .classifier import classify_error, classifier_from_mapping
from .executor import (
    RetryExecutor,
    compute_delay,
    delay_schedule,
    execute_with_retry,
    retry,
)
from .models import AttemptRecord, RetryPolicy

__all__ = [
    "RetryExecutor",
    "RetryPolicy",
    "AttemptRecord",
    "classify_error",
    "classifier_from_mapping",
    "compute_delay",
    "delay_schedule",
    "execute_with_retry",
    "retry",
]
