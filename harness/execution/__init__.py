"""
Execution bookkeeping for QA Harness.

This module provides run-level counters for test outcomes and retries.
"""

from .metrics import (
    ExecutionMetricsCollector,
    ExecutionSummary,
    FailureRecord,
    TestOutcome,
)

__all__ = [
    "ExecutionMetricsCollector",
    "ExecutionSummary",
    "FailureRecord",
    "TestOutcome",
]
