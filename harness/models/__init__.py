"""Shared types for QA Harness."""

from .types import (
    ErrorKind,
    OwaspCategory,
    PerformanceTestType,
    RiskLevel,
    SecurityType,
    Severity,
    TestCategory,
    TestLevel,
    TestOperationId,
)

__all__ = [
    "TestOperationId",
    "ErrorKind",
    "SecurityType",
    "OwaspCategory",
    "Severity",
    "PerformanceTestType",
    "TestCategory",
    "TestLevel",
    "RiskLevel",
]
