"""
Performance monitoring components for QA Harness.

This module provides per-operation response-time recording, aggregate
reporting and threshold evaluation for performance tests.
"""

from .models import (
    PerformanceEvaluation,
    PerformanceReport,
    PerformanceSample,
    PerformanceThresholds,
    PerformanceViolation,
    ReportStatus,
    ResourceSample,
    ViolationKind,
)
from .monitor import PerformanceMonitor, default_monitor
from .resources import ResourceSampler

__all__ = [
    "PerformanceMonitor",
    "PerformanceThresholds",
    "PerformanceSample",
    "PerformanceReport",
    "PerformanceEvaluation",
    "PerformanceViolation",
    "ReportStatus",
    "ResourceSample",
    "ResourceSampler",
    "ViolationKind",
    "default_monitor",
]
