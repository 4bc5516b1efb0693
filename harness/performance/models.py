"""
Data models for performance monitoring.

Defines declared thresholds, recorded samples and the derived report and
evaluation structures handed to reporting sinks.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from ..core.exceptions import InvalidPolicyError
from ..models.types import PerformanceTestType, TestOperationId

MEGABYTE = 1024 * 1024


class ReportStatus(Enum):
    """Whether a report was computed from recorded samples."""

    OK = "ok"
    NO_DATA = "no_data"


class ViolationKind(Enum):
    """Kind of threshold violation."""

    NO_DATA = "no_data"
    RESPONSE_TIME = "response_time"
    THROUGHPUT = "throughput"
    CPU = "cpu"
    MEMORY = "memory"
    DURATION = "duration"


@dataclass(frozen=True)
class PerformanceThresholds:
    """Declared performance requirements for a test operation."""

    max_response_time_ms: float = 5000.0
    concurrent_users: int = 1
    duration_seconds: float = 60.0
    max_cpu_usage: float = 80.0
    max_memory_usage_bytes: int = 512 * MEGABYTE
    expected_throughput: float = 0.0
    test_type: PerformanceTestType = PerformanceTestType.LOAD

    def __post_init__(self):
        """Validate thresholds."""
        if isinstance(self.test_type, str):
            try:
                object.__setattr__(
                    self, "test_type", PerformanceTestType[self.test_type.upper()]
                )
            except KeyError:
                raise self._invalid("unknown test_type", "test_type") from None

        if self.max_response_time_ms <= 0:
            raise self._invalid("max_response_time_ms must be positive", "max_response_time_ms")
        if not isinstance(self.concurrent_users, int) or self.concurrent_users < 1:
            raise self._invalid("concurrent_users must be a positive integer", "concurrent_users")
        if self.duration_seconds < 0:
            raise self._invalid("duration_seconds must be non-negative", "duration_seconds")
        if not 0 <= self.max_cpu_usage <= 100:
            raise self._invalid("max_cpu_usage must be within [0, 100]", "max_cpu_usage")
        if self.max_memory_usage_bytes < 0:
            raise self._invalid("max_memory_usage_bytes must be non-negative", "max_memory_usage_bytes")
        if self.expected_throughput < 0:
            raise self._invalid("expected_throughput must be non-negative", "expected_throughput")

    def _invalid(self, message: str, field_name: str) -> InvalidPolicyError:
        return InvalidPolicyError(
            f"Invalid performance thresholds: {message}",
            policy_type="PerformanceThresholds",
            field_name=field_name,
            value=getattr(self, field_name),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "max_response_time_ms": self.max_response_time_ms,
            "concurrent_users": self.concurrent_users,
            "duration_seconds": self.duration_seconds,
            "max_cpu_usage": self.max_cpu_usage,
            "max_memory_usage_bytes": self.max_memory_usage_bytes,
            "expected_throughput": self.expected_throughput,
            "test_type": self.test_type.name,
        }


@dataclass(frozen=True)
class PerformanceSample:
    """A single recorded response time."""

    operation_id: TestOperationId
    timestamp: float
    response_time_ms: float
    clamped: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "operation_id": str(self.operation_id),
            "timestamp": self.timestamp,
            "response_time_ms": self.response_time_ms,
            "clamped": self.clamped,
        }


@dataclass(frozen=True)
class ResourceSample:
    """Process CPU and memory usage at a point in time."""

    timestamp: float
    cpu_percent: float
    memory_bytes: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "cpu_percent": self.cpu_percent,
            "memory_bytes": self.memory_bytes,
        }


@dataclass
class PerformanceReport:
    """Aggregate statistics over the samples recorded for one operation."""

    operation_id: TestOperationId
    status: ReportStatus
    count: int = 0
    min_ms: Optional[float] = None
    max_ms: Optional[float] = None
    mean_ms: Optional[float] = None
    p95_ms: Optional[float] = None
    violates_max_response_time: Optional[bool] = None
    observed_throughput: Optional[float] = None
    elapsed_seconds: Optional[float] = None
    clamped_samples: int = 0
    peak_cpu_percent: Optional[float] = None
    peak_memory_bytes: Optional[int] = None

    @property
    def has_data(self) -> bool:
        """Check if the report was computed from at least one sample."""
        return self.status == ReportStatus.OK

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "operation_id": str(self.operation_id),
            "status": self.status.name,
            "count": self.count,
            "min_ms": self.min_ms,
            "max_ms": self.max_ms,
            "mean_ms": self.mean_ms,
            "p95_ms": self.p95_ms,
            "violates_max_response_time": self.violates_max_response_time,
            "observed_throughput": self.observed_throughput,
            "elapsed_seconds": self.elapsed_seconds,
            "clamped_samples": self.clamped_samples,
            "peak_cpu_percent": self.peak_cpu_percent,
            "peak_memory_bytes": self.peak_memory_bytes,
        }


@dataclass(frozen=True)
class PerformanceViolation:
    """A single threshold breach."""

    kind: ViolationKind
    description: str
    sample_index: Optional[int] = None
    observed: Optional[float] = None
    threshold: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "kind": self.kind.name,
            "description": self.description,
            "sample_index": self.sample_index,
            "observed": self.observed,
            "threshold": self.threshold,
        }


@dataclass
class PerformanceEvaluation:
    """Result of comparing a report against declared thresholds."""

    operation_id: TestOperationId
    passed: bool
    report: PerformanceReport
    violations: List[PerformanceViolation] = field(default_factory=list)
    response_time_violation_count: int = 0

    @property
    def descriptions(self) -> List[str]:
        """Get the violation descriptions in order."""
        return [violation.description for violation in self.violations]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "operation_id": str(self.operation_id),
            "passed": self.passed,
            "violations": [violation.to_dict() for violation in self.violations],
            "response_time_violation_count": self.response_time_violation_count,
            "report": self.report.to_dict(),
        }
