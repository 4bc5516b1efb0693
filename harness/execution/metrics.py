"""
Run-level execution metrics.

Counts started, passed, failed, skipped and retried test operations for a
single test run and summarizes them for reporting.
"""

import logging
import threading
import uuid
from collections import Counter, deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Deque, Dict, List, Optional

from ..models.types import TestOperationId
from ..retry.classifier import classify_error
from ..retry.models import AttemptRecord

logger = logging.getLogger(__name__)

RECENT_FAILURE_LIMIT = 50


class TestOutcome(Enum):
    """Final outcome of a test operation."""

    __test__ = False

    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class FailureRecord:
    """A failed test operation kept for diagnostics."""

    operation_id: TestOperationId
    error_type: str
    error_kind: str
    message: str
    failed_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "operation_id": str(self.operation_id),
            "error_type": self.error_type,
            "error_kind": self.error_kind,
            "message": self.message,
            "failed_at": self.failed_at.isoformat(),
        }


@dataclass
class ExecutionSummary:
    """Snapshot of the counters for a test run."""

    run_id: str
    started_at: datetime
    total: int = 0
    passed: int = 0
    failed: int = 0
    skipped: int = 0
    retried: int = 0
    total_duration_ms: float = 0.0
    min_duration_ms: Optional[float] = None
    max_duration_ms: Optional[float] = None
    error_types: Dict[str, int] = field(default_factory=dict)
    retries_by_operation: Dict[str, int] = field(default_factory=dict)

    @property
    def completed(self) -> int:
        return self.passed + self.failed + self.skipped

    @property
    def average_duration_ms(self) -> Optional[float]:
        """Average duration over completed operations."""
        if not self.completed:
            return None
        return self.total_duration_ms / self.completed

    @property
    def success_rate(self) -> float:
        """Percentage of executed (non-skipped) operations that passed."""
        executed = self.passed + self.failed
        if not executed:
            return 0.0
        return self.passed / executed * 100.0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "run_id": self.run_id,
            "started_at": self.started_at.isoformat(),
            "total": self.total,
            "passed": self.passed,
            "failed": self.failed,
            "skipped": self.skipped,
            "retried": self.retried,
            "total_duration_ms": self.total_duration_ms,
            "min_duration_ms": self.min_duration_ms,
            "max_duration_ms": self.max_duration_ms,
            "average_duration_ms": self.average_duration_ms,
            "success_rate": self.success_rate,
            "error_types": dict(self.error_types),
            "retries_by_operation": dict(self.retries_by_operation),
        }


class ExecutionMetricsCollector:
    """Thread-safe collector of run-level execution counters."""

    def __init__(self, run_id: Optional[str] = None):
        self.run_id = run_id or uuid.uuid4().hex[:8]
        self._lock = threading.Lock()
        self._reset_state()

    def _reset_state(self) -> None:
        self._started_at = datetime.now(timezone.utc)
        self._total = 0
        self._outcomes: Counter = Counter()
        self._durations: List[float] = []
        self._retries: Counter = Counter()
        self._error_types: Counter = Counter()
        self._failures: Deque[FailureRecord] = deque(maxlen=RECENT_FAILURE_LIMIT)

    def record_start(self, operation_id: Any) -> None:
        """Count a test operation as started."""
        key = TestOperationId.of(operation_id)
        with self._lock:
            self._total += 1
        logger.debug(f"Test started: {key}")

    def record_completion(
        self,
        operation_id: Any,
        outcome: TestOutcome,
        duration_ms: float,
        error: Optional[BaseException] = None,
    ) -> None:
        """Record the final outcome of a test operation."""
        key = TestOperationId.of(operation_id)
        failure = None
        if outcome == TestOutcome.FAILED and error is not None:
            failure = FailureRecord(
                operation_id=key,
                error_type=type(error).__name__,
                error_kind=classify_error(error).name,
                message=str(error),
                failed_at=datetime.now(timezone.utc),
            )

        with self._lock:
            self._outcomes[outcome] += 1
            self._durations.append(max(0.0, float(duration_ms)))
            if failure is not None:
                self._error_types[failure.error_type] += 1
                self._failures.append(failure)

        logger.debug(
            f"Test completed: {key} [{outcome.name}, {duration_ms:.0f}ms]"
        )

    def record_retry(self, operation_id: Any) -> None:
        """Count one retry of a test operation."""
        key = TestOperationId.of(operation_id)
        with self._lock:
            self._retries[str(key)] += 1

    def retry_listener(self, operation_id: Any) -> Callable[[AttemptRecord], None]:
        """Build an ``on_retry`` hook for a RetryExecutor."""
        key = TestOperationId.of(operation_id)

        def on_retry(record: AttemptRecord) -> None:
            self.record_retry(key)

        return on_retry

    def summary(self) -> ExecutionSummary:
        """Get a snapshot of the current counters."""
        with self._lock:
            durations = list(self._durations)
            return ExecutionSummary(
                run_id=self.run_id,
                started_at=self._started_at,
                total=self._total,
                passed=self._outcomes[TestOutcome.PASSED],
                failed=self._outcomes[TestOutcome.FAILED],
                skipped=self._outcomes[TestOutcome.SKIPPED],
                retried=sum(self._retries.values()),
                total_duration_ms=sum(durations),
                min_duration_ms=min(durations) if durations else None,
                max_duration_ms=max(durations) if durations else None,
                error_types=dict(self._error_types),
                retries_by_operation=dict(self._retries),
            )

    def recent_failures(self) -> List[FailureRecord]:
        """Get the most recent failures, oldest first."""
        with self._lock:
            return list(self._failures)

    def reset(self) -> None:
        """Clear all counters and start a new run window."""
        with self._lock:
            self._reset_state()
