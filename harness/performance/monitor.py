"""
Performance monitoring for test operations.

Keeps an append-only log of response-time samples per test operation and
evaluates them against declared thresholds. Samples may be recorded from
many worker threads at once, one per simulated user.
"""

import logging
import math
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterator, List, Optional, Tuple, Union

from ..core.exceptions import InvalidArgumentError
from ..core.logging_config import log_performance_evaluation
from ..models.types import TestOperationId
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
from .resources import ResourceSampler

logger = logging.getLogger(__name__)

OperationKey = Union[TestOperationId, str]

# Allowed overrun of the declared test duration before it counts as a violation
DURATION_TOLERANCE = 1.1


@dataclass
class _OperationLog:
    lock: threading.Lock = field(default_factory=threading.Lock)
    samples: List[PerformanceSample] = field(default_factory=list)
    resources: List[ResourceSample] = field(default_factory=list)
    started_at: Optional[float] = None
    stopped_at: Optional[float] = None
    # Set under the lock once reset has removed the log from the registry
    discarded: bool = False

    def snapshot(self):
        with self.lock:
            return (
                tuple(self.samples),
                tuple(self.resources),
                self.started_at,
                self.stopped_at,
            )


def _percentile(sorted_values: List[float], percentile: float) -> float:
    """Nearest-rank percentile of an ascending, non-empty list."""
    rank = max(1, math.ceil(percentile / 100.0 * len(sorted_values)))
    return sorted_values[rank - 1]


class PerformanceMonitor:
    """Records per-operation timing samples and checks them against thresholds."""

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        timer: Callable[[], float] = time.perf_counter,
        sampler: Optional[ResourceSampler] = None,
    ):
        """
        Initialize the monitor.

        Args:
            clock: Source of sample timestamps in seconds
            timer: High-resolution timer used by ``timed``
            sampler: Process sampler reused by ``sample_resources``; created
                on first use when not given
        """
        self._clock = clock
        self._timer = timer
        self._logs: Dict[TestOperationId, _OperationLog] = {}
        self._registry_lock = threading.Lock()
        self._sampler = sampler

    def _log_for(self, operation_id: OperationKey, create: bool = True) -> Optional[_OperationLog]:
        key = TestOperationId.of(operation_id)
        log = self._logs.get(key)
        if log is None and create:
            with self._registry_lock:
                log = self._logs.setdefault(key, _OperationLog())
        return log

    @contextmanager
    def _live_log(self, operation_id: OperationKey) -> Iterator[_OperationLog]:
        """Hold the lock of the operation's registered log."""
        while True:
            log = self._log_for(operation_id)
            with log.lock:
                if log.discarded:
                    # Reset between lookup and lock; retry with the new log
                    continue
                yield log
                return

    def _resource_sampler(self) -> ResourceSampler:
        # One long-lived sampler, since psutil measures CPU since the previous call
        with self._registry_lock:
            if self._sampler is None:
                self._sampler = ResourceSampler()
            return self._sampler

    def start(self, operation_id: OperationKey) -> None:
        """Open the monitoring window for an operation."""
        self._resource_sampler()
        now = self._clock()
        with self._live_log(operation_id) as log:
            log.started_at = now
            log.stopped_at = None
        logger.info(f"Started performance monitoring for {operation_id}")

    def stop(self, operation_id: OperationKey) -> None:
        """Close the monitoring window for an operation."""
        now = self._clock()
        with self._live_log(operation_id) as log:
            if log.started_at is None and log.samples:
                log.started_at = min(s.timestamp for s in log.samples)
            log.stopped_at = now
        logger.info(f"Stopped performance monitoring for {operation_id}")

    def record_request(self, operation_id: OperationKey, response_time_ms: float) -> None:
        """
        Append a response-time sample.

        Negative and non-finite values are recorded as zero with the
        ``clamped`` flag set instead of being rejected.
        """
        key = TestOperationId.of(operation_id)
        try:
            value = float(response_time_ms)
        except (TypeError, ValueError):
            raise InvalidArgumentError(
                f"Response time must be numeric, got {response_time_ms!r}",
                argument="response_time_ms",
                expected="number",
            ) from None

        clamped = False
        if not math.isfinite(value) or value < 0:
            logger.debug(f"Clamping invalid response time {value!r} for {key} to 0")
            value = 0.0
            clamped = True

        sample = PerformanceSample(key, self._clock(), value, clamped)
        with self._live_log(key) as log:
            log.samples.append(sample)

    def record_resource_usage(
        self, operation_id: OperationKey, cpu_percent: float, memory_bytes: int
    ) -> None:
        """Append a CPU and memory reading for an operation."""
        sample = ResourceSample(self._clock(), float(cpu_percent), int(memory_bytes))
        with self._live_log(operation_id) as log:
            log.resources.append(sample)

    def sample_resources(
        self, operation_id: OperationKey, sampler: Optional[ResourceSampler] = None
    ) -> ResourceSample:
        """
        Read current process usage and record it for an operation.

        Without an explicit ``sampler`` the monitor's own sampler is reused,
        so CPU usage covers the time since the previous reading (or since
        ``start``).
        """
        reading = (sampler or self._resource_sampler()).read()
        self.record_resource_usage(operation_id, reading.cpu_percent, reading.memory_bytes)
        return reading

    @contextmanager
    def timed(self, operation_id: OperationKey) -> Iterator[None]:
        """Record the wall time of the enclosed block as one sample."""
        started = self._timer()
        try:
            yield
        finally:
            self.record_request(operation_id, (self._timer() - started) * 1000.0)

    def samples(self, operation_id: OperationKey) -> Tuple[PerformanceSample, ...]:
        """Get a snapshot of the recorded samples in recording order."""
        log = self._log_for(operation_id, create=False)
        if log is None:
            return ()
        return log.snapshot()[0]

    def operations(self) -> List[TestOperationId]:
        """Get the operations that currently have a log."""
        with self._registry_lock:
            return list(self._logs)

    def report(
        self,
        operation_id: OperationKey,
        thresholds: Optional[PerformanceThresholds] = None,
    ) -> PerformanceReport:
        """
        Compute aggregate statistics over the current samples.

        Args:
            operation_id: Operation to report on
            thresholds: When given, ``violates_max_response_time`` is filled in

        Returns:
            Report with status NO_DATA and empty statistics when nothing
            has been recorded
        """
        key = TestOperationId.of(operation_id)
        return self._build_report(key, self._snapshot(key), thresholds)

    def _snapshot(self, key: TestOperationId):
        log = self._log_for(key, create=False)
        if log is None:
            return (), (), None, None
        return log.snapshot()

    def _build_report(
        self,
        key: TestOperationId,
        snapshot,
        thresholds: Optional[PerformanceThresholds],
    ) -> PerformanceReport:
        samples, resources, started_at, stopped_at = snapshot

        peak_cpu = max((r.cpu_percent for r in resources), default=None)
        peak_memory = max((r.memory_bytes for r in resources), default=None)

        if not samples:
            return PerformanceReport(
                operation_id=key,
                status=ReportStatus.NO_DATA,
                peak_cpu_percent=peak_cpu,
                peak_memory_bytes=peak_memory,
            )

        values = sorted(s.response_time_ms for s in samples)
        count = len(values)

        window_start = started_at if started_at is not None else min(s.timestamp for s in samples)
        window_end = stopped_at if stopped_at is not None else self._clock()
        elapsed = max(0.0, window_end - window_start)

        violates = None
        if thresholds is not None:
            violates = values[-1] > thresholds.max_response_time_ms

        return PerformanceReport(
            operation_id=key,
            status=ReportStatus.OK,
            count=count,
            min_ms=values[0],
            max_ms=values[-1],
            mean_ms=sum(values) / count,
            p95_ms=_percentile(values, 95),
            violates_max_response_time=violates,
            observed_throughput=count / elapsed if elapsed > 0 else None,
            elapsed_seconds=elapsed,
            clamped_samples=sum(1 for s in samples if s.clamped),
            peak_cpu_percent=peak_cpu,
            peak_memory_bytes=peak_memory,
        )

    def evaluate(
        self, operation_id: OperationKey, thresholds: PerformanceThresholds
    ) -> PerformanceEvaluation:
        """
        Compare the recorded samples against declared thresholds.

        Every sample above ``max_response_time_ms`` is reported as its own
        violation. An operation with no samples never passes.
        """
        key = TestOperationId.of(operation_id)
        snapshot = self._snapshot(key)
        samples, stopped_at = snapshot[0], snapshot[3]
        report = self._build_report(key, snapshot, thresholds)

        if not report.has_data:
            evaluation = PerformanceEvaluation(
                operation_id=key,
                passed=False,
                report=report,
                violations=[
                    PerformanceViolation(
                        ViolationKind.NO_DATA,
                        f"No performance samples recorded for {key}",
                    )
                ],
            )
            log_performance_evaluation(logger, evaluation)
            return evaluation

        violations: List[PerformanceViolation] = []
        limit = thresholds.max_response_time_ms

        for index, sample in enumerate(samples):
            if sample.response_time_ms > limit:
                violations.append(
                    PerformanceViolation(
                        ViolationKind.RESPONSE_TIME,
                        f"Response time exceeded at sample {index}: "
                        f"{sample.response_time_ms:g}ms > {limit:g}ms",
                        sample_index=index,
                        observed=sample.response_time_ms,
                        threshold=limit,
                    )
                )
        response_time_violations = len(violations)

        expected = thresholds.expected_throughput
        if (
            expected > 0
            and report.elapsed_seconds is not None
            and report.elapsed_seconds >= thresholds.duration_seconds
        ):
            observed = report.observed_throughput or 0.0
            if observed < expected:
                violations.append(
                    PerformanceViolation(
                        ViolationKind.THROUGHPUT,
                        f"Throughput below expected: {observed:.2f} req/s < {expected:g} req/s",
                        observed=observed,
                        threshold=expected,
                    )
                )

        if report.peak_cpu_percent is not None and report.peak_cpu_percent > thresholds.max_cpu_usage:
            violations.append(
                PerformanceViolation(
                    ViolationKind.CPU,
                    f"Max CPU usage exceeded: {report.peak_cpu_percent:.1f}% > "
                    f"{thresholds.max_cpu_usage:g}%",
                    observed=report.peak_cpu_percent,
                    threshold=thresholds.max_cpu_usage,
                )
            )

        if (
            report.peak_memory_bytes is not None
            and report.peak_memory_bytes > thresholds.max_memory_usage_bytes
        ):
            violations.append(
                PerformanceViolation(
                    ViolationKind.MEMORY,
                    f"Max memory usage exceeded: {report.peak_memory_bytes} bytes > "
                    f"{thresholds.max_memory_usage_bytes} bytes",
                    observed=report.peak_memory_bytes,
                    threshold=thresholds.max_memory_usage_bytes,
                )
            )

        allowed = thresholds.duration_seconds * DURATION_TOLERANCE
        if stopped_at is not None and thresholds.duration_seconds > 0 and report.elapsed_seconds > allowed:
            violations.append(
                PerformanceViolation(
                    ViolationKind.DURATION,
                    f"Test duration exceeded: {report.elapsed_seconds:.1f}s > "
                    f"{thresholds.duration_seconds:g}s",
                    observed=report.elapsed_seconds,
                    threshold=thresholds.duration_seconds,
                )
            )

        evaluation = PerformanceEvaluation(
            operation_id=key,
            passed=not violations,
            report=report,
            violations=violations,
            response_time_violation_count=response_time_violations,
        )
        log_performance_evaluation(logger, evaluation)
        return evaluation

    def reset(self, operation_id: OperationKey) -> None:
        """Discard everything recorded for one operation."""
        key = TestOperationId.of(operation_id)
        with self._registry_lock:
            log = self._logs.pop(key, None)
        if log is not None:
            with log.lock:
                log.discarded = True
        logger.debug(f"Reset performance samples for {key}")

    def reset_all(self) -> None:
        """Discard everything recorded for every operation."""
        with self._registry_lock:
            logs = list(self._logs.values())
            self._logs.clear()
        for log in logs:
            with log.lock:
                log.discarded = True


_default_monitor: Optional[PerformanceMonitor] = None
_default_lock = threading.Lock()


def default_monitor() -> PerformanceMonitor:
    """Get the process-wide monitor, creating it on first use."""
    global _default_monitor
    with _default_lock:
        if _default_monitor is None:
            _default_monitor = PerformanceMonitor()
        return _default_monitor
