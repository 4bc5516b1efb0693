"""
Retry executor for test operations.

Wraps a test operation in a retry loop with exponential backoff. Each failed
attempt is classified into an ``ErrorKind`` and checked against the policy
before another attempt is made.
"""

import functools
import logging
import time
from typing import Any, Callable, List, Optional, TypeVar

from ..core.exceptions import ExhaustedRetriesError, OperationFailure
from ..core.logging_config import log_retry_attempt
from ..models.types import ErrorKind
from .classifier import ErrorClassifier, classify_error
from .models import AttemptRecord, RetryPolicy

logger = logging.getLogger(__name__)

T = TypeVar("T")


def compute_delay(policy: RetryPolicy, attempt: int) -> float:
    """
    Delay in milliseconds before the attempt following ``attempt``.

    Computed iteratively and clamped as soon as ``max_delay_ms`` is reached,
    so large attempt numbers never overflow.
    """
    if attempt < 1:
        raise ValueError("attempt numbers start at 1")

    delay = float(policy.initial_delay_ms)
    if delay == 0 or policy.backoff_multiplier == 1.0:
        return min(delay, policy.max_delay_ms)

    for _ in range(attempt - 1):
        if delay >= policy.max_delay_ms:
            break
        delay *= policy.backoff_multiplier
    return min(delay, policy.max_delay_ms)


def delay_schedule(policy: RetryPolicy) -> List[float]:
    """Delays between consecutive attempts when every attempt fails."""
    return [compute_delay(policy, attempt) for attempt in range(1, policy.max_attempts)]


class RetryExecutor:
    """Executes operations under a RetryPolicy."""

    def __init__(
        self,
        classifier: ErrorClassifier = classify_error,
        sleep: Callable[[float], None] = time.sleep,
        on_retry: Optional[Callable[[AttemptRecord], None]] = None,
    ):
        """
        Initialize the executor.

        Args:
            classifier: Maps a raised exception to an ErrorKind
            sleep: Blocking wait taking seconds; injectable for tests
            on_retry: Called with the failed attempt before each retry
        """
        self.classifier = classifier
        self.sleep = sleep
        self.on_retry = on_retry

    def execute(
        self,
        operation: Callable[[], T],
        policy: RetryPolicy,
        operation_id: Any = None,
    ) -> T:
        """
        Execute an operation with retry logic.

        Args:
            operation: Zero-argument callable; raising means failure
            policy: Retry policy for this operation
            operation_id: Identifier used in logs and errors

        Returns:
            The operation's return value from the first successful attempt

        Raises:
            OperationFailure: If the failure is not eligible for retry
            ExhaustedRetriesError: If every allowed attempt failed
        """
        label = str(operation_id) if operation_id is not None else _describe(operation)
        history: List[AttemptRecord] = []
        attempt = 1

        while True:
            try:
                return operation()
            except Exception as e:
                kind = self.classifier(e)
                failure = _as_failure(e, kind, attempt)

                if not policy.allows_retry_of(kind):
                    failure.retryable = False
                    failure.context["retryable"] = False
                    history.append(AttemptRecord(attempt, kind, str(e)))
                    logger.error(
                        f"Not retrying {label}: error kind '{kind.name}' is not retryable "
                        f"(attempt {attempt})",
                        extra={
                            "metadata": {
                                "operation_id": label,
                                "attempt": attempt,
                                "error_kind": kind.name,
                            }
                        },
                    )
                    if failure is e:
                        raise
                    raise failure from e

                if attempt >= policy.max_attempts:
                    history.append(AttemptRecord(attempt, kind, str(e)))
                    logger.error(
                        f"All {policy.max_attempts} attempts of {label} failed",
                        extra={
                            "metadata": {
                                "operation_id": label,
                                "attempts": attempt,
                                "error_kind": kind.name,
                            }
                        },
                    )
                    raise ExhaustedRetriesError(
                        f"{label} failed after {attempt} attempts: {e}",
                        attempts=attempt,
                        last_failure=failure,
                        history=history,
                        operation_id=label,
                    ) from e

                delay_ms = compute_delay(policy, attempt)
                record = AttemptRecord(attempt, kind, str(e), delay_ms)
                history.append(record)
                log_retry_attempt(
                    logger, label, attempt, policy.max_attempts, kind.name, delay_ms, str(e)
                )
                if self.on_retry is not None:
                    self.on_retry(record)

                if delay_ms > 0:
                    self.sleep(delay_ms / 1000.0)
                attempt += 1


def _as_failure(error: Exception, kind: ErrorKind, attempt: int) -> OperationFailure:
    if isinstance(error, OperationFailure):
        error.kind = kind
        error.attempt = attempt
        error.context.update({"kind": kind.name, "attempt": attempt})
        return error
    return OperationFailure(
        f"Attempt {attempt} failed with {kind.name}: {error}",
        kind=kind,
        attempt=attempt,
        retryable=True,
        original_error=error,
    )


def _describe(operation: Callable[..., Any]) -> str:
    return getattr(operation, "__qualname__", None) or repr(operation)


_default_executor = RetryExecutor()


def execute_with_retry(
    operation: Callable[[], T],
    policy: RetryPolicy,
    operation_id: Any = None,
) -> T:
    """Run ``operation`` under ``policy`` with the default executor."""
    return _default_executor.execute(operation, policy, operation_id)


def retry(policy: RetryPolicy, executor: Optional[RetryExecutor] = None):
    """
    Decorator that retries a test function under a policy.

    Args:
        policy: Retry policy applied to every call
        executor: Executor to use; defaults to a module-level one

    Returns:
        Decorator function
    """
    def decorator(func):
        operation_id = f"{func.__module__}.{func.__qualname__}"

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            runner = executor or _default_executor
            return runner.execute(lambda: func(*args, **kwargs), policy, operation_id)

        return wrapper
    return decorator
