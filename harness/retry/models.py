"""
Data models for the retry executor.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, Optional

from ..core.exceptions import InvalidPolicyError
from ..models.types import ErrorKind


def _coerce_kinds(value: Optional[Iterable[Any]], field_name: str) -> FrozenSet[ErrorKind]:
    if value is None:
        return frozenset()
    if isinstance(value, (str, ErrorKind)):
        value = [value]

    kinds = set()
    for item in value:
        if isinstance(item, ErrorKind):
            kinds.add(item)
            continue
        try:
            kinds.add(ErrorKind[str(item).upper()])
        except KeyError:
            raise InvalidPolicyError(
                f"Unknown error kind in {field_name}: {item!r}",
                policy_type="RetryPolicy",
                field_name=field_name,
                value=item,
            ) from None
    return frozenset(kinds)


@dataclass(frozen=True)
class RetryPolicy:
    """Retry and backoff configuration for a single test operation."""

    max_attempts: int = 3
    initial_delay_ms: float = 1000.0
    backoff_multiplier: float = 1.5
    max_delay_ms: float = 30000.0
    retryable_error_kinds: FrozenSet[ErrorKind] = field(default_factory=frozenset)
    non_retryable_error_kinds: FrozenSet[ErrorKind] = field(default_factory=frozenset)
    retry_on_any_error: bool = True

    def __post_init__(self):
        """Validate configuration."""
        object.__setattr__(
            self,
            "retryable_error_kinds",
            _coerce_kinds(self.retryable_error_kinds, "retryable_error_kinds"),
        )
        object.__setattr__(
            self,
            "non_retryable_error_kinds",
            _coerce_kinds(self.non_retryable_error_kinds, "non_retryable_error_kinds"),
        )

        if not isinstance(self.max_attempts, int) or self.max_attempts < 1:
            raise self._invalid("max_attempts must be a positive integer", "max_attempts")
        for name in ("initial_delay_ms", "backoff_multiplier", "max_delay_ms"):
            value = getattr(self, name)
            numeric = isinstance(value, (int, float)) and not isinstance(value, bool)
            if not numeric or not math.isfinite(value):
                raise self._invalid(f"{name} must be a finite number", name)
        if self.backoff_multiplier < 1.0:
            raise self._invalid("backoff_multiplier must be >= 1.0", "backoff_multiplier")
        if self.initial_delay_ms < 0:
            raise self._invalid("initial_delay_ms must be non-negative", "initial_delay_ms")
        if self.max_delay_ms < 0:
            raise self._invalid("max_delay_ms must be non-negative", "max_delay_ms")

    def _invalid(self, message: str, field_name: str) -> InvalidPolicyError:
        return InvalidPolicyError(
            f"Invalid retry policy: {message}",
            policy_type="RetryPolicy",
            field_name=field_name,
            value=getattr(self, field_name),
        )

    @classmethod
    def no_retry(cls) -> "RetryPolicy":
        """Policy that runs the operation exactly once."""
        return cls(max_attempts=1, initial_delay_ms=0.0, max_delay_ms=0.0)

    def allows_retry_of(self, kind: ErrorKind) -> bool:
        """Check whether the error kind is eligible for another attempt."""
        if kind in self.non_retryable_error_kinds:
            return False
        if (
            self.retryable_error_kinds
            and kind not in self.retryable_error_kinds
            and not self.retry_on_any_error
        ):
            return False
        return True

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "max_attempts": self.max_attempts,
            "initial_delay_ms": self.initial_delay_ms,
            "backoff_multiplier": self.backoff_multiplier,
            "max_delay_ms": self.max_delay_ms,
            "retryable_error_kinds": sorted(k.name for k in self.retryable_error_kinds),
            "non_retryable_error_kinds": sorted(
                k.name for k in self.non_retryable_error_kinds
            ),
            "retry_on_any_error": self.retry_on_any_error,
        }


@dataclass(frozen=True)
class AttemptRecord:
    """Outcome of one failed attempt."""

    attempt: int
    error_kind: ErrorKind
    error_message: str
    delay_ms: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "attempt": self.attempt,
            "error_kind": self.error_kind.name,
            "error_message": self.error_message,
            "delay_ms": self.delay_ms,
        }
