"""
Base exception classes for QA Harness.

Provides a hierarchy of exceptions for the error kinds the execution engine
surfaces to its caller: bad policies, failed operations, exhausted retries
and malformed arguments.
"""

from typing import Optional, Dict, Any, List


class HarnessError(Exception):
    """Base exception class for all QA Harness errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.context = context or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for structured logging."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "context": self.context,
        }


class InvalidPolicyError(HarnessError):
    """Raised when a retry policy or performance thresholds are malformed."""

    def __init__(
        self,
        message: str,
        policy_type: Optional[str] = None,
        field_name: Optional[str] = None,
        value: Any = None,
    ):
        super().__init__(message, "INVALID_POLICY")
        self.policy_type = policy_type
        self.field_name = field_name
        self.value = value
        self.context.update(
            {
                "policy_type": policy_type,
                "field": field_name,
                "value": value,
            }
        )


class OperationFailure(HarnessError):
    """
    Raised when a wrapped test operation fails.

    Operations may raise this directly to tag their failure with an explicit
    error kind; the retry executor also raises it to surface an error it
    decided not to retry.
    """

    def __init__(
        self,
        message: str,
        kind: Any = None,
        attempt: Optional[int] = None,
        retryable: Optional[bool] = None,
        original_error: Optional[BaseException] = None,
    ):
        super().__init__(message, "OPERATION_FAILED")
        self.kind = kind
        self.attempt = attempt
        self.retryable = retryable
        self.original_error = original_error
        self.context.update(
            {
                "kind": getattr(kind, "name", kind),
                "attempt": attempt,
                "retryable": retryable,
                "original_error": (
                    type(original_error).__name__ if original_error else None
                ),
            }
        )


class ExhaustedRetriesError(HarnessError):
    """Raised after the final failed attempt of a retried operation."""

    def __init__(
        self,
        message: str,
        attempts: int,
        last_failure: OperationFailure,
        history: Optional[List[Any]] = None,
        operation_id: Optional[str] = None,
    ):
        super().__init__(message, "RETRIES_EXHAUSTED")
        self.attempts = attempts
        self.last_failure = last_failure
        self.history = history or []
        self.operation_id = operation_id
        self.context.update(
            {
                "attempts": attempts,
                "operation_id": operation_id,
                "last_failure": last_failure.to_dict(),
            }
        )


class InvalidArgumentError(HarnessError):
    """Raised when structurally malformed input reaches an engine entry point."""

    def __init__(
        self,
        message: str,
        argument: Optional[str] = None,
        expected: Optional[str] = None,
    ):
        super().__init__(message, "INVALID_ARGUMENT")
        self.argument = argument
        self.expected = expected
        self.context.update(
            {
                "argument": argument,
                "expected": expected,
            }
        )


class ValidationError(HarnessError):
    """Raised when validation fails."""

    def __init__(
        self,
        message: str,
        validation_type: Optional[str] = None,
        violations: Optional[list] = None,
    ):
        super().__init__(message, "VALIDATION_FAILED")
        self.validation_type = validation_type
        self.violations = violations or []
        self.context.update(
            {
                "validation_type": validation_type,
                "violations": violations,
            }
        )


class MetadataError(HarnessError):
    """Raised when test metadata cannot be loaded."""

    def __init__(
        self,
        message: str,
        source: Optional[str] = None,
        operation_id: Optional[str] = None,
    ):
        super().__init__(message, "METADATA_ERROR")
        self.source = source
        self.operation_id = operation_id
        self.context.update(
            {
                "source": source,
                "operation_id": operation_id,
            }
        )
