"""
Unit tests for the exception hierarchy.
"""

from harness.core.exceptions import (
    ExhaustedRetriesError,
    HarnessError,
    InvalidArgumentError,
    InvalidPolicyError,
    MetadataError,
    OperationFailure,
    ValidationError,
)
from harness.models.types import ErrorKind


class TestExceptions:
    """Test cases for HarnessError subclasses."""

    def test_all_errors_share_base(self):
        """Test every engine error is a HarnessError."""
        for error_cls in (
            InvalidPolicyError,
            InvalidArgumentError,
            ValidationError,
            MetadataError,
        ):
            assert issubclass(error_cls, HarnessError)
        assert issubclass(OperationFailure, HarnessError)
        assert issubclass(ExhaustedRetriesError, HarnessError)

    def test_invalid_policy_to_dict(self):
        """Test policy errors carry the offending field."""
        error = InvalidPolicyError("bad", policy_type="RetryPolicy", field_name="max_attempts", value=0)

        result = error.to_dict()

        assert result["error_type"] == "InvalidPolicyError"
        assert result["error_code"] == "INVALID_POLICY"
        assert result["context"] == {"policy_type": "RetryPolicy", "field": "max_attempts", "value": 0}

    def test_exhausted_retries_context(self):
        """Test the exhausted error embeds its last failure."""
        failure = OperationFailure(
            "Attempt 3 failed with TIMEOUT: slow",
            kind=ErrorKind.TIMEOUT,
            attempt=3,
            retryable=True,
            original_error=TimeoutError("slow"),
        )

        error = ExhaustedRetriesError("gave up", attempts=3, last_failure=failure, operation_id="A.test")

        assert error.error_code == "RETRIES_EXHAUSTED"
        assert error.context["last_failure"]["context"]["kind"] == "TIMEOUT"
        assert error.context["last_failure"]["context"]["original_error"] == "TimeoutError"
        assert error.history == []
