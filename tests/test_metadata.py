"""
Unit tests for test metadata declarations and the metadata registry.
"""

import pytest
from pydantic import ValidationError as PydanticValidationError

from harness.core.config import Config
from harness.core.exceptions import (
    InvalidArgumentError,
    InvalidPolicyError,
    MetadataError,
    ValidationError,
)
from harness.core.metadata import (
    MetadataRegistry,
    PerformanceDeclaration,
    RetryDeclaration,
    SecurityDeclaration,
    TestMetadata,
)
from harness.models.types import (
    ErrorKind,
    OwaspCategory,
    PerformanceTestType,
    RiskLevel,
    SecurityType,
    Severity,
    TestCategory,
    TestOperationId,
)
from harness.performance.models import MEGABYTE
from harness.retry.models import RetryPolicy


class TestTestOperationId:
    """Test cases for TestOperationId."""

    def test_from_parts(self):
        """Test ids are built as ClassName.method."""
        assert str(TestOperationId.from_parts("LoginTests", "test_login")) == "LoginTests.test_login"

    def test_ids_compare_by_name(self):
        """Test equal names give equal, hashable ids."""
        assert TestOperationId.of("A.test") == TestOperationId("A.test")
        assert len({TestOperationId("A.test"), TestOperationId.of("A.test")}) == 1

    @pytest.mark.parametrize("value", ["", "   ", None, 42])
    def test_invalid_ids_rejected(self, value):
        """Test empty or non-string ids are rejected."""
        with pytest.raises(InvalidArgumentError):
            TestOperationId(value)


class TestDeclarations:
    """Test cases for the individual declaration models."""

    def test_retry_declaration_defaults(self):
        """Test an empty retry declaration matches the default policy."""
        assert RetryDeclaration().to_policy() == RetryPolicy()

    def test_retry_declaration_kind_names(self):
        """Test error kinds are parsed by name in any case."""
        declaration = RetryDeclaration(retry_on=["timeout"], abort_on="ASSERTION")

        policy = declaration.to_policy()

        assert policy.retryable_error_kinds == frozenset({ErrorKind.TIMEOUT})
        assert policy.non_retryable_error_kinds == frozenset({ErrorKind.ASSERTION})

    def test_retry_declaration_invalid_policy(self):
        """Test a shrinking backoff fails when converted to a policy."""
        with pytest.raises(InvalidPolicyError):
            RetryDeclaration(backoff_multiplier=0.9).to_policy()

    def test_performance_declaration_megabytes(self):
        """Test memory limits are declared in megabytes and converted to bytes."""
        thresholds = PerformanceDeclaration(max_memory_mb=256, type="spike").to_thresholds()

        assert thresholds.max_memory_usage_bytes == 256 * MEGABYTE
        assert thresholds.test_type == PerformanceTestType.SPIKE

    def test_security_declaration_defaults(self):
        """Test an empty security declaration checks authentication."""
        declaration = SecurityDeclaration()

        assert declaration.types == [SecurityType.AUTHENTICATION]
        assert declaration.level == Severity.MEDIUM

    def test_security_declaration_requirements(self):
        """Test declarations summarize through the validator."""
        declaration = SecurityDeclaration(types=["XSS"], sensitive_data=True)

        summary = declaration.requirements()

        assert summary.requirements[0] == "Security checks: XSS"
        assert "Sensitive data declared without ENCRYPTION checks" in summary.warnings

    def test_unknown_field_rejected(self):
        """Test misspelled declaration fields are rejected."""
        with pytest.raises(PydanticValidationError):
            RetryDeclaration(max_attempt=3)


class TestTestMetadata:
    """Test cases for TestMetadata."""

    def test_declared_policy_wins(self):
        """Test a declared retry policy overrides the configured default."""
        metadata = TestMetadata(operation_id="A.test", retry={"max_attempts": 5})

        assert metadata.retry_policy(Config()).max_attempts == 5

    def test_configured_default_policy(self):
        """Test the configured default applies without a declaration."""
        config = Config()
        config.retry_enabled = False

        assert TestMetadata(operation_id="A.test").retry_policy(config).max_attempts == 1

    def test_policy_without_config(self):
        """Test the library default applies without config or declaration."""
        assert TestMetadata(operation_id="A.test").retry_policy() == RetryPolicy()

    def test_thresholds_absent(self):
        """Test metadata without a performance declaration has no thresholds."""
        assert TestMetadata(operation_id="A.test").thresholds() is None

    def test_empty_operation_id_rejected(self):
        """Test metadata needs a non-empty operation id."""
        with pytest.raises(PydanticValidationError):
            TestMetadata(operation_id="  ")


class TestMetadataRegistry:
    """Test cases for MetadataRegistry."""

    def test_from_yaml(self, metadata_yaml):
        """Test loading declarations from a YAML file."""
        registry = MetadataRegistry.from_yaml(metadata_yaml)

        assert len(registry) == 3
        assert "LoginTests.test_valid_login" in registry
        login = registry.get("LoginTests.test_valid_login")
        assert login.category == TestCategory.SMOKE
        assert login.risk == RiskLevel.HIGH
        assert login.tags == ["login", "smoke"]

    def test_yaml_retry_policy(self, metadata_yaml):
        """Test declared retry values become the policy."""
        policy = MetadataRegistry.from_yaml(metadata_yaml).get("LoginTests.test_valid_login").retry_policy()

        assert policy.max_attempts == 4
        assert policy.initial_delay_ms == 500
        assert policy.backoff_multiplier == 2.0
        assert policy.max_delay_ms == 4000
        assert policy.non_retryable_error_kinds == frozenset({ErrorKind.ASSERTION})

    def test_yaml_thresholds(self, metadata_yaml):
        """Test declared performance values become thresholds."""
        thresholds = MetadataRegistry.from_yaml(metadata_yaml).get(
            "CheckoutTests.test_checkout_load"
        ).thresholds()

        assert thresholds.max_response_time_ms == 250
        assert thresholds.concurrent_users == 10
        assert thresholds.max_memory_usage_bytes == 256 * MEGABYTE
        assert thresholds.expected_throughput == 5
        assert thresholds.test_type == PerformanceTestType.STRESS

    def test_yaml_security(self, metadata_yaml):
        """Test declared security values are parsed by name."""
        security = MetadataRegistry.from_yaml(metadata_yaml).get("AdminTests.test_user_search").security

        assert security.types == [SecurityType.SQL_INJECTION, SecurityType.XSS, SecurityType.AUTHORIZATION]
        assert security.owasp_categories == [
            OwaspCategory.A03_INJECTION,
            OwaspCategory.A01_BROKEN_ACCESS_CONTROL,
        ]
        assert security.required_roles == ["ADMIN"]
        assert security.level == Severity.HIGH

    def test_select(self, metadata_yaml):
        """Test selecting by category and tag."""
        registry = MetadataRegistry.from_yaml(metadata_yaml)

        assert [m.operation_id for m in registry.select(category=TestCategory.SECURITY)] == [
            "AdminTests.test_user_search"
        ]
        assert [m.operation_id for m in registry.select(tag="login")] == [
            "LoginTests.test_valid_login"
        ]
        assert len(registry.select()) == 3

    def test_top_level_mapping(self):
        """Test a document without a tests key is accepted."""
        registry = MetadataRegistry.from_dict({"A.test_one": {"flaky": True}, "B.test_two": None})

        assert registry.get("A.test_one").flaky is True
        assert registry.operations() == [TestOperationId("A.test_one"), TestOperationId("B.test_two")]

    def test_empty_document(self):
        """Test an empty document gives an empty registry."""
        assert len(MetadataRegistry.from_dict(None)) == 0

    def test_wrong_shape(self):
        """Test a non-mapping document is a metadata error."""
        with pytest.raises(MetadataError):
            MetadataRegistry.from_dict(["A.test"])

    @pytest.mark.parametrize("declarations", [["retry"], "flaky", 3])
    def test_non_mapping_declarations(self, declarations):
        """Test an entry that is not a mapping is a metadata error."""
        with pytest.raises(MetadataError, match="A.test must be a mapping"):
            MetadataRegistry.from_dict({"tests": {"A.test": declarations}})

    def test_schema_violation(self):
        """Test schema violations are reported with their location."""
        with pytest.raises(ValidationError) as exc_info:
            MetadataRegistry.from_dict({"tests": {"A.test": {"retry": {"max_attempts": "many"}}}})

        assert exc_info.value.violations[0].startswith("retry.max_attempts")

    def test_invalid_policy_rejected_on_load(self):
        """Test malformed policies fail when the registry is built."""
        with pytest.raises(InvalidPolicyError):
            MetadataRegistry.from_dict({"A.test": {"retry": {"max_attempts": 0}}})

    def test_missing_file(self, tmp_path):
        """Test a missing file is a metadata error."""
        with pytest.raises(MetadataError, match="Cannot read metadata file"):
            MetadataRegistry.from_yaml(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path):
        """Test malformed YAML is a metadata error."""
        path = tmp_path / "broken.yaml"
        path.write_text("tests: [unclosed", encoding="utf-8")

        with pytest.raises(MetadataError, match="Invalid YAML"):
            MetadataRegistry.from_yaml(path)
