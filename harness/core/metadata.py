"""
Test metadata declarations.

Defines Pydantic models for the per-test declarations a runner resolves
(category, retry, performance and security requirements) and a registry
that loads them from a YAML document keyed by test operation id. The
declarations convert into the engine's immutable policy values.
"""

from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Type, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from ..models.types import (
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
from .exceptions import MetadataError, ValidationError


def _enum_by_name(enum_cls: Type[Enum], value: Any) -> Any:
    """Accept enum members, member names (any case) or values."""
    if isinstance(value, enum_cls) or not isinstance(value, str):
        return value
    name = value.strip().upper()
    if name in enum_cls.__members__:
        return enum_cls[name]
    return value


def _enum_list(enum_cls: Type[Enum], value: Any) -> Any:
    if value is None:
        return []
    if isinstance(value, (str, enum_cls)):
        value = [value]
    return [_enum_by_name(enum_cls, item) for item in value]


class RetryDeclaration(BaseModel):
    """Declared retry behaviour of a test."""

    model_config = ConfigDict(extra="forbid")

    max_attempts: int = Field(3, description="Maximum number of attempts")
    delay_ms: float = Field(1000.0, description="Delay before the first retry in milliseconds")
    backoff_multiplier: float = Field(1.5, description="Exponential backoff multiplier")
    max_delay_ms: float = Field(30000.0, description="Upper bound for any delay")
    retry_on: List[ErrorKind] = Field(default_factory=list, description="Error kinds that trigger retry")
    abort_on: List[ErrorKind] = Field(default_factory=list, description="Error kinds that never retry")
    retry_on_any_error: bool = Field(True, description="Retry kinds outside retry_on as well")

    @field_validator("retry_on", "abort_on", mode="before")
    @classmethod
    def parse_error_kinds(cls, v):
        return _enum_list(ErrorKind, v)

    def to_policy(self):
        """Convert to a RetryPolicy, raising InvalidPolicyError if malformed."""
        from ..retry.models import RetryPolicy

        return RetryPolicy(
            max_attempts=self.max_attempts,
            initial_delay_ms=self.delay_ms,
            backoff_multiplier=self.backoff_multiplier,
            max_delay_ms=self.max_delay_ms,
            retryable_error_kinds=frozenset(self.retry_on),
            non_retryable_error_kinds=frozenset(self.abort_on),
            retry_on_any_error=self.retry_on_any_error,
        )


class PerformanceDeclaration(BaseModel):
    """Declared performance requirements of a test."""

    model_config = ConfigDict(extra="forbid")

    max_response_time_ms: float = Field(5000.0, description="Maximum acceptable response time")
    concurrent_users: int = Field(1, description="Number of concurrent simulated users")
    duration_seconds: float = Field(60.0, description="Test duration in seconds")
    max_cpu_usage: float = Field(80.0, description="CPU usage threshold in percent")
    max_memory_mb: float = Field(512.0, description="Memory usage threshold in megabytes")
    expected_throughput: float = Field(0.0, description="Expected requests per second")
    type: PerformanceTestType = Field(PerformanceTestType.LOAD, description="Performance test type")

    @field_validator("type", mode="before")
    @classmethod
    def parse_type(cls, v):
        return _enum_by_name(PerformanceTestType, v)

    def to_thresholds(self):
        """Convert to PerformanceThresholds, raising InvalidPolicyError if malformed."""
        from ..performance.models import MEGABYTE, PerformanceThresholds

        return PerformanceThresholds(
            max_response_time_ms=self.max_response_time_ms,
            concurrent_users=self.concurrent_users,
            duration_seconds=self.duration_seconds,
            max_cpu_usage=self.max_cpu_usage,
            max_memory_usage_bytes=int(self.max_memory_mb * MEGABYTE),
            expected_throughput=self.expected_throughput,
            test_type=self.type,
        )


class SecurityDeclaration(BaseModel):
    """Declared security checks of a test."""

    model_config = ConfigDict(extra="forbid")

    types: List[SecurityType] = Field(
        default_factory=lambda: [SecurityType.AUTHENTICATION],
        description="Security checks to perform",
    )
    owasp_categories: List[OwaspCategory] = Field(default_factory=list)
    required_roles: List[str] = Field(default_factory=list)
    sensitive_data: bool = Field(False, description="Test handles sensitive data")
    level: Severity = Field(Severity.MEDIUM, description="Expected security level")

    @field_validator("types", mode="before")
    @classmethod
    def parse_types(cls, v):
        return _enum_list(SecurityType, v)

    @field_validator("owasp_categories", mode="before")
    @classmethod
    def parse_owasp(cls, v):
        return _enum_list(OwaspCategory, v)

    @field_validator("level", mode="before")
    @classmethod
    def parse_level(cls, v):
        return _enum_by_name(Severity, v)

    def requirements(self, validator=None):
        """Summarize this declaration with a SecurityValidator."""
        from ..security.validator import SecurityValidator

        validator = validator or SecurityValidator()
        return validator.describe_requirements(
            self.types,
            owasp_categories=self.owasp_categories,
            required_roles=self.required_roles,
            sensitive_data=self.sensitive_data,
            level=self.level,
        )


class TestInfoDeclaration(BaseModel):
    """Descriptive information about a test."""

    __test__ = False

    model_config = ConfigDict(extra="forbid")

    description: str = ""
    author: str = ""
    tags: List[str] = Field(default_factory=list)
    priority: str = "MEDIUM"
    jira_id: str = ""


class TestMetadata(BaseModel):
    """All declarations resolved for one test operation."""

    __test__ = False

    model_config = ConfigDict(extra="forbid")

    operation_id: str = Field(..., description="Qualified test name")
    category: TestCategory = TestCategory.FUNCTIONAL
    level: TestLevel = TestLevel.INTEGRATION
    risk: RiskLevel = RiskLevel.MEDIUM
    environments: List[str] = Field(default_factory=lambda: ["DEV", "TEST"])
    flaky: bool = False
    info: Optional[TestInfoDeclaration] = None
    retry: Optional[RetryDeclaration] = None
    performance: Optional[PerformanceDeclaration] = None
    security: Optional[SecurityDeclaration] = None

    @field_validator("operation_id")
    @classmethod
    def validate_operation_id(cls, v):
        if not v or not v.strip():
            raise ValueError("operation_id cannot be empty")
        return v.strip()

    @field_validator("category", mode="before")
    @classmethod
    def parse_category(cls, v):
        return _enum_by_name(TestCategory, v)

    @field_validator("level", mode="before")
    @classmethod
    def parse_level(cls, v):
        return _enum_by_name(TestLevel, v)

    @field_validator("risk", mode="before")
    @classmethod
    def parse_risk(cls, v):
        return _enum_by_name(RiskLevel, v)

    @property
    def id(self) -> TestOperationId:
        return TestOperationId(self.operation_id)

    @property
    def tags(self) -> List[str]:
        return list(self.info.tags) if self.info else []

    def retry_policy(self, config=None):
        """
        Resolve the effective retry policy.

        A declared policy wins; otherwise the configured default applies.
        """
        from ..retry.models import RetryPolicy

        if self.retry is not None:
            return self.retry.to_policy()
        if config is not None:
            return config.default_retry_policy()
        return RetryPolicy()

    def thresholds(self):
        """Get declared performance thresholds, if any."""
        if self.performance is None:
            return None
        return self.performance.to_thresholds()


class MetadataRegistry:
    """Resolved test metadata keyed by operation id."""

    def __init__(self, entries: Optional[List[TestMetadata]] = None):
        self._entries: Dict[TestOperationId, TestMetadata] = {}
        for entry in entries or []:
            self.add(entry)

    def add(self, metadata: TestMetadata) -> None:
        """Register metadata, validating its policies eagerly."""
        metadata.retry_policy()
        metadata.thresholds()
        self._entries[metadata.id] = metadata

    def get(self, operation_id: Union[TestOperationId, str]) -> Optional[TestMetadata]:
        return self._entries.get(TestOperationId.of(operation_id))

    def select(
        self,
        category: Optional[TestCategory] = None,
        tag: Optional[str] = None,
    ) -> List[TestMetadata]:
        """Get metadata matching a category and/or tag."""
        return [
            entry
            for entry in self._entries.values()
            if (category is None or entry.category == category)
            and (tag is None or tag in entry.tags)
        ]

    def operations(self) -> List[TestOperationId]:
        return list(self._entries)

    def __contains__(self, operation_id) -> bool:
        return self.get(operation_id) is not None

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[TestMetadata]:
        return iter(self._entries.values())

    @classmethod
    def from_dict(cls, data: Dict[str, Any], source: str = "<dict>") -> "MetadataRegistry":
        """
        Build a registry from a mapping.

        The mapping is either ``{"tests": {operation_id: declarations}}`` or
        ``{operation_id: declarations}``.

        Raises:
            MetadataError: If the document has the wrong shape
            ValidationError: If a declaration fails schema validation
        """
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise MetadataError(
                f"Metadata document must be a mapping, got {type(data).__name__}",
                source=source,
            )

        tests = data.get("tests", data)
        if not isinstance(tests, dict):
            raise MetadataError("'tests' must be a mapping of operation ids", source=source)

        registry = cls()
        for operation_id, declarations in tests.items():
            if declarations is None:
                declarations = {}
            if not isinstance(declarations, dict):
                raise MetadataError(
                    f"Declarations for {operation_id} must be a mapping, "
                    f"got {type(declarations).__name__}",
                    source=source,
                )
            fields = dict(declarations)
            fields.setdefault("operation_id", operation_id)
            try:
                metadata = TestMetadata(**fields)
            except PydanticValidationError as e:
                violations = [
                    f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
                    for err in e.errors()
                ]
                raise ValidationError(
                    f"Invalid metadata for {operation_id}: " + "; ".join(violations),
                    validation_type="metadata",
                    violations=violations,
                ) from e
            registry.add(metadata)
        return registry

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "MetadataRegistry":
        """
        Load a registry from a YAML file.

        Raises:
            MetadataError: If the file cannot be read or parsed
        """
        path = Path(path)
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except OSError as e:
            raise MetadataError(f"Cannot read metadata file: {e}", source=str(path)) from e
        except yaml.YAMLError as e:
            raise MetadataError(f"Invalid YAML in metadata file: {e}", source=str(path)) from e

        return cls.from_dict(data, source=str(path))
