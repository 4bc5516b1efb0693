"""
Shared types for QA Harness.

Defines operation identity and the enumerations used across the retry,
performance and security components.
"""

from dataclasses import dataclass
from enum import Enum

from ..core.exceptions import InvalidArgumentError


@dataclass(frozen=True)
class TestOperationId:
    """Stable identifier for a single test operation."""

    __test__ = False

    qualified_name: str

    def __post_init__(self):
        if not isinstance(self.qualified_name, str) or not self.qualified_name.strip():
            raise InvalidArgumentError(
                "Test operation id must be a non-empty string",
                argument="qualified_name",
                expected="non-empty str",
            )

    @classmethod
    def of(cls, value) -> "TestOperationId":
        """Coerce a string or an existing id into a TestOperationId."""
        if isinstance(value, cls):
            return value
        return cls(value)

    @classmethod
    def from_parts(cls, class_name: str, method_name: str) -> "TestOperationId":
        """Build an id in the ``ClassName.method`` form used by test runners."""
        if not class_name:
            return cls(method_name)
        return cls(f"{class_name}.{method_name}")

    def __str__(self) -> str:
        return self.qualified_name


class ErrorKind(Enum):
    """Classification of a failed attempt used for retry decisions."""

    ASSERTION = "assertion"
    TIMEOUT = "timeout"
    CONNECTION = "connection"
    SERVER_ERROR = "server_error"
    CLIENT_ERROR = "client_error"
    AUTH_ERROR = "auth_error"
    RATE_LIMIT = "rate_limit"
    ELEMENT_NOT_FOUND = "element_not_found"
    STALE_ELEMENT = "stale_element"
    UNKNOWN = "unknown"


class SecurityType(Enum):
    """Kinds of security checks a test can request."""

    AUTHENTICATION = "authentication"
    AUTHORIZATION = "authorization"
    INPUT_VALIDATION = "input_validation"
    SQL_INJECTION = "sql_injection"
    XSS = "xss"
    CSRF = "csrf"
    SESSION_MANAGEMENT = "session_management"
    ENCRYPTION = "encryption"
    ACCESS_CONTROL = "access_control"


class OwaspCategory(Enum):
    """OWASP Top 10 (2021) categories."""

    A01_BROKEN_ACCESS_CONTROL = "A01"
    A02_CRYPTOGRAPHIC_FAILURES = "A02"
    A03_INJECTION = "A03"
    A04_INSECURE_DESIGN = "A04"
    A05_SECURITY_MISCONFIGURATION = "A05"
    A06_VULNERABLE_COMPONENTS = "A06"
    A07_IDENTIFICATION_FAILURES = "A07"
    A08_SOFTWARE_INTEGRITY_FAILURES = "A08"
    A09_SECURITY_LOGGING_FAILURES = "A09"
    A10_SERVER_SIDE_REQUEST_FORGERY = "A10"


class Severity(Enum):
    """Severity of a finding, also used as the declared security level."""

    LOW = 1
    MEDIUM = 2
    HIGH = 3
    CRITICAL = 4


class PerformanceTestType(Enum):
    """Type of performance test."""

    LOAD = "load"
    STRESS = "stress"
    SPIKE = "spike"
    VOLUME = "volume"
    ENDURANCE = "endurance"


class TestCategory(Enum):
    """Test category used for grouping and filtering."""

    __test__ = False

    SMOKE = "smoke"
    SANITY = "sanity"
    REGRESSION = "regression"
    FUNCTIONAL = "functional"
    SECURITY = "security"
    PERFORMANCE = "performance"
    ACCESSIBILITY = "accessibility"
    USABILITY = "usability"
    COMPATIBILITY = "compatibility"


class TestLevel(Enum):
    """Level of the test pyramid a test belongs to."""

    __test__ = False

    UNIT = "unit"
    COMPONENT = "component"
    INTEGRATION = "integration"
    SYSTEM = "system"
    E2E = "e2e"


class RiskLevel(Enum):
    """Business risk covered by a test."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"
