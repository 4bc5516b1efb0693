"""
Result models for security validation.

All results are plain values produced per call; nothing here is persisted.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List

from ..models.types import OwaspCategory, SecurityType, Severity


@dataclass(frozen=True)
class SecurityFinding:
    """A vulnerability signature matched in an input or response."""

    category: SecurityType
    owasp_category: OwaspCategory
    matched_pattern: str
    matched_text: str
    severity: Severity
    description: str = ""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "category": self.category.name,
            "owasp_category": self.owasp_category.name,
            "matched_pattern": self.matched_pattern,
            "matched_text": self.matched_text,
            "severity": self.severity.name,
            "description": self.description,
        }


@dataclass
class SecurityInputValidation:
    """Findings for a validated input string."""

    findings: List[SecurityFinding] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        """Check if no finding was produced."""
        return not self.findings

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "is_valid": self.is_valid,
            "findings": [finding.to_dict() for finding in self.findings],
            "warnings": list(self.warnings),
        }


@dataclass
class SecurityResponseValidation:
    """Findings for a scanned response body."""

    findings: List[SecurityFinding] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def is_secure(self) -> bool:
        """Check if no finding was produced."""
        return not self.findings

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "is_secure": self.is_secure,
            "findings": [finding.to_dict() for finding in self.findings],
            "warnings": list(self.warnings),
        }


class AuthViolationKind(Enum):
    """Which authorization condition failed."""

    ROLE_MISMATCH = "role_mismatch"
    MISSING_TOKEN = "missing_token"
    MALFORMED_TOKEN = "malformed_token"


@dataclass(frozen=True)
class AuthViolation:
    """A failed authorization condition."""

    kind: AuthViolationKind
    description: str

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind.name, "description": self.description}


@dataclass
class SecurityAuthValidation:
    """Outcome of checking a role and token against requirements."""

    violations: List[AuthViolation] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def is_authorized(self) -> bool:
        """Check if every authorization condition held."""
        return not self.violations

    def has_violation(self, kind: AuthViolationKind) -> bool:
        """Check if a violation of the given kind was reported."""
        return any(violation.kind == kind for violation in self.violations)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "is_authorized": self.is_authorized,
            "violations": [violation.to_dict() for violation in self.violations],
            "warnings": list(self.warnings),
        }


@dataclass
class SecurityRequirements:
    """Human-readable summary of a test's security declaration."""

    requirements: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def has_requirements(self) -> bool:
        return bool(self.requirements)

    @property
    def has_warnings(self) -> bool:
        return bool(self.warnings)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "requirements": list(self.requirements),
            "warnings": list(self.warnings),
        }
