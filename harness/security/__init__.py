"""
Security validation components for QA Harness.

This module provides signature-based input and response scanning and
role/token authorization checks for security tests.
"""

from .models import (
    AuthViolation,
    AuthViolationKind,
    SecurityAuthValidation,
    SecurityFinding,
    SecurityInputValidation,
    SecurityRequirements,
    SecurityResponseValidation,
)
from .patterns import normalize_input
from .validator import SecurityValidator

__all__ = [
    "SecurityValidator",
    "SecurityFinding",
    "SecurityInputValidation",
    "SecurityResponseValidation",
    "SecurityAuthValidation",
    "SecurityRequirements",
    "AuthViolation",
    "AuthViolationKind",
    "normalize_input",
]
