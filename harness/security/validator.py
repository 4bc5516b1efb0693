"""
Security validation for test inputs, responses and credentials.

The validator is stateless: every call matches its arguments against the
module-level signature tables and returns a fresh result object.
"""

import logging
import re
from typing import Any, Iterable, List, Optional, Set, Tuple

from ..core.config import Config
from ..core.exceptions import InvalidArgumentError
from ..core.logging_config import log_security_findings
from ..models.types import OwaspCategory, SecurityType, Severity
from .models import (
    AuthViolation,
    AuthViolationKind,
    SecurityAuthValidation,
    SecurityFinding,
    SecurityInputValidation,
    SecurityRequirements,
    SecurityResponseValidation,
)
from .patterns import (
    ERROR_WORD_PATTERN,
    KNOWN_PAYLOADS,
    SET_COOKIE_PATTERN,
    SHELL_SEPARATOR_PATTERN,
    DEFAULT_OWASP,
    input_signatures,
    normalize_input,
    owasp_for,
    response_signatures,
)

logger = logging.getLogger(__name__)

BEARER_TOKEN_PATTERN = re.compile(r"^Bearer\s+([A-Za-z0-9\-._~+/]+=*)$")
JWT_PATTERN = re.compile(r"^[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+\.[A-Za-z0-9_-]*$")

# Credentials shorter than this are accepted but flagged
MIN_TOKEN_LENGTH = 10


def _coerce_types(value: Any, argument: str) -> List[SecurityType]:
    """Normalize a collection of security types, ordered by declaration."""
    if value is None:
        raise InvalidArgumentError(
            f"{argument} must be a collection of SecurityType, not None",
            argument=argument,
            expected="collection of SecurityType",
        )
    if isinstance(value, (SecurityType, str)):
        value = [value]

    try:
        items = list(value)
    except TypeError:
        raise InvalidArgumentError(
            f"{argument} must be a collection of SecurityType, got {type(value).__name__}",
            argument=argument,
            expected="collection of SecurityType",
        ) from None

    types: Set[SecurityType] = set()
    for item in items:
        if isinstance(item, SecurityType):
            types.add(item)
        elif isinstance(item, str) and item.upper() in SecurityType.__members__:
            types.add(SecurityType[item.upper()])
        else:
            raise InvalidArgumentError(
                f"Unknown security type in {argument}: {item!r}",
                argument=argument,
                expected="SecurityType",
            )
    return [t for t in SecurityType if t in types]


def _coerce_text(value: Any, argument: str) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise InvalidArgumentError(
            f"{argument} must be a string, got {type(value).__name__}",
            argument=argument,
            expected="str",
        )
    return value


class SecurityValidator:
    """Pattern-based validator for inputs, responses and authorization claims."""

    def __init__(self, config: Optional[Config] = None, max_input_length: Optional[int] = None):
        """
        Initialize the validator.

        Args:
            config: Source of ``max_input_length`` when not given explicitly
            max_input_length: Longest input accepted by INPUT_VALIDATION
        """
        if max_input_length is None:
            max_input_length = config.max_input_length if config else 10000
        self.max_input_length = max_input_length

    def validate_input(self, value: Optional[str], checked_types: Iterable[Any]) -> SecurityInputValidation:
        """
        Check an input string against the signature tables of the requested types.

        The input is URL- and HTML-entity-decoded before matching, so encoded
        payloads such as ``%3Cscript%3E`` are still caught.

        Args:
            value: Input to check; None and empty strings are always valid
            checked_types: Security types whose input signatures apply

        Returns:
            Validation result with one finding per matching signature
        """
        types = _coerce_types(checked_types, "checked_types")
        text = _coerce_text(value, "input")
        result = SecurityInputValidation()
        if not types or not text:
            return result

        normalized = normalize_input(text)

        for security_type in types:
            for signature in input_signatures(security_type):
                matched = signature.search(normalized)
                if matched is not None:
                    result.findings.append(
                        SecurityFinding(
                            category=security_type,
                            owasp_category=owasp_for(signature, security_type),
                            matched_pattern=signature.name,
                            matched_text=matched,
                            severity=signature.severity,
                            description=signature.description,
                        )
                    )

            if security_type == SecurityType.INPUT_VALIDATION:
                self._check_input_format(text, normalized, result)

        log_security_findings(logger, "input", result.findings)
        return result

    def _check_input_format(
        self, raw: str, normalized: str, result: SecurityInputValidation
    ) -> None:
        if len(raw) > self.max_input_length:
            result.findings.append(
                SecurityFinding(
                    category=SecurityType.INPUT_VALIDATION,
                    owasp_category=DEFAULT_OWASP[SecurityType.INPUT_VALIDATION],
                    matched_pattern="oversized_input",
                    matched_text=f"{len(raw)} characters",
                    severity=Severity.MEDIUM,
                    description=(
                        f"Input length exceeds safe limit of {self.max_input_length} characters"
                    ),
                )
            )

        chained = any(
            f.matched_pattern == "command_injection" for f in result.findings
        )
        if not chained and SHELL_SEPARATOR_PATTERN.search(normalized):
            result.warnings.append(
                "Input contains command separators - review for command injection risk"
            )

    def validate_response(
        self,
        body: Optional[str],
        declared_types: Iterable[Any],
        payloads: Iterable[str] = (),
    ) -> SecurityResponseValidation:
        """
        Scan a response body for leaked data and reflected attack payloads.

        Args:
            body: Response body; None and empty bodies are always secure
            declared_types: Security types whose response signatures apply
            payloads: Attack strings the test sent, checked for verbatim echo
                in addition to the built-in attack payloads

        Returns:
            Validation result with deduplicated findings
        """
        types = _coerce_types(declared_types, "declared_types")
        text = _coerce_text(body, "response_body")
        result = SecurityResponseValidation()
        if not types or not text:
            return result

        lowered = text.lower()
        sent = [p.lower() for p in payloads if isinstance(p, str) and p]
        seen: Set[Tuple[SecurityType, str, str]] = set()

        def add(finding: SecurityFinding) -> None:
            key = (finding.category, finding.matched_pattern, finding.matched_text)
            if key not in seen:
                seen.add(key)
                result.findings.append(finding)

        for security_type in types:
            for signature in response_signatures(security_type):
                matched = signature.search(text)
                if matched is not None:
                    add(
                        SecurityFinding(
                            category=security_type,
                            owasp_category=owasp_for(signature, security_type),
                            matched_pattern=signature.name,
                            matched_text=matched,
                            severity=signature.severity,
                            description=signature.description,
                        )
                    )

            candidates = list(KNOWN_PAYLOADS.get(security_type, ()))
            if security_type in KNOWN_PAYLOADS:
                candidates.extend(sent)
            for payload in candidates:
                if payload in lowered:
                    add(
                        SecurityFinding(
                            category=security_type,
                            owasp_category=DEFAULT_OWASP[security_type],
                            matched_pattern="reflected_payload",
                            matched_text=payload,
                            severity=Severity.HIGH,
                            description="Attack payload echoed back without sanitization",
                        )
                    )

        if ERROR_WORD_PATTERN.search(text):
            result.warnings.append("Potential information disclosure through error messages")

        if SecurityType.SESSION_MANAGEMENT in types:
            for cookie in SET_COOKIE_PATTERN.findall(text):
                if "httponly" not in cookie.lower():
                    result.warnings.append(
                        "Session cookie set without HttpOnly: " + cookie.strip()[:80]
                    )

        log_security_findings(logger, "response", result.findings)
        return result

    def validate_authentication(
        self,
        actual_role: Optional[str],
        required_roles: Iterable[str],
        token: Optional[str],
    ) -> SecurityAuthValidation:
        """
        Check a role claim and bearer token against the required roles.

        An empty ``required_roles`` collection places no restriction on the
        role. Role mismatch and token problems are reported together.

        Args:
            actual_role: Role held by the caller
            required_roles: Roles allowed to perform the operation
            token: Credential presented, e.g. ``"Bearer abc"``

        Returns:
            Validation result listing every failed condition
        """
        if required_roles is None:
            raise InvalidArgumentError(
                "required_roles must be a collection of role names, not None",
                argument="required_roles",
                expected="collection of str",
            )
        if isinstance(required_roles, str):
            required_roles = [required_roles]
        try:
            roles = {str(role) for role in required_roles}
        except TypeError:
            raise InvalidArgumentError(
                "required_roles must be a collection of role names",
                argument="required_roles",
                expected="collection of str",
            ) from None

        result = SecurityAuthValidation()

        if roles and actual_role not in roles:
            result.violations.append(
                AuthViolation(
                    AuthViolationKind.ROLE_MISMATCH,
                    f"User role '{actual_role}' does not have required permissions: "
                    f"{sorted(roles)}",
                )
            )

        token = _coerce_text(token, "token").strip()
        if not token:
            result.violations.append(
                AuthViolation(AuthViolationKind.MISSING_TOKEN, "Authentication token is missing")
            )
        else:
            bearer = BEARER_TOKEN_PATTERN.match(token)
            if bearer:
                credential = bearer.group(1)
            elif JWT_PATTERN.match(token):
                credential = token
            else:
                credential = None
                result.violations.append(
                    AuthViolation(
                        AuthViolationKind.MALFORMED_TOKEN,
                        "Authentication token is not a bearer token or JWT",
                    )
                )
            if credential is not None and len(credential) < MIN_TOKEN_LENGTH:
                result.warnings.append(
                    "Authentication token appears to be too short for security"
                )

        if result.violations:
            logger.warning(
                f"Authorization failed for role '{actual_role}'",
                extra={
                    "metadata": {
                        "violations": [v.kind.name for v in result.violations],
                    }
                },
            )
        return result

    def describe_requirements(
        self,
        types: Iterable[Any],
        owasp_categories: Iterable[OwaspCategory] = (),
        required_roles: Iterable[str] = (),
        sensitive_data: bool = False,
        level: Severity = Severity.MEDIUM,
    ) -> SecurityRequirements:
        """Summarize a security declaration and flag inconsistencies in it."""
        security_types = _coerce_types(types, "types")
        owasp = list(owasp_categories)
        roles = list(required_roles)
        summary = SecurityRequirements()

        if security_types:
            summary.requirements.append(
                "Security checks: " + ", ".join(t.name for t in security_types)
            )
        if roles:
            summary.requirements.append("Required roles: " + ", ".join(roles))
        if sensitive_data:
            summary.requirements.append(
                "Sensitive data handling required - ensure encryption and secure storage"
            )
        summary.requirements.append(f"Security level: {level.name}")
        if owasp:
            summary.requirements.append(
                "OWASP categories to test: " + ", ".join(c.name for c in owasp)
            )

        if sensitive_data and SecurityType.ENCRYPTION not in security_types:
            summary.warnings.append(
                "Sensitive data declared without ENCRYPTION checks"
            )
        access_types = {SecurityType.AUTHORIZATION, SecurityType.ACCESS_CONTROL}
        if roles and not access_types.intersection(security_types):
            summary.warnings.append(
                "Required roles declared without AUTHORIZATION or ACCESS_CONTROL checks"
            )
        if level in (Severity.HIGH, Severity.CRITICAL) and not owasp:
            summary.warnings.append(
                f"{level.name} security level declared without OWASP categories"
            )

        return summary
