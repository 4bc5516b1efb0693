"""
Vulnerability signature tables for the security validator.

Tables are compiled once at import time and never mutated. Input tables are
matched against normalized user input; response tables look for data a
server should not disclose.
"""

import html
import re
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple
from urllib.parse import unquote_plus

from ..models.types import OwaspCategory, SecurityType, Severity

# Decode rounds applied to catch double-encoded payloads such as %253Cscript
MAX_DECODE_ROUNDS = 3

DEFAULT_OWASP: Dict[SecurityType, OwaspCategory] = {
    SecurityType.SQL_INJECTION: OwaspCategory.A03_INJECTION,
    SecurityType.XSS: OwaspCategory.A03_INJECTION,
    SecurityType.INPUT_VALIDATION: OwaspCategory.A03_INJECTION,
    SecurityType.AUTHENTICATION: OwaspCategory.A07_IDENTIFICATION_FAILURES,
    SecurityType.SESSION_MANAGEMENT: OwaspCategory.A07_IDENTIFICATION_FAILURES,
    SecurityType.AUTHORIZATION: OwaspCategory.A01_BROKEN_ACCESS_CONTROL,
    SecurityType.ACCESS_CONTROL: OwaspCategory.A01_BROKEN_ACCESS_CONTROL,
    SecurityType.CSRF: OwaspCategory.A01_BROKEN_ACCESS_CONTROL,
    SecurityType.ENCRYPTION: OwaspCategory.A02_CRYPTOGRAPHIC_FAILURES,
}


def luhn_valid(text: str) -> bool:
    """Check a card number candidate with the Luhn checksum."""
    digits = [int(c) for c in text if c.isdigit()]
    if len(digits) < 13:
        return False
    total = 0
    for index, digit in enumerate(reversed(digits)):
        if index % 2 == 1:
            digit *= 2
            if digit > 9:
                digit -= 9
        total += digit
    return total % 10 == 0


@dataclass(frozen=True)
class Signature:
    """A named vulnerability pattern."""

    name: str
    pattern: "re.Pattern"
    severity: Severity
    description: str
    owasp: Optional[OwaspCategory] = None
    verifier: Optional[Callable[[str], bool]] = None

    def search(self, text: str) -> Optional[str]:
        """Return the first verified match in ``text``, if any."""
        for match in self.pattern.finditer(text):
            matched = match.group(0)
            if self.verifier is None or self.verifier(matched):
                return matched
        return None


def _sig(name, regex, severity, description, owasp=None, verifier=None, flags=re.IGNORECASE):
    return Signature(name, re.compile(regex, flags), severity, description, owasp, verifier)


SQL_INJECTION_SIGNATURES: Tuple[Signature, ...] = (
    _sig(
        "tautology",
        r"\b(?:or|and)\s+(['\"]?)(\w+)\1\s*=\s*\1\2\b",
        Severity.HIGH,
        "Always-true condition such as OR 1=1",
    ),
    _sig(
        "union_select",
        r"\bunion\b(?:\s+all)?\s+select\b",
        Severity.CRITICAL,
        "UNION SELECT used to read other tables",
    ),
    _sig(
        "stacked_query",
        r";\s*(?:drop|delete|insert|update|alter|create|truncate|exec(?:ute)?|shutdown)\b",
        Severity.CRITICAL,
        "Second statement appended after a terminator",
    ),
    _sig(
        "comment_terminator",
        r"['\"]\s*(?:--|#|/\*)",
        Severity.MEDIUM,
        "Quote followed by a comment to truncate the query",
    ),
    _sig(
        "time_based",
        r"\b(?:sleep|benchmark|pg_sleep)\s*\(|\bwaitfor\s+delay\b",
        Severity.HIGH,
        "Time-based blind injection payload",
    ),
    _sig(
        "error_function",
        r"\b(?:extractvalue|updatexml|load_file)\s*\(|\bxp_cmdshell\b",
        Severity.HIGH,
        "Database function commonly abused for exfiltration",
    ),
)

XSS_SIGNATURES: Tuple[Signature, ...] = (
    _sig("script_tag", r"<\s*script\b", Severity.HIGH, "Inline script element"),
    _sig(
        "script_uri",
        r"\b(?:java|vb)script\s*:",
        Severity.HIGH,
        "Script URI scheme",
    ),
    _sig(
        "event_handler",
        r"\bon(?:error|load|click|mouseover|mouseout|focus|blur|submit|change|input"
        r"|keydown|keyup|keypress|animationstart|toggle)\s*=",
        Severity.HIGH,
        "Inline DOM event handler",
    ),
    _sig(
        "embedded_object",
        r"<\s*(?:iframe|object|embed|applet|base|meta\s+http-equiv)\b",
        Severity.MEDIUM,
        "Element that loads or redirects to foreign content",
    ),
    _sig(
        "cookie_access",
        r"\bdocument\s*\.\s*(?:cookie|domain)\b",
        Severity.MEDIUM,
        "Script access to cookies",
    ),
)

INPUT_VALIDATION_SIGNATURES: Tuple[Signature, ...] = (
    _sig("path_traversal", r"\.\.[/\\]", Severity.HIGH, "Relative path traversal"),
    _sig("null_byte", r"\x00", Severity.HIGH, "Embedded null byte", flags=0),
    _sig(
        "command_injection",
        r"(?:[;&|`]|\$\()\s*(?:cat|ls|rm|wget|curl|nc|bash|sh|whoami|id|ping|powershell|cmd)\b",
        Severity.CRITICAL,
        "Shell command chained after a separator",
    ),
    _sig(
        "crlf_injection",
        r"[\r\n]\s*(?:set-cookie|location|content-type|content-length)\s*:",
        Severity.MEDIUM,
        "Header injection through CR/LF",
    ),
)

SESSION_INPUT_SIGNATURES: Tuple[Signature, ...] = (
    _sig(
        "session_id_in_input",
        r"\b(?:jsessionid|phpsessid|aspsessionid\w*|sessionid|sid)\s*[=:]\s*[\w-]{8,}",
        Severity.MEDIUM,
        "Session identifier passed in user input",
    ),
)

CSRF_INPUT_SIGNATURES: Tuple[Signature, ...] = (
    _sig(
        "cross_site_form",
        r"<\s*form\b[^>]*\baction\s*=\s*[\"']?(?:https?:)?//",
        Severity.HIGH,
        "Form posting to another origin",
    ),
    _sig(
        "auto_submit_form",
        r"\b(?:document\s*\.\s*forms\b|forms\s*\[)[^;\n]*\.\s*submit\s*\(",
        Severity.HIGH,
        "Script that submits a form without user action",
    ),
)

INPUT_SIGNATURES: Dict[SecurityType, Tuple[Signature, ...]] = {
    SecurityType.SQL_INJECTION: SQL_INJECTION_SIGNATURES,
    SecurityType.XSS: XSS_SIGNATURES,
    SecurityType.INPUT_VALIDATION: INPUT_VALIDATION_SIGNATURES,
    SecurityType.SESSION_MANAGEMENT: SESSION_INPUT_SIGNATURES,
    SecurityType.CSRF: CSRF_INPUT_SIGNATURES,
}

CSRF_TOKEN_FIELD_PATTERN = re.compile(
    r"\bname\s*=\s*[\"']?(?:[\w-]*(?:csrf|xsrf|requestverificationtoken)|authenticity_token\b|_token\b)",
    re.IGNORECASE,
)


def lacks_csrf_token(form: str) -> bool:
    """Check that a form has no field named like a CSRF token."""
    return CSRF_TOKEN_FIELD_PATTERN.search(form) is None


# Bare shell separators are suspicious but common in legitimate text
SHELL_SEPARATOR_PATTERN = re.compile(r"[;|&]")

_CREDENTIAL = _sig(
    "credential_assignment",
    r"\b(?:password|passwd|pwd|secret|api[_-]?key|access[_-]?token|client[_-]?secret)"
    r"[\"']?\s*[:=]\s*[\"']?[^\s\"',;&<>]{3,}",
    Severity.CRITICAL,
    "Credential value in response",
    owasp=OwaspCategory.A02_CRYPTOGRAPHIC_FAILURES,
)

_BEARER = _sig(
    "bearer_token",
    r"\bBearer\s+[A-Za-z0-9\-._~+/]{20,}=*",
    Severity.HIGH,
    "Bearer token in response",
)

_JWT = _sig(
    "jwt",
    r"\beyJ[A-Za-z0-9_-]{5,}\.eyJ[A-Za-z0-9_-]{5,}\.[A-Za-z0-9_-]{5,}",
    Severity.HIGH,
    "JSON Web Token in response",
)

_ERROR_DISCLOSURE = OwaspCategory.A05_SECURITY_MISCONFIGURATION

_INTERNAL_IDENTIFIERS = (
    _sig(
        "internal_ip",
        r"\b(?:10(?:\.\d{1,3}){3}|192\.168(?:\.\d{1,3}){2}|172\.(?:1[6-9]|2\d|3[01])(?:\.\d{1,3}){2})\b",
        Severity.MEDIUM,
        "Private network address in response",
    ),
    _sig(
        "internal_hostname",
        r"\b[\w-]+(?:\.[\w-]+)*\.(?:internal|corp|intranet|lan)\b",
        Severity.LOW,
        "Internal host name in response",
    ),
)

RESPONSE_SIGNATURES: Dict[SecurityType, Tuple[Signature, ...]] = {
    SecurityType.SQL_INJECTION: (
        _sig(
            "sql_error_disclosure",
            r"you have an error in your sql syntax|\bORA-\d{5}\b|\bSQLSTATE\[|"
            r"unclosed quotation mark|\bpg_query\(\)|\bSQLite3?::|\bPSQLException\b",
            Severity.HIGH,
            "Database error message in response",
            owasp=_ERROR_DISCLOSURE,
        ),
    ),
    SecurityType.AUTHENTICATION: (_CREDENTIAL, _BEARER, _JWT),
    SecurityType.ENCRYPTION: (
        _sig(
            "private_key",
            r"-----BEGIN (?:RSA |EC |DSA |OPENSSH )?PRIVATE KEY-----",
            Severity.CRITICAL,
            "Private key material in response",
            flags=0,
        ),
        _sig(
            "aws_access_key",
            r"\b(?:AKIA|ASIA)[0-9A-Z]{16}\b",
            Severity.CRITICAL,
            "Cloud access key id in response",
            flags=0,
        ),
        _sig(
            "credit_card",
            r"\b(?:4\d{3}|5[1-5]\d{2}|6011)(?:[ -]?\d{4}){3}\b",
            Severity.HIGH,
            "Payment card number in response",
            verifier=luhn_valid,
        ),
        _sig(
            "ssn",
            r"\b\d{3}-\d{2}-\d{4}\b",
            Severity.HIGH,
            "Social security number in response",
        ),
        _CREDENTIAL,
    ),
    SecurityType.SESSION_MANAGEMENT: (
        _sig(
            "session_id_exposure",
            r"\b(?:jsessionid|phpsessid|aspsessionid\w*|sessionid|session_id|sid)"
            r"[\"']?\s*[=:]\s*[\"']?[\w-]{16,}",
            Severity.HIGH,
            "Session identifier in response body",
        ),
    ),
    SecurityType.AUTHORIZATION: _INTERNAL_IDENTIFIERS,
    SecurityType.ACCESS_CONTROL: _INTERNAL_IDENTIFIERS,
    SecurityType.INPUT_VALIDATION: (
        _sig(
            "python_traceback",
            r"Traceback \(most recent call last\)",
            Severity.MEDIUM,
            "Python stack trace in response",
            owasp=_ERROR_DISCLOSURE,
        ),
        _sig(
            "java_stack_frame",
            r"\bat\s+[\w$.]+\((?:[\w$]+\.(?:java|kt|scala):\d+|Native Method|Unknown Source)\)",
            Severity.MEDIUM,
            "JVM stack trace in response",
            owasp=_ERROR_DISCLOSURE,
        ),
        _sig(
            "dotnet_stack_frame",
            r"\bat\s+[\w.`<>]+\([^)]*\)\s+in\s+\S+:line\s+\d+",
            Severity.MEDIUM,
            ".NET stack trace in response",
            owasp=_ERROR_DISCLOSURE,
        ),
        _sig(
            "path_disclosure",
            r"[A-Za-z]:\\(?:[\w .-]+\\)+[\w .-]+\.\w+|"
            r"/(?:var|usr|home|opt|srv|app)/[\w./-]+\.(?:py|java|php|rb|js|cs|go)\b",
            Severity.LOW,
            "Server file path in response",
            owasp=_ERROR_DISCLOSURE,
        ),
    ),
    SecurityType.CSRF: (
        _sig(
            "form_without_csrf_token",
            r"<form\b[^>]*\bmethod\s*=\s*[\"']?post\b[^>]*>.*?</form\s*>",
            Severity.MEDIUM,
            "State-changing form without a CSRF token field",
            verifier=lacks_csrf_token,
            flags=re.IGNORECASE | re.DOTALL,
        ),
    ),
}

# Canonical attack payloads; finding one echoed back means it was not sanitized
KNOWN_PAYLOADS: Dict[SecurityType, Tuple[str, ...]] = {
    SecurityType.XSS: (
        "<script>alert(",
        "javascript:alert(",
        "onerror=alert(",
        "onload=alert(",
        "<svg/onload=",
        "<img src=x onerror=",
    ),
    SecurityType.SQL_INJECTION: (
        "' or '1'='1",
        "' or 1=1",
        "union select null",
        "'; drop table",
        "admin'--",
    ),
}

ERROR_WORD_PATTERN = re.compile(r"\b(?:error|exception)\b", re.IGNORECASE)
SET_COOKIE_PATTERN = re.compile(r"^set-cookie:[^\r\n]*$", re.IGNORECASE | re.MULTILINE)


def normalize_input(text: str) -> str:
    """
    Decode URL and HTML-entity encoding until the text stops changing.

    Applies at most ``MAX_DECODE_ROUNDS`` rounds so hostile input cannot
    keep the decoder busy.
    """
    current = text
    for _ in range(MAX_DECODE_ROUNDS):
        decoded = html.unescape(unquote_plus(current))
        if decoded == current:
            break
        current = decoded
    return current


def owasp_for(signature: Signature, category: SecurityType) -> OwaspCategory:
    """OWASP category reported for a signature match."""
    return signature.owasp or DEFAULT_OWASP[category]


def input_signatures(security_type: SecurityType) -> List[Signature]:
    """Input signatures registered for a type (empty when none apply)."""
    return list(INPUT_SIGNATURES.get(security_type, ()))


def response_signatures(security_type: SecurityType) -> List[Signature]:
    """Response signatures registered for a type (empty when none apply)."""
    return list(RESPONSE_SIGNATURES.get(security_type, ()))
