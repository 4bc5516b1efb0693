"""
Error classification for retry decisions.

Maps an exception raised by a test operation to an ``ErrorKind`` so that
retry policies can be expressed independently of exception types.
"""

import re
from typing import Callable, Dict, Tuple, Type

from ..core.exceptions import OperationFailure
from ..models.types import ErrorKind

ErrorClassifier = Callable[[BaseException], ErrorKind]

# Checked in order; subclasses must precede their bases.
_TYPE_KINDS: Tuple[Tuple[Type[BaseException], ErrorKind], ...] = (
    (AssertionError, ErrorKind.ASSERTION),
    (TimeoutError, ErrorKind.TIMEOUT),
    (ConnectionError, ErrorKind.CONNECTION),
    (PermissionError, ErrorKind.AUTH_ERROR),
)

_MESSAGE_KINDS: Tuple[Tuple["re.Pattern", ErrorKind], ...] = tuple(
    (re.compile(pattern), kind)
    for pattern, kind in (
        (r"rate limit|too many requests|\b429\b", ErrorKind.RATE_LIMIT),
        (r"timeout|timed out", ErrorKind.TIMEOUT),
        (r"connection|network", ErrorKind.CONNECTION),
        (r"\b50[0234]\b", ErrorKind.SERVER_ERROR),
        (r"\b40[13]\b|unauthorized|forbidden", ErrorKind.AUTH_ERROR),
        (r"stale element", ErrorKind.STALE_ELEMENT),
        (r"no such element|not found", ErrorKind.ELEMENT_NOT_FOUND),
        (r"\b(?:400|404|422)\b", ErrorKind.CLIENT_ERROR),
    )
)


def classify_error(error: BaseException) -> ErrorKind:
    """Classify an exception into an ErrorKind."""
    if isinstance(error, OperationFailure) and isinstance(error.kind, ErrorKind):
        return error.kind

    for error_type, kind in _TYPE_KINDS:
        if isinstance(error, error_type):
            return kind

    error_str = str(error).lower()
    for pattern, kind in _MESSAGE_KINDS:
        if pattern.search(error_str):
            return kind

    return ErrorKind.UNKNOWN


def classifier_from_mapping(
    mapping: Dict[Type[BaseException], ErrorKind],
    fallback: ErrorClassifier = classify_error,
) -> ErrorClassifier:
    """
    Build a classifier that checks project-specific exception types first.

    Args:
        mapping: Exception type to ErrorKind, checked with isinstance
        fallback: Classifier used when no mapped type matches

    Returns:
        Classifier callable
    """
    items = list(mapping.items())

    def classify(error: BaseException) -> ErrorKind:
        if isinstance(error, OperationFailure) and isinstance(error.kind, ErrorKind):
            return error.kind
        for error_type, kind in items:
            if isinstance(error, error_type):
                return kind
        return fallback(error)

    return classify
