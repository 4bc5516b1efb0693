"""Core components for QA Harness."""

from .config import Config
from .exceptions import (
    HarnessError,
    InvalidPolicyError,
    OperationFailure,
    ExhaustedRetriesError,
    InvalidArgumentError,
    ValidationError,
    MetadataError,
)
from .logging_config import setup_logging, get_logger

__all__ = [
    "Config",
    "HarnessError",
    "InvalidPolicyError",
    "OperationFailure",
    "ExhaustedRetriesError",
    "InvalidArgumentError",
    "ValidationError",
    "MetadataError",
    "setup_logging",
    "get_logger",
]
