"""
Configuration management for QA Harness.

Handles environment variables, defaults, and configuration validation
for the retry, performance and security components.
"""

import math
import os
from typing import Optional, Dict, Any
from dataclasses import dataclass, field
from pathlib import Path


def _env_bool(name: str) -> Optional[bool]:
    value = os.getenv(name)
    if value is None:
        return None
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Config:
    """Configuration class for QA Harness with environment variable support."""

    # Environment detection
    ci_mode: bool = field(default=False)

    # Logging configuration
    log_level: str = field(default="INFO")
    log_format: str = field(default="text")
    logs_dir: Path = field(default_factory=lambda: Path.cwd() / "logs")

    # Retry defaults used when a test declares no policy of its own
    retry_enabled: bool = field(default=True)
    retry_count: int = field(default=2)
    retry_initial_delay_ms: float = field(default=1000.0)
    retry_backoff_multiplier: float = field(default=1.5)
    retry_max_delay_ms: float = field(default=30000.0)

    # Security validation
    max_input_length: int = field(default=10000)

    # Test metadata file
    metadata_path: Optional[Path] = field(default=None)

    def __post_init__(self):
        """Post-initialization validation and environment overrides."""
        ci_env = os.getenv("CI", "").lower() == "true"
        if ci_env and self.ci_mode is False:
            self.ci_mode = True

        log_env = os.getenv("HARNESS_LOG_LEVEL")
        if log_env:
            self.log_level = log_env

        valid_log_levels = ["DEBUG", "INFO", "WARNING", "ERROR"]
        level = self.log_level.upper()
        if level == "WARN":
            level = "WARNING"
        self.log_level = level if level in valid_log_levels else "INFO"

        format_env = os.getenv("HARNESS_LOG_FORMAT")
        if format_env in ("json", "text"):
            self.log_format = format_env
        elif self.ci_mode and self.log_format == "text":
            # JSON output is easier to collect from CI logs
            self.log_format = "json"

        retry_enabled_env = _env_bool("HARNESS_RETRY_ENABLED")
        if retry_enabled_env is not None:
            self.retry_enabled = retry_enabled_env

        retry_count_env = os.getenv("HARNESS_RETRY_COUNT")
        if retry_count_env is not None:
            try:
                self.retry_count = int(retry_count_env)
            except ValueError:
                pass

        length_env = os.getenv("HARNESS_MAX_INPUT_LENGTH")
        if length_env is not None:
            try:
                self.max_input_length = int(length_env)
            except ValueError:
                pass

        metadata_env = os.getenv("HARNESS_METADATA_PATH")
        if metadata_env:
            self.metadata_path = Path(metadata_env)
        elif self.metadata_path is not None:
            self.metadata_path = Path(self.metadata_path)

        self.logs_dir = Path(self.logs_dir)

    @property
    def is_ci_mode(self) -> bool:
        """Check if running in CI environment."""
        return self.ci_mode

    @property
    def debug_enabled(self) -> bool:
        """Check if debug logging is enabled."""
        return self.log_level == "DEBUG"

    def get_log_file_path(self) -> Path:
        """Get the main log file path."""
        self.logs_dir.mkdir(parents=True, exist_ok=True)
        return self.logs_dir / "qa-harness.log"

    def default_retry_policy(self):
        """
        Build the retry policy applied to tests that declare none.

        ``retry_count`` counts retries, so the policy allows one more attempt
        than that. Disabling retries yields a single-attempt policy.
        """
        from ..retry.models import RetryPolicy

        if not self.retry_enabled:
            return RetryPolicy.no_retry()

        return RetryPolicy(
            max_attempts=self.retry_count + 1,
            initial_delay_ms=self.retry_initial_delay_ms,
            backoff_multiplier=self.retry_backoff_multiplier,
            max_delay_ms=self.retry_max_delay_ms,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary for logging."""
        return {
            "ci_mode": self.ci_mode,
            "log_level": self.log_level,
            "log_format": self.log_format,
            "logs_dir": str(self.logs_dir),
            "retry_enabled": self.retry_enabled,
            "retry_count": self.retry_count,
            "retry_initial_delay_ms": self.retry_initial_delay_ms,
            "retry_backoff_multiplier": self.retry_backoff_multiplier,
            "retry_max_delay_ms": self.retry_max_delay_ms,
            "max_input_length": self.max_input_length,
            "metadata_path": str(self.metadata_path) if self.metadata_path else None,
        }

    @classmethod
    def from_env(cls) -> "Config":
        """Create configuration from environment variables."""
        ci = os.getenv("CI", "").lower() == "true"
        log_level = os.getenv("HARNESS_LOG_LEVEL", "INFO").upper()
        log_format = os.getenv("HARNESS_LOG_FORMAT", "json" if ci else "text")
        logs_dir = Path(os.getenv("HARNESS_LOGS_DIR", str(Path.cwd() / "logs")))

        return cls(
            ci_mode=ci,
            log_level=log_level,
            log_format=log_format,
            logs_dir=logs_dir,
        )

    def validate(self) -> None:
        """Validate configuration and raise ValidationError if invalid."""
        from .exceptions import ValidationError

        errors = []

        valid_log_levels = ["DEBUG", "INFO", "WARNING", "ERROR"]
        if self.log_level not in valid_log_levels:
            errors.append(
                f"Invalid log level: {self.log_level}. Must be one of {valid_log_levels}"
            )

        if self.log_format not in ("json", "text"):
            errors.append(
                f"Invalid log format: {self.log_format}. Must be 'json' or 'text'"
            )

        if self.retry_count < 0:
            errors.append(f"Retry count must be non-negative, got {self.retry_count}")

        for name in ("retry_initial_delay_ms", "retry_backoff_multiplier", "retry_max_delay_ms"):
            if not math.isfinite(getattr(self, name)):
                errors.append(f"Retry setting {name} must be a finite number")

        if self.retry_initial_delay_ms < 0:
            errors.append("Retry initial delay must be non-negative")

        if self.retry_backoff_multiplier < 1.0:
            errors.append(
                f"Retry backoff multiplier must be >= 1.0, got {self.retry_backoff_multiplier}"
            )

        if self.retry_max_delay_ms < 0:
            errors.append("Retry max delay must be non-negative")

        if self.max_input_length <= 0:
            errors.append(
                f"Max input length must be positive, got {self.max_input_length}"
            )

        if self.metadata_path is not None and not self.metadata_path.exists():
            errors.append(f"Metadata file not found: {self.metadata_path}")

        if errors:
            message = "Configuration validation failed: " + "; ".join(errors)
            raise ValidationError(
                message,
                validation_type="config",
                violations=errors,
            )
