"""
Unit tests for Config class.

Tests configuration defaults, environment variable handling, validation
and the default retry policy derived from configuration.
"""

import os
import pytest
from unittest.mock import patch
from pathlib import Path

from harness.core.config import Config
from harness.core.exceptions import ValidationError
from harness.retry.executor import compute_delay
from harness.retry.models import RetryPolicy


class TestConfig:
    """Test cases for Config class."""

    def test_default_config_creation(self):
        """Test creating config with default values."""
        config = Config()

        assert config.ci_mode is False  # Default when CI env var not set
        assert config.log_level == "INFO"
        assert config.log_format == "text"
        assert config.retry_enabled is True
        assert config.retry_count == 2
        assert config.max_input_length == 10000
        assert config.metadata_path is None

    @patch.dict(os.environ, {"CI": "true"})
    def test_ci_mode_detection(self):
        """Test CI mode detection from environment variable."""
        config = Config()

        assert config.ci_mode is True
        assert config.is_ci_mode is True
        assert config.log_format == "json"  # Should switch to JSON in CI

    @patch.dict(os.environ, {"CI": "false"})
    def test_ci_mode_false(self):
        """Test CI mode when explicitly set to false."""
        config = Config()

        assert config.ci_mode is False

    @patch.dict(
        os.environ,
        {
            "HARNESS_LOG_LEVEL": "debug",
            "HARNESS_LOG_FORMAT": "json",
            "HARNESS_RETRY_ENABLED": "false",
            "HARNESS_RETRY_COUNT": "4",
            "HARNESS_MAX_INPUT_LENGTH": "256",
            "HARNESS_METADATA_PATH": "/tmp/tests.yaml",
        },
    )
    def test_environment_variable_override(self):
        """Test all environment variable overrides."""
        config = Config()

        assert config.log_level == "DEBUG"
        assert config.debug_enabled is True
        assert config.log_format == "json"
        assert config.retry_enabled is False
        assert config.retry_count == 4
        assert config.max_input_length == 256
        assert config.metadata_path == Path("/tmp/tests.yaml")

    @patch.dict(os.environ, {"HARNESS_LOG_LEVEL": "WARN"})
    def test_warn_alias(self):
        """Test WARN is accepted as WARNING."""
        assert Config().log_level == "WARNING"

    @patch.dict(os.environ, {"HARNESS_LOG_LEVEL": "LOUD"})
    def test_invalid_log_level_falls_back(self):
        """Test an unknown log level falls back to INFO."""
        assert Config().log_level == "INFO"

    @patch.dict(os.environ, {"HARNESS_RETRY_COUNT": "many"})
    def test_unparseable_retry_count_ignored(self):
        """Test a non-integer retry count keeps the default."""
        assert Config().retry_count == 2

    def test_from_env_class_method(self, tmp_path):
        """Test creating config from environment using class method."""
        with patch.dict(
            os.environ,
            {"CI": "true", "HARNESS_LOG_LEVEL": "ERROR", "HARNESS_LOGS_DIR": str(tmp_path)},
        ):
            config = Config.from_env()

            assert config.ci_mode is True
            assert config.log_level == "ERROR"
            assert config.log_format == "json"
            assert config.logs_dir == tmp_path

    def test_validate_valid_config(self, temp_config):
        """Test validation of valid configuration."""
        temp_config.validate()

    def test_validate_collects_all_errors(self, temp_config):
        """Test validation reports every invalid field at once."""
        temp_config.retry_count = -1
        temp_config.retry_backoff_multiplier = 0.5
        temp_config.max_input_length = 0

        with pytest.raises(ValidationError) as exc_info:
            temp_config.validate()

        violations = exc_info.value.violations
        assert len(violations) == 3
        assert any("Retry count must be non-negative" in v for v in violations)
        assert any("Retry backoff multiplier must be >= 1.0" in v for v in violations)
        assert any("Max input length must be positive" in v for v in violations)

    def test_validate_missing_metadata_file(self, temp_config, tmp_path):
        """Test validation fails when the metadata file does not exist."""
        temp_config.metadata_path = tmp_path / "missing.yaml"

        with pytest.raises(ValidationError, match="Metadata file not found"):
            temp_config.validate()

    def test_to_dict(self, temp_config):
        """Test converting config to dictionary."""
        config_dict = temp_config.to_dict()

        assert config_dict["ci_mode"] is False
        assert config_dict["log_level"] == "INFO"
        assert config_dict["retry_count"] == 2
        assert config_dict["metadata_path"] is None
        assert config_dict["logs_dir"] == str(temp_config.logs_dir)

    def test_get_log_file_path(self, temp_config):
        """Test getting log file path creates the logs directory."""
        log_path = temp_config.get_log_file_path()

        assert log_path == temp_config.logs_dir / "qa-harness.log"
        assert temp_config.logs_dir.exists()

    def test_validate_max_delay_below_initial(self, temp_config):
        """Test a max delay below the initial delay is valid and clamps."""
        temp_config.retry_initial_delay_ms = 5000.0
        temp_config.retry_max_delay_ms = 2000.0

        temp_config.validate()

        assert compute_delay(temp_config.default_retry_policy(), 1) == 2000.0

    def test_validate_non_finite_retry_settings(self, temp_config):
        """Test NaN and infinite retry settings are reported."""
        temp_config.retry_backoff_multiplier = float("nan")
        temp_config.retry_max_delay_ms = float("inf")

        with pytest.raises(ValidationError) as exc_info:
            temp_config.validate()

        violations = exc_info.value.violations
        assert len(violations) == 2
        assert all("must be a finite number" in v for v in violations)


class TestDefaultRetryPolicy:
    """Test cases for the configured default retry policy."""

    def test_retry_count_adds_one_attempt(self, temp_config):
        """Test two retries mean three attempts."""
        policy = temp_config.default_retry_policy()

        assert policy.max_attempts == 3
        assert policy.initial_delay_ms == 1000.0
        assert policy.backoff_multiplier == 1.5
        assert policy.max_delay_ms == 30000.0

    def test_disabled_retries_single_attempt(self, temp_config):
        """Test disabling retries yields a single-attempt policy."""
        temp_config.retry_enabled = False

        assert temp_config.default_retry_policy() == RetryPolicy.no_retry()
        assert temp_config.default_retry_policy().max_attempts == 1

    @patch.dict(os.environ, {"HARNESS_RETRY_COUNT": "0"})
    def test_zero_retries(self):
        """Test a zero retry count still allows the first attempt."""
        assert Config().default_retry_policy().max_attempts == 1
