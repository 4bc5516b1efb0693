"""
Pytest configuration and shared fixtures for QA Harness tests.

Provides deterministic clocks, a recording sleep, isolated component
instances and a clean environment for all test modules.
"""

import pytest

from harness.core.config import Config
from harness.performance.monitor import PerformanceMonitor
from harness.retry.executor import RetryExecutor
from harness.security.validator import SecurityValidator

HARNESS_ENV_VARS = [
    "CI",
    "HARNESS_LOG_LEVEL",
    "HARNESS_LOG_FORMAT",
    "HARNESS_LOGS_DIR",
    "HARNESS_RETRY_ENABLED",
    "HARNESS_RETRY_COUNT",
    "HARNESS_MAX_INPUT_LENGTH",
    "HARNESS_METADATA_PATH",
]


class FakeClock:
    """Manually advanced clock returning seconds."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    """Sleep replacement that records requested durations."""

    def __init__(self):
        self.calls = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)

    @property
    def milliseconds(self):
        return [round(s * 1000.0, 6) for s in self.calls]


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Remove environment overrides so Config defaults are predictable."""
    for name in HARNESS_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def temp_config(tmp_path):
    """Create a configuration that writes logs to a temporary directory."""
    return Config(logs_dir=tmp_path / "logs")


@pytest.fixture
def fake_clock():
    """Create a manually advanced clock."""
    return FakeClock()


@pytest.fixture
def monitor(fake_clock):
    """Create an isolated performance monitor driven by the fake clock."""
    return PerformanceMonitor(clock=fake_clock)


@pytest.fixture
def recording_sleep():
    """Create a sleep replacement that never blocks."""
    return RecordingSleep()


@pytest.fixture
def executor(recording_sleep):
    """Create a retry executor that records instead of sleeping."""
    return RetryExecutor(sleep=recording_sleep)


@pytest.fixture
def validator():
    """Create a security validator with default limits."""
    return SecurityValidator()


@pytest.fixture
def metadata_yaml(tmp_path):
    """Write a sample metadata document and return its path."""
    path = tmp_path / "tests.yaml"
    path.write_text(
        """
tests:
  LoginTests.test_valid_login:
    category: SMOKE
    risk: HIGH
    info:
      description: Valid credentials reach the inventory page
      tags: [login, smoke]
    retry:
      max_attempts: 4
      delay_ms: 500
      backoff_multiplier: 2.0
      max_delay_ms: 4000
      abort_on: [ASSERTION]
  CheckoutTests.test_checkout_load:
    category: PERFORMANCE
    performance:
      max_response_time_ms: 250
      concurrent_users: 10
      duration_seconds: 30
      max_memory_mb: 256
      expected_throughput: 5
      type: STRESS
  AdminTests.test_user_search:
    category: SECURITY
    security:
      types: [SQL_INJECTION, XSS, AUTHORIZATION]
      owasp_categories: [A03_INJECTION, A01_BROKEN_ACCESS_CONTROL]
      required_roles: [ADMIN]
      level: HIGH
""",
        encoding="utf-8",
    )
    return path
