"""Shared test configuration for keyman tests."""

import pytest

from keyman.core.logging import setup_logging


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest with custom settings."""
    # Same logging pipeline as the application, at full verbosity
    setup_logging(log_level_name="DEBUG", fmt="plain")
