"""Shared fixtures for the reconciliation test suite."""

import pytest

from reconciliation.config import AppSettings, MatchingSettings


@pytest.fixture
def matching_settings() -> MatchingSettings:
    """Default weight table, independent of the environment."""
    return MatchingSettings(_env_file=None)


@pytest.fixture
def app_settings() -> AppSettings:
    return AppSettings(_env_file=None)
