"""Tests for configuration loading."""

import pytest
from pydantic import ValidationError

from reconciliation.config import MatchingSettings, get_settings, validate_all_settings


class TestMatchingSettings:
    """Tests for the weight table."""

    def test_defaults(self, matching_settings):
        assert matching_settings.auto_link_threshold == 80
        assert matching_settings.confirm_threshold == 500
        assert matching_settings.overdue_base_score == 1000
        assert matching_settings.future_window_days == 90
        assert matching_settings.exact_amount_tolerance == 0.02

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("RECON_MATCH_CONFIRM_THRESHOLD", "650")
        assert MatchingSettings().confirm_threshold == 650

    def test_bands_must_not_overlap(self):
        """Future obligations can never outrank overdue ones."""
        with pytest.raises(ValidationError, match="future_base_score"):
            MatchingSettings(future_base_score=1200)


class TestGetSettings:
    """Tests for the cached root settings."""

    def test_cached(self):
        assert get_settings() is get_settings()

    def test_gemini_requires_api_key(self, monkeypatch):
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        with pytest.raises(ValidationError):
            get_settings().gemini

    def test_validate_all_settings_reports_missing_key(self, monkeypatch):
        """A missing Gemini key is reported, not raised."""
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        results = validate_all_settings()
        assert results["matching"] is True
        assert results["app"] is True
        assert results["gemini"] is False
        assert "gemini_error" in results
