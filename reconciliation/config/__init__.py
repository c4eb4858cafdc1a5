"""Configuration package."""

from reconciliation.config.settings import (
    AppSettings,
    GeminiSettings,
    MatchingSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "GeminiSettings",
    "MatchingSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
