"""
Configuration Management for the Reconciliation Engine

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: Every threshold and weight used by the scoring code lives here.
The matcher and the confirmation gate receive these values by injection,
so the arithmetic can be tuned and tested without touching the engine.
"""

from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class MatchingSettings(BaseSettings):
    """
    Weight table and thresholds for obligation matching.

    Feature contributions (see ScoreBreakdown):

    | Feature      | Contribution                                          |
    |--------------|-------------------------------------------------------|
    | date         | overdue: overdue_base_score - days / overdue_decay_days |
    |              | future:  future_base_score - days (within window)     |
    | amount       | exact_amount_score, or partial_amount_base minus the  |
    |              | percentage gap                                         |
    | description  | jaccard * description_weight                          |
    | category     | category_bonus (import only)                          |
    | subcategory  | subcategory_bonus (import only)                       |
    """

    model_config = SettingsConfigDict(
        env_prefix="RECON_MATCH_",
        extra="ignore"
    )

    # Confirmation gate
    auto_link_threshold: float = Field(
        default=80.0,
        ge=0.0,
        description="Score above which the live preview pre-selects a link"
    )
    confirm_threshold: float = Field(
        default=500.0,
        ge=0.0,
        description="Score above which a link is proposed for explicit confirmation"
    )

    # Date feature
    overdue_base_score: float = Field(
        default=1000.0,
        description="Base score for obligations due on or before the transaction date"
    )
    overdue_decay_days: float = Field(
        default=30.0,
        gt=0.0,
        description="Days of lateness that cost one point"
    )
    future_base_score: float = Field(
        default=500.0,
        description="Base score for obligations due after the transaction date"
    )
    future_window_days: int = Field(
        default=90,
        ge=0,
        description="Obligations due further in the future are rejected"
    )

    # Amount feature
    exact_amount_tolerance: float = Field(
        default=0.02,
        ge=0.0,
        description="Absolute difference treated as an exact amount match"
    )
    exact_amount_score: float = Field(
        default=100.0,
        ge=0.0,
        description="Points for an exact amount match"
    )
    partial_amount_base: float = Field(
        default=50.0,
        ge=0.0,
        description="Points for a partial match before the percentage penalty"
    )

    # Description feature
    description_weight: float = Field(
        default=50.0,
        ge=0.0,
        description="Multiplier applied to the Jaccard similarity"
    )

    # Import-only bonuses
    category_bonus: float = Field(
        default=20.0,
        ge=0.0,
        description="Bonus when categories match exactly"
    )
    subcategory_bonus: float = Field(
        default=10.0,
        ge=0.0,
        description="Bonus when subcategories match exactly"
    )

    # Settlement
    settlement_tolerance: float = Field(
        default=0.02,
        ge=0.0,
        description="Shortfall still considered a full settlement"
    )

    @model_validator(mode='after')
    def validate_bands(self) -> 'MatchingSettings':
        """Overdue and future bands must stay disjoint."""
        if self.future_base_score >= self.overdue_base_score:
            raise ValueError(
                "future_base_score must be lower than overdue_base_score"
            )
        return self


class GeminiSettings(BaseSettings):
    """Gemini LLM configuration for description classification."""

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        extra="ignore"
    )

    api_key: str = Field(
        ...,
        description="Gemini API key"
    )
    model_name: str = Field(
        default="gemini-1.5-flash",
        description="Gemini model to use"
    )
    max_tokens: int = Field(
        default=512,
        ge=100,
        le=8192,
        description="Maximum tokens in response"
    )
    temperature: float = Field(
        default=0.1,
        ge=0.0,
        le=1.0,
        description="Model temperature (lower = more deterministic)"
    )


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Minimum level for local structured logs"
    )

    # Transaction validation
    max_transaction_amount: float = Field(
        default=5000000.0,
        gt=0.0,
        description="Maximum reasonable transaction amount (for sanity checking)"
    )
    future_date_tolerance_days: int = Field(
        default=0,
        ge=0,
        description="How many days in the future a transaction date can be"
    )
    old_date_warning_days: int = Field(
        default=365 * 3,
        ge=1,
        description="Transactions older than this are flagged for review"
    )
    min_description_length: int = Field(
        default=3,
        ge=1,
        description="Minimum description length for a transaction"
    )


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Note: These are loaded lazily to allow partial configuration

    @property
    def matching(self) -> MatchingSettings:
        return MatchingSettings()

    @property
    def gemini(self) -> GeminiSettings:
        return GeminiSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    try:
        _ = settings.matching
        results["matching"] = True
    except Exception as e:
        results["matching"] = False
        results["matching_error"] = str(e)

    try:
        _ = settings.gemini
        results["gemini"] = True
    except Exception as e:
        results["gemini"] = False
        results["gemini_error"] = str(e)

    try:
        _ = settings.app
        results["app"] = True
    except Exception as e:
        results["app"] = False
        results["app_error"] = str(e)

    return results
