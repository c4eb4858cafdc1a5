"""AI Agents package."""

from reconciliation.agents.classifier import (
    CATEGORIES,
    ClassificationError,
    ClassificationSuggestion,
    GeminiDescriptionClassifier,
    parse_suggestion,
)

__all__ = [
    "CATEGORIES",
    "ClassificationError",
    "ClassificationSuggestion",
    "GeminiDescriptionClassifier",
    "parse_suggestion",
]
