"""Tests for the description classifier (no real API calls)."""

import asyncio
from types import SimpleNamespace

import pytest
from tenacity import wait_none

from reconciliation.agents import (
    ClassificationError,
    GeminiDescriptionClassifier,
    parse_suggestion,
)
from reconciliation.agents.classifier import UNCATEGORIZED


class StubModel:
    """Stands in for genai.GenerativeModel."""

    def __init__(self, replies):
        self._replies = list(replies)
        self.calls = 0

    async def generate_content_async(self, prompt):
        self.calls += 1
        reply = self._replies.pop(0) if len(self._replies) > 1 else self._replies[0]
        if isinstance(reply, Exception):
            raise reply
        return SimpleNamespace(text=reply)


class TestParseSuggestion:
    """Tests for reply parsing."""

    def test_json_inside_prose(self):
        suggestion = parse_suggestion(
            'Here you go: {"category": "Tasse", "subcategory": "F24 Vari", '
            '"vat_rate": 0, "confidence": 0.9} Hope this helps.'
        )
        assert suggestion.category == "Tasse"
        assert suggestion.subcategory == "F24 Vari"
        assert suggestion.vat_rate == 0.0
        assert suggestion.is_categorized is True

    def test_unknown_category_falls_back(self):
        suggestion = parse_suggestion('{"category": "Groceries", "subcategory": "Food"}')
        assert suggestion.category == UNCATEGORIZED
        assert suggestion.subcategory == UNCATEGORIZED
        assert suggestion.is_categorized is False

    def test_subcategory_must_belong_to_category(self):
        suggestion = parse_suggestion('{"category": "Tasse", "subcategory": "Telefonia"}')
        assert suggestion.category == "Tasse"
        assert suggestion.subcategory == UNCATEGORIZED

    def test_vat_rate_snaps_to_known_rates(self):
        suggestion = parse_suggestion('{"category": "Energia", "vat_rate": 0.21}')
        assert suggestion.vat_rate == 0.22

    def test_no_json(self):
        with pytest.raises(ClassificationError):
            parse_suggestion("I cannot help with that")


class TestGeminiDescriptionClassifier:
    """Tests for the classifier with a stub model."""

    def test_classify(self):
        model = StubModel(['{"category": "Gestione Generale", "subcategory": "Telefonia"}'])
        classifier = GeminiDescriptionClassifier(model=model)
        suggestion = asyncio.run(classifier.classify("Canone TIM marzo"))
        assert suggestion.subcategory == "Telefonia"
        assert model.calls == 1

    def test_prompt_lists_the_chart(self):
        prompt = GeminiDescriptionClassifier.build_prompt("Canone TIM")
        assert "Canone TIM" in prompt
        assert "Tasse: IVA Trimestrale" in prompt

    def test_retries_then_gives_up(self, monkeypatch):
        """Transient failures are retried three times before giving up."""
        monkeypatch.setattr(GeminiDescriptionClassifier._generate.retry, "wait", wait_none())
        model = StubModel([RuntimeError("quota exceeded")])
        classifier = GeminiDescriptionClassifier(model=model)

        with pytest.raises(ClassificationError, match="quota exceeded"):
            asyncio.run(classifier.classify("Canone TIM"))
        assert model.calls == 3

    def test_recovers_after_transient_failure(self, monkeypatch):
        monkeypatch.setattr(GeminiDescriptionClassifier._generate.retry, "wait", wait_none())
        model = StubModel([RuntimeError("timeout"), '{"category": "Tasse"}'])
        classifier = GeminiDescriptionClassifier(model=model)

        suggestion = asyncio.run(classifier.classify("F24 marzo"))
        assert suggestion.category == "Tasse"
        assert model.calls == 2

    def test_empty_description(self):
        classifier = GeminiDescriptionClassifier(model=StubModel(["{}"]))
        with pytest.raises(ClassificationError):
            asyncio.run(classifier.classify("   "))
