"""
Description Classifier

Suggests a category, subcategory and VAT rate for a bank movement from its
description, using Gemini.

CRITICAL BOUNDARIES:
   - CAN: Suggest category, subcategory and VAT rate for a description
   - CANNOT: Link, save or modify anything
   - CANNOT: Invent categories outside the chart below

The suggestion only feeds the matcher's bonus terms during batch import.
A failed classification leaves the row unclassified; it never blocks the
import.
"""

import json
from typing import Any, Optional

import google.generativeai as genai
import structlog
from pydantic import BaseModel, Field, field_validator
from tenacity import retry, stop_after_attempt, wait_exponential

from reconciliation.config import GeminiSettings, get_settings


logger = structlog.get_logger(__name__)


UNCATEGORIZED = "Da categorizzare"

# Category chart used by the dashboard
CATEGORIES: dict[str, list[str]] = {
    "Immobiliare": ["Affitti", "Depositi Cauzionali", "Recupero Spese", "Immobili"],
    "Energia": ["Quote CEF", "Pratiche Contributo", "Incentivi GSE", "Vendita Energia"],
    "Fornitori": ["Materiali", "Lavori/Manutenzione", "Impianti", "Servizi"],
    "Gestione Immobili": ["Spese Condominiali", "Manutenzione", "Ristrutturazione", "Utenze"],
    "Gestione Generale": ["Spese Bancarie", "Commercialista", "Telefonia", "Altre Spese", "Gestione"],
    "Tasse": ["IVA Trimestrale", "IMU", "IRES", "IRAP", "F24 Vari", "Bolli", "Cartelle Esattoriali"],
    "Finanziamenti": ["Rate Mutuo", "Rate Prestito", "Rimborso"],
    "Movimenti Interni": ["Giroconto", "Trasferimento"],
}

VAT_RATES = (0.22, 0.10, 0.04, 0.0)


class ClassificationError(Exception):
    """The classifier could not produce a usable suggestion."""
    pass


class ClassificationSuggestion(BaseModel):
    """AI's suggestion for a movement's classification."""

    category: str = Field(default=UNCATEGORIZED)
    subcategory: str = Field(default=UNCATEGORIZED)
    vat_rate: float = Field(default=0.22, ge=0.0, le=1.0)
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)

    @field_validator("category", mode="after")
    @classmethod
    def known_category(cls, v: str) -> str:
        return v if v in CATEGORIES else UNCATEGORIZED

    @field_validator("vat_rate", mode="after")
    @classmethod
    def closest_vat_rate(cls, v: float) -> float:
        return min(VAT_RATES, key=lambda rate: abs(rate - v))

    @property
    def is_categorized(self) -> bool:
        return self.category != UNCATEGORIZED


def parse_suggestion(text: str) -> ClassificationSuggestion:
    """
    Extract the JSON object from a model response.

    Raises:
        ClassificationError: If no valid JSON object is present
    """
    start = text.find("{")
    end = text.rfind("}") + 1
    if start < 0 or end <= start:
        raise ClassificationError("No JSON object in model response")

    try:
        data = json.loads(text[start:end])
    except json.JSONDecodeError as e:
        raise ClassificationError(f"Malformed JSON in model response: {e}") from e

    category = data.get("category") or UNCATEGORIZED
    subcategory = data.get("subcategory") or UNCATEGORIZED
    if subcategory not in CATEGORIES.get(category, []):
        subcategory = UNCATEGORIZED

    return ClassificationSuggestion(
        category=category,
        subcategory=subcategory,
        vat_rate=float(data.get("vat_rate", 0.22)),
        confidence=float(data.get("confidence", 0.5)),
    )


class GeminiDescriptionClassifier:
    """
    Gemini-backed classifier for movement descriptions.

    RESPONSIBILITIES:
    - Build the prompt with the category chart
    - Call the model (retried on transient failures)
    - Turn the reply into a ClassificationSuggestion

    BOUNDARIES:
    - NEVER persists data
    - NEVER returns a category outside the chart
    """

    def __init__(
        self,
        settings: Optional[GeminiSettings] = None,
        model: Optional[Any] = None,
    ):
        """
        Initialize the classifier.

        Args:
            settings: Gemini configuration. Loaded from the environment if None.
            model: Pre-built model object exposing `generate_content_async`.
                   If given, genai is not configured.
        """
        if model is not None:
            self._model = model
            return

        self._settings = settings or get_settings().gemini
        genai.configure(api_key=self._settings.api_key)
        self._model = genai.GenerativeModel(
            model_name=self._settings.model_name,
            generation_config={
                "temperature": self._settings.temperature,
                "max_output_tokens": self._settings.max_tokens,
            }
        )

    @staticmethod
    def build_prompt(description: str) -> str:
        chart = "\n".join(
            f"- {category}: {', '.join(subcategories)}"
            for category, subcategories in CATEGORIES.items()
        )
        rates = ", ".join(f"{rate:.2f}" for rate in VAT_RATES)

        return f"""You are an expert financial assistant categorizing bank movements for Italian companies.

Given the following movement description, suggest the most appropriate category,
subcategory and VAT (IVA) rate.

Description: {description}

Use ONLY these categories and subcategories:
{chart}

VAT rates: {rates}

Respond with ONLY a JSON object in this exact format:
{{"category": "Tasse", "subcategory": "F24 Vari", "vat_rate": 0.0, "confidence": 0.8}}

If unsure, use "{UNCATEGORIZED}" for both category and subcategory."""

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def _generate(self, prompt: str) -> str:
        response = await self._model.generate_content_async(prompt)
        return response.text.strip()

    async def classify(self, description: str) -> ClassificationSuggestion:
        """
        Suggest a classification for one description.

        Raises:
            ClassificationError: If the model fails after retries or
                replies with something unusable
        """
        if not description or not description.strip():
            raise ClassificationError("Empty description")

        try:
            text = await self._generate(self.build_prompt(description.strip()))
        except Exception as e:
            logger.warning("classification_request_failed", error=str(e))
            raise ClassificationError(f"Classification request failed: {e}") from e

        return parse_suggestion(text)
