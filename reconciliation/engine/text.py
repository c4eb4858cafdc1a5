"""
Description Normalization and Similarity

Free-text descriptions are compared as token sets. Normalization drops
everything that carries no identifying information: punctuation, very
short tokens, articles and prepositions, and the payment jargon that
appears on nearly every bank line ("payment", "invoice", "bonifico", ...).
"""

import re
from typing import AbstractSet, Optional


# Articles, prepositions and payment jargon, English and Italian.
# Tokens of length <= 2 are dropped before this list is consulted.
STOP_WORDS = frozenset({
    # English
    "the", "and", "for", "from", "with", "via", "per",
    "payment", "payments", "paid", "pay", "invoice", "invoices",
    "transfer", "transfers", "reference", "ref", "number", "bank",
    "debit", "credit", "direct",
    # Italian
    "del", "della", "dello", "delle", "dei", "degli",
    "alla", "alle", "allo", "agli", "dal", "dalla", "dai", "dalle",
    "nel", "nella", "nei", "nelle", "sul", "sulla", "con", "tra", "fra",
    "pagamento", "pagamenti", "pagato", "fattura", "fatture", "fatt",
    "bonifico", "bonifici", "riferimento", "rif", "numero", "num",
    "addebito", "accredito", "sdd", "rid", "saldo", "acconto",
})

_PUNCTUATION = re.compile(r"[^\w\s]", re.UNICODE)
_WHITESPACE = re.compile(r"\s+")

MIN_TOKEN_LENGTH = 3


def normalize_description(text: Optional[str]) -> frozenset[str]:
    """
    Turn a description into a comparable token set.

    >>> sorted(normalize_description("Pagamento fattura n. 12 - Alfa S.r.l."))
    ['alfa']
    """
    if not text:
        return frozenset()

    cleaned = _PUNCTUATION.sub(" ", text.lower())
    cleaned = _WHITESPACE.sub(" ", cleaned).strip()

    return frozenset(
        token
        for token in cleaned.split(" ")
        if len(token) >= MIN_TOKEN_LENGTH and token not in STOP_WORDS
    )


def jaccard(a: AbstractSet[str], b: AbstractSet[str]) -> float:
    """
    Jaccard similarity of two token sets, in [0, 1].

    Either side empty means no evidence, so the result is 0.
    """
    if not a or not b:
        return 0.0
    union = len(a | b)
    return len(a & b) / union


def description_similarity(left: Optional[str], right: Optional[str]) -> float:
    """Normalize both descriptions and compare them."""
    return jaccard(normalize_description(left), normalize_description(right))
