"""
Obligation Matcher

Scores how plausibly a transaction settles each open obligation and
ranks the candidates.

The score is a sum of independent features (see MatchingSettings for
the weight table):

- date: obligations already due live in the 1000 band, future ones in
  the 500 band, so "settle what is already late" always wins at
  comparable amount and description quality. Future obligations beyond
  the window are rejected.
- amount: exact match within tolerance, else a penalty proportional to
  the percentage gap, the same for over- and under-payment.
- description: Jaccard similarity of normalized token sets.
- category / subcategory: bonus terms, only in the import variant where
  the classification service has produced them.

One matcher serves both the interactive entry and the bulk import; the
import variant only switches the bonus terms on.
"""

from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from reconciliation.config import MatchingSettings, get_settings
from reconciliation.engine.text import jaccard, normalize_description
from reconciliation.models.matching import MatchCandidate, ScoreBreakdown
from reconciliation.models.obligation import Obligation
from reconciliation.models.transaction import Transaction


# =============================================================================
# FEATURES
# =============================================================================

def date_feature(
    transaction_date: date,
    due_date: date,
    settings: MatchingSettings,
) -> Optional[float]:
    """
    Date contribution, or None when the obligation is too far in the future.
    """
    diff_days = (transaction_date - due_date).days
    if diff_days >= 0:
        return settings.overdue_base_score - diff_days / settings.overdue_decay_days
    ahead = -diff_days
    if ahead > settings.future_window_days:
        return None
    return settings.future_base_score - ahead


def amount_feature(
    amount: Decimal,
    outstanding: Decimal,
    settings: MatchingSettings,
) -> float:
    """Amount contribution; symmetric for over- and under-payment."""
    delta = abs(amount - outstanding)
    if delta < Decimal(str(settings.exact_amount_tolerance)):
        return settings.exact_amount_score
    if outstanding <= 0:
        return 0.0
    gap_percent = float(delta / outstanding) * 100
    return max(0.0, settings.partial_amount_base - gap_percent)


def description_feature(
    transaction_tokens: frozenset[str],
    obligation_tokens: frozenset[str],
    settings: MatchingSettings,
) -> float:
    return jaccard(transaction_tokens, obligation_tokens) * settings.description_weight


def _same_label(left: Optional[str], right: Optional[str]) -> bool:
    if not left or not right:
        return False
    return left.strip().lower() == right.strip().lower()


# =============================================================================
# MATCHER
# =============================================================================

class ObligationMatcher:
    """
    Scores and ranks candidate obligations for a transaction.

    Pure and synchronous: safe to call on every keystroke.
    """

    def __init__(
        self,
        settings: Optional[MatchingSettings] = None,
        include_classification_bonus: bool = False,
    ):
        """
        Args:
            settings: Weight table and thresholds. Defaults to the
                      environment configuration.
            include_classification_bonus: Add the category/subcategory
                      bonus terms (bulk-import variant).
        """
        self._settings = settings or get_settings().matching
        self._include_bonus = include_classification_bonus

    @property
    def settings(self) -> MatchingSettings:
        return self._settings

    def score(
        self,
        transaction: Transaction,
        obligation: Obligation,
        transaction_tokens: Optional[frozenset[str]] = None,
    ) -> ScoreBreakdown:
        """
        Score one candidate.

        `transaction_tokens` lets callers normalize the description once
        per ranking pass instead of once per candidate.
        """
        # Scope gates
        if obligation.company != (transaction.company or "").upper():
            return ScoreBreakdown.gated("company_mismatch")
        if transaction.direction is None or obligation.direction is not transaction.direction:
            return ScoreBreakdown.gated("direction_mismatch")
        if not obligation.status.is_matchable:
            return ScoreBreakdown.gated("not_open")

        # Date
        if transaction.value_date is None:
            return ScoreBreakdown.rejected("missing_transaction_date")
        if obligation.due_date is None:
            return ScoreBreakdown.rejected("invalid_due_date")
        date_score = date_feature(transaction.value_date, obligation.due_date, self._settings)
        if date_score is None:
            return ScoreBreakdown.rejected("outside_future_window")

        # Amount and description
        amount_score = amount_feature(
            transaction.amount, obligation.outstanding_amount, self._settings
        )
        if transaction_tokens is None:
            transaction_tokens = normalize_description(transaction.description)
        description_score = description_feature(
            transaction_tokens,
            normalize_description(obligation.description),
            self._settings,
        )

        # Bonuses
        category_score = 0.0
        subcategory_score = 0.0
        if self._include_bonus:
            if _same_label(transaction.category, obligation.category):
                category_score = self._settings.category_bonus
            if _same_label(transaction.subcategory, obligation.subcategory):
                subcategory_score = self._settings.subcategory_bonus

        return ScoreBreakdown(
            date=date_score,
            amount=amount_score,
            description=description_score,
            category=category_score,
            subcategory=subcategory_score,
        )

    def rank(
        self,
        transaction: Transaction,
        obligations: Iterable[Obligation],
    ) -> list[MatchCandidate]:
        """
        Rank every candidate that passes the gates.

        Highest score first; ties go to the oldest due date.
        """
        tokens = normalize_description(transaction.description)

        candidates = []
        for obligation in obligations:
            breakdown = self.score(transaction, obligation, tokens)
            if breakdown.excluded:
                continue
            candidates.append(MatchCandidate(obligation=obligation, breakdown=breakdown))

        # Surviving candidates always have a due date
        candidates.sort(key=lambda c: (-c.score, c.obligation.due_date))
        return candidates

    def best_match(
        self,
        transaction: Transaction,
        obligations: Iterable[Obligation],
    ) -> Optional[MatchCandidate]:
        """Top-ranked candidate, if any survives the gates."""
        ranked = self.rank(transaction, obligations)
        return ranked[0] if ranked else None
