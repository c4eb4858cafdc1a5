"""
Tests for obligation scoring and ranking.

Reference numbers (default weight table):
- "Pagamento fattura Alfa" vs "Fattura Alfa Srl": jaccard 0.5 → 25 points
- 9 days late: 1000 - 9/30 = 999.7
- 83 days ahead: 500 - 83 = 417
"""

from datetime import date, timedelta
from decimal import Decimal

import pytest

from reconciliation.engine import (
    ObligationMatcher,
    amount_feature,
    date_feature,
)
from reconciliation.models import ObligationKind, ObligationStatus

from factories import make_obligation, make_transaction


class TestFeatures:
    """Tests for individual feature contributions."""

    def test_overdue_band(self, matching_settings):
        score = date_feature(date(2025, 3, 10), date(2025, 3, 1), matching_settings)
        assert score == pytest.approx(999.7)

    def test_due_today_is_top_of_overdue_band(self, matching_settings):
        assert date_feature(date(2025, 3, 1), date(2025, 3, 1), matching_settings) == 1000

    def test_future_band(self, matching_settings):
        score = date_feature(date(2025, 3, 10), date(2025, 6, 1), matching_settings)
        assert score == 417

    def test_beyond_future_window(self, matching_settings):
        """More than 90 days ahead is not a candidate."""
        assert date_feature(date(2025, 1, 1), date(2025, 4, 2), matching_settings) is None
        assert date_feature(date(2025, 1, 1), date(2025, 4, 1), matching_settings) == 410

    def test_exact_amount(self, matching_settings):
        """Within tolerance is exact whichever side the cent falls on."""
        assert amount_feature(Decimal("500.00"), Decimal("500.01"), matching_settings) == 100
        assert amount_feature(Decimal("500.01"), Decimal("500.00"), matching_settings) == 100
        assert amount_feature(Decimal("500.02"), Decimal("500.00"), matching_settings) < 100

    def test_amount_gap_is_symmetric(self, matching_settings):
        """Over- and under-payment by the same gap score the same."""
        under = amount_feature(Decimal("450"), Decimal("500"), matching_settings)
        over = amount_feature(Decimal("550"), Decimal("500"), matching_settings)
        assert under == over == pytest.approx(40.0)

    def test_large_gap_floors_at_zero(self, matching_settings):
        assert amount_feature(Decimal("10"), Decimal("500"), matching_settings) == 0


class TestObligationMatcher:
    """Tests for scoring gates and ranking."""

    def test_scenario_overdue_exact_match(self, matching_settings):
        """Overdue, exact amount, half the description tokens in common."""
        matcher = ObligationMatcher(matching_settings)
        breakdown = matcher.score(make_transaction(), make_obligation())
        assert breakdown.date == pytest.approx(999.7)
        assert breakdown.amount == 100
        assert breakdown.description == pytest.approx(25)
        assert breakdown.total == pytest.approx(1124.7)

    def test_scenario_future_partial_match(self, matching_settings):
        """83 days ahead with a 50 euro gap stays below 500."""
        matcher = ObligationMatcher(matching_settings)
        obligation = make_obligation(due=date(2025, 6, 1), amount="450.00")
        breakdown = matcher.score(make_transaction(), obligation)
        assert breakdown.date == 417
        assert breakdown.amount == pytest.approx(50 - 50 / 450 * 100)
        assert breakdown.total == pytest.approx(480.89, abs=0.01)

    def test_company_gate(self, matching_settings):
        matcher = ObligationMatcher(matching_settings)
        breakdown = matcher.score(make_transaction(company="ABC"), make_obligation())
        assert breakdown.total == -1
        assert breakdown.exclusion_reason == "company_mismatch"

    def test_direction_gate(self, matching_settings):
        """Money in never settles a deadline."""
        matcher = ObligationMatcher(matching_settings)
        breakdown = matcher.score(make_transaction(inflow=True), make_obligation())
        assert breakdown.total == -1
        assert breakdown.exclusion_reason == "direction_mismatch"

    def test_settled_obligation_gate(self, matching_settings):
        matcher = ObligationMatcher(matching_settings)
        obligation = make_obligation(status=ObligationStatus.SETTLED)
        assert matcher.score(make_transaction(), obligation).exclusion_reason == "not_open"

    def test_invalid_due_date_rejected(self, matching_settings):
        matcher = ObligationMatcher(matching_settings)
        breakdown = matcher.score(make_transaction(), make_obligation(due=None))
        assert breakdown.total == 0
        assert breakdown.excluded is True

    def test_income_forecast_matches_inflow(self, matching_settings):
        matcher = ObligationMatcher(matching_settings)
        obligation = make_obligation(kind=ObligationKind.INCOME_FORECAST)
        breakdown = matcher.score(make_transaction(inflow=True), obligation)
        assert breakdown.excluded is False

    def test_bonus_terms_only_in_import_variant(self, matching_settings):
        transaction = make_transaction(category="Tasse", subcategory="F24 Vari")
        obligation = make_obligation(category="tasse", subcategory="F24 Vari")

        plain = ObligationMatcher(matching_settings).score(transaction, obligation)
        bonus = ObligationMatcher(
            matching_settings, include_classification_bonus=True
        ).score(transaction, obligation)

        assert plain.category == 0
        assert bonus.category == 20
        assert bonus.subcategory == 10
        assert bonus.total == pytest.approx(plain.total + 30)

    def test_overdue_outranks_future(self, matching_settings):
        """An overdue candidate wins even with a worse description."""
        matcher = ObligationMatcher(matching_settings)
        overdue = make_obligation(obligation_id="late", description="Something else")
        upcoming = make_obligation(obligation_id="soon", due=date(2025, 3, 20))
        ranked = matcher.rank(make_transaction(), [upcoming, overdue])
        assert [c.obligation.id for c in ranked] == ["late", "soon"]

    def test_equal_candidates_are_both_ranked(self, matching_settings):
        matcher = ObligationMatcher(matching_settings)
        transaction = make_transaction(on=date(2025, 3, 1))
        first = make_obligation(obligation_id="a", due=date(2025, 3, 1))
        second = make_obligation(obligation_id="b", due=date(2025, 3, 1))
        ranked = matcher.rank(transaction, [second, first])
        assert ranked[0].score == ranked[1].score
        assert {c.obligation.id for c in ranked} == {"a", "b"}

    def test_tie_goes_to_oldest_due_date(self, matching_settings):
        """
        Equal totals are ordered by due date, oldest first.

        750 days late costs 25 date points, made up by a 25% amount gap
        (25 points) against a 50% gap (0 points) on the newer obligation.
        """
        matcher = ObligationMatcher(matching_settings)
        on = date(2025, 3, 31)
        older = make_obligation(
            obligation_id="older", amount="400.00", due=on - timedelta(days=750)
        )
        newer = make_obligation(obligation_id="newer", amount="1000.00", due=on)

        ranked = matcher.rank(make_transaction(on=on), [newer, older])

        assert ranked[0].breakdown.date == 975
        assert ranked[1].breakdown.date == 1000
        assert ranked[0].score == ranked[1].score
        assert [c.obligation.id for c in ranked] == ["older", "newer"]

    def test_rank_drops_excluded(self, matching_settings):
        matcher = ObligationMatcher(matching_settings)
        ranked = matcher.rank(
            make_transaction(),
            [make_obligation(company="ABC"), make_obligation(due=date(2026, 1, 1))],
        )
        assert ranked == []
        assert matcher.best_match(make_transaction(), []) is None
