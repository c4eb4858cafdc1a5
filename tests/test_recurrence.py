"""Tests for recurrence expansion and look-alike detection."""

from datetime import date
from decimal import Decimal

from reconciliation.engine import (
    RecurrenceExpander,
    find_similar_obligation,
    period_label,
)
from reconciliation.models import (
    ObligationKind,
    PatternStatus,
    RecurrenceInterval,
)

from factories import make_obligation, make_pattern


class TestRecurrenceExpander:
    """Tests for turning patterns into dated drafts."""

    def setup_method(self):
        self.expander = RecurrenceExpander()

    def test_quarterly_from_january(self):
        """Quarterly, anchored in January, on the 15th: four drafts."""
        result = self.expander.expand(make_pattern(), 2025)
        assert [d.due_date for d in result.drafts] == [
            date(2025, 1, 15),
            date(2025, 4, 15),
            date(2025, 7, 15),
            date(2025, 10, 15),
        ]
        assert result.status is PatternStatus.ACCEPTED
        assert result.skipped_reason is None

    def test_months_past_december_are_dropped(self):
        """Quarterly anchored in November yields November only."""
        result = self.expander.expand(make_pattern(anchor_month=11), 2025)
        assert [d.due_date for d in result.drafts] == [date(2025, 11, 15)]
        assert result.discarded_months == [14, 17, 20]

    def test_monthly_without_anchor_uses_fallback(self):
        result = self.expander.expand(
            make_pattern(interval="Mensile", anchor_month=None),
            2025,
            fallback_anchor_month=10,
        )
        assert [d.due_date.month for d in result.drafts] == [10, 11, 12]

    def test_day_clamped_to_month_end(self):
        result = self.expander.expand(
            make_pattern(interval="monthly", estimated_day=31), 2025
        )
        assert result.draft_count == 12
        assert result.drafts[1].due_date == date(2025, 2, 28)
        assert result.drafts[3].due_date == date(2025, 4, 30)

    def test_annual(self):
        result = self.expander.expand(make_pattern(interval="annuale", anchor_month=6), 2026)
        assert [d.due_date for d in result.drafts] == [date(2026, 6, 15)]

    def test_unrecognized_interval_yields_nothing(self):
        result = self.expander.expand(make_pattern(interval="other"), 2025)
        assert result.drafts == []
        assert result.status is PatternStatus.PENDING
        assert "unrecognized interval" in result.skipped_reason

    def test_accepted_pattern_is_not_expanded_again(self):
        result = self.expander.expand(make_pattern().mark_accepted(), 2025)
        assert result.drafts == []
        assert result.status is PatternStatus.ACCEPTED

    def test_drafts_inherit_pattern_fields(self):
        pattern = make_pattern(target_kind=ObligationKind.EXPENSE_FORECAST)
        draft = self.expander.expand(pattern, 2025).drafts[0]
        assert draft.description == "Canone Telefonico TIM - gennaio 2025"
        assert draft.company == "LNC"
        assert draft.amount == Decimal("120.00")
        assert draft.kind is ObligationKind.EXPENSE_FORECAST
        assert draft.recurrence is RecurrenceInterval.QUARTERLY
        assert draft.pattern_id == "p-1"
        assert draft.source == "ai-suggested"

    def test_expand_all_isolates_patterns(self):
        results = self.expander.expand_all(
            [make_pattern(interval="other"), make_pattern(pattern_id="p-2")],
            2025,
        )
        assert [r.draft_count for r in results] == [0, 4]


class TestSimilarObligation:
    """Tests for the look-alike check."""

    def test_contained_description_matches(self):
        existing = make_obligation(
            description="Canone Telefonico TIM - marzo 2025",
            recurrence=RecurrenceInterval.QUARTERLY,
        )
        assert find_similar_obligation(make_pattern(), [existing]) == existing

    def test_different_recurrence_does_not_match(self):
        existing = make_obligation(
            description="Canone Telefonico TIM",
            recurrence=RecurrenceInterval.MONTHLY,
        )
        assert find_similar_obligation(make_pattern(), [existing]) is None

    def test_period_label(self):
        assert period_label(date(2025, 12, 1)) == "dicembre 2025"
