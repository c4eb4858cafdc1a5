"""
Recurrence Expansion

Turns an accepted-for-creation recurrence pattern into dated obligation
drafts for one target year.

Interval table (step in months x repetitions):

    monthly       1 x 12
    bimonthly     2 x 6
    quarterly     3 x 4
    four_monthly  4 x 3
    semiannual    6 x 2
    annual       12 x 1

Instance i falls in month anchor + i * step. A month past December is
dropped, never wrapped into the next year: a quarterly pattern anchored
in November yields November only.
"""

import calendar
from datetime import date
from typing import Iterable, Optional

import structlog

from reconciliation.models.obligation import Obligation, RecurrenceInterval
from reconciliation.models.recurrence import (
    ExpansionResult,
    ObligationDraft,
    RecurrencePattern,
)


logger = structlog.get_logger(__name__)


INTERVAL_STEPS: dict[RecurrenceInterval, tuple[int, int]] = {
    RecurrenceInterval.MONTHLY: (1, 12),
    RecurrenceInterval.BIMONTHLY: (2, 6),
    RecurrenceInterval.QUARTERLY: (3, 4),
    RecurrenceInterval.FOUR_MONTHLY: (4, 3),
    RecurrenceInterval.SEMIANNUAL: (6, 2),
    RecurrenceInterval.ANNUAL: (12, 1),
}

# Period labels follow the dashboard's language
MONTH_NAMES = (
    "gennaio", "febbraio", "marzo", "aprile", "maggio", "giugno",
    "luglio", "agosto", "settembre", "ottobre", "novembre", "dicembre",
)


def period_label(on: date) -> str:
    return f"{MONTH_NAMES[on.month - 1]} {on.year}"


def _clamped_date(year: int, month: int, day: int) -> date:
    """date(year, month, day) with the day clamped to the month's length."""
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day, last_day))


class RecurrenceExpander:
    """Expands patterns into obligation drafts. Pure; commits nothing."""

    def expand(
        self,
        pattern: RecurrencePattern,
        target_year: int,
        fallback_anchor_month: int = 1,
    ) -> ExpansionResult:
        """
        Build the drafts of one pattern for one year.

        Args:
            pattern: The pattern to expand. Only pending patterns expand.
            target_year: Year the drafts are dated in.
            fallback_anchor_month: Anchor used when the pattern has none
                (callers usually pass the current month).

        Returns:
            ExpansionResult whose `status` is the status the pattern should
            have once the drafts are committed.
        """
        if not pattern.is_pending:
            logger.info(
                "pattern_not_pending",
                pattern_id=pattern.id,
                status=pattern.status.value,
            )
            return ExpansionResult(
                pattern_id=pattern.id,
                target_year=target_year,
                skipped_reason=f"pattern is {pattern.status.value}",
                status=pattern.status,
            )

        steps = INTERVAL_STEPS.get(pattern.interval)
        if steps is None:
            logger.warning(
                "unrecognized_recurrence_interval",
                pattern_id=pattern.id,
                interval=pattern.interval.value,
            )
            return ExpansionResult(
                pattern_id=pattern.id,
                target_year=target_year,
                skipped_reason=f"unrecognized interval '{pattern.interval.value}'",
                status=pattern.status,
            )

        step, repetitions = steps
        anchor = pattern.anchor_month or fallback_anchor_month

        drafts = []
        discarded = []
        for i in range(repetitions):
            month = anchor + i * step
            if month > 12:
                discarded.append(month)
                continue

            due = _clamped_date(target_year, month, pattern.estimated_day)
            drafts.append(ObligationDraft(
                kind=pattern.target_kind,
                company=pattern.company,
                description=f"{pattern.description} - {period_label(due)}",
                due_date=due,
                amount=pattern.amount,
                category=pattern.category,
                subcategory=pattern.subcategory,
                recurrence=pattern.interval,
                tax_type=pattern.tax_type,
                pattern_id=pattern.id,
            ))

        return ExpansionResult(
            pattern_id=pattern.id,
            target_year=target_year,
            drafts=drafts,
            discarded_months=discarded,
            status=pattern.mark_accepted().status,
        )

    def expand_all(
        self,
        patterns: Iterable[RecurrencePattern],
        target_year: int,
        fallback_anchor_month: int = 1,
    ) -> list[ExpansionResult]:
        """Expand several patterns; one bad pattern never affects the others."""
        return [
            self.expand(pattern, target_year, fallback_anchor_month)
            for pattern in patterns
        ]


def find_similar_obligation(
    pattern: RecurrencePattern,
    existing: Iterable[Obligation],
) -> Optional[Obligation]:
    """
    Existing obligation that looks like what the pattern would create.

    Same company and recurrence, and one description contains the other
    (case-insensitive). Used to ask the user before creating look-alikes.
    """
    wanted = pattern.description.strip().lower()
    for obligation in existing:
        if obligation.company != pattern.company:
            continue
        if obligation.recurrence is not pattern.interval:
            continue
        current = obligation.description.strip().lower()
        if not current:
            continue
        if wanted in current or current in wanted:
            return obligation
    return None
