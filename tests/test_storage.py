"""Tests for the in-memory store."""

import asyncio
from datetime import date
from decimal import Decimal

import pytest

from reconciliation.models import (
    FlowDirection,
    ObligationDraft,
    ObligationKind,
    ObligationStatus,
    PatternStatus,
    RecurrenceInterval,
)
from reconciliation.services.storage import (
    DuplicateError,
    InMemoryReconciliationStore,
    NotFoundError,
)

from factories import make_deadline_record, make_pattern, make_transaction


def run(coro):
    return asyncio.run(coro)


class TestObligations:
    """Tests for obligation queries."""

    def test_open_obligations_filtered_by_company_direction_status(self):
        store = InMemoryReconciliationStore()
        store.add_record(make_deadline_record("d-1"))
        store.add_record(make_deadline_record("d-2", company="ABC"))
        store.add_record(make_deadline_record("d-3", status=ObligationStatus.SETTLED))
        store.add_record({
            "kind": "income_forecast", "id": "i-1", "company": "LNC",
            "expected_date": "2025-03-01", "gross_amount": "500.00",
        })

        outflows = run(store.list_open_obligations("lnc", FlowDirection.OUTFLOW))
        inflows = run(store.list_open_obligations("LNC", FlowDirection.INFLOW))

        assert [o.id for o in outflows] == ["d-1"]
        assert [o.link_reference for o in inflows] == ["incomeForecasts/i-1"]

    def test_add_record_twice(self):
        store = InMemoryReconciliationStore()
        store.add_record(make_deadline_record("d-1"))
        with pytest.raises(DuplicateError):
            store.add_record(make_deadline_record("d-1"))

    def test_save_obligation(self):
        store = InMemoryReconciliationStore()
        saved = run(store.save_obligation(make_deadline_record("d-1")))
        assert saved.link_reference == "deadlines/d-1"
        assert run(store.get_obligation("deadlines/d-1")) == saved
        with pytest.raises(DuplicateError):
            run(store.save_obligation(make_deadline_record("d-1")))


class TestLinks:
    """Tests for apply_link and delete_obligation."""

    def test_apply_link_updates_both_records(self):
        store = InMemoryReconciliationStore()
        store.add_record(make_deadline_record("d-1"))
        saved = run(store.save_transactions([make_transaction(amount="200.00")]))[0]

        linked = run(store.apply_link(
            saved.id, "deadlines/d-1", ObligationStatus.PARTIALLY_SETTLED
        ))

        assert linked.obligation_link == "deadlines/d-1"
        obligation = run(store.get_obligation("deadlines/d-1"))
        assert obligation.status is ObligationStatus.PARTIALLY_SETTLED
        assert obligation.outstanding_amount == Decimal("300.00")

    def test_forecast_payments_accumulate(self):
        """Forecasts track what was paid, like deadlines."""
        store = InMemoryReconciliationStore()
        store.add_record({
            "kind": "expense_forecast", "id": "e-1", "company": "LNC",
            "due_date": "2025-03-01", "gross_amount": "500.00",
        })
        first, second = run(store.save_transactions([
            make_transaction(amount="250.00"),
            make_transaction(amount="250.00", on=date(2025, 3, 11)),
        ]))

        run(store.apply_link(first.id, "expenseForecasts/e-1", ObligationStatus.PARTIALLY_SETTLED))
        assert run(store.get_obligation("expenseForecasts/e-1")).outstanding_amount == Decimal("250.00")

        run(store.apply_link(second.id, "expenseForecasts/e-1", ObligationStatus.SETTLED))
        obligation = run(store.get_obligation("expenseForecasts/e-1"))
        assert obligation.outstanding_amount == Decimal("0")
        assert obligation.status is ObligationStatus.SETTLED

    def test_apply_link_unknown_obligation(self):
        store = InMemoryReconciliationStore()
        saved = run(store.save_transactions([make_transaction()]))[0]
        with pytest.raises(NotFoundError):
            run(store.apply_link(saved.id, "deadlines/missing", ObligationStatus.SETTLED))
        assert run(store.list_transactions())[0].obligation_link is None

    def test_delete_obligation_clears_links(self):
        """Deleting an obligation keeps the transactions, without the link."""
        store = InMemoryReconciliationStore()
        store.add_record(make_deadline_record("d-1"))
        saved = run(store.save_transactions([make_transaction()]))[0]
        run(store.apply_link(saved.id, "deadlines/d-1", ObligationStatus.SETTLED))

        cleared = run(store.delete_obligation("deadlines/d-1"))

        assert cleared == [saved.id]
        assert run(store.list_transactions())[0].obligation_link is None
        assert run(store.get_obligation("deadlines/d-1")) is None


class TestPatterns:
    """Tests for pattern persistence and expansion commits."""

    def test_commit_expansion(self):
        store = InMemoryReconciliationStore()
        pattern = make_pattern()
        run(store.save_pattern(pattern))
        draft = ObligationDraft(
            kind=ObligationKind.EXPENSE_FORECAST,
            company="LNC",
            description="Canone Telefonico TIM - gennaio 2025",
            due_date=date(2025, 1, 15),
            amount=Decimal("120.00"),
            recurrence=RecurrenceInterval.QUARTERLY,
            pattern_id=pattern.id,
        )

        created = run(store.commit_expansion([draft], pattern.mark_accepted()))

        assert created[0].link_reference.startswith("expenseForecasts/")
        assert created[0].due_date == date(2025, 1, 15)
        assert run(store.list_patterns(PatternStatus.PENDING)) == []
        assert len(run(store.list_patterns(PatternStatus.ACCEPTED))) == 1
