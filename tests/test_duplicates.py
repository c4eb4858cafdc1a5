"""Tests for composite-key duplicate detection."""

from datetime import date

from reconciliation.engine import DuplicateDetector, batch_reference

from factories import make_obligation, make_transaction


class TestDuplicateDetector:
    """Tests for single-record checks."""

    def setup_method(self):
        self.detector = DuplicateDetector()

    def test_same_key_different_id_is_duplicate(self):
        """Same date, description, amounts and company collide."""
        stored = make_transaction(id="tx-1")
        draft = make_transaction(description="  PAGAMENTO fattura Alfa ")
        check = self.detector.check(draft, [stored])
        assert check.is_duplicate is True
        assert check.colliding_id == "tx-1"

    def test_same_id_is_not_duplicate(self):
        """A record never collides with itself."""
        stored = make_transaction(id="tx-1")
        assert self.detector.check(stored, [stored]).is_duplicate is False

    def test_different_company_is_not_duplicate(self):
        stored = make_transaction(id="tx-1", company="ABC")
        assert self.detector.check(make_transaction(), [stored]).is_duplicate is False

    def test_cent_rounding(self):
        """Amounts are compared at cent precision."""
        stored = make_transaction(id="tx-1", amount="500.00")
        draft = make_transaction(amount="500")
        assert self.detector.check(draft, [stored]).is_duplicate is True

    def test_missing_field_fails_open(self):
        """A record missing a key field is never flagged, but is marked unchecked."""
        stored = make_transaction(id="tx-1", on=None)
        draft = make_transaction(on=None)
        check = self.detector.check(draft, [stored])
        assert check.is_duplicate is False
        assert check.checked is False

    def test_obligations_use_due_date_and_expected_amount(self):
        """The same check works on obligation projections."""
        stored = make_obligation(obligation_id="d-1")
        again = make_obligation(obligation_id="d-2", description="fattura alfa srl")
        check = self.detector.check(again, [stored])
        assert check.is_duplicate is True
        assert check.colliding_id == "d-1"


class TestCheckBatch:
    """Tests for batch imports."""

    def setup_method(self):
        self.detector = DuplicateDetector()

    def test_identical_rows_in_one_batch_are_both_flagged(self):
        rows = [make_transaction(), make_transaction()]
        checks = self.detector.check_batch(rows)
        assert [c.is_duplicate for c in checks] == [True, True]
        assert checks[0].colliding_id == batch_reference(1)
        assert checks[1].colliding_id == batch_reference(0)

    def test_stored_collision_preferred(self):
        stored = make_transaction(id="tx-1")
        rows = [make_transaction(), make_transaction()]
        checks = self.detector.check_batch(rows, [stored])
        assert all(c.colliding_id == "tx-1" for c in checks)

    def test_distinct_rows_pass(self):
        rows = [
            make_transaction(on=date(2025, 3, 10)),
            make_transaction(on=date(2025, 3, 11)),
            make_transaction(on=None),
        ]
        checks = self.detector.check_batch(rows)
        assert [c.is_duplicate for c in checks] == [False, False, False]
        assert checks[2].checked is False
