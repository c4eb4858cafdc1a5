"""
Duplicate Detection

Two records are duplicates when they share the same composite key and
have different identifiers. The key is:

    (date, trimmed lower-cased description, (inflow, outflow), company)

Records missing any key field are never reported as duplicates. This is
the fail-open rule: a data-quality gap must not block a legitimate entry.

The detector works on transactions and on obligation projections, so
the same code checks a bank import and a deadline import.
"""

from datetime import date
from decimal import Decimal
from typing import Iterable, NamedTuple, Optional, Sequence, Union

from reconciliation.models.matching import DuplicateCheck
from reconciliation.models.obligation import Obligation
from reconciliation.models.transaction import Transaction


Record = Union[Transaction, Obligation]


class DuplicateKey(NamedTuple):
    """Composite equality key."""
    on: date
    description: str
    amount_pair: tuple[Decimal, Decimal]
    company: str


def batch_reference(index: int) -> str:
    """Identifier used for batch rows that have no store id yet."""
    return f"batch:{index}"


class DuplicateDetector:
    """
    Exact composite-key duplicate check.

    Stateless; the same instance can check any number of batches.
    """

    def key_for(self, record: Record) -> Optional[DuplicateKey]:
        """Build the key, or None if any field is missing."""
        if isinstance(record, Transaction):
            on = record.value_date
            has_amount = record.amount > 0
        else:
            on = record.due_date
            has_amount = record.expected_amount > 0

        description = (record.description or "").strip().lower()
        company = (record.company or "").strip().upper()

        if on is None or not description or not company or not has_amount:
            return None

        return DuplicateKey(
            on=on,
            description=description,
            amount_pair=record.amount_pair,
            company=company,
        )

    def check(self, record: Record, pool: Iterable[Record]) -> DuplicateCheck:
        """Compare one record against existing records."""
        key = self.key_for(record)
        if key is None:
            return DuplicateCheck(is_duplicate=False, checked=False)

        for existing in pool:
            if existing.id is not None and existing.id == record.id:
                continue
            if self.key_for(existing) == key:
                return DuplicateCheck(is_duplicate=True, colliding_id=existing.id)

        return DuplicateCheck(is_duplicate=False)

    def check_batch(
        self,
        rows: Sequence[Record],
        pool: Iterable[Record] = (),
    ) -> list[DuplicateCheck]:
        """
        Check every row of a batch.

        Each row is compared with the existing pool first and then with
        every other row of the batch, so two identical rows imported
        together are both flagged even though neither is stored yet.
        A collision with a stored record is reported in preference to a
        collision inside the batch.
        """
        stored: dict[DuplicateKey, str] = {}
        for existing in pool:
            key = self.key_for(existing)
            if key is not None and existing.id is not None:
                stored.setdefault(key, existing.id)

        keys = [self.key_for(row) for row in rows]

        in_batch: dict[DuplicateKey, list[int]] = {}
        for index, key in enumerate(keys):
            if key is not None:
                in_batch.setdefault(key, []).append(index)

        results = []
        for index, (row, key) in enumerate(zip(rows, keys)):
            if key is None:
                results.append(DuplicateCheck(is_duplicate=False, checked=False))
                continue

            stored_id = stored.get(key)
            if stored_id is not None and stored_id != row.id:
                results.append(DuplicateCheck(is_duplicate=True, colliding_id=stored_id))
                continue

            others = [
                i for i in in_batch[key]
                if i != index and (row.id is None or rows[i].id != row.id)
            ]
            if others:
                other = rows[others[0]]
                results.append(DuplicateCheck(
                    is_duplicate=True,
                    colliding_id=other.id or batch_reference(others[0]),
                ))
                continue

            results.append(DuplicateCheck(is_duplicate=False))

        return results
