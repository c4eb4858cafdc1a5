"""
In-Memory Storage

Reference implementation of the storage interfaces. Used by the test
suite and for local runs without a document store.

Every method runs without an await point, so each call is atomic with
respect to other coroutines on the same event loop.
"""

from typing import Optional, Union
from uuid import UUID, uuid4

from reconciliation.models.audit import AuditEvent
from reconciliation.models.obligation import (
    DeadlineRecord,
    ExpenseForecastRecord,
    IncomeForecastRecord,
    Obligation,
    ObligationStatus,
    parse_obligation_record,
)
from reconciliation.models.recurrence import (
    ObligationDraft,
    PatternStatus,
    RecurrencePattern,
)
from reconciliation.models.transaction import FlowDirection, Transaction
from reconciliation.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    NotFoundError,
    ReconciliationStorageInterface,
)


AnyRecord = Union[DeadlineRecord, ExpenseForecastRecord, IncomeForecastRecord]


def _new_id() -> str:
    return uuid4().hex[:20]


class InMemoryReconciliationStore(ReconciliationStorageInterface):
    """Dict-backed store keyed by link reference / id."""

    def __init__(self):
        self._records: dict[str, AnyRecord] = {}
        self._transactions: dict[str, Transaction] = {}
        self._patterns: dict[str, RecurrencePattern] = {}

    # -------------------------------------------------------------------------
    # Seeding helpers (not part of the interface)
    # -------------------------------------------------------------------------

    def add_record(self, record: Union[AnyRecord, dict]) -> Obligation:
        """Insert an obligation record (or raw payload) and return its projection."""
        if isinstance(record, dict):
            record = parse_obligation_record(record)
        obligation = Obligation.from_record(record)
        if obligation.link_reference in self._records:
            raise DuplicateError(f"Obligation {obligation.link_reference} already exists")
        self._records[obligation.link_reference] = record
        return obligation

    # -------------------------------------------------------------------------
    # Obligations
    # -------------------------------------------------------------------------

    async def list_open_obligations(
        self,
        company: str,
        direction: FlowDirection,
    ) -> list[Obligation]:
        return [
            obligation
            for obligation in await self.list_obligations(company)
            if obligation.direction is direction and obligation.status.is_matchable
        ]

    async def list_obligations(self, company: Optional[str] = None) -> list[Obligation]:
        wanted = company.upper() if company else None
        return [
            Obligation.from_record(record)
            for record in self._records.values()
            if wanted is None or record.company == wanted
        ]

    async def get_obligation(self, reference: str) -> Optional[Obligation]:
        record = self._records.get(reference)
        return Obligation.from_record(record) if record else None

    async def save_obligation(self, record: AnyRecord) -> Obligation:
        return self.add_record(record)

    async def delete_obligation(self, reference: str) -> list[str]:
        if reference not in self._records:
            raise NotFoundError(f"Obligation {reference} not found")
        del self._records[reference]

        cleared = []
        for tx_id, transaction in self._transactions.items():
            if transaction.obligation_link == reference:
                self._transactions[tx_id] = transaction.model_copy(
                    update={"obligation_link": None}
                )
                cleared.append(tx_id)
        return cleared

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    async def list_transactions(self, company: Optional[str] = None) -> list[Transaction]:
        wanted = company.upper() if company else None
        return [
            transaction
            for transaction in self._transactions.values()
            if wanted is None or transaction.company == wanted
        ]

    async def save_transactions(
        self,
        transactions: list[Transaction],
    ) -> list[Transaction]:
        saved = []
        for transaction in transactions:
            tx_id = transaction.id or _new_id()
            if tx_id in self._transactions:
                raise DuplicateError(f"Transaction {tx_id} already exists")
            stored = transaction.model_copy(update={"id": tx_id})
            self._transactions[tx_id] = stored
            saved.append(stored)
        return saved

    async def apply_link(
        self,
        transaction_id: str,
        reference: str,
        new_status: ObligationStatus,
    ) -> Transaction:
        transaction = self._transactions.get(transaction_id)
        if transaction is None:
            raise NotFoundError(f"Transaction {transaction_id} not found")
        record = self._records.get(reference)
        if record is None:
            raise NotFoundError(f"Obligation {reference} not found")
        if transaction.obligation_link not in (None, reference):
            raise DuplicateError(
                f"Transaction {transaction_id} is already linked to "
                f"{transaction.obligation_link}"
            )

        # Both writes happen together or not at all
        linked = transaction.model_copy(update={"obligation_link": reference})
        self._records[reference] = record.model_copy(update={
            "status": new_status,
            "paid_amount": record.paid_amount + transaction.amount,
        })
        self._transactions[transaction_id] = linked
        return linked

    # -------------------------------------------------------------------------
    # Patterns
    # -------------------------------------------------------------------------

    async def list_patterns(
        self,
        status: Optional[PatternStatus] = None,
    ) -> list[RecurrencePattern]:
        return [
            pattern
            for pattern in self._patterns.values()
            if status is None or pattern.status is status
        ]

    async def save_pattern(self, pattern: RecurrencePattern) -> bool:
        self._patterns[pattern.id] = pattern
        return True

    async def commit_expansion(
        self,
        drafts: list[ObligationDraft],
        pattern: RecurrencePattern,
    ) -> list[Obligation]:
        records = [
            parse_obligation_record(draft.to_record_payload(_new_id()))
            for draft in drafts
        ]
        created = []
        for record in records:
            obligation = Obligation.from_record(record)
            self._records[obligation.link_reference] = record
            created.append(obligation)
        self._patterns[pattern.id] = pattern
        return created


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of audit events."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    @property
    def events(self) -> list[AuditEvent]:
        return list(self._events)

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        return [e for e in self._events if e.correlation_id == correlation_id]

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        return list(reversed(self._events))[:limit]
