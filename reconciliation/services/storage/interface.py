"""
Abstract Storage Interface

DESIGN DECISION: The engine never talks to the store. The flows in the
orchestrator do, through this interface. This allows us to:
1. Keep the engine pure and testable on plain snapshots
2. Use in-memory storage for testing
3. Back the dashboard with whatever document store it uses

Atomicity belongs here: `apply_link` and `commit_expansion` must each be
a single atomic write in any real implementation. Concurrent callers are
not serialized; last writer wins.
"""

from abc import ABC, abstractmethod
from typing import Optional, Union
from uuid import UUID

from reconciliation.models.audit import AuditEvent
from reconciliation.models.obligation import (
    DeadlineRecord,
    ExpenseForecastRecord,
    IncomeForecastRecord,
    Obligation,
    ObligationStatus,
)
from reconciliation.models.recurrence import (
    ObligationDraft,
    PatternStatus,
    RecurrencePattern,
)
from reconciliation.models.transaction import FlowDirection, Transaction


class ReconciliationStorageInterface(ABC):
    """
    Abstract interface for transactions, obligations and patterns.

    Obligations are returned as projections; the store owns the records.
    """

    @abstractmethod
    async def list_open_obligations(
        self,
        company: str,
        direction: FlowDirection,
    ) -> list[Obligation]:
        """
        Open and partially settled obligations of one company and direction.

        Args:
            company: Company code
            direction: INFLOW for income forecasts, OUTFLOW for the rest
        """
        pass

    @abstractmethod
    async def list_obligations(self, company: Optional[str] = None) -> list[Obligation]:
        """All obligations (any status), optionally for one company."""
        pass

    @abstractmethod
    async def get_obligation(self, reference: str) -> Optional[Obligation]:
        """
        Look up an obligation by its "{collection}/{id}" reference.

        Returns:
            The obligation if found, None otherwise
        """
        pass

    @abstractmethod
    async def list_transactions(self, company: Optional[str] = None) -> list[Transaction]:
        """Stored transactions, optionally for one company."""
        pass

    @abstractmethod
    async def save_transactions(
        self,
        transactions: list[Transaction],
    ) -> list[Transaction]:
        """
        Persist new transactions.

        Returns:
            The saved transactions with their store ids

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def apply_link(
        self,
        transaction_id: str,
        reference: str,
        new_status: ObligationStatus,
    ) -> Transaction:
        """
        Link a stored transaction to an obligation and update its status.

        Must be a single atomic write: either both changes land or neither.

        Raises:
            NotFoundError: If the transaction or the obligation doesn't exist
        """
        pass

    @abstractmethod
    async def save_obligation(
        self,
        record: Union[DeadlineRecord, ExpenseForecastRecord, IncomeForecastRecord],
    ) -> Obligation:
        """
        Insert a new obligation record.

        Returns:
            The projection of the stored record

        Raises:
            DuplicateError: If a record with the same reference exists
        """
        pass

    @abstractmethod
    async def delete_obligation(self, reference: str) -> list[str]:
        """
        Delete an obligation and clear (not delete) the links pointing to it.

        Returns:
            IDs of the transactions whose link was cleared
        """
        pass

    @abstractmethod
    async def list_patterns(
        self,
        status: Optional[PatternStatus] = None,
    ) -> list[RecurrencePattern]:
        """Detected recurrence patterns, optionally filtered by status."""
        pass

    @abstractmethod
    async def save_pattern(self, pattern: RecurrencePattern) -> bool:
        """Insert or replace a pattern (used for status changes)."""
        pass

    @abstractmethod
    async def commit_expansion(
        self,
        drafts: list[ObligationDraft],
        pattern: RecurrencePattern,
    ) -> list[Obligation]:
        """
        Create the drafted obligations and store the pattern's new status.

        Must be a single atomic batch write.

        Returns:
            The created obligations
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (e.g., one import).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass
