"""Tests for the audit logger."""

import asyncio

from reconciliation.audit import AuditLogger, create_correlation_id
from reconciliation.models import AuditEventBuilder, AuditEventType
from reconciliation.services.storage import InMemoryAuditStorage, StorageError


class BrokenAuditStorage(InMemoryAuditStorage):
    async def append_event(self, event):
        raise StorageError("audit sheet unavailable")


class TestAuditLogger:
    """Tests for local + persisted audit logging."""

    def test_persists_events(self):
        storage = InMemoryAuditStorage()
        logger = AuditLogger(storage)
        correlation_id = create_correlation_id()

        asyncio.run(logger.log_transaction_saved("tx-1", "LNC", "500.00", correlation_id))
        asyncio.run(logger.log(AuditEventBuilder.pattern_rejected("p-1", correlation_id)))

        events = asyncio.run(storage.get_events_by_correlation_id(correlation_id))
        assert [e.event_type for e in events] == [
            AuditEventType.TRANSACTION_SAVED,
            AuditEventType.PATTERN_REJECTED,
        ]
        recent = asyncio.run(storage.get_recent_events(limit=1))
        assert recent[0].event_type is AuditEventType.PATTERN_REJECTED

    def test_obligation_events(self):
        storage = InMemoryAuditStorage()
        logger = AuditLogger(storage)
        correlation_id = create_correlation_id()

        asyncio.run(logger.log_duplicate_flagged(
            "deadlines/d-2", "d-1", correlation_id, entity_type="obligation"
        ))
        asyncio.run(logger.log_obligation_saved("deadlines/d-2", "LNC", "500.00", correlation_id))
        asyncio.run(logger.log_link_cleared("deadlines/d-2", ["tx-1", "tx-2"], correlation_id))

        events = asyncio.run(storage.get_events_by_correlation_id(correlation_id))
        assert [e.event_type for e in events] == [
            AuditEventType.DUPLICATE_FLAGGED,
            AuditEventType.OBLIGATION_SAVED,
            AuditEventType.LINK_CLEARED,
        ]
        assert all(e.entity_type == "obligation" for e in events)
        assert events[2].details == {"transaction_ids": ["tx-1", "tx-2"]}

    def test_local_only(self):
        """Without storage the logger still succeeds."""
        assert asyncio.run(AuditLogger().log_error("ValueError", "boom")) is None
        event = AuditEventBuilder.system_error("ValueError", "boom")
        assert asyncio.run(AuditLogger().log(event)) is True

    def test_storage_failure_is_swallowed(self):
        """A broken audit store never breaks the calling flow."""
        logger = AuditLogger(BrokenAuditStorage())
        event = AuditEventBuilder.link_saved("tx-1", "deadlines/d-1", "settled", create_correlation_id())
        assert asyncio.run(logger.log(event)) is False

    def test_correlation_ids_are_unique(self):
        assert create_correlation_id() != create_correlation_id()
