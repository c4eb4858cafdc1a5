"""
Audit Logger

DESIGN DECISION: Every link decision, import and pattern expansion is
logged. This provides:
1. Traceability of where each payment was linked and why
2. Debugging capability when a suggestion looks wrong
3. A history the user can review

The audit logger:
- Is async to not block main flow
- Gracefully handles failures (a broken audit store never blocks a save)
- Supports correlation IDs to trace related events
"""

import logging
from typing import Optional
from uuid import UUID, uuid4

import structlog

from reconciliation.models.audit import AuditEvent, AuditEventBuilder
from reconciliation.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(log_level: str = "INFO") -> None:
    """Route structlog's JSON lines through stdlib logging at `log_level`."""
    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, log_level.upper(), logging.INFO),
    )


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. The audit store (for persistence and user visibility)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger()

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        elif event.severity.value == "debug":
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    # =========================================================================
    # Validation and duplicates
    # =========================================================================

    async def log_validation_failed(
        self,
        record_id: Optional[str],
        issues: list[dict],
        correlation_id: UUID,
        entity_type: str = "transaction",
    ) -> None:
        """Log validation failure."""
        await self.log(AuditEventBuilder.validation_failed(
            record_id=record_id,
            issues=issues,
            correlation_id=correlation_id,
            entity_type=entity_type,
        ))

    async def log_duplicate_flagged(
        self,
        record_ref: str,
        colliding_id: str,
        correlation_id: UUID,
        entity_type: str = "transaction",
    ) -> None:
        """Log a possible duplicate."""
        await self.log(AuditEventBuilder.duplicate_flagged(
            record_ref=record_ref,
            colliding_id=colliding_id,
            correlation_id=correlation_id,
            entity_type=entity_type,
        ))

    # =========================================================================
    # Matching and links
    # =========================================================================

    async def log_match_ranked(
        self,
        transaction_ref: str,
        candidate_count: int,
        top_reference: Optional[str],
        top_score: Optional[float],
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.match_ranked(
            transaction_ref=transaction_ref,
            candidate_count=candidate_count,
            top_reference=top_reference,
            top_score=top_score,
            correlation_id=correlation_id,
        ))

    async def log_link_auto_selected(
        self,
        transaction_ref: str,
        obligation_ref: str,
        score: float,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.link_auto_selected(
            transaction_ref=transaction_ref,
            obligation_ref=obligation_ref,
            score=score,
            correlation_id=correlation_id,
        ))

    async def log_confirmation_requested(
        self,
        transaction_ref: str,
        obligation_ref: str,
        score: float,
        overdue_priority: bool,
        correlation_id: UUID,
    ) -> None:
        """Log a proposal shown to the user for accept/decline."""
        await self.log(AuditEventBuilder.link_confirmation_requested(
            transaction_ref=transaction_ref,
            obligation_ref=obligation_ref,
            score=score,
            overdue_priority=overdue_priority,
            correlation_id=correlation_id,
        ))

    async def log_link_accepted(
        self,
        transaction_ref: str,
        obligation_ref: str,
        correlation_id: UUID,
    ) -> None:
        """Log user accepting a proposed link."""
        await self.log(AuditEventBuilder.link_accepted(
            transaction_ref=transaction_ref,
            obligation_ref=obligation_ref,
            correlation_id=correlation_id,
        ))

    async def log_link_declined(
        self,
        transaction_ref: str,
        obligation_ref: str,
        correlation_id: UUID,
    ) -> None:
        """Log user declining a proposed link."""
        await self.log(AuditEventBuilder.link_declined(
            transaction_ref=transaction_ref,
            obligation_ref=obligation_ref,
            correlation_id=correlation_id,
        ))

    async def log_link_saved(
        self,
        transaction_id: str,
        obligation_ref: str,
        new_status: str,
        correlation_id: UUID,
    ) -> None:
        """Log a committed link."""
        await self.log(AuditEventBuilder.link_saved(
            transaction_id=transaction_id,
            obligation_ref=obligation_ref,
            new_status=new_status,
            correlation_id=correlation_id,
        ))

    async def log_link_cleared(
        self,
        obligation_ref: str,
        transaction_ids: list[str],
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.link_cleared(
            obligation_ref=obligation_ref,
            transaction_ids=transaction_ids,
            correlation_id=correlation_id,
        ))

    # =========================================================================
    # Persistence
    # =========================================================================

    async def log_transaction_saved(
        self,
        transaction_id: str,
        company: str,
        amount: str,
        correlation_id: UUID,
    ) -> None:
        """Log transaction save."""
        await self.log(AuditEventBuilder.transaction_saved(
            transaction_id=transaction_id,
            company=company,
            amount=amount,
            correlation_id=correlation_id,
        ))

    async def log_obligation_saved(
        self,
        obligation_ref: str,
        company: str,
        amount: str,
        correlation_id: UUID,
    ) -> None:
        """Log obligation save."""
        await self.log(AuditEventBuilder.obligation_saved(
            obligation_ref=obligation_ref,
            company=company,
            amount=amount,
            correlation_id=correlation_id,
        ))

    async def log_import_completed(
        self,
        row_count: int,
        saved_count: int,
        duplicate_count: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.import_completed(
            row_count=row_count,
            saved_count=saved_count,
            duplicate_count=duplicate_count,
            correlation_id=correlation_id,
        ))

    async def log_classification_failed(
        self,
        record_ref: str,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.classification_failed(
            record_ref=record_ref,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    # =========================================================================
    # Recurrence
    # =========================================================================

    async def log_pattern_expanded(
        self,
        pattern_id: str,
        target_year: int,
        draft_count: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.pattern_expanded(
            pattern_id=pattern_id,
            target_year=target_year,
            draft_count=draft_count,
            correlation_id=correlation_id,
        ))

    async def log_pattern_expansion_skipped(
        self,
        pattern_id: str,
        reason: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.pattern_expansion_skipped(
            pattern_id=pattern_id,
            reason=reason,
            correlation_id=correlation_id,
        ))

    async def log_pattern_rejected(
        self,
        pattern_id: str,
        correlation_id: UUID,
    ) -> None:
        """Log user rejecting a detected pattern."""
        await self.log(AuditEventBuilder.pattern_rejected(
            pattern_id=pattern_id,
            correlation_id=correlation_id,
        ))

    async def log_similar_obligation_found(
        self,
        pattern_id: str,
        obligation_ref: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.similar_obligation_found(
            pattern_id=pattern_id,
            obligation_ref=obligation_ref,
            correlation_id=correlation_id,
        ))

    # =========================================================================
    # Errors
    # =========================================================================

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., an import).
    Pass it through all subsequent operations.
    """
    return uuid4()
