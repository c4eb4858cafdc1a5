"""
Audit Models for the Reconciliation Engine

Every decision that changes (or proposes to change) a link between a
transaction and an obligation is logged. This provides:
1. Traceability of why a payment was linked where it was
2. Debugging information when a suggestion looks wrong
3. A record of what the user accepted or declined

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Every step of the entry, import and recurrence flows has its own type.
    """
    # Validation and duplicates
    VALIDATION_FAILED = "validation_failed"
    DUPLICATE_FLAGGED = "duplicate_flagged"

    # Matching and confirmation
    MATCH_RANKED = "match_ranked"
    LINK_AUTO_SELECTED = "link_auto_selected"
    LINK_CONFIRMATION_REQUESTED = "link_confirmation_requested"
    LINK_ACCEPTED = "link_accepted"
    LINK_DECLINED = "link_declined"
    LINK_SAVED = "link_saved"
    LINK_CLEARED = "link_cleared"

    # Persistence
    TRANSACTION_SAVED = "transaction_saved"
    OBLIGATION_SAVED = "obligation_saved"
    IMPORT_COMPLETED = "import_completed"

    # Classification
    CLASSIFICATION_FAILED = "classification_failed"

    # Recurrence
    PATTERN_EXPANDED = "pattern_expanded"
    PATTERN_EXPANSION_SKIPPED = "pattern_expansion_skipped"
    PATTERN_REJECTED = "pattern_rejected"
    SIMILAR_OBLIGATION_FOUND = "similar_obligation_found"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'transaction', 'obligation', 'pattern')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID or link reference of the entity"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., all rows of one import)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(default_factory=dict)

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.duplicate_flagged("tx-1", "tx-0", correlation_id)
        event = AuditEventBuilder.link_accepted("tx-1", "deadlines/d-7", correlation_id)
    """

    @staticmethod
    def validation_failed(
        record_id: Optional[str],
        issues: list[dict],
        correlation_id: UUID,
        entity_type: str = "transaction"
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type=entity_type,
            entity_id=record_id,
            correlation_id=correlation_id,
            description=f"{entity_type.capitalize()} validation failed with {len(issues)} issues",
            details={"issues": issues},
        )

    @staticmethod
    def duplicate_flagged(
        record_ref: str,
        colliding_id: str,
        correlation_id: UUID,
        entity_type: str = "transaction"
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DUPLICATE_FLAGGED,
            severity=AuditSeverity.WARNING,
            entity_type=entity_type,
            entity_id=record_ref,
            correlation_id=correlation_id,
            description=f"Possible duplicate of {colliding_id}",
            details={"colliding_id": colliding_id},
        )

    @staticmethod
    def match_ranked(
        transaction_ref: str,
        candidate_count: int,
        top_reference: Optional[str],
        top_score: Optional[float],
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MATCH_RANKED,
            severity=AuditSeverity.DEBUG,
            entity_type="transaction",
            entity_id=transaction_ref,
            correlation_id=correlation_id,
            description=f"Ranked {candidate_count} candidate obligations",
            details={
                "candidate_count": candidate_count,
                "top_reference": top_reference,
                "top_score": top_score,
            },
        )

    @staticmethod
    def link_auto_selected(
        transaction_ref: str,
        obligation_ref: str,
        score: float,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LINK_AUTO_SELECTED,
            entity_type="transaction",
            entity_id=transaction_ref,
            correlation_id=correlation_id,
            description=f"Link to {obligation_ref} pre-selected",
            details={"obligation": obligation_ref, "score": score},
        )

    @staticmethod
    def link_confirmation_requested(
        transaction_ref: str,
        obligation_ref: str,
        score: float,
        overdue_priority: bool,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LINK_CONFIRMATION_REQUESTED,
            entity_type="transaction",
            entity_id=transaction_ref,
            correlation_id=correlation_id,
            description=f"Asked user to confirm link to {obligation_ref}",
            details={
                "obligation": obligation_ref,
                "score": score,
                "overdue_priority": overdue_priority,
            },
        )

    @staticmethod
    def link_accepted(
        transaction_ref: str,
        obligation_ref: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LINK_ACCEPTED,
            entity_type="transaction",
            entity_id=transaction_ref,
            correlation_id=correlation_id,
            description=f"User accepted link to {obligation_ref}",
            details={"obligation": obligation_ref},
            is_user_action=True,
        )

    @staticmethod
    def link_declined(
        transaction_ref: str,
        obligation_ref: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LINK_DECLINED,
            entity_type="transaction",
            entity_id=transaction_ref,
            correlation_id=correlation_id,
            description=f"User declined link to {obligation_ref}",
            details={"obligation": obligation_ref},
            is_user_action=True,
        )

    @staticmethod
    def link_saved(
        transaction_id: str,
        obligation_ref: str,
        new_status: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LINK_SAVED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Linked to {obligation_ref} ({new_status})",
            details={"obligation": obligation_ref, "obligation_status": new_status},
        )

    @staticmethod
    def link_cleared(
        obligation_ref: str,
        transaction_ids: list[str],
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LINK_CLEARED,
            entity_type="obligation",
            entity_id=obligation_ref,
            correlation_id=correlation_id,
            description=f"Obligation deleted, cleared {len(transaction_ids)} links",
            details={"transaction_ids": transaction_ids},
        )

    @staticmethod
    def transaction_saved(
        transaction_id: str,
        company: str,
        amount: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_SAVED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Transaction saved: {company} - €{amount}",
            details={"company": company, "amount": amount},
        )

    @staticmethod
    def obligation_saved(
        obligation_ref: str,
        company: str,
        amount: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.OBLIGATION_SAVED,
            entity_type="obligation",
            entity_id=obligation_ref,
            correlation_id=correlation_id,
            description=f"Obligation saved: {company} - €{amount}",
            details={"company": company, "amount": amount},
            is_user_action=True,
        )

    @staticmethod
    def import_completed(
        row_count: int,
        saved_count: int,
        duplicate_count: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.IMPORT_COMPLETED,
            entity_type="import",
            correlation_id=correlation_id,
            description=f"Import saved {saved_count} of {row_count} rows",
            details={
                "row_count": row_count,
                "saved_count": saved_count,
                "duplicate_count": duplicate_count,
            },
            is_user_action=True,
        )

    @staticmethod
    def classification_failed(
        record_ref: str,
        error_message: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CLASSIFICATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="transaction",
            entity_id=record_ref,
            correlation_id=correlation_id,
            description="Category suggestion unavailable, row left unclassified",
            error_message=error_message,
        )

    @staticmethod
    def pattern_expanded(
        pattern_id: str,
        target_year: int,
        draft_count: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PATTERN_EXPANDED,
            entity_type="pattern",
            entity_id=pattern_id,
            correlation_id=correlation_id,
            description=f"Created {draft_count} obligations for {target_year}",
            details={"target_year": target_year, "draft_count": draft_count},
        )

    @staticmethod
    def pattern_expansion_skipped(
        pattern_id: str,
        reason: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PATTERN_EXPANSION_SKIPPED,
            severity=AuditSeverity.WARNING,
            entity_type="pattern",
            entity_id=pattern_id,
            correlation_id=correlation_id,
            description=f"Pattern not expanded: {reason}",
            details={"reason": reason},
        )

    @staticmethod
    def pattern_rejected(
        pattern_id: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PATTERN_REJECTED,
            entity_type="pattern",
            entity_id=pattern_id,
            correlation_id=correlation_id,
            description="User rejected recurrence pattern",
            is_user_action=True,
        )

    @staticmethod
    def similar_obligation_found(
        pattern_id: str,
        obligation_ref: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SIMILAR_OBLIGATION_FOUND,
            severity=AuditSeverity.WARNING,
            entity_type="pattern",
            entity_id=pattern_id,
            correlation_id=correlation_id,
            description=f"Similar obligation already exists: {obligation_ref}",
            details={"obligation": obligation_ref},
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
