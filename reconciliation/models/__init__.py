"""
Data Models Package

This package contains all Pydantic models used by the reconciliation engine.
All data flowing through the engine must conform to these schemas.
"""

from reconciliation.models.transaction import (
    FlowDirection,
    Transaction,
)
from reconciliation.models.obligation import (
    DeadlineRecord,
    ExpenseForecastRecord,
    IncomeForecastRecord,
    Obligation,
    ObligationKind,
    ObligationRecord,
    ObligationStatus,
    RecurrenceInterval,
    parse_obligation_record,
)
from reconciliation.models.recurrence import (
    AmountType,
    ExpansionResult,
    ObligationDraft,
    PatternStateError,
    PatternStatus,
    RecurrencePattern,
)
from reconciliation.models.matching import (
    DuplicateCheck,
    GateDecision,
    GateMode,
    LinkState,
    MatchCandidate,
    ScoreBreakdown,
)
from reconciliation.models.validation import (
    ValidationIssue,
    ValidationResult,
)
from reconciliation.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Transactions
    "FlowDirection",
    "Transaction",
    # Obligations
    "DeadlineRecord",
    "ExpenseForecastRecord",
    "IncomeForecastRecord",
    "Obligation",
    "ObligationKind",
    "ObligationRecord",
    "ObligationStatus",
    "RecurrenceInterval",
    "parse_obligation_record",
    # Recurrence
    "AmountType",
    "ExpansionResult",
    "ObligationDraft",
    "PatternStateError",
    "PatternStatus",
    "RecurrencePattern",
    # Matching
    "DuplicateCheck",
    "GateDecision",
    "GateMode",
    "LinkState",
    "MatchCandidate",
    "ScoreBreakdown",
    # Validation
    "ValidationIssue",
    "ValidationResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
