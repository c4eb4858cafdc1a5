"""
Reconciliation Engine

Pure, synchronous building blocks. Nothing here performs I/O; callers
supply snapshots and persist the results themselves.
"""

from reconciliation.engine.duplicates import (
    DuplicateDetector,
    DuplicateKey,
    batch_reference,
)
from reconciliation.engine.gate import (
    ConfirmationGate,
    InvalidTransitionError,
    LinkSession,
)
from reconciliation.engine.matcher import (
    ObligationMatcher,
    amount_feature,
    date_feature,
    description_feature,
)
from reconciliation.engine.recurrence import (
    INTERVAL_STEPS,
    RecurrenceExpander,
    find_similar_obligation,
    period_label,
)
from reconciliation.engine.text import (
    STOP_WORDS,
    description_similarity,
    jaccard,
    normalize_description,
)

__all__ = [
    # Duplicates
    "DuplicateDetector",
    "DuplicateKey",
    "batch_reference",
    # Gate
    "ConfirmationGate",
    "InvalidTransitionError",
    "LinkSession",
    # Matcher
    "ObligationMatcher",
    "amount_feature",
    "date_feature",
    "description_feature",
    # Recurrence
    "INTERVAL_STEPS",
    "RecurrenceExpander",
    "find_similar_obligation",
    "period_label",
    # Text
    "STOP_WORDS",
    "description_similarity",
    "jaccard",
    "normalize_description",
]
