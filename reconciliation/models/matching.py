"""
Matching Models

Transient results of the reconciliation engine. None of these are persisted;
they are recomputed on every call.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from reconciliation.models.obligation import Obligation


class ScoreBreakdown(BaseModel):
    """
    Weighted-feature vector for one (transaction, obligation) pair.

    Each feature is computed independently; the total is their sum.
    An excluded pair keeps its forced total (-1 for scope gates,
    0 for rejections) and never appears in a ranking.
    """
    model_config = ConfigDict(frozen=True)

    date: float = 0.0
    amount: float = 0.0
    description: float = 0.0
    category: float = 0.0
    subcategory: float = 0.0

    excluded: bool = False
    exclusion_reason: Optional[str] = None
    forced_total: Optional[float] = None

    @property
    def total(self) -> float:
        if self.forced_total is not None:
            return self.forced_total
        return self.date + self.amount + self.description + self.category + self.subcategory

    @classmethod
    def gated(cls, reason: str) -> "ScoreBreakdown":
        """Outside the transaction's scope (company, direction, status)."""
        return cls(excluded=True, exclusion_reason=reason, forced_total=-1.0)

    @classmethod
    def rejected(cls, reason: str) -> "ScoreBreakdown":
        """In scope but not a plausible match (date window, bad date)."""
        return cls(excluded=True, exclusion_reason=reason, forced_total=0.0)

    def as_dict(self) -> dict:
        return {
            "date": round(self.date, 4),
            "amount": round(self.amount, 4),
            "description": round(self.description, 4),
            "category": self.category,
            "subcategory": self.subcategory,
            "total": round(self.total, 4),
        }


class MatchCandidate(BaseModel):
    """An obligation paired with its score for a given transaction."""
    model_config = ConfigDict(frozen=True)

    obligation: Obligation
    breakdown: ScoreBreakdown

    @property
    def score(self) -> float:
        return self.breakdown.total

    @property
    def link_reference(self) -> str:
        return self.obligation.link_reference


class DuplicateCheck(BaseModel):
    """Duplicate flag plus the colliding record, for the caller to warn about."""
    model_config = ConfigDict(frozen=True)

    is_duplicate: bool
    colliding_id: Optional[str] = None
    checked: bool = Field(
        default=True,
        description="False when a key field was missing and the check was skipped"
    )


class GateMode(str, Enum):
    """Where the gate is being asked."""
    PREVIEW = "preview"        # live suggestion while the draft is edited
    SUBMISSION = "submission"  # saving a transaction or committing an import


class LinkState(str, Enum):
    """Link lifecycle of one transaction."""
    SCORING = "scoring"
    AUTO_LINKED = "auto_linked"
    PENDING_CONFIRMATION = "pending_confirmation"
    LINKED = "linked"
    UNLINKED = "unlinked"


class GateDecision(BaseModel):
    """What the confirmation gate decided for the top candidate."""
    model_config = ConfigDict(frozen=True)

    outcome: LinkState
    candidate: Optional[MatchCandidate] = None
    overdue_priority: bool = Field(
        default=False,
        description="Obligation was already due before the transaction date"
    )

    @property
    def link_reference(self) -> Optional[str]:
        if self.candidate is None or self.outcome is LinkState.UNLINKED:
            return None
        return self.candidate.link_reference

    @property
    def requires_confirmation(self) -> bool:
        return self.outcome is LinkState.PENDING_CONFIRMATION
