"""
Recurrence Models

A recurrence pattern is an inferred repeating transaction template
(e.g. "phone bill, around the 15th, every quarter starting in January").
Patterns are produced by an external detection service, reviewed by the
user and expanded into dated obligation drafts for a target year.

CRITICAL: A pattern is expanded at most once. Accepting it is the
pending -> accepted transition, and an accepted pattern produces no drafts.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from reconciliation.models.obligation import Obligation, ObligationKind, RecurrenceInterval


class PatternStateError(Exception):
    """A pattern status transition that is not allowed."""
    pass


class PatternStatus(str, Enum):
    """Review status of a detected pattern."""
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class AmountType(str, Enum):
    """Whether the source movements had (almost) the same amount."""
    FIXED = "fixed"
    VARIABLE = "variable"


class RecurrencePattern(BaseModel):
    """A detected recurring movement, ready to be turned into obligations."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(..., min_length=1)
    company: str = Field(..., min_length=1, max_length=20)
    description: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Cleaned, generic description (e.g. 'Canone Telefonico TIM')"
    )
    amount: Decimal = Field(..., ge=0, decimal_places=2)
    amount_type: AmountType = AmountType.FIXED
    interval: RecurrenceInterval
    estimated_day: int = Field(..., ge=1, le=31)
    anchor_month: Optional[int] = Field(
        default=None,
        ge=1,
        le=12,
        description="First month of the cycle (1 = January)"
    )
    category: str = Field(default="", max_length=100)
    subcategory: Optional[str] = Field(default=None, max_length=100)
    target_kind: ObligationKind = Field(
        default=ObligationKind.DEADLINE,
        description="Which kind of obligation the drafts become"
    )
    tax_type: Optional[str] = None
    source_transaction_ids: frozenset[str] = Field(default_factory=frozenset)
    status: PatternStatus = PatternStatus.PENDING
    reason: Optional[str] = Field(
        default=None,
        description="Why the detection service suggested this pattern"
    )

    @field_validator('company')
    @classmethod
    def normalize_company(cls, v: str) -> str:
        return v.upper()

    @field_validator('interval', mode='before')
    @classmethod
    def parse_interval(cls, v: Any) -> RecurrenceInterval:
        if isinstance(v, RecurrenceInterval):
            return v
        return RecurrenceInterval.from_label(str(v)) or RecurrenceInterval.OTHER

    @property
    def is_pending(self) -> bool:
        return self.status is PatternStatus.PENDING

    def mark_accepted(self) -> "RecurrencePattern":
        """Return an accepted copy. Only pending patterns can be accepted."""
        if not self.is_pending:
            raise PatternStateError(
                f"Pattern {self.id} is {self.status.value}, cannot accept"
            )
        return self.model_copy(update={"status": PatternStatus.ACCEPTED})

    def mark_rejected(self) -> "RecurrencePattern":
        """Return a rejected copy. Only pending patterns can be rejected."""
        if not self.is_pending:
            raise PatternStateError(
                f"Pattern {self.id} is {self.status.value}, cannot reject"
            )
        return self.model_copy(update={"status": PatternStatus.REJECTED})


class ObligationDraft(BaseModel):
    """
    An obligation generated from a pattern, not yet committed.

    The store turns it into the record kind named by `kind`.
    """

    kind: ObligationKind
    company: str
    description: str
    due_date: date
    amount: Decimal = Field(..., ge=0)
    category: str = ""
    subcategory: Optional[str] = None
    recurrence: RecurrenceInterval
    tax_type: Optional[str] = None
    pattern_id: str
    source: str = "ai-suggested"
    created_at: datetime = Field(default_factory=datetime.utcnow)

    def to_record_payload(self, record_id: str) -> dict:
        """Payload accepted by parse_obligation_record for the draft's kind."""
        payload = {
            "id": record_id,
            "kind": self.kind.value,
            "company": self.company,
            "description": self.description,
            "category": self.category,
            "subcategory": self.subcategory,
            "recurrence": self.recurrence.value,
        }
        if self.kind is ObligationKind.DEADLINE:
            payload.update(
                due_date=self.due_date,
                expected_amount=self.amount,
                tax_type=self.tax_type,
            )
        elif self.kind is ObligationKind.EXPENSE_FORECAST:
            payload.update(due_date=self.due_date, gross_amount=self.amount)
        else:
            payload.update(expected_date=self.due_date, gross_amount=self.amount)
        return payload

    def to_obligation(self, record_id: str) -> Obligation:
        """Projection of the draft, for checks made before it is committed."""
        return Obligation.from_payload(self.to_record_payload(record_id))


class ExpansionResult(BaseModel):
    """Outcome of expanding one pattern for one year."""

    pattern_id: str
    target_year: int
    drafts: list[ObligationDraft] = Field(default_factory=list)
    discarded_months: list[int] = Field(
        default_factory=list,
        description="Computed months that fell past December and were dropped"
    )
    duplicates: list[ObligationDraft] = Field(
        default_factory=list,
        description="Drafts not created because an identical obligation exists"
    )
    skipped_reason: Optional[str] = None
    status: PatternStatus

    @property
    def draft_count(self) -> int:
        return len(self.drafts)
