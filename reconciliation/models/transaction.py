"""
Transaction Models

A transaction is an actually recorded cash movement: money in (inflow)
or money out (outflow), never both.

DESIGN DECISION: Drafts and persisted transactions share one model.
Company, date and description are optional so that a half-typed draft
can still be previewed against open obligations. Persisted transactions
get an id from the store and are only mutated through their obligation link.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


CENT = Decimal("0.01")


class FlowDirection(str, Enum):
    """Which way money moves."""
    INFLOW = "inflow"
    OUTFLOW = "outflow"


class Transaction(BaseModel):
    """
    A recorded (or drafted) cash movement.

    Exactly one of inflow/outflow may be positive. A draft with both at
    zero is allowed while the user is still typing; it has no direction
    and will not match anything.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: Optional[str] = Field(
        default=None,
        description="Store identifier (None while drafting)"
    )
    company: Optional[str] = Field(
        default=None,
        max_length=20,
        description="Company code (e.g. 'LNC')"
    )
    value_date: Optional[date] = Field(
        default=None,
        description="Value date of the movement"
    )
    description: Optional[str] = Field(
        default=None,
        max_length=500,
        description="Free-text description as entered or imported"
    )
    inflow: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        decimal_places=2,
        description="Money in"
    )
    outflow: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        decimal_places=2,
        description="Money out"
    )
    category: Optional[str] = Field(
        default=None,
        max_length=100,
    )
    subcategory: Optional[str] = Field(
        default=None,
        max_length=100,
    )

    # "{collection}/{id}" reference to at most one obligation
    obligation_link: Optional[str] = Field(
        default=None,
        description="Opaque reference to the settled obligation"
    )

    @field_validator('company')
    @classmethod
    def normalize_company(cls, v: Optional[str]) -> Optional[str]:
        """Company codes are compared upper-case."""
        if v is None:
            return None
        return v.upper() or None

    @model_validator(mode='after')
    def validate_single_direction(self) -> 'Transaction':
        """A movement is either an inflow or an outflow."""
        if self.inflow > 0 and self.outflow > 0:
            raise ValueError("A transaction cannot be both an inflow and an outflow")
        return self

    @property
    def direction(self) -> Optional[FlowDirection]:
        if self.inflow > 0:
            return FlowDirection.INFLOW
        if self.outflow > 0:
            return FlowDirection.OUTFLOW
        return None

    @property
    def amount(self) -> Decimal:
        """Magnitude of the movement."""
        return self.inflow if self.inflow > 0 else self.outflow

    @property
    def signed_amount(self) -> Decimal:
        """Inflows positive, outflows negative."""
        return self.inflow - self.outflow

    @property
    def amount_pair(self) -> tuple[Decimal, Decimal]:
        """(inflow, outflow) rounded to cents, as used by duplicate keys."""
        return (self.inflow.quantize(CENT), self.outflow.quantize(CENT))

    @property
    def is_linked(self) -> bool:
        return self.obligation_link is not None
