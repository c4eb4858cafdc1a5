"""
Obligation Models

An obligation is money expected to move: a tax/contract deadline,
an expense forecast or an income forecast. The three kinds are stored
in separate collections with slightly different field names.

DESIGN DECISION: Each stored kind has its own record class, discriminated
by `kind`. Matching and duplicate detection never touch the records
directly; they work on the common `Obligation` projection built by
`Obligation.from_record`. Adding a fourth kind means adding one record
class and one branch in the adapter.

Obligations are owned by the store. The engine only reads snapshots.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    field_validator,
)

from reconciliation.models.transaction import CENT, FlowDirection


# =============================================================================
# ENUMS
# =============================================================================

class ObligationKind(str, Enum):
    """The three record kinds and the collection each one lives in."""
    DEADLINE = "deadline"
    EXPENSE_FORECAST = "expense_forecast"
    INCOME_FORECAST = "income_forecast"

    @property
    def collection(self) -> str:
        return _COLLECTIONS[self]

    @property
    def direction(self) -> FlowDirection:
        if self is ObligationKind.INCOME_FORECAST:
            return FlowDirection.INFLOW
        return FlowDirection.OUTFLOW


_COLLECTIONS = {
    ObligationKind.DEADLINE: "deadlines",
    ObligationKind.EXPENSE_FORECAST: "expenseForecasts",
    ObligationKind.INCOME_FORECAST: "incomeForecasts",
}


class RecurrenceInterval(str, Enum):
    """How often a recurring obligation repeats."""
    MONTHLY = "monthly"
    BIMONTHLY = "bimonthly"
    QUARTERLY = "quarterly"
    FOUR_MONTHLY = "four_monthly"
    SEMIANNUAL = "semiannual"
    ANNUAL = "annual"
    OTHER = "other"

    @classmethod
    def from_label(cls, label: Optional[str]) -> Optional["RecurrenceInterval"]:
        """
        Map a label to an interval.

        Accepts the enum values and the Italian labels emitted by the
        pattern-detection service. Returns None for "no recurrence" and
        OTHER for anything unrecognized.
        """
        if label is None:
            return None
        key = label.strip().lower()
        if key in ("", "nessuna", "none"):
            return None
        try:
            return cls(key)
        except ValueError:
            return _ITALIAN_INTERVAL_LABELS.get(key, cls.OTHER)


_ITALIAN_INTERVAL_LABELS = {
    "mensile": RecurrenceInterval.MONTHLY,
    "bimestrale": RecurrenceInterval.BIMONTHLY,
    "trimestrale": RecurrenceInterval.QUARTERLY,
    "quadrimestrale": RecurrenceInterval.FOUR_MONTHLY,
    "semestrale": RecurrenceInterval.SEMIANNUAL,
    "annuale": RecurrenceInterval.ANNUAL,
    "altro": RecurrenceInterval.OTHER,
}


class ObligationStatus(str, Enum):
    """Lifecycle status of an obligation."""
    OPEN = "open"
    PARTIALLY_SETTLED = "partially_settled"
    SETTLED = "settled"
    CANCELLED = "cancelled"

    @property
    def is_matchable(self) -> bool:
        return self in (ObligationStatus.OPEN, ObligationStatus.PARTIALLY_SETTLED)


def _lenient_date(value: Any) -> Optional[date]:
    """
    Parse a snapshot date without failing the whole snapshot.

    Unparseable values become None; the matcher excludes such candidates.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError:
            return None
    return None


# =============================================================================
# STORED RECORD KINDS
# =============================================================================

class _ObligationRecordBase(BaseModel):
    """Fields every stored obligation shares."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(..., min_length=1)
    company: str = Field(..., min_length=1, max_length=20)
    description: str = Field(default="", max_length=500)
    category: Optional[str] = None
    subcategory: Optional[str] = None
    status: ObligationStatus = ObligationStatus.OPEN
    recurrence: Optional[RecurrenceInterval] = None
    paid_amount: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        decimal_places=2,
        description="Sum of the movements linked so far"
    )

    @field_validator('company')
    @classmethod
    def normalize_company(cls, v: str) -> str:
        return v.upper()

    @field_validator('recurrence', mode='before')
    @classmethod
    def parse_recurrence(cls, v: Any) -> Optional[RecurrenceInterval]:
        if v is None or isinstance(v, RecurrenceInterval):
            return v
        return RecurrenceInterval.from_label(str(v))


class DeadlineRecord(_ObligationRecordBase):
    """Tax or contract deadline."""

    kind: Literal["deadline"] = "deadline"
    due_date: Optional[date] = None
    expected_amount: Decimal = Field(..., ge=0, decimal_places=2)
    tax_type: Optional[str] = None

    @field_validator('due_date', mode='before')
    @classmethod
    def parse_due_date(cls, v: Any) -> Optional[date]:
        return _lenient_date(v)


class ExpenseForecastRecord(_ObligationRecordBase):
    """Planned outgoing payment."""

    kind: Literal["expense_forecast"] = "expense_forecast"
    due_date: Optional[date] = None
    gross_amount: Decimal = Field(..., ge=0, decimal_places=2)

    @field_validator('due_date', mode='before')
    @classmethod
    def parse_due_date(cls, v: Any) -> Optional[date]:
        return _lenient_date(v)


class IncomeForecastRecord(_ObligationRecordBase):
    """Planned incoming payment."""

    kind: Literal["income_forecast"] = "income_forecast"
    expected_date: Optional[date] = None
    gross_amount: Decimal = Field(..., ge=0, decimal_places=2)

    @field_validator('expected_date', mode='before')
    @classmethod
    def parse_expected_date(cls, v: Any) -> Optional[date]:
        return _lenient_date(v)


ObligationRecord = Annotated[
    Union[DeadlineRecord, ExpenseForecastRecord, IncomeForecastRecord],
    Field(discriminator="kind"),
]

_record_adapter: TypeAdapter = TypeAdapter(ObligationRecord)


def parse_obligation_record(data: dict) -> Union[
    DeadlineRecord, ExpenseForecastRecord, IncomeForecastRecord
]:
    """Validate a raw store payload into the matching record class."""
    return _record_adapter.validate_python(data)


# =============================================================================
# COMMON PROJECTION
# =============================================================================

class Obligation(BaseModel):
    """
    Read-only projection shared by all obligation kinds.

    This is what the matcher, the duplicate detector and the recurrence
    look-alike check consume.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    kind: ObligationKind
    company: str
    description: str = ""
    due_date: Optional[date] = None
    expected_amount: Decimal = Field(..., ge=0)
    outstanding_amount: Decimal = Field(..., ge=0)
    status: ObligationStatus = ObligationStatus.OPEN
    category: Optional[str] = None
    subcategory: Optional[str] = None
    recurrence: Optional[RecurrenceInterval] = None

    @property
    def collection(self) -> str:
        return self.kind.collection

    @property
    def direction(self) -> FlowDirection:
        return self.kind.direction

    @property
    def link_reference(self) -> str:
        """Opaque reference stored on the linked transaction."""
        return f"{self.collection}/{self.id}"

    @property
    def amount_pair(self) -> tuple[Decimal, Decimal]:
        """(inflow, outflow) of the expected movement, rounded to cents."""
        amount = self.expected_amount.quantize(CENT)
        if self.direction is FlowDirection.INFLOW:
            return (amount, Decimal("0.00"))
        return (Decimal("0.00"), amount)

    def status_after_payment(
        self,
        amount: Decimal,
        tolerance: Decimal = Decimal("0.02"),
    ) -> ObligationStatus:
        """Status the store should write once `amount` is linked to this obligation."""
        if amount + tolerance >= self.outstanding_amount:
            return ObligationStatus.SETTLED
        if amount > 0:
            return ObligationStatus.PARTIALLY_SETTLED
        return self.status

    @classmethod
    def from_record(
        cls,
        record: Union[DeadlineRecord, ExpenseForecastRecord, IncomeForecastRecord],
    ) -> "Obligation":
        """Project any stored record onto the common shape."""
        if isinstance(record, DeadlineRecord):
            kind = ObligationKind.DEADLINE
            due = record.due_date
            expected = record.expected_amount
        elif isinstance(record, ExpenseForecastRecord):
            kind = ObligationKind.EXPENSE_FORECAST
            due = record.due_date
            expected = record.gross_amount
        elif isinstance(record, IncomeForecastRecord):
            kind = ObligationKind.INCOME_FORECAST
            due = record.expected_date
            expected = record.gross_amount
        else:
            raise TypeError(f"Unsupported obligation record: {type(record).__name__}")

        outstanding = max(Decimal("0"), expected - record.paid_amount)
        if record.status is ObligationStatus.SETTLED:
            outstanding = Decimal("0")

        return cls(
            id=record.id,
            kind=kind,
            company=record.company,
            description=record.description,
            due_date=due,
            expected_amount=expected,
            outstanding_amount=outstanding,
            status=record.status,
            category=record.category,
            subcategory=record.subcategory,
            recurrence=record.recurrence,
        )

    @classmethod
    def from_payload(cls, data: dict) -> "Obligation":
        """Shortcut for raw store payloads."""
        return cls.from_record(parse_obligation_record(data))
