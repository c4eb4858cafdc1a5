"""Builders for test records."""

from datetime import date
from decimal import Decimal
from typing import Optional

from reconciliation.models import (
    DeadlineRecord,
    Obligation,
    ObligationKind,
    ObligationStatus,
    RecurrencePattern,
    Transaction,
)


def make_transaction(
    amount: str = "500.00",
    description: str = "Pagamento fattura Alfa",
    on: Optional[date] = date(2025, 3, 10),
    company: Optional[str] = "LNC",
    inflow: bool = False,
    **extra,
) -> Transaction:
    """Outflow by default; pass inflow=True for money in."""
    side = "inflow" if inflow else "outflow"
    extra[side] = Decimal(amount)
    return Transaction(
        company=company,
        value_date=on,
        description=description,
        **extra,
    )


def make_obligation(
    amount: str = "500.00",
    description: str = "Fattura Alfa Srl",
    due: Optional[date] = date(2025, 3, 1),
    company: str = "LNC",
    kind: ObligationKind = ObligationKind.DEADLINE,
    status: ObligationStatus = ObligationStatus.OPEN,
    obligation_id: str = "d-1",
    outstanding: Optional[str] = None,
    **extra,
) -> Obligation:
    return Obligation(
        id=obligation_id,
        kind=kind,
        company=company,
        description=description,
        due_date=due,
        expected_amount=Decimal(amount),
        outstanding_amount=Decimal(outstanding or amount),
        status=status,
        **extra,
    )


def make_deadline_record(
    record_id: str = "d-1",
    amount: str = "500.00",
    description: str = "Fattura Alfa Srl",
    due: Optional[date] = date(2025, 3, 1),
    company: str = "LNC",
    **extra,
) -> DeadlineRecord:
    return DeadlineRecord(
        id=record_id,
        company=company,
        description=description,
        due_date=due,
        expected_amount=Decimal(amount),
        **extra,
    )


def make_pattern(
    interval: str = "quarterly",
    anchor_month: Optional[int] = 1,
    estimated_day: int = 15,
    pattern_id: str = "p-1",
    **extra,
) -> RecurrencePattern:
    fields = {
        "id": pattern_id,
        "company": "LNC",
        "description": "Canone Telefonico TIM",
        "amount": Decimal("120.00"),
        "interval": interval,
        "estimated_day": estimated_day,
        "anchor_month": anchor_month,
        "category": "Gestione Generale",
        "subcategory": "Telefonia",
    }
    fields.update(extra)
    return RecurrencePattern(**fields)
