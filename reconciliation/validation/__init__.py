"""Transaction and obligation validation package."""

from reconciliation.validation.validator import ObligationValidator, TransactionValidator

__all__ = ["ObligationValidator", "TransactionValidator"]
