"""
Transaction Reconciliation - Source Package

Links recorded bank movements to the obligations they settle
(tax deadlines, expense forecasts, income forecasts), flags duplicate
entries, and turns detected recurring movements into future obligations.

DESIGN PRINCIPLES:
1. Engine scores → Human confirms → Store writes
2. The engine is pure; only the flows touch storage
3. No silent corrections
4. Every link decision must be auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Transaction Reconciliation Team"
