"""
Storage Services Package

Provides abstract interfaces and an in-memory implementation for the
records the reconciliation flows read and write.
"""

from reconciliation.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    NotFoundError,
    ReconciliationStorageInterface,
    StorageError,
)
from reconciliation.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryReconciliationStore,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "ReconciliationStorageInterface",
    # Exceptions
    "DuplicateError",
    "NotFoundError",
    "StorageError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryReconciliationStore",
]
