"""Services package."""

from reconciliation.services.storage import (
    AuditStorageInterface,
    DuplicateError,
    InMemoryAuditStorage,
    InMemoryReconciliationStore,
    NotFoundError,
    ReconciliationStorageInterface,
    StorageError,
)

__all__ = [
    # Storage services
    "AuditStorageInterface",
    "DuplicateError",
    "InMemoryAuditStorage",
    "InMemoryReconciliationStore",
    "NotFoundError",
    "ReconciliationStorageInterface",
    "StorageError",
]
