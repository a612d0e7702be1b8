"""Services package: persistence and notification collaborators."""

from zerobudget.services.notifications import (
    InMemoryNotificationScheduler,
    NotificationSchedulerInterface,
)
from zerobudget.services.storage import (
    AuditStorageInterface,
    BudgetStorageInterface,
    ConnectionError,
    DuplicateError,
    GoogleSheetsAuditStorage,
    GoogleSheetsBudgetStorage,
    GoogleSheetsClient,
    InMemoryAuditStorage,
    InMemoryBudgetStorage,
    RecordNotFoundError,
    StorageError,
)

__all__ = [
    # Notifications
    "InMemoryNotificationScheduler",
    "NotificationSchedulerInterface",
    # Storage services
    "AuditStorageInterface",
    "BudgetStorageInterface",
    "ConnectionError",
    "DuplicateError",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsBudgetStorage",
    "GoogleSheetsClient",
    "InMemoryAuditStorage",
    "InMemoryBudgetStorage",
    "RecordNotFoundError",
    "StorageError",
]
