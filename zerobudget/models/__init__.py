"""
Data Models Package

This package contains all Pydantic models used by the budget core.
All data flowing through the system must conform to these schemas.
"""

from zerobudget.models.ledger import (
    Account,
    AccountDeletion,
    AccountType,
    RunningBalanceEntry,
    Transaction,
    TransactionKind,
    utc_now,
)
from zerobudget.models.budget import (
    AssignmentChange,
    BudgetCategory,
    CategoryComparison,
    CategoryMonthlyAllocation,
    CategoryType,
    DueDateSpec,
    ReadyToAssignStatus,
    ReadyToAssignSummary,
    ReconciliationReport,
    ReminderRequest,
    UndoAction,
    first_of_month,
)
from zerobudget.models.importing import (
    ColumnRole,
    ImportColumnMapping,
    ImportResult,
)
from zerobudget.models.queries import (
    DateRangePreset,
    KindFilter,
    TransactionFilter,
)
from zerobudget.models.validation import (
    ValidationIssue,
    ValidationResult,
)
from zerobudget.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "Account",
    "AccountDeletion",
    "AccountType",
    "RunningBalanceEntry",
    "Transaction",
    "TransactionKind",
    "utc_now",
    # Budget models
    "AssignmentChange",
    "BudgetCategory",
    "CategoryComparison",
    "CategoryMonthlyAllocation",
    "CategoryType",
    "DueDateSpec",
    "ReadyToAssignStatus",
    "ReadyToAssignSummary",
    "ReconciliationReport",
    "ReminderRequest",
    "UndoAction",
    "first_of_month",
    # Import models
    "ColumnRole",
    "ImportColumnMapping",
    "ImportResult",
    # Query models
    "DateRangePreset",
    "KindFilter",
    "TransactionFilter",
    # Validation models
    "ValidationIssue",
    "ValidationResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
