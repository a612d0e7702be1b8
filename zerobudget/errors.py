"""
Budget Core Exceptions

Three families, handled very differently:

- ValidationError: the request is rejected before anything changes.
  Fully recoverable; the message says exactly what to fix.
- RowConversionError: one statement row could not be imported. The import
  reconciler catches it, records "Row N: ..." and moves on to the next row.
- InvariantViolation: a balance no longer matches its transactions. This is
  a defect. It is raised loudly and never auto-corrected.
"""

from typing import Optional

from zerobudget.models.validation import ValidationIssue


class BudgetError(Exception):
    """Base exception for the budget core."""
    pass


class ValidationError(BudgetError):
    """Input rejected before any mutation occurred."""

    def __init__(self, message: str, issues: Optional[list[ValidationIssue]] = None):
        self.issues = issues or []
        super().__init__(message)

    @classmethod
    def from_issues(cls, issues: list[ValidationIssue]) -> 'ValidationError':
        errors = [i for i in issues if i.severity == "error"]
        message = "; ".join(i.message for i in errors) or "Validation failed"
        return cls(message, issues)


class NotFoundError(BudgetError):
    """Referenced account, transaction or category does not exist."""

    def __init__(self, entity_type: str, entity_id):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type.capitalize()} not found: {entity_id}")


class UndoExpiredError(ValidationError):
    """Undo requested after its window closed."""
    pass


class UndoAlreadyAppliedError(ValidationError):
    """The same undo action was applied before."""
    pass


class RowConversionError(BudgetError):
    """A single statement row could not be converted."""

    def __init__(self, row_number: int, reason: str, duplicate: bool = False):
        self.row_number = row_number
        self.reason = reason
        self.duplicate = duplicate
        super().__init__(f"Row {row_number}: {reason}")


class InvariantViolation(BudgetError):
    """Ledger state is inconsistent. Treat as a bug."""
    pass
