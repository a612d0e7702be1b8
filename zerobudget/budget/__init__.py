"""Budget assignment package: assignment ledger, Ready to Assign, due dates."""

from zerobudget.budget.assignment import BudgetAssignmentLedger
from zerobudget.budget.due_dates import build_reminder_request, resolve_due_date
from zerobudget.budget.ready_to_assign import (
    calculate_ready_to_assign,
    summarize_ready_to_assign,
    total_assigned,
)

__all__ = [
    "BudgetAssignmentLedger",
    "build_reminder_request",
    "calculate_ready_to_assign",
    "resolve_due_date",
    "summarize_ready_to_assign",
    "total_assigned",
]
