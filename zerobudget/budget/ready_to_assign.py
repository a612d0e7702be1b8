"""
Ready-to-Assign Calculator

    ready_to_assign = sum(account balances) - sum(category assigned amounts)

Pure and synchronous. Computed from CURRENT account balances only: income
is already part of those balances, so it is never added again.

Zero is the goal state. A negative value is a warning for the caller and
never a reason to reject an operation.
"""

from collections.abc import Iterable
from decimal import Decimal

from zerobudget.models.budget import BudgetCategory, ReadyToAssignSummary
from zerobudget.models.ledger import Account


def total_assigned(categories: Iterable[BudgetCategory]) -> Decimal:
    return sum((c.assigned_amount for c in categories), Decimal("0"))


def calculate_ready_to_assign(
    accounts: Iterable[Account],
    categories: Iterable[BudgetCategory],
) -> Decimal:
    balances = sum((a.balance for a in accounts), Decimal("0"))
    return balances - total_assigned(categories)


def summarize_ready_to_assign(
    accounts: Iterable[Account],
    categories: Iterable[BudgetCategory],
) -> ReadyToAssignSummary:
    balances = sum((a.balance for a in accounts), Decimal("0"))
    assigned = total_assigned(categories)
    return ReadyToAssignSummary(
        value=balances - assigned,
        total_balances=balances,
        total_assigned=assigned,
    )
