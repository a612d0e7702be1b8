"""
Category Reconciliation Engine

Budgeted vs actual per category for one month.

DESIGN DECISION: Income categories are ALWAYS excluded. Income is never
budgeted, only logged through transactions.

- actual     = sum of EXPENSE amounts in the category dated inside the month
- budgeted   = the category's allocation for that month (0 if none)
- percentage = actual / budgeted, or 0 when nothing was budgeted

Results are sorted by category name, case-insensitively (str.casefold),
with the exact name and then the id as tie-breakers so the order is total.
"""

from collections.abc import Iterable
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING, Optional
from uuid import UUID

from zerobudget.models.budget import (
    CategoryComparison,
    ReconciliationReport,
    first_of_month,
)
from zerobudget.models.ledger import Transaction
from zerobudget.reconciliation.periods import month_bounds

if TYPE_CHECKING:
    from zerobudget.budget.assignment import BudgetAssignmentLedger
    from zerobudget.ledger.store import LedgerStore


def actual_spending(
    transactions: Iterable[Transaction],
    category_id: UUID,
    start: date,
    end: date,
) -> Decimal:
    """Sum of expense amounts for one category in [start, end]."""
    return sum(
        (
            tx.amount for tx in transactions
            if tx.is_expense
            and tx.category_id == category_id
            and start <= tx.date <= end
        ),
        Decimal("0"),
    )


def month_totals(transactions: Iterable[Transaction], month: date) -> dict[str, Decimal]:
    """Income, expense and net for all transactions in a month."""
    start, end = month_bounds(month)
    income = Decimal("0")
    expense = Decimal("0")
    for tx in transactions:
        if not start <= tx.date <= end:
            continue
        if tx.is_income:
            income += tx.amount
        else:
            expense += tx.amount
    return {"income": income, "expense": expense, "net": income - expense}


class CategoryReconciliationEngine:
    """Builds ReconciliationReports from the ledger and the assignment ledger."""

    def __init__(self, store: 'LedgerStore', budget: 'BudgetAssignmentLedger'):
        self._store = store
        self._budget = budget

    def compare(self, month: date) -> ReconciliationReport:
        month = first_of_month(month)
        start, end = month_bounds(month)

        with self._store.lock:
            transactions = self._store.list_transactions()
            categories = [c for c in self._budget.list_categories() if not c.is_income]

            comparisons = []
            for category in categories:
                allocation = self._budget.get_allocation(category.id, month)
                comparisons.append(CategoryComparison(
                    category_id=category.id,
                    category_name=category.name,
                    category_color=category.color,
                    budgeted=allocation.assigned_amount,
                    actual=actual_spending(transactions, category.id, start, end),
                ))

        comparisons.sort(
            key=lambda c: (c.category_name.casefold(), c.category_name, str(c.category_id))
        )
        return ReconciliationReport(
            month=month,
            period_start=start,
            period_end=end,
            comparisons=comparisons,
        )

    def compare_category(self, category_id: UUID, month: date) -> Optional[CategoryComparison]:
        """One category's comparison, or None for income categories."""
        report = self.compare(month)
        for comparison in report.comparisons:
            if comparison.category_id == category_id:
                return comparison
        # Raises NotFoundError for unknown ids
        self._budget.get_category(category_id)
        return None

    def totals(self, month: date) -> dict[str, Decimal]:
        with self._store.lock:
            return month_totals(self._store.list_transactions(), month)
