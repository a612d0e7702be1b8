"""Category reconciliation package."""

from zerobudget.reconciliation.engine import (
    CategoryReconciliationEngine,
    actual_spending,
    month_totals,
)
from zerobudget.reconciliation.periods import (
    days_in_month,
    in_month,
    last_day_of_month,
    month_bounds,
    next_month,
    previous_month,
)

__all__ = [
    "CategoryReconciliationEngine",
    "actual_spending",
    "days_in_month",
    "in_month",
    "last_day_of_month",
    "month_bounds",
    "month_totals",
    "next_month",
    "previous_month",
]
