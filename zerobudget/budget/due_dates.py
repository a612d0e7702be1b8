"""
Due date resolution for reminders.

The core only resolves the effective due date in a month. Scheduling is the
notification collaborator's job; the resolved date is passed through unchanged.
"""

from datetime import date, timedelta

from zerobudget.models.budget import BudgetCategory, DueDateSpec, ReminderRequest
from zerobudget.reconciliation.periods import days_in_month


def resolve_due_date(spec: DueDateSpec, month: date) -> date:
    """
    Effective due date in the given month.

    Day 31 in a 30-day month resolves to the 30th; "last day" in
    February is the 29th in leap years and the 28th otherwise.
    """
    last = days_in_month(month.year, month.month)
    if spec.last_day_of_month:
        day = last
    else:
        day = min(spec.day_of_month, last)
    return date(month.year, month.month, day)


def build_reminder_request(category: BudgetCategory, month: date) -> ReminderRequest:
    """
    Raises:
        ValueError: if the category has no due date
    """
    if category.due_date is None:
        raise ValueError(f"Category '{category.name}' has no due date")

    due = resolve_due_date(category.due_date, month)
    return ReminderRequest(
        category_id=category.id,
        category_name=category.name,
        assigned_amount=category.assigned_amount,
        due_date=due,
        reminder_dates=[due - timedelta(days=offset) for offset in category.reminder_offsets],
    )
