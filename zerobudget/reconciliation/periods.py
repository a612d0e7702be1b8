"""
Month periods.

A month is the closed date range [first day, last day]. Transactions carry
calendar dates, so the last day is included in full.
"""

import calendar
from datetime import date

from dateutil.relativedelta import relativedelta

from zerobudget.models.budget import first_of_month


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def last_day_of_month(value: date) -> date:
    return value.replace(day=days_in_month(value.year, value.month))


def month_bounds(value: date) -> tuple[date, date]:
    """First and last calendar day of the month containing `value`."""
    return first_of_month(value), last_day_of_month(value)


def next_month(value: date) -> date:
    return first_of_month(value) + relativedelta(months=1)


def previous_month(value: date) -> date:
    return first_of_month(value) - relativedelta(months=1)


def in_month(day: date, month: date) -> bool:
    start, end = month_bounds(month)
    return start <= day <= end
