"""
Shared fixtures.

Settings objects are built explicitly so tests never depend on the
environment. Time is controlled through a FixedClock.
"""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from zerobudget.budget import BudgetAssignmentLedger
from zerobudget.config import BudgetSettings, FormatSettings
from zerobudget.ledger import LedgerStore
from zerobudget.models.ledger import Transaction, TransactionKind


class FixedClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


@pytest.fixture
def budget_settings() -> BudgetSettings:
    return BudgetSettings(
        undo_window_seconds=10,
        allow_negative_assignments=False,
        minor_unit=Decimal("0.01"),
    )


@pytest.fixture
def format_settings() -> FormatSettings:
    return FormatSettings(currency_code="USD", number_format="1,234.56", date_format="MM/DD/YYYY")


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def store(budget_settings) -> LedgerStore:
    return LedgerStore(settings=budget_settings)


@pytest.fixture
def ledger(store, budget_settings, clock) -> BudgetAssignmentLedger:
    return BudgetAssignmentLedger(store, settings=budget_settings, clock=clock)


def expense(amount: str, day: date = date(2024, 3, 10), description: str = "Groceries", **kwargs) -> Transaction:
    return Transaction(
        date=day,
        amount=Decimal(amount),
        kind=TransactionKind.EXPENSE,
        description=description,
        **kwargs,
    )


def income(amount: str, day: date = date(2024, 3, 1), description: str = "Paycheck", **kwargs) -> Transaction:
    return Transaction(
        date=day,
        amount=Decimal(amount),
        kind=TransactionKind.INCOME,
        description=description,
        **kwargs,
    )
