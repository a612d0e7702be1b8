"""
Budget Models: Categories, Monthly Allocations, Undo Records and Comparisons

DESIGN DECISION: Category types are a closed Enum, not free text.
Income categories exist so income can be labelled, but they are never
budgeted: the assignment ledger rejects them and reconciliation skips them.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
    model_validator,
)

from zerobudget.models.ledger import utc_now


# =============================================================================
# ENUMS
# =============================================================================

class CategoryType(str, Enum):
    """Budget category types."""
    FIXED = "fixed"
    VARIABLE = "variable"
    PERIODIC = "periodic"  # Quarterly/annual bills saved for monthly
    INCOME = "income"      # Never budgeted


class ReadyToAssignStatus(str, Enum):
    """
    Where the zero-based budget stands.

    FULLY_ASSIGNED is the goal, not an error.
    OVER_ASSIGNED is a warning, never a blocking error.
    """
    FULLY_ASSIGNED = "fully_assigned"
    UNASSIGNED = "unassigned"
    OVER_ASSIGNED = "over_assigned"


# =============================================================================
# CATEGORY
# =============================================================================

class DueDateSpec(BaseModel):
    """
    Recurring due date of a category.

    Exactly one of `day_of_month` or `last_day_of_month` is used.
    Day 31 in a 30-day month resolves to the 30th.
    """
    model_config = ConfigDict(frozen=True)

    day_of_month: Optional[int] = Field(default=None, ge=1, le=31)
    last_day_of_month: bool = False

    @model_validator(mode='after')
    def validate_exactly_one(self) -> 'DueDateSpec':
        if self.last_day_of_month and self.day_of_month is not None:
            raise ValueError("Use either day_of_month or last_day_of_month, not both")
        if not self.last_day_of_month and self.day_of_month is None:
            raise ValueError("A due date needs day_of_month or last_day_of_month")
        return self


class BudgetCategory(BaseModel):
    """
    A budget category (envelope).

    `assigned_amount` is money committed to the category. It is >= 0 unless
    an explicit override was used. Zero is a first-class state: the category
    is tracked but not funded yet.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    name: str = Field(..., min_length=1, max_length=50)
    assigned_amount: Decimal = Decimal("0")
    category_type: CategoryType = CategoryType.VARIABLE
    color: str = Field(default="#4A90D9", pattern=r"^#[0-9A-Fa-f]{6}$")
    due_date: Optional[DueDateSpec] = None
    reminder_offsets: list[int] = Field(
        default_factory=lambda: [0],
        description="Days before the due date to remind (0 = on the day)"
    )
    sort_order: int = 0
    created_at: datetime = Field(default_factory=utc_now)

    @field_validator('reminder_offsets')
    @classmethod
    def validate_offsets(cls, v: list[int]) -> list[int]:
        if any(offset < 0 for offset in v):
            raise ValueError("Reminder offsets must be zero or positive")
        return sorted(set(v), reverse=True)

    @property
    def is_income(self) -> bool:
        return self.category_type is CategoryType.INCOME


def first_of_month(value: date) -> date:
    """Normalize any date to the first day of its month."""
    return value.replace(day=1)


class CategoryMonthlyAllocation(BaseModel):
    """
    Money assigned to one category for one month.

    Keyed by (category_id, first-of-month). `rolled_over` is what was left
    in the category at the end of the previous month.
    """
    model_config = ConfigDict(frozen=True)

    category_id: UUID
    month: date
    assigned_amount: Decimal = Decimal("0")
    rolled_over: Decimal = Decimal("0")

    @field_validator('month', mode='before')
    @classmethod
    def drop_time(cls, v):
        if isinstance(v, datetime):
            return v.date()
        return v

    @field_validator('month')
    @classmethod
    def normalize_month(cls, v: date) -> date:
        return first_of_month(v)

    @property
    def key(self) -> tuple[UUID, date]:
        return (self.category_id, self.month)

    def total_available(self, actual_spent: Decimal) -> Decimal:
        """assigned + rolled over - spent. This is what carries forward."""
        return self.assigned_amount + self.rolled_over - actual_spent


# =============================================================================
# UNDO
# =============================================================================

class AssignmentChange(BaseModel):
    """One (category, previous value) pair captured before an assignment."""
    model_config = ConfigDict(frozen=True)

    category_id: UUID
    month: date
    previous_amount: Decimal
    previous_month_amount: Decimal
    new_amount: Decimal


class UndoAction(BaseModel):
    """
    Explicit undo record for an assignment command.

    Holds the captured previous values and a description. Applying it goes
    through the same entry point as any other assignment.
    """
    model_config = ConfigDict(frozen=True)

    action_id: UUID = Field(default_factory=uuid4)
    description: str
    changes: tuple[AssignmentChange, ...]
    created_at: datetime
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at

    @property
    def category_ids(self) -> list[UUID]:
        return [change.category_id for change in self.changes]


# =============================================================================
# DERIVED VIEWS
# =============================================================================

class ReadyToAssignSummary(BaseModel):
    """Ready to Assign plus the numbers it was derived from."""
    model_config = ConfigDict(frozen=True)

    value: Decimal
    total_balances: Decimal
    total_assigned: Decimal

    @computed_field
    @property
    def status(self) -> ReadyToAssignStatus:
        if self.value == 0:
            return ReadyToAssignStatus.FULLY_ASSIGNED
        if self.value > 0:
            return ReadyToAssignStatus.UNASSIGNED
        return ReadyToAssignStatus.OVER_ASSIGNED

    @property
    def is_warning(self) -> bool:
        return self.status is ReadyToAssignStatus.OVER_ASSIGNED

    @property
    def message(self) -> str:
        if self.status is ReadyToAssignStatus.FULLY_ASSIGNED:
            return "Every dollar has a job."
        if self.status is ReadyToAssignStatus.UNASSIGNED:
            return f"{self.value} is waiting to be assigned."
        return f"Categories are over-assigned by {-self.value}."


class CategoryComparison(BaseModel):
    """
    Budgeted vs actual for one category in one period. Derived, not persisted.
    """
    model_config = ConfigDict(frozen=True)

    category_id: UUID
    category_name: str
    category_color: str
    budgeted: Decimal
    actual: Decimal

    @computed_field
    @property
    def difference(self) -> Decimal:
        """Positive means under budget."""
        return self.budgeted - self.actual

    @computed_field
    @property
    def percentage_used(self) -> Decimal:
        """actual / budgeted as a fraction; 0 when nothing was budgeted."""
        if self.budgeted <= 0:
            return Decimal("0")
        return self.actual / self.budgeted

    @computed_field
    @property
    def is_over_budget(self) -> bool:
        return self.actual > self.budgeted

    @property
    def percentage_remaining(self) -> Decimal:
        return Decimal("1") - self.percentage_used


class ReconciliationReport(BaseModel):
    """All category comparisons for one month plus their totals."""
    model_config = ConfigDict(frozen=True)

    month: date
    period_start: date
    period_end: date
    comparisons: list[CategoryComparison] = Field(default_factory=list)

    @computed_field
    @property
    def total_budgeted(self) -> Decimal:
        return sum((c.budgeted for c in self.comparisons), Decimal("0"))

    @computed_field
    @property
    def total_actual(self) -> Decimal:
        return sum((c.actual for c in self.comparisons), Decimal("0"))

    @computed_field
    @property
    def total_difference(self) -> Decimal:
        return sum((c.difference for c in self.comparisons), Decimal("0"))

    @property
    def over_budget(self) -> list[CategoryComparison]:
        return [c for c in self.comparisons if c.is_over_budget]


class ReminderRequest(BaseModel):
    """
    What the notification scheduler needs for one category.

    `due_date` is the resolved effective date, passed through unchanged.
    """
    model_config = ConfigDict(frozen=True)

    category_id: UUID
    category_name: str
    assigned_amount: Decimal
    due_date: date
    reminder_dates: list[date] = Field(default_factory=list)
