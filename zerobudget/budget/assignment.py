"""
Budget Assignment Ledger

Tracks money committed to categories, overall and per month.

DESIGN DECISION: Every assignment command returns an UndoAction holding the
(category, previous amount) pairs it overwrote. Undo is applied through the
same setter as any other assignment, so there is exactly one place where
assigned amounts change.

DESIGN DECISION: Nothing here is rejected for driving Ready to Assign below
zero. Over-assignment is reported as a warning by the caller.

DESIGN DECISION: distribute_evenly never loses the remainder. Each category
gets Ready to Assign / N rounded DOWN to the minor unit; whatever is left
goes to one designated category (the first one by default). The amounts
always add up to the original value exactly.
"""

from collections.abc import Callable, Iterable
from datetime import date, datetime, timedelta
from decimal import ROUND_DOWN, Decimal
from typing import Optional
from uuid import UUID

from zerobudget.config import BudgetSettings, get_settings
from zerobudget.errors import (
    NotFoundError,
    UndoAlreadyAppliedError,
    UndoExpiredError,
    ValidationError,
)
from zerobudget.ledger.store import LedgerStore
from zerobudget.models.budget import (
    AssignmentChange,
    BudgetCategory,
    CategoryMonthlyAllocation,
    CategoryType,
    DueDateSpec,
    ReadyToAssignSummary,
    UndoAction,
    first_of_month,
)
from zerobudget.models.ledger import Transaction, utc_now
from zerobudget.budget.ready_to_assign import (
    calculate_ready_to_assign,
    summarize_ready_to_assign,
)
from zerobudget.reconciliation.engine import actual_spending
from zerobudget.reconciliation.periods import month_bounds, next_month
from zerobudget.validation import LedgerValidator


Clock = Callable[[], datetime]


class BudgetAssignmentLedger:
    """
    Categories, their assigned amounts and monthly allocations.

    Shares the Ledger Store's lock: assignments and transaction changes
    never interleave.
    """

    def __init__(
        self,
        store: LedgerStore,
        settings: Optional[BudgetSettings] = None,
        validator: Optional[LedgerValidator] = None,
        clock: Clock = utc_now,
    ):
        self._store = store
        self._settings = settings or get_settings().budget
        self._validator = validator or LedgerValidator(self._settings)
        self._clock = clock
        self._categories: dict[UUID, BudgetCategory] = {}
        self._allocations: dict[tuple[UUID, date], CategoryMonthlyAllocation] = {}
        self._applied_undos: set[UUID] = set()
        self.lock = store.lock

    def load(
        self,
        categories: Iterable[BudgetCategory],
        allocations: Iterable[CategoryMonthlyAllocation] = (),
    ) -> None:
        """Hydrate persisted categories and allocations."""
        with self.lock:
            for category in categories:
                self._categories[category.id] = category
            for allocation in allocations:
                self._allocations[allocation.key] = allocation

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get_category(self, category_id: UUID) -> BudgetCategory:
        try:
            return self._categories[category_id]
        except KeyError:
            raise NotFoundError("category", category_id) from None

    def list_categories(self) -> list[BudgetCategory]:
        return sorted(self._categories.values(), key=lambda c: c.sort_order)

    def get_allocation(self, category_id: UUID, month: date) -> CategoryMonthlyAllocation:
        """The stored allocation, or an empty one if nothing was assigned that month."""
        month = first_of_month(month)
        allocation = self._allocations.get((category_id, month))
        if allocation is None:
            return CategoryMonthlyAllocation(category_id=category_id, month=month)
        return allocation

    def list_allocations(self, month: Optional[date] = None) -> list[CategoryMonthlyAllocation]:
        allocations = list(self._allocations.values())
        if month is not None:
            month = first_of_month(month)
            allocations = [a for a in allocations if a.month == month]
        return allocations

    def current_month(self) -> date:
        return first_of_month(self._clock().date())

    def ready_to_assign(self) -> Decimal:
        with self.lock:
            return calculate_ready_to_assign(
                self._store.list_accounts(), self._categories.values()
            )

    def ready_to_assign_summary(self) -> ReadyToAssignSummary:
        with self.lock:
            return summarize_ready_to_assign(
                self._store.list_accounts(), self._categories.values()
            )

    # -------------------------------------------------------------------------
    # Category management
    # -------------------------------------------------------------------------

    def add_category(
        self,
        name: str,
        category_type: CategoryType = CategoryType.VARIABLE,
        color: Optional[str] = None,
        due_date: Optional[DueDateSpec] = None,
        reminder_offsets: Optional[list[int]] = None,
    ) -> BudgetCategory:
        """New categories start unfunded (assigned 0)."""
        self._validator.require(self._validator.validate_name(name, "Category"))
        fields = {
            "name": name,
            "category_type": category_type,
            "due_date": due_date,
        }
        if color is not None:
            fields["color"] = color
        if reminder_offsets is not None:
            fields["reminder_offsets"] = reminder_offsets

        with self.lock:
            # Appended after the last category, also when earlier ones were deleted
            fields["sort_order"] = max(
                (c.sort_order for c in self._categories.values()), default=-1
            ) + 1
            category = BudgetCategory(**fields)
            self._validator.require(self._validator.validate_category(category))
            self._categories[category.id] = category
        return category

    def update_category(
        self,
        category_id: UUID,
        *,
        name: Optional[str] = None,
        color: Optional[str] = None,
        category_type: Optional[CategoryType] = None,
        due_date: Optional[DueDateSpec] = None,
        clear_due_date: bool = False,
        reminder_offsets: Optional[list[int]] = None,
    ) -> BudgetCategory:
        """
        Change descriptive fields. Assigned amounts only change through assign().
        """
        with self.lock:
            current = self.get_category(category_id)
            data = current.model_dump()
            if name is not None:
                self._validator.require(self._validator.validate_name(name, "Category"))
                data["name"] = name
            if color is not None:
                data["color"] = color
            if category_type is not None:
                data["category_type"] = category_type
            if due_date is not None:
                data["due_date"] = due_date
            if clear_due_date:
                data["due_date"] = None
            if reminder_offsets is not None:
                data["reminder_offsets"] = reminder_offsets

            # Rebuild so field validators run again
            updated = BudgetCategory(**data)
            self._validator.require(self._validator.validate_category(updated))
            self._categories[category_id] = updated
        return updated

    def delete_category(self, category_id: UUID) -> tuple[BudgetCategory, list[Transaction]]:
        """
        Remove a category and its allocations.

        A category that still has money assigned AND transactions pointing at
        it is rejected. Otherwise its transactions become uncategorized.
        Returns the deleted category and the transactions that were cleared.
        """
        with self.lock:
            category = self.get_category(category_id)
            referenced = self._store.transactions_for_category(category_id)
            if referenced and category.assigned_amount != 0:
                raise ValidationError(
                    f"Category '{category.name}' still has {category.assigned_amount} assigned "
                    f"and {len(referenced)} transactions. Move the money out first."
                )

            cleared = self._store.clear_category(category_id)
            del self._categories[category_id]
            for key in [k for k in self._allocations if k[0] == category_id]:
                del self._allocations[key]
        return category, cleared

    # -------------------------------------------------------------------------
    # Assignment commands
    # -------------------------------------------------------------------------

    def _set_assigned(
        self,
        category_id: UUID,
        amount: Decimal,
        month: date,
        month_amount: Decimal,
    ) -> None:
        """The only place assigned amounts are written."""
        category = self.get_category(category_id)
        self._categories[category_id] = category.model_copy(
            update={"assigned_amount": amount}
        )
        allocation = self.get_allocation(category_id, month)
        self._allocations[allocation.key] = allocation.model_copy(
            update={"assigned_amount": month_amount}
        )

    def _capture(self, category: BudgetCategory, new_amount: Decimal, month: date) -> AssignmentChange:
        allocation = self.get_allocation(category.id, month)
        return AssignmentChange(
            category_id=category.id,
            month=allocation.month,
            previous_amount=category.assigned_amount,
            previous_month_amount=allocation.assigned_amount,
            new_amount=new_amount,
        )

    def _apply_changes(self, changes: list[AssignmentChange], description: str) -> UndoAction:
        for change in changes:
            delta = change.new_amount - change.previous_amount
            self._set_assigned(
                change.category_id,
                change.new_amount,
                change.month,
                change.previous_month_amount + delta,
            )
        created = self._clock()
        return UndoAction(
            description=description,
            changes=tuple(changes),
            created_at=created,
            expires_at=created + timedelta(seconds=self._settings.undo_window_seconds),
        )

    def assign(
        self,
        category_id: UUID,
        amount: Decimal,
        *,
        increment: bool = False,
        allow_negative: bool = False,
        month: Optional[date] = None,
    ) -> UndoAction:
        """
        Set (or, with increment=True, add to) a category's assigned amount.

        Zero is valid. A negative result needs allow_negative=True (or the
        allow_negative_assignments setting). The month's allocation moves by
        the same delta. Month defaults to the current month.
        """
        month = first_of_month(month or self.current_month())
        with self.lock:
            category = self.get_category(category_id)
            new_amount = category.assigned_amount + amount if increment else amount
            self._validator.require(
                self._validator.validate_assignment(category, new_amount, allow_negative)
            )
            change = self._capture(category, new_amount, month)
            return self._apply_changes(
                [change],
                f"Assigned {new_amount} to {category.name}",
            )

    def quick_assign_remaining(
        self,
        category_id: UUID,
        month: Optional[date] = None,
    ) -> UndoAction:
        """Move the whole of Ready to Assign into one category."""
        month = first_of_month(month or self.current_month())
        with self.lock:
            category = self.get_category(category_id)
            remaining = self.ready_to_assign()
            if remaining <= 0:
                raise ValidationError(
                    f"Nothing to assign: Ready to Assign is {remaining}"
                )
            new_amount = category.assigned_amount + remaining
            self._validator.require(
                self._validator.validate_assignment(category, new_amount)
            )
            change = self._capture(category, new_amount, month)
            return self._apply_changes(
                [change],
                f"Quick-assigned {remaining} to {category.name}",
            )

    def distribute_evenly(
        self,
        category_ids: list[UUID],
        remainder_category_id: Optional[UUID] = None,
        month: Optional[date] = None,
    ) -> UndoAction:
        """
        Split Ready to Assign across the given categories.

        Every category gets the same share rounded down to the minor unit;
        the remainder goes to `remainder_category_id` (default: the first
        category in the list).
        """
        if not category_ids:
            raise ValidationError("Select at least one category to distribute to")
        if len(set(category_ids)) != len(category_ids):
            raise ValidationError("Each category can only be selected once")

        remainder_id = remainder_category_id or category_ids[0]
        if remainder_id not in category_ids:
            raise ValidationError("The remainder category must be one of the selected categories")

        month = first_of_month(month or self.current_month())
        with self.lock:
            categories = [self.get_category(cid) for cid in category_ids]
            remaining = self.ready_to_assign()
            if remaining <= 0:
                raise ValidationError(
                    f"Nothing to distribute: Ready to Assign is {remaining}"
                )

            share = (remaining / len(categories)).quantize(
                self._settings.minor_unit, rounding=ROUND_DOWN
            )
            remainder = remaining - share * len(categories)

            changes = []
            for category in categories:
                extra = remainder if category.id == remainder_id else Decimal("0")
                new_amount = category.assigned_amount + share + extra
                self._validator.require(
                    self._validator.validate_assignment(category, new_amount)
                )
                changes.append(self._capture(category, new_amount, month))

            return self._apply_changes(
                changes,
                f"Distributed {remaining} across {len(categories)} categories",
            )

    def undo(
        self,
        action: UndoAction,
        now: Optional[datetime] = None,
        enforce_expiry: bool = True,
    ) -> list[BudgetCategory]:
        """
        Restore every captured (category, previous amount) pair.

        The expiry window is cooperative: pass enforce_expiry=False to
        honour a late undo on purpose.

        Raises:
            UndoExpiredError: the window has closed
            UndoAlreadyAppliedError: this action was already undone
            NotFoundError: a captured category no longer exists
        """
        with self.lock:
            if action.action_id in self._applied_undos:
                raise UndoAlreadyAppliedError(
                    f"'{action.description}' was already undone"
                )
            if enforce_expiry and action.is_expired(now or self._clock()):
                raise UndoExpiredError(
                    f"Undo for '{action.description}' expired at {action.expires_at.isoformat()}"
                )
            for category_id in action.category_ids:
                self.get_category(category_id)

            for change in reversed(action.changes):
                self._set_assigned(
                    change.category_id,
                    change.previous_amount,
                    change.month,
                    change.previous_month_amount,
                )
            self._applied_undos.add(action.action_id)
            return [self._categories[cid] for cid in action.category_ids]

    # -------------------------------------------------------------------------
    # Month roll-over
    # -------------------------------------------------------------------------

    def roll_over_month(self, month: date) -> list[CategoryMonthlyAllocation]:
        """
        Carry each budgeted category's leftover into the next month.

        leftover = assigned + rolled over - spent; it may be negative when a
        category was overspent. Re-running replaces the previous roll-over.
        """
        month = first_of_month(month)
        start, end = month_bounds(month)
        following = next_month(month)

        with self.lock:
            transactions = self._store.list_transactions()
            rolled = []
            for category in self.list_categories():
                if category.is_income:
                    continue
                allocation = self.get_allocation(category.id, month)
                spent = actual_spending(transactions, category.id, start, end)
                upcoming = self.get_allocation(category.id, following).model_copy(
                    update={"rolled_over": allocation.total_available(spent)}
                )
                self._allocations[upcoming.key] = upcoming
                rolled.append(upcoming)
        return rolled
