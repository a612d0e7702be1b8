"""
Tests for the Pydantic models.

Test strategy:
1. Unit tests for individual components (models, validators)
2. Integration tests for flows (with in-memory or mocked storage)
3. No real API calls in tests (use mocks)
"""

import pytest
from datetime import date, datetime
from decimal import Decimal
from uuid import uuid4

from pydantic import ValidationError as PydanticValidationError

from zerobudget.models import (
    Account,
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
    BudgetCategory,
    CategoryComparison,
    CategoryMonthlyAllocation,
    CategoryType,
    ColumnRole,
    DueDateSpec,
    ImportColumnMapping,
    ImportResult,
    ReadyToAssignStatus,
    ReadyToAssignSummary,
    Transaction,
    TransactionFilter,
    TransactionKind,
    DateRangePreset,
    ValidationIssue,
    ValidationResult,
)


class TestLedgerModels:
    """Tests for accounts and transactions."""

    def test_account_strips_whitespace(self):
        """Whitespace around names is stripped."""
        account = Account(name="  Main Checking  ")
        assert account.name == "Main Checking"

    def test_account_is_frozen(self):
        """Balances cannot be assigned from outside the store."""
        account = Account(name="Checking", balance=Decimal("10"))
        with pytest.raises(PydanticValidationError):
            account.balance = Decimal("999")

    def test_transaction_signed_amount(self):
        """Income adds, expense subtracts."""
        paid = Transaction(date=date(2024, 1, 1), amount=Decimal("50"), kind=TransactionKind.INCOME, description="Pay")
        spent = Transaction(date=date(2024, 1, 1), amount=Decimal("20"), kind=TransactionKind.EXPENSE, description="Food")
        assert paid.signed_amount == Decimal("50")
        assert spent.signed_amount == Decimal("-20")
        assert paid.is_income and spent.is_expense

    def test_transaction_rejects_negative_amount(self):
        """Amounts are magnitudes; the kind gives the sign."""
        with pytest.raises(PydanticValidationError):
            Transaction(date=date(2024, 1, 1), amount=Decimal("-5"), kind=TransactionKind.EXPENSE, description="x")

    def test_duplicate_key(self):
        """Duplicate identity is (date, amount, description)."""
        tx = Transaction(date=date(2024, 1, 2), amount=Decimal("9.99"), kind=TransactionKind.EXPENSE, description="Stream")
        assert tx.duplicate_key() == (date(2024, 1, 2), Decimal("9.99"), "Stream")


class TestBudgetModels:
    """Tests for categories, allocations and derived views."""

    def test_category_defaults_to_unfunded(self):
        """A new category has zero assigned and that is valid."""
        category = BudgetCategory(name="Rent", category_type=CategoryType.FIXED)
        assert category.assigned_amount == Decimal("0")
        assert not category.is_income

    def test_category_color_must_be_hex(self):
        """Colors are #RRGGBB."""
        with pytest.raises(PydanticValidationError):
            BudgetCategory(name="Rent", color="blue")

    def test_reminder_offsets_are_normalized(self):
        """Offsets are de-duplicated and sorted furthest first."""
        category = BudgetCategory(name="Rent", reminder_offsets=[0, 7, 2, 7])
        assert category.reminder_offsets == [7, 2, 0]

    def test_reminder_offsets_reject_negative(self):
        with pytest.raises(PydanticValidationError):
            BudgetCategory(name="Rent", reminder_offsets=[-1])

    def test_due_date_needs_exactly_one_rule(self):
        """Either a day of month or last-day-of-month."""
        with pytest.raises(PydanticValidationError):
            DueDateSpec()
        with pytest.raises(PydanticValidationError):
            DueDateSpec(day_of_month=5, last_day_of_month=True)
        assert DueDateSpec(day_of_month=31).day_of_month == 31

    def test_allocation_month_is_normalized(self):
        """Any date or datetime becomes the first of its month."""
        cid = uuid4()
        from_date = CategoryMonthlyAllocation(category_id=cid, month=date(2024, 2, 17))
        from_datetime = CategoryMonthlyAllocation(category_id=cid, month=datetime(2024, 2, 29, 23, 59))
        assert from_date.month == date(2024, 2, 1)
        assert from_datetime.month == date(2024, 2, 1)
        assert from_date.key == from_datetime.key

    def test_allocation_total_available(self):
        allocation = CategoryMonthlyAllocation(
            category_id=uuid4(),
            month=date(2024, 3, 1),
            assigned_amount=Decimal("100"),
            rolled_over=Decimal("25"),
        )
        assert allocation.total_available(Decimal("40")) == Decimal("85")

    def test_ready_to_assign_status(self):
        """Zero is the goal; negative is a warning."""
        done = ReadyToAssignSummary(value=Decimal("0"), total_balances=Decimal("10"), total_assigned=Decimal("10"))
        left = ReadyToAssignSummary(value=Decimal("5"), total_balances=Decimal("10"), total_assigned=Decimal("5"))
        over = ReadyToAssignSummary(value=Decimal("-5"), total_balances=Decimal("10"), total_assigned=Decimal("15"))
        assert done.status is ReadyToAssignStatus.FULLY_ASSIGNED
        assert left.status is ReadyToAssignStatus.UNASSIGNED
        assert over.status is ReadyToAssignStatus.OVER_ASSIGNED
        assert over.is_warning and not done.is_warning

    def test_comparison_with_zero_budget(self):
        """Nothing budgeted means 0% used, never a division error."""
        comparison = CategoryComparison(
            category_id=uuid4(),
            category_name="Fun",
            category_color="#FF0000",
            budgeted=Decimal("0"),
            actual=Decimal("12"),
        )
        assert comparison.percentage_used == Decimal("0")
        assert comparison.is_over_budget
        assert comparison.difference == Decimal("-12")

    def test_comparison_percentages(self):
        comparison = CategoryComparison(
            category_id=uuid4(),
            category_name="Food",
            category_color="#00FF00",
            budgeted=Decimal("200"),
            actual=Decimal("50"),
        )
        assert comparison.percentage_used == Decimal("0.25")
        assert comparison.percentage_remaining == Decimal("0.75")
        assert not comparison.is_over_budget


class TestImportModels:
    """Tests for import mapping and results."""

    def test_mapping_from_roles(self):
        mapping = ImportColumnMapping.from_roles({
            "Date": ColumnRole.DATE,
            "Memo": ColumnRole.DESCRIPTION,
            "Amount": ColumnRole.AMOUNT,
        })
        assert mapping.uses_single_amount
        assert not mapping.uses_debit_credit
        assert mapping.header_for(ColumnRole.DESCRIPTION) == "Memo"
        assert mapping.as_roles()["Date"] is ColumnRole.DATE

    def test_mapping_rejects_role_used_twice(self):
        with pytest.raises(ValueError):
            ImportColumnMapping.from_roles({"A": ColumnRole.DATE, "B": ColumnRole.DATE})

    def test_result_counts_always_add_up(self):
        result = ImportResult()
        result.record_success(uuid4())
        result.record_failure("Row 2: invalid date 'x'")
        result.record_failure("Row 3: duplicate", duplicate=True)
        assert result.total_rows == 3
        assert result.success_count + result.failure_count == result.total_rows
        assert result.duplicate_count == 1
        assert "Imported 1 of 3 rows." in result.summary()


class TestQueryModels:

    def test_custom_range_needs_both_ends(self):
        with pytest.raises(PydanticValidationError):
            TransactionFilter(date_range=DateRangePreset.CUSTOM, custom_start=date(2024, 1, 1))

    def test_default_filter_is_inactive(self):
        assert not TransactionFilter().is_active
        assert TransactionFilter(uncategorized_only=True).is_active


class TestValidationModels:
    """Tests for validation models."""

    def test_validation_result_has_errors(self):
        """Test has_errors property."""
        result = ValidationResult(
            subject="transaction",
            issues=[
                ValidationIssue(
                    field="amount",
                    issue_type="invalid_value",
                    message="Amount must be greater than zero",
                    severity="error",
                ),
                ValidationIssue(
                    field="date",
                    issue_type="future_date",
                    message="Date is far ahead",
                    severity="warning",
                ),
            ],
        )
        assert result.has_errors
        assert not result.is_valid
        assert result.error_count == 1
        assert result.warnings == ["Date is far ahead"]
        assert result.first_error.field == "amount"

    def test_severity_is_restricted(self):
        with pytest.raises(PydanticValidationError):
            ValidationIssue(field="x", issue_type="y", message="z", severity="fatal")


class TestAuditModels:
    """Tests for audit models."""

    def test_audit_event_creation(self):
        """Test AuditEvent creation."""
        event = AuditEvent(
            event_type=AuditEventType.TRANSACTION_RECORDED,
            description="Recorded expense of 10",
        )
        assert event.event_id is not None
        assert event.timestamp is not None
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEvent(
            event_type=AuditEventType.CATEGORY_ASSIGNED,
            description="Assigned 50 to Rent",
            details={"amount": "50"},
        )
        log_dict = event.to_log_dict()
        assert log_dict["event_type"] == "category_assigned"
        assert log_dict["details"]["amount"] == "50"

    def test_audit_event_to_sheets_row(self):
        """Test conversion to sheets row."""
        event = AuditEvent(
            event_type=AuditEventType.UNDO_APPLIED,
            description="Undone",
        )
        row = event.to_sheets_row()
        assert len(row) == 11
        assert row[2] == "undo_applied"

    def test_account_deleted_with_balance_is_warning(self):
        """Deleting an account that still holds money is flagged."""
        flagged = AuditEventBuilder.account_deleted(uuid4(), "120.00", "unlink", 3)
        quiet = AuditEventBuilder.account_deleted(uuid4(), "0", "cascade", 0)
        assert flagged.severity is AuditSeverity.WARNING
        assert quiet.severity is AuditSeverity.INFO

    def test_negative_ready_to_assign_is_warning(self):
        event = AuditEventBuilder.ready_to_assign_negative("-500")
        assert event.severity is AuditSeverity.WARNING
        assert event.details["ready_to_assign"] == "-500"

    def test_invariant_violation_is_critical(self):
        event = AuditEventBuilder.invariant_violation(uuid4(), "balance mismatch")
        assert event.severity is AuditSeverity.CRITICAL
