"""
Input Validation

DESIGN DECISION: Every mutating entry point validates its input first and
rejects the whole request before touching any state. Validation runs in
two stages, same as everywhere else in the codebase:

STAGE 1 - SCHEMA VALIDATION:
- Required values present
- Lengths and formats

STAGE 2 - SEMANTIC VALIDATION:
- Business rules (amounts > 0, income is never budgeted,
  negative assignment needs an override, mapping combinations)

IMPORTANT: Validation NEVER silently fixes issues.
It reports them and the caller raises.
"""

from datetime import date, timedelta
from decimal import Decimal
from typing import Optional

from zerobudget.config import BudgetSettings, get_settings
from zerobudget.errors import ValidationError
from zerobudget.models.budget import BudgetCategory
from zerobudget.models.importing import ImportColumnMapping
from zerobudget.models.ledger import Account, Transaction
from zerobudget.models.validation import ValidationIssue, ValidationResult


MAX_NAME_LENGTH = 50
MAX_DESCRIPTION_LENGTH = 200


def _error(field: str, issue_type: str, message: str, fix: Optional[str] = None) -> ValidationIssue:
    return ValidationIssue(
        field=field,
        issue_type=issue_type,
        message=message,
        severity="error",
        suggested_fix=fix,
    )


def _warning(field: str, issue_type: str, message: str, fix: Optional[str] = None) -> ValidationIssue:
    return ValidationIssue(
        field=field,
        issue_type=issue_type,
        message=message,
        severity="warning",
        suggested_fix=fix,
    )


class LedgerValidator:
    """
    Validates ledger, budget and import inputs.

    All methods are pure: they build a ValidationResult and never mutate.
    `require()` turns a result with errors into a ValidationError.
    """

    def __init__(self, settings: Optional[BudgetSettings] = None):
        self._settings = settings or get_settings().budget

    @staticmethod
    def require(result: ValidationResult) -> ValidationResult:
        """Raise ValidationError if the result has any error-level issue."""
        if result.has_errors:
            raise ValidationError.from_issues(result.issues)
        return result

    # -------------------------------------------------------------------------
    # Names
    # -------------------------------------------------------------------------

    def _check_name(self, field: str, name: str, label: str) -> list[ValidationIssue]:
        trimmed = (name or "").strip()
        if not trimmed:
            return [_error(field, "missing", f"{label} name cannot be empty")]
        if len(trimmed) > MAX_NAME_LENGTH:
            return [_error(
                field,
                "too_long",
                f"{label} name must be {MAX_NAME_LENGTH} characters or less",
            )]
        return []

    def validate_name(self, name: str, label: str) -> ValidationResult:
        """Checked before a model is built, so a bad name never reaches pydantic."""
        return ValidationResult(
            subject=label.lower(),
            issues=self._check_name("name", name, label),
        )

    def validate_account(self, account: Account) -> ValidationResult:
        return ValidationResult(
            subject="account",
            issues=self._check_name("name", account.name, "Account"),
        )

    def validate_category(self, category: BudgetCategory) -> ValidationResult:
        issues = self._check_name("name", category.name, "Category")
        if category.is_income and category.assigned_amount != 0:
            issues.append(_error(
                "assigned_amount",
                "income_budgeted",
                "Income categories cannot have money assigned",
                "Log income as transactions instead",
            ))
        if category.is_income and category.due_date is not None:
            issues.append(_warning(
                "due_date",
                "ignored",
                "Due dates on income categories are ignored",
            ))
        return ValidationResult(subject="category", issues=issues)

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    def validate_transaction(
        self,
        transaction: Transaction,
        today: Optional[date] = None,
    ) -> ValidationResult:
        """
        Stage 1: description and amount presence.
        Stage 2: amount range and date sanity (warnings only for dates).
        """
        issues = []

        description = transaction.description.strip()
        if not description:
            issues.append(_error(
                "description",
                "missing",
                "Description cannot be empty",
            ))
        elif len(description) > MAX_DESCRIPTION_LENGTH:
            issues.append(_error(
                "description",
                "too_long",
                f"Description must be {MAX_DESCRIPTION_LENGTH} characters or less",
            ))

        if transaction.amount <= 0:
            issues.append(_error(
                "amount",
                "invalid_value",
                "Amount must be greater than zero",
                "Record the size of the movement and pick income or expense",
            ))
        elif transaction.amount > self._settings.max_transaction_amount:
            issues.append(_error(
                "amount",
                "out_of_range",
                "Amount exceeds maximum allowed value",
            ))

        # Stage 2 only if the basics are fine
        if not any(i.severity == "error" for i in issues):
            today = today or date.today()
            if transaction.date > today + timedelta(days=365):
                issues.append(_warning(
                    "date",
                    "future_date",
                    f"Transaction date ({transaction.date}) is more than a year ahead",
                    "Please verify the date is correct",
                ))

        return ValidationResult(subject="transaction", issues=issues)

    # -------------------------------------------------------------------------
    # Assignment
    # -------------------------------------------------------------------------

    def validate_assignment(
        self,
        category: BudgetCategory,
        new_amount: Decimal,
        allow_negative: bool = False,
    ) -> ValidationResult:
        issues = []
        if category.is_income:
            issues.append(_error(
                "category",
                "income_budgeted",
                f"'{category.name}' is an income category and cannot be budgeted",
                "Log income as transactions instead",
            ))
        if new_amount < 0 and not (allow_negative or self._settings.allow_negative_assignments):
            issues.append(_error(
                "amount",
                "negative_assignment",
                f"Assignment to '{category.name}' would be negative ({new_amount})",
                "Pass allow_negative=True to assign a negative amount on purpose",
            ))
        return ValidationResult(subject="assignment", issues=issues)

    # -------------------------------------------------------------------------
    # Statement import
    # -------------------------------------------------------------------------

    def validate_column_mapping(
        self,
        mapping: ImportColumnMapping,
        headers: list[str],
        account: Optional[Account],
    ) -> ValidationResult:
        """
        Pre-conversion validation. Any error here rejects the whole batch.
        """
        issues = []

        if not mapping.date:
            issues.append(_error("date", "missing", "Date column is required"))
        if not mapping.description:
            issues.append(_error("description", "missing", "Description column is required"))
        if not (mapping.uses_single_amount or mapping.uses_debit_credit):
            issues.append(_error(
                "amount",
                "missing",
                "You must map either a single Amount column OR both Debit and Credit columns",
            ))
        if account is None:
            issues.append(_error(
                "account",
                "missing",
                "Please select an account to import into",
            ))

        known = set(headers)
        for header, role in mapping.as_roles().items():
            if header not in known:
                issues.append(_error(
                    role.value,
                    "unknown_column",
                    f"Column '{header}' mapped to {role.value} is not in the file",
                ))

        if mapping.uses_single_amount and (mapping.debit or mapping.credit):
            issues.append(_warning(
                "amount",
                "ignored",
                "A single Amount column is mapped; Debit/Credit columns will be ignored",
            ))

        return ValidationResult(subject="column_mapping", issues=issues)

    # -------------------------------------------------------------------------

    def get_user_friendly_summary(self, result: ValidationResult) -> str:
        """Short text for the presentation layer."""
        if result.is_valid and not result.warnings:
            return "All checks passed."

        lines = []
        if result.has_errors:
            lines.append("Please fix the following:")
            for issue in result.issues:
                if issue.severity == "error":
                    lines.append(f"   - {issue.message}")
                    if issue.suggested_fix:
                        lines.append(f"     ({issue.suggested_fix})")

        if result.warnings:
            if lines:
                lines.append("")
            lines.append("Please verify:")
            for warning in result.warnings:
                lines.append(f"   - {warning}")

        return "\n".join(lines)
