"""
Statement Import Models

A bank statement arrives as a header row plus data rows of strings.
The caller confirms which header plays which role, then the reconciler
converts rows into transactions and reports an ImportResult.
"""

from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, computed_field


class ColumnRole(str, Enum):
    """Roles a statement column can play."""
    DATE = "date"
    DESCRIPTION = "description"
    DEBIT = "debit"
    CREDIT = "credit"
    AMOUNT = "amount"
    NOTES = "notes"


class ImportColumnMapping(BaseModel):
    """
    Which header holds which role.

    Any field may be None. Whether the combination is usable is decided by
    the reconciler's pre-conversion validation, not here, so that a partial
    suggestion can still be shown to the user for confirmation.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    date: Optional[str] = None
    description: Optional[str] = None
    debit: Optional[str] = None
    credit: Optional[str] = None
    amount: Optional[str] = None
    notes: Optional[str] = None

    @classmethod
    def from_roles(cls, roles: dict[str, ColumnRole]) -> 'ImportColumnMapping':
        """Build from a {header: role} dict."""
        fields: dict[str, str] = {}
        for header, role in roles.items():
            role = ColumnRole(role)
            if role.value in fields:
                raise ValueError(
                    f"Role '{role.value}' is mapped to both "
                    f"'{fields[role.value]}' and '{header}'"
                )
            fields[role.value] = header
        return cls(**fields)

    def as_roles(self) -> dict[str, ColumnRole]:
        """Return the {header: role} view of this mapping."""
        roles = {}
        for role in ColumnRole:
            header = getattr(self, role.value)
            if header:
                roles[header] = role
        return roles

    def header_for(self, role: ColumnRole) -> Optional[str]:
        return getattr(self, role.value) or None

    @property
    def uses_single_amount(self) -> bool:
        return bool(self.amount)

    @property
    def uses_debit_credit(self) -> bool:
        return bool(self.debit) and bool(self.credit)


class ImportResult(BaseModel):
    """
    Outcome of one import batch.

    INVARIANT: success_count + failure_count == total rows attempted.
    Errors are ordered and addressed by row number ("Row N: ...").
    """

    success_count: int = Field(default=0, ge=0)
    failure_count: int = Field(default=0, ge=0)
    duplicate_count: int = Field(default=0, ge=0)
    errors: list[str] = Field(default_factory=list)
    imported_transaction_ids: list[UUID] = Field(default_factory=list)

    @computed_field
    @property
    def total_rows(self) -> int:
        return self.success_count + self.failure_count

    @property
    def has_errors(self) -> bool:
        return self.failure_count > 0

    def record_success(self, transaction_id: UUID) -> None:
        self.success_count += 1
        self.imported_transaction_ids.append(transaction_id)

    def record_failure(self, message: str, duplicate: bool = False) -> None:
        self.failure_count += 1
        self.errors.append(message)
        if duplicate:
            self.duplicate_count += 1

    def summary(self) -> str:
        lines = [f"Imported {self.success_count} of {self.total_rows} rows."]
        if self.duplicate_count:
            lines.append(f"{self.duplicate_count} duplicate rows were skipped.")
        if self.failure_count:
            lines.append(f"{self.failure_count} rows could not be imported.")
        return "\n".join(lines)
