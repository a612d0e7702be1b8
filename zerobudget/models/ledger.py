"""
Ledger Models: Accounts and Transactions

These models define the strict schemas for the money that actually exists.

DESIGN DECISION: Models are frozen. Balance-bearing fields can only change
through the Ledger Store, which replaces the model instance with an updated
copy. Nothing outside the store can write `account.balance = ...`.

Amounts are always Decimal. There is no float anywhere in the ledger.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field


def utc_now() -> datetime:
    """Timezone-aware current time in UTC."""
    return datetime.now(timezone.utc)


class TransactionKind(str, Enum):
    """
    Direction of a transaction.

    Amounts are stored as non-negative magnitudes; the kind gives the sign.
    """
    INCOME = "income"
    EXPENSE = "expense"

    @property
    def sign(self) -> int:
        return 1 if self is TransactionKind.INCOME else -1


class AccountType(str, Enum):
    """Kinds of real-world accounts."""
    CHECKING = "checking"
    SAVINGS = "savings"
    CASH = "cash"
    CREDIT_CARD = "credit_card"
    OTHER = "other"


class Account(BaseModel):
    """
    A real-world account holding money that exists TODAY.

    INVARIANT: balance == starting_balance + sum(signed amounts of linked transactions)
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    name: str = Field(
        ...,
        min_length=1,
        max_length=50,
        description="Account name (e.g. 'Main Checking')"
    )
    starting_balance: Decimal = Field(
        default=Decimal("0"),
        description="Baseline at ledger inception (can be negative for debt)"
    )
    balance: Decimal = Field(
        default=Decimal("0"),
        description="Current balance, maintained by the Ledger Store"
    )
    account_type: AccountType = AccountType.CHECKING
    created_at: datetime = Field(default_factory=utc_now)
    notes: Optional[str] = Field(default=None, max_length=500)


class Transaction(BaseModel):
    """
    A single movement of money.

    Created by manual entry or statement import. Edited via
    reverse-then-reapply and deleted via reverse-then-remove,
    both inside the Ledger Store.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    date: date
    amount: Decimal = Field(
        ...,
        ge=0,
        description="Non-negative magnitude; the kind carries the sign"
    )
    kind: TransactionKind
    description: str = Field(..., max_length=200)
    category_id: Optional[UUID] = None
    account_id: Optional[UUID] = None
    notes: Optional[str] = Field(default=None, max_length=1000)
    created_at: datetime = Field(default_factory=utc_now)

    @property
    def signed_amount(self) -> Decimal:
        """Effect of this transaction on its account balance."""
        return self.amount * self.kind.sign

    @property
    def is_income(self) -> bool:
        return self.kind is TransactionKind.INCOME

    @property
    def is_expense(self) -> bool:
        return self.kind is TransactionKind.EXPENSE

    def duplicate_key(self) -> tuple[date, Decimal, str]:
        """Identity used by statement import to spot duplicates."""
        return (self.date, self.amount, self.description)


class RunningBalanceEntry(BaseModel):
    """One row of the net-worth running balance view."""
    model_config = ConfigDict(frozen=True)

    transaction: Transaction
    balance_after: Decimal


class AccountDeletion(BaseModel):
    """
    Outcome of deleting an account.

    `unlinked` transactions were kept with their account link cleared;
    `deleted` transactions were removed together with the account.
    """
    model_config = ConfigDict(frozen=True)

    account: Account
    policy: str
    unlinked: list[Transaction] = Field(default_factory=list)
    deleted: list[Transaction] = Field(default_factory=list)

    @property
    def had_balance(self) -> bool:
        return self.account.balance != 0
