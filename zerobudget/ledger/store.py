"""
Ledger Store

Owns accounts and transactions, and is the ONLY place account balances change.

INVARIANT: for every account,
    balance == starting_balance + sum(signed amounts of linked transactions)

DESIGN DECISION: All balance-affecting operations run under one re-entrant
lock per store. An edit computes the new balances of every affected account
first and commits them together, so no caller can observe a transaction that
has been reversed but not yet re-applied.

DESIGN DECISION: A broken invariant is a bug. It raises InvariantViolation
and is never auto-corrected.
"""

import threading
from collections.abc import Iterable
from decimal import Decimal
from typing import Optional
from uuid import UUID

from zerobudget.config import AccountDeletionPolicy, BudgetSettings, get_settings
from zerobudget.errors import InvariantViolation, NotFoundError, ValidationError
from zerobudget.models.ledger import (
    Account,
    AccountDeletion,
    AccountType,
    RunningBalanceEntry,
    Transaction,
)
from zerobudget.validation import LedgerValidator


def compute_running_balance(
    transactions: Iterable[Transaction],
    accounts: Iterable[Account],
) -> list[RunningBalanceEntry]:
    """
    Net-worth running balance across the given accounts.

    Starts from the sum of starting balances and walks the transactions
    linked to those accounts in date order. Same-day transactions keep
    their input order (sorted() is stable). The last entry therefore
    equals the sum of current balances.
    """
    accounts = list(accounts)
    account_ids = {account.id for account in accounts}
    running = sum((account.starting_balance for account in accounts), Decimal("0"))

    linked = [tx for tx in transactions if tx.account_id in account_ids]
    entries = []
    for tx in sorted(linked, key=lambda t: t.date):
        running += tx.signed_amount
        entries.append(RunningBalanceEntry(transaction=tx, balance_after=running))
    return entries


class LedgerStore:
    """
    In-memory authoritative working set of accounts and transactions.

    Durability is delegated to a storage collaborator; see BudgetSession.
    """

    def __init__(
        self,
        settings: Optional[BudgetSettings] = None,
        validator: Optional[LedgerValidator] = None,
    ):
        self._settings = settings or get_settings().budget
        self._validator = validator or LedgerValidator(self._settings)
        self._accounts: dict[UUID, Account] = {}
        self._transactions: dict[UUID, Transaction] = {}
        # Shared with the assignment ledger and the statement importer
        self.lock = threading.RLock()

    @classmethod
    def from_snapshot(
        cls,
        accounts: Iterable[Account],
        transactions: Iterable[Transaction],
        settings: Optional[BudgetSettings] = None,
    ) -> 'LedgerStore':
        """
        Rebuild a store from persisted state and verify it.

        Persisted balances are taken as-is; a mismatch with the persisted
        transactions raises InvariantViolation.
        """
        store = cls(settings=settings)
        for account in accounts:
            store._accounts[account.id] = account
        for tx in transactions:
            store._transactions[tx.id] = tx
        store.verify_invariants()
        return store

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get_account(self, account_id: UUID) -> Account:
        try:
            return self._accounts[account_id]
        except KeyError:
            raise NotFoundError("account", account_id) from None

    def list_accounts(self) -> list[Account]:
        return list(self._accounts.values())

    def get_transaction(self, transaction_id: UUID) -> Transaction:
        try:
            return self._transactions[transaction_id]
        except KeyError:
            raise NotFoundError("transaction", transaction_id) from None

    def list_transactions(self) -> list[Transaction]:
        """All transactions in the order they were recorded."""
        return list(self._transactions.values())

    def transactions_for_account(self, account_id: UUID) -> list[Transaction]:
        return [tx for tx in self._transactions.values() if tx.account_id == account_id]

    def transactions_for_category(self, category_id: UUID) -> list[Transaction]:
        return [tx for tx in self._transactions.values() if tx.category_id == category_id]

    def total_balance(self) -> Decimal:
        return sum((a.balance for a in self._accounts.values()), Decimal("0"))

    def running_balance(self) -> list[RunningBalanceEntry]:
        with self.lock:
            return compute_running_balance(self.list_transactions(), self.list_accounts())

    # -------------------------------------------------------------------------
    # Accounts
    # -------------------------------------------------------------------------

    def add_account(
        self,
        name: str,
        starting_balance: Decimal = Decimal("0"),
        account_type: AccountType = AccountType.CHECKING,
        notes: Optional[str] = None,
    ) -> Account:
        """Create an account. Its balance starts at the starting balance."""
        self._validator.require(self._validator.validate_name(name, "Account"))
        account = Account(
            name=name,
            starting_balance=starting_balance,
            balance=starting_balance,
            account_type=account_type,
            notes=notes,
        )
        self._validator.require(self._validator.validate_account(account))

        with self.lock:
            self._accounts[account.id] = account
        return account

    def delete_account(
        self,
        account_id: UUID,
        policy: Optional[AccountDeletionPolicy] = None,
    ) -> AccountDeletion:
        """
        Delete an account under an explicit policy.

        UNLINK keeps the account's transactions and clears their account link.
        CASCADE removes them. Other accounts are never touched either way.
        """
        policy = policy or self._settings.account_deletion_policy

        with self.lock:
            account = self.get_account(account_id)
            linked = self.transactions_for_account(account_id)

            unlinked, deleted = [], []
            if policy is AccountDeletionPolicy.CASCADE:
                for tx in linked:
                    del self._transactions[tx.id]
                deleted = linked
            else:
                for tx in linked:
                    updated = tx.model_copy(update={"account_id": None})
                    self._transactions[tx.id] = updated
                    unlinked.append(updated)

            del self._accounts[account_id]
            self._check()

        return AccountDeletion(
            account=account,
            policy=policy.value,
            unlinked=unlinked,
            deleted=deleted,
        )

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    def _validate(self, transaction: Transaction) -> None:
        self._validator.require(self._validator.validate_transaction(transaction))
        if transaction.account_id is not None:
            self.get_account(transaction.account_id)

    def _apply(
        self,
        balances: dict[UUID, Decimal],
        transaction: Transaction,
        direction: int,
    ) -> None:
        """Add (direction=1) or reverse (direction=-1) a transaction's effect."""
        if transaction.account_id is None:
            return
        account_id = transaction.account_id
        current = balances.get(account_id, self._accounts[account_id].balance)
        balances[account_id] = current + direction * transaction.signed_amount

    def _commit(self, balances: dict[UUID, Decimal]) -> None:
        for account_id, balance in balances.items():
            self._accounts[account_id] = self._accounts[account_id].model_copy(
                update={"balance": balance}
            )

    def record_transaction(
        self,
        transaction: Transaction,
        account_id: Optional[UUID] = None,
    ) -> Transaction:
        """
        Record a new transaction and apply its signed effect to its account.

        `account_id`, when given, links the transaction to that account.
        Statement import goes through here too.
        """
        if account_id is not None:
            transaction = transaction.model_copy(update={"account_id": account_id})

        with self.lock:
            if transaction.id in self._transactions:
                raise ValidationError(f"Transaction {transaction.id} is already recorded")
            self._validate(transaction)

            balances: dict[UUID, Decimal] = {}
            self._apply(balances, transaction, 1)
            self._transactions[transaction.id] = transaction
            self._commit(balances)
            self._check()

        return transaction

    def edit_transaction(
        self,
        transaction_id: UUID,
        updated: Transaction,
    ) -> tuple[Transaction, Transaction]:
        """
        Replace a transaction: reverse the old effect, apply the new one.

        The new version may move to a different account. Both balance changes
        are committed together. Returns (old, new).
        """
        with self.lock:
            old = self.get_transaction(transaction_id)
            new = updated.model_copy(
                update={"id": old.id, "created_at": old.created_at}
            )
            self._validate(new)

            balances: dict[UUID, Decimal] = {}
            self._apply(balances, old, -1)
            self._apply(balances, new, 1)

            self._transactions[old.id] = new
            self._commit(balances)
            self._check()

        return old, new

    def delete_transaction(self, transaction_id: UUID) -> Transaction:
        """Reverse a transaction's effect, then remove it."""
        with self.lock:
            tx = self.get_transaction(transaction_id)

            balances: dict[UUID, Decimal] = {}
            self._apply(balances, tx, -1)
            del self._transactions[transaction_id]
            self._commit(balances)
            self._check()

        return tx

    def clear_category(self, category_id: UUID) -> list[Transaction]:
        """Make every transaction of a category uncategorized. Balances are unaffected."""
        with self.lock:
            cleared = []
            for tx in self.transactions_for_category(category_id):
                updated = tx.model_copy(update={"category_id": None})
                self._transactions[tx.id] = updated
                cleared.append(updated)
        return cleared

    # -------------------------------------------------------------------------
    # Invariants
    # -------------------------------------------------------------------------

    def _check(self) -> None:
        if self._settings.verify_invariants:
            self.verify_invariants()

    def expected_balance(self, account_id: UUID) -> Decimal:
        account = self.get_account(account_id)
        return account.starting_balance + sum(
            (tx.signed_amount for tx in self.transactions_for_account(account_id)),
            Decimal("0"),
        )

    def verify_invariants(self) -> None:
        """
        Check every account balance against its transactions.

        Raises:
            InvariantViolation: listing every account that does not match
        """
        with self.lock:
            mismatches = []
            for account in self._accounts.values():
                expected = self.expected_balance(account.id)
                if account.balance != expected:
                    mismatches.append(
                        f"{account.name} ({account.id}): balance {account.balance}, "
                        f"expected {expected}"
                    )
            orphans = [
                tx.id for tx in self._transactions.values()
                if tx.account_id is not None and tx.account_id not in self._accounts
            ]
            if orphans:
                mismatches.append(f"transactions linked to unknown accounts: {orphans}")

        if mismatches:
            raise InvariantViolation("; ".join(mismatches))
