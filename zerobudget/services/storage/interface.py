"""
Abstract Storage Interface

DESIGN DECISION: The budget core keeps an in-memory authoritative working
set and delegates durability to a storage backend behind this interface.
This allows us to:
1. Use Google Sheets today and a real database later
2. Use in-memory storage for tests and local sessions
3. Keep business logic decoupled from storage

DESIGN DECISION: Storage methods either succeed or raise StorageError.
There is no "returns False on failure": a save that did not happen must
never look like one that did.
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import Optional
from uuid import UUID

from zerobudget.models.audit import AuditEvent
from zerobudget.models.budget import BudgetCategory, CategoryMonthlyAllocation
from zerobudget.models.ledger import Account, Transaction


class BudgetStorageInterface(ABC):
    """
    Durable CRUD for accounts, transactions, categories and allocations.

    Saves are upserts keyed by id (allocations by category id + month).
    """

    # Accounts

    @abstractmethod
    async def save_account(self, account: Account) -> None:
        """
        Insert or replace an account.

        Raises:
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def delete_account(self, account_id: UUID) -> None:
        """
        Raises:
            RecordNotFoundError: If the account is not stored
        """
        pass

    @abstractmethod
    async def list_accounts(self) -> list[Account]:
        pass

    # Transactions

    @abstractmethod
    async def save_transaction(self, transaction: Transaction) -> None:
        pass

    async def save_transactions(self, transactions: list[Transaction]) -> None:
        """Save several transactions. Backends may override with a batch write."""
        for transaction in transactions:
            await self.save_transaction(transaction)

    @abstractmethod
    async def delete_transaction(self, transaction_id: UUID) -> None:
        """
        Raises:
            RecordNotFoundError: If the transaction is not stored
        """
        pass

    @abstractmethod
    async def list_transactions(self) -> list[Transaction]:
        """All transactions in the order they were first saved."""
        pass

    # Categories

    @abstractmethod
    async def save_category(self, category: BudgetCategory) -> None:
        pass

    @abstractmethod
    async def delete_category(self, category_id: UUID) -> None:
        pass

    @abstractmethod
    async def list_categories(self) -> list[BudgetCategory]:
        pass

    # Monthly allocations

    @abstractmethod
    async def save_allocation(self, allocation: CategoryMonthlyAllocation) -> None:
        """Upsert keyed by (category_id, first-of-month)."""
        pass

    @abstractmethod
    async def list_allocations(
        self,
        month: Optional[date] = None,
    ) -> list[CategoryMonthlyAllocation]:
        pass

    @abstractmethod
    async def delete_allocations(self, category_id: UUID) -> None:
        """Remove every allocation of a category."""
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> None:
        """
        Append an audit event to the log.

        Raises:
            StorageError: If the event could not be written
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events of one command, in chronological order.
        """
        pass

    @abstractmethod
    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a specific entity, in chronological order.
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events (newest first).
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class RecordNotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
