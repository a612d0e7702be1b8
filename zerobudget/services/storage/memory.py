"""
In-memory storage.

Dict-backed implementations of the storage interfaces for tests and
throwaway sessions. Same contract as the durable backends: unknown ids on
delete raise RecordNotFoundError.
"""

from datetime import date
from typing import Optional
from uuid import UUID

from zerobudget.models.audit import AuditEvent
from zerobudget.models.budget import (
    BudgetCategory,
    CategoryMonthlyAllocation,
    first_of_month,
)
from zerobudget.models.ledger import Account, Transaction
from zerobudget.services.storage.interface import (
    AuditStorageInterface,
    BudgetStorageInterface,
    RecordNotFoundError,
)


class InMemoryBudgetStorage(BudgetStorageInterface):

    def __init__(self):
        self.accounts: dict[UUID, Account] = {}
        self.transactions: dict[UUID, Transaction] = {}
        self.categories: dict[UUID, BudgetCategory] = {}
        self.allocations: dict[tuple[UUID, date], CategoryMonthlyAllocation] = {}

    @staticmethod
    def _remove(table: dict, key, entity_type: str) -> None:
        if key not in table:
            raise RecordNotFoundError(f"{entity_type} {key} not found")
        del table[key]

    async def save_account(self, account: Account) -> None:
        self.accounts[account.id] = account

    async def delete_account(self, account_id: UUID) -> None:
        self._remove(self.accounts, account_id, "account")

    async def list_accounts(self) -> list[Account]:
        return list(self.accounts.values())

    async def save_transaction(self, transaction: Transaction) -> None:
        self.transactions[transaction.id] = transaction

    async def delete_transaction(self, transaction_id: UUID) -> None:
        self._remove(self.transactions, transaction_id, "transaction")

    async def list_transactions(self) -> list[Transaction]:
        return list(self.transactions.values())

    async def save_category(self, category: BudgetCategory) -> None:
        self.categories[category.id] = category

    async def delete_category(self, category_id: UUID) -> None:
        self._remove(self.categories, category_id, "category")

    async def list_categories(self) -> list[BudgetCategory]:
        return list(self.categories.values())

    async def save_allocation(self, allocation: CategoryMonthlyAllocation) -> None:
        self.allocations[allocation.key] = allocation

    async def list_allocations(
        self,
        month: Optional[date] = None,
    ) -> list[CategoryMonthlyAllocation]:
        allocations = list(self.allocations.values())
        if month is not None:
            month = first_of_month(month)
            allocations = [a for a in allocations if a.month == month]
        return allocations

    async def delete_allocations(self, category_id: UUID) -> None:
        for key in [k for k in self.allocations if k[0] == category_id]:
            del self.allocations[key]


class InMemoryAuditStorage(AuditStorageInterface):

    def __init__(self):
        self.events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> None:
        self.events.append(event)

    async def get_events_by_correlation_id(self, correlation_id: UUID) -> list[AuditEvent]:
        return [e for e in self.events if e.correlation_id == correlation_id]

    async def get_events_by_entity(self, entity_type: str, entity_id: UUID) -> list[AuditEvent]:
        return [
            e for e in self.events
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        return list(reversed(self.events))[:limit]
