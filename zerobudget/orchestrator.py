"""
Budget Session Orchestrator

Ties the core components to their collaborators and defines the
end-to-end flow of every user command:

1. Run the core operation (synchronous, under the ledger lock)
2. Persist every entity it changed through the storage interface
3. Write the audit events
4. Return the result

DESIGN DECISION: The orchestrator enforces the boundaries:
- The core operations are the only way anything changes
- A storage or audit failure propagates to the caller; nothing is
  reported as saved unless it was
- Over-assignment is audited as a warning and never blocks a command
- An invariant violation is audited as critical and re-raised
- A notification scheduler failure is audited as a system error and
  re-raised
"""

from collections.abc import Awaitable, Callable
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional, TypeVar
from uuid import UUID

from zerobudget.audit import AuditLogger, create_correlation_id
from zerobudget.budget import BudgetAssignmentLedger, build_reminder_request
from zerobudget.config import (
    AccountDeletionPolicy,
    BudgetSettings,
    FormatSettings,
    get_settings,
)
from zerobudget.errors import (
    InvariantViolation,
    UndoAlreadyAppliedError,
    UndoExpiredError,
    ValidationError,
)
from zerobudget.importing import StatementImportReconciler, parse_statement_csv
from zerobudget.ledger import LedgerStore
from zerobudget.models.audit import AuditEventBuilder, AuditEventType
from zerobudget.models.budget import (
    BudgetCategory,
    CategoryMonthlyAllocation,
    CategoryType,
    DueDateSpec,
    ReadyToAssignSummary,
    ReconciliationReport,
    ReminderRequest,
    UndoAction,
)
from zerobudget.models.importing import ImportColumnMapping, ImportResult
from zerobudget.models.ledger import (
    Account,
    AccountDeletion,
    AccountType,
    RunningBalanceEntry,
    Transaction,
)
from zerobudget.models.queries import TransactionFilter
from zerobudget.queries import TransactionQueryExecutor
from zerobudget.reconciliation import CategoryReconciliationEngine
from zerobudget.services.notifications import NotificationSchedulerInterface
from zerobudget.services.storage import (
    BudgetStorageInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsBudgetStorage,
    GoogleSheetsClient,
    InMemoryAuditStorage,
    InMemoryBudgetStorage,
)


T = TypeVar("T")


class BudgetSession:
    """
    One user's budget: the in-memory working set plus its collaborators.

    All commands are async because persistence and audit are. Reads are
    synchronous and come straight from the working set.
    """

    def __init__(
        self,
        storage: BudgetStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
        scheduler: Optional[NotificationSchedulerInterface] = None,
        budget_settings: Optional[BudgetSettings] = None,
        format_settings: Optional[FormatSettings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._storage = storage
        self._audit_logger = audit_logger or AuditLogger()  # Local-only logging
        self._scheduler = scheduler
        self._budget_settings = budget_settings or get_settings().budget
        self._format_settings = format_settings or get_settings().formatting
        self._clock = clock
        self._wire(LedgerStore(settings=self._budget_settings))

    def _wire(self, store: LedgerStore) -> None:
        self.store = store
        budget_kwargs = {"settings": self._budget_settings}
        if self._clock is not None:
            budget_kwargs["clock"] = self._clock
        self.budget = BudgetAssignmentLedger(store, **budget_kwargs)
        self.reconciliation = CategoryReconciliationEngine(store, self.budget)
        self.importer = StatementImportReconciler(
            store,
            format_settings=self._format_settings,
            budget_settings=self._budget_settings,
        )
        self.queries = TransactionQueryExecutor(store)

    async def load(self) -> None:
        """
        Replace the working set with what storage holds.

        Raises:
            InvariantViolation: if stored balances do not match stored transactions
        """
        accounts = await self._storage.list_accounts()
        transactions = await self._storage.list_transactions()
        categories = await self._storage.list_categories()
        allocations = await self._storage.list_allocations()

        try:
            store = LedgerStore.from_snapshot(
                accounts, transactions, settings=self._budget_settings
            )
        except InvariantViolation as e:
            await self._audit_logger.log(
                AuditEventBuilder.invariant_violation(entity_id=None, error_message=str(e))
            )
            raise

        self._wire(store)
        self.budget.load(categories, allocations)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    async def _core(self, operation: Callable[..., T], *args, correlation_id: UUID, **kwargs) -> T:
        """Run a core operation; invariant violations are audited, then re-raised."""
        try:
            return operation(*args, **kwargs)
        except InvariantViolation as e:
            await self._audit_logger.log(AuditEventBuilder.invariant_violation(
                entity_id=None,
                error_message=str(e),
                correlation_id=correlation_id,
            ))
            raise

    async def _save_accounts(self, *account_ids: Optional[UUID]) -> None:
        for account_id in dict.fromkeys(a for a in account_ids if a is not None):
            await self._storage.save_account(self.store.get_account(account_id))

    async def _check_ready_to_assign(self, correlation_id: UUID) -> ReadyToAssignSummary:
        summary = self.budget.ready_to_assign_summary()
        await self._audit_logger.log_ready_to_assign(summary, correlation_id)
        return summary

    async def _persist_assignment(self, action: UndoAction) -> None:
        for change in action.changes:
            await self._storage.save_category(self.budget.get_category(change.category_id))
            await self._storage.save_allocation(
                self.budget.get_allocation(change.category_id, change.month)
            )

    async def _call_scheduler(
        self,
        call: Callable[..., Awaitable[None]],
        argument: Any,
        category_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """A scheduler failure is audited as a system error, then re-raised."""
        try:
            await call(argument)
        except Exception as e:
            await self._audit_logger.log_error(
                error_type="reminder_scheduling_failed",
                error_message=str(e),
                details={"category_id": str(category_id), "operation": call.__name__},
                correlation_id=correlation_id,
            )
            raise

    async def _schedule(self, category: BudgetCategory, correlation_id: UUID) -> None:
        if self._scheduler is None:
            return
        if category.due_date is None or category.is_income:
            await self._call_scheduler(
                self._scheduler.cancel, category.id, category.id, correlation_id
            )
        else:
            await self._call_scheduler(
                self._scheduler.schedule,
                build_reminder_request(category, self.budget.current_month()),
                category.id,
                correlation_id,
            )

    # -------------------------------------------------------------------------
    # Accounts
    # -------------------------------------------------------------------------

    async def add_account(
        self,
        name: str,
        starting_balance: Decimal = Decimal("0"),
        account_type: AccountType = AccountType.CHECKING,
        notes: Optional[str] = None,
    ) -> Account:
        correlation_id = create_correlation_id()
        account = self.store.add_account(name, starting_balance, account_type, notes)
        await self._storage.save_account(account)
        await self._audit_logger.log(AuditEventBuilder.account_created(
            account_id=account.id,
            name=account.name,
            starting_balance=str(account.starting_balance),
            correlation_id=correlation_id,
        ))
        return account

    async def delete_account(
        self,
        account_id: UUID,
        policy: Optional[AccountDeletionPolicy] = None,
    ) -> AccountDeletion:
        correlation_id = create_correlation_id()
        deletion = await self._core(
            self.store.delete_account, account_id, policy, correlation_id=correlation_id
        )

        await self._storage.save_transactions(deletion.unlinked)
        for tx in deletion.deleted:
            await self._storage.delete_transaction(tx.id)
        await self._storage.delete_account(account_id)

        await self._audit_logger.log_account_deleted(deletion, correlation_id)
        await self._check_ready_to_assign(correlation_id)
        return deletion

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    async def record_transaction(
        self,
        transaction: Transaction,
        account_id: Optional[UUID] = None,
    ) -> Transaction:
        correlation_id = create_correlation_id()
        recorded = await self._core(
            self.store.record_transaction, transaction, account_id,
            correlation_id=correlation_id,
        )
        await self._storage.save_transaction(recorded)
        await self._save_accounts(recorded.account_id)

        await self._audit_logger.log_transaction_recorded(recorded, correlation_id)
        await self._check_ready_to_assign(correlation_id)
        return recorded

    async def edit_transaction(self, transaction_id: UUID, updated: Transaction) -> Transaction:
        correlation_id = create_correlation_id()
        old, new = await self._core(
            self.store.edit_transaction, transaction_id, updated,
            correlation_id=correlation_id,
        )
        await self._storage.save_transaction(new)
        await self._save_accounts(old.account_id, new.account_id)

        await self._audit_logger.log_transaction_edited(old, new, correlation_id)
        await self._check_ready_to_assign(correlation_id)
        return new

    async def delete_transaction(self, transaction_id: UUID) -> Transaction:
        correlation_id = create_correlation_id()
        removed = await self._core(
            self.store.delete_transaction, transaction_id,
            correlation_id=correlation_id,
        )
        await self._storage.delete_transaction(removed.id)
        await self._save_accounts(removed.account_id)

        await self._audit_logger.log_transaction_deleted(removed, correlation_id)
        await self._check_ready_to_assign(correlation_id)
        return removed

    # -------------------------------------------------------------------------
    # Categories
    # -------------------------------------------------------------------------

    async def add_category(
        self,
        name: str,
        category_type: CategoryType = CategoryType.VARIABLE,
        color: Optional[str] = None,
        due_date: Optional[DueDateSpec] = None,
        reminder_offsets: Optional[list[int]] = None,
    ) -> BudgetCategory:
        correlation_id = create_correlation_id()
        category = self.budget.add_category(
            name, category_type, color, due_date, reminder_offsets
        )
        await self._storage.save_category(category)
        await self._audit_logger.log(AuditEventBuilder.category_changed(
            AuditEventType.CATEGORY_CREATED, category.id, category.name, correlation_id
        ))
        await self._schedule(category, correlation_id)
        return category

    async def update_category(self, category_id: UUID, **changes) -> BudgetCategory:
        """Keyword arguments as BudgetAssignmentLedger.update_category."""
        correlation_id = create_correlation_id()
        category = self.budget.update_category(category_id, **changes)
        await self._storage.save_category(category)
        await self._audit_logger.log(AuditEventBuilder.category_changed(
            AuditEventType.CATEGORY_UPDATED, category.id, category.name, correlation_id
        ))
        await self._schedule(category, correlation_id)
        return category

    async def delete_category(self, category_id: UUID) -> BudgetCategory:
        correlation_id = create_correlation_id()
        category, cleared = self.budget.delete_category(category_id)

        await self._storage.save_transactions(cleared)
        await self._storage.delete_allocations(category_id)
        await self._storage.delete_category(category_id)

        await self._audit_logger.log(AuditEventBuilder.category_changed(
            AuditEventType.CATEGORY_DELETED, category.id, category.name, correlation_id
        ))
        if self._scheduler is not None:
            await self._call_scheduler(
                self._scheduler.cancel, category_id, category_id, correlation_id
            )
        await self._check_ready_to_assign(correlation_id)
        return category

    # -------------------------------------------------------------------------
    # Assignment
    # -------------------------------------------------------------------------

    async def _finish_assignment(
        self,
        event_type: AuditEventType,
        action: UndoAction,
        correlation_id: UUID,
    ) -> UndoAction:
        await self._persist_assignment(action)
        await self._audit_logger.log_assignment(event_type, action, correlation_id)
        await self._check_ready_to_assign(correlation_id)
        return action

    async def assign(
        self,
        category_id: UUID,
        amount: Decimal,
        *,
        increment: bool = False,
        allow_negative: bool = False,
        month: Optional[date] = None,
    ) -> UndoAction:
        correlation_id = create_correlation_id()
        action = self.budget.assign(
            category_id,
            amount,
            increment=increment,
            allow_negative=allow_negative,
            month=month,
        )
        return await self._finish_assignment(
            AuditEventType.CATEGORY_ASSIGNED, action, correlation_id
        )

    async def quick_assign_remaining(
        self,
        category_id: UUID,
        month: Optional[date] = None,
    ) -> UndoAction:
        correlation_id = create_correlation_id()
        action = self.budget.quick_assign_remaining(category_id, month)
        return await self._finish_assignment(
            AuditEventType.QUICK_ASSIGNED, action, correlation_id
        )

    async def distribute_evenly(
        self,
        category_ids: list[UUID],
        remainder_category_id: Optional[UUID] = None,
        month: Optional[date] = None,
    ) -> UndoAction:
        correlation_id = create_correlation_id()
        action = self.budget.distribute_evenly(category_ids, remainder_category_id, month)
        return await self._finish_assignment(
            AuditEventType.DISTRIBUTED_EVENLY, action, correlation_id
        )

    async def undo(
        self,
        action: UndoAction,
        now: Optional[datetime] = None,
        enforce_expiry: bool = True,
    ) -> list[BudgetCategory]:
        correlation_id = create_correlation_id()
        try:
            restored = self.budget.undo(action, now=now, enforce_expiry=enforce_expiry)
        except (UndoExpiredError, UndoAlreadyAppliedError) as e:
            await self._audit_logger.log(AuditEventBuilder.undo_rejected(
                action.action_id, str(e), correlation_id
            ))
            raise

        await self._persist_assignment(action)
        await self._audit_logger.log(AuditEventBuilder.undo_applied(
            action.action_id, action.description, correlation_id
        ))
        await self._check_ready_to_assign(correlation_id)
        return restored

    async def roll_over_month(self, month: date) -> list[CategoryMonthlyAllocation]:
        correlation_id = create_correlation_id()
        rolled = self.budget.roll_over_month(month)
        for allocation in rolled:
            await self._storage.save_allocation(allocation)
        await self._audit_logger.log(AuditEventBuilder.month_rolled_over(
            month.isoformat(), len(rolled), correlation_id
        ))
        return rolled

    # -------------------------------------------------------------------------
    # Statement import
    # -------------------------------------------------------------------------

    async def import_statement(
        self,
        headers: list[str],
        rows: list[list[str]],
        account_id: Optional[UUID],
        mapping: Optional[ImportColumnMapping] = None,
    ) -> ImportResult:
        """
        Import one statement batch. A rejected mapping is audited and re-raised.
        """
        correlation_id = create_correlation_id()
        try:
            result = await self._core(
                self.importer.import_rows, headers, rows, account_id, mapping,
                correlation_id=correlation_id,
            )
        except ValidationError as e:
            await self._audit_logger.log(AuditEventBuilder.import_mapping_rejected(
                account_id, str(e), correlation_id
            ))
            raise

        imported = [self.store.get_transaction(tid) for tid in result.imported_transaction_ids]
        await self._storage.save_transactions(imported)
        await self._save_accounts(account_id)

        await self._audit_logger.log_import_completed(account_id, result, correlation_id)
        await self._check_ready_to_assign(correlation_id)
        return result

    async def import_csv(
        self,
        text: str,
        account_id: Optional[UUID],
        mapping: Optional[ImportColumnMapping] = None,
    ) -> ImportResult:
        headers, rows = parse_statement_csv(text)
        if not headers:
            raise ValidationError("The statement file is empty")
        return await self.import_statement(headers, rows, account_id, mapping)

    # -------------------------------------------------------------------------
    # Reminders
    # -------------------------------------------------------------------------

    async def schedule_reminders(self, month: Optional[date] = None) -> list[ReminderRequest]:
        """(Re)schedule reminders for every budgeted category with a due date."""
        month = month or self.budget.current_month()
        requests = [
            build_reminder_request(category, month)
            for category in self.budget.list_categories()
            if category.due_date is not None and not category.is_income
        ]
        if self._scheduler is not None:
            for request in requests:
                await self._call_scheduler(
                    self._scheduler.schedule, request, request.category_id
                )
        return requests

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def ready_to_assign(self) -> ReadyToAssignSummary:
        return self.budget.ready_to_assign_summary()

    def reconcile(self, month: date) -> ReconciliationReport:
        return self.reconciliation.compare(month)

    def running_balance(self) -> list[RunningBalanceEntry]:
        return self.store.running_balance()

    def transactions(
        self,
        transaction_filter: Optional[TransactionFilter] = None,
        today: Optional[date] = None,
    ) -> list[Transaction]:
        return self.queries.filter(transaction_filter, today)


def create_session(
    use_google_sheets: bool = False,
    scheduler: Optional[NotificationSchedulerInterface] = None,
    budget_settings: Optional[BudgetSettings] = None,
    format_settings: Optional[FormatSettings] = None,
) -> BudgetSession:
    """
    Factory function to create a budget session.

    Args:
        use_google_sheets: Persist to Google Sheets. Otherwise storage is
                    in-memory (tests and throwaway sessions).

    Call `await session.load()` to hydrate from storage.
    """
    if use_google_sheets:
        sheets_client = GoogleSheetsClient()
        storage = GoogleSheetsBudgetStorage(sheets_client)
        audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))
    else:
        storage = InMemoryBudgetStorage()
        audit_logger = AuditLogger(InMemoryAuditStorage())

    return BudgetSession(
        storage=storage,
        audit_logger=audit_logger,
        scheduler=scheduler,
        budget_settings=budget_settings,
        format_settings=format_settings,
    )
