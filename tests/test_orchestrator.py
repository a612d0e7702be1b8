"""
Integration tests for BudgetSession with in-memory storage.

These exercise the full flow of each command: core operation, persistence,
audit events.
"""

from datetime import date
from decimal import Decimal

import pytest

from zerobudget.audit import AuditLogger
from zerobudget.config import AccountDeletionPolicy
from zerobudget.errors import InvariantViolation, UndoExpiredError, ValidationError
from zerobudget.models.audit import AuditEventType, AuditSeverity
from zerobudget.models.budget import CategoryType, DueDateSpec
from zerobudget.models.importing import ImportColumnMapping
from zerobudget.models.ledger import Account
from zerobudget.models.queries import KindFilter, TransactionFilter
from zerobudget.orchestrator import BudgetSession, create_session
from zerobudget.services.notifications import InMemoryNotificationScheduler
from zerobudget.services.storage import InMemoryAuditStorage, InMemoryBudgetStorage

from tests.conftest import expense, income


@pytest.fixture
def storage():
    return InMemoryBudgetStorage()


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def scheduler():
    return InMemoryNotificationScheduler()


@pytest.fixture
def session(storage, audit_storage, scheduler, budget_settings, format_settings, clock):
    return BudgetSession(
        storage=storage,
        audit_logger=AuditLogger(audit_storage),
        scheduler=scheduler,
        budget_settings=budget_settings,
        format_settings=format_settings,
        clock=clock,
    )


class FailingScheduler(InMemoryNotificationScheduler):

    async def schedule(self, request):
        raise RuntimeError("push service down")


def event_types(audit_storage):
    return [e.event_type for e in audit_storage.events]


class TestLedgerCommands:

    @pytest.mark.asyncio
    async def test_record_persists_transaction_and_balance(self, session, storage, audit_storage):
        account = await session.add_account("Checking", Decimal("1000"))
        tx = await session.record_transaction(expense("40"), account_id=account.id)

        assert storage.transactions[tx.id] == tx
        assert storage.accounts[account.id].balance == Decimal("960")
        assert event_types(audit_storage) == [
            AuditEventType.ACCOUNT_CREATED,
            AuditEventType.TRANSACTION_RECORDED,
        ]

    @pytest.mark.asyncio
    async def test_edit_persists_both_accounts(self, session, storage):
        a = await session.add_account("A", Decimal("1000"))
        b = await session.add_account("B", Decimal("1000"))
        tx = await session.record_transaction(expense("100"), account_id=a.id)

        await session.edit_transaction(tx.id, expense("150", account_id=b.id))

        assert storage.accounts[a.id].balance == Decimal("1000")
        assert storage.accounts[b.id].balance == Decimal("850")
        assert storage.transactions[tx.id].account_id == b.id

    @pytest.mark.asyncio
    async def test_delete_transaction(self, session, storage, audit_storage):
        account = await session.add_account("Checking", Decimal("10"))
        tx = await session.record_transaction(income("5"), account_id=account.id)
        await session.delete_transaction(tx.id)
        assert tx.id not in storage.transactions
        assert storage.accounts[account.id].balance == Decimal("10")
        assert event_types(audit_storage)[-1] is AuditEventType.TRANSACTION_DELETED

    @pytest.mark.asyncio
    async def test_rejected_transaction_writes_nothing(self, session, storage, audit_storage):
        account = await session.add_account("Checking", Decimal("10"))
        with pytest.raises(ValidationError):
            await session.record_transaction(expense("0"), account_id=account.id)
        assert storage.transactions == {}
        assert event_types(audit_storage) == [AuditEventType.ACCOUNT_CREATED]

    @pytest.mark.asyncio
    async def test_delete_account_with_balance_is_warned(self, session, storage, audit_storage):
        account = await session.add_account("Old", Decimal("50"))
        tx = await session.record_transaction(expense("5"), account_id=account.id)

        await session.delete_account(account.id, AccountDeletionPolicy.UNLINK)

        assert account.id not in storage.accounts
        assert storage.transactions[tx.id].account_id is None
        [deleted] = [e for e in audit_storage.events if e.event_type is AuditEventType.ACCOUNT_DELETED]
        assert deleted.severity is AuditSeverity.WARNING

    @pytest.mark.asyncio
    async def test_delete_account_cascade(self, session, storage):
        account = await session.add_account("Old", Decimal("0"))
        tx = await session.record_transaction(income("5"), account_id=account.id)
        await session.delete_account(account.id, AccountDeletionPolicy.CASCADE)
        assert tx.id not in storage.transactions


class TestBudgetCommands:

    @pytest.mark.asyncio
    async def test_over_assignment_is_audited_as_warning(self, session, audit_storage):
        await session.add_account("Checking", Decimal("1000"))
        rent = await session.add_category("Rent", CategoryType.FIXED)

        await session.assign(rent.id, Decimal("1500"))

        assert session.ready_to_assign().value == Decimal("-500")
        warnings = [
            e for e in audit_storage.events
            if e.event_type is AuditEventType.READY_TO_ASSIGN_NEGATIVE
        ]
        assert len(warnings) == 1
        assert warnings[0].severity is AuditSeverity.WARNING

    @pytest.mark.asyncio
    async def test_assignment_persists_category_and_allocation(self, session, storage):
        await session.add_account("Checking", Decimal("1000"))
        food = await session.add_category("Food")

        await session.assign(food.id, Decimal("250"))

        assert storage.categories[food.id].assigned_amount == Decimal("250")
        assert storage.allocations[(food.id, date(2024, 3, 1))].assigned_amount == Decimal("250")

    @pytest.mark.asyncio
    async def test_quick_assign_and_undo(self, session, storage, audit_storage):
        await session.add_account("Checking", Decimal("1000"))
        food = await session.add_category("Food")
        await session.assign(food.id, Decimal("400"))

        action = await session.quick_assign_remaining(food.id)
        assert storage.categories[food.id].assigned_amount == Decimal("1000")

        await session.undo(action)
        assert storage.categories[food.id].assigned_amount == Decimal("400")
        assert session.ready_to_assign().value == Decimal("600")
        assert AuditEventType.UNDO_APPLIED in event_types(audit_storage)

    @pytest.mark.asyncio
    async def test_expired_undo_is_audited(self, session, audit_storage, clock):
        await session.add_account("Checking", Decimal("100"))
        food = await session.add_category("Food")
        action = await session.assign(food.id, Decimal("10"))
        clock.advance(60)

        with pytest.raises(UndoExpiredError):
            await session.undo(action)
        assert event_types(audit_storage)[-1] is AuditEventType.UNDO_REJECTED

    @pytest.mark.asyncio
    async def test_distribute_evenly(self, session, storage):
        await session.add_account("Checking", Decimal("100"))
        ids = [(await session.add_category(name)).id for name in ("A", "B", "C")]

        await session.distribute_evenly(ids)

        total = sum(storage.categories[cid].assigned_amount for cid in ids)
        assert total == Decimal("100")

    @pytest.mark.asyncio
    async def test_delete_category(self, session, storage, scheduler):
        account = await session.add_account("Checking", Decimal("100"))
        misc = await session.add_category("Misc", due_date=DueDateSpec(day_of_month=3))
        tx = await session.record_transaction(expense("5", category_id=misc.id), account_id=account.id)

        await session.delete_category(misc.id)

        assert misc.id not in storage.categories
        assert storage.transactions[tx.id].category_id is None
        assert misc.id not in scheduler.scheduled

    @pytest.mark.asyncio
    async def test_roll_over_persists_next_month(self, session, storage):
        account = await session.add_account("Checking", Decimal("500"))
        food = await session.add_category("Food")
        await session.assign(food.id, Decimal("200"), month=date(2024, 3, 1))
        await session.record_transaction(
            expense("50", day=date(2024, 3, 4), category_id=food.id),
            account_id=account.id,
        )

        await session.roll_over_month(date(2024, 3, 1))

        assert storage.allocations[(food.id, date(2024, 4, 1))].rolled_over == Decimal("150")


class TestReminders:

    @pytest.mark.asyncio
    async def test_category_with_due_date_is_scheduled(self, session, scheduler):
        rent = await session.add_category(
            "Rent",
            CategoryType.FIXED,
            due_date=DueDateSpec(day_of_month=31),
            reminder_offsets=[2],
        )
        request = scheduler.scheduled[rent.id]
        assert request.due_date == date(2024, 3, 31)
        assert request.reminder_dates == [date(2024, 3, 29)]

    @pytest.mark.asyncio
    async def test_clearing_due_date_cancels(self, session, scheduler):
        rent = await session.add_category("Rent", due_date=DueDateSpec(day_of_month=1))
        await session.update_category(rent.id, clear_due_date=True)
        assert rent.id not in scheduler.scheduled

    @pytest.mark.asyncio
    async def test_schedule_month(self, session, scheduler):
        await session.add_category("Card", due_date=DueDateSpec(last_day_of_month=True))
        await session.add_category("Fun")
        requests = await session.schedule_reminders(date(2024, 2, 1))
        assert [r.due_date for r in requests] == [date(2024, 2, 29)]

    @pytest.mark.asyncio
    async def test_scheduler_failure_is_audited_and_raised(
        self, storage, audit_storage, budget_settings, format_settings, clock
    ):
        session = BudgetSession(
            storage=storage,
            audit_logger=AuditLogger(audit_storage),
            scheduler=FailingScheduler(),
            budget_settings=budget_settings,
            format_settings=format_settings,
            clock=clock,
        )

        with pytest.raises(RuntimeError, match="push service down"):
            await session.add_category("Rent", due_date=DueDateSpec(day_of_month=1))

        created, failed = audit_storage.events
        assert failed.event_type is AuditEventType.SYSTEM_ERROR
        assert failed.error_message == "push service down"
        assert failed.details["operation"] == "schedule"
        assert failed.details["category_id"] == str(created.entity_id)
        assert failed.correlation_id == created.correlation_id


class TestImport:

    @pytest.mark.asyncio
    async def test_import_persists_and_audits(self, session, storage, audit_storage):
        account = await session.add_account("Checking", Decimal("1000"))
        result = await session.import_statement(
            ["Date", "Description", "Debit", "Credit"],
            [
                ["03/05/2024", "Coffee", "4.50", ""],
                ["xx", "Lunch", "12.00", ""],
            ],
            account.id,
            ImportColumnMapping(date="Date", description="Description", debit="Debit", credit="Credit"),
        )

        assert (result.success_count, result.failure_count) == (1, 1)
        assert len(storage.transactions) == 1
        assert storage.accounts[account.id].balance == Decimal("995.50")
        completed = [e for e in audit_storage.events if e.event_type is AuditEventType.IMPORT_COMPLETED]
        assert completed[0].details["errors"] == ["Row 3: invalid date 'xx'"]

    @pytest.mark.asyncio
    async def test_rejected_mapping_is_audited(self, session, audit_storage):
        with pytest.raises(ValidationError):
            await session.import_csv("Date,Amount\n03/01/2024,5\n", None)
        assert event_types(audit_storage)[-1] is AuditEventType.IMPORT_MAPPING_REJECTED


class TestLoadAndReads:

    @pytest.mark.asyncio
    async def test_load_round_trip(self, session, storage, audit_storage, budget_settings, format_settings):
        account = await session.add_account("Checking", Decimal("1000"))
        food = await session.add_category("Food")
        await session.record_transaction(expense("100", category_id=food.id), account_id=account.id)
        await session.assign(food.id, Decimal("300"))

        restored = BudgetSession(
            storage=storage,
            audit_logger=AuditLogger(audit_storage),
            budget_settings=budget_settings,
            format_settings=format_settings,
        )
        await restored.load()

        assert restored.ready_to_assign().value == Decimal("600")
        report = restored.reconcile(date(2024, 3, 1))
        assert report.comparisons[0].actual == Decimal("100")
        assert report.comparisons[0].budgeted == Decimal("300")
        assert restored.running_balance()[-1].balance_after == Decimal("900")

    @pytest.mark.asyncio
    async def test_load_with_broken_balance(self, storage, audit_storage, budget_settings, format_settings):
        account = Account(name="Checking", starting_balance=Decimal("100"), balance=Decimal("1"))
        await storage.save_account(account)
        session = BudgetSession(
            storage=storage,
            audit_logger=AuditLogger(audit_storage),
            budget_settings=budget_settings,
            format_settings=format_settings,
        )

        with pytest.raises(InvariantViolation):
            await session.load()
        [event] = audit_storage.events
        assert event.severity is AuditSeverity.CRITICAL

    @pytest.mark.asyncio
    async def test_transaction_log(self, session):
        account = await session.add_account("Checking", Decimal("0"))
        await session.record_transaction(income("10"), account_id=account.id)
        await session.record_transaction(expense("3"), account_id=account.id)
        result = session.transactions(TransactionFilter(kind=KindFilter.EXPENSE), today=date(2024, 3, 15))
        assert [t.amount for t in result] == [Decimal("3")]

    def test_create_session_defaults_to_memory(self, budget_settings, format_settings):
        session = create_session(budget_settings=budget_settings, format_settings=format_settings)
        assert isinstance(session, BudgetSession)
        assert session.ready_to_assign().value == Decimal("0")
