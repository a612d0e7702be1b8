"""
Tests for storage backends.

Google Sheets is never contacted: worksheets are replaced by an in-process
fake that keeps rows as lists of strings, like the real API returns them.
"""

from datetime import date
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import MagicMock
from uuid import uuid4

import gspread
import pytest

from zerobudget.models.audit import AuditEventBuilder
from zerobudget.models.budget import (
    BudgetCategory,
    CategoryMonthlyAllocation,
    CategoryType,
    DueDateSpec,
)
from zerobudget.models.ledger import Account, AccountType
from zerobudget.services.storage import (
    GoogleSheetsAuditStorage,
    GoogleSheetsBudgetStorage,
    GoogleSheetsClient,
    InMemoryBudgetStorage,
    RecordNotFoundError,
    StorageError,
)
from zerobudget.services.storage import google_sheets
from zerobudget.services.storage.google_sheets import (
    account_to_row,
    category_to_row,
    row_to_account,
    row_to_allocation,
    row_to_category,
    row_to_event,
    row_to_transaction,
    safe_get,
    transaction_to_row,
)

from tests.conftest import expense


class FakeWorksheet:
    """Just enough of gspread.Worksheet for the storage classes."""

    def __init__(self, columns: list[str]):
        self.rows = [list(columns)]

    def get_all_values(self):
        return [list(row) for row in self.rows]

    def append_row(self, values, value_input_option=None):
        self.rows.append([str(v) for v in values])

    def update(self, range_name, values, value_input_option=None):
        index = int(range_name[1:]) - 1
        self.rows[index] = [str(v) for v in values[0]]

    def delete_rows(self, index):
        del self.rows[index - 1]


class FakeSheetsClient:

    def __init__(self):
        self.settings = SimpleNamespace(
            accounts_sheet_name="Accounts",
            transactions_sheet_name="Transactions",
            categories_sheet_name="Categories",
            allocations_sheet_name="Allocations",
            audit_sheet_name="AuditLog",
        )
        self.sheets: dict[str, FakeWorksheet] = {}

    def get_worksheet(self, title, columns, rows=1000):
        if title not in self.sheets:
            self.sheets[title] = FakeWorksheet(columns)
        return self.sheets[title]


@pytest.fixture
def sheets_client():
    return FakeSheetsClient()


@pytest.fixture
def sheets_storage(sheets_client):
    return GoogleSheetsBudgetStorage(sheets_client)


class TestInMemoryBudgetStorage:

    @pytest.mark.asyncio
    async def test_save_is_upsert(self):
        storage = InMemoryBudgetStorage()
        account = Account(name="Checking")
        await storage.save_account(account)
        await storage.save_account(account.model_copy(update={"balance": Decimal("5")}))
        [stored] = await storage.list_accounts()
        assert stored.balance == Decimal("5")

    @pytest.mark.asyncio
    async def test_delete_unknown_raises(self):
        storage = InMemoryBudgetStorage()
        with pytest.raises(RecordNotFoundError):
            await storage.delete_transaction(uuid4())

    @pytest.mark.asyncio
    async def test_allocations_by_month(self):
        storage = InMemoryBudgetStorage()
        cid = uuid4()
        march = CategoryMonthlyAllocation(category_id=cid, month=date(2024, 3, 1))
        april = CategoryMonthlyAllocation(category_id=cid, month=date(2024, 4, 1))
        await storage.save_allocation(march)
        await storage.save_allocation(april)

        assert await storage.list_allocations(date(2024, 3, 17)) == [march]
        await storage.delete_allocations(cid)
        assert await storage.list_allocations() == []


class TestRowConverters:
    """Entities survive a trip through sheet rows unchanged."""

    def test_account(self):
        account = Account(
            name="Visa",
            starting_balance=Decimal("-120.50"),
            balance=Decimal("-80.25"),
            account_type=AccountType.CREDIT_CARD,
        )
        assert row_to_account(account_to_row(account)) == account

    def test_transaction_without_links(self):
        tx = expense("9.99", description="Stream", notes="monthly")
        row = transaction_to_row(tx)
        assert row[5] == "" and row[6] == ""
        assert row_to_transaction(row) == tx

    def test_category_due_dates(self):
        by_day = BudgetCategory(
            name="Rent",
            category_type=CategoryType.FIXED,
            due_date=DueDateSpec(day_of_month=31),
            reminder_offsets=[3, 0],
        )
        last_day = BudgetCategory(name="Card", due_date=DueDateSpec(last_day_of_month=True))
        none = BudgetCategory(name="Fun")
        for category in (by_day, last_day, none):
            assert row_to_category(category_to_row(category)) == category

    def test_trailing_empty_cells_dropped(self):
        """Sheets omits trailing empty cells."""
        account = Account(name="Cash")
        row = account_to_row(account)[:6]
        assert row_to_account(row).notes is None
        assert safe_get(["a"], 3, "x") == "x"

    def test_allocation(self):
        row = [str(uuid4()), "2024-02-01", "100.00", "-5"]
        allocation = row_to_allocation(row)
        assert allocation.rolled_over == Decimal("-5")

    def test_event(self):
        event = AuditEventBuilder.ready_to_assign_negative("-10", uuid4())
        assert row_to_event(event.to_sheets_row()) == event


class TestGoogleSheetsBudgetStorage:

    @pytest.mark.asyncio
    async def test_upsert_updates_matching_row(self, sheets_storage, sheets_client):
        account = Account(name="Checking", balance=Decimal("10"))
        await sheets_storage.save_account(account)
        await sheets_storage.save_account(account.model_copy(update={"balance": Decimal("25")}))

        sheet = sheets_client.sheets["Accounts"]
        assert len(sheet.rows) == 2
        [stored] = await sheets_storage.list_accounts()
        assert stored.balance == Decimal("25")

    @pytest.mark.asyncio
    async def test_transactions_keep_order(self, sheets_storage):
        first, second = expense("1"), expense("2")
        await sheets_storage.save_transactions([first, second])
        assert await sheets_storage.list_transactions() == [first, second]

    @pytest.mark.asyncio
    async def test_delete(self, sheets_storage):
        tx = expense("1")
        await sheets_storage.save_transaction(tx)
        await sheets_storage.delete_transaction(tx.id)
        assert await sheets_storage.list_transactions() == []

    @pytest.mark.asyncio
    async def test_delete_unknown_raises_without_retry(self, sheets_storage):
        with pytest.raises(RecordNotFoundError):
            await sheets_storage.delete_category(uuid4())

    @pytest.mark.asyncio
    async def test_allocations_keyed_by_category_and_month(self, sheets_storage, sheets_client):
        cid = uuid4()
        march = CategoryMonthlyAllocation(category_id=cid, month=date(2024, 3, 1), assigned_amount=Decimal("1"))
        april = CategoryMonthlyAllocation(category_id=cid, month=date(2024, 4, 1))
        await sheets_storage.save_allocation(march)
        await sheets_storage.save_allocation(april)
        await sheets_storage.save_allocation(march.model_copy(update={"assigned_amount": Decimal("9")}))

        assert len(sheets_client.sheets["Allocations"].rows) == 3
        [stored] = await sheets_storage.list_allocations(date(2024, 3, 1))
        assert stored.assigned_amount == Decimal("9")

        await sheets_storage.delete_allocations(cid)
        assert await sheets_storage.list_allocations() == []

    @pytest.mark.asyncio
    async def test_malformed_row_is_an_error(self, sheets_storage, sheets_client):
        await sheets_storage.save_account(Account(name="Checking"))
        sheets_client.sheets["Accounts"].rows.append(["not-a-uuid", "Broken"])
        with pytest.raises(StorageError, match="Malformed account row 3"):
            await sheets_storage.list_accounts()

    @pytest.mark.asyncio
    async def test_blank_rows_skipped(self, sheets_storage, sheets_client):
        await sheets_storage.save_category(BudgetCategory(name="Rent"))
        sheets_client.sheets["Categories"].rows.append([])
        assert len(await sheets_storage.list_categories()) == 1


class TestGoogleSheetsAuditStorage:

    @pytest.mark.asyncio
    async def test_append_and_query(self, sheets_client):
        storage = GoogleSheetsAuditStorage(sheets_client)
        cid = uuid4()
        first = AuditEventBuilder.undo_applied(uuid4(), "one", cid)
        second = AuditEventBuilder.undo_applied(uuid4(), "two", cid)
        await storage.append_event(first)
        await storage.append_event(second)
        await storage.append_event(AuditEventBuilder.system_error("x", "y"))

        assert await storage.get_events_by_correlation_id(cid) == [first, second]
        assert await storage.get_events_by_entity("undo_action", second.entity_id) == [second]
        assert len(await storage.get_recent_events(limit=2)) == 2

    @pytest.mark.asyncio
    async def test_unreadable_rows_skipped_with_warning(self, sheets_client, monkeypatch):
        log = MagicMock()
        monkeypatch.setattr(google_sheets, "logger", log)
        storage = GoogleSheetsAuditStorage(sheets_client)
        await storage.append_event(AuditEventBuilder.system_error("x", "y"))
        sheets_client.sheets["AuditLog"].rows.append(["garbage", "not a timestamp"])

        assert len(await storage.get_recent_events()) == 1

        log.warning.assert_called_once()
        args, kwargs = log.warning.call_args
        assert args == ("audit_row_skipped",)
        assert kwargs["row"] == 3
        assert kwargs["sheet"] == "AuditLog"


class TestGoogleSheetsClient:

    def test_missing_worksheet_is_created_with_header(self):
        client = GoogleSheetsClient(settings=MagicMock())
        spreadsheet = MagicMock()
        spreadsheet.worksheet.side_effect = gspread.WorksheetNotFound("Accounts")
        client._spreadsheet = spreadsheet

        sheet = client.get_worksheet("Accounts", ["id", "name"])

        spreadsheet.add_worksheet.assert_called_once_with(title="Accounts", rows=1000, cols=2)
        sheet.append_row.assert_called_once_with(["id", "name"])

    def test_existing_worksheet_is_reused(self):
        client = GoogleSheetsClient(settings=MagicMock())
        spreadsheet = MagicMock()
        client._spreadsheet = spreadsheet

        sheet = client.get_worksheet("Accounts", ["id"])

        assert sheet is spreadsheet.worksheet.return_value
        spreadsheet.add_worksheet.assert_not_called()
