"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is the first durable backend because:
1. Users can look at their budget directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)

TRADEOFFS:
- Not suitable for high-volume data (fine for a personal budget)
- No transactions: the in-memory ledger is authoritative and every
  changed entity is upserted after the core operation succeeds
- Limited query capabilities (we filter in Python)

One worksheet per entity, one entity per row, id in the first column.
Decimals are stored as strings so no precision is lost to floats.

Unlike the audit log, a budget row that cannot be parsed is an error:
loading a partial ledger would break the balance invariant.
"""

import json
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Callable, Optional
from uuid import UUID

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential

from zerobudget.config import GoogleSheetsSettings, get_settings
from zerobudget.models.audit import AuditEvent, AuditEventType, AuditSeverity
from zerobudget.models.budget import (
    BudgetCategory,
    CategoryMonthlyAllocation,
    CategoryType,
    DueDateSpec,
    first_of_month,
)
from zerobudget.models.ledger import (
    Account,
    AccountType,
    Transaction,
    TransactionKind,
)
from zerobudget.services.storage.interface import (
    AuditStorageInterface,
    BudgetStorageInterface,
    ConnectionError,
    RecordNotFoundError,
    StorageError,
)


logger = structlog.get_logger(__name__)

ACCOUNT_COLUMNS = [
    "id",
    "name",
    "starting_balance",
    "balance",
    "account_type",
    "created_at",
    "notes",
]

TRANSACTION_COLUMNS = [
    "id",
    "date",
    "amount",
    "kind",
    "description",
    "category_id",
    "account_id",
    "notes",
    "created_at",
]

CATEGORY_COLUMNS = [
    "id",
    "name",
    "assigned_amount",
    "category_type",
    "color",
    "due_day_of_month",
    "due_last_day_of_month",
    "reminder_offsets_json",
    "sort_order",
    "created_at",
]

ALLOCATION_COLUMNS = [
    "category_id",
    "month",
    "assigned_amount",
    "rolled_over",
]

AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]


def _is_transient(error: BaseException) -> bool:
    return isinstance(error, StorageError) and not isinstance(error, RecordNotFoundError)


_write_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    retry=retry_if_exception(_is_transient),
    reraise=True,
)


def safe_get(row: list, index: int, default: str = "") -> str:
    """Cell value or default; Sheets drops trailing empty cells."""
    try:
        return row[index] if row[index] else default
    except IndexError:
        return default


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

    @property
    def settings(self) -> GoogleSheetsSettings:
        return self._settings

    @_write_retry
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}") from e

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(self._settings.spreadsheet_id)
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def get_worksheet(self, title: str, columns: list[str], rows: int = 1000) -> gspread.Worksheet:
        """Get or create a worksheet with the given header row."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(title=title, rows=rows, cols=len(columns))
            sheet.append_row(columns)
        return sheet


# =============================================================================
# ROW CONVERTERS
# =============================================================================

def account_to_row(account: Account) -> list:
    return [
        str(account.id),
        account.name,
        str(account.starting_balance),
        str(account.balance),
        account.account_type.value,
        account.created_at.isoformat(),
        account.notes or "",
    ]


def row_to_account(row: list) -> Account:
    return Account(
        id=UUID(safe_get(row, 0)),
        name=safe_get(row, 1),
        starting_balance=Decimal(safe_get(row, 2, "0")),
        balance=Decimal(safe_get(row, 3, "0")),
        account_type=AccountType(safe_get(row, 4, AccountType.CHECKING.value)),
        created_at=datetime.fromisoformat(safe_get(row, 5)),
        notes=safe_get(row, 6) or None,
    )


def transaction_to_row(transaction: Transaction) -> list:
    return [
        str(transaction.id),
        transaction.date.isoformat(),
        str(transaction.amount),
        transaction.kind.value,
        transaction.description,
        str(transaction.category_id) if transaction.category_id else "",
        str(transaction.account_id) if transaction.account_id else "",
        transaction.notes or "",
        transaction.created_at.isoformat(),
    ]


def row_to_transaction(row: list) -> Transaction:
    return Transaction(
        id=UUID(safe_get(row, 0)),
        date=date.fromisoformat(safe_get(row, 1)),
        amount=Decimal(safe_get(row, 2)),
        kind=TransactionKind(safe_get(row, 3)),
        description=safe_get(row, 4),
        category_id=UUID(safe_get(row, 5)) if safe_get(row, 5) else None,
        account_id=UUID(safe_get(row, 6)) if safe_get(row, 6) else None,
        notes=safe_get(row, 7) or None,
        created_at=datetime.fromisoformat(safe_get(row, 8)),
    )


def category_to_row(category: BudgetCategory) -> list:
    due = category.due_date
    return [
        str(category.id),
        category.name,
        str(category.assigned_amount),
        category.category_type.value,
        category.color,
        str(due.day_of_month) if due and due.day_of_month else "",
        str(bool(due and due.last_day_of_month)),
        json.dumps(category.reminder_offsets),
        str(category.sort_order),
        category.created_at.isoformat(),
    ]


def row_to_category(row: list) -> BudgetCategory:
    due_date = None
    if safe_get(row, 5):
        due_date = DueDateSpec(day_of_month=int(safe_get(row, 5)))
    elif safe_get(row, 6).lower() == "true":
        due_date = DueDateSpec(last_day_of_month=True)

    return BudgetCategory(
        id=UUID(safe_get(row, 0)),
        name=safe_get(row, 1),
        assigned_amount=Decimal(safe_get(row, 2, "0")),
        category_type=CategoryType(safe_get(row, 3)),
        color=safe_get(row, 4),
        due_date=due_date,
        reminder_offsets=json.loads(safe_get(row, 7, "[0]")),
        sort_order=int(safe_get(row, 8, "0")),
        created_at=datetime.fromisoformat(safe_get(row, 9)),
    )


def allocation_to_row(allocation: CategoryMonthlyAllocation) -> list:
    return [
        str(allocation.category_id),
        allocation.month.isoformat(),
        str(allocation.assigned_amount),
        str(allocation.rolled_over),
    ]


def row_to_allocation(row: list) -> CategoryMonthlyAllocation:
    return CategoryMonthlyAllocation(
        category_id=UUID(safe_get(row, 0)),
        month=date.fromisoformat(safe_get(row, 1)),
        assigned_amount=Decimal(safe_get(row, 2, "0")),
        rolled_over=Decimal(safe_get(row, 3, "0")),
    )


def event_to_row(event: AuditEvent) -> list:
    return event.to_sheets_row()


def row_to_event(row: list) -> AuditEvent:
    return AuditEvent(
        event_id=UUID(safe_get(row, 0)),
        timestamp=datetime.fromisoformat(safe_get(row, 1)),
        event_type=AuditEventType(safe_get(row, 2)),
        severity=AuditSeverity(safe_get(row, 3)),
        entity_type=safe_get(row, 4) or None,
        entity_id=UUID(safe_get(row, 5)) if safe_get(row, 5) else None,
        correlation_id=UUID(safe_get(row, 6)) if safe_get(row, 6) else None,
        description=safe_get(row, 7),
        details=json.loads(safe_get(row, 8)) if safe_get(row, 8) else {},
        error_message=safe_get(row, 9) or None,
        is_user_action=safe_get(row, 10).lower() == "true",
    )


# =============================================================================
# BUDGET STORAGE
# =============================================================================

class GoogleSheetsBudgetStorage(BudgetStorageInterface):
    """
    Google Sheets implementation of budget storage.

    Saves are upserts: the row whose key columns match is overwritten,
    otherwise a new row is appended.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _sheet(self, title: str, columns: list[str]) -> gspread.Worksheet:
        return self._client.get_worksheet(title, columns)

    def _accounts(self) -> gspread.Worksheet:
        return self._sheet(self._client.settings.accounts_sheet_name, ACCOUNT_COLUMNS)

    def _transactions(self) -> gspread.Worksheet:
        return self._sheet(self._client.settings.transactions_sheet_name, TRANSACTION_COLUMNS)

    def _categories(self) -> gspread.Worksheet:
        return self._sheet(self._client.settings.categories_sheet_name, CATEGORY_COLUMNS)

    def _allocations(self) -> gspread.Worksheet:
        return self._sheet(self._client.settings.allocations_sheet_name, ALLOCATION_COLUMNS)

    @staticmethod
    def _find_row(rows: list[list], key: list[str]) -> Optional[int]:
        """1-based sheet row index of the first data row whose leading cells equal key."""
        for idx, row in enumerate(rows[1:], start=2):  # Row 1 is the header
            if row[:len(key)] == key:
                return idx
        return None

    def _upsert(self, sheet: gspread.Worksheet, row: list, key_width: int = 1) -> None:
        try:
            existing = self._find_row(sheet.get_all_values(), row[:key_width])
            if existing is None:
                sheet.append_row(row, value_input_option="RAW")
            else:
                sheet.update(
                    range_name=f"A{existing}",
                    values=[row],
                    value_input_option="RAW",
                )
        except gspread.exceptions.APIError as e:
            raise StorageError(f"Failed to save row {row[:key_width]}: {e}") from e

    def _delete(self, sheet: gspread.Worksheet, key: str, entity_type: str) -> None:
        try:
            idx = self._find_row(sheet.get_all_values(), [key])
            if idx is None:
                raise RecordNotFoundError(f"{entity_type} not found: {key}")
            sheet.delete_rows(idx)
        except gspread.exceptions.APIError as e:
            raise StorageError(f"Failed to delete {entity_type} {key}: {e}") from e

    @staticmethod
    def _read(sheet: gspread.Worksheet, convert: Callable[[list], object], entity_type: str) -> list:
        try:
            rows = sheet.get_all_values()[1:]
        except gspread.exceptions.APIError as e:
            raise StorageError(f"Failed to read {entity_type} rows: {e}") from e

        items = []
        for number, row in enumerate(rows, start=2):
            if not row or not row[0]:  # Skip empty rows
                continue
            try:
                items.append(convert(row))
            except (ValueError, KeyError, TypeError, InvalidOperation) as e:
                raise StorageError(f"Malformed {entity_type} row {number}: {e}") from e
        return items

    # Accounts

    @_write_retry
    async def save_account(self, account: Account) -> None:
        self._upsert(self._accounts(), account_to_row(account))

    @_write_retry
    async def delete_account(self, account_id: UUID) -> None:
        self._delete(self._accounts(), str(account_id), "account")

    async def list_accounts(self) -> list[Account]:
        return self._read(self._accounts(), row_to_account, "account")

    # Transactions

    @_write_retry
    async def save_transaction(self, transaction: Transaction) -> None:
        self._upsert(self._transactions(), transaction_to_row(transaction))

    @_write_retry
    async def delete_transaction(self, transaction_id: UUID) -> None:
        self._delete(self._transactions(), str(transaction_id), "transaction")

    async def list_transactions(self) -> list[Transaction]:
        return self._read(self._transactions(), row_to_transaction, "transaction")

    # Categories

    @_write_retry
    async def save_category(self, category: BudgetCategory) -> None:
        self._upsert(self._categories(), category_to_row(category))

    @_write_retry
    async def delete_category(self, category_id: UUID) -> None:
        self._delete(self._categories(), str(category_id), "category")

    async def list_categories(self) -> list[BudgetCategory]:
        return self._read(self._categories(), row_to_category, "category")

    # Allocations

    @_write_retry
    async def save_allocation(self, allocation: CategoryMonthlyAllocation) -> None:
        self._upsert(self._allocations(), allocation_to_row(allocation), key_width=2)

    async def list_allocations(
        self,
        month: Optional[date] = None,
    ) -> list[CategoryMonthlyAllocation]:
        allocations = self._read(self._allocations(), row_to_allocation, "allocation")
        if month is not None:
            month = first_of_month(month)
            allocations = [a for a in allocations if a.month == month]
        return allocations

    @_write_retry
    async def delete_allocations(self, category_id: UUID) -> None:
        sheet = self._allocations()
        try:
            rows = sheet.get_all_values()
            matches = [
                idx for idx, row in enumerate(rows[1:], start=2)
                if row and row[0] == str(category_id)
            ]
            # Bottom-up so earlier indexes stay valid
            for idx in reversed(matches):
                sheet.delete_rows(idx)
        except gspread.exceptions.APIError as e:
            raise StorageError(f"Failed to delete allocations of {category_id}: {e}") from e


# =============================================================================
# AUDIT STORAGE
# =============================================================================

class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only. Unreadable rows are skipped on read;
    writes that fail raise StorageError.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _sheet(self) -> gspread.Worksheet:
        return self._client.get_worksheet(
            self._client.settings.audit_sheet_name,
            AUDIT_COLUMNS,
            rows=5000,  # More rows for audit log
        )

    @_write_retry
    async def append_event(self, event: AuditEvent) -> None:
        try:
            self._sheet().append_row(event_to_row(event), value_input_option="RAW")
        except gspread.exceptions.APIError as e:
            raise StorageError(f"Failed to write audit event: {e}") from e

    def _events(self, keep: Callable[[list], bool]) -> list[AuditEvent]:
        try:
            rows = self._sheet().get_all_values()[1:]
        except gspread.exceptions.APIError as e:
            raise StorageError(f"Failed to get audit events: {e}") from e

        events = []
        for row_number, row in enumerate(rows, start=2):
            if not row or not row[0] or not keep(row):
                continue
            try:
                events.append(row_to_event(row))
            except (ValueError, KeyError) as e:
                logger.warning(
                    "audit_row_skipped",
                    sheet=self._client.settings.audit_sheet_name,
                    row=row_number,
                    error=str(e),
                )
        return events

    async def get_events_by_correlation_id(self, correlation_id: UUID) -> list[AuditEvent]:
        events = self._events(lambda row: safe_get(row, 6) == str(correlation_id))
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_events_by_entity(self, entity_type: str, entity_id: UUID) -> list[AuditEvent]:
        events = self._events(
            lambda row: safe_get(row, 4) == entity_type and safe_get(row, 5) == str(entity_id)
        )
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        events = self._events(lambda row: True)
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
