"""
Statement Import Reconciler

Converts statement rows into ledger transactions.

PIPELINE:
1. Pre-conversion validation of the confirmed column mapping and target
   account. Any problem rejects the whole batch before anything changes.
2. Per-row conversion. A bad row becomes "Row N: ..." in the result and
   the batch carries on.
3. Every converted row is recorded through LedgerStore.record_transaction,
   so imported money obeys the same balance invariant as manual entries.

DESIGN DECISION: The whole batch runs under the ledger lock and the result
is returned only after the last row. Rows imported earlier in the batch
count as existing transactions for duplicate detection.

Row numbers match the statement file: the header is row 1, so the first
data row is row 2. Blank lines dropped by the CSV parser are not counted.
"""

from typing import Optional
from uuid import UUID

from pydantic import ValidationError as PydanticValidationError

from zerobudget.config import (
    AmountSignPolicy,
    BudgetSettings,
    FormatSettings,
    get_settings,
)
from zerobudget.errors import RowConversionError, ValidationError
from zerobudget.importing.columns import suggest_column_mapping
from zerobudget.importing.parser import parse_statement_csv
from zerobudget.importing.values import parse_amount, parse_date
from zerobudget.ledger.store import LedgerStore
from zerobudget.models.importing import ColumnRole, ImportColumnMapping, ImportResult
from zerobudget.models.ledger import Transaction, TransactionKind
from zerobudget.validation import LedgerValidator


# Header is row 1
FIRST_DATA_ROW = 2


class StatementImportReconciler:
    """Imports statement rows into one account of a LedgerStore."""

    def __init__(
        self,
        store: LedgerStore,
        format_settings: Optional[FormatSettings] = None,
        budget_settings: Optional[BudgetSettings] = None,
        validator: Optional[LedgerValidator] = None,
    ):
        self._store = store
        self._format = format_settings or get_settings().formatting
        self._budget = budget_settings or get_settings().budget
        self._validator = validator or LedgerValidator(self._budget)

    @staticmethod
    def suggest_mapping(headers: list[str]) -> ImportColumnMapping:
        """Default mapping for the user to confirm."""
        return suggest_column_mapping(headers)

    def validate_mapping(
        self,
        mapping: ImportColumnMapping,
        headers: list[str],
        account_id: Optional[UUID],
    ) -> None:
        """
        Raises:
            ValidationError: with every problem found, before any row is read
            NotFoundError: if the account does not exist
        """
        account = self._store.get_account(account_id) if account_id else None
        self._validator.require(
            self._validator.validate_column_mapping(mapping, headers, account)
        )

    # -------------------------------------------------------------------------
    # Row conversion
    # -------------------------------------------------------------------------

    @staticmethod
    def _cell(row: list[str], index: Optional[int]) -> str:
        if index is None or index >= len(row):
            return ""
        return (row[index] or "").strip()

    def _kind_and_amount(
        self,
        row_number: int,
        row: list[str],
        columns: dict[ColumnRole, int],
    ) -> tuple[TransactionKind, str]:
        """Returns the kind and the raw amount text to parse."""
        if ColumnRole.AMOUNT in columns:
            raw = self._cell(row, columns[ColumnRole.AMOUNT])
            if not raw:
                raise RowConversionError(row_number, "missing amount")
            return self._kind_from_policy(row_number, raw), raw

        debit = self._cell(row, columns.get(ColumnRole.DEBIT))
        credit = self._cell(row, columns.get(ColumnRole.CREDIT))
        if debit and credit:
            raise RowConversionError(
                row_number,
                f"ambiguous amount: both debit '{debit}' and credit '{credit}' are filled",
            )
        if debit:
            return TransactionKind.EXPENSE, debit
        if credit:
            return TransactionKind.INCOME, credit
        raise RowConversionError(row_number, "missing amount: debit and credit are both empty")

    def _kind_from_policy(self, row_number: int, raw: str) -> TransactionKind:
        policy = self._budget.import_amount_sign_policy
        if policy is AmountSignPolicy.ALWAYS_EXPENSE:
            return TransactionKind.EXPENSE
        if policy is AmountSignPolicy.ALWAYS_INCOME:
            return TransactionKind.INCOME
        try:
            value = parse_amount(raw, self._format)
        except ValueError:
            raise RowConversionError(row_number, f"invalid amount '{raw}'") from None
        return TransactionKind.EXPENSE if value < 0 else TransactionKind.INCOME

    def convert_row(
        self,
        row_number: int,
        row: list[str],
        columns: dict[ColumnRole, int],
        account_id: UUID,
    ) -> Transaction:
        """
        One statement row -> one unrecorded Transaction.

        Raises:
            RowConversionError: describing the first problem in the row
        """
        if not any((cell or "").strip() for cell in row):
            raise RowConversionError(row_number, "empty row")

        raw_date = self._cell(row, columns[ColumnRole.DATE])
        try:
            tx_date = parse_date(raw_date, self._format)
        except ValueError:
            raise RowConversionError(row_number, f"invalid date '{raw_date}'") from None

        description = self._cell(row, columns[ColumnRole.DESCRIPTION])
        if not description:
            raise RowConversionError(row_number, "missing description")

        kind, raw_amount = self._kind_and_amount(row_number, row, columns)
        try:
            amount = abs(parse_amount(raw_amount, self._format))
        except ValueError:
            raise RowConversionError(row_number, f"invalid amount '{raw_amount}'") from None
        if amount == 0:
            raise RowConversionError(row_number, "amount is zero")

        notes = self._cell(row, columns.get(ColumnRole.NOTES)) or None

        try:
            transaction = Transaction(
                date=tx_date,
                amount=amount,
                kind=kind,
                description=description,
                account_id=account_id,
                notes=notes,
            )
        except PydanticValidationError as e:
            raise RowConversionError(row_number, f"invalid row: {e.errors()[0]['msg']}") from None

        result = self._validator.validate_transaction(transaction)
        if result.has_errors:
            raise RowConversionError(row_number, result.first_error.message)
        return transaction

    # -------------------------------------------------------------------------
    # Batch
    # -------------------------------------------------------------------------

    def import_rows(
        self,
        headers: list[str],
        rows: list[list[str]],
        account_id: Optional[UUID],
        mapping: Optional[ImportColumnMapping] = None,
    ) -> ImportResult:
        """
        Import a batch of rows into one account.

        `mapping` defaults to the suggested mapping; callers are expected to
        have shown it to the user first.

        INVARIANT: result.success_count + result.failure_count == len(rows)

        Raises:
            ValidationError: the mapping or account is unusable (nothing imported)
        """
        mapping = mapping or self.suggest_mapping(headers)

        with self._store.lock:
            self.validate_mapping(mapping, headers, account_id)
            columns = {
                role: headers.index(header)
                for header, role in mapping.as_roles().items()
            }
            if mapping.uses_single_amount:
                columns.pop(ColumnRole.DEBIT, None)
                columns.pop(ColumnRole.CREDIT, None)

            seen = {tx.duplicate_key() for tx in self._store.list_transactions()}
            result = ImportResult()

            for row_number, row in enumerate(rows, start=FIRST_DATA_ROW):
                try:
                    transaction = self.convert_row(row_number, row, columns, account_id)
                    if transaction.duplicate_key() in seen:
                        raise RowConversionError(
                            row_number,
                            f"duplicate of an existing transaction "
                            f"({transaction.date.isoformat()}, {transaction.amount}, "
                            f"'{transaction.description}')",
                            duplicate=True,
                        )
                    recorded = self._store.record_transaction(transaction)
                except RowConversionError as e:
                    result.record_failure(str(e), duplicate=e.duplicate)
                    continue
                except ValidationError as e:
                    result.record_failure(str(RowConversionError(row_number, str(e))))
                    continue

                seen.add(recorded.duplicate_key())
                result.record_success(recorded.id)

        return result

    def import_csv(
        self,
        text: str,
        account_id: Optional[UUID],
        mapping: Optional[ImportColumnMapping] = None,
    ) -> ImportResult:
        """Parse CSV text and import it."""
        headers, rows = parse_statement_csv(text)
        if not headers:
            raise ValidationError("The statement file is empty")
        return self.import_rows(headers, rows, account_id, mapping)
