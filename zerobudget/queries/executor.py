"""
Transaction Query Execution

DESIGN DECISION: Queries are DETERMINISTIC and read-only.
They run against the Ledger Store's working set and never change it.
An empty result is an answer, not an error.
"""

from datetime import date, timedelta
from decimal import Decimal
from typing import Optional

from zerobudget.ledger.store import LedgerStore
from zerobudget.models.ledger import Transaction
from zerobudget.models.queries import DateRangePreset, KindFilter, TransactionFilter
from zerobudget.reconciliation.engine import month_totals
from zerobudget.reconciliation.periods import month_bounds


def resolve_date_range(
    transaction_filter: TransactionFilter,
    today: date,
) -> tuple[Optional[date], Optional[date]]:
    """Inclusive (start, end) for a filter; None means unbounded."""
    preset = transaction_filter.date_range
    if preset is DateRangePreset.THIS_MONTH:
        return month_bounds(today)
    if preset is DateRangePreset.LAST_30_DAYS:
        return today - timedelta(days=30), today
    if preset is DateRangePreset.LAST_90_DAYS:
        return today - timedelta(days=90), today
    if preset is DateRangePreset.CUSTOM:
        return transaction_filter.custom_start, transaction_filter.custom_end
    return None, None


class TransactionQueryExecutor:
    """
    Filters and totals transactions.

    GUARANTEES:
    - Only returns transactions that exist in the store
    - Newest first; on the same day the most recently recorded comes first
    """

    def __init__(self, store: LedgerStore):
        self._store = store

    def _matches(
        self,
        tx: Transaction,
        transaction_filter: TransactionFilter,
        start: Optional[date],
        end: Optional[date],
    ) -> bool:
        if transaction_filter.kind is KindFilter.INCOME and not tx.is_income:
            return False
        if transaction_filter.kind is KindFilter.EXPENSE and not tx.is_expense:
            return False
        if transaction_filter.account_id and tx.account_id != transaction_filter.account_id:
            return False
        if transaction_filter.uncategorized_only:
            if tx.category_id is not None:
                return False
        elif transaction_filter.category_id and tx.category_id != transaction_filter.category_id:
            return False
        if start and tx.date < start:
            return False
        if end and tx.date > end:
            return False
        if transaction_filter.search_text:
            needle = transaction_filter.search_text.casefold()
            haystack = f"{tx.description} {tx.notes or ''}".casefold()
            if needle not in haystack:
                return False
        return True

    def filter(
        self,
        transaction_filter: Optional[TransactionFilter] = None,
        today: Optional[date] = None,
    ) -> list[Transaction]:
        transaction_filter = transaction_filter or TransactionFilter()
        start, end = resolve_date_range(transaction_filter, today or date.today())

        with self._store.lock:
            transactions = self._store.list_transactions()

        matched = [
            tx for tx in transactions
            if self._matches(tx, transaction_filter, start, end)
        ]
        matched.reverse()
        matched.sort(key=lambda t: t.date, reverse=True)
        return matched

    def total(self, transactions: list[Transaction]) -> Decimal:
        """Net signed total of a result set."""
        return sum((tx.signed_amount for tx in transactions), Decimal("0"))

    def period_totals(self, month: date) -> dict[str, Decimal]:
        """Income, expense and net for one month."""
        with self._store.lock:
            return month_totals(self._store.list_transactions(), month)
