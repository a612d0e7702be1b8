"""Transaction query package."""

from zerobudget.queries.executor import TransactionQueryExecutor, resolve_date_range

__all__ = ["TransactionQueryExecutor", "resolve_date_range"]
