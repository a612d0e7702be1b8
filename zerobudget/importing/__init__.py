"""Statement import package."""

from zerobudget.importing.columns import ROLE_PATTERNS, suggest_column_mapping, suggest_roles
from zerobudget.importing.parser import parse_statement_csv
from zerobudget.importing.reconciler import StatementImportReconciler
from zerobudget.importing.values import parse_amount, parse_date

__all__ = [
    "ROLE_PATTERNS",
    "StatementImportReconciler",
    "parse_amount",
    "parse_date",
    "parse_statement_csv",
    "suggest_column_mapping",
    "suggest_roles",
]
