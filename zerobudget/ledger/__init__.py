"""Ledger Store package."""

from zerobudget.ledger.store import LedgerStore, compute_running_balance

__all__ = ["LedgerStore", "compute_running_balance"]
