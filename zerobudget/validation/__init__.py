"""Validation package."""

from zerobudget.validation.validator import LedgerValidator

__all__ = ["LedgerValidator"]
