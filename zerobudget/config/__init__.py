"""Configuration package."""

from zerobudget.config.settings import (
    AccountDeletionPolicy,
    AmountSignPolicy,
    BudgetSettings,
    DateFormat,
    FormatSettings,
    GoogleSheetsSettings,
    NumberFormat,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AccountDeletionPolicy",
    "AmountSignPolicy",
    "BudgetSettings",
    "DateFormat",
    "FormatSettings",
    "GoogleSheetsSettings",
    "NumberFormat",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
