"""
Configuration Management for the Budget Core

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here, but the core never
reads it implicitly. Every ledger, importer and formatter receives its settings
object through its constructor or as an argument. get_settings() only supplies
the defaults when the caller does not pass anything.
"""

from decimal import Decimal
from enum import Enum
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class NumberFormat(str, Enum):
    """Decimal/grouping separator conventions."""
    US = "1,234.56"
    EUROPEAN = "1.234,56"
    SPACE = "1 234,56"


class DateFormat(str, Enum):
    """User date format preference."""
    US = "MM/DD/YYYY"
    EUROPEAN = "DD/MM/YYYY"
    ISO = "YYYY-MM-DD"


class AmountSignPolicy(str, Enum):
    """
    How a single (unsigned or signed) amount column decides income vs expense.

    SIGNED: negative values are expenses, positive values are income.
    ALWAYS_EXPENSE / ALWAYS_INCOME: the column is unsigned; every row gets
    the configured kind and the magnitude is used.
    """
    SIGNED = "signed"
    ALWAYS_EXPENSE = "always_expense"
    ALWAYS_INCOME = "always_income"


class AccountDeletionPolicy(str, Enum):
    """What happens to an account's transactions when the account is deleted."""
    UNLINK = "unlink"    # Transactions are kept, their account link is cleared
    CASCADE = "cascade"  # Transactions are deleted together with the account


class FormatSettings(BaseSettings):
    """
    Display and parsing conventions.

    Passed explicitly into every formatting and import call.
    """

    model_config = SettingsConfigDict(
        env_prefix="FORMAT_",
        extra="ignore"
    )

    currency_code: str = Field(
        default="USD",
        min_length=3,
        max_length=3,
        description="ISO 4217 currency code"
    )
    number_format: NumberFormat = Field(
        default=NumberFormat.US,
        description="Decimal and grouping separator convention"
    )
    date_format: DateFormat = Field(
        default=DateFormat.US,
        description="Preferred date format for display and ambiguous import dates"
    )

    @field_validator('currency_code')
    @classmethod
    def normalize_currency_code(cls, v: str) -> str:
        return v.upper()

    @property
    def decimal_separator(self) -> str:
        return "." if self.number_format == NumberFormat.US else ","

    @property
    def grouping_separator(self) -> str:
        if self.number_format == NumberFormat.US:
            return ","
        if self.number_format == NumberFormat.EUROPEAN:
            return "."
        return " "


class BudgetSettings(BaseSettings):
    """
    Behavioural settings for the ledger and assignment engine.
    """

    model_config = SettingsConfigDict(
        env_prefix="BUDGET_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    undo_window_seconds: int = Field(
        default=10,
        ge=1,
        le=3600,
        description="How long an assignment undo stays valid"
    )
    allow_negative_assignments: bool = Field(
        default=False,
        description="Allow negative category assignments without a per-call override"
    )
    minor_unit: Decimal = Field(
        default=Decimal("0.01"),
        gt=0,
        description="Smallest currency unit used when splitting money evenly"
    )
    max_transaction_amount: Decimal = Field(
        default=Decimal("1000000000"),
        gt=0,
        description="Maximum reasonable transaction amount (sanity check)"
    )
    import_amount_sign_policy: AmountSignPolicy = Field(
        default=AmountSignPolicy.SIGNED,
        description="How a single amount column decides income vs expense"
    )
    account_deletion_policy: AccountDeletionPolicy = Field(
        default=AccountDeletionPolicy.UNLINK,
        description="Default policy for deleting accounts"
    )
    verify_invariants: bool = Field(
        default=True,
        description="Re-check account balances after every mutation"
    )


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Path to Google service account credentials JSON"
    )
    spreadsheet_id: str = Field(
        ...,
        description="ID of the Google Sheets spreadsheet to use"
    )

    # Sheet names within the spreadsheet
    accounts_sheet_name: str = Field(default="Accounts")
    transactions_sheet_name: str = Field(default="Transactions")
    categories_sheet_name: str = Field(default="Categories")
    allocations_sheet_name: str = Field(default="Allocations")
    audit_sheet_name: str = Field(
        default="AuditLog",
        description="Name of the sheet for audit logs"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before running the application."
            )
        return v


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Loaded lazily to allow partial configuration

    @property
    def budget(self) -> BudgetSettings:
        return BudgetSettings()

    @property
    def formatting(self) -> FormatSettings:
        return FormatSettings()

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus "<name>_error"
    entries describing failures. Useful for startup checks.
    """
    results = {}
    settings = get_settings()

    for name in ("budget", "formatting", "google_sheets"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
