"""
Transaction Query Models

A TransactionFilter describes what the transaction log should show.
It is plain data; the TransactionQueryExecutor applies it.
"""

from datetime import date
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator


class KindFilter(str, Enum):
    ALL = "all"
    INCOME = "income"
    EXPENSE = "expense"


class DateRangePreset(str, Enum):
    ALL_TIME = "all_time"
    THIS_MONTH = "this_month"
    LAST_30_DAYS = "last_30_days"
    LAST_90_DAYS = "last_90_days"
    CUSTOM = "custom"


class TransactionFilter(BaseModel):
    """
    Filter for the transaction log.

    `uncategorized_only` wins over `category_id`.
    A CUSTOM range needs both ends; start must not be after end.
    """
    model_config = ConfigDict(frozen=True)

    kind: KindFilter = KindFilter.ALL
    account_id: Optional[UUID] = None
    category_id: Optional[UUID] = None
    uncategorized_only: bool = False
    date_range: DateRangePreset = DateRangePreset.ALL_TIME
    custom_start: Optional[date] = None
    custom_end: Optional[date] = None
    search_text: Optional[str] = Field(
        default=None,
        description="Case-insensitive match on description and notes"
    )

    @model_validator(mode='after')
    def validate_custom_range(self) -> 'TransactionFilter':
        if self.date_range is DateRangePreset.CUSTOM:
            if self.custom_start is None or self.custom_end is None:
                raise ValueError("A custom date range needs a start and an end date")
            if self.custom_start > self.custom_end:
                raise ValueError("Start date must be on or before end date")
        return self

    @property
    def is_active(self) -> bool:
        """True if anything other than the defaults is set."""
        return self != TransactionFilter()
