"""
Tests for display formatting.
"""

from datetime import date
from decimal import Decimal

from zerobudget.config import DateFormat, FormatSettings, NumberFormat
from zerobudget.formatting import (
    currency_symbol,
    format_currency,
    format_date,
    format_number,
    format_percentage,
    sample_currency,
)


US = FormatSettings(currency_code="USD", number_format=NumberFormat.US, date_format=DateFormat.US)
EU = FormatSettings(currency_code="EUR", number_format=NumberFormat.EUROPEAN, date_format=DateFormat.EUROPEAN)
SPACE = FormatSettings(currency_code="SEK", number_format=NumberFormat.SPACE, date_format=DateFormat.ISO)


class TestCurrency:

    def test_us(self):
        assert format_currency(Decimal("1234.56"), US) == "$1,234.56"
        assert format_currency(Decimal("-1234.56"), US) == "-$1,234.56"
        assert format_currency(Decimal("0"), US) == "$0.00"

    def test_european(self):
        assert format_currency(Decimal("1234.56"), EU) == "1.234,56 €"
        assert format_currency(Decimal("-0.5"), EU) == "-0,50 €"

    def test_space_grouping(self):
        assert format_currency(Decimal("1234567.8"), SPACE) == "1 234 567,80 kr"

    def test_no_negative_zero(self):
        assert format_currency(Decimal("-0.001"), US) == "$0.00"

    def test_zero_decimal_currency(self):
        yen = FormatSettings(currency_code="jpy")
        assert format_currency(Decimal("1500.4"), yen) == "¥1,500"

    def test_unknown_code_used_as_symbol(self):
        assert currency_symbol("nzd") == "NZD"

    def test_sample(self):
        assert sample_currency(EU) == "1.234,56 €"


class TestNumbersAndDates:

    def test_format_number_rounds_half_up(self):
        assert format_number(Decimal("2.345"), US) == "2.35"
        assert format_number(Decimal("999.999"), US) == "1,000.00"

    def test_dates(self):
        day = date(2024, 2, 9)
        assert format_date(day, US) == "02/09/2024"
        assert format_date(day, EU) == "09/02/2024"
        assert format_date(day, SPACE) == "2024-02-09"

    def test_percentage(self):
        assert format_percentage(Decimal("0.455")) == "46%"
        assert format_percentage(Decimal("0")) == "0%"
        assert format_percentage(Decimal("1.2345"), places=1) == "123.5%"
