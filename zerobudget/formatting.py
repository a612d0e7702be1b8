"""
Display formatting.

Every function takes the FormatSettings to use as an argument. There is no
process-wide "current format"; the presentation layer decides which
settings to pass.
"""

from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from zerobudget.config import DateFormat, FormatSettings, NumberFormat


CURRENCY_SYMBOLS = {
    "USD": "$",
    "CAD": "CA$",
    "AUD": "A$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
    "INR": "₹",
    "CHF": "CHF",
    "SEK": "kr",
}

# Currencies without minor units
ZERO_DECIMAL_CURRENCIES = {"JPY", "KRW"}

_DATE_PATTERNS = {
    DateFormat.US: "%m/%d/%Y",
    DateFormat.EUROPEAN: "%d/%m/%Y",
    DateFormat.ISO: "%Y-%m-%d",
}


def currency_symbol(currency_code: str) -> str:
    return CURRENCY_SYMBOLS.get(currency_code.upper(), currency_code.upper())


def format_number(amount: Decimal, settings: FormatSettings, places: int = 2) -> str:
    """Group and separate a non-negative amount per the number format."""
    quantum = Decimal(1).scaleb(-places)
    rounded = abs(amount).quantize(quantum, rounding=ROUND_HALF_UP)
    whole, _, fraction = f"{rounded:f}".partition(".")

    groups = []
    while len(whole) > 3:
        groups.insert(0, whole[-3:])
        whole = whole[:-3]
    groups.insert(0, whole)

    text = settings.grouping_separator.join(groups)
    if places:
        text += settings.decimal_separator + fraction
    return text


def format_currency(amount: Decimal, settings: FormatSettings) -> str:
    """
    $1,234.56 / -$1,234.56 for the US format;
    1.234,56 € / -1 234,56 € style for the others.
    """
    places = 0 if settings.currency_code in ZERO_DECIMAL_CURRENCIES else 2
    number = format_number(amount, settings, places)
    symbol = currency_symbol(settings.currency_code)
    # No "-$0.00"
    shown = abs(amount).quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)
    sign = "-" if amount < 0 and shown != 0 else ""

    if settings.number_format is NumberFormat.US:
        return f"{sign}{symbol}{number}"
    return f"{sign}{number} {symbol}"


def sample_currency(settings: FormatSettings) -> str:
    """What 1234.56 looks like under these settings."""
    return format_currency(Decimal("1234.56"), settings)


def format_date(value: date, settings: FormatSettings) -> str:
    return value.strftime(_DATE_PATTERNS[settings.date_format])


def format_percentage(fraction: Decimal, places: int = 0) -> str:
    """0.455 -> '46%'; with places=1 -> '45.5%'."""
    quantum = Decimal(1).scaleb(-places)
    return f"{(fraction * 100).quantize(quantum, rounding=ROUND_HALF_UP):f}%"
