"""
Tolerant parsing of statement cell values.

Dates: the exact formats of the user's preferred convention are tried
first, then the other conventions, then python-dateutil's parser with the
matching day-first setting. Ambiguous dates like 03/04/2024 therefore
follow the user's preference. dateutil's answer is only taken when the
text names a day, a month and a year; fragments like "12" or "2024" are
rejected rather than completed from today's date.

Amounts: currency symbols and the configured currency code are ignored.
Which of "," and "." is the decimal separator is read from where they sit
in the value ("1.234,56" vs "1,234.56"); the configured number format only
settles a lone separator followed by exactly three digits ("1,234").
A value whose decimal separator contradicts the configured format is
rejected, never reinterpreted. "(12.50)" and "12.50-" are negative.

Both functions raise ValueError on failure; the importer turns that into
a row error.
"""

import unicodedata
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Optional

from dateutil import parser as date_parser

from zerobudget.config import DateFormat, FormatSettings


_FORMATS: dict[DateFormat, tuple[str, ...]] = {
    DateFormat.US: ("%m/%d/%Y", "%m/%d/%y", "%m-%d-%Y"),
    DateFormat.EUROPEAN: ("%d/%m/%Y", "%d/%m/%y", "%d.%m.%Y", "%d-%m-%Y"),
    DateFormat.ISO: ("%Y-%m-%d", "%Y/%m/%d", "%Y%m%d"),
}

_WORDY_FORMATS = ("%d %b %Y", "%d %B %Y", "%b %d, %Y", "%B %d, %Y", "%b %d %Y")

# Two defaults that differ in year, month and day. A component missing
# from the text shows up as a difference between the two parses.
_SENTINEL_DEFAULTS = (datetime(1999, 1, 1), datetime(2001, 2, 2))


def _candidate_formats(preference: DateFormat) -> list[str]:
    formats = list(_FORMATS[preference])
    for convention, patterns in _FORMATS.items():
        if convention is not preference:
            formats.extend(patterns)
    formats.extend(_WORDY_FORMATS)
    return formats


def parse_date(raw: str, settings: FormatSettings) -> date:
    value = (raw or "").strip()
    if not value:
        raise ValueError("empty date")

    for fmt in _candidate_formats(settings.date_format):
        try:
            return datetime.strptime(value, fmt).date()
        except ValueError:
            continue

    if not any(ch.isdigit() for ch in value):
        raise ValueError(f"no date in {value!r}")

    parsed = []
    for default in _SENTINEL_DEFAULTS:
        try:
            parsed.append(date_parser.parse(
                value,
                default=default,
                dayfirst=settings.date_format is DateFormat.EUROPEAN,
                yearfirst=settings.date_format is DateFormat.ISO,
            ).date())
        except (ValueError, OverflowError) as e:
            raise ValueError(str(e)) from e
    if parsed[0] != parsed[1]:
        raise ValueError(f"incomplete date {value!r}: day, month and year are all required")
    return parsed[0]


def _decimal_mark(value: str, settings: FormatSettings) -> tuple[Optional[str], Optional[str]]:
    """(decimal separator, grouping separator) as used in `value`, either may be None."""
    commas, dots = value.count(","), value.count(".")
    if commas and dots:
        decimal = "," if value.rfind(",") > value.rfind(".") else "."
        return decimal, "." if decimal == "," else ","
    if not (commas or dots):
        return None, None

    mark = "," if commas else "."
    if value.count(mark) > 1:
        return None, mark
    digits_after = len(value) - value.rfind(mark) - 1
    if digits_after == 3 and mark != settings.decimal_separator:
        return None, mark
    return mark, None


def _check_grouping(integer_part: str, grouping: str, raw: str) -> None:
    groups = integer_part.split(grouping)
    if not 1 <= len(groups[0]) <= 3 or any(len(g) != 3 for g in groups[1:]):
        raise ValueError(f"misplaced '{grouping}' grouping in {raw!r}")


def parse_amount(raw: str, settings: FormatSettings) -> Decimal:
    """Signed Decimal from a statement cell."""
    value = (raw or "").strip()
    if not value:
        raise ValueError("empty amount")

    negative = False
    if value.startswith("(") and value.endswith(")"):
        negative = True
        value = value[1:-1].strip()

    code = settings.currency_code
    if value.upper().startswith(code):
        value = value[len(code):]
    elif value.upper().endswith(code):
        value = value[:-len(code)]

    # Currency symbols and spaces
    value = "".join(
        ch for ch in value
        if unicodedata.category(ch) != "Sc" and ch not in (" ", "\u00a0")
    ).strip()

    if value.endswith("-"):
        negative = not negative
        value = value[:-1].strip()
    if value.startswith("-"):
        negative = not negative
        value = value[1:].strip()
    elif value.startswith("+"):
        value = value[1:].strip()

    decimal, grouping = _decimal_mark(value, settings)
    if decimal is not None and decimal != settings.decimal_separator:
        raise ValueError(
            f"{raw!r} uses '{decimal}' as decimal separator, "
            f"but the number format is {settings.number_format.value}"
        )
    if grouping is not None and grouping == settings.decimal_separator:
        raise ValueError(
            f"{raw!r} uses '{grouping}' for grouping, "
            f"but the number format is {settings.number_format.value}"
        )

    integer_part, _, fraction = value.partition(decimal) if decimal else (value, "", "")
    if grouping is not None:
        _check_grouping(integer_part, grouping, raw)
        integer_part = integer_part.replace(grouping, "")
    value = f"{integer_part}.{fraction}" if decimal else integer_part

    if not value or any(ch not in "0123456789." for ch in value):
        raise ValueError(f"not a number: {raw!r}")
    try:
        amount = Decimal(value)
    except InvalidOperation as e:
        raise ValueError(f"not a number: {raw!r}") from e

    return -amount if negative else amount
