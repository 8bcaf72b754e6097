"""
Currency, month and date parsing helpers.

Pure functions shared by the reconciliation flows and the pacing engine. They
turn raw spreadsheet cells and request parameters into canonical values:

- Month labels ("Jan26", "January 2026", "1/26") -> "YYYY-MM-01"
- Currency cells ("$157,271.11", "(1,200.00)") -> float
- Category labels ("  Brand  Safety Vendor ") -> "brand safety vendor"

None of these functions raise on bad cell text; they return None (or 0.0 for
partner-feed totals) and leave the skip/log decision to the caller. Request
parameters are different: normalize_month_param raises MalformedInputError
because a bad month in a request is the caller's error, not a dirty row.
"""

import calendar
import math
import re
from datetime import date, timedelta
from decimal import ROUND_HALF_DOWN, ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Iterator, Optional, Union

from pacing_backend.core.errors import MalformedInputError

# =============================================================================
# CONSTANTS
# =============================================================================

MONTH_NAMES = {
    name.lower(): index
    for index, name in enumerate(calendar.month_name)
    if name
}

# "Jan26", "Jan 2026", "January 26", "Sept-25", "Jan '26"
_NAMED_MONTH_RE = re.compile(r"^([a-z]{3,9})\.?[\s\-'/]*(\d{2}|\d{4})$")

# "1/26", "01/2026"
_NUMERIC_MONTH_RE = re.compile(r"^(\d{1,2})\s*/\s*(\d{2}|\d{4})$")

# "2026-01" or "2026-01-01"
_ISO_MONTH_RE = re.compile(r"^(\d{4})-(\d{1,2})(?:-01)?$")

_AMOUNT_STRIP_RE = re.compile(r"[$,\s]")


# =============================================================================
# Month labels
# =============================================================================

def _full_year(year_text: str) -> int:
    year = int(year_text)
    return 2000 + year if year < 100 else year


def _month_number(word: str) -> Optional[int]:
    """Map a month word to 1-12 when it is a prefix of a month name."""
    for name, number in MONTH_NAMES.items():
        if name.startswith(word):
            return number
    return None


def parse_month_key(cell: Any) -> Optional[str]:
    """
    Parse a spreadsheet month label into a canonical month key.

    Accepted forms (case-insensitive, surrounding whitespace ignored):
        Jan26, Jan 26, Jan 2026, Jan-26, January 26, january 2026,
        1/26, 01/2026, 2026-01, 2026-01-01

    Two-digit years map to 20YY.

    Args:
        cell: Raw cell value; anything that is not a recognised label yields None.

    Returns:
        "YYYY-MM-01", or None for empty or unrecognised text.

    Example:
        >>> parse_month_key("Jan26")
        '2026-01-01'
        >>> parse_month_key("Total") is None
        True
    """
    if cell is None:
        return None
    raw = str(cell).strip().lower()
    if not raw:
        return None

    month: Optional[int] = None
    year: Optional[int] = None

    named = _NAMED_MONTH_RE.match(raw)
    if named:
        month = _month_number(named.group(1))
        year = _full_year(named.group(2))
    else:
        numeric = _NUMERIC_MONTH_RE.match(raw)
        if numeric:
            month = int(numeric.group(1))
            year = _full_year(numeric.group(2))
        else:
            iso = _ISO_MONTH_RE.match(raw)
            if iso:
                year = int(iso.group(1))
                month = int(iso.group(2))

    if month is None or year is None or not 1 <= month <= 12:
        return None
    return f"{year:04d}-{month:02d}-01"


def normalize_category(label: Any) -> str:
    """Trim, collapse inner whitespace and casefold a category label."""
    if label is None:
        return ""
    return " ".join(str(label).split()).casefold()


# =============================================================================
# Amounts
# =============================================================================

def parse_amount(cell: Any) -> Optional[float]:
    """
    Parse a currency cell into a float.

    Strips "$", thousands separators and whitespace. Accounting negatives
    "(1,234.50)" and a leading "-" both give negative values.

    Returns:
        The amount; 0.0 for an empty cell; None when text remains that is
        not a number.

    Example:
        >>> parse_amount("$157,271.11")
        157271.11
        >>> parse_amount("(25.00)")
        -25.0
        >>> parse_amount("") == 0.0
        True
        >>> parse_amount("n/a") is None
        True
    """
    if cell is None:
        return 0.0
    if isinstance(cell, bool):
        return None
    if isinstance(cell, (int, float)):
        value = float(cell)
        return value if math.isfinite(value) else None

    raw = str(cell).strip()
    if not raw:
        return 0.0

    negative = False
    if raw.startswith("(") and raw.endswith(")"):
        negative = True
        raw = raw[1:-1]

    cleaned = _AMOUNT_STRIP_RE.sub("", raw)
    if cleaned.startswith("-"):
        negative = not negative
        cleaned = cleaned[1:]
    if not cleaned:
        return 0.0

    try:
        # Decimal keeps cent values exact before the single float conversion
        value = Decimal(cleaned)
    except InvalidOperation:
        return None
    if not value.is_finite():
        return None

    amount = float(value)
    return -amount if negative else amount


def parse_currency_value(value: Any) -> float:
    """
    Coerce a partner feed total into a float.

    Numbers pass through, strings are cleaned like parse_amount, anything
    else (None, dicts, garbage text) becomes 0.0.
    """
    amount = parse_amount(value) if value is not None else 0.0
    return amount if amount is not None else 0.0


def round_half_up(value: float, digits: int = 0) -> float:
    """
    Round halves toward positive infinity, the way dashboard figures are rounded.

    Python's round() uses banker's rounding, which would show 12.5% as 12%.
    Negative halves go up as well: -2.5 gives -2.
    """
    quantum = Decimal(1).scaleb(-digits)
    rounding = ROUND_HALF_UP if value >= 0 else ROUND_HALF_DOWN
    return float(Decimal(repr(value)).quantize(quantum, rounding=rounding))


# =============================================================================
# Calendar helpers
# =============================================================================

def normalize_month_param(value: Union[str, date, None]) -> Optional[date]:
    """
    Turn a "YYYY-MM" or "YYYY-MM-DD" request parameter into a month start.

    Returns:
        First day of the month, or None when value is None or blank.

    Raises:
        MalformedInputError: If the text is not a valid year and month.
    """
    if value is None:
        return None
    if isinstance(value, date):
        return value.replace(day=1)

    raw = str(value).strip()
    if not raw:
        return None
    match = re.match(r"^(\d{4})-(\d{1,2})(?:-(\d{1,2}))?$", raw)
    if not match:
        raise MalformedInputError(f"Invalid month '{value}', expected YYYY-MM or YYYY-MM-01")
    year, month = int(match.group(1)), int(match.group(2))
    if not 1 <= month <= 12:
        raise MalformedInputError(f"Invalid month '{value}': month must be 1-12")
    return date(year, month, 1)


def month_start(day: date) -> date:
    return day.replace(day=1)


def days_in_month(day: date) -> int:
    return calendar.monthrange(day.year, day.month)[1]


def month_end(day: date) -> date:
    return day.replace(day=days_in_month(day))


def prior_month(day: date) -> date:
    """First day of the month before the one containing day."""
    return (month_start(day) - timedelta(days=1)).replace(day=1)


def next_month(day: date) -> date:
    """First day of the month after the one containing day."""
    return month_end(day) + timedelta(days=1)


def month_key(day: date) -> str:
    """"YYYY-MM" label of the month containing day."""
    return f"{day.year:04d}-{day.month:02d}"


def iter_days(start: date, end: date) -> Iterator[date]:
    """Every calendar day from start through end inclusive."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)
