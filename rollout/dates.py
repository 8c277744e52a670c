"""Date normalisation for milestone columns.

The only textual form written to a date column is ``DD-MMM-YYYY``
(``05-Jan-2024``).  ``DD/MMM/YYYY`` is accepted and rewritten with dashes, and
numeric spreadsheet serials are converted from the 1899-12-30 epoch.  Every
other shape is rejected rather than guessed: ``01/02/24`` or ``2024-02-01``
cannot be read without knowing the author's locale, and a skipped cell is
recoverable while a silently misread milestone is not.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Optional

SPREADSHEET_EPOCH = date(1899, 12, 30)
MIN_SERIAL = 1
MAX_SERIAL = 60000

MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")
_MONTH_NUMBERS = {name.upper(): number for number, name in enumerate(MONTHS, start=1)}
_TEXT_DATE_RE = re.compile(r"^(\d{2})([-/])([A-Za-z]{3})\2(\d{4})$")


@dataclass(frozen=True)
class DateResult:
    """Outcome of normalising one candidate value."""

    value: Optional[str]

    @property
    def valid(self) -> bool:
        return self.value is not None


def format_date(value: date) -> str:
    return f"{value.day:02d}-{MONTHS[value.month - 1]}-{value.year:04d}"


def from_serial(serial: float) -> Optional[str]:
    """Return the canonical date for a spreadsheet serial, or ``None``."""

    if not MIN_SERIAL <= serial <= MAX_SERIAL:
        return None
    return format_date(SPREADSHEET_EPOCH + timedelta(days=int(serial)))


def _from_text(text: str) -> Optional[str]:
    match = _TEXT_DATE_RE.match(text.strip())
    if not match:
        return None
    day, _separator, month_name, year = match.groups()
    month = _MONTH_NUMBERS.get(month_name.upper())
    if month is None:
        return None
    try:
        parsed = date(int(year), month, int(day))
    except ValueError:
        return None
    return format_date(parsed)


def normalise_date(value: Any) -> DateResult:
    """Canonicalise ``value`` or flag it as rejected."""

    if isinstance(value, bool) or value is None:
        return DateResult(None)
    if isinstance(value, datetime):
        return DateResult(format_date(value.date()))
    if isinstance(value, date):
        return DateResult(format_date(value))
    if isinstance(value, (int, float)):
        return DateResult(from_serial(value))
    if isinstance(value, str):
        return DateResult(_from_text(value))
    return DateResult(None)


__all__ = [
    "DateResult",
    "MAX_SERIAL",
    "MIN_SERIAL",
    "SPREADSHEET_EPOCH",
    "format_date",
    "from_serial",
    "normalise_date",
]
