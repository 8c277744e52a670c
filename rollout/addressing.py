"""A1 notation helpers for rollout worksheets.

Positions inside the engine are 0-based: data row 0 is the first row below
the header and column 0 is column ``A``.  The helpers here translate those
positions into the addresses the Sheets API expects, quoting worksheet titles
so that names with spaces or apostrophes never trigger "Unable to parse
range" errors.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import MutableSequence

HEADER_ROWS = 1
FULL_COLUMN_SPAN = 702  # A..ZZ

_A1_CELL_RE = re.compile(r"^([A-Za-z]+)([1-9][0-9]*)$")


def column_letter(index: int) -> str:
    """Return the column letters for a 0-based column ``index``."""

    if index < 0:
        raise ValueError("Column index must be >= 0")
    index += 1
    letters: MutableSequence[str] = []
    while index:
        index, remainder = divmod(index - 1, 26)
        letters.append(chr(65 + remainder))
    return "".join(reversed(letters))


def column_index(letters: str) -> int:
    """Return the 0-based column index for ``letters`` such as ``"AB"``."""

    text = (letters or "").strip().upper()
    if not text or not text.isalpha() or not text.isascii():
        raise ValueError(f"Invalid column letters: {letters!r}")
    value = 0
    for char in text:
        value = value * 26 + (ord(char) - 64)
    return value - 1


def sheet_row_number(data_index: int) -> int:
    """Return the 1-based sheet row number for a 0-based data-row index."""

    if data_index < 0:
        raise ValueError("Data row index must be >= 0")
    return data_index + HEADER_ROWS + 1


def quote_title(title: str) -> str:
    """Return ``title`` single-quoted according to A1 notation rules."""

    safe = (title or "").strip()
    if len(safe) >= 2 and safe[0] == safe[-1] and safe[0] in {"'", '"'}:
        safe = safe[1:-1].replace("''", "'").strip()
    if not safe:
        raise ValueError("Worksheet title must not be empty")
    return "'" + safe.replace("'", "''") + "'"


def a1_range(title: str, range_spec: str) -> str:
    return f"{quote_title(title)}!{range_spec}"


@dataclass(frozen=True)
class CellAddress:
    """Store-native address of a single cell."""

    row_number: int
    column: str

    @classmethod
    def for_cell(cls, data_index: int, column: int) -> "CellAddress":
        return cls(row_number=sheet_row_number(data_index), column=column_letter(column))

    @classmethod
    def parse(cls, reference: str) -> "CellAddress":
        match = _A1_CELL_RE.match((reference or "").strip())
        if not match:
            raise ValueError(f"Invalid cell reference: {reference!r}")
        return cls(row_number=int(match.group(2)), column=match.group(1).upper())

    @property
    def a1(self) -> str:
        return f"{self.column}{self.row_number}"

    def qualified(self, title: str) -> str:
        return a1_range(title, self.a1)

    def __str__(self) -> str:
        return self.a1


__all__ = [
    "CellAddress",
    "FULL_COLUMN_SPAN",
    "HEADER_ROWS",
    "a1_range",
    "column_index",
    "column_letter",
    "quote_title",
    "sheet_row_number",
]
