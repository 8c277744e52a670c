"""Write protection rules for rollout cells."""

from __future__ import annotations

from enum import Enum
from typing import Any, Iterable

from rollout.matching import NameIndex, is_blank


class Protection(Enum):
    WRITABLE = "writable"
    IDENTIFIER = "identifier"
    DATE = "date"


class ProtectionPolicy:
    """Decide whether a cell may be written.

    Rules, first hit wins:

    1. the identifier column is never writable;
    2. a protected date column is writable only while its current value is
       blank;
    3. every other cell is writable.

    Column names are compared with the tiered matching of
    :mod:`rollout.matching`, so ``"atp approved"`` protects ``"ATP Approved"``.
    """

    def __init__(self, identifier_column: str, date_columns: Iterable[str] = ()) -> None:
        self.identifier_column = identifier_column
        self.date_columns = [name for name in date_columns if name and str(name).strip()]
        self._identifier = NameIndex([identifier_column])
        self._dates = NameIndex(self.date_columns)

    def is_identifier(self, column_name: Any) -> bool:
        return column_name in self._identifier

    def is_date_column(self, column_name: Any) -> bool:
        return column_name in self._dates

    def check(self, column_name: Any, current_value: Any) -> Protection:
        if self.is_identifier(column_name):
            return Protection.IDENTIFIER
        if self.is_date_column(column_name) and not is_blank(current_value):
            return Protection.DATE
        return Protection.WRITABLE


__all__ = ["Protection", "ProtectionPolicy"]
