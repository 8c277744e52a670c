"""Tiered matching of identifiers and column names.

Imported spreadsheets drift from the live sheet: identifiers gain trailing
spaces and headers change case.  Every place that compares a row identifier or
a column name goes through the same ordered list of strategies defined here:

1. ``exact``      - the stringified values are identical.
2. ``normalised`` - trimmed, upper-cased, internal whitespace collapsed.

Whitespace inside a value is significant: ``AB12`` and ``AB 12`` are different
identifiers.

The first strategy that produces a hit wins and, within a strategy, the first
candidate in document order wins.  Duplicates are never deduplicated.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)


def cell_text(value: Any) -> str:
    """Return the text a spreadsheet would display for ``value``."""

    if value is None:
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def is_blank(value: Any) -> bool:
    return not cell_text(value).strip()


def _exact(text: str) -> str:
    return text


def _normalised(text: str) -> str:
    return " ".join(text.split()).upper()


def _squash(text: str) -> str:
    return "".join(text.split()).upper()


@dataclass(frozen=True)
class MatchStrategy:
    name: str
    normalise: Callable[[str], str]


STRATEGIES: Tuple[MatchStrategy, ...] = (
    MatchStrategy("exact", _exact),
    MatchStrategy("normalised", _normalised),
)


@dataclass(frozen=True)
class Match:
    """Position of the winning candidate and the strategy that found it."""

    index: int
    strategy: str


class NameIndex:
    """Lookup table answering tiered matches against a fixed candidate list.

    The index is built from one snapshot and must not outlive the call that
    read it.
    """

    def __init__(self, candidates: Iterable[Any]) -> None:
        self._tables: List[Dict[str, int]] = [{} for _ in STRATEGIES]
        for position, candidate in enumerate(candidates):
            text = cell_text(candidate)
            if not text.strip():
                continue
            for table, strategy in zip(self._tables, STRATEGIES):
                table.setdefault(strategy.normalise(text), position)

    def lookup(self, value: Any) -> Optional[Match]:
        text = cell_text(value)
        if not text.strip():
            return None
        for table, strategy in zip(self._tables, STRATEGIES):
            position = table.get(strategy.normalise(text))
            if position is not None:
                return Match(index=position, strategy=strategy.name)
        return None

    def __contains__(self, value: Any) -> bool:
        return self.lookup(value) is not None


def row_value(row: Sequence[Any], column: int) -> Any:
    """Return the value of ``column`` in a sparse ``row`` (missing cells are empty)."""

    return row[column] if 0 <= column < len(row) else ""


def locate_row(data_rows: Sequence[Sequence[Any]], column: int, value: Any) -> Optional[int]:
    """Return the data-row index whose ``column`` matches ``value`` or ``None``."""

    match = NameIndex(row_value(row, column) for row in data_rows).lookup(value)
    if match is None:
        return None
    if match.strategy != "exact":
        logger.debug("Identifier %r resolved to data row %d by %s match", value, match.index, match.strategy)
    return match.index


def match_name(names: Sequence[Any], name: Any) -> Optional[int]:
    """Return the position of ``name`` among ``names`` or ``None``."""

    match = NameIndex(names).lookup(name)
    return None if match is None else match.index


def partial_matches(values: Iterable[Any], search: Any, *, limit: int = 5) -> List[str]:
    """Return candidates that share a prefix with ``search``, for diagnostics."""

    needle = _squash(cell_text(search))
    if not needle:
        return []
    prefix = needle[:10]
    found: List[str] = []
    for value in values:
        text = cell_text(value)
        if not text.strip():
            continue
        if _squash(text).startswith(prefix) or needle[:15] in _squash(text):
            found.append(text)
            if len(found) >= limit:
                break
    return found


__all__ = [
    "Match",
    "MatchStrategy",
    "NameIndex",
    "STRATEGIES",
    "cell_text",
    "is_blank",
    "locate_row",
    "match_name",
    "partial_matches",
    "row_value",
]
