"""Header discovery for rollout worksheets."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from rollout.errors import SchemaError
from rollout.matching import NameIndex, cell_text


@dataclass
class SheetSchema:
    """Column layout derived from a header row.

    ``columns`` keeps every header cell in order, blanks included, so that
    positions line up with the sheet.  ``index`` maps each non-blank name to
    its first position.
    """

    columns: List[str]
    index: Dict[str, int]
    _names: NameIndex = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        self._names = NameIndex(self.columns)

    def resolve(self, name: Any) -> Optional[int]:
        """Return the position of ``name`` using tiered matching, or ``None``."""

        if isinstance(name, str) and name in self.index:
            return self.index[name]
        match = self._names.lookup(name)
        return None if match is None else match.index

    def name_at(self, position: int) -> str:
        return self.columns[position]

    @property
    def names(self) -> List[str]:
        return [name for name in self.columns if name.strip()]

    def __len__(self) -> int:
        return len(self.columns)


def discover_schema(header: Sequence[Any]) -> SheetSchema:
    """Build a :class:`SheetSchema` from the raw ``header`` row."""

    columns = [cell_text(value) for value in header]
    if not any(name.strip() for name in columns):
        raise SchemaError("Header row is empty.")
    index: Dict[str, int] = {}
    for position, name in enumerate(columns):
        if name.strip():
            index.setdefault(name, position)
    return SheetSchema(columns=columns, index=index)


def split_sheet(rows: Sequence[Sequence[Any]]) -> tuple[SheetSchema, List[List[Any]]]:
    """Return the schema and data rows of a full-sheet read."""

    if not rows:
        raise SchemaError("Sheet has no rows.")
    schema = discover_schema(rows[0])
    return schema, [list(row) for row in rows[1:]]


__all__ = ["SheetSchema", "discover_schema", "split_sheet"]
