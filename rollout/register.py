"""Registration of new rollout rows.

Rows are validated as a whole before anything is appended: a payload with a
missing required field, too many rows, or an identifier that already exists
is rejected without touching the sheet.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from rollout.errors import DuplicateIdentifierError, SchemaError, ValidationError
from rollout.matching import NameIndex, cell_text, is_blank, row_value
from rollout.reconcile import DEFAULT_IDENTIFIER_COLUMN
from rollout.schema import split_sheet

logger = logging.getLogger(__name__)

DEFAULT_REQUIRED_FIELDS = ("DUID", "DU Name", "Region", "Project Code")
DEFAULT_MAX_ROWS = 20


@dataclass
class RegistrationResult:
    count: int
    updated_range: str = ""

    def to_json(self) -> Dict[str, object]:
        return {"count": self.count, "range": self.updated_range}


def _field(record: Mapping[str, Any], name: str) -> Any:
    keys = list(record.keys())
    match = NameIndex(keys).lookup(name)
    return None if match is None else record[keys[match.index]]


def _validate(records: List[Dict[str, Any]], required: Sequence[str], max_rows: int) -> None:
    if not records:
        raise ValidationError("No rows to register.")
    if len(records) > max_rows:
        raise ValidationError(f"At most {max_rows} rows can be registered at once.")
    for number, record in enumerate(records, start=1):
        for name in required:
            if is_blank(_field(record, name)):
                raise ValidationError(f"Row {number}: missing required field {name!r}")


def _duplicates(identifiers: Sequence[Any], existing: NameIndex) -> List[str]:
    duplicates: List[str] = []
    for position, identifier in enumerate(identifiers):
        earlier = NameIndex(identifiers[:position])
        if identifier in existing or identifier in earlier:
            duplicates.append(cell_text(identifier))
    return duplicates


def register_rows(
    store,
    sheet_name: str,
    rows: Iterable[Mapping[str, Any]],
    *,
    identifier_column: str = DEFAULT_IDENTIFIER_COLUMN,
    required_fields: Sequence[str] = DEFAULT_REQUIRED_FIELDS,
    max_rows: int = DEFAULT_MAX_ROWS,
) -> RegistrationResult:
    """Append ``rows`` to ``sheet_name`` and return the appended range.

    Record keys are matched to header columns with the shared matching
    strategies; keys without a column and blank values are dropped.  The
    identifier column is always required, in addition to ``required_fields``.
    """

    records = [dict(row) for row in rows]
    required = list(required_fields)
    if NameIndex(required).lookup(identifier_column) is None:
        required.append(identifier_column)
    _validate(records, required, max_rows)

    schema, data_rows = split_sheet(store.read_sheet(sheet_name))
    position = schema.resolve(identifier_column)
    if position is None:
        raise SchemaError(f"Identifier column {identifier_column!r} not found in sheet {sheet_name!r}")

    existing = NameIndex(row_value(row, position) for row in data_rows)
    identifiers = [_field(record, identifier_column) for record in records]
    duplicates = _duplicates(identifiers, existing)
    if duplicates:
        raise DuplicateIdentifierError(
            f"Duplicate identifiers: {', '.join(duplicates)}",
            duplicates=duplicates,
        )

    occupied = [index for index, name in enumerate(schema.columns) if name.strip()]
    first, last = occupied[0], occupied[-1]
    values: List[List[Any]] = []
    for record in records:
        line: List[Any] = [""] * (last - first + 1)
        for key, value in record.items():
            column: Optional[int] = schema.resolve(key)
            if column is None or column < first or is_blank(value):
                logger.debug("Dropping field %r while registering into %r", key, sheet_name)
                continue
            line[column - first] = value
        values.append(line)

    updated_range = store.append_rows(sheet_name, values, start_column=first, end_column=last)
    logger.info("Registered %d row(s) in %r at %s", len(values), sheet_name, updated_range or "?")
    return RegistrationResult(count=len(values), updated_range=updated_range)


__all__ = [
    "DEFAULT_MAX_ROWS",
    "DEFAULT_REQUIRED_FIELDS",
    "RegistrationResult",
    "register_rows",
]
