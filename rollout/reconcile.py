"""Row reconciliation and safe updates for rollout worksheets.

The public entry points mirror the edits the dashboard performs:

``single_cell_edit``
    Update one cell addressed by identifier value and column name.  An
    unresolved row or column raises before anything is written.
``bulk_import``
    Apply a list of imported records.  Every record is matched to its row
    independently; unmatched rows and columns are counted and skipped so a
    handful of bad records never aborts the import.  All accepted cells are
    submitted in a single batch.
``preview_import``
    Run ``bulk_import`` without writing, for the import preview dialog.
``batch_update_cells``
    Apply inline table edits given as ``(identifier, column, value)`` triples.

Each call reads the whole worksheet once, decides every cell against that
snapshot and writes once.  Nothing is cached between calls, which keeps each
call consistent with the data it read but does not isolate concurrent calls
from one another: two imports racing on the same ordinary cell resolve to
whichever batch lands last.  Identifier cells and already recorded milestone
dates cannot be lost that way because they are never written.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from rollout.addressing import CellAddress
from rollout.diff import CellDecision, SkipReason, evaluate_cell
from rollout.errors import RowNotFoundError, SchemaError, StaleValueError, UnknownColumnError
from rollout.matching import NameIndex, cell_text, partial_matches, row_value
from rollout.protection import ProtectionPolicy
from rollout.schema import SheetSchema, split_sheet
from rollout.sheets_client import CellWrite

logger = logging.getLogger(__name__)

DEFAULT_IDENTIFIER_COLUMN = "RowId"
MAX_DIAGNOSTIC_CANDIDATES = 20


@dataclass(frozen=True)
class WrittenCell:
    identifier: str
    column: str
    address: str = ""


@dataclass(frozen=True)
class CellUpdate:
    identifier: Any
    column: str
    value: Any


def _empty_reasons() -> Dict[SkipReason, int]:
    return {reason: 0 for reason in SkipReason}


@dataclass
class ReconciliationReport:
    """Aggregate outcome of a bulk reconciliation call.

    ``updated_count`` counts accepted cell decisions; ``committed`` is the
    cell count the store reported for the submitted batch (0 for dry runs).
    """

    sheet_name: str
    total_rows: int = 0
    updated_count: int = 0
    committed: int = 0
    dry_run: bool = False
    skip_reasons: Dict[SkipReason, int] = field(default_factory=_empty_reasons)
    written_cells: List[WrittenCell] = field(default_factory=list)

    @property
    def skipped_count(self) -> int:
        return sum(self.skip_reasons.values())

    def record_skip(self, reason: SkipReason, count: int = 1) -> None:
        self.skip_reasons[reason] += count

    def to_json(self) -> Dict[str, object]:
        return {
            "sheetName": self.sheet_name,
            "totalRows": self.total_rows,
            "updatedCount": self.updated_count,
            "skippedCount": self.skipped_count,
            "skipReasons": {reason.value: count for reason, count in self.skip_reasons.items()},
            "writtenCells": [
                {"identifier": cell.identifier, "column": cell.column} for cell in self.written_cells
            ],
            "committed": self.committed,
            "dryRun": self.dry_run,
        }


@dataclass
class EditResult:
    """Outcome of a single cell edit."""

    updated_count: int
    cell_address: str
    column: str
    old_value: Any
    new_value: Any
    sheet_row_number: int
    skip_reason: Optional[SkipReason] = None

    def to_json(self) -> Dict[str, object]:
        return {
            "updatedCount": self.updated_count,
            "cellAddress": self.cell_address,
            "column": self.column,
            "oldValue": self.old_value,
            "newValue": self.new_value,
            "sheetRowNumber": self.sheet_row_number,
            "skipReason": self.skip_reason.value if self.skip_reason else None,
        }


@dataclass
class _Snapshot:
    sheet_name: str
    schema: SheetSchema
    data_rows: List[List[Any]]
    identifier_position: int
    identifiers: NameIndex

    @property
    def identifier_column(self) -> str:
        return self.schema.name_at(self.identifier_position)

    def identifier_values(self) -> List[str]:
        return [cell_text(row_value(row, self.identifier_position)) for row in self.data_rows]


def _load_snapshot(store, sheet_name: str, identifier_column: str) -> _Snapshot:
    schema, data_rows = split_sheet(store.read_sheet(sheet_name))
    position = schema.resolve(identifier_column)
    if position is None:
        raise SchemaError(f"Identifier column {identifier_column!r} not found in sheet {sheet_name!r}")
    identifiers = NameIndex(row_value(row, position) for row in data_rows)
    logger.debug(
        "Sheet %r: %d columns, %d data rows, identifier column %r",
        sheet_name,
        len(schema),
        len(data_rows),
        schema.name_at(position),
    )
    return _Snapshot(sheet_name, schema, data_rows, position, identifiers)


def _policy(snapshot: _Snapshot, settings_provider) -> ProtectionPolicy:
    date_columns: List[str] = []
    if settings_provider is not None:
        date_columns = list(settings_provider.date_columns())
    return ProtectionPolicy(snapshot.identifier_column, date_columns)


def _record_identifier(record: Mapping[str, Any], identifier_column: str) -> Any:
    keys = NameIndex([identifier_column])
    for key, value in record.items():
        if key in keys:
            return value
    return None


def _reconcile(
    store,
    snapshot: _Snapshot,
    policy: ProtectionPolicy,
    items: Sequence[Tuple[Any, Mapping[str, Any]]],
    *,
    dry_run: bool,
) -> ReconciliationReport:
    report = ReconciliationReport(sheet_name=snapshot.sheet_name, total_rows=len(items), dry_run=dry_run)
    pending: Dict[Tuple[int, int], CellWrite] = {}
    written: Dict[Tuple[int, int], WrittenCell] = {}

    for identifier, fields in items:
        match = snapshot.identifiers.lookup(identifier)
        if match is None:
            logger.warning("Identifier %r not found in %r; skipping %d field(s)", identifier, snapshot.sheet_name, len(fields))
            report.record_skip(SkipReason.UNKNOWN_ROW, len(fields))
            continue
        row = snapshot.data_rows[match.index]
        row_identifier = cell_text(row_value(row, snapshot.identifier_position))

        for key, new_value in fields.items():
            position = snapshot.schema.resolve(key)
            if position is None:
                logger.debug("Column %r not found in %r", key, snapshot.sheet_name)
                report.record_skip(SkipReason.UNKNOWN_COLUMN)
                continue
            column_name = snapshot.schema.name_at(position)
            cell_key = (match.index, position)
            current = pending[cell_key].value if cell_key in pending else row_value(row, position)
            decision: CellDecision = evaluate_cell(policy, column_name, current, new_value)
            if not decision.queued:
                logger.debug("Skip %s/%s: %s", row_identifier, column_name, decision.skip.value)
                report.record_skip(decision.skip)
                continue
            address = CellAddress.for_cell(match.index, position)
            pending[cell_key] = CellWrite(address=address, value=decision.value)
            written[cell_key] = WrittenCell(identifier=row_identifier, column=column_name, address=address.a1)
            report.updated_count += 1

    report.written_cells = list(written.values())
    logger.info(
        "Reconciliation of %r: %d cell(s) to update, %d skipped%s",
        snapshot.sheet_name,
        report.updated_count,
        report.skipped_count,
        " (dry run)" if dry_run else "",
    )
    if pending and not dry_run:
        report.committed = store.write_batch(snapshot.sheet_name, list(pending.values()))
        logger.info("Batch update committed %d cell(s) to %r", report.committed, snapshot.sheet_name)
    return report


def bulk_import(
    store,
    sheet_name: str,
    records: Iterable[Mapping[str, Any]],
    *,
    identifier_column: str = DEFAULT_IDENTIFIER_COLUMN,
    settings_provider=None,
    dry_run: bool = False,
) -> ReconciliationReport:
    """Reconcile imported ``records`` against ``sheet_name``.

    Every field of a record, including its identifier field, is counted
    either as an update or under exactly one skip reason.  Records whose
    identifier cannot be matched count all of their fields as
    ``UNKNOWN_ROW``.  A store failure while writing the batch propagates as
    :class:`rollout.errors.StoreError`; in that case no cell should be
    assumed committed.
    """

    records = [dict(record) for record in records]
    logger.info("Bulk import into %r: %d record(s)", sheet_name, len(records))
    snapshot = _load_snapshot(store, sheet_name, identifier_column)
    policy = _policy(snapshot, settings_provider)
    items = [(_record_identifier(record, snapshot.identifier_column), record) for record in records]
    return _reconcile(store, snapshot, policy, items, dry_run=dry_run)


def preview_import(
    store,
    sheet_name: str,
    records: Iterable[Mapping[str, Any]],
    *,
    identifier_column: str = DEFAULT_IDENTIFIER_COLUMN,
    settings_provider=None,
) -> ReconciliationReport:
    """Return the report ``bulk_import`` would produce, without writing."""

    return bulk_import(
        store,
        sheet_name,
        records,
        identifier_column=identifier_column,
        settings_provider=settings_provider,
        dry_run=True,
    )


def batch_update_cells(
    store,
    sheet_name: str,
    cell_updates: Iterable[CellUpdate],
    *,
    identifier_column: str = DEFAULT_IDENTIFIER_COLUMN,
    settings_provider=None,
) -> ReconciliationReport:
    """Apply inline cell edits through the same rules as a bulk import."""

    grouped: Dict[str, Tuple[Any, Dict[str, Any]]] = {}
    for update in cell_updates:
        key = cell_text(update.identifier)
        grouped.setdefault(key, (update.identifier, {}))[1][update.column] = update.value
    snapshot = _load_snapshot(store, sheet_name, identifier_column)
    policy = _policy(snapshot, settings_provider)
    return _reconcile(store, snapshot, policy, list(grouped.values()), dry_run=False)


def single_cell_edit(
    store,
    identifier_value: Any,
    column_name: str,
    new_value: Any,
    sheet_name: str,
    identifier_column: str = DEFAULT_IDENTIFIER_COLUMN,
    *,
    settings_provider=None,
    expected_old_value: Any = None,
    strict: bool = False,
) -> EditResult:
    """Update one cell, returning ``updated_count`` 0 or 1.

    Raises :class:`RowNotFoundError` or :class:`UnknownColumnError` before
    writing anything when the target cannot be resolved.  When
    ``expected_old_value`` is given and differs from the sheet, the edit
    proceeds with a warning unless ``strict`` is set, in which case
    :class:`StaleValueError` is raised.
    """

    snapshot = _load_snapshot(store, sheet_name, identifier_column)
    match = snapshot.identifiers.lookup(identifier_value)
    if match is None:
        values = [value for value in snapshot.identifier_values() if value.strip()]
        raise RowNotFoundError(
            f"Row with {snapshot.identifier_column}={cell_text(identifier_value)!r} not found",
            search_value=identifier_value,
            candidates=values[:MAX_DIAGNOSTIC_CANDIDATES],
            partial_matches=partial_matches(values, identifier_value),
            total_rows=len(snapshot.data_rows),
        )
    position = snapshot.schema.resolve(column_name)
    if position is None:
        raise UnknownColumnError(f"Column {column_name!r} not found", candidates=snapshot.schema.names)

    row = snapshot.data_rows[match.index]
    column = snapshot.schema.name_at(position)
    current = row_value(row, position)
    if expected_old_value is not None and cell_text(expected_old_value) != cell_text(current):
        if strict:
            raise StaleValueError(
                f"Cell {column!r} of {cell_text(identifier_value)!r} changed since it was read",
                expected=expected_old_value,
                actual=current,
            )
        logger.warning(
            "Old value mismatch for %s/%s: expected %r, found %r; proceeding",
            cell_text(identifier_value),
            column,
            expected_old_value,
            current,
        )

    decision = evaluate_cell(_policy(snapshot, settings_provider), column, current, new_value)
    address = CellAddress.for_cell(match.index, position)
    result = EditResult(
        updated_count=0,
        cell_address=address.qualified(sheet_name),
        column=column,
        old_value=current,
        new_value=decision.value if decision.queued else new_value,
        sheet_row_number=address.row_number,
        skip_reason=decision.skip,
    )
    if not decision.queued:
        logger.info("Edit of %s skipped: %s", result.cell_address, decision.skip.value)
        return result

    store.write_cell(sheet_name, address, decision.value)
    result.updated_count = 1
    logger.info("Updated %s: %r -> %r", result.cell_address, current, decision.value)
    return result


__all__ = [
    "CellUpdate",
    "DEFAULT_IDENTIFIER_COLUMN",
    "EditResult",
    "ReconciliationReport",
    "WrittenCell",
    "batch_update_cells",
    "bulk_import",
    "preview_import",
    "single_cell_edit",
]
