"""Settings-driven entry points for the rollout dashboard."""
from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping, Optional, Sequence

from rollout import reconcile, register
from rollout.column_settings import provider_for
from rollout.errors import ValidationError
from rollout.sheets_client import SheetsStore, build_store
from settings import RolloutSettings

logger = logging.getLogger(__name__)


class RolloutService:
    """Run reconciliation calls against the spreadsheet described by ``settings``.

    The configured identifier column, default worksheet and registration
    limit apply to every call.  Column settings are re-read on each call.
    """

    def __init__(self, settings: RolloutSettings, *, service=None) -> None:
        self._settings = settings
        self._store: SheetsStore = build_store(settings, service=service)

    @property
    def settings(self) -> RolloutSettings:
        return self._settings

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------
    def edit_cell(
        self,
        identifier_value: Any,
        column_name: str,
        new_value: Any,
        *,
        sheet_name: Optional[str] = None,
        expected_old_value: Any = None,
        strict: bool = False,
    ) -> reconcile.EditResult:
        return reconcile.single_cell_edit(
            self._store,
            identifier_value,
            column_name,
            new_value,
            self._sheet(sheet_name),
            self._settings.identifier_column,
            settings_provider=provider_for(self._store, self._settings),
            expected_old_value=expected_old_value,
            strict=strict,
        )

    def import_records(
        self,
        records: Iterable[Mapping[str, Any]],
        *,
        sheet_name: Optional[str] = None,
        dry_run: bool = False,
    ) -> reconcile.ReconciliationReport:
        return reconcile.bulk_import(
            self._store,
            self._sheet(sheet_name),
            records,
            identifier_column=self._settings.identifier_column,
            settings_provider=provider_for(self._store, self._settings),
            dry_run=dry_run,
        )

    def preview_records(
        self, records: Iterable[Mapping[str, Any]], *, sheet_name: Optional[str] = None
    ) -> reconcile.ReconciliationReport:
        return self.import_records(records, sheet_name=sheet_name, dry_run=True)

    def update_cells(
        self, cell_updates: Iterable[reconcile.CellUpdate], *, sheet_name: Optional[str] = None
    ) -> reconcile.ReconciliationReport:
        return reconcile.batch_update_cells(
            self._store,
            self._sheet(sheet_name),
            cell_updates,
            identifier_column=self._settings.identifier_column,
            settings_provider=provider_for(self._store, self._settings),
        )

    def register_rows(
        self,
        rows: Iterable[Mapping[str, Any]],
        *,
        sheet_name: Optional[str] = None,
        required_fields: Sequence[str] = register.DEFAULT_REQUIRED_FIELDS,
    ) -> register.RegistrationResult:
        return register.register_rows(
            self._store,
            self._sheet(sheet_name),
            rows,
            identifier_column=self._settings.identifier_column,
            required_fields=required_fields,
            max_rows=self._settings.max_register_rows,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _sheet(self, sheet_name: Optional[str]) -> str:
        name = (sheet_name or self._settings.default_sheet or "").strip()
        if not name:
            raise ValidationError("No sheet name given and no default sheet configured.")
        if not sheet_name:
            logger.debug("Using default sheet %r", name)
        return name


__all__ = ["RolloutService"]
