from __future__ import annotations

import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from rollout.column_settings import (
    ColumnType,
    SheetSettingsProvider,
    StaticSettingsProvider,
    parse_settings_rows,
    provider_for,
)
from rollout.diff import SkipReason
from rollout.reconcile import bulk_import
from rollout.sheets_client import SheetsStore
from settings import RolloutSettings
from sheet_fakes import FakeSheetsService

SETTINGS_ROWS = [
    ["Column", "Value", "Editable", "Show"],
    ["RowId", "string", "no", "yes"],
    ["ATP Approved", "date", "yes"],
    ["Remarks", "textarea", "", "no"],
    ["Budget", "money"],
    ["", "date"],
]


def _store(sheets):
    service = FakeSheetsService(sheets)
    return SheetsStore("sheet-id", service=service, sleep=lambda _delay: None), service


def test_parse_settings_rows() -> None:
    configs = parse_settings_rows(SETTINGS_ROWS)

    assert [config.display_name for config in configs] == ["RowId", "ATP Approved", "Remarks", "Budget"]
    atp = configs[1]
    assert atp.name == "ATPApproved"
    assert atp.type is ColumnType.DATE
    assert atp.editable and atp.show
    assert configs[0].editable is False
    assert configs[2].show is False
    assert configs[3].type is ColumnType.STRING


def test_settings_without_column_header_are_ignored(caplog) -> None:
    with caplog.at_level(logging.WARNING, logger="rollout.column_settings"):
        assert parse_settings_rows([["Name", "Type"], ["Survey", "date"]]) == []
    assert "Column" in caplog.text


def test_sheet_provider_reads_date_columns() -> None:
    store, service = _store({"settings": SETTINGS_ROWS})

    provider = SheetSettingsProvider(store)

    assert provider.date_columns() == ["ATP Approved"]
    assert provider.column_types()["Remarks"] is ColumnType.TEXTAREA
    assert service.get_ranges[-1] == "'settings'!A:D"


def test_missing_settings_sheet_degrades_to_no_dates(caplog) -> None:
    store, _service = _store({"Rollout": [["RowId"]]})

    with caplog.at_level(logging.WARNING, logger="rollout.column_settings"):
        assert SheetSettingsProvider(store).date_columns() == []
    assert "unavailable" in caplog.text


def test_fallback_used_when_sheet_declares_no_dates() -> None:
    store, _service = _store({"Rollout": [["RowId"]]})
    settings = RolloutSettings(spreadsheet_id="x", date_columns=["Survey"])

    provider = provider_for(store, settings)

    assert provider.date_columns() == ["Survey"]


def test_static_provider_accepts_strings_and_types() -> None:
    provider = StaticSettingsProvider({"Survey": "date", "MOS": ColumnType.DATE, "Notes": "bogus"})

    assert provider.date_columns() == ["Survey", "MOS"]
    assert provider.column_types()["Notes"] is ColumnType.STRING
    assert StaticSettingsProvider().date_columns() == []


def test_settings_sheet_protects_import() -> None:
    store, service = _store(
        {
            "settings": SETTINGS_ROWS,
            "Rollout": [["RowId", "ATP Approved"], ["r1", "02-Feb-2024"], ["r2"]],
        }
    )
    records = [{"RowId": "r1", "ATP Approved": "03-Mar-2024"}, {"RowId": "r2", "atp approved": "03/Mar/2024"}]

    report = bulk_import(store, "Rollout", records, settings_provider=SheetSettingsProvider(store))

    assert report.updated_count == 1
    assert report.skip_reasons[SkipReason.DATE_PROTECTED] == 1
    assert service.cell("Rollout", "B2") == "02-Feb-2024"
    assert service.cell("Rollout", "B3") == "03-Mar-2024"
