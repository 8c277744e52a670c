from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import List

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from rollout.addressing import CellAddress
from rollout.sheets_client import (
    CellWrite,
    SheetsStore,
    StoreApiError,
    StoreDependencyError,
    build_store,
    parse_spreadsheet_id,
)
from settings import RolloutSettings
from sheet_fakes import FakeSheetsService


def _store(service: FakeSheetsService, sleeps: List[float] | None = None) -> SheetsStore:
    recorder = sleeps if sleeps is not None else []
    return SheetsStore("sheet-id", service=service, sleep=recorder.append)


def test_read_sheet_requests_full_column_span() -> None:
    service = FakeSheetsService({"O'Brien Sites": [["RowId"], ["r1"]]})

    rows = _store(service).read_sheet("O'Brien Sites")

    assert rows == [["RowId"], ["r1"]]
    assert service.get_ranges == ["'O''Brien Sites'!A1:ZZ"]


def test_read_range_of_empty_sheet_is_empty() -> None:
    service = FakeSheetsService({"Rollout": []})

    assert _store(service).read_range("Rollout", "A:D") == []


def test_write_cell_uses_configured_input_option() -> None:
    service = FakeSheetsService({"Rollout": [["RowId", "Notes"], ["r1"]]})
    store = SheetsStore("sheet-id", service=service, value_input_option="RAW")

    count = store.write_cell("Rollout", CellAddress.parse("B2"), "hello")

    assert count == 1
    assert service.updates == [("'Rollout'!B2", "RAW", {"values": [["hello"]]})]


def test_write_batch_submits_one_request() -> None:
    service = FakeSheetsService({"Rollout": [["RowId", "Notes"], ["r1"], ["r2"]]})
    writes = [
        CellWrite(CellAddress.parse("B2"), "a"),
        CellWrite(CellAddress.parse("B3"), "b"),
    ]

    committed = _store(service).write_batch("Rollout", writes)

    assert committed == 2
    assert service.calls == ["batchUpdate"]
    assert service.batch_requests[0] == {
        "valueInputOption": "USER_ENTERED",
        "data": [
            {"range": "'Rollout'!B2", "values": [["a"]]},
            {"range": "'Rollout'!B3", "values": [["b"]]},
        ],
    }


def test_empty_batch_is_not_sent() -> None:
    service = FakeSheetsService({"Rollout": []})

    assert _store(service).write_batch("Rollout", []) == 0
    assert service.calls == []


def test_retriable_errors_are_retried_with_backoff(caplog) -> None:
    service = FakeSheetsService({"Rollout": [["RowId"]]})
    service.fail("get", 503, 429)
    sleeps: List[float] = []

    with caplog.at_level(logging.WARNING, logger="rollout.sheets_client"):
        rows = _store(service, sleeps).read_sheet("Rollout")

    assert rows == [["RowId"]]
    assert sleeps == [1, 2]
    assert service.calls == ["get", "get", "get"]
    assert "Retrying" in caplog.text


def test_retries_give_up_after_max_attempts() -> None:
    service = FakeSheetsService({"Rollout": [["RowId"]]})
    service.fail("get", 500, 500, 500, 500, 500)
    sleeps: List[float] = []

    with pytest.raises(StoreApiError) as excinfo:
        _store(service, sleeps).read_sheet("Rollout")

    assert excinfo.value.status == 500
    assert sleeps == [1, 2, 4, 8]
    assert len(service.calls) == 5


def test_client_errors_are_not_retried() -> None:
    service = FakeSheetsService({"Rollout": [["RowId"]]})
    sleeps: List[float] = []

    with pytest.raises(StoreApiError) as excinfo:
        _store(service, sleeps).read_sheet("Missing")

    assert excinfo.value.status == 400
    assert sleeps == []
    assert service.calls == ["get"]


def test_spreadsheet_id_is_required() -> None:
    with pytest.raises(StoreDependencyError):
        SheetsStore("  ", service=FakeSheetsService())


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("https://docs.google.com/spreadsheets/d/abc123/edit#gid=0", "abc123"),
        (" abc123 ", "abc123"),
        ("abc123?usp=sharing", "abc123"),
        ("", ""),
    ],
)
def test_parse_spreadsheet_id(raw: str, expected: str) -> None:
    assert parse_spreadsheet_id(raw) == expected


def test_build_store_from_settings() -> None:
    settings = RolloutSettings(
        spreadsheet_id="https://docs.google.com/spreadsheets/d/abc123/edit",
        credential_path="",
        value_input_option="RAW",
    )

    store = build_store(settings, service=FakeSheetsService())

    assert store.spreadsheet_id == "abc123"
