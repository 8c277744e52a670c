from __future__ import annotations

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from rollout.diff import SkipReason, evaluate_cell
from rollout.protection import Protection, ProtectionPolicy


@pytest.fixture
def policy() -> ProtectionPolicy:
    return ProtectionPolicy("RowId", ["Survey", "ATP Approved"])


CANDIDATES = ["r999", "", "05-Jan-2024", 45292, "free text", None]


@pytest.mark.parametrize("candidate", CANDIDATES)
@pytest.mark.parametrize("current", ["r1", ""])
def test_identifier_column_is_never_written(policy, current, candidate) -> None:
    decision = evaluate_cell(policy, "RowId", current, candidate)

    assert not decision.queued
    assert decision.skip is SkipReason.IDENTIFIER_PROTECTED


@pytest.mark.parametrize("candidate", CANDIDATES)
def test_recorded_dates_are_never_overwritten(policy, candidate) -> None:
    decision = evaluate_cell(policy, "atp approved", "01-Jan-2024", candidate)

    assert not decision.queued
    assert decision.skip is SkipReason.DATE_PROTECTED


@pytest.mark.parametrize("candidate", ["05-Jan-2024", "05/jan/2024", 45296])
def test_empty_date_accepts_one_canonical_write(policy, candidate) -> None:
    decision = evaluate_cell(policy, "Survey", "", candidate)

    assert decision.queued
    assert decision.value == "05-Jan-2024"


def test_invalid_date_is_skipped(policy) -> None:
    decision = evaluate_cell(policy, "Survey", "", "2024-01-05")

    assert decision.skip is SkipReason.INVALID_DATE_FORMAT


def test_blank_or_unchanged_values_are_no_change(policy) -> None:
    assert evaluate_cell(policy, "Survey", "", "").skip is SkipReason.NO_CHANGE
    assert evaluate_cell(policy, "Notes", "ok", None).skip is SkipReason.NO_CHANGE
    assert evaluate_cell(policy, "Notes", "ok", "ok").skip is SkipReason.NO_CHANGE
    assert evaluate_cell(policy, "Count", "5", 5.0).skip is SkipReason.NO_CHANGE


def test_ordinary_columns_take_new_values(policy) -> None:
    decision = evaluate_cell(policy, "Notes", "old", "new")

    assert decision.queued
    assert decision.value == "new"


def test_protection_policy_rules() -> None:
    policy = ProtectionPolicy("RowId", ["Survey", ""])

    assert policy.check("rowid", "") is Protection.IDENTIFIER
    assert policy.check("Survey", "01-Jan-2024") is Protection.DATE
    assert policy.check("Survey", " ") is Protection.WRITABLE
    assert policy.check("Notes", "x") is Protection.WRITABLE
    assert policy.date_columns == ["Survey"]
