"""Application configuration helpers for rollout sheet reconciliation."""
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional

from rollout import app_paths


logger = logging.getLogger(__name__)


DEFAULT_SETTINGS_PATH = str(app_paths.data_path("settings.json"))

DEFAULT_SPREADSHEET_ID = os.getenv("ROLLOUT_SPREADSHEET_ID", "")
DEFAULT_CREDENTIALS_PATH = os.getenv(
    "ROLLOUT_CREDENTIALS_PATH",
    str(app_paths.credentials_path("service_account.json")),
)
DEFAULT_SHEET_NAME = os.getenv("ROLLOUT_SHEET_NAME", "")
DEFAULT_SETTINGS_SHEET = "settings"
DEFAULT_IDENTIFIER_COLUMN = "RowId"
DEFAULT_VALUE_INPUT_OPTION = "USER_ENTERED"
VALUE_INPUT_OPTIONS = ("USER_ENTERED", "RAW")
DEFAULT_MAX_REGISTER_ROWS = 20


@dataclass
class RolloutSettings:
    spreadsheet_id: str = DEFAULT_SPREADSHEET_ID
    credential_path: str = DEFAULT_CREDENTIALS_PATH
    default_sheet: str = DEFAULT_SHEET_NAME
    settings_sheet: str = DEFAULT_SETTINGS_SHEET
    identifier_column: str = DEFAULT_IDENTIFIER_COLUMN
    value_input_option: str = DEFAULT_VALUE_INPUT_OPTION
    date_columns: List[str] = field(default_factory=list)
    max_register_rows: int = DEFAULT_MAX_REGISTER_ROWS

    def to_json(self) -> Dict[str, object]:
        return {
            "spreadsheet_id": self.spreadsheet_id,
            "credential_path": self.credential_path,
            "default_sheet": self.default_sheet,
            "settings_sheet": self.settings_sheet,
            "identifier_column": self.identifier_column,
            "value_input_option": self.value_input_option,
            "date_columns": list(self.date_columns),
            "max_register_rows": self.max_register_rows,
        }


def _default_payload() -> Dict[str, object]:
    return RolloutSettings().to_json()


def _ensure_settings_file(path: str) -> Dict[str, object]:
    default_settings = _default_payload()
    if not os.path.exists(path):
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(path, "w", encoding="utf-8") as handle:
            json.dump(default_settings, handle, indent=2)
        return default_settings

    with open(path, "r", encoding="utf-8") as handle:
        try:
            data = json.load(handle)
        except json.JSONDecodeError:
            logger.warning("Settings file %s is not valid JSON; using defaults", path)
            return default_settings
    if not isinstance(data, Mapping):
        logger.warning("Settings file %s does not hold an object; using defaults", path)
        return default_settings

    merged: Dict[str, object] = dict(default_settings)
    for key, value in data.items():
        if key not in default_settings:
            continue
        if key == "date_columns":
            if isinstance(value, list):
                merged[key] = [str(entry).strip() for entry in value if isinstance(entry, str) and entry.strip()]
        elif key == "max_register_rows":
            try:
                merged[key] = max(1, min(100, int(value)))
            except (TypeError, ValueError):
                merged[key] = default_settings[key]
        elif key == "value_input_option":
            if isinstance(value, str) and value.strip().upper() in VALUE_INPUT_OPTIONS:
                merged[key] = value.strip().upper()
        elif isinstance(value, str):
            merged[key] = value.strip() or default_settings[key]
    return merged


def load_rollout_settings(path: Optional[str] = None) -> RolloutSettings:
    data = _ensure_settings_file(path or DEFAULT_SETTINGS_PATH)
    return RolloutSettings(
        spreadsheet_id=str(data["spreadsheet_id"]),
        credential_path=str(data["credential_path"]),
        default_sheet=str(data["default_sheet"]),
        settings_sheet=str(data["settings_sheet"]),
        identifier_column=str(data["identifier_column"]),
        value_input_option=str(data["value_input_option"]),
        date_columns=list(data["date_columns"]),
        max_register_rows=int(data["max_register_rows"]),
    )


def save_rollout_settings(settings: RolloutSettings, path: Optional[str] = None) -> None:
    target = path or DEFAULT_SETTINGS_PATH
    directory = os.path.dirname(target)
    if directory:
        os.makedirs(directory, exist_ok=True)

    with open(target, "w", encoding="utf-8") as handle:
        json.dump(settings.to_json(), handle, indent=2)


__all__ = [
    "DEFAULT_CREDENTIALS_PATH",
    "DEFAULT_IDENTIFIER_COLUMN",
    "DEFAULT_SETTINGS_PATH",
    "DEFAULT_SHEET_NAME",
    "DEFAULT_SPREADSHEET_ID",
    "RolloutSettings",
    "load_rollout_settings",
    "save_rollout_settings",
]
