"""Column settings collaborators.

Each rollout spreadsheet carries a ``settings`` worksheet describing its
columns::

    Column        | Value | Editable | Show
    DUID          | string| no       | yes
    Survey        | date  | yes      | yes

Columns typed ``date`` hold one-time milestones and form the protected-date
set used by :class:`rollout.protection.ProtectionPolicy`.  Providers are
request scoped: the sheet is read again on every call and a missing or
unreadable settings sheet degrades to "no protected columns".
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from rollout.matching import cell_text, match_name, row_value
from rollout.sheets_client import StoreError

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS_SHEET = "settings"
SETTINGS_HEADERS = ("Column", "Value", "Editable", "Show")


class ColumnType(Enum):
    STRING = "string"
    DATE = "date"
    TIME = "time"
    TEXTAREA = "textarea"
    CURRENCY = "currency"
    LIST = "list"

    @classmethod
    def parse(cls, value: Any) -> "ColumnType":
        text = cell_text(value).strip().lower()
        for member in cls:
            if member.value == text:
                return member
        return cls.STRING


@dataclass
class ColumnConfig:
    name: str
    display_name: str
    type: ColumnType = ColumnType.STRING
    editable: bool = True
    show: bool = True


def _flag(value: Any, default: bool = True) -> bool:
    text = cell_text(value).strip().lower()
    if not text:
        return default
    return text == "yes"


def parse_settings_rows(rows: Sequence[Sequence[Any]]) -> List[ColumnConfig]:
    """Turn a raw settings worksheet into :class:`ColumnConfig` entries."""

    if not rows:
        return []
    header = rows[0]
    positions = {name: match_name(header, name) for name in SETTINGS_HEADERS}
    if positions["Column"] is None:
        logger.warning("Settings sheet has no 'Column' header; ignoring it")
        return []

    def _cell(row: Sequence[Any], name: str) -> Any:
        position = positions[name]
        return "" if position is None else row_value(row, position)

    configs: List[ColumnConfig] = []
    for row in rows[1:]:
        display_name = cell_text(_cell(row, "Column")).strip()
        if not display_name:
            continue
        configs.append(
            ColumnConfig(
                name="".join(display_name.split()),
                display_name=display_name,
                type=ColumnType.parse(_cell(row, "Value")),
                editable=_flag(_cell(row, "Editable")),
                show=_flag(_cell(row, "Show")),
            )
        )
    return configs


class SheetSettingsProvider:
    """Read column settings from a worksheet of the same spreadsheet."""

    def __init__(
        self,
        store,
        sheet_name: str = DEFAULT_SETTINGS_SHEET,
        *,
        fallback_date_columns: Iterable[str] = (),
    ) -> None:
        self._store = store
        self._sheet_name = sheet_name
        self._fallback = [name for name in fallback_date_columns if name]

    def columns(self) -> List[ColumnConfig]:
        try:
            rows = self._store.read_range(self._sheet_name, "A:D")
        except StoreError as exc:
            logger.warning("Settings sheet %r unavailable: %s", self._sheet_name, exc)
            return []
        return parse_settings_rows(rows)

    def column_types(self) -> Dict[str, ColumnType]:
        return {config.display_name: config.type for config in self.columns()}

    def date_columns(self) -> List[str]:
        names = [name for name, kind in self.column_types().items() if kind is ColumnType.DATE]
        if not names and self._fallback:
            logger.info("No date columns in %r; using configured fallback", self._sheet_name)
            return list(self._fallback)
        return names


class StaticSettingsProvider:
    """Settings provider backed by a plain name -> type mapping."""

    def __init__(self, column_types: Optional[Mapping[str, Union[str, ColumnType]]] = None) -> None:
        self._types = {
            name: value if isinstance(value, ColumnType) else ColumnType.parse(value)
            for name, value in (column_types or {}).items()
        }

    def column_types(self) -> Dict[str, ColumnType]:
        return dict(self._types)

    def date_columns(self) -> List[str]:
        return [name for name, kind in self._types.items() if kind is ColumnType.DATE]


def provider_for(store, settings) -> SheetSettingsProvider:
    """Build the request-scoped settings provider described by ``settings``."""

    return SheetSettingsProvider(
        store,
        settings.settings_sheet,
        fallback_date_columns=settings.date_columns,
    )


__all__ = [
    "ColumnConfig",
    "ColumnType",
    "DEFAULT_SETTINGS_SHEET",
    "SheetSettingsProvider",
    "StaticSettingsProvider",
    "parse_settings_rows",
    "provider_for",
]
