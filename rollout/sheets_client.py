"""Google Sheets store used by the rollout reconciliation engine.

This module centralises every direct interaction with the Sheets API.  The
engine only needs a handful of operations and they are exposed here as a
small, well defined surface:

``read_range`` / ``read_sheet``
    Fetch raw cell values.  ``read_sheet`` always requests the full plausible
    column span (``A1:ZZ``) and every row so that a reconciliation call works
    on one complete snapshot.
``write_cell``
    Update a single cell with ``values.update``.
``write_batch``
    Submit all queued cell writes of a call in one ``values.batchUpdate``.
``append_rows``
    Append new rows below the existing data with ``values.append``.

All public entry points raise subclasses of :class:`StoreError`.  Retriable
HTTP statuses are retried with exponential backoff; nothing else is retried.
No state is cached between calls.
"""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from rollout.addressing import FULL_COLUMN_SPAN, CellAddress, a1_range, column_letter
from rollout.google_credentials import (
    CredentialsFileInvalidError,
    credentials_from_environment,
    read_service_account_file,
)

logger = logging.getLogger(__name__)

SCOPES: Sequence[str] = ("https://www.googleapis.com/auth/spreadsheets",)
RETRIABLE_STATUSES = frozenset({429, 500, 502, 503, 504})
MAX_RETRY_ATTEMPTS = 5
BACKOFF_SCHEDULE: Tuple[int, ...] = (1, 2, 4, 8, 16)


class StoreError(RuntimeError):
    """Base error raised when the tabular store cannot complete a call."""


class StoreDependencyError(StoreError):
    """Raised when the store cannot be configured (no spreadsheet id)."""


class StoreCredentialsError(StoreError):
    """Raised when the service account credentials are invalid or missing."""


class StoreApiError(StoreError):
    """Raised when the Google API returns an error response."""

    def __init__(self, message: str, *, status: int = 0) -> None:
        super().__init__(message)
        self.status = status


@dataclass(frozen=True)
class CellWrite:
    """A single queued cell write."""

    address: CellAddress
    value: Any


def _http_status(exc: HttpError) -> int:
    status = getattr(exc, "status_code", None)
    if status is None:
        status = getattr(getattr(exc, "resp", None), "status", 0)
    try:
        return int(status)
    except (TypeError, ValueError):
        return 0


def _build_credentials(credential_path: Optional[Path]):
    try:
        if credential_path is not None:
            info = read_service_account_file(credential_path)
        else:
            info = credentials_from_environment()
        return service_account.Credentials.from_service_account_info(info, scopes=list(SCOPES))
    except CredentialsFileInvalidError as exc:
        raise StoreCredentialsError(str(exc)) from exc
    except ValueError as exc:  # malformed private key
        raise StoreCredentialsError(str(exc)) from exc


def _build_service(credential_path: Optional[Path]):
    credentials = _build_credentials(credential_path)
    try:
        return build("sheets", "v4", credentials=credentials, cache_discovery=False)
    except Exception as exc:  # pragma: no cover - HTTP / auth error guard
        raise StoreApiError(str(exc)) from exc


class SheetsStore:
    """Tabular store speaking to one spreadsheet through the Sheets v4 API."""

    def __init__(
        self,
        spreadsheet_id: str,
        *,
        credential_path: Optional[Path] = None,
        service=None,
        value_input_option: str = "USER_ENTERED",
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if not (spreadsheet_id or "").strip():
            raise StoreDependencyError("A spreadsheet id must be configured.")
        self._spreadsheet_id = spreadsheet_id.strip()
        self._service = service or _build_service(credential_path)
        self._value_input_option = value_input_option
        self._sleep = sleep

    @property
    def spreadsheet_id(self) -> str:
        return self._spreadsheet_id

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def read_range(self, sheet_name: str, range_spec: str) -> List[List[Any]]:
        """Return the raw rows of ``range_spec`` on ``sheet_name``."""

        request = (
            self._service.spreadsheets()
            .values()
            .get(
                spreadsheetId=self._spreadsheet_id,
                range=a1_range(sheet_name, range_spec),
                majorDimension="ROWS",
            )
        )
        result = self._execute(request, "values.get")
        values = result.get("values", []) if isinstance(result, Mapping) else []
        return [list(row) for row in values]

    def read_sheet(self, sheet_name: str, *, columns: int = FULL_COLUMN_SPAN) -> List[List[Any]]:
        """Return every row, header included, of ``sheet_name``."""

        return self.read_range(sheet_name, f"A1:{column_letter(max(1, columns) - 1)}")

    def write_cell(self, sheet_name: str, address: CellAddress, value: Any) -> int:
        """Write ``value`` into a single cell and return the updated cell count."""

        request = (
            self._service.spreadsheets()
            .values()
            .update(
                spreadsheetId=self._spreadsheet_id,
                range=address.qualified(sheet_name),
                valueInputOption=self._value_input_option,
                body={"values": [[value]]},
            )
        )
        result = self._execute(request, "values.update")
        if isinstance(result, Mapping) and "updatedCells" in result:
            return int(result["updatedCells"])
        return 1

    def write_batch(self, sheet_name: str, writes: Sequence[CellWrite]) -> int:
        """Submit ``writes`` as one batch and return the committed cell count.

        The batch either succeeds as a whole or raises :class:`StoreError`;
        callers must not assume any of the cells were committed on failure.
        """

        if not writes:
            return 0
        data: List[Dict[str, Any]] = [
            {"range": write.address.qualified(sheet_name), "values": [[write.value]]}
            for write in writes
        ]
        request = (
            self._service.spreadsheets()
            .values()
            .batchUpdate(
                spreadsheetId=self._spreadsheet_id,
                body={"valueInputOption": self._value_input_option, "data": data},
            )
        )
        result = self._execute(request, "values.batchUpdate")
        if isinstance(result, Mapping) and "totalUpdatedCells" in result:
            return int(result["totalUpdatedCells"])
        return len(data)

    def append_rows(
        self,
        sheet_name: str,
        rows: Sequence[Sequence[Any]],
        *,
        start_column: int = 0,
        end_column: Optional[int] = None,
    ) -> str:
        """Append ``rows`` below the data and return the updated range."""

        if not rows:
            return ""
        width = max(len(row) for row in rows)
        last = end_column if end_column is not None else start_column + max(width, 1) - 1
        range_spec = f"{column_letter(start_column)}:{column_letter(last)}"
        request = (
            self._service.spreadsheets()
            .values()
            .append(
                spreadsheetId=self._spreadsheet_id,
                range=a1_range(sheet_name, range_spec),
                valueInputOption="RAW",
                insertDataOption="INSERT_ROWS",
                body={"values": [list(row) for row in rows]},
            )
        )
        result = self._execute(request, "values.append")
        updates = result.get("updates", {}) if isinstance(result, Mapping) else {}
        return str(updates.get("updatedRange", "")) if isinstance(updates, Mapping) else ""

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _execute(self, request, description: str) -> Any:
        attempt = 0
        while True:
            try:
                return request.execute()
            except HttpError as exc:
                status = _http_status(exc)
                if status not in RETRIABLE_STATUSES or attempt >= MAX_RETRY_ATTEMPTS - 1:
                    raise StoreApiError(f"Sheets API {description} failed: {exc}", status=status) from exc
                delay = BACKOFF_SCHEDULE[min(attempt, len(BACKOFF_SCHEDULE) - 1)]
                attempt += 1
                logger.warning(
                    "Sheets API %s error (%s). Retrying in %ss (%d/%d)",
                    description,
                    status,
                    delay,
                    attempt,
                    MAX_RETRY_ATTEMPTS,
                )
                self._sleep(delay)


def parse_spreadsheet_id(value: str) -> str:
    """Normalise a spreadsheet identifier from raw input or URL."""

    if not value:
        return ""
    value = value.strip()
    if "/spreadsheets/d/" in value:
        value = value.split("/spreadsheets/d/", 1)[1]
        value = value.split("/", 1)[0]
    for separator in ("?", "#"):
        value = value.split(separator, 1)[0]
    return value


def build_store(settings, *, service=None) -> SheetsStore:
    """Factory used by callers to build a request-scoped store from settings."""

    credential_path = None
    raw_path = (getattr(settings, "credential_path", "") or "").strip()
    if raw_path and os.path.exists(os.path.expanduser(raw_path)):
        credential_path = Path(os.path.expanduser(raw_path)).resolve()
    return SheetsStore(
        parse_spreadsheet_id(settings.spreadsheet_id),
        credential_path=credential_path,
        service=service,
        value_input_option=settings.value_input_option,
    )


__all__ = [
    "BACKOFF_SCHEDULE",
    "CellWrite",
    "MAX_RETRY_ATTEMPTS",
    "SheetsStore",
    "StoreApiError",
    "StoreCredentialsError",
    "StoreDependencyError",
    "StoreError",
    "build_store",
    "parse_spreadsheet_id",
]
