"""Error taxonomy for rollout sheet reconciliation.

Only structural failures are raised: an unreadable sheet, a missing header or
identifier column, an unresolved single-cell target, or a failing store call.
Per-cell skips during a bulk import are reported through
:class:`rollout.diff.SkipReason` counters instead.
"""

from __future__ import annotations

from typing import Any, List, Optional, Sequence

from rollout.sheets_client import (
    StoreApiError,
    StoreCredentialsError,
    StoreDependencyError,
    StoreError,
)


class ReconcileError(Exception):
    """Base error raised when a reconciliation call cannot complete."""


class SchemaError(ReconcileError):
    """Raised when the sheet has no rows, no header, or no identifier column."""


class NotFoundError(ReconcileError):
    """Raised when a single-cell target cannot be resolved."""

    def __init__(self, message: str, *, candidates: Optional[Sequence[Any]] = None) -> None:
        super().__init__(message)
        self.candidates: List[Any] = list(candidates or [])


class RowNotFoundError(NotFoundError):
    """Raised when no data row carries the requested identifier."""

    def __init__(
        self,
        message: str,
        *,
        search_value: Any = None,
        candidates: Optional[Sequence[Any]] = None,
        partial_matches: Optional[Sequence[Any]] = None,
        total_rows: int = 0,
    ) -> None:
        super().__init__(message, candidates=candidates)
        self.search_value = search_value
        self.partial_matches: List[Any] = list(partial_matches or [])
        self.total_rows = total_rows


class UnknownColumnError(NotFoundError):
    """Raised when a column name matches no header cell."""


class StaleValueError(ReconcileError):
    """Raised by strict edits when the cell changed since the caller read it."""

    def __init__(self, message: str, *, expected: Any, actual: Any) -> None:
        super().__init__(message)
        self.expected = expected
        self.actual = actual


class ValidationError(ReconcileError):
    """Raised when a registration payload is rejected before any write."""


class DuplicateIdentifierError(ValidationError):
    """Raised when registered identifiers already exist or repeat."""

    def __init__(self, message: str, *, duplicates: Sequence[str]) -> None:
        super().__init__(message)
        self.duplicates: List[str] = list(duplicates)


__all__ = [
    "DuplicateIdentifierError",
    "NotFoundError",
    "ReconcileError",
    "RowNotFoundError",
    "SchemaError",
    "StaleValueError",
    "StoreApiError",
    "StoreCredentialsError",
    "StoreDependencyError",
    "StoreError",
    "UnknownColumnError",
    "ValidationError",
]
