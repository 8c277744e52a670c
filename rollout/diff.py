"""Per-cell write decisions.

``evaluate_cell`` applies the decision table below to one candidate value and
returns either the value to queue or the reason the cell is skipped.

=========  ============  =====  =========  =======================
protected  invalid date  blank  unchanged  outcome
=========  ============  =====  =========  =======================
yes        -             -      -          identifier/date skip
no         yes           -      -          ``INVALID_DATE_FORMAT``
no         no            yes    -          ``NO_CHANGE``
no         no            no     yes        ``NO_CHANGE``
no         no            no     no         queue write
=========  ============  =====  =========  =======================
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from rollout.dates import normalise_date
from rollout.matching import cell_text, is_blank
from rollout.protection import Protection, ProtectionPolicy


class SkipReason(Enum):
    IDENTIFIER_PROTECTED = "identifierProtected"
    DATE_PROTECTED = "dateProtected"
    INVALID_DATE_FORMAT = "invalidDateFormat"
    NO_CHANGE = "noChange"
    UNKNOWN_COLUMN = "unknownColumn"
    UNKNOWN_ROW = "unknownRow"


_PROTECTION_SKIPS = {
    Protection.IDENTIFIER: SkipReason.IDENTIFIER_PROTECTED,
    Protection.DATE: SkipReason.DATE_PROTECTED,
}


@dataclass(frozen=True)
class CellDecision:
    skip: Optional[SkipReason] = None
    value: Any = None

    @property
    def queued(self) -> bool:
        return self.skip is None


def evaluate_cell(
    policy: ProtectionPolicy,
    column_name: str,
    current_value: Any,
    new_value: Any,
) -> CellDecision:
    """Return the decision for writing ``new_value`` over ``current_value``."""

    protection = policy.check(column_name, current_value)
    if protection is not Protection.WRITABLE:
        return CellDecision(skip=_PROTECTION_SKIPS[protection])

    candidate = new_value
    if policy.is_date_column(column_name) and not is_blank(new_value):
        candidate = normalise_date(new_value).value
        if candidate is None:
            return CellDecision(skip=SkipReason.INVALID_DATE_FORMAT)

    if is_blank(candidate):
        return CellDecision(skip=SkipReason.NO_CHANGE)
    if cell_text(candidate) == cell_text(current_value):
        return CellDecision(skip=SkipReason.NO_CHANGE)
    return CellDecision(value=candidate)


__all__ = ["CellDecision", "SkipReason", "evaluate_cell"]
