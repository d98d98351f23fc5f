from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Literal, Optional, Union

from sheetmerge.sheets.types import SourceRow
from sheetmerge.store.types import Record

JOIN_TYPES = ("left", "right", "inner", "outer")

REASON_NO_CHANGES = "no changes computed"
REASON_NO_RECORD = "no matching record"
REASON_NO_SOURCE = "no matching source row"


@dataclass(frozen=True)
class UpdatePlan:
    """Patch an existing record. `changes` is never empty."""

    key: str
    source_row: SourceRow
    record: Record
    changes: Dict[str, Any]
    action: Literal["update"] = field(default="update", init=False)


@dataclass(frozen=True)
class CreatePlan:
    """Create a record for a source-only key."""

    key: str
    source_row: SourceRow
    changes: Dict[str, Any]
    action: Literal["create"] = field(default="create", init=False)


@dataclass(frozen=True)
class SkipPlan:
    key: str
    reason: str
    source_row: Optional[SourceRow] = None
    record: Optional[Record] = None
    action: Literal["skip"] = field(default="skip", init=False)


ActionPlan = Union[UpdatePlan, CreatePlan, SkipPlan]


def is_dispatchable(plan: ActionPlan) -> bool:
    if isinstance(plan, (UpdatePlan, CreatePlan)):
        return True
    if isinstance(plan, SkipPlan):
        return False
    raise TypeError(f"Unknown plan type: {type(plan).__name__}")
