"""
Join planner.

Turns a sheet index and a record index into one ActionPlan per key of the
selected key universe:

  left   sheet keys
  right  record keys
  inner  sheet keys that also exist as record keys
  outer  sheet keys, then record keys not already seen
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

from sheetmerge.codec import decode, encode, is_empty
from sheetmerge.sheets.types import FieldMapping, SourceRow
from sheetmerge.store.types import Record, RecordSchema

from .index import KeyIndex
from .policy import MergePolicy
from .types import (
    JOIN_TYPES,
    REASON_NO_CHANGES,
    REASON_NO_RECORD,
    REASON_NO_SOURCE,
    ActionPlan,
    CreatePlan,
    SkipPlan,
    UpdatePlan,
)


def select_keys(join_type: str, source_keys: Iterable[str], record_keys: Iterable[str]) -> List[str]:
    if join_type not in JOIN_TYPES:
        raise ValueError(f"Unknown join type '{join_type}'")

    left = list(source_keys)
    right = list(record_keys)
    if join_type == "left":
        return left
    if join_type == "right":
        return right
    right_set = set(right)
    if join_type == "inner":
        return [k for k in left if k in right_set]

    left_set = set(left)
    return left + [k for k in right if k not in left_set]


def build_changes(
    source_row: SourceRow,
    mappings: Iterable[FieldMapping],
    schema: RecordSchema,
    policy: MergePolicy,
    record: Optional[Record] = None,
) -> Dict[str, Any]:
    """
    Encode every mapped column for its target property.

    With a record and `only_update_empty`, properties that already hold a
    value are left alone. Values without a valid encoding are dropped.
    """
    changes: Dict[str, Any] = {}
    for m in mappings:
        if not m.target_property:
            continue
        if record is not None and policy.only_update_empty:
            current = decode(record.properties.get(m.target_property))
            if not is_empty(current):
                continue
        built = encode(
            schema.type_of(m.target_property),
            source_row.get(m.source_column),
            expand_csv=policy.expand_csv,
        )
        if built is not None:
            changes[m.target_property] = built
    return changes


def build_planned_updates(
    source_index: KeyIndex[SourceRow],
    record_index: KeyIndex[Record],
    join_type: str,
    mappings: List[FieldMapping],
    schema: RecordSchema,
    policy: MergePolicy | None = None,
) -> List[ActionPlan]:
    policy = policy or MergePolicy()
    plans: List[ActionPlan] = []

    for key in select_keys(join_type, source_index.keys(), record_index.keys()):
        row = source_index.get(key)
        record = record_index.get(key)

        if row is not None and record is not None:
            changes = build_changes(row, mappings, schema, policy, record=record)
            if changes:
                plans.append(UpdatePlan(key=key, source_row=row, record=record, changes=changes))
            else:
                plans.append(SkipPlan(key=key, reason=REASON_NO_CHANGES, source_row=row, record=record))

        elif row is not None:
            if join_type in ("left", "outer") and policy.allow_create:
                changes = build_changes(row, mappings, schema, policy)
                plans.append(CreatePlan(key=key, source_row=row, changes=changes))
            else:
                plans.append(SkipPlan(key=key, reason=REASON_NO_RECORD, source_row=row))

        elif record is not None:
            plans.append(SkipPlan(key=key, reason=REASON_NO_SOURCE, record=record))

    return plans


def count_actions(plans: Iterable[ActionPlan]) -> Dict[str, int]:
    counts = {"update": 0, "create": 0, "skip": 0}
    for plan in plans:
        counts[plan.action] += 1
    return counts
