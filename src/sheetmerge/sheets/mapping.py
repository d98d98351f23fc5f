from __future__ import annotations
from typing import Any, Dict, Iterable, List, Optional

from sheetmerge.errors import ValidationError
from .types import FieldMapping


def _mapping_from_dict(m: Dict[str, Any]) -> FieldMapping:
    source = m.get("source", m.get("source_column", ""))
    target = m.get("target", m.get("target_property", ""))
    kwargs = {"id": str(m["id"])} if m.get("id") else {}
    return FieldMapping(source_column=str(source or ""), target_property=str(target or ""), **kwargs)


def build_mappings(spec: Any) -> List[FieldMapping]:
    """
    Accept either form used in merge files:

      mappings:
        - {source: Amount, target: Amount}
        - {source: Labels, target: Tags}

      mappings:
        Amount: Amount
        Labels: Tags
    """
    if not spec:
        return []
    if isinstance(spec, dict):
        return [FieldMapping(source_column=str(k), target_property=str(v or "")) for k, v in spec.items()]
    return [_mapping_from_dict(m) for m in spec]


def normalize_mappings(mappings: Iterable[FieldMapping]) -> List[FieldMapping]:
    """
    Active mappings: drop incomplete rows, reject ambiguous ones.

    A source column or a target property may appear in at most one
    active mapping.
    """
    active: List[FieldMapping] = []
    sources: Dict[str, FieldMapping] = {}
    targets: Dict[str, FieldMapping] = {}
    for m in mappings:
        if not m.source_column.strip() or not m.target_property.strip():
            continue
        if m.target_property in targets:
            raise ValidationError(
                f"Property '{m.target_property}' is mapped more than once "
                f"(from '{targets[m.target_property].source_column}' and '{m.source_column}')"
            )
        if m.source_column in sources:
            raise ValidationError(
                f"Column '{m.source_column}' is mapped more than once "
                f"(to '{sources[m.source_column].target_property}' and '{m.target_property}')"
            )
        sources[m.source_column] = m
        targets[m.target_property] = m
        active.append(m)
    return active


def suggest_mapping(
    mappings: List[FieldMapping],
    columns: List[str],
    properties: List[str],
) -> FieldMapping:
    """Next mapping row: first unmapped column paired with first unmapped property."""
    used_cols = {m.source_column for m in mappings}
    used_props = {m.target_property for m in mappings}
    col: Optional[str] = next((c for c in columns if c not in used_cols), None)
    prop: Optional[str] = next((p for p in properties if p not in used_props), None)
    return FieldMapping(source_column=col or "", target_property=prop or "")
