from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List

from sheetmerge.codec import option_names
from sheetmerge.plans.types import ActionPlan, CreatePlan, SkipPlan, UpdatePlan
from sheetmerge.store.base import RecordStore
from sheetmerge.store.types import RecordSchema

log = logging.getLogger("sheetmerge")


def collect_missing_options(plans: Iterable[ActionPlan], schema: RecordSchema) -> Dict[str, List[str]]:
    """
    Option labels referenced by pending writes that the schema lacks,
    per property, in first-seen order.
    """
    missing: Dict[str, List[str]] = {}
    for plan in plans:
        if isinstance(plan, SkipPlan):
            continue
        if not isinstance(plan, (UpdatePlan, CreatePlan)):
            raise TypeError(f"Unknown plan type: {type(plan).__name__}")
        for prop_name, value in plan.changes.items():
            prop = schema.get(prop_name)
            if prop is None or not prop.has_options:
                continue
            existing = set(prop.option_names)
            names = missing.setdefault(prop_name, [])
            for name in option_names(value):
                if name not in existing and name not in names:
                    names.append(name)
    return {k: v for k, v in missing.items() if v}


def build_option_patch(plans: Iterable[ActionPlan], schema: RecordSchema) -> Dict[str, Any]:
    """
    Schema patch appending missing options; existing options keep their
    order. Empty when nothing is missing.
    """
    patch: Dict[str, Any] = {}
    for prop_name, names in collect_missing_options(plans, schema).items():
        prop = schema.properties[prop_name]
        options = [dict(o) for o in prop.options] + [{"name": n} for n in names]
        patch[prop_name] = {prop.type: {"options": options}}
    return patch


def reconcile_options(
    store: RecordStore,
    collection_id: str,
    plans: Iterable[ActionPlan],
    schema: RecordSchema,
) -> tuple[RecordSchema, Dict[str, Any]]:
    """Apply the option patch once. Returns the updated schema and the patch sent."""
    patch = build_option_patch(plans, schema)
    if not patch:
        return schema, patch

    for prop_name, body in patch.items():
        added = len(next(iter(body.values()))["options"]) - len(schema.properties[prop_name].options)
        log.info("Adding %d option(s) to '%s'", added, prop_name)
    store.patch_schema(collection_id, patch)

    merged = {name: next(iter(body.values()))["options"] for name, body in patch.items()}
    return schema.with_options(merged), patch
