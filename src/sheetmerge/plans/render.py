from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

from jinja2 import Environment, PackageLoader, StrictUndefined

from sheetmerge.codec import decode, to_text
from sheetmerge.plans.index import JoinSummary
from sheetmerge.plans.planner import count_actions
from sheetmerge.plans.types import ActionPlan, CreatePlan, SkipPlan, UpdatePlan

PREVIEW_TEMPLATE = "preview.txt.j2"

_env = Environment(
    loader=PackageLoader("sheetmerge", "templates"),
    autoescape=False,
    trim_blocks=True,
    lstrip_blocks=True,
    undefined=StrictUndefined,
)


def _describe_changes(changes: Dict[str, Any]) -> str:
    parts = []
    for name, value in changes.items():
        plain = decode(value)
        parts.append(f"{name}={'' if plain is None else to_text(plain)}")
    return "; ".join(parts)


def plan_to_row(plan: ActionPlan) -> Dict[str, str]:
    """Flat display row for one plan."""
    if isinstance(plan, UpdatePlan):
        return {"key": plan.key, "action": "update", "detail": _describe_changes(plan.changes), "target": plan.record.id}
    if isinstance(plan, CreatePlan):
        return {"key": plan.key, "action": "create", "detail": _describe_changes(plan.changes), "target": "(new)"}
    if isinstance(plan, SkipPlan):
        target = plan.record.id if plan.record is not None else ""
        return {"key": plan.key, "action": "skip", "detail": plan.reason, "target": target}
    raise TypeError(f"Unknown plan type: {type(plan).__name__}")


def render_preview(
    plans: Iterable[ActionPlan],
    summary: Optional[JoinSummary] = None,
    *,
    join_type: str = "left",
    limit: int = 0,
) -> str:
    plans = list(plans)
    rows: List[Dict[str, str]] = [plan_to_row(p) for p in plans]
    shown = rows[:limit] if limit else rows
    tpl = _env.get_template(PREVIEW_TEMPLATE)
    return tpl.render(
        join_type=join_type,
        summary=summary,
        counts=count_actions(plans),
        rows=shown,
        hidden=len(rows) - len(shown),
    )
