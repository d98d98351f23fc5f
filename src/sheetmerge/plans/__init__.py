"""
Merge planning.

Exports the public API:
- build_index, KeyIndex, join_summary
- build_planned_updates
- UpdatePlan, CreatePlan, SkipPlan
- MergePolicy
"""
from .index import KeyIndex, JoinSummary, build_index, join_summary, record_key, source_key
from .planner import build_planned_updates, select_keys
from .policy import MergePolicy
from .types import ActionPlan, CreatePlan, SkipPlan, UpdatePlan
