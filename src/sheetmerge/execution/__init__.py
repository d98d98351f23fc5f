"""
Plan execution against a record store.

Exports the public API:
- PlanExecutor, ExecutionReport
- RunState
- FixedDelayPacer, NoPacer
- build_option_patch, reconcile_options
"""
from .executor import PlanExecutor, ExecutionReport
from .state import RunState
from .pacing import FixedDelayPacer, NoPacer, make_pacer
from .options import build_option_patch, collect_missing_options, reconcile_options
