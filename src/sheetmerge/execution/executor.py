# sheetmerge/execution/executor.py

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from sheetmerge.codec import decode, encode, is_empty
from sheetmerge.errors import MergeError
from sheetmerge.execution.options import reconcile_options
from sheetmerge.execution.pacing import NoPacer
from sheetmerge.execution.state import RunState
from sheetmerge.plans.types import ActionPlan, CreatePlan, SkipPlan, UpdatePlan, is_dispatchable
from sheetmerge.store.base import RecordStore, fetch_all_records
from sheetmerge.store.types import Record, RecordSchema


@dataclass
class ExecutionReport:
    status: str
    progress: int
    updated: int = 0
    created: int = 0
    skipped: int = 0
    option_patch: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None
    failed_key: Optional[str] = None
    records: Optional[List[Record]] = None
    schema: Optional[RecordSchema] = None
    duplicates: int = 0

    @property
    def ok(self) -> bool:
        return self.status == "done"

    def summary(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "progress": self.progress,
            "updated": self.updated,
            "created": self.created,
            "skipped": self.skipped,
            "options_added": {k: len(v) for k, v in self.option_patch.items()},
            "error": self.error,
            "failed_key": self.failed_key,
            "duplicates": self.duplicates,
        }


# ===============================================================
class PlanExecutor:
    """
    Applies a plan sequence to a record store, one request at a time.

    Order of effects:
      1. option patch (if enabled and needed); failure stops the run
         before any record is touched
      2. update/create plans in plan order, paced between dispatches
      3. one full re-fetch of the records

    The first store error ends the run with status "error". Writes that
    already went through stay applied.
    """

    def __init__(
        self,
        store: RecordStore,
        collection_id: str,
        schema: RecordSchema,
        *,
        pacer=None,
        create_missing_options: bool = True,
        on_progress: Optional[Callable[[int], None]] = None,
        on_item: Optional[Callable[[ActionPlan, int], None]] = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.store = store
        self.collection_id = collection_id
        self.schema = schema
        self.pacer = pacer or NoPacer()
        self.create_missing_options = create_missing_options
        self.on_progress = on_progress
        self.on_item = on_item
        self.log = logger or logging.getLogger("sheetmerge")
        self.state = RunState()

    # ---------------------------------------------------------------
    def _create_properties(self, plan: CreatePlan) -> Dict[str, Any]:
        properties = dict(plan.changes)
        title = self.schema.title_property
        if title and (title not in properties or is_empty(decode(properties[title]))):
            properties[title] = encode("title", plan.key)
        return properties

    def _dispatch(self, plan: ActionPlan) -> None:
        if isinstance(plan, UpdatePlan):
            self.log.info("update %s (%s): %s", plan.key, plan.record.id, ", ".join(plan.changes))
            self.store.patch_record(plan.record.id, plan.changes)
        elif isinstance(plan, CreatePlan):
            self.log.info("create %s", plan.key)
            self.store.create_record(self.collection_id, self._create_properties(plan))
        elif isinstance(plan, SkipPlan):
            return
        else:
            raise TypeError(f"Unknown plan type: {type(plan).__name__}")

    def _report_progress(self, pct: int) -> None:
        if self.on_progress is not None:
            self.on_progress(pct)

    # ---------------------------------------------------------------
    def run(self, plans: List[ActionPlan]) -> ExecutionReport:
        pending = [p for p in plans if is_dispatchable(p)]
        report = ExecutionReport(status=self.state.status, progress=0, skipped=len(plans) - len(pending))
        self.state.start(len(pending))

        current: Optional[ActionPlan] = None
        try:
            if self.create_missing_options:
                self.schema, report.option_patch = reconcile_options(
                    self.store, self.collection_id, pending, self.schema
                )
                report.schema = self.schema

            for i, plan in enumerate(pending):
                if i > 0:
                    self.pacer.pace()
                current = plan
                self._dispatch(plan)
                if isinstance(plan, UpdatePlan):
                    report.updated += 1
                else:
                    report.created += 1
                if self.on_item is not None:
                    self.on_item(plan, i)
                self._report_progress(self.state.advance())
            current = None

            report.records = fetch_all_records(self.store, self.collection_id)
            self.state.finish()
            if not pending:
                self._report_progress(self.state.progress)

        except MergeError as exc:
            self.state.fail(str(exc))
            report.failed_key = current.key if current is not None else None
            self.log.error("Run failed%s: %s", f" at {current.key}" if current else "", exc)
        except Exception as exc:
            self.state.fail(str(exc))
            raise

        report.status = self.state.status
        report.progress = self.state.progress
        report.error = self.state.error
        report.schema = self.schema
        return report
