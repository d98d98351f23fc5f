"""
MergeSession: the in-memory state of one merge.

Holds the loaded sheet, the current schema/record snapshot and the latest
preview. Any change to an input of planning discards the preview, so
execute() never runs a stale plan.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from pathlib import Path
from typing import Any, Callable, List, Optional, Union

from sheetmerge.config import MergeConfig, build_store
from sheetmerge.errors import MergeError, ValidationError
from sheetmerge.execution.executor import ExecutionReport, PlanExecutor
from sheetmerge.execution.pacing import NoPacer, make_pacer
from sheetmerge.plans.index import JoinSummary, KeyIndex, build_index, join_summary, record_key, source_key
from sheetmerge.plans.planner import build_planned_updates
from sheetmerge.plans.types import ActionPlan
from sheetmerge.sheets.loader import load_source_table
from sheetmerge.sheets.mapping import normalize_mappings, suggest_mapping
from sheetmerge.sheets.types import FieldMapping, SourceRow, SourceTable
from sheetmerge.store.base import RecordStore, fetch_all_records
from sheetmerge.store.types import Record, RecordSchema

PLANNING_FIELDS = {"join_type", "source_key", "record_key", "mappings", "policy"}


def get_logger(name: str = "sheetmerge") -> logging.Logger:
    logger = logging.getLogger(name)
    if not logger.handlers:
        h = logging.StreamHandler()
        h.setFormatter(logging.Formatter("[sheetmerge] %(message)s"))
        logger.addHandler(h)
        logger.setLevel(logging.INFO)
    return logger


class MergeSession:
    def __init__(
        self,
        config: MergeConfig,
        store: Optional[RecordStore] = None,
        *,
        pacer=None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.config = config
        self.store = store if store is not None else build_store(config)
        if pacer is None:
            pacer = NoPacer() if config.backend.mode == "mock" else make_pacer(config.backend.pace_seconds)
        self.pacer = pacer
        self.log = logger or get_logger()

        self.source: Optional[SourceTable] = None
        self.schema: Optional[RecordSchema] = None
        self.records: List[Record] = []
        self.last_report: Optional[ExecutionReport] = None
        self._preview: Optional[List[ActionPlan]] = None

    # ------------------------------------------------------------------
    # Inputs
    # ------------------------------------------------------------------
    def invalidate(self) -> None:
        self._preview = None

    def set_source(self, table: SourceTable) -> None:
        self.source = table
        if not self.config.source_key and table.columns:
            self.config = replace(self.config, source_key=table.columns[0])
        self.invalidate()

    def load_source(self, path: Union[str, Path], sheet: Union[int, str] = 0) -> SourceTable:
        table = load_source_table(path, sheet=sheet)
        self.set_source(table)
        return table

    def update_config(self, **changes: Any) -> None:
        """Change planning inputs (join_type, source_key, record_key, mappings, policy)."""
        unknown = set(changes) - PLANNING_FIELDS
        if unknown:
            raise ValueError(f"Not a planning setting: {', '.join(sorted(unknown))}")
        self.config = replace(self.config, **changes)
        self.invalidate()

    def suggest_mapping(self) -> FieldMapping:
        """Append a mapping row pairing the first unused column and property."""
        columns = self.source.columns if self.source else []
        properties = self.schema.names if self.schema else []
        m = suggest_mapping(self.config.mappings, columns, properties)
        self.update_config(mappings=[*self.config.mappings, m])
        return m

    def load_database(self) -> RecordSchema:
        """Replace the schema/record snapshot with a fresh copy from the store."""
        database_id = self.config.database_id.strip()
        if not database_id:
            raise ValidationError("Database ID is required")

        self.invalidate()
        try:
            schema = self.store.retrieve_schema(database_id)
            records = fetch_all_records(self.store, database_id)
        except MergeError:
            self.schema = None
            self.records = []
            raise

        self.schema = schema
        self.records = records
        if not self.config.record_key and schema.names:
            self.config = replace(self.config, record_key=schema.names[0])
        self.log.info("Loaded %d record(s) and %d properties from %s", len(records), len(schema.properties), database_id)
        return schema

    # ------------------------------------------------------------------
    # Planning
    # ------------------------------------------------------------------
    def source_index(self) -> KeyIndex[SourceRow]:
        if not self.config.source_key or self.source is None:
            return KeyIndex()
        return build_index(self.source.rows, source_key(self.config.source_key))

    def record_index(self) -> KeyIndex[Record]:
        if not self.config.record_key:
            return KeyIndex()
        return build_index(self.records, record_key(self.config.record_key))

    def summary(self) -> JoinSummary:
        return join_summary(self.source_index(), self.record_index())

    def _check_ready(self) -> List[FieldMapping]:
        if not self.config.database_id.strip():
            raise ValidationError("Database ID is required")
        if self.source is None or not self.source.rows:
            raise ValidationError("Load a spreadsheet with at least one row first")
        if not self.config.source_key:
            raise ValidationError("Choose the spreadsheet key column")
        if self.config.source_key not in self.source.columns:
            raise ValidationError(f"Key column '{self.config.source_key}' is not in the spreadsheet")
        if not self.config.record_key:
            raise ValidationError("Choose the database key property")
        if self.schema is None:
            raise ValidationError("Load the database first")
        mappings = normalize_mappings(self.config.mappings)
        if not mappings:
            raise ValidationError("Add at least one column mapping")
        return mappings

    def build_plans(self) -> List[ActionPlan]:
        mappings = self._check_ready()
        source_index = self.source_index()
        record_index = self.record_index()
        if source_index.duplicates or record_index.duplicates:
            self.log.warning(
                "Duplicate keys overwritten: sheet %d, database %d",
                source_index.duplicates,
                record_index.duplicates,
            )
        return build_planned_updates(
            source_index,
            record_index,
            self.config.join_type,
            mappings,
            self.schema,
            self.config.policy,
        )

    def preview(self) -> List[ActionPlan]:
        self._preview = self.build_plans()
        return self._preview

    @property
    def latest_preview(self) -> Optional[List[ActionPlan]]:
        return self._preview

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------
    def execute(
        self,
        on_progress: Optional[Callable[[int], None]] = None,
        on_item: Optional[Callable[[ActionPlan, int], None]] = None,
    ) -> ExecutionReport:
        plans = self._preview if self._preview is not None else self.build_plans()
        summary = self.summary()

        executor = PlanExecutor(
            self.store,
            self.config.database_id.strip(),
            self.schema,
            pacer=self.pacer,
            create_missing_options=self.config.policy.create_missing_options,
            on_progress=on_progress,
            on_item=on_item,
            logger=self.log,
        )
        report = executor.run(plans)
        report.duplicates = summary.left_duplicates + summary.right_duplicates

        if report.schema is not None:
            self.schema = report.schema
        if report.records is not None:
            self.records = report.records
        self.invalidate()
        self.last_report = report
        return report
