from __future__ import annotations
from pathlib import Path
from typing import Any, Dict, List, Union
import logging
import math

import pandas as pd

from .types import SourceTable

log = logging.getLogger("sheetmerge")

EXCEL_SUFFIXES = {".xlsx", ".xlsm", ".xls"}
CSV_SUFFIXES = {".csv", ".txt"}


def _cell(value: Any) -> Any:
    """Blank cells become "", never None; integral floats become ints."""
    if value is None:
        return ""
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        if value.is_integer():
            return int(value)
        return value
    if value is pd.NaT:
        return ""
    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime()
    return value


def frame_to_table(df: pd.DataFrame, name: str | None = None) -> SourceTable:
    df = df.dropna(how="all")
    columns = [str(c) for c in df.columns]
    rows: List[Dict[str, Any]] = []
    for record in df.itertuples(index=False, name=None):
        rows.append({col: _cell(v) for col, v in zip(columns, record)})
    return SourceTable(rows=rows, columns=columns, name=name)


def load_source_table(path: Union[str, Path], sheet: Union[int, str] = 0) -> SourceTable:
    """
    Read a spreadsheet (first sheet by default) or CSV into a SourceTable.
    """
    path = Path(path).expanduser().resolve()
    if not path.is_file():
        raise FileNotFoundError(path)

    suffix = path.suffix.lower()
    if suffix in CSV_SUFFIXES:
        df = pd.read_csv(path, dtype=str, keep_default_na=False)
    elif suffix in EXCEL_SUFFIXES:
        df = pd.read_excel(path, sheet_name=sheet, dtype=object)
    else:
        raise ValueError(f"Unsupported spreadsheet type: {path.name}")

    table = frame_to_table(df, name=path.name)
    log.info("Loaded %d row(s), %d column(s) from %s", len(table.rows), len(table.columns), path.name)
    return table
