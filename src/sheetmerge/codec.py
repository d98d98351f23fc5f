"""
Property value codec.

Converts between the record store's typed property values, e.g.

    {"type": "select", "select": {"name": "Done"}}

and plain scalars used for key comparison, empty-checks and display.

decode() is the read side, encode() the write side. encode() returns None
when a value has no valid encoding for the target type; callers drop that
field change silently.
"""

from __future__ import annotations

import math
import re
from datetime import date, datetime
from typing import Any, Dict, List, Optional

import pandas as pd

PROPERTY_TYPES = (
    "title",
    "rich_text",
    "number",
    "email",
    "url",
    "phone_number",
    "select",
    "multi_select",
    "date",
    "checkbox",
    "status",
    "other",
)

OPTION_TYPES = {"select", "multi_select", "status"}

_CSV_SPLIT_RE = re.compile(r"[,;]\s*")

_CHECKBOX_TRUE_STR = {"true", "1", "yes", "y"}
_CHECKBOX_FALSE_STR = {"false", "0", "no", "n", ""}


def normalize_type(name: Optional[str]) -> str:
    return name if name in PROPERTY_TYPES else "other"


def property_type_of(prop: Dict[str, Any]) -> Optional[str]:
    """Type tag of a property value; inferred from the payload key if untagged."""
    tag = prop.get("type")
    if tag:
        return tag
    keys = [k for k in prop if k in PROPERTY_TYPES]
    return keys[0] if len(keys) == 1 else None


def to_text(value: Any) -> str:
    """Render a spreadsheet scalar the way it reads in the sheet."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _text_run(value: Any) -> List[Dict[str, Any]]:
    return [{"type": "text", "text": {"content": to_text(value)}}]


def _first_run_text(runs: Any) -> Optional[str]:
    if not isinstance(runs, list) or not runs:
        return None
    run = runs[0] or {}
    text = run.get("plain_text")
    if text is None:
        text = (run.get("text") or {}).get("content")
    return (text or "").strip()


# ---------------------------------------------------------------------------
# Decode
# ---------------------------------------------------------------------------

def decode(prop: Optional[Dict[str, Any]]) -> Any:
    if not prop:
        return None
    kind = property_type_of(prop)
    value = prop.get(kind) if kind else None
    if value is None:
        return None

    if kind in ("title", "rich_text"):
        return _first_run_text(value)
    if kind == "number":
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return value
        try:
            return float(value)
        except (TypeError, ValueError):
            return math.nan
    if kind in ("email", "url", "phone_number"):
        return value
    if kind in ("select", "status"):
        return value.get("name") if isinstance(value, dict) else None
    if kind == "multi_select":
        if not isinstance(value, list):
            return None
        return ", ".join(n for n in ((o or {}).get("name") for o in value) if n)
    if kind == "date":
        return value.get("start") if isinstance(value, dict) else None
    if kind == "checkbox":
        return "true" if value else "false"
    return None


def is_empty(value: Any) -> bool:
    return value is None or value == ""


# ---------------------------------------------------------------------------
# Encode
# ---------------------------------------------------------------------------

def _encode_number(value: Any) -> Optional[Dict[str, Any]]:
    if isinstance(value, bool):
        n = float(value)
    elif isinstance(value, str) and not value.strip():
        # a blank cell writes 0, it is not "no value"
        n = 0.0
    else:
        try:
            n = float(str(value).strip()) if isinstance(value, str) else float(value)
        except (TypeError, ValueError):
            return None
    if not math.isfinite(n):
        return None
    return {"number": int(n) if n.is_integer() else n}


def _encode_date(value: Any) -> Optional[Dict[str, Any]]:
    if isinstance(value, bool) or not isinstance(value, (str, int, float, date, datetime)):
        return None
    if isinstance(value, date) and not isinstance(value, datetime):
        return {"date": {"start": value.isoformat()}}
    try:
        if isinstance(value, (int, float)):
            # epoch milliseconds
            if not math.isfinite(value):
                return None
            ts = pd.to_datetime(value, unit="ms", utc=True)
        else:
            ts = pd.to_datetime(value)
    except (TypeError, ValueError, OverflowError):
        return None
    if pd.isna(ts):
        return None
    if ts.tzinfo is not None:
        ts = ts.tz_convert("UTC")
    return {"date": {"start": ts.strftime("%Y-%m-%d")}}


def _encode_checkbox(value: Any) -> Optional[Dict[str, Any]]:
    if isinstance(value, bool):
        return {"checkbox": value}
    if isinstance(value, str):
        if value in _CHECKBOX_TRUE_STR:
            return {"checkbox": True}
        if value in _CHECKBOX_FALSE_STR:
            return {"checkbox": False}
        return None
    if isinstance(value, (int, float)):
        if value == 1:
            return {"checkbox": True}
        if value == 0:
            return {"checkbox": False}
    return None


def _encode_multi_select(value: Any, expand_csv: bool) -> Dict[str, Any]:
    if isinstance(value, (list, tuple)):
        return {"multi_select": [{"name": to_text(x)} for x in value]}
    if isinstance(value, str) and expand_csv:
        names = [s for s in _CSV_SPLIT_RE.split(value) if s]
        return {"multi_select": [{"name": n} for n in names]}
    return {"multi_select": []}


def encode(target_type: str, value: Any, expand_csv: bool = True) -> Optional[Dict[str, Any]]:
    if value is None:
        return None

    if target_type == "title":
        return {"title": _text_run(value)}
    if target_type == "rich_text":
        return {"rich_text": _text_run(value)}
    if target_type == "number":
        return _encode_number(value)
    if target_type in ("email", "url", "phone_number"):
        return {target_type: to_text(value)}
    if target_type == "select":
        return {"select": None if value == "" else {"name": to_text(value)}}
    if target_type == "multi_select":
        return _encode_multi_select(value, expand_csv)
    if target_type == "date":
        return _encode_date(value)
    if target_type == "checkbox":
        return _encode_checkbox(value)
    if target_type == "status":
        return {"status": {"name": to_text(value)}}
    return {"rich_text": _text_run(value)}


def option_names(prop: Dict[str, Any]) -> List[str]:
    """Option labels referenced by a select, multi_select or status value."""
    kind = property_type_of(prop)
    value = prop.get(kind) if kind else None
    if kind in ("select", "status"):
        name = value.get("name") if isinstance(value, dict) else None
        return [name] if name else []
    if kind == "multi_select" and isinstance(value, list):
        return [o["name"] for o in value if isinstance(o, dict) and o.get("name")]
    return []
