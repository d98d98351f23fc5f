from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Generic, Iterable, Iterator, List, Optional, TypeVar

from sheetmerge.codec import decode, to_text
from sheetmerge.sheets.types import SourceRow
from sheetmerge.store.types import Record

T = TypeVar("T")


@dataclass
class KeyIndex(Generic[T]):
    """
    Insertion-ordered key -> row mapping.

    Duplicate keys: the later row replaces the earlier one and
    `duplicates` counts each replacement.
    """

    entries: Dict[str, T] = field(default_factory=dict)
    duplicates: int = 0

    def __contains__(self, key: object) -> bool:
        return key in self.entries

    def __iter__(self) -> Iterator[str]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def get(self, key: str) -> Optional[T]:
        return self.entries.get(key)

    def keys(self) -> List[str]:
        return list(self.entries)


def _key_text(raw: Any) -> str:
    if raw is None:
        return ""
    if isinstance(raw, float) and math.isnan(raw):
        return ""
    return to_text(raw).strip()


def build_index(rows: Iterable[T], key_extractor: Callable[[T], Any]) -> KeyIndex[T]:
    index: KeyIndex[T] = KeyIndex()
    for row in rows:
        key = _key_text(key_extractor(row))
        if not key:
            continue
        if key in index.entries:
            index.duplicates += 1
        index.entries[key] = row
    return index


def source_key(column: str) -> Callable[[SourceRow], Any]:
    return lambda row: row.get(column)


def record_key(property_name: str) -> Callable[[Record], Any]:
    return lambda record: decode(record.properties.get(property_name))


# ---------------------------------------------------------------------------
# Join summary
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class JoinSummary:
    left_count: int
    right_count: int
    both_count: int
    left_only: List[str]
    right_only: List[str]
    left_duplicates: int = 0
    right_duplicates: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "left_count": self.left_count,
            "right_count": self.right_count,
            "both_count": self.both_count,
            "left_only": list(self.left_only),
            "right_only": list(self.right_only),
            "left_duplicates": self.left_duplicates,
            "right_duplicates": self.right_duplicates,
        }


def join_summary(source_index: KeyIndex, record_index: KeyIndex) -> JoinSummary:
    left = source_index.keys()
    right = record_index.keys()
    return JoinSummary(
        left_count=len(left),
        right_count=len(right),
        both_count=sum(1 for k in left if k in record_index),
        left_only=[k for k in left if k not in record_index],
        right_only=[k for k in right if k not in source_index],
        left_duplicates=source_index.duplicates,
        right_duplicates=record_index.duplicates,
    )
