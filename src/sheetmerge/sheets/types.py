from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
import uuid

SourceRow = Dict[str, Any]


def _uid() -> str:
    return uuid.uuid4().hex[:8]


@dataclass
class SourceTable:
    rows: List[SourceRow] = field(default_factory=list)
    columns: List[str] = field(default_factory=list)   # union across rows, first-seen order
    name: Optional[str] = None

    @classmethod
    def from_rows(cls, rows: List[SourceRow], name: Optional[str] = None) -> "SourceTable":
        seen: Dict[str, None] = {}
        for row in rows:
            for col in row:
                seen.setdefault(col, None)
        return cls(rows=list(rows), columns=list(seen), name=name)

    def __len__(self) -> int:
        return len(self.rows)


@dataclass(frozen=True)
class FieldMapping:
    source_column: str
    target_property: str
    id: str = field(default_factory=_uid, compare=False)   # UI handle only
