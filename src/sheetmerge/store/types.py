from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from sheetmerge.codec import OPTION_TYPES, normalize_type


@dataclass(frozen=True)
class PropertyDefinition:
    """Schema metadata for one property of a database."""

    name: str
    type: str
    options: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def has_options(self) -> bool:
        return self.type in OPTION_TYPES

    @property
    def option_names(self) -> List[str]:
        return [o.get("name") for o in self.options if o.get("name")]


@dataclass
class RecordSchema:
    id: str
    properties: Dict[str, PropertyDefinition] = field(default_factory=dict)

    def get(self, name: str) -> Optional[PropertyDefinition]:
        return self.properties.get(name)

    def type_of(self, name: str, default: str = "rich_text") -> str:
        prop = self.properties.get(name)
        return prop.type if prop is not None else default

    @property
    def title_property(self) -> Optional[str]:
        for prop in self.properties.values():
            if prop.type == "title":
                return prop.name
        return None

    @property
    def names(self) -> List[str]:
        return list(self.properties)

    # ------------------------------------------------------------------
    @classmethod
    def from_api(cls, payload: Dict[str, Any]) -> "RecordSchema":
        """
        Build from a database object:

          {"id": "...", "properties": {"Status": {"type": "select",
                                                  "select": {"options": [...]}}}}
        """
        props: Dict[str, PropertyDefinition] = {}
        for name, raw in (payload.get("properties") or {}).items():
            raw_type = raw.get("type")
            body = raw.get(raw_type) or {}
            options = body.get("options") if isinstance(body, dict) else None
            props[name] = PropertyDefinition(
                name=name,
                type=normalize_type(raw_type),
                options=[dict(o) for o in (options or [])],
            )
        return cls(id=payload.get("id", ""), properties=props)

    def with_options(self, option_lists: Dict[str, List[Dict[str, Any]]]) -> "RecordSchema":
        """Copy of the schema with the given properties' option lists replaced."""
        props = dict(self.properties)
        for name, options in option_lists.items():
            if name in props:
                old = props[name]
                props[name] = PropertyDefinition(name=old.name, type=old.type, options=list(options))
        return RecordSchema(id=self.id, properties=props)


@dataclass
class Record:
    id: str
    properties: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    @classmethod
    def from_api(cls, payload: Dict[str, Any]) -> "Record":
        return cls(id=payload["id"], properties=dict(payload.get("properties") or {}))


@dataclass(frozen=True)
class QueryPage:
    records: List[Record]
    has_more: bool = False
    next_cursor: Optional[str] = None
