from __future__ import annotations

import uuid
from copy import deepcopy
from typing import Any, Dict, List, Optional

from sheetmerge.codec import property_type_of
from sheetmerge.errors import NotFound
from sheetmerge.store.base import RecordStore
from sheetmerge.store.types import QueryPage, Record, RecordSchema

MOCK_DATABASE_ID = "mock-db"


def _text(content: str) -> List[Dict[str, Any]]:
    return [{"type": "text", "text": {"content": content}, "plain_text": content}]


def mock_fixture() -> Dict[str, Any]:
    """Demo database used when no remote backend is configured."""
    return {
        "database": {
            "id": MOCK_DATABASE_ID,
            "properties": {
                "Key": {"type": "title", "title": {}},
                "Status": {"type": "select", "select": {"options": [{"name": "New"}, {"name": "Done"}]}},
                "Tags": {"type": "multi_select", "multi_select": {"options": [{"name": "red"}, {"name": "blue"}]}},
                "Amount": {"type": "number", "number": {}},
                "Note": {"type": "rich_text", "rich_text": {}},
            },
        },
        "pages": [
            {
                "id": "p1",
                "properties": {
                    "Key": {"type": "title", "title": _text("A001")},
                    "Status": {"type": "select", "select": {"name": "New"}},
                    "Tags": {"type": "multi_select", "multi_select": [{"name": "red"}]},
                    "Amount": {"type": "number", "number": 10},
                    "Note": {"type": "rich_text", "rich_text": _text("hello")},
                },
            },
            {
                "id": "p2",
                "properties": {
                    "Key": {"type": "title", "title": _text("A002")},
                    "Status": {"type": "select", "select": {"name": "Done"}},
                    "Tags": {"type": "multi_select", "multi_select": [{"name": "blue"}]},
                    "Amount": {"type": "number", "number": 5},
                    "Note": {"type": "rich_text", "rich_text": []},
                },
            },
        ],
    }


def _tagged(changes: Dict[str, Any]) -> Dict[str, Any]:
    out = {}
    for name, value in changes.items():
        value = deepcopy(value)
        kind = property_type_of(value)
        if kind and "type" not in value:
            value = {"type": kind, **value}
        out[name] = value
    return out


class InMemoryRecordStore(RecordStore):
    """
    Record store held in process memory.

    Holds one database (API-shaped dict) and its pages. Every value
    handed out is a deep copy so callers cannot mutate the store.
    """

    def __init__(
        self,
        database: Optional[Dict[str, Any]] = None,
        pages: Optional[List[Dict[str, Any]]] = None,
        page_size: int = 100,
    ) -> None:
        if database is None:
            fixture = mock_fixture()
            database = fixture["database"]
            pages = fixture["pages"] if pages is None else pages
        self.database = deepcopy(database)
        self.pages: List[Dict[str, Any]] = deepcopy(pages or [])
        self.page_size = max(1, int(page_size))
        self.calls: List[tuple] = []

    # ------------------------------------------------------------------
    def _require_db(self, collection_id: str) -> None:
        if self.database is None or self.database.get("id") != collection_id:
            raise NotFound(f"Database not found: {collection_id}")

    def _find_page(self, record_id: str) -> Dict[str, Any]:
        for page in self.pages:
            if page["id"] == record_id:
                return page
        raise NotFound(f"Page not found: {record_id}")

    # ------------------------------------------------------------------
    def retrieve_schema(self, collection_id: str) -> RecordSchema:
        self.calls.append(("retrieve_schema", collection_id))
        self._require_db(collection_id)
        return RecordSchema.from_api(deepcopy(self.database))

    def query_records(self, collection_id: str, cursor: Optional[str] = None) -> QueryPage:
        self.calls.append(("query_records", collection_id, cursor))
        self._require_db(collection_id)
        start = int(cursor) if cursor else 0
        end = start + self.page_size
        chunk = [Record.from_api(deepcopy(p)) for p in self.pages[start:end]]
        has_more = end < len(self.pages)
        return QueryPage(records=chunk, has_more=has_more, next_cursor=str(end) if has_more else None)

    def patch_schema(self, collection_id: str, property_patches: Dict[str, Any]) -> None:
        self.calls.append(("patch_schema", collection_id, deepcopy(property_patches)))
        self._require_db(collection_id)
        props = self.database.setdefault("properties", {})
        for name, patch in property_patches.items():
            kind = property_type_of(patch)
            body = deepcopy(patch.get(kind) or {}) if kind else {}
            current = props.get(name)
            if current is None:
                props[name] = {"type": kind, kind: body}
                continue
            current_kind = current.get("type")
            merged = dict(current.get(current_kind) or {})
            if "options" in body:
                merged["options"] = body["options"]
            current[current_kind] = merged

    def patch_record(self, record_id: str, changes: Dict[str, Any]) -> None:
        self.calls.append(("patch_record", record_id, deepcopy(changes)))
        page = self._find_page(record_id)
        page["properties"].update(_tagged(changes))

    def create_record(self, collection_id: str, properties: Dict[str, Any]) -> None:
        self.calls.append(("create_record", collection_id, deepcopy(properties)))
        self._require_db(collection_id)
        self.pages.append({"id": uuid.uuid4().hex[:8], "properties": _tagged(properties)})
