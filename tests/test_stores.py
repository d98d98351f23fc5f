import json

import pytest
import requests

from sheetmerge.codec import decode
from sheetmerge.errors import NotFound, TransportError
from sheetmerge.store.base import fetch_all_records
from sheetmerge.store.memory import InMemoryRecordStore, mock_fixture
from sheetmerge.store.remote import NOTION_VERSION, NotionRecordStore, ProxyRecordStore


# -------------------------------------------------------
# Fakes
# -------------------------------------------------------

class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=None):
        self.status_code = status_code
        self._payload = payload
        if text is None:
            text = json.dumps(payload) if payload is not None else ""
        self.text = text

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        return json.loads(self.text)


class FakeSession:
    def __init__(self, responses=None, error=None):
        self.responses = list(responses or [])
        self.error = error
        self.requests = []

    def request(self, method, url, headers=None, json=None, timeout=None):
        self.requests.append({"method": method, "url": url, "headers": headers, "json": json, "timeout": timeout})
        if self.error is not None:
            raise self.error
        if self.responses:
            return self.responses.pop(0)
        return FakeResponse(200, {})


DATABASE = {
    "id": "db1",
    "properties": {
        "Name": {"type": "title", "title": {}},
        "Status": {"type": "select", "select": {"options": [{"name": "New"}]}},
    },
}


# -------------------------------------------------------
# In-memory store
# -------------------------------------------------------

def test_memory_store_serves_fixture():
    store = InMemoryRecordStore()
    schema = store.retrieve_schema("mock-db")
    assert schema.names == ["Key", "Status", "Tags", "Amount", "Note"]
    assert schema.title_property == "Key"
    records = fetch_all_records(store, "mock-db")
    assert [decode(r.properties["Key"]) for r in records] == ["A001", "A002"]


def test_memory_store_paginates():
    fixture = mock_fixture()
    pages = [{"id": f"p{i}", "properties": {}} for i in range(5)]
    store = InMemoryRecordStore(fixture["database"], pages, page_size=2)

    first = store.query_records("mock-db")
    assert [r.id for r in first.records] == ["p0", "p1"]
    assert first.has_more and first.next_cursor == "2"

    records = fetch_all_records(store, "mock-db")
    assert [r.id for r in records] == [f"p{i}" for i in range(5)]
    assert len([c for c in store.calls if c[0] == "query_records"]) == 4


def test_memory_store_not_found():
    store = InMemoryRecordStore()
    with pytest.raises(NotFound, match="Database not found: nope"):
        store.retrieve_schema("nope")
    with pytest.raises(NotFound, match="Page not found: zz"):
        store.patch_record("zz", {})


def test_memory_store_hands_out_copies():
    store = InMemoryRecordStore()
    rec = store.query_records("mock-db").records[0]
    rec.properties["Amount"]["number"] = 999
    assert store.pages[0]["properties"]["Amount"]["number"] == 10


def test_memory_store_patch_schema_merges_options_and_adds_properties():
    store = InMemoryRecordStore()
    store.patch_schema("mock-db", {
        "Status": {"select": {"options": [{"name": "New"}, {"name": "Done"}, {"name": "Blocked"}]}},
        "Extra": {"rich_text": {}},
    })
    schema = store.retrieve_schema("mock-db")
    assert schema.properties["Status"].option_names == ["New", "Done", "Blocked"]
    assert schema.type_of("Extra") == "rich_text"


def test_memory_store_tags_written_values():
    store = InMemoryRecordStore()
    store.patch_record("p1", {"Amount": {"number": 3}})
    assert store.pages[0]["properties"]["Amount"] == {"type": "number", "number": 3}
    store.create_record("mock-db", {"Key": {"title": [{"type": "text", "text": {"content": "N1"}}]}})
    created = store.pages[-1]
    assert created["properties"]["Key"]["type"] == "title"
    assert len(created["id"]) == 8


# -------------------------------------------------------
# Proxy store
# -------------------------------------------------------

def test_proxy_routes_and_payloads():
    session = FakeSession([
        FakeResponse(200, DATABASE),
        FakeResponse(200, {"results": [{"id": "r1", "properties": {}}], "has_more": True, "next_cursor": "c2"}),
        FakeResponse(200, {"results": [{"id": "r2", "properties": {}}], "has_more": False, "next_cursor": None}),
        FakeResponse(200, {}),
        FakeResponse(200, {}),
        FakeResponse(200, {}),
    ])
    store = ProxyRecordStore("http://proxy/api/notion-merge/", session=session, page_size=50)

    schema = store.retrieve_schema("db1")
    assert schema.properties["Status"].option_names == ["New"]
    records = fetch_all_records(store, "db1")
    assert [r.id for r in records] == ["r1", "r2"]
    store.patch_schema("db1", {"Status": {"select": {"options": []}}})
    store.patch_record("r1", {"Name": {"title": []}})
    store.create_record("db1", {"Name": {"title": []}})

    calls = [(r["method"], r["url"].replace("http://proxy/api/notion-merge", "")) for r in session.requests]
    assert calls == [
        ("POST", "/databases/retrieve"),
        ("POST", "/databases/query"),
        ("POST", "/databases/query"),
        ("PATCH", "/databases/update"),
        ("PATCH", "/pages/update"),
        ("POST", "/pages/create"),
    ]
    bodies = [r["json"] for r in session.requests]
    assert bodies[0] == {"database_id": "db1"}
    assert bodies[1] == {"database_id": "db1", "page_size": 50}
    assert bodies[2] == {"database_id": "db1", "start_cursor": "c2", "page_size": 50}
    assert bodies[3] == {"database_id": "db1", "properties": {"Status": {"select": {"options": []}}}}
    assert bodies[4] == {"page_id": "r1", "properties": {"Name": {"title": []}}}
    assert bodies[5] == {"parent": {"database_id": "db1"}, "properties": {"Name": {"title": []}}}
    assert "Authorization" not in session.requests[0]["headers"]


def test_proxy_sends_bearer_token_when_configured():
    session = FakeSession([FakeResponse(200, DATABASE)])
    ProxyRecordStore("http://proxy", "secret", session=session).retrieve_schema("db1")
    assert session.requests[0]["headers"]["Authorization"] == "Bearer secret"


def test_proxy_requires_base_url():
    with pytest.raises(ValueError):
        ProxyRecordStore("")


def test_proxy_maps_404_to_not_found():
    session = FakeSession([FakeResponse(404, text="Could not find database")])
    store = ProxyRecordStore("http://proxy", session=session)
    with pytest.raises(NotFound, match="Could not find database"):
        store.retrieve_schema("db1")


def test_proxy_maps_http_errors_to_transport_error():
    session = FakeSession([FakeResponse(401, text="unauthorized")])
    store = ProxyRecordStore("http://proxy", session=session)
    with pytest.raises(TransportError) as info:
        store.patch_record("r1", {})
    assert info.value.status_code == 401
    assert str(info.value) == "unauthorized"


def test_proxy_wraps_connection_errors():
    session = FakeSession(error=requests.ConnectionError("refused"))
    store = ProxyRecordStore("http://proxy", session=session)
    with pytest.raises(TransportError, match="refused"):
        store.retrieve_schema("db1")


def test_proxy_rejects_invalid_json():
    session = FakeSession([FakeResponse(200, text="<html>")])
    store = ProxyRecordStore("http://proxy", session=session)
    with pytest.raises(TransportError, match="invalid JSON"):
        store.query_records("db1")


# -------------------------------------------------------
# Direct Notion store
# -------------------------------------------------------

def test_notion_store_routes_and_headers():
    session = FakeSession([
        FakeResponse(200, DATABASE),
        FakeResponse(200, {"results": [], "has_more": False}),
        FakeResponse(200, {}),
        FakeResponse(200, {}),
        FakeResponse(200, {}),
    ])
    store = NotionRecordStore("tok", session=session)
    store.retrieve_schema("db1")
    store.query_records("db1")
    store.patch_schema("db1", {})
    store.patch_record("r1", {})
    store.create_record("db1", {})

    calls = [(r["method"], r["url"]) for r in session.requests]
    assert calls == [
        ("GET", "https://api.notion.com/v1/databases/db1"),
        ("POST", "https://api.notion.com/v1/databases/db1/query"),
        ("PATCH", "https://api.notion.com/v1/databases/db1"),
        ("PATCH", "https://api.notion.com/v1/pages/r1"),
        ("POST", "https://api.notion.com/v1/pages"),
    ]
    headers = session.requests[0]["headers"]
    assert headers["Authorization"] == "Bearer tok"
    assert headers["Notion-Version"] == NOTION_VERSION
    assert session.requests[1]["json"] is None
