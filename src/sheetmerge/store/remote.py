"""
HTTP record-store clients.

ProxyRecordStore talks to a small proxy service that holds the Notion token
server side and exposes:

  POST  {base}/databases/retrieve   {database_id}
  POST  {base}/databases/query      {database_id, start_cursor?, page_size?}
  PATCH {base}/databases/update     {database_id, properties}
  PATCH {base}/pages/update         {page_id, properties}
  POST  {base}/pages/create         {parent: {database_id}, properties}

NotionRecordStore calls the Notion API directly with the same contract.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import requests

from sheetmerge.errors import NotFound, TransportError
from sheetmerge.store.base import RecordStore
from sheetmerge.store.types import QueryPage, Record, RecordSchema

NOTION_BASE = "https://api.notion.com/v1"
NOTION_VERSION = "2022-06-28"
DEFAULT_PROXY_BASE = "/api/notion-merge"


class ProxyRecordStore(RecordStore):
    def __init__(
        self,
        base_url: str,
        token: str = "",
        *,
        session: Optional[requests.Session] = None,
        timeout: float = 30.0,
        page_size: Optional[int] = None,
        logger: logging.Logger | None = None,
    ) -> None:
        if not base_url:
            raise ValueError("base_url is required")
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.session = session or requests.Session()
        self.timeout = timeout
        self.page_size = page_size
        self.logger = logger or logging.getLogger("sheetmerge")

    # ------------------------------------------------------------------
    # HTTP plumbing
    # ------------------------------------------------------------------
    @property
    def headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _request(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(
                method,
                url,
                headers=self.headers,
                json=payload,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise TransportError(f"{method} {url} failed: {exc}") from exc

        if response.status_code == 404:
            raise NotFound(response.text or f"{method} {url} returned 404")
        if not response.ok:
            self.logger.error("%s %s -> %s", method, url, response.status_code)
            raise TransportError(response.text or f"HTTP {response.status_code}", status_code=response.status_code)
        if not response.text:
            return {}
        try:
            return response.json()
        except ValueError as exc:
            raise TransportError(f"{method} {url}: invalid JSON response") from exc

    @staticmethod
    def _page(data: Dict[str, Any]) -> QueryPage:
        return QueryPage(
            records=[Record.from_api(p) for p in data.get("results", [])],
            has_more=bool(data.get("has_more")),
            next_cursor=data.get("next_cursor"),
        )

    def _query_body(self, cursor: Optional[str]) -> Dict[str, Any]:
        body: Dict[str, Any] = {}
        if cursor:
            body["start_cursor"] = cursor
        if self.page_size:
            body["page_size"] = self.page_size
        return body

    # ------------------------------------------------------------------
    # RecordStore
    # ------------------------------------------------------------------
    def retrieve_schema(self, collection_id: str) -> RecordSchema:
        data = self._request("POST", "/databases/retrieve", {"database_id": collection_id})
        return RecordSchema.from_api(data)

    def query_records(self, collection_id: str, cursor: Optional[str] = None) -> QueryPage:
        body = {"database_id": collection_id, **self._query_body(cursor)}
        return self._page(self._request("POST", "/databases/query", body))

    def patch_schema(self, collection_id: str, property_patches: Dict[str, Any]) -> None:
        self._request("PATCH", "/databases/update", {"database_id": collection_id, "properties": property_patches})

    def patch_record(self, record_id: str, changes: Dict[str, Any]) -> None:
        self._request("PATCH", "/pages/update", {"page_id": record_id, "properties": changes})

    def create_record(self, collection_id: str, properties: Dict[str, Any]) -> None:
        self._request(
            "POST",
            "/pages/create",
            {"parent": {"database_id": collection_id}, "properties": properties},
        )


class NotionRecordStore(ProxyRecordStore):
    """Direct Notion API client; only for server-side use where the token is safe."""

    def __init__(self, token: str, *, base_url: str = NOTION_BASE, **kwargs: Any) -> None:
        super().__init__(base_url, token, **kwargs)

    @property
    def headers(self) -> Dict[str, str]:
        headers = super().headers
        headers["Notion-Version"] = NOTION_VERSION
        return headers

    def retrieve_schema(self, collection_id: str) -> RecordSchema:
        return RecordSchema.from_api(self._request("GET", f"/databases/{collection_id}"))

    def query_records(self, collection_id: str, cursor: Optional[str] = None) -> QueryPage:
        body = self._query_body(cursor)
        return self._page(self._request("POST", f"/databases/{collection_id}/query", body or None))

    def patch_schema(self, collection_id: str, property_patches: Dict[str, Any]) -> None:
        self._request("PATCH", f"/databases/{collection_id}", {"properties": property_patches})

    def patch_record(self, record_id: str, changes: Dict[str, Any]) -> None:
        self._request("PATCH", f"/pages/{record_id}", {"properties": changes})

    def create_record(self, collection_id: str, properties: Dict[str, Any]) -> None:
        self._request("POST", "/pages", {"parent": {"database_id": collection_id}, "properties": properties})
