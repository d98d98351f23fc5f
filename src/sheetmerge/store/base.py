from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from sheetmerge.store.types import QueryPage, Record, RecordSchema


class RecordStore(ABC):
    """
    Capability interface for the record store.

    Implementations raise NotFound for unknown database/record ids and
    TransportError for network or authorization failures. Nothing is
    retried here.
    """

    @abstractmethod
    def retrieve_schema(self, collection_id: str) -> RecordSchema:
        ...

    @abstractmethod
    def query_records(self, collection_id: str, cursor: Optional[str] = None) -> QueryPage:
        ...

    @abstractmethod
    def patch_schema(self, collection_id: str, property_patches: Dict[str, Any]) -> None:
        ...

    @abstractmethod
    def patch_record(self, record_id: str, changes: Dict[str, Any]) -> None:
        ...

    @abstractmethod
    def create_record(self, collection_id: str, properties: Dict[str, Any]) -> None:
        ...


def fetch_all_records(store: RecordStore, collection_id: str) -> List[Record]:
    """Follow cursors until the store reports no more pages."""
    records: List[Record] = []
    cursor: Optional[str] = None
    while True:
        page = store.query_records(collection_id, cursor)
        records.extend(page.records)
        if not page.has_more or not page.next_cursor:
            break
        cursor = page.next_cursor
    return records
