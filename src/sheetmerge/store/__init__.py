"""
Record-store clients.

Exports the public API:
- RecordStore, fetch_all_records
- InMemoryRecordStore
- ProxyRecordStore, NotionRecordStore
"""
from .base import RecordStore, fetch_all_records
from .memory import InMemoryRecordStore, mock_fixture, MOCK_DATABASE_ID
from .remote import ProxyRecordStore, NotionRecordStore
from .types import PropertyDefinition, QueryPage, Record, RecordSchema
