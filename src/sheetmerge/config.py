"""
Merge file loading.

A merge file is YAML:

  database_id: mock-db
  backend:
    mode: mock            # mock | proxy | notion
    base_url: /api/notion-merge
    token_env: NOTION_TOKEN
    pace_seconds: 0.35
  join:
    type: left
    source_key: Key
    record_key: Key
  mappings:
    - {source: Amount, target: Amount}
  policy:
    profile: default
    allow_create: false
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from sheetmerge.errors import ValidationError
from sheetmerge.execution.pacing import DEFAULT_DELAY_SECONDS
from sheetmerge.plans.policy import MergePolicy
from sheetmerge.plans.types import JOIN_TYPES
from sheetmerge.sheets.mapping import build_mappings
from sheetmerge.sheets.types import FieldMapping
from sheetmerge.store.base import RecordStore
from sheetmerge.store.memory import MOCK_DATABASE_ID, InMemoryRecordStore
from sheetmerge.store.remote import DEFAULT_PROXY_BASE, NotionRecordStore, ProxyRecordStore

BACKEND_MODES = {"mock", "proxy", "notion"}


@dataclass
class BackendConfig:
    mode: str = "mock"
    base_url: str = DEFAULT_PROXY_BASE
    token_env: str = "NOTION_TOKEN"
    pace_seconds: float = DEFAULT_DELAY_SECONDS
    timeout: float = 30.0
    page_size: Optional[int] = None

    def __post_init__(self):
        if self.mode not in BACKEND_MODES:
            raise ValueError(f"Unknown backend mode '{self.mode}'. Expected one of {sorted(BACKEND_MODES)}")

    @property
    def token(self) -> str:
        return os.environ.get(self.token_env, "") if self.token_env else ""


@dataclass
class MergeConfig:
    database_id: str = MOCK_DATABASE_ID
    join_type: str = "left"
    source_key: str = ""
    record_key: str = "Key"
    mappings: List[FieldMapping] = field(default_factory=list)
    policy: MergePolicy = field(default_factory=MergePolicy)
    backend: BackendConfig = field(default_factory=BackendConfig)

    def __post_init__(self):
        if self.join_type not in JOIN_TYPES:
            raise ValueError(f"Invalid join type '{self.join_type}'. Expected one of {list(JOIN_TYPES)}")

    # ------------------------------------------------------------------
    @classmethod
    def from_dict(cls, data: Dict[str, Any] | None) -> "MergeConfig":
        data = dict(data or {})
        join = dict(data.get("join") or {})
        backend = dict(data.get("backend") or {})
        unknown = set(backend) - set(BackendConfig.__dataclass_fields__)
        if unknown:
            raise ValueError(f"Unknown backend option(s): {', '.join(sorted(unknown))}")
        return cls(
            database_id=str(data.get("database_id", MOCK_DATABASE_ID) or ""),
            join_type=join.get("type", "left"),
            source_key=str(join.get("source_key", "") or ""),
            record_key=str(join.get("record_key", "Key") or ""),
            mappings=build_mappings(data.get("mappings")),
            policy=MergePolicy.from_config(data.get("policy")),
            backend=BackendConfig(**backend),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "database_id": self.database_id,
            "backend": {
                "mode": self.backend.mode,
                "base_url": self.backend.base_url,
                "token_env": self.backend.token_env,
                "pace_seconds": self.backend.pace_seconds,
            },
            "join": {
                "type": self.join_type,
                "source_key": self.source_key,
                "record_key": self.record_key,
            },
            "mappings": [{"source": m.source_column, "target": m.target_property} for m in self.mappings],
            "policy": self.policy.to_dict(),
        }


def load_config(path: Path) -> MergeConfig:
    path = Path(path).expanduser().resolve()
    if not path.is_file():
        raise FileNotFoundError(path)
    data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: merge file must be a mapping")
    return MergeConfig.from_dict(data)


def save_config(config: MergeConfig, path: Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        yaml.safe_dump(config.to_dict(), f, sort_keys=False)
    return path


def build_store(config: MergeConfig) -> RecordStore:
    backend = config.backend
    if backend.mode == "mock":
        return InMemoryRecordStore()
    if backend.mode == "proxy":
        if not backend.base_url:
            raise ValidationError("Proxy base URL is required in proxy mode")
        return ProxyRecordStore(
            backend.base_url,
            backend.token,
            timeout=backend.timeout,
            page_size=backend.page_size,
        )
    token = backend.token
    if not token:
        raise ValidationError(f"Notion mode needs a token in ${backend.token_env}")
    return NotionRecordStore(token, timeout=backend.timeout, page_size=backend.page_size)
