from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Dict, Any

# ---------------------------------------------------------------------------
# Merge profiles (optional presets)
# ---------------------------------------------------------------------------

MERGE_PROFILES: Dict[str, Dict[str, Any]] = {
    "default": {},
    "fill_blanks": {"only_update_empty": True, "allow_create": False},
    "sync": {"allow_create": True},
}

_TRUE_WORDS = {"true", "yes", "y", "1"}
_FALSE_WORDS = {"false", "no", "n", "0"}


def _as_flag(name: str, value: Any) -> bool:
    """YAML booleans pass through; quoted words and 0/1 are parsed, anything else is rejected."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        word = value.strip().lower()
        if word in _TRUE_WORDS:
            return True
        if word in _FALSE_WORDS:
            return False
    raise ValueError(f"Policy option '{name}' must be true or false, got {value!r}")


@dataclass(frozen=True)
class MergePolicy:
    """
    Safety switches applied while planning and executing a merge.

    Fields:
      only_update_empty: leave record fields that already hold a value
      allow_create: create records for keys that exist only in the sheet
      create_missing_options: append unknown select/status options to the
                              schema before writing
      expand_csv: split "a, b; c" strings into multi-select options
    """

    only_update_empty: bool = False
    allow_create: bool = False
    create_missing_options: bool = True
    expand_csv: bool = True

    @classmethod
    def from_config(cls, cfg: Dict[str, Any] | None) -> "MergePolicy":
        """
        Build from a merge file entry:

        policy:
          profile: fill_blanks
          allow_create: true
        """
        if cfg is None:
            return cls()

        cfg = dict(cfg)
        profile_name = cfg.pop("profile", None)
        if profile_name and profile_name not in MERGE_PROFILES:
            raise ValueError(f"Unknown merge profile '{profile_name}'")
        profile_data = MERGE_PROFILES.get(profile_name, {}) if profile_name else {}

        merged = {**profile_data, **cfg}
        unknown = set(merged) - set(cls.__dataclass_fields__)
        if unknown:
            raise ValueError(f"Unknown policy option(s): {', '.join(sorted(unknown))}")
        return cls(**{k: _as_flag(k, v) for k, v in merged.items()})

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
