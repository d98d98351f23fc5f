from . import types
from . import mapping
from . import loader

from .types import FieldMapping, SourceTable

__all__ = [
    "types",
    "mapping",
    "loader",
    "FieldMapping",
    "SourceTable",
]
