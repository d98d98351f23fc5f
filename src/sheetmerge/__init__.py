"""
sheet-merge: reconcile spreadsheet rows into a Notion-style database.

Exports the public API:
- MergeSession
- MergeConfig, load_config
- encode, decode
"""
from .codec import decode, encode
from .config import MergeConfig, load_config
from .session import MergeSession

__version__ = "0.1.0"
