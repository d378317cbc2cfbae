"""
Command history store.

The indexer and query engine depend on the HistoryStore interface;
SQLiteHistoryStore is the implementation used by the CLI.
"""

from .base import ConflictPolicy, HistoryStore
from .sqlite import SQLiteHistoryStore

__all__ = [
    "ConflictPolicy",
    "HistoryStore",
    "SQLiteHistoryStore",
]
