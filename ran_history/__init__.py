"""
ran history

Searchable history of the shell commands run during Claude Code sessions.

Provides:
- Incremental indexing of session transcripts (~/.claude/projects/**/*.jsonl)
- Deduplicated storage in a single SQLite file (~/.ran/history.db)
- Recency-ordered listing and substring/regex search

Usage:

    >>> from ran_history import CommandHistory, HistoryConfig
    >>> async with await CommandHistory.open(HistoryConfig.load()) as history:
    ...     await history.index_and_sync()
    ...     result = await history.search("docker (build|push)", use_regex=True)
    ...     print(f"Found {result.total}")
"""

__version__ = "0.1.0"

from .config import HistoryConfig
from .exceptions import (
    ConfigError,
    DuplicateCommandError,
    FileScanError,
    HistoryError,
    PatternError,
    StoreIOError,
)
from .indexing import (
    FileScanStateTracker,
    Indexer,
    ParsedLine,
    ParseResult,
    SkippedLine,
    SyncReport,
    TranscriptDiscovery,
    TranscriptFile,
    TranscriptParser,
)
from .models import Command, HistoryStats, IndexedFile, SearchResult
from .query import QueryEngine
from .service import CommandHistory
from .store import ConflictPolicy, HistoryStore, SQLiteHistoryStore

__all__ = [
    # Entry point
    "CommandHistory",
    "HistoryConfig",
    # Models
    "Command",
    "IndexedFile",
    "HistoryStats",
    "SearchResult",
    # Store
    "HistoryStore",
    "SQLiteHistoryStore",
    "ConflictPolicy",
    # Indexing
    "Indexer",
    "SyncReport",
    "FileScanStateTracker",
    "TranscriptDiscovery",
    "TranscriptFile",
    "TranscriptParser",
    "ParseResult",
    "ParsedLine",
    "SkippedLine",
    # Query
    "QueryEngine",
    # Exceptions
    "HistoryError",
    "StoreIOError",
    "DuplicateCommandError",
    "PatternError",
    "FileScanError",
    "ConfigError",
]
