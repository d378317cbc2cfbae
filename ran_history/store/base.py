"""
Abstract interface for the command history store.

The indexer and the query engine only talk to this interface; the
SQLite implementation lives in ``store.sqlite``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from enum import Enum

from ..models import Command, IndexedFile


class ConflictPolicy(Enum):
    """What an insert does when the tool_use_id is already stored."""

    IGNORE = "ignore"  # Keep the existing row, report no insert
    ABORT = "abort"  # Raise DuplicateCommandError


class HistoryStore(ABC):
    """
    Abstract base for command history stores.

    Implementations must support:
    - Deduplicated command inserts keyed on tool_use_id
    - Per-file scan state (byte offset and mtime)
    - Recency-ordered reads: timestamp descending, newest insert first on ties
    - Explicit persistence of the whole store
    """

    @abstractmethod
    async def close(self) -> None:
        """Close connections and release resources."""
        pass

    # =========================================================================
    # Commands
    # =========================================================================

    @abstractmethod
    async def insert_command(
        self,
        command: Command,
        on_conflict: ConflictPolicy = ConflictPolicy.IGNORE,
    ) -> bool:
        """Insert a command record.

        Args:
            command: Record to insert (its ``id`` is ignored)
            on_conflict: Behaviour when tool_use_id already exists

        Returns:
            True if a row was inserted, False if it was ignored
        """
        pass

    @abstractmethod
    async def query_all(self) -> list[Command]:
        """All commands, most recent first."""
        pass

    @abstractmethod
    async def query_recent(self, limit: int) -> list[Command]:
        """The ``limit`` most recent commands."""
        pass

    @abstractmethod
    def iter_commands(self, cwd: str | None = None) -> AsyncIterator[Command]:
        """Iterate commands most recent first, optionally only those run in ``cwd``."""
        pass

    @abstractmethod
    async def query_substring(self, pattern: str, cwd: str | None = None) -> list[Command]:
        """Commands whose text contains ``pattern``, ignoring case."""
        pass

    @abstractmethod
    async def count_commands(self) -> int:
        pass

    # =========================================================================
    # Indexed files
    # =========================================================================

    @abstractmethod
    async def get_indexed_file(self, file_path: str) -> IndexedFile | None:
        pass

    @abstractmethod
    async def upsert_indexed_file(self, file_path: str, offset: int, mtime: int) -> None:
        """Insert or fully replace the scan state of ``file_path``."""
        pass

    @abstractmethod
    async def count_indexed_files(self) -> int:
        pass

    # =========================================================================
    # Persistence
    # =========================================================================

    @abstractmethod
    async def export(self) -> bytes:
        """Serialize the whole store."""
        pass

    @abstractmethod
    async def persist(self) -> None:
        """Write the store to durable storage."""
        pass

    async def __aenter__(self) -> HistoryStore:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
