"""
CommandHistory: the entry point used by the CLI.

Wires a store, an indexer and a query engine together around one
explicit store handle.
"""

from __future__ import annotations

import logging

from .config import HistoryConfig
from .indexing import Indexer, SyncReport, TranscriptDiscovery, TranscriptParser
from .models import Command, HistoryStats, SearchResult
from .query import QueryEngine
from .store import HistoryStore, SQLiteHistoryStore

logger = logging.getLogger(__name__)


class CommandHistory:
    """
    Indexed, searchable history of shell commands from session transcripts.

    Usage:

        async with await CommandHistory.open(HistoryConfig.load()) as history:
            await history.index_and_sync()
            result = await history.search("docker")
    """

    def __init__(self, store: HistoryStore, indexer: Indexer, query: QueryEngine):
        self.store = store
        self.indexer = indexer
        self.query = query

    @classmethod
    async def open(cls, config: HistoryConfig | None = None) -> CommandHistory:
        """Open the store named by ``config`` and build the components around it."""
        config = config or HistoryConfig.load()
        store = await SQLiteHistoryStore.open(config.db_path)
        indexer = Indexer(
            store,
            TranscriptDiscovery(config.projects_dir),
            TranscriptParser(pending_result_window=config.pending_result_window),
        )
        return cls(store, indexer, QueryEngine(store))

    async def close(self) -> None:
        await self.store.close()

    async def __aenter__(self) -> CommandHistory:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def index_and_sync(self) -> SyncReport:
        """Run one indexing pass and persist the store."""
        report = await self.indexer.run()
        for error in report.errors:
            logger.debug(f"Sync error: {error.details}")
        return report

    async def list(self, limit: int = 20) -> list[Command]:
        return await self.query.list(limit)

    async def search(
        self,
        pattern: str,
        use_regex: bool = False,
        cwd: str | None = None,
        limit: int | None = None,
    ) -> SearchResult:
        return await self.query.search(pattern, use_regex=use_regex, cwd=cwd, limit=limit)

    async def stats(self) -> HistoryStats:
        return HistoryStats(
            total_commands=await self.store.count_commands(),
            indexed_files=await self.store.count_indexed_files(),
        )
