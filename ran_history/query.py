"""
Listing and searching the command history.

Results are always ordered most recent first: timestamp descending,
commands without a timestamp last, and the most recently inserted
first among equal timestamps.
"""

from __future__ import annotations

import logging
import re

from .exceptions import PatternError
from .models import Command, SearchResult
from .store import HistoryStore

logger = logging.getLogger(__name__)

DEFAULT_LIST_LIMIT = 20


def compile_pattern(pattern: str) -> re.Pattern[str]:
    """Compile a case-insensitive search regex.

    Raises:
        PatternError: If the pattern is not a valid regular expression
    """
    try:
        return re.compile(pattern, re.IGNORECASE)
    except re.error as e:
        raise PatternError(pattern, e) from e


class QueryEngine:
    """Read-only queries over a HistoryStore."""

    def __init__(self, store: HistoryStore):
        self.store = store

    async def list(self, limit: int = DEFAULT_LIST_LIMIT) -> list[Command]:
        """The ``limit`` most recent commands."""
        if limit < 1:
            return []
        return await self.store.query_recent(limit)

    async def search(
        self,
        pattern: str,
        use_regex: bool = False,
        cwd: str | None = None,
        limit: int | None = None,
    ) -> SearchResult:
        """Find commands matching ``pattern``.

        Args:
            pattern: Substring, or regular expression when ``use_regex``;
                matching ignores case either way
            use_regex: Treat ``pattern`` as a regular expression
            cwd: Only commands run in exactly this directory
            limit: Maximum commands returned; ``total`` still counts all matches

        Raises:
            PatternError: If ``use_regex`` and the pattern is invalid
        """
        if use_regex:
            regex = compile_pattern(pattern)
            matches = [
                command
                async for command in self.store.iter_commands(cwd=cwd)
                if regex.search(command.command)
            ]
        else:
            matches = await self.store.query_substring(pattern, cwd=cwd)

        total = len(matches)
        if limit is not None:
            matches = matches[: max(limit, 0)]

        logger.debug(
            f"Search {pattern!r} (regex={use_regex}, cwd={cwd}): {total} match(es)"
        )
        return SearchResult(commands=matches, total=total)
