"""
SQLite command history store.

The database is held in memory while the process runs. On open, an
existing database file is copied in; ``persist()`` writes the whole
database back through a temporary file and an atomic rename. Nothing
locks the file, so two processes persisting the same path race and the
last writer wins.
"""

from __future__ import annotations

import logging
import sqlite3
import tempfile
import uuid
from collections.abc import AsyncIterator, Iterator
from contextlib import contextmanager
from pathlib import Path

import aiofiles
import aiofiles.os
import aiosqlite

from ..config import IN_MEMORY
from ..exceptions import DuplicateCommandError, StoreIOError
from ..models import COMMAND_COLUMNS, INDEXED_FILE_COLUMNS, Command, IndexedFile
from .base import ConflictPolicy, HistoryStore

logger = logging.getLogger(__name__)

_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS commands (
    id INTEGER PRIMARY KEY,
    tool_use_id TEXT UNIQUE,
    command TEXT NOT NULL,
    description TEXT,
    cwd TEXT,
    stdout TEXT,
    stderr TEXT,
    is_error INTEGER DEFAULT 0,
    timestamp TEXT,
    session_id TEXT
);

CREATE TABLE IF NOT EXISTS indexed_files (
    file_path TEXT PRIMARY KEY,
    last_byte_offset INTEGER DEFAULT 0,
    last_modified INTEGER DEFAULT 0
);

CREATE INDEX IF NOT EXISTS idx_commands_command ON commands(command);
CREATE INDEX IF NOT EXISTS idx_commands_timestamp ON commands(timestamp);
"""

# NULL timestamps sort last; equal timestamps put the newest insert first
_ORDER_BY = "ORDER BY timestamp DESC, id DESC"

_SELECT_COMMANDS = f"SELECT {', '.join(COMMAND_COLUMNS)} FROM commands"
_INSERT_COLUMNS = COMMAND_COLUMNS[1:]
_INSERT_PLACEHOLDERS = ", ".join("?" for _ in _INSERT_COLUMNS)


def _contains_ci(haystack: str | None, needle: str | None) -> bool:
    """Case-insensitive containment, registered as an SQL function."""
    if haystack is None or needle is None:
        return False
    return needle.casefold() in haystack.casefold()


class SQLiteHistoryStore(HistoryStore):
    """
    SQLite-backed command history.

    Use ``await SQLiteHistoryStore.open(path)``; pass ``":memory:"`` for
    a store that is never written to disk.
    """

    def __init__(self, conn: aiosqlite.Connection, path: Path | None):
        self.conn = conn
        self.path = path

    @property
    def in_memory(self) -> bool:
        return self.path is None

    @property
    def location(self) -> str:
        return str(self.path) if self.path else IN_MEMORY

    @classmethod
    async def open(cls, path: str | Path = IN_MEMORY) -> SQLiteHistoryStore:
        """Open the store at ``path``, creating the schema if needed.

        Args:
            path: Database file, or ``":memory:"``

        Raises:
            StoreIOError: If the existing file cannot be read as a database
        """
        db_path = None if str(path) == IN_MEMORY else Path(path)

        try:
            conn = await aiosqlite.connect(IN_MEMORY)
        except sqlite3.Error as e:
            raise StoreIOError("open", str(path), e) from e

        store = cls(conn, db_path)
        try:
            await conn.create_function("contains_ci", 2, _contains_ci, deterministic=True)
            await conn.executescript(_SCHEMA_SQL)
            await conn.commit()
            if db_path is not None and db_path.exists():
                await store._load(db_path)
        except BaseException:
            await conn.close()
            raise

        logger.debug(f"Opened history store: {store.location}")
        return store

    async def _load(self, db_path: Path) -> None:
        """Copy the rows of an on-disk database into memory."""
        with self._guard("load", db_path):
            await self.conn.execute("ATTACH DATABASE ? AS disk", (str(db_path),))
            try:
                async with self.conn.execute(
                    "SELECT name FROM disk.sqlite_master WHERE type = 'table'"
                ) as cursor:
                    tables = {row[0] for row in await cursor.fetchall()}

                if "commands" in tables:
                    columns = ", ".join(COMMAND_COLUMNS)
                    await self.conn.execute(
                        f"INSERT OR IGNORE INTO main.commands ({columns}) "
                        f"SELECT {columns} FROM disk.commands"
                    )
                if "indexed_files" in tables:
                    columns = ", ".join(INDEXED_FILE_COLUMNS)
                    await self.conn.execute(
                        f"INSERT OR REPLACE INTO main.indexed_files ({columns}) "
                        f"SELECT {columns} FROM disk.indexed_files"
                    )
                await self.conn.commit()
            finally:
                await self.conn.execute("DETACH DATABASE disk")

        logger.info(f"Loaded history store from {db_path}")

    async def close(self) -> None:
        """Close the connection without persisting."""
        if self.conn is not None:
            await self.conn.close()
            self.conn = None

    @contextmanager
    def _guard(self, operation: str, path: Path | str | None = None) -> Iterator[None]:
        """Translate sqlite and OS failures into StoreIOError."""
        try:
            yield
        except (sqlite3.Error, OSError) as e:
            raise StoreIOError(operation, str(path or self.location), e) from e

    # =========================================================================
    # Commands
    # =========================================================================

    async def insert_command(
        self,
        command: Command,
        on_conflict: ConflictPolicy = ConflictPolicy.IGNORE,
    ) -> bool:
        verb = "INSERT OR IGNORE" if on_conflict is ConflictPolicy.IGNORE else "INSERT"
        values = tuple(getattr(command, column) for column in _INSERT_COLUMNS)

        with self._guard("insert_command"):
            try:
                cursor = await self.conn.execute(
                    f"{verb} INTO commands ({', '.join(_INSERT_COLUMNS)}) "
                    f"VALUES ({_INSERT_PLACEHOLDERS})",
                    values,
                )
            except sqlite3.IntegrityError as e:
                if on_conflict is ConflictPolicy.ABORT and "tool_use_id" in str(e):
                    raise DuplicateCommandError(command.tool_use_id) from e
                raise
            inserted = cursor.rowcount == 1
            await cursor.close()
            await self.conn.commit()

        if not inserted:
            logger.debug(f"Ignored duplicate command {command.tool_use_id}")
        return inserted

    async def query_all(self) -> list[Command]:
        with self._guard("query_all"):
            async with self.conn.execute(f"{_SELECT_COMMANDS} {_ORDER_BY}") as cursor:
                rows = await cursor.fetchall()
        return [Command.from_row(row) for row in rows]

    async def query_recent(self, limit: int) -> list[Command]:
        with self._guard("query_recent"):
            async with self.conn.execute(
                f"{_SELECT_COMMANDS} {_ORDER_BY} LIMIT ?", (limit,)
            ) as cursor:
                rows = await cursor.fetchall()
        return [Command.from_row(row) for row in rows]

    async def iter_commands(self, cwd: str | None = None) -> AsyncIterator[Command]:
        if cwd is None:
            sql, params = f"{_SELECT_COMMANDS} {_ORDER_BY}", ()
        else:
            sql, params = f"{_SELECT_COMMANDS} WHERE cwd = ? {_ORDER_BY}", (cwd,)

        with self._guard("iter_commands"):
            async with self.conn.execute(sql, params) as cursor:
                async for row in cursor:
                    yield Command.from_row(row)

    async def query_substring(self, pattern: str, cwd: str | None = None) -> list[Command]:
        if cwd is None:
            sql = f"{_SELECT_COMMANDS} WHERE contains_ci(command, ?) {_ORDER_BY}"
            params: tuple = (pattern,)
        else:
            sql = f"{_SELECT_COMMANDS} WHERE contains_ci(command, ?) AND cwd = ? {_ORDER_BY}"
            params = (pattern, cwd)

        with self._guard("query_substring"):
            async with self.conn.execute(sql, params) as cursor:
                rows = await cursor.fetchall()
        return [Command.from_row(row) for row in rows]

    async def get_command(self, tool_use_id: str) -> Command | None:
        with self._guard("get_command"):
            async with self.conn.execute(
                f"{_SELECT_COMMANDS} WHERE tool_use_id = ?", (tool_use_id,)
            ) as cursor:
                row = await cursor.fetchone()
        return Command.from_row(row) if row else None

    async def count_commands(self) -> int:
        return await self._count("commands")

    # =========================================================================
    # Indexed files
    # =========================================================================

    async def get_indexed_file(self, file_path: str) -> IndexedFile | None:
        with self._guard("get_indexed_file"):
            async with self.conn.execute(
                f"SELECT {', '.join(INDEXED_FILE_COLUMNS)} FROM indexed_files "
                "WHERE file_path = ?",
                (file_path,),
            ) as cursor:
                row = await cursor.fetchone()
        return IndexedFile.from_row(row) if row else None

    async def upsert_indexed_file(self, file_path: str, offset: int, mtime: int) -> None:
        with self._guard("upsert_indexed_file"):
            await self.conn.execute(
                """
                INSERT INTO indexed_files (file_path, last_byte_offset, last_modified)
                VALUES (?, ?, ?)
                ON CONFLICT (file_path) DO UPDATE SET
                    last_byte_offset = excluded.last_byte_offset,
                    last_modified = excluded.last_modified
                """,
                (file_path, offset, mtime),
            )
            await self.conn.commit()

    async def count_indexed_files(self) -> int:
        return await self._count("indexed_files")

    async def _count(self, table: str) -> int:
        with self._guard(f"count_{table}"):
            async with self.conn.execute(f"SELECT COUNT(*) FROM {table}") as cursor:
                row = await cursor.fetchone()
        return row[0] if row else 0

    # =========================================================================
    # Persistence
    # =========================================================================

    async def _vacuum_into(self, target: Path) -> None:
        await self.conn.commit()
        await self.conn.execute("VACUUM INTO ?", (str(target),))

    async def export(self) -> bytes:
        """Serialize the database to the bytes of an SQLite file."""
        temp_path = Path(tempfile.gettempdir()) / f"ran-export-{uuid.uuid4().hex}.db"
        with self._guard("export", temp_path):
            try:
                await self._vacuum_into(temp_path)
                async with aiofiles.open(temp_path, "rb") as f:
                    return await f.read()
            finally:
                if await aiofiles.os.path.exists(temp_path):
                    await aiofiles.os.remove(temp_path)

    async def persist(self) -> None:
        """Write the database to its file atomically.

        Parent directories are created as needed. In-memory stores have
        nowhere to persist to, so this is a no-op for them.
        """
        if self.path is None:
            logger.debug("In-memory store, nothing to persist")
            return

        temp_path = self.path.parent / f".tmp_{self.path.name}.{uuid.uuid4().hex}"
        with self._guard("persist", self.path):
            await aiofiles.os.makedirs(self.path.parent, exist_ok=True)
            try:
                await self._vacuum_into(temp_path)
                await aiofiles.os.replace(temp_path, self.path)
            except BaseException:
                # Clean up temp file on error
                try:
                    await aiofiles.os.remove(temp_path)
                except OSError:
                    pass
                raise

        logger.debug(f"Persisted history store to {self.path}")
