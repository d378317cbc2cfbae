"""
Data model for the command history.

Command and IndexedFile mirror the two tables of the store;
HistoryStats and SearchResult are what the query side hands back.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any

# Column order used for both inserts and reads of the commands table
COMMAND_COLUMNS = (
    "id",
    "tool_use_id",
    "command",
    "description",
    "cwd",
    "stdout",
    "stderr",
    "is_error",
    "timestamp",
    "session_id",
)

INDEXED_FILE_COLUMNS = (
    "file_path",
    "last_byte_offset",
    "last_modified",
)


@dataclass
class Command:
    """One executed shell command, identified by its tool_use_id."""

    tool_use_id: str
    command: str
    description: str | None = None
    cwd: str | None = None
    stdout: str | None = None
    stderr: str | None = None
    is_error: int = 0
    timestamp: str | None = None  # ISO 8601 as written by the transcript
    session_id: str | None = None
    id: int | None = None  # Assigned by the store

    @classmethod
    def from_row(cls, row: Any) -> Command:
        """Build from a commands row in COMMAND_COLUMNS order."""
        return cls(**dict(zip(COMMAND_COLUMNS, row)))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return asdict(self)

    @property
    def failed(self) -> bool:
        return bool(self.is_error)


@dataclass
class IndexedFile:
    """Scan state of one transcript file."""

    file_path: str
    last_byte_offset: int = 0
    last_modified: int = 0  # Milliseconds since epoch

    @classmethod
    def from_row(cls, row: Any) -> IndexedFile:
        return cls(**dict(zip(INDEXED_FILE_COLUMNS, row)))


@dataclass
class HistoryStats:
    """Counts reported by the stats command."""

    total_commands: int
    indexed_files: int

    def to_dict(self) -> dict[str, int]:
        return {"totalCommands": self.total_commands, "indexedFiles": self.indexed_files}


@dataclass
class SearchResult:
    """Matches of a search, possibly truncated.

    ``total`` is the number of matches before the limit was applied,
    so callers can report "found N, showing M".
    """

    commands: list[Command] = field(default_factory=list)
    total: int = 0

    @property
    def truncated(self) -> bool:
        return self.total > len(self.commands)

    def __len__(self) -> int:
        return len(self.commands)

    def __iter__(self):
        return iter(self.commands)
