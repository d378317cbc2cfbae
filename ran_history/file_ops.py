"""
File operations for transcripts and user files.

Provides:
- Byte-range reads of growing transcript files
- Atomic text writes using temp file + rename
- Stat helpers returning integer millisecond mtimes
"""

import os
import tempfile
from pathlib import Path

import aiofiles
import aiofiles.os

from .exceptions import FileScanError, StoreIOError


def mtime_ms(stat_result: os.stat_result) -> int:
    """Modification time of a stat result in whole milliseconds since epoch."""
    return stat_result.st_mtime_ns // 1_000_000


async def read_byte_range(path: Path, start: int, end: int) -> bytes:
    """Read bytes ``[start, end)`` of a file.

    Fewer bytes are returned if the file is shorter than ``end``.

    Args:
        path: File to read
        start: First byte offset
        end: Offset one past the last byte

    Raises:
        FileScanError: If the file cannot be opened or read
    """
    if end <= start:
        return b""
    try:
        async with aiofiles.open(path, "rb") as f:
            await f.seek(start)
            return await f.read(end - start)
    except OSError as e:
        raise FileScanError(str(path), e) from e


async def read_text(path: Path) -> str | None:
    """Read a UTF-8 text file.

    Returns:
        File content, or None if the file doesn't exist
    """
    try:
        if not await aiofiles.os.path.exists(path):
            return None
        async with aiofiles.open(path, encoding="utf-8") as f:
            return await f.read()
    except OSError as e:
        raise StoreIOError("read_text", str(path), e) from e


async def write_text_atomic(path: Path, content: str) -> None:
    """Write a text file atomically using temp file + rename.

    Args:
        path: Target path
        content: Text to write
    """
    try:
        await aiofiles.os.makedirs(path.parent, exist_ok=True)
    except OSError as e:
        raise StoreIOError("create_directory", str(path.parent), e) from e

    fd, temp_path = tempfile.mkstemp(dir=path.parent, prefix=".tmp_", suffix=path.suffix)
    try:
        os.close(fd)
        async with aiofiles.open(temp_path, "w", encoding="utf-8") as f:
            await f.write(content)
            await f.flush()
            os.fsync(f.fileno())

        # Atomic rename
        await aiofiles.os.replace(temp_path, path)
    except Exception as e:
        # Clean up temp file on error
        try:
            await aiofiles.os.remove(temp_path)
        except OSError:
            pass
        raise StoreIOError("write_text", str(path), e) from e
