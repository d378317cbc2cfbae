"""
Scan state tracking for transcript files.

Decides, per transcript, whether anything new has been written since
the last pass and which byte range holds it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..store import HistoryStore
from .discovery import TranscriptFile

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScanPlan:
    """What to read from one transcript in this pass.

    Attributes:
        start: First unconsumed byte
        end: File size at discovery time
        reset: The file shrank below its recorded offset and is re-read from 0
        flush: The file is unchanged since the last pass but bytes were held
            back; tool uses still waiting for a result are emitted now
        skip_reason: Set when nothing needs reading
    """

    start: int
    end: int
    reset: bool = False
    flush: bool = False
    skip_reason: str | None = None

    @property
    def skip(self) -> bool:
        return self.skip_reason is not None

    @property
    def length(self) -> int:
        return self.end - self.start


class FileScanStateTracker:
    """Per-file byte offsets and mtimes, read and written through the store."""

    def __init__(self, store: HistoryStore):
        self.store = store

    async def plan(self, transcript: TranscriptFile) -> ScanPlan:
        """Work out the unconsumed byte range of ``transcript``."""
        state = await self.store.get_indexed_file(str(transcript.path))
        if state is None:
            return self._range(0, transcript.size)

        if state.last_modified == transcript.mtime_ms:
            if state.last_byte_offset < transcript.size:
                return ScanPlan(start=state.last_byte_offset, end=transcript.size, flush=True)
            return ScanPlan(
                start=state.last_byte_offset,
                end=transcript.size,
                skip_reason="unchanged",
            )

        if transcript.size < state.last_byte_offset:
            logger.info(
                f"{transcript.path} shrank from {state.last_byte_offset} "
                f"to {transcript.size} bytes, rescanning from the start"
            )
            return self._range(0, transcript.size, reset=True)

        return self._range(state.last_byte_offset, transcript.size)

    @staticmethod
    def _range(start: int, end: int, reset: bool = False) -> ScanPlan:
        if end <= start:
            return ScanPlan(start=start, end=end, reset=reset, skip_reason="no new bytes")
        return ScanPlan(start=start, end=end, reset=reset)

    async def record(self, transcript: TranscriptFile, consumed_offset: int) -> None:
        """Store the offset reached and the mtime observed for ``transcript``."""
        await self.store.upsert_indexed_file(
            str(transcript.path), consumed_offset, transcript.mtime_ms
        )
