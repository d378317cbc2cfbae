"""
Incremental indexing of transcript files into the history store.

One pass (``Indexer.run``) reads only the bytes appended to each
transcript since the previous pass, inserts the commands found there
and persists the store once at the end.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Protocol

from ..exceptions import FileScanError
from ..file_ops import read_byte_range
from ..logging_utils import HistoryLoggerAdapter
from ..store import ConflictPolicy, HistoryStore
from .discovery import TranscriptFile
from .parser import TranscriptParser
from .tracker import FileScanStateTracker

logger = logging.getLogger(__name__)


class TranscriptSource(Protocol):
    """Anything that can list candidate transcripts."""

    async def discover(self) -> list[TranscriptFile]: ...


@dataclass
class SyncReport:
    """Summary of one indexing pass."""

    files_seen: int = 0
    files_scanned: int = 0
    files_skipped: int = 0
    records_parsed: int = 0
    records_inserted: int = 0
    lines_skipped: int = 0
    errors: list[FileScanError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "files_seen": self.files_seen,
            "files_scanned": self.files_scanned,
            "files_skipped": self.files_skipped,
            "records_parsed": self.records_parsed,
            "records_inserted": self.records_inserted,
            "lines_skipped": self.lines_skipped,
            "errors": [e.message for e in self.errors],
        }


class Indexer:
    """
    Runs incremental indexing passes.

    Failures reading or parsing one transcript are isolated: the file keeps its
    recorded offset so it is retried next pass, and the remaining files
    are still processed. Store failures end the pass.
    """

    def __init__(
        self,
        store: HistoryStore,
        source: TranscriptSource,
        parser: TranscriptParser | None = None,
    ):
        self.store = store
        self.source = source
        self.parser = parser or TranscriptParser()
        self.tracker = FileScanStateTracker(store)

    async def run(self, files: list[TranscriptFile] | None = None) -> SyncReport:
        """Index every candidate transcript once.

        Args:
            files: Transcripts to index; discovered from the source when omitted

        Returns:
            SyncReport with per-file errors collected, not raised

        Raises:
            StoreIOError: If the store cannot be read, written or persisted
        """
        if files is None:
            files = await self.source.discover()

        report = SyncReport(files_seen=len(files))

        for transcript in files:
            try:
                await self._index_file(transcript, report)
            except FileScanError as e:
                logger.warning(e.message)
                report.errors.append(e)

        await self.store.persist()

        logger.info(
            f"Indexed {report.files_scanned}/{report.files_seen} transcript(s): "
            f"{report.records_inserted} new command(s), {len(report.errors)} error(s)"
        )
        return report

    async def _index_file(self, transcript: TranscriptFile, report: SyncReport) -> None:
        log = HistoryLoggerAdapter(logger, {"transcript": str(transcript.path)})

        plan = await self.tracker.plan(transcript)
        if plan.skip:
            report.files_skipped += 1
            if plan.reset:
                await self.tracker.record(transcript, 0)
            log.debug(f"Skipping {transcript.path.name}: {plan.skip_reason}")
            return

        data = await read_byte_range(transcript.path, plan.start, plan.end)
        try:
            parsed = self.parser.parse(data, flush=plan.flush)
        except Exception as e:
            raise FileScanError(str(transcript.path), e) from e

        inserted = 0
        for record in parsed.records:
            if await self.store.insert_command(record, on_conflict=ConflictPolicy.IGNORE):
                inserted += 1

        # Offset moves only past lines whose records are now in the store
        await self.tracker.record(transcript, plan.start + parsed.consumed)

        report.files_scanned += 1
        report.records_parsed += len(parsed.records)
        report.records_inserted += inserted
        report.lines_skipped += len(parsed.skipped)

        log.debug(
            f"Scanned {transcript.path.name} bytes {plan.start}-{plan.end}: "
            f"{len(parsed.records)} command(s), {inserted} new, "
            f"{parsed.pending} awaiting results"
        )
