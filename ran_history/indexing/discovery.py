"""
Discovery of session transcript files.

Claude Code stores transcripts in:
    ~/.claude/projects/<slug>/<session-id>.jsonl

Subagent transcripts live in nested directories, so the whole tree
under the projects directory is walked.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

import aiofiles.os

from ..file_ops import mtime_ms

logger = logging.getLogger(__name__)

TRANSCRIPT_SUFFIX = ".jsonl"


@dataclass(frozen=True)
class TranscriptFile:
    """A candidate transcript with the stat data taken at discovery time."""

    path: Path
    size: int
    mtime_ms: int

    @classmethod
    def from_path(cls, path: Path) -> TranscriptFile:
        stat = path.stat()
        return cls(path=path, size=stat.st_size, mtime_ms=mtime_ms(stat))


def _walk(root: Path) -> list[TranscriptFile]:
    files = []
    for dirpath, _dirnames, filenames in os.walk(root):
        for name in filenames:
            if not name.endswith(TRANSCRIPT_SUFFIX):
                continue
            path = Path(dirpath, name).absolute()
            try:
                files.append(TranscriptFile.from_path(path))
            except OSError as e:
                # Removed between listing and stat
                logger.debug(f"Skipping {path}: {e}")
    files.sort(key=lambda f: str(f.path))
    return files


class TranscriptDiscovery:
    """Lists transcript files below a projects directory."""

    def __init__(self, projects_dir: Path):
        self.projects_dir = projects_dir

    async def discover(self) -> list[TranscriptFile]:
        """Find all transcript files, sorted by path.

        Returns an empty list when the projects directory doesn't exist.
        """
        if not await aiofiles.os.path.isdir(self.projects_dir):
            logger.info(f"No transcript directory at {self.projects_dir}")
            return []

        files = await aiofiles.os.wrap(_walk)(self.projects_dir)
        logger.debug(f"Discovered {len(files)} transcript(s) under {self.projects_dir}")
        return files
