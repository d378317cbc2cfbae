"""
Incremental transcript indexing.

- TranscriptDiscovery: lists transcript files with size and mtime
- FileScanStateTracker: decides which bytes of a file are new
- TranscriptParser: turns those bytes into command records
- Indexer: runs a full pass and reports per-file failures
"""

from .discovery import TranscriptDiscovery, TranscriptFile
from .indexer import Indexer, SyncReport, TranscriptSource
from .parser import ParsedLine, ParseResult, SkippedLine, TranscriptParser
from .tracker import FileScanStateTracker, ScanPlan

__all__ = [
    "TranscriptDiscovery",
    "TranscriptFile",
    "TranscriptSource",
    "FileScanStateTracker",
    "ScanPlan",
    "TranscriptParser",
    "ParseResult",
    "ParsedLine",
    "SkippedLine",
    "Indexer",
    "SyncReport",
]
