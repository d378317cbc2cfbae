"""
Extraction of shell commands from transcript bytes.

Claude Code writes one JSON entry per line. A shell command shows up
as two entries:

- an assistant entry whose ``message.content`` holds a ``tool_use``
  block named ``Bash`` with ``input.command`` (and ``input.description``)
- a later user entry whose ``message.content`` holds the matching
  ``tool_result`` block (by ``tool_use_id``), with the captured output
  in the entry-level ``toolUseResult`` object

Only complete lines are parsed. Every line is handled on its own and a
line that cannot be used is reported as a SkippedLine, never raised.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any

from ..models import Command

logger = logging.getLogger(__name__)

SHELL_TOOL_NAMES = frozenset({"Bash"})

DEFAULT_PENDING_RESULT_WINDOW = 200


@dataclass(frozen=True)
class ParsedLine:
    """A line that produced a command record."""

    line_number: int
    record: Command


@dataclass(frozen=True)
class SkippedLine:
    """A line that produced nothing, with the reason."""

    line_number: int
    reason: str


LineOutcome = ParsedLine | SkippedLine


@dataclass
class ParseResult:
    """Outcome of parsing one byte range.

    Attributes:
        outcomes: Parsed and skipped lines, in emission order
        consumed: Bytes of the range that may be marked as consumed
        pending: Tool uses held back because their result hasn't been written yet
    """

    outcomes: list[LineOutcome] = field(default_factory=list)
    consumed: int = 0
    pending: int = 0

    @property
    def records(self) -> list[Command]:
        return [o.record for o in self.outcomes if isinstance(o, ParsedLine)]

    @property
    def skipped(self) -> list[SkippedLine]:
        return [o for o in self.outcomes if isinstance(o, SkippedLine)]


@dataclass
class _PendingToolUse:
    line_number: int
    line_index: int  # Position among complete lines in this range
    line_start: int  # Byte offset of the line within the range
    tool_use_id: str
    command: str
    description: str | None
    entry: dict[str, Any]


def _str_or_none(value: Any) -> str | None:
    if isinstance(value, str) and value:
        return value
    return None


def _content_blocks(entry: dict[str, Any]) -> list[dict[str, Any]]:
    message = entry.get("message")
    if not isinstance(message, dict):
        return []
    content = message.get("content")
    if not isinstance(content, list):
        return []
    return [item for item in content if isinstance(item, dict)]


def _result_text(block: dict[str, Any]) -> str | None:
    """Text of a tool_result block; content is a string or a list of text blocks."""
    content = block.get("content")
    if isinstance(content, str):
        return content or None
    if isinstance(content, list):
        parts = [
            item.get("text", "")
            for item in content
            if isinstance(item, dict) and item.get("type") == "text"
        ]
        text = "\n".join(p for p in parts if isinstance(p, str) and p)
        return text or None
    return None


def _build_command(
    pending: _PendingToolUse,
    result_entry: dict[str, Any] | None = None,
    result_block: dict[str, Any] | None = None,
) -> Command:
    entry = pending.entry
    record = Command(
        tool_use_id=pending.tool_use_id,
        command=pending.command,
        description=pending.description,
        cwd=_str_or_none(entry.get("cwd")),
        timestamp=_str_or_none(entry.get("timestamp")),
        session_id=_str_or_none(entry.get("sessionId")),
    )
    if result_block is None:
        return record

    record.is_error = 1 if result_block.get("is_error") else 0

    captured = result_entry.get("toolUseResult") if result_entry else None
    if isinstance(captured, dict):
        record.stdout = _str_or_none(captured.get("stdout"))
        record.stderr = _str_or_none(captured.get("stderr"))
    else:
        text = _result_text(result_block)
        if record.is_error:
            record.stderr = text
        else:
            record.stdout = text
    return record


class TranscriptParser:
    """
    Decodes transcript bytes into command records.

    A Bash tool use whose result is not in the range yet is held back:
    ``consumed`` stops at the start of its line so the next pass reads
    it again together with the result. A tool use followed by more than
    ``pending_result_window`` complete lines is emitted without output
    instead, so a result that never arrives can't pin the offset. The
    indexer also flushes held-back tool uses once the file has stopped
    changing.
    """

    def __init__(self, pending_result_window: int = DEFAULT_PENDING_RESULT_WINDOW):
        self.pending_result_window = pending_result_window

    def parse(self, data: bytes, flush: bool = False) -> ParseResult:
        """Parse the complete lines of ``data``.

        Args:
            data: Bytes read from a transcript, starting at a line boundary
            flush: Emit every tool use still waiting for its result, without
                output, instead of holding it back

        Returns:
            ParseResult; bytes after the last newline are never consumed
        """
        result = ParseResult()

        end = data.rfind(b"\n") + 1
        if end == 0:
            return result

        pending: dict[str, _PendingToolUse] = {}
        offset = 0
        lines = data[:end].split(b"\n")[:-1]

        for index, raw in enumerate(lines):
            line_number = index + 1
            line_start = offset
            offset += len(raw) + 1

            outcome = self._parse_line(raw, line_number, index, line_start, pending)
            if outcome is not None:
                result.outcomes.extend(outcome)

        consumed = end
        for item in pending.values():
            lines_after = len(lines) - item.line_index - 1
            if flush or lines_after > self.pending_result_window:
                logger.debug(
                    f"No result for tool use {item.tool_use_id} after {lines_after} line(s), "
                    "recording it without output"
                )
                result.outcomes.append(ParsedLine(item.line_number, _build_command(item)))
            else:
                result.pending += 1
                consumed = min(consumed, item.line_start)

        result.consumed = consumed
        return result

    def _parse_line(
        self,
        raw: bytes,
        line_number: int,
        index: int,
        line_start: int,
        pending: dict[str, _PendingToolUse],
    ) -> list[LineOutcome] | None:
        if not raw.strip():
            return None

        try:
            entry = json.loads(raw.decode("utf-8", errors="replace"))
        except (ValueError, RecursionError) as e:
            # ValueError covers JSONDecodeError and the int digit limit
            logger.debug(f"Skipping line {line_number}: invalid JSON ({type(e).__name__})")
            return [SkippedLine(line_number, "invalid json")]

        if not isinstance(entry, dict):
            logger.debug(f"Skipping line {line_number}: not a JSON object")
            return [SkippedLine(line_number, "not an object")]

        outcomes: list[LineOutcome] = []
        tool_uses = 0

        for block in _content_blocks(entry):
            block_type = block.get("type")

            name = block.get("name")
            if block_type == "tool_use" and isinstance(name, str) and name in SHELL_TOOL_NAMES:
                tool_use_id = _str_or_none(block.get("id"))
                tool_input = block.get("input")
                if not tool_use_id or not isinstance(tool_input, dict):
                    outcomes.append(SkippedLine(line_number, "malformed tool use"))
                    continue
                command = tool_input.get("command")
                if not isinstance(command, str) or not command.strip():
                    outcomes.append(SkippedLine(line_number, "empty command"))
                    continue
                pending[tool_use_id] = _PendingToolUse(
                    line_number=line_number,
                    line_index=index,
                    line_start=line_start,
                    tool_use_id=tool_use_id,
                    command=command,
                    description=_str_or_none(tool_input.get("description")),
                    entry=entry,
                )
                tool_uses += 1

            elif block_type == "tool_result":
                item = pending.pop(str(block.get("tool_use_id")), None)
                if item is not None:
                    record = _build_command(item, entry, block)
                    outcomes.append(ParsedLine(item.line_number, record))

        if not outcomes and not tool_uses:
            return [SkippedLine(line_number, "no shell command")]
        return outcomes
