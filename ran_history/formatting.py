"""Human-readable rendering of command records."""

from __future__ import annotations

from datetime import datetime

from .models import Command, HistoryStats

DEFAULT_MAX_OUTPUT_LINES = 5


def format_timestamp(timestamp: str | None) -> str:
    """Render an ISO timestamp as local ``YYYY-MM-DD HH:MM:SS``; unparsable values pass through."""
    if not timestamp:
        return "unknown time"
    try:
        parsed = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
    except ValueError:
        return timestamp
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone()
    return parsed.strftime("%Y-%m-%d %H:%M:%S")


def _output_lines(text: str, max_lines: int) -> list[str]:
    lines = text.rstrip("\n").splitlines()
    shown = lines[:max_lines]
    if len(lines) > max_lines:
        shown.append(f"... ({len(lines) - max_lines} more lines)")
    return shown


def format_command(command: Command, *, max_output_lines: int = DEFAULT_MAX_OUTPUT_LINES) -> str:
    """Render one command as a block of text.

    Example:
        [2024-01-01 10:00:00] [error]
        $ npm test
          # Run tests
          cwd: /projects/myapp
          | 1 failing
    """
    header = f"[{format_timestamp(command.timestamp)}]"
    if command.is_error:
        header += " [error]"

    lines = [header, f"$ {command.command}"]
    if command.description:
        lines.append(f"  # {command.description}")
    if command.cwd:
        lines.append(f"  cwd: {command.cwd}")

    output = command.stderr if command.is_error and command.stderr else command.stdout
    if output and max_output_lines > 0:
        lines.extend(f"  | {line}" for line in _output_lines(output, max_output_lines))

    return "\n".join(lines) + "\n"


def format_stats(stats: HistoryStats, location: str) -> str:
    return (
        f"Commands:      {stats.total_commands}\n"
        f"Indexed files: {stats.indexed_files}\n"
        f"Database:      {location}\n"
    )
