"""
Onboarding: teach the coding assistant about ``ran``.

Appends a short usage section to the assistant's user-level
instructions file (~/.claude/CLAUDE.md). The section starts with a
marker comment so it is added only once and can be replaced with
``force``.
"""

from __future__ import annotations

import logging
import re
from enum import Enum
from pathlib import Path

from .config import DEFAULT_ONBOARD_TARGET
from .file_ops import read_text, write_text_atomic

logger = logging.getLogger(__name__)

MARKER = "<!-- ran:onboard -->"

RAN_SECTION = f"""{MARKER}
## ran - Claude Code bash history

Use the `ran` CLI to search commands from previous Claude Code sessions:

- `ran search <pattern>` - Search by substring or regex (`--regex`)
- `ran list` - Show recent commands
- `ran search "" --cwd /path` - Filter by directory

Example: "What docker command did you run?" → `ran search docker`
"""

_NEXT_SECTION = re.compile(r"\n## ")


class OnboardResult(Enum):
    CREATED = "created"
    UPDATED = "updated"
    SKIPPED = "skipped"


def remove_section(content: str) -> str:
    """Remove the ran section: from the marker to the next ``## `` heading or the end.

    The section's own heading directly after the marker is part of it.
    """
    start = content.find(MARKER)
    if start == -1:
        return content
    end = start + len(MARKER)
    own_heading = _NEXT_SECTION.match(content, end)
    if own_heading is not None:
        end = own_heading.end()
    match = _NEXT_SECTION.search(content, end)
    if match is None:
        return content[:start]
    return content[:start] + content[match.start():]


def render(existing: str) -> str:
    """Existing content with the ran section appended after a blank line."""
    if not existing:
        return RAN_SECTION
    return existing.rstrip() + "\n\n" + RAN_SECTION


async def onboard(target: Path | None = None, force: bool = False) -> OnboardResult:
    """Add the ran section to ``target``.

    Args:
        target: Instructions file, ~/.claude/CLAUDE.md by default
        force: Replace an existing ran section

    Returns:
        SKIPPED if the section exists and ``force`` is false, CREATED if the
        file had no content, UPDATED otherwise
    """
    target = target or DEFAULT_ONBOARD_TARGET
    existing = await read_text(target) or ""

    if MARKER in existing:
        if not force:
            logger.info(f"ran section already present in {target}")
            return OnboardResult.SKIPPED
        existing = remove_section(existing)

    await write_text_atomic(target, render(existing))

    result = OnboardResult.UPDATED if existing else OnboardResult.CREATED
    logger.info(f"{result.value.capitalize()} {target} with ran section")
    return result
