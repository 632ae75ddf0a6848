"""Word counting for markdown documents with optional YAML frontmatter."""

from __future__ import annotations

import re
from typing import Final

# One leading block: an opening ``---`` line through the first closing ``---`` line.
_FRONTMATTER_RE: Final[re.Pattern[str]] = re.compile(
    r"\A---[ \t]*\r?\n(?:.*?\r?\n)?---[ \t]*(?:\r?\n|\Z)",
    re.DOTALL,
)


def strip_frontmatter(text: str) -> str:
    """Remove a single leading frontmatter block, if present."""
    match = _FRONTMATTER_RE.match(text)
    if match is None:
        return text
    return text[match.end():]


def count_words(text: str) -> int:
    """Count whitespace-separated tokens, ignoring leading frontmatter.

    Args:
        text: Full document content.

    Returns:
        Number of non-empty tokens outside the frontmatter block (>= 0).
    """
    return len(strip_frontmatter(text).split())
