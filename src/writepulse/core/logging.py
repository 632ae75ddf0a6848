"""Log redaction for document text, and CLI logging setup.

Journal entries are private.  Paths, word counts, and deltas may be
logged; the words themselves may not.  :class:`SanitizingFilter` rewrites
any ``content=...`` / ``text: ...`` style pair that reaches a handler,
replacing the value with a marker that keeps only its word count.
"""

from __future__ import annotations

import logging
import re
from typing import Final

DOCUMENT_TEXT_KEYS: Final[frozenset[str]] = frozenset({
    "body",
    "content",
    "document_text",
    "excerpt",
    "frontmatter",
    "text",
})

LOG_FORMAT: Final[str] = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _compile(keys: frozenset[str]) -> re.Pattern[str]:
    alternatives = "|".join(sorted(map(re.escape, keys), key=len, reverse=True))
    return re.compile(
        rf"\b(?P<key>{alternatives})\s*[=:]\s*"
        r"(?P<value>\"[^\"]*\"|'[^']*'|\S+)",
        re.IGNORECASE,
    )


_PAIR_RE: Final[re.Pattern[str]] = _compile(DOCUMENT_TEXT_KEYS)


def _marker(match: re.Match[str]) -> str:
    value = match.group("value")
    if value[:1] in {'"', "'"}:
        value = value[1:-1]
    return f"{match.group('key')}=[REDACTED {len(value.split())}w]"


def redact_message(message: str) -> str:
    """Replace the value of every document-text pair in *message*.

    ``'saved content="dear diary"'`` becomes
    ``'saved content=[REDACTED 2w]'``.
    """
    return _PAIR_RE.sub(_marker, message)


class SanitizingFilter(logging.Filter):
    """Format each record eagerly and redact document text from the result."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        record.msg = redact_message(message)
        record.args = None
        return True


def install_sanitizing_filter(
    target: logging.Logger | logging.Handler | None = None,
) -> SanitizingFilter:
    """Attach a :class:`SanitizingFilter` and return it.

    A logger filter only sees records logged on that logger itself, so
    when *target* is omitted the filter goes on every root handler, which
    also covers records propagated from child loggers.
    """
    filt = SanitizingFilter()
    if target is None:
        for handler in logging.getLogger().handlers:
            handler.addFilter(filt)
    else:
        target.addFilter(filt)
    return filt


def configure_logging(level: str = "WARNING") -> None:
    """Set up root logging for the CLI with document text redacted."""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    install_sanitizing_filter()
