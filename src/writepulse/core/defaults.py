"""Centralised default constants for writepulse.

Every project-wide magic number / string lives here.
Import these instead of hard-coding values in function signatures or CLI options.
"""

from __future__ import annotations

from typing import Final

# ── Timing / buckets ──
BUCKET_MINUTES: Final[int] = 30
BUCKETS_PER_DAY: Final[int] = 24 * 60 // BUCKET_MINUTES
DEBOUNCE_SECONDS: Final[float] = 3.0
DEFAULT_POLL_SECONDS: Final[float] = 1.0

# ── Trend / display ──
LOOKBACK_CHOICES: Final[tuple[int, ...]] = (7, 14, 30, 90)
DEFAULT_LOOKBACK_DAYS: Final[int] = 7
DEFAULT_PEAK_COUNT: Final[int] = 3

# ── Event dispatch ──
DEFAULT_EVENT_QUEUE_SIZE: Final[int] = 256

# ── Persistence ──
STATE_SCHEMA_VERSION: Final[int] = 2
DEFAULT_DATA_DIR: Final[str] = "data"
DEFAULT_STATE_FILENAME: Final[str] = "state.json"
DEFAULT_VAULT_DIR: Final[str] = "."

# ── Export ──
EXPORT_FILE_PREFIX: Final[str] = "writepulse-export"

# ── Documents ──
DOCUMENT_SUFFIX: Final[str] = ".md"
