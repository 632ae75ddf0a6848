"""Turn "file saved" notifications into word-count deltas in the bucket store.

A save is counted only if it passes three gates, in order:

1. **scope** -- the path lies inside the configured tracking folder;
2. **currency** -- the file name starts with today's ``YYYY-MM-DD``;
3. **debounce** -- at least :data:`DEBOUNCE_SECONDS` have passed since the
   last accepted save of the same path.

Accepted saves read the document, diff its word count against the cached
count, and add the difference to the bucket for *now* (today's date, the
current time-of-day bucket), regardless of which day the document is for.
Edits to older entries are therefore never counted at all.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from datetime import datetime

from writepulse.core.defaults import DEBOUNCE_SECONDS
from writepulse.core.time import bucket_key, date_from_filename, date_key
from writepulse.core.types import (
    ContentProvider,
    ProcessResult,
    TrackingState,
    WordCountSnapshot,
)
from writepulse.tracker.buckets import BucketStore
from writepulse.tracker.words import count_words

logger = logging.getLogger(__name__)

PersistCallback = Callable[[TrackingState], Awaitable[object]]


class DeltaTracker:
    """Stateful gatekeeper between file events and the bucket store.

    The tracker mutates *state* in place and is not safe for concurrent
    use: callers must deliver events one at a time (see
    :class:`~writepulse.tracker.dispatch.EventDispatcher`).

    Args:
        state: The tracking state to mutate.
        content: Source of document text.
        persist: Awaited after every accepted mutation with the whole
            state.  Its exceptions propagate to the caller after the
            in-memory commit.
        clock: Returns the current local time.
        debounce_seconds: Minimum spacing of accepted saves per path.
    """

    def __init__(
        self,
        state: TrackingState,
        content: ContentProvider,
        persist: PersistCallback,
        *,
        clock: Callable[[], datetime] = datetime.now,
        debounce_seconds: float = DEBOUNCE_SECONDS,
    ) -> None:
        self._state = state
        self._store = BucketStore(state.daily_data)
        self._content = content
        self._persist = persist
        self._clock = clock
        self._debounce_seconds = debounce_seconds

    @property
    def store(self) -> BucketStore:
        return self._store

    def today(self) -> str:
        """Today's date key according to the tracker clock."""
        return date_key(self._clock())

    # -- gates -----------------------------------------------------------------

    def is_in_tracked_folder(self, path: str) -> bool:
        """Scope gate: *path* equals the folder or lies beneath it."""
        folder = self._state.settings.tracking_folder
        if not folder:
            return False
        return path == folder or path.startswith(folder + "/")

    def is_from_today(self, path: str, now: datetime | None = None) -> bool:
        """Currency gate: the file name encodes today's date."""
        today = date_key(now or self._clock())
        return date_from_filename(path) == today

    def should_process(self, path: str, now: datetime) -> bool:
        """Debounce gate: enough time since the last accepted save of *path*."""
        snapshot = self._state.files.get(path)
        if snapshot is None or snapshot.last_save_ts is None:
            return True
        return now.timestamp() - snapshot.last_save_ts >= self._debounce_seconds

    # -- operations ------------------------------------------------------------

    async def process_file_modification(self, path: str) -> ProcessResult | None:
        """Record the word-count delta of a saved document.

        Args:
            path: Vault-relative, ``/``-separated path of the saved file.

        Returns:
            The recorded delta and first-save-of-day flag, or ``None`` if
            a gate rejected the save (nothing mutated, nothing persisted).

        Raises:
            FileNotFoundError: The document vanished before it was read.
            OSError: The document could not be read.  Nothing is mutated.
            StatePersistError: Persisting failed after the in-memory
                commit (raised by the default persist callback).
        """
        now = self._clock()

        if not self.is_in_tracked_folder(path):
            logger.debug("Ignoring %s: outside tracking folder", path)
            return None
        if not self.is_from_today(path, now):
            logger.debug("Ignoring %s: not today's entry", path)
            return None
        if not self.should_process(path, now):
            logger.debug("Ignoring %s: within debounce window", path)
            return None

        text = await self._content.read_text(path)
        current = count_words(text)

        snapshot = self._state.files.get(path)
        previous = snapshot.word_count if snapshot is not None else 0
        delta = current - previous
        self._state.files[path] = WordCountSnapshot(
            word_count=current, last_save_ts=now.timestamp(),
        )

        today = date_key(now)
        bucket = bucket_key(now)
        is_first = not self._store.has_day(today)
        self._store.accumulate(today, bucket, delta)
        logger.info(
            "Recorded %+d words for %s at %s %s (was %d, now %d)",
            delta, path, today, bucket, previous, current,
        )

        await self._persist(self._state)

        return ProcessResult(
            delta=delta, is_first_save_of_day=is_first, date=today, bucket=bucket,
        )

    async def warm_cache(self, path: str) -> bool:
        """Seed the cached word count of today's entry when it is opened.

        Keeps the first save of a session from counting the whole existing
        document as new words.  An existing snapshot is left alone.

        Returns:
            ``True`` if a snapshot was seeded.
        """
        if not self.is_in_tracked_folder(path) or not self.is_from_today(path):
            return False
        if path in self._state.files:
            return False

        text = await self._content.read_text(path)
        count = count_words(text)
        self._state.files[path] = WordCountSnapshot(word_count=count)
        logger.debug("Seeded word count for %s: %d", path, count)
        return True
