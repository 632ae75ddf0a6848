"""Polling notification source: turns document changes into tracker events.

Each scan stats every markdown document under the tracking folder.  The
first scan reports everything it finds as :class:`FileOpened` (warming the
word-count cache); later scans report a :class:`FileSaved` for every
document whose modification time or size changed, and for documents that
appeared since the previous scan.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable

from writepulse.adapters.vault import FileSystemVault
from writepulse.core.defaults import DEFAULT_POLL_SECONDS
from writepulse.core.types import FileOpened, FileSaved, TrackerEvent

logger = logging.getLogger(__name__)

_Signature = tuple[int, int]


class PollingWatcher:
    """Detect saved documents by comparing successive directory scans.

    Args:
        vault: Vault to scan.
        folder: Returns the folder to watch; read on every scan so a
            settings change takes effect without a restart.
        poll_seconds: Pause between scans in :meth:`run`.
    """

    def __init__(
        self,
        vault: FileSystemVault,
        folder: Callable[[], str],
        *,
        poll_seconds: float = DEFAULT_POLL_SECONDS,
    ) -> None:
        self._vault = vault
        self._folder = folder
        self._poll_seconds = poll_seconds
        self._seen: dict[str, _Signature] | None = None
        self._watched_folder: str | None = None

    def _scan(self, folder: str) -> dict[str, _Signature]:
        found: dict[str, _Signature] = {}
        for path in self._vault.list_documents(folder):
            try:
                st = self._vault.resolve(path).stat()
            except FileNotFoundError:
                continue
            found[path] = (st.st_mtime_ns, st.st_size)
        return found

    def poll_once(self) -> list[TrackerEvent]:
        """Scan once and return the events implied by the changes."""
        folder = self._folder()
        if not folder:
            self._seen = None
            return []

        current = self._scan(folder)
        events: list[TrackerEvent] = []
        if self._seen is None or folder != self._watched_folder:
            events = [FileOpened(path=p) for p in current]
            logger.info("Watching %d document(s) under %s", len(current), folder)
        else:
            for path, sig in current.items():
                if self._seen.get(path) != sig:
                    events.append(FileSaved(path=path))

        self._seen = current
        self._watched_folder = folder
        return events

    async def run(
        self,
        submit: Callable[[TrackerEvent], Awaitable[None]],
        stop: asyncio.Event,
    ) -> None:
        """Poll until *stop* is set, passing each event to *submit*."""
        while not stop.is_set():
            try:
                events = await asyncio.to_thread(self.poll_once)
            except OSError:
                logger.warning("Scan of the vault failed, will retry", exc_info=True)
                events = []
            for event in events:
                await submit(event)
            with contextlib.suppress(TimeoutError):
                await asyncio.wait_for(stop.wait(), timeout=self._poll_seconds)
