"""Tracking service: owns the state and wires tracker, store, and views.

The service is the single owner of the :class:`TrackingState`.  Every
mutating entry point (file events, settings updates, reset) is meant to be
called from one task at a time; :meth:`TrackingService.handle_event` is the
handler to plug into an :class:`~writepulse.tracker.dispatch.EventDispatcher`.

Persistence failures never undo an in-memory change.  They are logged as
warnings and counted in :attr:`TrackingService.persist_failures`; the next
successful save catches the file up.

The state file has one logical writer at a time but may be rewritten by a
short-lived command (``writepulse reset``, ``writepulse config set``) while
``watch`` runs.  Each mutation first adopts such a rewrite, so the watcher
builds on the file instead of overwriting it.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any

from writepulse.core.store import StatePersistError, StateStore
from writepulse.core.types import (
    ContentProvider,
    ExportDocument,
    FileOpened,
    FileSaved,
    ProcessResult,
    TrackerEvent,
    TrackerSettings,
    TrackingState,
)
from writepulse.report.aggregate import DayView, build_day_view, rolling_average
from writepulse.report.export import build_export
from writepulse.tracker.delta import DeltaTracker

logger = logging.getLogger(__name__)


class TrackingService:
    """Front door for everything that reads or changes tracking data.

    Args:
        store: Where the state is loaded from and saved to.
        content: Source of document text (normally the vault).
        clock: Returns the current local time.
        state: Pre-loaded state; loaded from *store* when omitted.
    """

    def __init__(
        self,
        store: StateStore,
        content: ContentProvider,
        *,
        clock: Callable[[], datetime] = datetime.now,
        state: TrackingState | None = None,
    ) -> None:
        self._store = store
        self._content = content
        self._clock = clock
        self.persist_failures = 0
        if state is None:
            state = store.load()
        else:
            store.mark_current()
        self._bind(state)

    def _bind(self, state: TrackingState) -> None:
        self.state = state
        self._tracker = DeltaTracker(state, self._content, self._persist, clock=self._clock)

    def reload_if_changed(self) -> bool:
        """Adopt the state file if another process rewrote it.

        Called before every mutation so that a ``reset`` or ``config set`` run
        elsewhere is never overwritten by this process's next save.
        Unsaved in-memory changes are dropped in favour of the file.

        Returns:
            ``True`` if the state was reloaded.
        """
        if not self._store.changed_on_disk():
            return False
        logger.info("State file %s changed on disk, reloading", self._store.path)
        self._bind(self._store.load())
        return True

    @property
    def settings(self) -> TrackerSettings:
        return self.state.settings

    @property
    def tracker(self) -> DeltaTracker:
        return self._tracker

    @property
    def content(self) -> ContentProvider:
        return self._content

    async def _persist(self, state: TrackingState) -> bool:
        try:
            await self._store.save(state)
        except StatePersistError as exc:
            self.persist_failures += 1
            logger.warning("Could not save tracking state, keeping changes in memory: %s", exc)
            return False
        return True

    # -- events ----------------------------------------------------------------

    async def handle_event(self, event: TrackerEvent) -> ProcessResult | bool | None:
        """Dispatch a file event to the matching handler."""
        if isinstance(event, FileSaved):
            return await self.on_file_saved(event.path)
        if isinstance(event, FileOpened):
            return await self.on_file_opened(event.path)
        raise TypeError(f"Unsupported event {event!r}")

    async def on_file_saved(self, path: str) -> ProcessResult | None:
        """Count a save; expands the panel on the first save of the day.

        Raises:
            OSError: The document could not be read.
        """
        self.reload_if_changed()
        result = await self._tracker.process_file_modification(path)
        if result is None:
            return None

        settings = self.state.settings
        if result.is_first_save_of_day and settings.auto_expand_panel and settings.panel_collapsed:
            settings.panel_collapsed = False
            logger.info("First save of %s, expanding panel", result.date)
            await self._persist(self.state)
        return result

    async def on_file_opened(self, path: str) -> bool:
        self.reload_if_changed()
        return await self._tracker.warm_cache(path)

    # -- views -----------------------------------------------------------------

    def day_view(self, day: str) -> DayView:
        return build_day_view(day, self._tracker.store.read(day))

    def today_view(self) -> DayView:
        return self.day_view(self._tracker.today())

    def trend_view(self, days: int | None = None) -> DayView:
        """Rolling average over *days* (default: the lookback setting)."""
        window = days or self.state.settings.lookback_window
        vector = rolling_average(self._tracker.store, window, self._clock().date())
        return build_day_view(f"{window}-day average", vector)

    def has_today_data(self) -> bool:
        return self._tracker.store.has_nonzero(self._tracker.today())

    # -- settings / data management ------------------------------------------

    async def update_settings(self, patch: dict[str, Any]) -> TrackerSettings:
        """Validate and apply a partial settings update, then persist.

        Raises:
            ValueError: If *patch* names an unknown setting.
            pydantic.ValidationError: If a value is invalid.  Nothing is
                changed in that case.
        """
        unknown = set(patch) - set(TrackerSettings.model_fields)
        if unknown:
            raise ValueError(f"Unknown setting(s): {sorted(unknown)}")

        self.reload_if_changed()
        updated = TrackerSettings.model_validate({**self.state.settings.model_dump(), **patch})
        for name in patch:
            setattr(self.state.settings, name, getattr(updated, name))
        await self._persist(self.state)
        return self.state.settings

    def folder_exists(self) -> bool | None:
        """Whether the tracking folder exists in the vault (``None`` if unknown)."""
        folder = self.state.settings.tracking_folder
        check = getattr(self._content, "folder_exists", None)
        if not folder or check is None:
            return None
        return bool(check(folder))

    async def reset(self) -> None:
        """Drop all bucket data and word-count snapshots; keep settings."""
        self.reload_if_changed()
        self.state.daily_data.clear()
        self.state.files.clear()
        logger.info("Cleared all tracking data")
        await self._persist(self.state)

    def export(self, now: datetime | None = None) -> ExportDocument:
        return build_export(self.state, now or self._clock())
