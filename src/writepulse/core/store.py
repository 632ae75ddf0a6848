"""JSON persistence for :class:`~writepulse.core.types.TrackingState`.

The whole state lives in a single JSON file.  Writes are atomic (write to
a temporary file in the same directory, then :func:`os.replace`) so a
crash mid-save never leaves a truncated file behind.

Loading is forgiving: a missing file yields defaults, and every top-level
field (and every settings field) is validated on its own so that one bad
value only resets itself.  Files written before the schema was versioned
(``dailyData`` with hourly ``"00"``..``"23"`` buckets, ``wordCountCache``,
``lastSaveTime``) are migrated on the fly.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import os
import tempfile
from datetime import date
from pathlib import Path
from typing import Any, Final, TypeVar

from pydantic import BaseModel, TypeAdapter, ValidationError

from writepulse.core.defaults import (
    DEFAULT_DATA_DIR,
    DEFAULT_STATE_FILENAME,
    STATE_SCHEMA_VERSION,
)
from writepulse.core.types import TrackerSettings, TrackingState, WordCountSnapshot

logger = logging.getLogger(__name__)

_M = TypeVar("_M", bound=BaseModel)

_BUCKET_VALUE: Final[TypeAdapter[int]] = TypeAdapter(int)

FileSignature = tuple[int, int, int]
"""(inode, mtime_ns, size) of the state file."""

_LEGACY_SETTING_NAMES = {
    "trackingFolder": "tracking_folder",
    "lookbackWindow": "lookback_window",
    "panelCollapsed": "panel_collapsed",
    "autoExpandPanel": "auto_expand_panel",
}


class StatePersistError(RuntimeError):
    """Writing the state file failed; in-memory state is ahead of disk."""


def _validate_fields(model_cls: type[_M], raw: dict[str, Any], where: str) -> dict[str, Any]:
    """Validate each known field of *raw* independently.

    Returns only the fields that validated; the rest fall back to the
    model defaults.  Unknown keys are ignored.
    """
    good: dict[str, Any] = {}
    for name in model_cls.model_fields:
        if name not in raw:
            continue
        try:
            good[name] = getattr(model_cls.model_validate({name: raw[name]}), name)
        except ValidationError:
            logger.warning("Invalid %s.%s in state file, using default", where, name)
    return good


def _coerce_days(raw_days: Any) -> dict[str, dict[str, int]]:
    """Validate ``daily_data`` one day and one bucket at a time.

    A day whose key is not a ``YYYY-MM-DD`` date, or whose value is not a
    mapping, is dropped.  A bucket whose value is not an integer is
    dropped and reads as zero.  Everything else is kept.
    """
    if not isinstance(raw_days, dict):
        logger.warning("Invalid state.daily_data in state file, using default")
        return {}

    days: dict[str, dict[str, int]] = {}
    for day, vector in raw_days.items():
        try:
            valid = date.fromisoformat(day).isoformat() == day
        except (TypeError, ValueError):
            valid = False
        if not valid:
            logger.warning("Dropping day %r from state file: not a date key", day)
            continue
        if not isinstance(vector, dict):
            logger.warning("Dropping day %s from state file: not a bucket mapping", day)
            continue
        buckets: dict[str, int] = {}
        for bucket, value in vector.items():
            try:
                buckets[bucket] = _BUCKET_VALUE.validate_python(value)
            except ValidationError:
                logger.warning("Dropping %s %s from state file: %r is not an integer", day, bucket, value)
        days[day] = buckets
    return days


def _coerce_files(raw_files: Any) -> dict[str, WordCountSnapshot]:
    """Validate ``files`` one snapshot at a time, dropping the bad ones."""
    if not isinstance(raw_files, dict):
        logger.warning("Invalid state.files in state file, using default")
        return {}

    files: dict[str, WordCountSnapshot] = {}
    for path, snapshot in raw_files.items():
        try:
            files[path] = WordCountSnapshot.model_validate(snapshot)
        except ValidationError:
            logger.warning("Dropping snapshot of %s from state file", path)
    return files


def _hourly_to_buckets(day: dict[str, Any]) -> dict[str, Any]:
    return {
        (f"{key}:00" if len(key) == 2 and key.isdigit() else key): value
        for key, value in day.items()
    }


def migrate_legacy(raw: dict[str, Any]) -> dict[str, Any]:
    """Rewrite an unversioned camelCase state dict into the current layout."""
    if "schema_version" in raw:
        return raw

    migrated: dict[str, Any] = {"schema_version": STATE_SCHEMA_VERSION}

    daily = raw.get("dailyData", raw.get("daily_data"))
    if isinstance(daily, dict):
        migrated["daily_data"] = {
            day: _hourly_to_buckets(vec) if isinstance(vec, dict) else vec
            for day, vec in daily.items()
        }

    counts = raw.get("wordCountCache")
    saves = raw.get("lastSaveTime")
    if isinstance(counts, dict):
        saves = saves if isinstance(saves, dict) else {}
        files: dict[str, Any] = {}
        for path, count in counts.items():
            last_ms = saves.get(path)
            files[path] = {
                "word_count": count,
                "last_save_ts": last_ms / 1000.0 if isinstance(last_ms, (int, float)) else None,
            }
        migrated["files"] = files
    elif "files" in raw:
        migrated["files"] = raw["files"]

    settings = raw.get("settings")
    if isinstance(settings, dict):
        migrated["settings"] = {
            _LEGACY_SETTING_NAMES.get(k, k): v for k, v in settings.items()
        }

    logger.info("Migrated unversioned state to schema %d", STATE_SCHEMA_VERSION)
    return migrated


def coerce_state(raw: Any) -> TrackingState:
    """Build a :class:`TrackingState` from whatever was stored, never failing.

    Args:
        raw: Decoded JSON (any shape).

    Returns:
        A valid state.  Each bad entry is dropped on its own and takes
        its default.
    """
    if not isinstance(raw, dict):
        logger.warning("State file is not a JSON object, using defaults")
        return TrackingState()

    raw = migrate_legacy(raw)
    fields: dict[str, Any] = {}
    if "daily_data" in raw:
        fields["daily_data"] = _coerce_days(raw["daily_data"])
    if "files" in raw:
        fields["files"] = _coerce_files(raw["files"])

    settings_raw = raw.get("settings")
    if isinstance(settings_raw, dict):
        fields["settings"] = TrackerSettings(**_validate_fields(TrackerSettings, settings_raw, "settings"))
    elif settings_raw is not None:
        logger.warning("Invalid state.settings in state file, using defaults")

    fields["schema_version"] = STATE_SCHEMA_VERSION
    return TrackingState(**fields)


class StateStore:
    """Read/write access to the state JSON file.

    Args:
        path: Location of the state file.  Parent directories are
            created on first save.
    """

    def __init__(self, path: Path | str = Path(DEFAULT_DATA_DIR) / DEFAULT_STATE_FILENAME) -> None:
        self._path = Path(path)
        self._known: FileSignature | None = None

    @property
    def path(self) -> Path:
        return self._path

    def _signature(self) -> FileSignature | None:
        try:
            st = self._path.stat()
        except OSError:
            return None
        return (st.st_ino, st.st_mtime_ns, st.st_size)

    def changed_on_disk(self) -> bool:
        """True if another writer replaced the file since our last load or save.

        Every save replaces the file with a fresh inode, so any write by
        any process changes the signature.
        """
        return self._signature() != self._known

    def mark_current(self) -> None:
        """Treat the file as it is now as matching the in-memory state."""
        self._known = self._signature()

    def load(self) -> TrackingState:
        """Load the state, merged over defaults.

        A missing file gives a fresh state.  An unreadable or corrupt file
        is logged and replaced by defaults; it is never fatal.
        """
        self._known = self._signature()
        if self._known is None:
            return TrackingState()
        try:
            raw = json.loads(self._path.read_text("utf-8"))
        except (json.JSONDecodeError, OSError, UnicodeDecodeError):
            logger.warning("Corrupt state at %s, using defaults", self._path)
            return TrackingState()
        return coerce_state(raw)

    def save_sync(self, state: TrackingState) -> Path:
        """Write *state* atomically and return the path written.

        Raises:
            StatePersistError: If the file could not be written.
        """
        payload = json.dumps(state.model_dump(mode="json"), indent=2) + "\n"
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=self._path.parent, suffix=".json.tmp")
        except OSError as exc:
            raise StatePersistError(f"cannot write state to {self._path}: {exc}") from exc
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
                f.flush()
                st = os.fstat(f.fileno())
            os.replace(tmp, self._path)
        except OSError as exc:
            with contextlib.suppress(OSError):
                os.unlink(tmp)
            raise StatePersistError(f"cannot write state to {self._path}: {exc}") from exc
        self._known = (st.st_ino, st.st_mtime_ns, st.st_size)
        return self._path

    async def save(self, state: TrackingState) -> Path:
        """Async wrapper around :meth:`save_sync` that keeps the event loop free."""
        return await asyncio.to_thread(self.save_sync, state)
