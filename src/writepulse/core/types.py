"""Core data contracts: tracking state, settings, file events, and results."""

from __future__ import annotations

import re
from datetime import datetime
from typing import Annotated, Literal, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from writepulse.core.defaults import (
    DEFAULT_LOOKBACK_DAYS,
    LOOKBACK_CHOICES,
    STATE_SCHEMA_VERSION,
)
from writepulse.core.time import bucket_keys

DayBucketVector = dict[str, int]
"""One calendar day: ``HH:MM`` bucket start -> net word delta."""


@runtime_checkable
class ContentProvider(Protocol):
    """Anything that can return the full text of a vault-relative path.

    :class:`~writepulse.adapters.vault.FileSystemVault` satisfies it; tests
    use an in-memory stand-in.  Implementations raise
    :class:`FileNotFoundError` or :class:`OSError` on failure.
    """

    async def read_text(self, path: str) -> str: ...


def normalize_folder(value: str) -> str:
    """Strip leading/trailing path separators from a folder path."""
    return value.strip().strip("/\\")


class TrackerSettings(BaseModel):
    """User-editable configuration, persisted inside :class:`TrackingState`.

    ``tracking_folder`` is vault-relative and may not climb out of the
    vault with ``..``; an empty value disables tracking entirely.  ``panel_collapsed`` and ``auto_expand_panel``
    carry display preferences for whichever front end renders the data.
    """

    model_config = ConfigDict(validate_assignment=True)

    tracking_folder: str = Field(default="", description="Vault-relative folder holding the daily notes.")
    lookback_window: int = Field(
        default=DEFAULT_LOOKBACK_DAYS,
        description=f"Days included in the trend average; one of {LOOKBACK_CHOICES}.",
    )
    auto_expand_panel: bool = Field(default=True, description="Expand the panel on the first save of each day.")
    panel_collapsed: bool = Field(default=False, description="Last known collapsed state of the panel.")

    @field_validator("tracking_folder")
    @classmethod
    def _check_folder(cls, v: str) -> str:
        folder = normalize_folder(v)
        parts = re.split(r"[\\/]", folder) if folder else []
        if ".." in parts:
            raise ValueError(f"tracking_folder must stay inside the vault, got {v!r}")
        if parts and ":" in parts[0]:
            raise ValueError(f"tracking_folder must be vault-relative, got {v!r}")
        return folder

    @field_validator("lookback_window")
    @classmethod
    def _check_lookback(cls, v: int) -> int:
        if v not in LOOKBACK_CHOICES:
            raise ValueError(
                f"lookback_window must be one of {LOOKBACK_CHOICES}, got {v}"
            )
        return v


class WordCountSnapshot(BaseModel):
    """Last observed word count of one tracked file.

    ``last_save_ts`` is the wall-clock time (epoch seconds) of the last
    *accepted* save and stays ``None`` for a snapshot seeded on open.
    """

    word_count: int = Field(default=0, ge=0, description="Words counted at the last observation.")
    last_save_ts: float | None = Field(default=None, description="Epoch seconds of the last accepted save.")


class TrackingState(BaseModel):
    """Aggregate root persisted as a whole on every accepted mutation.

    Day vectors are normalised on validation: every configured bucket key
    is present (missing ones read as zero) and unknown keys are dropped,
    so a change of bucket granularity never leaves malformed days behind.
    """

    schema_version: int = Field(default=STATE_SCHEMA_VERSION, description="On-disk schema version.")
    daily_data: dict[str, DayBucketVector] = Field(
        default_factory=dict, description="Date key (YYYY-MM-DD) -> day bucket vector."
    )
    files: dict[str, WordCountSnapshot] = Field(
        default_factory=dict, description="Vault-relative path -> last word-count snapshot."
    )
    settings: TrackerSettings = Field(default_factory=TrackerSettings)

    @model_validator(mode="after")
    def _normalize_days(self) -> TrackingState:
        keys = bucket_keys()
        for day, vector in self.daily_data.items():
            if list(vector) != keys:
                self.daily_data[day] = {k: int(vector.get(k, 0)) for k in keys}
        return self


class ProcessResult(BaseModel, frozen=True):
    """Outcome of one accepted save."""

    delta: int = Field(description="Word-count change since the previous observation.")
    is_first_save_of_day: bool = Field(description="True if this save created today's day vector.")
    date: str = Field(description="Date key the delta was recorded under.")
    bucket: str = Field(description="Bucket key the delta was recorded under.")


class ExportDocument(BaseModel, frozen=True):
    """Everything the user can take away: the bucket data and when it was taken."""

    daily_data: dict[str, DayBucketVector]
    exported_at: datetime


class FileSaved(BaseModel, frozen=True):
    """A document under the vault was written."""

    kind: Literal["file_saved"] = "file_saved"
    path: str


class FileOpened(BaseModel, frozen=True):
    """A document under the vault was opened (or first seen)."""

    kind: Literal["file_opened"] = "file_opened"
    path: str


TrackerEvent = Annotated[FileSaved | FileOpened, Field(discriminator="kind")]
