"""Shared fixtures for the writepulse test suite."""

from __future__ import annotations

import datetime as dt
from collections.abc import Callable

import pytest

from writepulse.core.types import TrackerSettings, TrackingState


class FakeClock:
    """Callable clock whose time only moves when a test moves it."""

    def __init__(self, now: dt.datetime) -> None:
        self.now = now

    def __call__(self) -> dt.datetime:
        return self.now

    def advance(self, **kwargs: float) -> dt.datetime:
        self.now += dt.timedelta(**kwargs)
        return self.now


class MemoryVault:
    """In-memory content provider keyed by vault-relative path."""

    def __init__(self) -> None:
        self.files: dict[str, str] = {}
        self.folders: set[str] = set()
        self.reads: list[str] = []

    async def read_text(self, path: str) -> str:
        self.reads.append(path)
        if path not in self.files:
            raise FileNotFoundError(path)
        return self.files[path]

    def folder_exists(self, folder: str) -> bool:
        return folder in self.folders


class RecordingPersist:
    """Persist callback that records every call and can be told to fail."""

    def __init__(self) -> None:
        self.calls = 0
        self.error: Exception | None = None

    async def __call__(self, state: TrackingState) -> None:
        self.calls += 1
        if self.error is not None:
            raise self.error


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock(dt.datetime(2024, 1, 15, 9, 10, 0))


@pytest.fixture()
def vault() -> MemoryVault:
    return MemoryVault()


@pytest.fixture()
def persist() -> RecordingPersist:
    return RecordingPersist()


@pytest.fixture()
def state() -> TrackingState:
    return TrackingState(settings=TrackerSettings(tracking_folder="Journal"))


@pytest.fixture()
def today_path() -> str:
    return "Journal/2024-01-15 Notes.md"


def words(n: int) -> str:
    return " ".join(f"w{i}" for i in range(n))


@pytest.fixture()
def make_words() -> Callable[[int], str]:
    """Return a helper producing *n* distinct whitespace-separated words."""
    return words
