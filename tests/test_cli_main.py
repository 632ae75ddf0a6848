"""End-to-end CLI tests for writepulse commands.

Tests invoke the Typer CLI via CliRunner against a temporary vault and
state file, and verify exit codes, printed output, and files written.
"""

from __future__ import annotations

import asyncio
import json
from datetime import date
from pathlib import Path

import pandas as pd
import pytest
from typer.testing import CliRunner

from writepulse.adapters.vault import FileSystemVault
from writepulse.cli.main import app
from writepulse.core.store import StateStore
from writepulse.core.types import TrackerSettings, TrackingState
from writepulse.service import TrackingService

runner = CliRunner()


@pytest.fixture()
def paths(tmp_path: Path) -> dict[str, Path]:
    vault = tmp_path / "vault"
    (vault / "Journal").mkdir(parents=True)
    return {"vault": vault, "state": tmp_path / "data" / "state.json"}


def _args(paths: dict[str, Path]) -> list[str]:
    return ["--vault", str(paths["vault"]), "--state", str(paths["state"])]


def _seed(paths: dict[str, Path], daily: dict[str, dict[str, int]], folder: str = "Journal") -> None:
    StateStore(paths["state"]).save_sync(
        TrackingState(daily_data=daily, settings=TrackerSettings(tracking_folder=folder)),
    )


# ---------------------------------------------------------------------------
# writepulse config
# ---------------------------------------------------------------------------

class TestConfig:
    def test_show_defaults(self, paths) -> None:
        result = runner.invoke(app, ["config", "show", *_args(paths)])
        assert result.exit_code == 0, result.output
        assert json.loads(result.output) == TrackerSettings().model_dump()

    def test_set_existing_folder(self, paths) -> None:
        result = runner.invoke(app, ["config", "set", *_args(paths), "--folder", "/Journal/"])
        assert result.exit_code == 0, result.output
        assert "Folder found: Journal" in result.output
        assert StateStore(paths["state"]).load().settings.tracking_folder == "Journal"

    def test_set_missing_folder_warns_but_saves(self, paths) -> None:
        result = runner.invoke(app, ["config", "set", *_args(paths), "--folder", "Diary"])
        assert result.exit_code == 0, result.output
        assert "folder not found" in result.output
        assert StateStore(paths["state"]).load().settings.tracking_folder == "Diary"

    def test_clear_folder(self, paths) -> None:
        _seed(paths, {})
        result = runner.invoke(app, ["config", "set", *_args(paths), "--folder", ""])
        assert result.exit_code == 0, result.output
        assert "Tracking folder cleared" in result.output

    def test_set_flags(self, paths) -> None:
        result = runner.invoke(
            app, ["config", "set", *_args(paths), "--lookback", "30", "--no-auto-expand", "--collapsed"],
        )
        assert result.exit_code == 0, result.output
        settings = StateStore(paths["state"]).load().settings
        assert settings.lookback_window == 30
        assert settings.auto_expand_panel is False
        assert settings.panel_collapsed is True

    def test_invalid_lookback(self, paths) -> None:
        result = runner.invoke(app, ["config", "set", *_args(paths), "--lookback", "5"])
        assert result.exit_code == 1
        assert "Invalid setting" in result.output
        assert not paths["state"].exists()

    @pytest.mark.parametrize("folder", ["../Journal", "Journal/../.."])
    def test_set_folder_outside_vault(self, paths, folder: str) -> None:
        result = runner.invoke(app, ["config", "set", *_args(paths), "--folder", folder])
        assert result.exit_code == 1
        assert "Invalid setting" in result.output
        assert not paths["state"].exists()

    def test_nothing_to_change(self, paths) -> None:
        result = runner.invoke(app, ["config", "set", *_args(paths)])
        assert result.exit_code == 1
        assert "Nothing to change" in result.output


# ---------------------------------------------------------------------------
# writepulse today / trend
# ---------------------------------------------------------------------------

class TestViews:
    def test_today_empty(self, paths) -> None:
        result = runner.invoke(app, ["today", *_args(paths)])
        assert result.exit_code == 0, result.output
        assert "no writing recorded yet today." in result.output

    def test_today_with_data(self, paths) -> None:
        _seed(paths, {date.today().isoformat(): {"09:00": 50, "14:00": 20, "21:30": -5}})
        result = runner.invoke(app, ["today", *_args(paths)])
        assert result.exit_code == 0, result.output
        assert "net +65 words" in result.output
        assert "Peak: 9am, 2pm" in result.output
        assert "21:30" in result.output

    def test_today_netting_to_zero(self, paths) -> None:
        _seed(paths, {date.today().isoformat(): {"09:00": 10, "09:30": -10}})
        result = runner.invoke(app, ["today", *_args(paths)])
        assert result.exit_code == 0, result.output
        assert "no writing recorded yet today." not in result.output

    def test_trend_without_data(self, paths) -> None:
        result = runner.invoke(app, ["trend", *_args(paths)])
        assert result.exit_code == 0, result.output
        assert "No data recorded yet." in result.output

    def test_trend_with_data(self, paths) -> None:
        _seed(paths, {date.today().isoformat(): {"07:30": 40}})
        result = runner.invoke(app, ["trend", *_args(paths), "--days", "14"])
        assert result.exit_code == 0, result.output
        assert "14-day average" in result.output
        assert "Peak: 7:30am" in result.output

    def test_trend_rejects_zero_days(self, paths) -> None:
        result = runner.invoke(app, ["trend", *_args(paths), "--days", "0"])
        assert result.exit_code == 1


# ---------------------------------------------------------------------------
# writepulse export / reset / watch
# ---------------------------------------------------------------------------

class TestExport:
    def test_json(self, paths, tmp_path: Path) -> None:
        _seed(paths, {"2024-01-15": {"09:00": 30}})
        out = tmp_path / "export.json"
        result = runner.invoke(app, ["export", *_args(paths), "--out", str(out)])
        assert result.exit_code == 0, result.output
        assert "Exported 1 day(s)" in result.output
        payload = json.loads(out.read_text("utf-8"))
        assert set(payload) == {"daily_data", "exported_at"}
        assert payload["daily_data"]["2024-01-15"]["09:00"] == 30

    def test_csv(self, paths, tmp_path: Path) -> None:
        _seed(paths, {"2024-01-15": {"09:00": 30, "10:00": -3}})
        out = tmp_path / "export.csv"
        result = runner.invoke(app, ["export", *_args(paths), "--out", str(out), "--format", "csv"])
        assert result.exit_code == 0, result.output
        assert len(pd.read_csv(out)) == 2

    def test_default_name(self, paths, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.chdir(tmp_path)
        result = runner.invoke(app, ["export", *_args(paths)])
        assert result.exit_code == 0, result.output
        assert (tmp_path / f"writepulse-export-{date.today().isoformat()}.json").exists()

    def test_unknown_format(self, paths) -> None:
        result = runner.invoke(app, ["export", *_args(paths), "--format", "xml"])
        assert result.exit_code == 1


class TestReset:
    def test_reset_with_yes(self, paths) -> None:
        _seed(paths, {"2024-01-15": {"09:00": 30}})
        result = runner.invoke(app, ["reset", *_args(paths), "--yes"])
        assert result.exit_code == 0, result.output
        state = StateStore(paths["state"]).load()
        assert state.daily_data == {}
        assert state.settings.tracking_folder == "Journal"

    def test_reset_declined(self, paths) -> None:
        _seed(paths, {"2024-01-15": {"09:00": 30}})
        result = runner.invoke(app, ["reset", *_args(paths)], input="n\n")
        assert result.exit_code == 1
        assert "Aborted." in result.output
        assert StateStore(paths["state"]).load().daily_data != {}

    def test_reset_while_watching_sticks(self, paths) -> None:
        _seed(paths, {"2024-01-14": {"09:00": 500}})
        watching = TrackingService(StateStore(paths["state"]), FileSystemVault(paths["vault"]))
        result = runner.invoke(app, ["reset", *_args(paths), "--yes"])
        assert result.exit_code == 0, result.output

        today = date.today().isoformat()
        (paths["vault"] / "Journal" / f"{today}.md").write_text("fresh words", "utf-8")
        asyncio.run(watching.on_file_saved(f"Journal/{today}.md"))
        assert list(StateStore(paths["state"]).load().daily_data) == [today]


class TestWatch:
    def test_requires_tracking_folder(self, paths) -> None:
        result = runner.invoke(app, ["watch", *_args(paths)])
        assert result.exit_code == 1
        assert "No tracking folder configured" in result.output
