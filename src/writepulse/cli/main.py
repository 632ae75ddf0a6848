"""Typer CLI entrypoint and command definitions for writepulse."""

import asyncio
import json
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional

import typer
from pydantic import ValidationError

from writepulse.core.defaults import (
    DEFAULT_DATA_DIR,
    DEFAULT_POLL_SECONDS,
    DEFAULT_STATE_FILENAME,
    DEFAULT_VAULT_DIR,
    LOOKBACK_CHOICES,
)

if TYPE_CHECKING:
    from writepulse.report.aggregate import DayView
    from writepulse.service import TrackingService

app = typer.Typer(help="Track when you write: word-count deltas bucketed by time of day.")

_DEFAULT_STATE = str(Path(DEFAULT_DATA_DIR) / DEFAULT_STATE_FILENAME)
_BAR_WIDTH = 30


def _open_service(vault: str, state: str) -> "TrackingService":
    from writepulse.adapters.vault import FileSystemVault
    from writepulse.core.store import StateStore
    from writepulse.service import TrackingService

    return TrackingService(StateStore(Path(state)), FileSystemVault(Path(vault)))


def _render_view(view: "DayView") -> None:
    typer.echo(f"{view.title}  (net {view.total:+d} words)")
    if view.peaks:
        typer.echo(f"Peak: {', '.join(view.peaks)}")

    nonzero = {k: v for k, v in view.buckets.items() if v != 0}
    if not nonzero:
        typer.echo("No writing recorded.")
        return

    scale = max(abs(v) for v in nonzero.values())
    for key, value in nonzero.items():
        bar = ("#" if value > 0 else "-") * max(1, round(abs(value) / scale * _BAR_WIDTH))
        typer.echo(f"  {key}  {value:+6d}  {bar}")


# -- watch --------------------------------------------------------------------


@app.command("watch")
def watch_cmd(
    vault: str = typer.Option(DEFAULT_VAULT_DIR, "--vault", help="Vault root directory"),
    state: str = typer.Option(_DEFAULT_STATE, "--state", help="Path to the state JSON file"),
    poll_seconds: float = typer.Option(DEFAULT_POLL_SECONDS, help="Seconds between folder scans"),
    log_level: str = typer.Option("INFO", help="Logging level"),
) -> None:
    """Watch the tracking folder and record word-count deltas until Ctrl+C."""
    from writepulse.adapters.watcher import PollingWatcher
    from writepulse.core.logging import configure_logging
    from writepulse.core.types import FileSaved
    from writepulse.tracker.dispatch import EventDispatcher

    configure_logging(log_level)
    service = _open_service(vault, state)
    if not service.settings.tracking_folder:
        typer.echo("No tracking folder configured; run `writepulse config set --folder ...`", err=True)
        raise typer.Exit(code=1)

    async def _handle(event: Any) -> None:
        result = await service.handle_event(event)
        if isinstance(event, FileSaved) and result is not None:
            typer.echo(f"[{result.bucket}] {event.path}: {result.delta:+d} words")

    async def _run() -> None:
        watcher = PollingWatcher(
            service.content,
            lambda: service.settings.tracking_folder,
            poll_seconds=poll_seconds,
        )
        async with EventDispatcher(_handle) as dispatcher:
            await watcher.run(dispatcher.submit, asyncio.Event())

    typer.echo(f"Watching {service.settings.tracking_folder!r} in {vault} (state: {state})")
    typer.echo("Press Ctrl+C to stop.\n")
    try:
        asyncio.run(_run())
    except KeyboardInterrupt:
        typer.echo("\nShutting down...")

    if service.persist_failures:
        typer.echo(f"Warning: {service.persist_failures} save(s) of the state file failed", err=True)


# -- views --------------------------------------------------------------------


@app.command("today")
def today_cmd(
    vault: str = typer.Option(DEFAULT_VAULT_DIR, "--vault", help="Vault root directory"),
    state: str = typer.Option(_DEFAULT_STATE, "--state", help="Path to the state JSON file"),
) -> None:
    """Show today's writing pattern."""
    service = _open_service(vault, state)
    view = service.today_view()
    if not service.has_today_data():
        typer.echo(f"{view.title}: no writing recorded yet today.")
        return
    _render_view(view)


@app.command("trend")
def trend_cmd(
    vault: str = typer.Option(DEFAULT_VAULT_DIR, "--vault", help="Vault root directory"),
    state: str = typer.Option(_DEFAULT_STATE, "--state", help="Path to the state JSON file"),
    days: Optional[int] = typer.Option(None, help="Window length in days (default: lookback setting)"),
) -> None:
    """Show the average writing pattern over the lookback window."""
    service = _open_service(vault, state)
    if days is not None and days < 1:
        typer.echo("--days must be at least 1", err=True)
        raise typer.Exit(code=1)
    if not service.tracker.store.has_any_data():
        typer.echo("No data recorded yet.")
        return
    _render_view(service.trend_view(days))


# -- data management ----------------------------------------------------------


@app.command("export")
def export_cmd(
    vault: str = typer.Option(DEFAULT_VAULT_DIR, "--vault", help="Vault root directory"),
    state: str = typer.Option(_DEFAULT_STATE, "--state", help="Path to the state JSON file"),
    out: Optional[str] = typer.Option(None, "--out", help="Destination file (default: writepulse-export-<date>.<ext>)"),
    fmt: str = typer.Option("json", "--format", help="json, csv, or parquet"),
) -> None:
    """Export all bucket data."""
    from writepulse.report.export import (
        default_export_name,
        export_csv,
        export_json,
        export_parquet,
    )

    writers = {"json": export_json, "csv": export_csv, "parquet": export_parquet}
    if fmt not in writers:
        typer.echo(f"Unknown format {fmt!r}; choose from {sorted(writers)}", err=True)
        raise typer.Exit(code=1)

    service = _open_service(vault, state)
    now = datetime.now()
    doc = service.export(now)
    path = Path(out) if out else Path(default_export_name(now, f".{fmt}"))
    written = writers[fmt](doc, path)
    typer.echo(f"Exported {len(doc.daily_data)} day(s) to {written}")


@app.command("reset")
def reset_cmd(
    vault: str = typer.Option(DEFAULT_VAULT_DIR, "--vault", help="Vault root directory"),
    state: str = typer.Option(_DEFAULT_STATE, "--state", help="Path to the state JSON file"),
    yes: bool = typer.Option(False, "--yes", help="Skip the confirmation prompt"),
) -> None:
    """Remove all tracked data.  Settings are kept."""
    if not yes and not typer.confirm("Clear all writing data? This cannot be undone."):
        typer.echo("Aborted.")
        raise typer.Exit(code=1)

    service = _open_service(vault, state)
    asyncio.run(service.reset())
    if service.persist_failures:
        typer.echo("Data cleared in memory but the state file could not be written.", err=True)
        raise typer.Exit(code=1)
    typer.echo("All writing data cleared.")


# -- config -------------------------------------------------------------------
config_app = typer.Typer(help="Show or change settings.")
app.add_typer(config_app, name="config")


@config_app.command("show")
def config_show_cmd(
    vault: str = typer.Option(DEFAULT_VAULT_DIR, "--vault", help="Vault root directory"),
    state: str = typer.Option(_DEFAULT_STATE, "--state", help="Path to the state JSON file"),
) -> None:
    """Print the current settings as JSON."""
    service = _open_service(vault, state)
    typer.echo(json.dumps(service.settings.model_dump(), indent=2))


@config_app.command("set")
def config_set_cmd(
    vault: str = typer.Option(DEFAULT_VAULT_DIR, "--vault", help="Vault root directory"),
    state: str = typer.Option(_DEFAULT_STATE, "--state", help="Path to the state JSON file"),
    folder: Optional[str] = typer.Option(None, "--folder", help="Folder holding the daily notes, e.g. 'Journal/Daily'"),
    lookback: Optional[int] = typer.Option(None, "--lookback", help=f"Trend window in days: {', '.join(map(str, LOOKBACK_CHOICES))}"),
    auto_expand: Optional[bool] = typer.Option(None, "--auto-expand/--no-auto-expand", help="Expand the panel on the first save of each day"),
    collapsed: Optional[bool] = typer.Option(None, "--collapsed/--expanded", help="Panel collapsed state"),
) -> None:
    """Change one or more settings."""
    patch: dict[str, Any] = {
        name: value
        for name, value in (
            ("tracking_folder", folder),
            ("lookback_window", lookback),
            ("auto_expand_panel", auto_expand),
            ("panel_collapsed", collapsed),
        )
        if value is not None
    }
    if not patch:
        typer.echo("Nothing to change.", err=True)
        raise typer.Exit(code=1)

    service = _open_service(vault, state)
    try:
        settings = asyncio.run(service.update_settings(patch))
    except (ValidationError, ValueError) as exc:
        typer.echo(f"Invalid setting: {exc}", err=True)
        raise typer.Exit(code=1)

    if folder is not None:
        if not settings.tracking_folder:
            typer.echo("Tracking folder cleared; nothing will be tracked.")
        elif service.folder_exists():
            typer.echo(f"Folder found: {settings.tracking_folder}")
        else:
            typer.echo(f"Warning: folder not found: {settings.tracking_folder!r}", err=True)
    typer.echo(json.dumps(settings.model_dump(), indent=2))


if __name__ == "__main__":
    app()
