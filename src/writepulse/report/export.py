"""Export utilities: JSON document, plus flat CSV and Parquet tables."""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path

import pandas as pd

from writepulse.core.defaults import EXPORT_FILE_PREFIX
from writepulse.core.types import ExportDocument, TrackingState

_COLUMNS = ["date", "bucket", "delta"]


def build_export(state: TrackingState, now: datetime) -> ExportDocument:
    """Snapshot the bucket data of *state* with an export timestamp.

    File snapshots and settings are deliberately left out.
    """
    return ExportDocument(
        daily_data={day: dict(vec) for day, vec in sorted(state.daily_data.items())},
        exported_at=now,
    )


def default_export_name(now: datetime, suffix: str = ".json") -> str:
    """``writepulse-export-YYYY-MM-DD.json`` style file name."""
    return f"{EXPORT_FILE_PREFIX}-{now.date().isoformat()}{suffix}"


def export_json(doc: ExportDocument, path: Path) -> Path:
    """Write *doc* as indented JSON.

    Args:
        doc: Document built by :func:`build_export`.
        path: Destination JSON file path.

    Returns:
        The *path* that was written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(doc.model_dump(mode="json"), indent=2) + "\n", "utf-8")
    return path


def export_rows(doc: ExportDocument) -> pd.DataFrame:
    """Flatten *doc* into one row per nonzero ``(date, bucket)``.

    Columns: ``date``, ``bucket``, ``delta``.
    """
    rows = [
        {"date": day, "bucket": bucket, "delta": value}
        for day, vector in doc.daily_data.items()
        for bucket, value in vector.items()
        if value != 0
    ]
    return pd.DataFrame(rows, columns=_COLUMNS).astype({"delta": "int64"})


def export_csv(doc: ExportDocument, path: Path) -> Path:
    """Write the flat table of *doc* as CSV.  Returns the *path* written."""
    path.parent.mkdir(parents=True, exist_ok=True)
    export_rows(doc).to_csv(path, index=False)
    return path


def export_parquet(doc: ExportDocument, path: Path) -> Path:
    """Write the flat table of *doc* as Parquet.  Returns the *path* written."""
    path.parent.mkdir(parents=True, exist_ok=True)
    export_rows(doc).to_parquet(path, engine="pyarrow", index=False)
    return path
