"""Run report helpers: outcome table and summary line."""

from __future__ import annotations

from dataclasses import asdict
from pathlib import Path

import pandas as pd

from .models import SyncResult

REPORT_COLUMNS = ("issue_key", "filename", "status", "size", "path", "error", "finished_at")


def outcomes_to_dataframe(result: SyncResult) -> pd.DataFrame:
    rows = []
    for outcome in result.outcomes:
        row = asdict(outcome)
        row["status"] = outcome.status.value
        row["path"] = str(outcome.path) if outcome.path is not None else None
        rows.append(row)
    for key, message in result.issue_failures.items():
        rows.append({"issue_key": key, "status": "failed", "error": message})
    df = pd.DataFrame(rows, columns=list(REPORT_COLUMNS))
    if df.empty:
        return df
    df["size"] = pd.to_numeric(df["size"], errors="coerce").astype("Int64")
    return df.sort_values(by=["issue_key", "filename"], na_position="first").reset_index(drop=True)


def write_report(result: SyncResult, path: Path | str) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    outcomes_to_dataframe(result).to_csv(path, index=False)
    return path


def summarize(result: SyncResult) -> str:
    line = (
        f"Processed {result.issues_processed} issues: "
        f"{result.downloaded} downloaded, {result.skipped} skipped, {result.failed} failed"
    )
    if result.cancelled:
        line += " (cancelled)"
    return line
