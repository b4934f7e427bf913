"""Snapshot building and console rendering of the stat tree."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Optional

from .db import StateStore
from .models import WorkspaceStat
from .state import TrackerState


def build_snapshot(
    store: StateStore,
    state: Optional[TrackerState] = None,
    now: Optional[datetime] = None,
) -> dict[str, Any]:
    """Read-only view of the persisted aggregates for presentation."""
    stats, cleaned_logs = store.load()
    return {
        "stats": [stat.to_dict() for stat in stats],
        "cleanedLen": len(cleaned_logs),
        "rawLen": state.pending_count() if state is not None else 0,
        "asOf": (now or datetime.now(timezone.utc)).isoformat(),
    }


def snapshot_json(snapshot: dict[str, Any]) -> str:
    return json.dumps(snapshot, indent=2)


class SummaryPrinter:
    """Render human-readable summaries in the console."""

    def __init__(self, db_path: Path) -> None:
        self.store = StateStore(db_path)

    def print_summary(self, workspace: Optional[str] = None, top_files: int = 5) -> None:
        stats = self.store.load_stats()
        if workspace:
            stats = [
                stat
                for stat in stats
                if workspace in (stat.workspace_name, stat.workspace_path)
            ]
        if not stats:
            print("No activity recorded yet.")
            return

        for line in render_tree(stats, top_files=top_files):
            print(line)


def render_tree(stats: Iterable[WorkspaceStat], top_files: int = 5) -> list[str]:
    lines: list[str] = []
    for stat in sorted(stats, key=lambda item: item.total_time, reverse=True):
        label = stat.workspace_name or stat.workspace_path or "(unknown workspace)"
        lines.append(f"{label:<42} {format_duration(stat.total_time)}")
        for branch in sorted(stat.branches, key=lambda item: item.total_time, reverse=True):
            lines.append(f"  {branch.branch_name:<40} {format_duration(branch.total_time)}")
            files = sorted(branch.files, key=lambda item: item.total_time, reverse=True)
            for file_stat in files[:top_files]:
                path = file_stat.relative_path or file_stat.file_name
                lines.append(f"    {path[:38]:<38} {format_duration(file_stat.total_time)}")
    return lines


def format_duration(milliseconds: float) -> str:
    total_seconds = int(round(milliseconds / 1000))
    hours, remainder = divmod(total_seconds, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"
