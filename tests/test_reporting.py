"""Tests for snapshots, console rendering and the CLI."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

from typer.testing import CliRunner

from worktime_tracker.cli import app
from worktime_tracker.db import StateStore
from worktime_tracker.models import ActivityEvent, BranchStat, FileStat, WorkspaceStat
from worktime_tracker.reporting import (
    SummaryPrinter,
    build_snapshot,
    format_duration,
    render_tree,
)
from worktime_tracker.state import TrackerState


def populated_store(tmp_path: Path) -> StateStore:
    store = StateStore(tmp_path / "state.sqlite3")
    stats = [
        WorkspaceStat(
            workspace_name="small",
            workspace_path="/work/small",
            total_time=60_000,
            branches=[BranchStat(branch_name="[no-branch]", total_time=60_000)],
        ),
        WorkspaceStat(
            workspace_name="big",
            workspace_path="/work/big",
            total_time=3_723_000,
            branches=[
                BranchStat(
                    branch_name="main",
                    total_time=3_723_000,
                    files=[
                        FileStat(file_name="a.py", relative_path="src/a.py", total_time=1_000),
                        FileStat(file_name="b.py", relative_path="src/b.py", total_time=2_000),
                    ],
                )
            ],
        ),
    ]
    event = ActivityEvent("onDidOpenTextDocument", 5, "/work/big/src/a.py", "big", "/work/big", "main")
    store.save(stats, [event])
    return store


def test_format_duration():
    assert format_duration(0) == "00:00:00"
    assert format_duration(3_723_000) == "01:02:03"
    assert format_duration(1_499) == "00:00:01"


def test_build_snapshot(tmp_path: Path):
    store = populated_store(tmp_path)
    state = TrackerState()
    state.append(ActivityEvent("onDidSaveTextDocument", 9, None, "big", "/work/big", None))
    as_of = datetime(2026, 1, 5, 12, 0, tzinfo=timezone.utc)

    snapshot = build_snapshot(store, state, now=as_of)

    assert set(snapshot) == {"stats", "cleanedLen", "rawLen", "asOf"}
    assert snapshot["cleanedLen"] == 1
    assert snapshot["rawLen"] == 1
    assert snapshot["asOf"] == "2026-01-05T12:00:00+00:00"
    assert [s["workspaceName"] for s in snapshot["stats"]] == ["small", "big"]


def test_render_tree_sorts_by_time(tmp_path: Path):
    lines = render_tree(populated_store(tmp_path).load_stats())

    assert lines[0].startswith("big")
    assert lines[0].endswith("01:02:03")
    assert lines[1].strip().startswith("main")
    assert lines[2].strip().startswith("src/b.py")
    assert lines[3].strip().startswith("src/a.py")
    assert lines[4].startswith("small")


def test_render_tree_limits_files(tmp_path: Path):
    lines = render_tree(populated_store(tmp_path).load_stats(), top_files=1)

    assert not any("src/a.py" in line for line in lines)


def test_summary_printer_empty(tmp_path: Path, capsys):
    SummaryPrinter(tmp_path / "empty.sqlite3").print_summary()

    assert "No activity recorded yet." in capsys.readouterr().out


def test_summary_printer_filters_workspace(tmp_path: Path, capsys):
    store = populated_store(tmp_path)

    SummaryPrinter(store.db_path).print_summary(workspace="/work/small")

    out = capsys.readouterr().out
    assert "small" in out
    assert "big" not in out


class TestCli:
    def test_snapshot_command(self, tmp_path: Path):
        store = populated_store(tmp_path)

        result = CliRunner().invoke(app, ["snapshot", "--db", str(store.db_path)])

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["cleanedLen"] == 1
        assert data["rawLen"] == 0

    def test_summary_command(self, tmp_path: Path):
        store = populated_store(tmp_path)

        result = CliRunner().invoke(app, ["summary", "--db", str(store.db_path)])

        assert result.exit_code == 0
        assert "01:02:03" in result.output
