"""Tests for domain models, settings and shared state."""

from __future__ import annotations

from datetime import timedelta

import pytest

from worktime_tracker.config import TrackerSettings
from worktime_tracker.models import ActivityEvent, BranchStat, FileStat, WorkspaceStat
from worktime_tracker.normalization import branch_key, file_basename
from worktime_tracker.state import TrackerState


def make_event(timestamp: int) -> ActivityEvent:
    return ActivityEvent("onDidOpenTextDocument", timestamp, "/p/a.py", "p", "/p", "main")


class TestTrackerSettings:
    def test_defaults(self):
        settings = TrackerSettings()
        assert settings.debounce_ms == 500
        assert settings.aggregation_interval == timedelta(seconds=5)
        assert settings.unknown_branch == "[no-branch]"
        assert settings.production is False

    def test_from_intervals(self):
        settings = TrackerSettings.from_intervals(250, aggregation_seconds=2.5, production=True)
        assert settings.debounce_ms == 250
        assert settings.aggregation_interval == timedelta(seconds=2.5)
        assert settings.production is True

    def test_from_intervals_default_period(self):
        assert TrackerSettings.from_intervals(100).aggregation_interval == timedelta(seconds=5)


class TestModels:
    def test_event_is_immutable(self):
        event = make_event(1)
        with pytest.raises(AttributeError):
            event.timestamp = 2  # type: ignore[misc]

    def test_workspace_from_dict_accepts_missing_optional_keys(self):
        stat = WorkspaceStat.from_dict(
            {
                "workspaceName": "p",
                "workspacePath": "/p",
                "branches": [{"branchName": "main", "files": [{"fileName": "a.py"}]}],
            }
        )
        assert stat.total_time == 0
        assert stat.branches == [
            BranchStat(branch_name="main", files=[FileStat(file_name="a.py", relative_path="")])
        ]

    def test_find_helpers(self):
        branch = BranchStat(branch_name="main", files=[FileStat("a.py", "a.py", 3)])
        stat = WorkspaceStat("p", "/p", branches=[branch])
        assert stat.find_branch("main") is branch
        assert stat.find_branch("dev") is None
        assert branch.find_file("a.py").total_time == 3
        assert branch.find_file("b.py") is None


class TestNormalization:
    @pytest.mark.parametrize(
        ("path", "expected"),
        [
            ("/work/proj/src/app.py", "app.py"),
            ("C:\\work\\proj\\app.py", "app.py"),
            ("app.py", "app.py"),
        ],
    )
    def test_file_basename(self, path: str, expected: str):
        assert file_basename(path) == expected

    def test_branch_key(self):
        assert branch_key(None, "[no-branch]") == "[no-branch]"
        assert branch_key("", "[no-branch]") == "[no-branch]"
        assert branch_key("dev", "[no-branch]") == "dev"


class TestTrackerState:
    def test_drain_swaps_buffer(self):
        state = TrackerState()
        state.append(make_event(1))
        state.append(make_event(2))

        batch = state.drain()
        state.append(make_event(3))

        assert [event.timestamp for event in batch] == [1, 2]
        assert [event.timestamp for event in state.drain()] == [3]
        assert state.drain() == []

    def test_append_keeps_timestamp_order(self):
        state = TrackerState()
        late = make_event(1_600)
        early = make_event(1_000)
        tied = ActivityEvent("onDidSaveTextDocument", 1_600, "/p/a.py", "p", "/p", "main")

        state.append(late)
        state.append(early)
        state.append(tied)

        assert state.drain() == [early, late, tied]

    def test_admit(self):
        state = TrackerState()
        assert state.admit(500, 500)
        assert not state.admit(999, 500)
        assert state.admit(1_000, 500)
        assert state.last_logged_time == 1_000
