"""Configuration models and helpers for the work time tracker."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

UNKNOWN_BRANCH = "[no-branch]"


@dataclass(slots=True)
class TrackerSettings:
    """Runtime configuration for the recorder and the aggregation engine."""

    debounce_window: timedelta = timedelta(milliseconds=500)
    aggregation_interval: timedelta = timedelta(seconds=5)
    unknown_branch: str = UNKNOWN_BRANCH
    production: bool = False

    @property
    def debounce_ms(self) -> int:
        return int(self.debounce_window.total_seconds() * 1000)

    @classmethod
    def from_intervals(
        cls,
        debounce_ms: float,
        aggregation_seconds: float | None = None,
        production: bool = False,
    ) -> "TrackerSettings":
        aggregation = aggregation_seconds if aggregation_seconds is not None else 5.0
        return cls(
            debounce_window=timedelta(milliseconds=debounce_ms),
            aggregation_interval=timedelta(seconds=aggregation),
            production=production,
        )
