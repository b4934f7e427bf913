"""Aggregation engine: folds buffered events into the cleaned log and stat tree."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Optional, Sequence

from .config import TrackerSettings
from .db import StateStore
from .models import ActivityEvent, BranchStat, FileStat, WorkspaceStat
from .normalization import branch_key, file_basename, relative_file_path
from .state import TrackerState

logger = logging.getLogger(__name__)


def clean_events(
    batch: Sequence[ActivityEvent],
    cleaned_logs: list[ActivityEvent],
    debounce_ms: int,
) -> int:
    """Append the coalesced projection of ``batch`` to ``cleaned_logs``.

    The first event of the batch is always kept. A later event is kept when its
    workspace path or file path differs from the last kept entry, or when it
    comes at least ``debounce_ms`` after it. Returns the number appended.
    """
    appended = 0
    last: Optional[ActivityEvent] = None
    for event in batch:
        if (
            last is None
            or event.workspace_path != last.workspace_path
            or event.file_path != last.file_path
            or event.timestamp - last.timestamp >= debounce_ms
        ):
            cleaned_logs.append(event)
            last = event
            appended += 1
    return appended


def _workspace_stat(stats: list[WorkspaceStat], event: ActivityEvent) -> WorkspaceStat:
    for stat in stats:
        if stat.key == event.workspace_key:
            return stat
    stat = WorkspaceStat(
        workspace_name=event.workspace_name, workspace_path=event.workspace_path
    )
    stats.append(stat)
    return stat


def _branch_stat(workspace: WorkspaceStat, branch_name: str) -> BranchStat:
    branch = workspace.find_branch(branch_name)
    if branch is None:
        branch = BranchStat(branch_name=branch_name)
        workspace.branches.append(branch)
    return branch


def charge(
    stats: list[WorkspaceStat],
    context: ActivityEvent,
    elapsed: int,
    unknown_branch: str,
) -> None:
    """Add ``elapsed`` ms to the workspace, branch and file nodes of ``context``."""
    workspace = _workspace_stat(stats, context)
    workspace.total_time += elapsed

    branch = _branch_stat(workspace, branch_key(context.branch, unknown_branch))
    branch.total_time += elapsed

    if context.file_path:
        file_name = file_basename(context.file_path)
        file_stat = branch.find_file(file_name)
        if file_stat is None:
            file_stat = FileStat(
                file_name=file_name,
                relative_path=relative_file_path(
                    workspace.workspace_path, context.file_path
                ),
            )
            branch.files.append(file_stat)
        file_stat.total_time += elapsed


def _same_context(event: ActivityEvent, context: ActivityEvent) -> bool:
    return (
        event.workspace_key == context.workspace_key
        and event.file_path == context.file_path
    )


def attribute_time(
    batch: Sequence[ActivityEvent],
    stats: list[WorkspaceStat],
    unknown_branch: str,
) -> int:
    """Charge dwell time in ``batch`` to the stat tree. Returns the total charged.

    A context lasts from its first event to the last event observed inside it;
    the gap up to the event that switches context is not charged. When the
    batch ends inside a context, that context is charged up to the final event.
    """
    if len(batch) < 2:
        return 0

    total = 0
    context = batch[0]
    last_index = len(batch) - 1
    for index in range(1, len(batch)):
        event = batch[index]
        if not _same_context(event, context):
            elapsed = batch[index - 1].timestamp - context.timestamp
            charge(stats, context, elapsed, unknown_branch)
            total += elapsed
            context = event
        elif index == last_index:
            elapsed = event.timestamp - context.timestamp
            charge(stats, context, elapsed, unknown_branch)
            total += elapsed
    return total


@dataclass(slots=True)
class CycleResult:
    """Summary of one aggregation cycle."""

    drained: int = 0
    cleaned: int = 0
    attributed_ms: int = 0
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class AggregationEngine:
    """Periodically drains the shared buffer and persists the aggregates."""

    def __init__(
        self,
        state: TrackerState,
        store: StateStore,
        settings: Optional[TrackerSettings] = None,
    ) -> None:
        self.state = state
        self.store = store
        self.settings = settings or TrackerSettings()
        self._cycle_lock = threading.Lock()

    def run_cycle(self) -> CycleResult:
        """Drain, clean, attribute and persist. Never raises.

        On failure the drained batch is dropped and the next cycle starts
        from the persisted state.
        """
        with self._cycle_lock:
            batch = self.state.drain()
            result = CycleResult(drained=len(batch))
            if not batch:
                return result
            try:
                stats, cleaned_logs = self.store.load()
                result.cleaned = clean_events(
                    batch, cleaned_logs, self.settings.debounce_ms
                )
                result.attributed_ms = attribute_time(
                    batch, stats, self.settings.unknown_branch
                )
                self.store.save(stats, cleaned_logs)
            except Exception as exc:
                logger.exception("Aggregation cycle failed; dropped %d events.", len(batch))
                result.error = str(exc) or exc.__class__.__name__
                return result
            logger.debug(
                "Aggregated %d events (%d cleaned, %d ms).",
                result.drained,
                result.cleaned,
                result.attributed_ms,
            )
            return result

    def run_forever(self) -> None:
        stop_event = threading.Event()
        try:
            self._run_loop(stop_event)
        except KeyboardInterrupt:
            logger.info("Aggregation interrupted; folding remaining events.")
        finally:
            self._shutdown()

    def run_until_stopped(self, stop_event: threading.Event) -> None:
        """Run the engine until the provided event is set."""
        try:
            self._run_loop(stop_event)
        finally:
            self._shutdown()

    def _run_loop(self, stop_event: threading.Event) -> None:
        logger.info("Starting aggregation engine; writing to %s", self.store.db_path)
        interval = self.settings.aggregation_interval.total_seconds()
        # Sleep first so the first cycle sees a full interval of events.
        while not stop_event.wait(interval):
            self.run_cycle()

    def _shutdown(self) -> None:
        self.run_cycle()
        logger.info("Aggregation engine stopped.")
