"""Command-line interface for the work time tracker."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

import typer

from .config import TrackerSettings
from .paths import get_db_path

app = typer.Typer(help="Per-workspace, per-branch, per-file editor time tracker.")


@app.callback(no_args_is_help=True)
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logs.")) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


@app.command()
def serve(
    workspaces: Optional[List[Path]] = typer.Option(
        None,
        "--workspace",
        "-w",
        path_type=Path,
        help="Workspace root folder to track (repeatable).",
    ),
    host: str = typer.Option("127.0.0.1", "--host", help="Interface to bind the server."),
    port: int = typer.Option(
        8766, "--port", min=1, max=65535, help="TCP port for the server."
    ),
    db_path: Optional[Path] = typer.Option(
        None, "--db", path_type=Path, help="Location of the tracker state database."
    ),
    debounce_ms: float = typer.Option(
        500.0,
        "--debounce",
        min=0.0,
        help="Minimum spacing between recorded events, in milliseconds.",
    ),
    aggregation_seconds: float = typer.Option(
        5.0,
        "--aggregate-every",
        min=0.5,
        help="Aggregation period in seconds.",
    ),
    production: bool = typer.Option(
        False,
        "--production/--development",
        help="Silence source-control availability warnings.",
    ),
) -> None:
    """Receive editor activity over HTTP and aggregate it in the background."""
    from .server_runner import run_server

    settings = TrackerSettings.from_intervals(
        debounce_ms=debounce_ms,
        aggregation_seconds=aggregation_seconds,
        production=production,
    )
    run_server(
        host=host,
        port=port,
        db_path=db_path or get_db_path(),
        settings=settings,
        workspace_roots=workspaces or [],
    )


@app.command()
def summary(
    workspace: Optional[str] = typer.Option(
        None,
        "--workspace",
        help="Only show the workspace with this name or path.",
    ),
    top_files: int = typer.Option(5, "--top-files", min=0, help="Files to list per branch."),
    db_path: Optional[Path] = typer.Option(
        None,
        "--db",
        path_type=Path,
        help="Location of the tracker state database.",
    ),
) -> None:
    """Print the workspace / branch / file time tree."""
    from .reporting import SummaryPrinter

    summary_printer = SummaryPrinter(db_path=db_path or get_db_path())
    summary_printer.print_summary(workspace=workspace, top_files=top_files)


@app.command()
def snapshot(
    db_path: Optional[Path] = typer.Option(
        None,
        "--db",
        path_type=Path,
        help="Location of the tracker state database.",
    ),
) -> None:
    """Print the persisted aggregates as JSON."""
    from .db import StateStore
    from .reporting import build_snapshot, snapshot_json

    typer.echo(snapshot_json(build_snapshot(StateStore(db_path or get_db_path()))))
