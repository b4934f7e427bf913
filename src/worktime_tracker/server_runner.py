"""Helpers to launch the local tracking server."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Sequence

import uvicorn

from .config import TrackerSettings
from .paths import get_db_path
from .webapp import create_app


def run_server(
    *,
    host: str = "127.0.0.1",
    port: int = 8766,
    db_path: Optional[Path] = None,
    settings: Optional[TrackerSettings] = None,
    workspace_roots: Sequence[Path] = (),
    log_level: str = "info",
) -> None:
    """Start the FastAPI server with the background aggregation engine."""
    app = create_app(
        db_path=db_path or get_db_path(),
        settings=settings or TrackerSettings(),
        workspace_roots=workspace_roots,
    )

    logging.getLogger("uvicorn.error").setLevel(log_level.upper())
    uvicorn.run(app, host=host, port=port, log_level=log_level)
