"""FastAPI application that receives editor activity and exposes the aggregates."""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ConfigDict, Field

from .aggregation import AggregationEngine
from .config import TrackerSettings
from .db import StateStore
from .host import BranchResolver, Document, FolderWorkspaceHost, GitBranchResolver
from .paths import get_db_path
from .recorder import EventRecorder, RecordOutcome
from .reporting import build_snapshot
from .state import TrackerState

logger = logging.getLogger(__name__)


class EngineRunner:
    """Manage the aggregation engine in a background thread."""

    def __init__(self, engine: AggregationEngine) -> None:
        self._engine = engine
        self._lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self._stop_event: Optional[threading.Event] = None

    def start(self) -> None:
        with self._lock:
            if self._thread and self._thread.is_alive():
                return
            stop_event = threading.Event()
            thread = threading.Thread(
                target=self._engine.run_until_stopped,
                args=(stop_event,),
                daemon=True,
            )
            self._thread = thread
            self._stop_event = stop_event
            thread.start()
            logger.info("Aggregation background thread started.")

    def stop(self) -> None:
        thread: Optional[threading.Thread] = None
        with self._lock:
            if not self._thread or not self._thread.is_alive() or not self._stop_event:
                return
            self._stop_event.set()
            thread = self._thread
            self._thread = None
            self._stop_event = None
        if thread:
            thread.join(timeout=10)
            logger.info("Aggregation background thread stopped.")

    def is_running(self) -> bool:
        with self._lock:
            return bool(self._thread and self._thread.is_alive())


class DocumentPayload(BaseModel):
    file_name: str = Field(alias="fileName")
    scheme: str = "file"

    model_config = ConfigDict(extra="forbid", populate_by_name=True)


class EditorPayload(BaseModel):
    document: DocumentPayload

    model_config = ConfigDict(extra="forbid")


class ActivityPayload(BaseModel):
    kind: str
    document: Optional[DocumentPayload] = None
    text_editor: Optional[EditorPayload] = Field(default=None, alias="textEditor")

    model_config = ConfigDict(extra="forbid", populate_by_name=True)


def create_app(
    *,
    db_path: Optional[Path] = None,
    settings: Optional[TrackerSettings] = None,
    workspace_roots: Sequence[Path] = (),
    branch_resolver: Optional[BranchResolver] = None,
) -> FastAPI:
    """Instantiate the FastAPI application."""
    resolved_db_path = Path(db_path or get_db_path())
    resolved_settings = settings or TrackerSettings()
    state = TrackerState()
    store = StateStore(resolved_db_path)
    host = FolderWorkspaceHost(workspace_roots)
    if not workspace_roots:
        logger.warning(
            "No workspace folders configured; every activity event will be dropped."
        )
    recorder = EventRecorder(
        state,
        host,
        branch_resolver or GitBranchResolver(),
        settings=resolved_settings,
    )
    engine = AggregationEngine(state, store, settings=resolved_settings)
    runner = EngineRunner(engine)

    app = FastAPI(title="Work Time Tracker", version="0.3.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.db_path = resolved_db_path
    app.state.tracker_state = state
    app.state.store = store
    app.state.host = host
    app.state.recorder = recorder
    app.state.engine = engine
    app.state.engine_runner = runner

    @app.on_event("startup")
    async def _startup() -> None:
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s %(levelname)s %(name)s %(message)s",
        )
        runner.start()

    @app.on_event("shutdown")
    async def _shutdown() -> None:
        runner.stop()

    @app.get("/api/status")
    def status(request: Request) -> Dict[str, Any]:
        return {
            "engine_running": request.app.state.engine_runner.is_running(),
            "database_path": str(request.app.state.db_path),
            "pending_events": request.app.state.tracker_state.pending_count(),
            "debounce_ms": resolved_settings.debounce_ms,
            "aggregation_seconds": resolved_settings.aggregation_interval.total_seconds(),
            "workspaces": [
                {"name": folder.name, "path": folder.path}
                for folder in request.app.state.host.workspace_folders()
            ],
        }

    @app.post("/api/activity")
    def record_activity(payload: ActivityPayload, request: Request) -> Dict[str, Any]:
        notification: Dict[str, Any] = {}
        if payload.document is not None:
            notification["document"] = _document_notification(
                request, payload.document
            )
        if payload.text_editor is not None:
            notification["textEditor"] = {
                "document": _document_notification(
                    request, payload.text_editor.document
                )
            }
        outcome = request.app.state.recorder.handle(payload.kind, notification)
        if outcome is RecordOutcome.UNSUPPORTED_KIND:
            raise HTTPException(
                status_code=400, detail=f"Unsupported activity kind: {payload.kind}"
            )
        return {"outcome": outcome.value, "recorded": outcome.recorded}

    @app.post("/api/aggregate")
    def aggregate(request: Request) -> Dict[str, Any]:
        result = request.app.state.engine.run_cycle()
        return {
            "drained": result.drained,
            "cleaned": result.cleaned,
            "attributed_ms": result.attributed_ms,
            "error": result.error,
        }

    @app.get("/api/snapshot")
    def snapshot(request: Request) -> Dict[str, Any]:
        return build_snapshot(
            request.app.state.store, request.app.state.tracker_state
        )

    @app.get("/api/stats")
    def stats(
        request: Request,
        workspace: Optional[str] = Query(
            default=None,
            description="Only return the workspace with this name or path.",
        ),
    ) -> Dict[str, Any]:
        workspace_stats = request.app.state.store.load_stats()
        if workspace:
            workspace_stats = [
                stat
                for stat in workspace_stats
                if workspace in (stat.workspace_name, stat.workspace_path)
            ]
            if not workspace_stats:
                raise HTTPException(status_code=404, detail="Workspace not found")
        return {"stats": [stat.to_dict() for stat in workspace_stats]}

    @app.get("/api/cleaned-logs")
    def cleaned_logs(
        request: Request,
        limit: int = Query(default=100, ge=0, le=10000),
    ) -> Dict[str, Any]:
        events = request.app.state.store.load_cleaned_logs(limit=limit)
        return {"events": [event.to_dict() for event in events]}

    return app


def _document_notification(request: Request, payload: DocumentPayload) -> Dict[str, Any]:
    document = Document(file_name=payload.file_name, scheme=payload.scheme)
    if document.scheme == "file":
        request.app.state.host.set_active_document(document)
    return {"fileName": document.file_name, "scheme": document.scheme}
