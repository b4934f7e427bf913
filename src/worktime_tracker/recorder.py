"""Event recorder: turns host activity notifications into buffered events."""

from __future__ import annotations

import logging
import time
from enum import Enum
from typing import Any, Callable, Mapping, Optional

from .config import TrackerSettings
from .host import BranchResolver, Document, IntegrationUnavailable, WorkspaceHost
from .models import ActivityEvent
from .state import TrackerState

logger = logging.getLogger(__name__)

SNAPSHOT_SCHEME = "typelogs"


class ActivityKind(str, Enum):
    DID_OPEN_TEXT_DOCUMENT = "onDidOpenTextDocument"
    DID_CHANGE_TEXT_DOCUMENT = "onDidChangeTextDocument"
    DID_SAVE_TEXT_DOCUMENT = "onDidSaveTextDocument"
    DID_CLOSE_TEXT_DOCUMENT = "onDidCloseTextDocument"
    DID_CHANGE_ACTIVE_TEXT_EDITOR = "onDidChangeActiveTextEditor"
    DID_CHANGE_TEXT_EDITOR_SELECTION = "onDidChangeTextEditorSelection"
    DID_CHANGE_TEXT_EDITOR_VISIBLE_RANGES = "onDidChangeTextEditorVisibleRanges"
    DID_CHANGE_WINDOW_STATE = "onDidChangeWindowState"


class RecordOutcome(str, Enum):
    RECORDED = "recorded"
    DEBOUNCED = "debounced"
    UNSUPPORTED_KIND = "unsupported_kind"
    IGNORED_DOCUMENT = "ignored_document"
    NO_DOCUMENT = "no_document"
    NO_WORKSPACE = "no_workspace"
    WORKSPACE_LOOKUP_FAILED = "workspace_lookup_failed"
    INTEGRATION_UNAVAILABLE = "integration_unavailable"
    BRANCH_LOOKUP_FAILED = "branch_lookup_failed"

    @property
    def recorded(self) -> bool:
        return self is RecordOutcome.RECORDED


def _document_from_mapping(value: Any) -> Optional[Document]:
    if not isinstance(value, Mapping):
        return None
    file_name = value.get("fileName")
    if not file_name:
        return None
    return Document(file_name=str(file_name), scheme=str(value.get("scheme") or "file"))


def _payload_document(payload: Mapping[str, Any]) -> Optional[Document]:
    return _document_from_mapping(payload.get("document"))


def _payload_editor_document(payload: Mapping[str, Any]) -> Optional[Document]:
    editor = payload.get("textEditor")
    if isinstance(editor, Mapping):
        return _document_from_mapping(editor.get("document"))
    return _payload_document(payload)


def _no_document(payload: Mapping[str, Any]) -> Optional[Document]:
    return None


DocumentExtractor = Callable[[Mapping[str, Any]], Optional[Document]]

ACTIVITY_HANDLERS: dict[ActivityKind, DocumentExtractor] = {
    ActivityKind.DID_OPEN_TEXT_DOCUMENT: _payload_document,
    ActivityKind.DID_CHANGE_TEXT_DOCUMENT: _payload_document,
    ActivityKind.DID_SAVE_TEXT_DOCUMENT: _payload_document,
    ActivityKind.DID_CLOSE_TEXT_DOCUMENT: _payload_document,
    ActivityKind.DID_CHANGE_ACTIVE_TEXT_EDITOR: _payload_document,
    ActivityKind.DID_CHANGE_TEXT_EDITOR_SELECTION: _payload_editor_document,
    ActivityKind.DID_CHANGE_TEXT_EDITOR_VISIBLE_RANGES: _payload_editor_document,
    # Focus changes carry no document; the active one is used instead.
    ActivityKind.DID_CHANGE_WINDOW_STATE: _no_document,
}


def _now_ms() -> int:
    return int(time.time() * 1000)


class EventRecorder:
    """Append debounced, normalized activity events to the shared buffer.

    ``record`` never raises: every way an event can be dropped is reported
    through the returned :class:`RecordOutcome`.
    """

    def __init__(
        self,
        state: TrackerState,
        host: WorkspaceHost,
        branches: BranchResolver,
        settings: Optional[TrackerSettings] = None,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        self.state = state
        self.host = host
        self.branches = branches
        self.settings = settings or TrackerSettings()
        self._clock = clock

    def handle(self, kind: str, payload: Optional[Mapping[str, Any]] = None) -> RecordOutcome:
        """Dispatch a host notification through the supported-kind table."""
        try:
            activity = ActivityKind(kind)
        except ValueError:
            logger.debug("Unsupported activity kind %r", kind)
            return RecordOutcome.UNSUPPORTED_KIND
        document = ACTIVITY_HANDLERS[activity](payload or {})
        if document is not None and document.scheme == SNAPSHOT_SCHEME:
            return RecordOutcome.IGNORED_DOCUMENT
        return self.record(activity.value, document)

    def record(self, kind: str, document: Optional[Document] = None) -> RecordOutcome:
        now = self._clock()
        if not self.state.admit(now, self.settings.debounce_ms):
            return RecordOutcome.DEBOUNCED

        try:
            document = document or self.host.active_document()
            if document is None:
                return RecordOutcome.NO_DOCUMENT
            if document.scheme == SNAPSHOT_SCHEME:
                return RecordOutcome.IGNORED_DOCUMENT

            folder = self.host.workspace_folder(document)
            if folder is None:
                return RecordOutcome.NO_WORKSPACE

            workspace_name = folder.name or self.host.workspace_name()
            workspace_path = folder.path
            if workspace_path is None:
                folders = self.host.workspace_folders()
                workspace_path = folders[0].path if folders else None
        except Exception:
            logger.exception("Workspace lookup failed for %r", document)
            return RecordOutcome.WORKSPACE_LOOKUP_FAILED

        branch: Optional[str] = None
        if workspace_path is not None:
            try:
                branch = self.branches.current_branch(workspace_path)
            except IntegrationUnavailable as exc:
                if not self.settings.production:
                    logger.warning("Source control unavailable: %s", exc)
                return RecordOutcome.INTEGRATION_UNAVAILABLE
            except Exception:
                logger.exception("Branch lookup failed for %s", workspace_path)
                return RecordOutcome.BRANCH_LOOKUP_FAILED

        event = ActivityEvent(
            kind=kind,
            timestamp=now,
            file_path=document.file_name,
            workspace_name=workspace_name,
            workspace_path=workspace_path,
            branch=branch,
        )
        self.state.append(event)
        logger.debug("Recorded %s for %s", kind, document.file_name)
        return RecordOutcome.RECORDED
