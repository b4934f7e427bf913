"""Collaborators that supply documents, workspaces and branch names."""

from __future__ import annotations

import logging
import subprocess
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol, Sequence

logger = logging.getLogger(__name__)

DETACHED_HEAD = "HEAD"


class IntegrationUnavailable(RuntimeError):
    """Raised when no source-control integration can answer branch lookups."""


@dataclass(frozen=True, slots=True)
class Document:
    """An editor document identified by its file system path."""

    file_name: str
    scheme: str = "file"


@dataclass(frozen=True, slots=True)
class WorkspaceFolder:
    name: Optional[str]
    path: Optional[str]


class WorkspaceHost(Protocol):
    def active_document(self) -> Optional[Document]: ...

    def workspace_folder(self, document: Document) -> Optional[WorkspaceFolder]: ...

    def workspace_name(self) -> Optional[str]: ...

    def workspace_folders(self) -> Sequence[WorkspaceFolder]: ...


class BranchResolver(Protocol):
    def current_branch(self, workspace_path: str) -> Optional[str]: ...


class FolderWorkspaceHost:
    """Host backed by a fixed list of workspace root folders.

    The folder owning a document is the deepest root that contains it. The
    active document is whichever document was reported most recently.
    """

    def __init__(
        self, roots: Sequence[Path | str], name: Optional[str] = None
    ) -> None:
        self._folders = [
            WorkspaceFolder(name=Path(root).name or None, path=str(Path(root).resolve()))
            for root in roots
        ]
        self._name = name
        self._active: Optional[Document] = None
        self._lock = threading.Lock()

    def set_active_document(self, document: Optional[Document]) -> None:
        with self._lock:
            self._active = document

    def active_document(self) -> Optional[Document]:
        with self._lock:
            return self._active

    def workspace_folder(self, document: Document) -> Optional[WorkspaceFolder]:
        if document.scheme != "file":
            return None
        try:
            target = Path(document.file_name).resolve()
        except (OSError, ValueError):
            logger.debug("Unresolvable document path %r", document.file_name)
            return None
        best: Optional[WorkspaceFolder] = None
        best_depth = -1
        for folder in self._folders:
            root = Path(folder.path)
            if target != root and root not in target.parents:
                continue
            depth = len(root.parts)
            if depth > best_depth:
                best, best_depth = folder, depth
        return best

    def workspace_name(self) -> Optional[str]:
        if self._name:
            return self._name
        if self._folders:
            return self._folders[0].name
        return None

    def workspace_folders(self) -> Sequence[WorkspaceFolder]:
        return tuple(self._folders)


class GitBranchResolver:
    """Resolve the checked-out branch with the ``git`` executable."""

    def __init__(self, git_executable: str = "git", timeout: float = 5.0) -> None:
        self.git_executable = git_executable
        self.timeout = timeout

    def current_branch(self, workspace_path: str) -> Optional[str]:
        try:
            result = subprocess.run(
                [self.git_executable, "rev-parse", "--abbrev-ref", "HEAD"],
                capture_output=True,
                text=True,
                cwd=workspace_path,
                timeout=self.timeout,
            )
        except FileNotFoundError as exc:
            raise IntegrationUnavailable(
                f"{self.git_executable} executable not found"
            ) from exc
        if result.returncode != 0:
            logger.debug(
                "No branch for %s: %s", workspace_path, result.stderr.strip()
            )
            return None
        branch = result.stdout.strip()
        if not branch or branch == DETACHED_HEAD:
            return None
        return branch
