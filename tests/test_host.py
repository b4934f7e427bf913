"""Tests for the workspace host and the git branch resolver."""

from __future__ import annotations

import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from worktime_tracker.host import (
    Document,
    FolderWorkspaceHost,
    GitBranchResolver,
    IntegrationUnavailable,
)


class TestFolderWorkspaceHost:
    """Tests for resolving documents to workspace folders."""

    def test_resolves_owning_folder(self, tmp_path: Path):
        root = tmp_path / "proj"
        host = FolderWorkspaceHost([root])

        folder = host.workspace_folder(Document(str(root / "src" / "app.py")))

        assert folder is not None
        assert folder.name == "proj"
        assert folder.path == str(root.resolve())

    def test_deepest_root_wins(self, tmp_path: Path):
        outer = tmp_path / "mono"
        inner = outer / "packages" / "api"
        host = FolderWorkspaceHost([outer, inner])

        folder = host.workspace_folder(Document(str(inner / "main.py")))

        assert folder is not None
        assert folder.name == "api"

    def test_document_outside_roots(self, tmp_path: Path):
        host = FolderWorkspaceHost([tmp_path / "proj"])

        assert host.workspace_folder(Document(str(tmp_path / "other" / "x.py"))) is None

    def test_sibling_prefix_is_not_inside(self, tmp_path: Path):
        host = FolderWorkspaceHost([tmp_path / "proj"])

        assert host.workspace_folder(Document(str(tmp_path / "proj-old" / "x.py"))) is None

    def test_unresolvable_path_has_no_workspace(self, tmp_path: Path):
        host = FolderWorkspaceHost([tmp_path])

        assert host.workspace_folder(Document(str(tmp_path / "a\x00b.py"))) is None

    def test_non_file_documents_have_no_workspace(self, tmp_path: Path):
        host = FolderWorkspaceHost([tmp_path])

        assert host.workspace_folder(Document("Untitled-1", scheme="untitled")) is None

    def test_active_document(self, tmp_path: Path):
        host = FolderWorkspaceHost([tmp_path])
        assert host.active_document() is None

        document = Document(str(tmp_path / "a.py"))
        host.set_active_document(document)

        assert host.active_document() == document

    def test_workspace_name(self, tmp_path: Path):
        assert FolderWorkspaceHost([tmp_path / "proj"]).workspace_name() == "proj"
        assert FolderWorkspaceHost([tmp_path], name="mine").workspace_name() == "mine"
        assert FolderWorkspaceHost([]).workspace_name() is None


class TestGitBranchResolver:
    """Tests for GitBranchResolver.current_branch."""

    def _completed(self, returncode: int, stdout: str = "", stderr: str = "") -> MagicMock:
        result = MagicMock(spec=subprocess.CompletedProcess)
        result.returncode = returncode
        result.stdout = stdout
        result.stderr = stderr
        return result

    @patch("worktime_tracker.host.subprocess.run")
    def test_branch_name(self, mock_run: MagicMock):
        mock_run.return_value = self._completed(0, "feature/login\n")

        assert GitBranchResolver().current_branch("/work/proj") == "feature/login"
        args, kwargs = mock_run.call_args
        assert args[0] == ["git", "rev-parse", "--abbrev-ref", "HEAD"]
        assert kwargs["cwd"] == "/work/proj"

    @patch("worktime_tracker.host.subprocess.run")
    def test_detached_head(self, mock_run: MagicMock):
        mock_run.return_value = self._completed(0, "HEAD\n")

        assert GitBranchResolver().current_branch("/work/proj") is None

    @patch("worktime_tracker.host.subprocess.run")
    def test_not_a_repository(self, mock_run: MagicMock):
        mock_run.return_value = self._completed(128, stderr="fatal: not a git repository")

        assert GitBranchResolver().current_branch("/work/proj") is None

    @patch("worktime_tracker.host.subprocess.run", side_effect=FileNotFoundError("git"))
    def test_missing_git_is_integration_unavailable(self, mock_run: MagicMock):
        with pytest.raises(IntegrationUnavailable):
            GitBranchResolver().current_branch("/work/proj")

    @patch(
        "worktime_tracker.host.subprocess.run",
        side_effect=subprocess.TimeoutExpired(cmd="git", timeout=5),
    )
    def test_timeout_propagates(self, mock_run: MagicMock):
        with pytest.raises(subprocess.TimeoutExpired):
            GitBranchResolver().current_branch("/work/proj")
