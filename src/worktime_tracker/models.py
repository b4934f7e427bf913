"""Domain models for recorded activity and aggregated time."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass(frozen=True, slots=True)
class ActivityEvent:
    """A single normalized activity notification.

    The same shape is used for raw events in the buffer and for entries of the
    cleaned log.
    """

    kind: str
    timestamp: int
    file_path: Optional[str]
    workspace_name: Optional[str]
    workspace_path: Optional[str]
    branch: Optional[str]

    @property
    def workspace_key(self) -> tuple[Optional[str], Optional[str]]:
        return self.workspace_name, self.workspace_path

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.kind,
            "time": self.timestamp,
            "filePath": self.file_path,
            "workspaceName": self.workspace_name,
            "workspacePath": self.workspace_path,
            "gitBranch": self.branch,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ActivityEvent":
        return cls(
            kind=data.get("type", ""),
            timestamp=int(data.get("time", 0)),
            file_path=data.get("filePath"),
            workspace_name=data.get("workspaceName"),
            workspace_path=data.get("workspacePath"),
            branch=data.get("gitBranch"),
        )


@dataclass(slots=True)
class FileStat:
    file_name: str
    relative_path: str
    total_time: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "fileName": self.file_name,
            "totalTime": self.total_time,
            "relativePath": self.relative_path,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FileStat":
        return cls(
            file_name=data["fileName"],
            relative_path=data.get("relativePath", ""),
            total_time=int(data.get("totalTime", 0)),
        )


@dataclass(slots=True)
class BranchStat:
    """Time spent on one branch of a workspace, broken down by file."""

    branch_name: str
    total_time: int = 0
    files: list[FileStat] = field(default_factory=list)

    def find_file(self, file_name: str) -> Optional[FileStat]:
        for file_stat in self.files:
            if file_stat.file_name == file_name:
                return file_stat
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "branchName": self.branch_name,
            "totalTime": self.total_time,
            "files": [file_stat.to_dict() for file_stat in self.files],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BranchStat":
        return cls(
            branch_name=data["branchName"],
            total_time=int(data.get("totalTime", 0)),
            files=[FileStat.from_dict(item) for item in data.get("files", [])],
        )


@dataclass(slots=True)
class WorkspaceStat:
    """Lifetime time totals for one workspace.

    A workspace is identified by its (name, path) pair; two stats with the same
    pair describe the same workspace.
    """

    workspace_name: Optional[str]
    workspace_path: Optional[str]
    total_time: int = 0
    branches: list[BranchStat] = field(default_factory=list)

    @property
    def key(self) -> tuple[Optional[str], Optional[str]]:
        return self.workspace_name, self.workspace_path

    def find_branch(self, branch_name: str) -> Optional[BranchStat]:
        for branch in self.branches:
            if branch.branch_name == branch_name:
                return branch
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "workspaceName": self.workspace_name,
            "workspacePath": self.workspace_path,
            "totalTime": self.total_time,
            "branches": [branch.to_dict() for branch in self.branches],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "WorkspaceStat":
        return cls(
            workspace_name=data.get("workspaceName"),
            workspace_path=data.get("workspacePath"),
            total_time=int(data.get("totalTime", 0)),
            branches=[BranchStat.from_dict(item) for item in data.get("branches", [])],
        )
