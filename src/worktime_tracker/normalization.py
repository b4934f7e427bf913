"""Utilities to normalize paths and branch names before aggregation."""

from __future__ import annotations

import ntpath
import os
import posixpath
from typing import Optional


def file_basename(file_path: str) -> str:
    """Return the final path segment, accepting either separator style."""
    return ntpath.basename(file_path) if "\\" in file_path else posixpath.basename(file_path)


def relative_file_path(workspace_path: Optional[str], file_path: str) -> str:
    """Path of ``file_path`` relative to the workspace root.

    An unknown workspace root yields an empty string.
    """
    if not workspace_path:
        return ""
    try:
        return os.path.relpath(file_path, workspace_path)
    except ValueError:
        # Different drives on Windows.
        return file_path


def branch_key(branch: Optional[str], unknown_branch: str) -> str:
    return branch or unknown_branch
