"""Zephyr project discovery.

A project is any directory holding a ``CMakeLists.txt`` that declares a
``project(``. The search walks the tree with an explicit LIFO work list, so
deep trees never hit the recursion limit, and prunes ``build`` and ``.git``
directories.
"""

from __future__ import annotations

import os
from pathlib import Path

__all__ = ["BUILD_FILE", "PROJECT_MARKER", "PRUNED_DIRS", "discover"]

BUILD_FILE = "CMakeLists.txt"
PROJECT_MARKER = "project("
PRUNED_DIRS = frozenset({"build", ".git"})


def _declares_project(path: Path) -> bool:
    try:
        return PROJECT_MARKER in path.read_text(encoding="utf-8", errors="replace")
    except OSError:
        return False


def _entries(directory: Path, prefix: Path) -> list[tuple[Path, bool]]:
    """(relative path, is_dir) for each entry of directory, prefixed."""
    try:
        with os.scandir(directory) as it:
            return [(prefix / entry.name, entry.is_dir(follow_symlinks=False)) for entry in it]
    except OSError:
        return []


def discover(root: Path) -> list[Path]:
    """Return project directories under root, in traversal-completion order."""
    projects: list[Path] = []
    work = _entries(root, Path())

    while work:
        rel, is_dir = work.pop()
        path = root / rel

        if is_dir:
            if rel.name in PRUNED_DIRS:
                continue
            work.extend(_entries(path, rel))
        elif rel.name == BUILD_FILE and path.is_file() and _declares_project(path):
            projects.append(path.parent)

    return projects
