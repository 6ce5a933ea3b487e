"""Workspace detection and paths.

The workspace is the directory a user runs zt in: a west workspace (it holds
a ``.west`` directory once ``west init`` has run) or any directory carrying a
``zt.toml``. Unlike the tool directory, which is shared by every workspace of
the user, everything under the workspace root belongs to one checkout.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from .result import Err, Ok, Result

__all__ = [
    "WORKSPACE_ENV_VAR",
    "Workspace",
    "WorkspaceError",
    "WorkspaceSource",
    "detect_workspace",
    "find_workspace_upward",
    "is_workspace_root",
]

WORKSPACE_ENV_VAR = "ZT_WORKSPACE"

WorkspaceSource = Literal["env", "marker", "cwd"]


@dataclass(frozen=True)
class WorkspaceError:
    """Error when workspace cannot be detected."""

    message: str
    searched_from: Path | None = None


@dataclass(frozen=True, slots=True)
class Workspace:
    """A detected zt workspace.

    The workspace root contains:
    - zt.toml (optional settings)
    - .west/ (after west init)
    - .zt/state.json (persisted board/project/environment)
    - build/ (west build output)
    """

    root: Path
    source: WorkspaceSource = "cwd"

    @property
    def settings_path(self) -> Path:
        """Path to zt.toml."""
        return self.root / "zt.toml"

    @property
    def state_dir(self) -> Path:
        """Path to workspace state directory (.zt/)."""
        return self.root / ".zt"

    @property
    def store_path(self) -> Path:
        """Path to the workspace key-value store (.zt/state.json)."""
        return self.state_dir / "state.json"

    @property
    def build_dir(self) -> Path:
        """Path to west's build output directory."""
        return self.root / "build"

    @property
    def west_dir(self) -> Path:
        return self.root / ".west"

    def has_west(self) -> bool:
        """True once ``west init`` has run in this workspace."""
        return self.west_dir.is_dir()

    def __str__(self) -> str:
        return str(self.root)


def is_workspace_root(path: Path) -> bool:
    """A directory holding ``.west/`` or ``zt.toml``."""
    return (path / ".west").is_dir() or (path / "zt.toml").is_file()


def find_workspace_upward(start: Path) -> Path | None:
    """Search upward from start directory for a workspace root."""
    for parent in (start, *start.parents):
        if is_workspace_root(parent):
            return parent
    return None


def detect_workspace(
    *,
    start_dir: Path | None = None,
    env_var: str = WORKSPACE_ENV_VAR,
) -> Result[Workspace, WorkspaceError]:
    """Detect the workspace root directory.

    Detection order:
    1. ZT_WORKSPACE environment variable (must name a directory)
    2. Nearest ancestor of start_dir (or cwd) holding .west/ or zt.toml
    3. start_dir (or cwd) itself
    """
    env_value = os.environ.get(env_var)
    if env_value:
        env_path = Path(env_value).expanduser().resolve()
        if env_path.is_dir():
            return Ok(Workspace(root=env_path, source="env"))
        return Err(
            WorkspaceError(
                message=f"${env_var} is set to '{env_value}' but it is not a directory",
            )
        )

    search_start = (start_dir or Path.cwd()).resolve()
    found = find_workspace_upward(search_start)
    if found:
        return Ok(Workspace(root=found, source="marker"))
    return Ok(Workspace(root=search_start, source="cwd"))
