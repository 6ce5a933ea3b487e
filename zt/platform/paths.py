"""User-level paths.

Workspace-relative paths (store, build output) live in core/workspace.py.
"""

from __future__ import annotations

import os
from pathlib import Path

from .detection import Platform

__all__ = ["home", "default_tools_dir", "expand_user_path"]

TOOLS_DIR_NAME = ".zephyrtools"


def home(platform: Platform) -> Path:
    """Get the user's home directory.

    Uses USERPROFILE on Windows and HOME elsewhere, so CI and containers can
    redirect it; falls back to Path.home().
    """
    var = "USERPROFILE" if platform.is_windows else "HOME"
    value = os.environ.get(var)
    if value:
        return Path(value)
    return Path.home()


def default_tools_dir(platform: Platform) -> Path:
    """Directory holding the provisioned toolchain (``~/.zephyrtools``)."""
    return home(platform) / TOOLS_DIR_NAME


def expand_user_path(value: str, platform: Platform) -> Path:
    """Expand ``~`` and environment variables in a user-provided path."""
    expanded = os.path.expandvars(value)
    if expanded == "~" or expanded.startswith(("~/", "~\\")):
        return home(platform) / expanded[2:] if len(expanded) > 1 else home(platform)
    return Path(expanded)
