from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True, slots=True)
class ConfigInvalid:
    """A command ran before setup or selection was done; nothing was changed."""

    message: str
    hint: str | None = None


@dataclass(frozen=True, slots=True)
class CommandFailed:
    task: str
    returncode: int
    detail: str = ""


@dataclass(frozen=True, slots=True)
class SetupRunning:
    lock_path: Path


@dataclass(frozen=True, slots=True)
class CleanFailed:
    path: Path
    reason: str


ServiceError = ConfigInvalid | CommandFailed | SetupRunning | CleanFailed
