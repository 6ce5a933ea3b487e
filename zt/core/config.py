"""Project/board configuration persisted per workspace.

The Config record is what every command reads before doing anything:
``env`` is present once setup has completed, ``board`` and ``project`` once
the user has chosen them.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, replace
from pathlib import Path

from .store import WorkspaceStore
from .structured import as_str_dict, as_str_map, get_str

__all__ = ["BOARDS", "CONFIG_KEY", "Config", "ConfigStore", "is_known_board"]

CONFIG_KEY = "config"

BOARDS: tuple[str, ...] = (
    "circuitdojo_feather_nrf9160_ns",
    "sparkfun_thing_plus_nrf9160_ns",
    "particle_xenon",
)


def is_known_board(board: str) -> bool:
    return board in BOARDS


@dataclass(frozen=True, slots=True)
class Config:
    """Workspace configuration.

    Attributes:
        board: Selected board identifier (one of BOARDS)
        project: Absolute path of the selected project directory
        env: Complete environment for west/pip/tar, written by setup
    """

    board: str | None = None
    project: Path | None = None
    env: Mapping[str, str] | None = None

    @property
    def is_provisioned(self) -> bool:
        return self.env is not None

    def with_board(self, board: str) -> Config:
        return replace(self, board=board)

    def with_project(self, project: Path) -> Config:
        return replace(self, project=project)

    def to_dict(self) -> dict[str, object]:
        out: dict[str, object] = {}
        if self.board is not None:
            out["board"] = self.board
        if self.project is not None:
            out["project"] = str(self.project)
        if self.env is not None:
            out["env"] = dict(self.env)
        return out

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> Config:
        """Create a Config from stored data, dropping malformed fields."""
        project = get_str(data, "project")
        return cls(
            board=get_str(data, "board"),
            project=Path(project) if project else None,
            env=as_str_map(data.get("env")),
        )


class ConfigStore:
    """Loads and saves the Config under the ``config`` key of the store."""

    def __init__(self, store: WorkspaceStore) -> None:
        self._store = store

    def load(self) -> Config:
        """Return the stored Config, or an empty one."""
        data = as_str_dict(self._store.get(CONFIG_KEY))
        if data is None:
            return Config()
        return Config.from_dict(data)

    def save(self, config: Config) -> None:
        self._store.update(CONFIG_KEY, config.to_dict())
