"""Environment accumulated while provisioning.

Setup starts from a snapshot of the host environment and grows it step by
step: the virtualenv's executables directory, every installed artifact's
executable location and the toolchain variables. The result is persisted as
``Config.env`` and passed verbatim to every later command.
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path

from zt.platform.detection import Platform

__all__ = ["Environment"]


class Environment:
    """Mutable environment mapping with PATH manipulation.

    Each directory appears at most once in PATH: prepending an existing entry
    moves it to the front.
    """

    def __init__(self, values: Mapping[str, str], platform: Platform) -> None:
        self._values = dict(values)
        self._platform = platform

    @property
    def path_key(self) -> str:
        """Name of the PATH variable (``Path`` is common on Windows)."""
        if self._platform.is_windows:
            for key in self._values:
                if key.upper() == "PATH":
                    return key
        return "PATH"

    @property
    def path_entries(self) -> list[str]:
        value = self._values.get(self.path_key, "")
        return [entry for entry in value.split(self._platform.path_separator) if entry]

    def prepend_path(self, directory: Path | str) -> None:
        entry = str(directory)
        rest = [e for e in self.path_entries if not self._same_entry(e, entry)]
        self._values[self.path_key] = self._platform.path_separator.join([entry, *rest])

    def _same_entry(self, a: str, b: str) -> bool:
        if self._platform.is_windows:
            return a.rstrip("\\/").lower() == b.rstrip("\\/").lower()
        return a.rstrip("/") == b.rstrip("/")

    def set(self, key: str, value: str) -> None:
        self._values[key] = value

    def get(self, key: str) -> str | None:
        return self._values.get(key)

    def as_dict(self) -> dict[str, str]:
        return dict(self._values)

    def __repr__(self) -> str:
        return f"Environment(PATH={self.path_entries[:3]!r}..., {len(self._values)} vars)"
