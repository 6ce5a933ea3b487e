"""Persisted workspace key-value store.

A single JSON object in ``<workspace>/.zt/state.json``. Values are plain
JSON data; typed access lives with the callers (see core/config.py).
"""

from __future__ import annotations

import json
from pathlib import Path

from zt.platform.files import atomic_write_text

from .structured import StrDict, as_str_dict

__all__ = ["WorkspaceStore"]


class WorkspaceStore:
    """Key-value store backed by a JSON file, written atomically."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def _load(self) -> StrDict:
        if not self.path.exists():
            return {}
        try:
            data = as_str_dict(json.loads(self.path.read_text(encoding="utf-8")))
        except (json.JSONDecodeError, UnicodeDecodeError):
            # Corrupted store, start fresh
            return {}
        return data if data is not None else {}

    def get(self, key: str) -> object | None:
        """Return the value stored under key, or None."""
        return self._load().get(key)

    def update(self, key: str, value: object) -> None:
        """Store value under key (None removes the key)."""
        data = self._load()
        if value is None:
            data.pop(key, None)
        else:
            data[key] = value
        atomic_write_text(self.path, json.dumps(data, indent=2, sort_keys=True) + "\n")
