"""Setup progress tracking - what a previous setup run got through.

State is stored in ``<tools>/setup-state.json``. It lets a re-run after a
failure skip artifacts that were already materialized from the same URL and
checksum, and lets ``zt status`` report an interrupted setup.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field, replace
from datetime import datetime
from pathlib import Path

from zt.core.structured import as_str_dict, get_list, get_str
from zt.platform.files import atomic_write_text

from .manifest import ManifestDownload

__all__ = [
    "InstalledArtifact",
    "SetupProgress",
    "load_progress",
    "progress_path",
    "save_progress",
]

PROGRESS_FILE = "setup-state.json"


@dataclass(frozen=True, slots=True)
class InstalledArtifact:
    """An artifact materialized by a setup run.

    Attributes:
        name: Manifest name (destination directory under the tools dir)
        url: URL it was downloaded from
        md5: Declared MD5, or empty when none was declared
        installed_at: ISO timestamp of installation
    """

    name: str
    url: str
    md5: str
    installed_at: str

    @classmethod
    def now(cls, entry: ManifestDownload) -> InstalledArtifact:
        return cls(
            name=entry.name,
            url=entry.url,
            md5=entry.md5 or "",
            installed_at=datetime.now().isoformat(),
        )

    def matches(self, entry: ManifestDownload) -> bool:
        return self.name == entry.name and self.url == entry.url and self.md5 == (entry.md5 or "")


def _empty_artifacts() -> tuple[InstalledArtifact, ...]:
    return ()


@dataclass(frozen=True, slots=True)
class SetupProgress:
    """Last completed step of the most recent setup run."""

    last_step: str | None = None
    completed: bool = False
    artifacts: tuple[InstalledArtifact, ...] = field(default_factory=_empty_artifacts)

    def find(self, entry: ManifestDownload) -> InstalledArtifact | None:
        for artifact in self.artifacts:
            if artifact.matches(entry):
                return artifact
        return None

    def with_step(self, step: str, *, completed: bool = False) -> SetupProgress:
        return replace(self, last_step=step, completed=completed)

    def with_artifact(self, entry: ManifestDownload) -> SetupProgress:
        kept = tuple(a for a in self.artifacts if a.name != entry.name)
        return replace(self, artifacts=(*kept, InstalledArtifact.now(entry)))


def progress_path(tools_dir: Path) -> Path:
    return tools_dir / PROGRESS_FILE


def load_progress(tools_dir: Path) -> SetupProgress:
    """Load setup progress, or an empty record if absent or unreadable."""
    path = progress_path(tools_dir)
    if not path.exists():
        return SetupProgress()

    try:
        data = as_str_dict(json.loads(path.read_text(encoding="utf-8")))
    except (OSError, json.JSONDecodeError, UnicodeDecodeError):
        # Corrupted or unreadable state file, start fresh
        return SetupProgress()
    if data is None:
        return SetupProgress()

    artifacts: list[InstalledArtifact] = []
    for raw in get_list(data, "artifacts") or []:
        item = as_str_dict(raw)
        if item is None:
            continue
        name = get_str(item, "name")
        url = get_str(item, "url")
        if name is None or url is None:
            continue
        artifacts.append(
            InstalledArtifact(
                name=name,
                url=url,
                md5=get_str(item, "md5") or "",
                installed_at=get_str(item, "installed_at") or "",
            )
        )

    return SetupProgress(
        last_step=get_str(data, "last_step"),
        completed=data.get("completed") is True,
        artifacts=tuple(artifacts),
    )


def save_progress(tools_dir: Path, progress: SetupProgress) -> None:
    data = {
        "last_step": progress.last_step,
        "completed": progress.completed,
        "artifacts": [asdict(a) for a in progress.artifacts],
    }
    atomic_write_text(progress_path(tools_dir), json.dumps(data, indent=2) + "\n")

