"""Toolchain manifest: which artifacts to install on which host.

The manifest is JSON keyed by platform (``linux``, ``darwin``, ``win32``);
each platform lists one entry per supported architecture, and each entry
lists its downloads in install order:

    {
      "linux": [
        {"arch": "x64",
         "downloads": [{"name": "gcc", "url": "https://x/gcc.tar.gz",
                        "md5": "", "suffix": "bin", "filename": "gcc.tar.gz"}]}
      ]
    }

Order matters: a later download may rely on an earlier one already being on
PATH.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass
from importlib import resources
from pathlib import Path
from typing import Literal

from zt.core.result import Err, Ok, Result
from zt.core.structured import as_obj_list, as_str_dict, get_list, get_str

__all__ = [
    "Manifest",
    "ManifestDownload",
    "ManifestEntry",
    "ManifestError",
    "ResolutionError",
    "load_bundled_manifest",
    "load_manifest",
    "parse_manifest",
    "resolve",
]


@dataclass(frozen=True, slots=True)
class ManifestDownload:
    """One artifact to fetch and materialize under ``<tools>/<name>``.

    Attributes:
        name: Destination directory name inside the tools directory
        url: Download URL (``.zip`` is unzipped, ``.tar*`` extracted with tar)
        filename: Cache key for the download
        md5: Expected MD5 hex digest (None when not declared)
        suffix: Sub-path holding the executables (e.g. ``bin``)
    """

    name: str
    url: str
    filename: str
    md5: str | None = None
    suffix: str | None = None


@dataclass(frozen=True, slots=True)
class ManifestEntry:
    arch: str
    downloads: tuple[ManifestDownload, ...]


@dataclass(frozen=True, slots=True)
class Manifest:
    platforms: Mapping[str, tuple[ManifestEntry, ...]]


@dataclass(frozen=True, slots=True)
class ManifestError:
    """Error when a manifest cannot be read or has the wrong shape."""

    message: str
    path: Path | None = None


@dataclass(frozen=True, slots=True)
class ResolutionError:
    kind: Literal["unsupported_platform", "unsupported_architecture"]
    platform: str
    arch: str

    @property
    def message(self) -> str:
        if self.kind == "unsupported_platform":
            return f"Unsupported platform: {self.platform}"
        return f"Unsupported architecture for {self.platform}: {self.arch}"


def resolve(
    manifest: Manifest, platform: str, arch: str
) -> Result[tuple[ManifestDownload, ...], ResolutionError]:
    """Return the downloads declared for platform/arch, in manifest order."""
    entries = manifest.platforms.get(platform)
    if entries is None:
        return Err(ResolutionError("unsupported_platform", platform, arch))

    for entry in entries:
        if entry.arch == arch:
            return Ok(entry.downloads)
    return Err(ResolutionError("unsupported_architecture", platform, arch))


def _parse_download(obj: object, where: str) -> Result[ManifestDownload, str]:
    data = as_str_dict(obj)
    if data is None:
        return Err(f"{where}: download must be an object")

    name = get_str(data, "name")
    url = get_str(data, "url")
    filename = get_str(data, "filename")
    if name is None or url is None or filename is None:
        return Err(f"{where}: download needs name, url and filename")

    return Ok(
        ManifestDownload(
            name=name,
            url=url,
            filename=filename,
            md5=get_str(data, "md5"),
            suffix=get_str(data, "suffix"),
        )
    )


def parse_manifest(data: object) -> Result[Manifest, str]:
    """Build a Manifest from parsed JSON, checking only its structure."""
    root = as_str_dict(data)
    if root is None:
        return Err("manifest root must be an object")

    platforms: dict[str, tuple[ManifestEntry, ...]] = {}
    for platform, raw_entries in root.items():
        entries_list = as_obj_list(raw_entries)
        if not entries_list:
            return Err(f"{platform}: expected a non-empty list of entries")

        entries: list[ManifestEntry] = []
        for raw_entry in entries_list:
            entry = as_str_dict(raw_entry)
            arch = get_str(entry, "arch") if entry is not None else None
            if entry is None or arch is None:
                return Err(f"{platform}: every entry needs an arch")

            downloads: list[ManifestDownload] = []
            for raw in get_list(entry, "downloads") or []:
                parsed = _parse_download(raw, f"{platform}/{arch}")
                if isinstance(parsed, Err):
                    return parsed
                downloads.append(parsed.value)
            entries.append(ManifestEntry(arch=arch, downloads=tuple(downloads)))

        platforms[platform] = tuple(entries)

    return Ok(Manifest(platforms=platforms))


def _load_text(text: str, path: Path | None) -> Result[Manifest, ManifestError]:
    try:
        data: object = json.loads(text)
    except json.JSONDecodeError as e:
        return Err(ManifestError(f"Invalid JSON: {e}", path=path))

    parsed = parse_manifest(data)
    if isinstance(parsed, Err):
        return Err(ManifestError(f"Invalid manifest: {parsed.error}", path=path))
    return Ok(parsed.value)


def load_manifest(path: Path) -> Result[Manifest, ManifestError]:
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return Err(ManifestError(f"Manifest not found: {path}", path=path))
    except (OSError, UnicodeDecodeError) as e:
        return Err(ManifestError(f"Error reading manifest: {e}", path=path))
    return _load_text(text, path)


def load_bundled_manifest() -> Result[Manifest, ManifestError]:
    """Load the manifest shipped in ``zt/data/manifest.json``."""
    text = resources.files("zt.data").joinpath("manifest.json").read_text(encoding="utf-8")
    return _load_text(text, None)
