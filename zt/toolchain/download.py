"""Download cache contract and its default file-based adapter.

The installer only depends on DownloadCache: look an item up by file name,
or download it (optionally unzipping it) into the cache. FileDownloader is
the adapter zt ships, storing everything under ``<tools>/downloads``:

    <filename>            downloaded file (kept as-is)
    <filename>.unzipped/  unpacked tree of a zip download (archive removed)
    <filename>.md5        MD5 of the archive an unpacked tree came from

A declared MD5 is checked when an item is downloaded and again whenever a
cached copy is served; a mismatching cached copy is treated as absent.
"""

from __future__ import annotations

import shutil
import stat
import zipfile
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING, Literal, Protocol

from zt.core.result import Err, Ok, Result
from zt.platform.files import md5_file, remove_tree

if TYPE_CHECKING:
    from collections.abc import Callable

    from .http import HttpClient

__all__ = ["DownloadCache", "DownloadError", "FileDownloader"]

UNZIPPED_SUFFIX = ".unzipped"
MD5_SUFFIX = ".md5"


@dataclass(frozen=True, slots=True)
class DownloadError:
    """Failed download.

    Attributes:
        url: The URL being fetched
        kind: network, checksum (MD5 mismatch) or unzip
        message: Human-readable error message
    """

    url: str
    kind: Literal["network", "checksum", "unzip"]
    message: str

    def __str__(self) -> str:
        return f"{self.message} ({self.url})"


class DownloadCache(Protocol):
    def get_item(self, filename: str, *, md5: str | None = None) -> Path | None:
        """Return the cached file (or unpacked directory) for filename, if valid."""
        ...

    def download_file(
        self,
        url: str,
        filename: str,
        *,
        should_unzip: bool,
        md5: str | None = None,
        progress: Callable[[int, int], None] | None = None,
    ) -> Result[Path, DownloadError]:
        """Download url into the cache under filename.

        Returns the downloaded file, or the unpacked directory when
        should_unzip is set.
        """
        ...


def _md5_matches(actual: str, expected: str | None) -> bool:
    return expected is None or actual.lower() == expected.lower()


class FileDownloader:
    """DownloadCache backed by a directory and an HttpClient."""

    def __init__(self, http: HttpClient, cache_dir: Path) -> None:
        self._http = http
        self._cache_dir = cache_dir

    @property
    def cache_dir(self) -> Path:
        return self._cache_dir

    def _file_path(self, filename: str) -> Path:
        return self._cache_dir / filename

    def _unzipped_path(self, filename: str) -> Path:
        return self._cache_dir / f"{filename}{UNZIPPED_SUFFIX}"

    def _md5_path(self, filename: str) -> Path:
        return self._cache_dir / f"{filename}{MD5_SUFFIX}"

    def get_item(self, filename: str, *, md5: str | None = None) -> Path | None:
        unzipped = self._unzipped_path(filename)
        if unzipped.is_dir():
            if md5 is None:
                return unzipped
            sidecar = self._md5_path(filename)
            recorded = sidecar.read_text(encoding="utf-8").strip() if sidecar.is_file() else ""
            return unzipped if recorded and _md5_matches(recorded, md5) else None

        path = self._file_path(filename)
        if path.is_file():
            return path if _md5_matches(md5_file(path), md5) else None
        return None

    def download_file(
        self,
        url: str,
        filename: str,
        *,
        should_unzip: bool,
        md5: str | None = None,
        progress: Callable[[int, int], None] | None = None,
    ) -> Result[Path, DownloadError]:
        self._cache_dir.mkdir(parents=True, exist_ok=True)
        dest = self._file_path(filename)

        result = self._http.download(url, dest, progress=progress)
        if isinstance(result, Err):
            dest.unlink(missing_ok=True)
            return Err(DownloadError(url=url, kind="network", message=str(result.error)))

        actual = md5_file(dest)
        if not _md5_matches(actual, md5):
            dest.unlink(missing_ok=True)
            return Err(
                DownloadError(
                    url=url,
                    kind="checksum",
                    message=f"MD5 mismatch for {filename}: expected {md5}, got {actual}",
                )
            )

        if not should_unzip:
            return Ok(dest)

        unzipped = self._unzipped_path(filename)
        unpacked = _unzip(dest, unzipped)
        if isinstance(unpacked, Err):
            remove_tree(unzipped)
            return Err(DownloadError(url=url, kind="unzip", message=unpacked.error))

        self._md5_path(filename).write_text(actual, encoding="utf-8")
        dest.unlink(missing_ok=True)
        return Ok(unzipped)


def _safe_relative_path(member_name: str) -> Path | None:
    """Return a sanitized relative extraction path, or None if unsafe."""
    normalized = member_name.replace("\\", "/")
    if normalized.startswith("/"):
        return None

    parts = PurePosixPath(normalized).parts
    if not parts:
        return None
    if any(part in {"", ".", ".."} for part in parts):
        return None
    if parts[0].endswith(":"):
        return None
    return Path(*parts)


def _unzip(archive: Path, dest: Path) -> Result[Path, str]:
    """Extract a zip archive into dest, replacing any previous content."""
    try:
        remove_tree(dest)
        dest.mkdir(parents=True, exist_ok=True)
        root = dest.resolve()

        with zipfile.ZipFile(archive, "r") as zf:
            for info in zf.infolist():
                if info.is_dir():
                    continue

                rel_path = _safe_relative_path(info.filename)
                if rel_path is None:
                    continue

                # Skip symlinks in zip archives
                file_type_bits = (info.external_attr >> 16) & 0o170000
                if file_type_bits == stat.S_IFLNK:
                    continue

                full_path = dest / rel_path
                if not full_path.resolve().is_relative_to(root):
                    continue

                full_path.parent.mkdir(parents=True, exist_ok=True)
                with zf.open(info) as src, open(full_path, "wb") as dst:
                    shutil.copyfileobj(src, dst)

                unix_attrs = (info.external_attr >> 16) & 0o777
                if unix_attrs:
                    full_path.chmod(unix_attrs)

        return Ok(dest)

    except zipfile.BadZipFile as e:
        return Err(f"Invalid zip file: {e}")
    except OSError as e:
        return Err(f"IO error: {e}")
