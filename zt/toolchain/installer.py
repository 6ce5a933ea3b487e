"""Artifact installation: cached download, then materialization.

For one ManifestDownload the installer:
1. looks the file up in the download cache, downloading it on a miss
   (zip URLs are unzipped by the cache);
2. materializes it into ``<tools>/<name>``: an unzipped tree is copied over
   the destination, a tar archive is extracted with the system ``tar``, and
   anything else is copied in as downloaded and made executable;
3. prepends ``<tools>/<name>[/<suffix>]`` to PATH.
"""

from __future__ import annotations

import shutil
import stat
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Literal

from zt.core.result import Err, Ok, Result
from zt.output.commands import run_echoed
from zt.output.console import Style

from .environment import Environment
from .manifest import ManifestDownload

if TYPE_CHECKING:
    from zt.output.console import ConsoleProtocol
    from zt.platform.process import CommandRunner

    from .download import DownloadCache

__all__ = [
    "ArtifactInstaller",
    "InstallError",
    "Materialization",
    "destination_dir",
    "executable_dir",
    "materialization_for",
]

Materialization = Literal["unzip", "tar", "as_downloaded"]

_TAR_MARKERS = (".tar", ".tgz", ".tbz2", ".tbz", ".txz")


@dataclass(frozen=True, slots=True)
class InstallError:
    """Installation error details.

    Attributes:
        kind: Which stage failed
        name: Artifact name from the manifest
        message: Human-readable error message
    """

    kind: Literal["download_failed", "extraction_failed", "io_failed"]
    name: str
    message: str

    def __str__(self) -> str:
        return f"{self.name}: {self.message}"


def materialization_for(url: str) -> Materialization:
    """How a downloaded artifact is placed into the tools directory."""
    if ".zip" in url:
        return "unzip"
    if any(marker in url for marker in _TAR_MARKERS):
        return "tar"
    return "as_downloaded"


def destination_dir(entry: ManifestDownload, tools_dir: Path) -> Path:
    return tools_dir / entry.name


def executable_dir(entry: ManifestDownload, tools_dir: Path) -> Path:
    """Directory prepended to PATH for an artifact."""
    dest = destination_dir(entry, tools_dir)
    return dest / entry.suffix if entry.suffix else dest


class ArtifactInstaller:
    """Installs manifest downloads into the tools directory."""

    def __init__(
        self,
        *,
        cache: DownloadCache,
        runner: CommandRunner,
        console: ConsoleProtocol,
    ) -> None:
        self._cache = cache
        self._runner = runner
        self._console = console

    def fetch(self, entry: ManifestDownload) -> Result[Path, InstallError]:
        """Return the cached copy of an artifact, downloading it on a miss."""
        should_unzip = materialization_for(entry.url) == "unzip"

        cached = self._cache.get_item(entry.filename, md5=entry.md5)
        if cached is not None:
            self._console.print(f"Using cached {entry.filename}", Style.DIM)
            return Ok(cached)

        self._console.print(f"Downloading {entry.url}", Style.DIM)
        downloaded = self._cache.download_file(
            entry.url,
            entry.filename,
            should_unzip=should_unzip,
            md5=entry.md5,
        )
        if isinstance(downloaded, Err):
            return Err(InstallError("download_failed", entry.name, str(downloaded.error)))
        return Ok(downloaded.value)

    def install(
        self,
        entry: ManifestDownload,
        tools_dir: Path,
        env: Environment,
    ) -> Result[Environment, InstallError]:
        """Fetch, materialize and put an artifact on PATH.

        Args:
            entry: The manifest download to install
            tools_dir: Root of the tools directory
            env: Environment being accumulated; tar runs with it and it is
                updated in place

        Returns:
            Ok(env) with the artifact's executable directory prepended, or
            Err(InstallError); the first error aborts the whole setup run.
        """
        fetched = self.fetch(entry)
        if isinstance(fetched, Err):
            return fetched
        local = fetched.value
        dest = destination_dir(entry, tools_dir)

        match materialization_for(entry.url):
            case "unzip":
                result = self._copy_tree(entry, local, dest)
            case "tar":
                result = self._extract_tar(entry, local, dest, env)
            case "as_downloaded":
                result = self._copy_file(entry, local, dest)
        if isinstance(result, Err):
            return result

        env.prepend_path(executable_dir(entry, tools_dir))
        return Ok(env)

    def _copy_tree(
        self, entry: ManifestDownload, source: Path, dest: Path
    ) -> Result[None, InstallError]:
        try:
            shutil.copytree(source, dest, dirs_exist_ok=True)
        except (OSError, shutil.Error) as e:
            return Err(InstallError("io_failed", entry.name, f"copy to {dest} failed: {e}"))
        return Ok(None)

    def _extract_tar(
        self, entry: ManifestDownload, archive: Path, dest: Path, env: Environment
    ) -> Result[None, InstallError]:
        try:
            dest.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            return Err(InstallError("io_failed", entry.name, f"cannot create {dest}: {e}"))

        q = self._runner.quote
        command = f"tar -xvf {q(archive)} -C {q(dest)}"
        result = run_echoed(self._runner, self._console, command, env.as_dict())
        if isinstance(result, Err):
            return Err(InstallError("extraction_failed", entry.name, str(result.error)))
        return Ok(None)

    def _copy_file(
        self, entry: ManifestDownload, source: Path, dest: Path
    ) -> Result[None, InstallError]:
        target = dest / source.name
        try:
            dest.mkdir(parents=True, exist_ok=True)
            shutil.copy2(source, target)
            mode = target.stat().st_mode
            target.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        except OSError as e:
            return Err(InstallError("io_failed", entry.name, f"copy to {dest} failed: {e}"))
        return Ok(None)
