"""Tests for zt.toolchain.installer module."""

import io
import os
import sys
import zipfile
from pathlib import Path

import pytest

from zt.core.result import Err, Ok
from zt.output.console import MockConsole
from zt.platform.detection import Platform
from zt.platform.process import MockCommandRunner
from zt.toolchain.download import FileDownloader
from zt.toolchain.environment import Environment
from zt.toolchain.http import MockHttpClient
from zt.toolchain.installer import (
    ArtifactInstaller,
    destination_dir,
    executable_dir,
    materialization_for,
)
from zt.toolchain.manifest import ManifestDownload


def zip_bytes(files: dict[str, bytes]) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
        for name, content in files.items():
            zf.writestr(name, content)
    return buffer.getvalue()


def make_installer(
    tmp_path: Path,
) -> tuple[ArtifactInstaller, MockHttpClient, MockCommandRunner, MockConsole]:
    http = MockHttpClient()
    runner = MockCommandRunner()
    console = MockConsole()
    installer = ArtifactInstaller(
        cache=FileDownloader(http, tmp_path / "tools" / "downloads"),
        runner=runner,
        console=console,
    )
    return installer, http, runner, console


class TestMaterialization:
    @pytest.mark.parametrize(
        ("url", "expected"),
        [
            ("https://x/ninja-linux.zip", "unzip"),
            ("https://x/gcc.tar.bz2", "tar"),
            ("https://x/cmake.tar.gz", "tar"),
            ("https://x/cmake.tgz", "tar"),
            ("https://x/gcc.tbz2", "tar"),
            ("https://x/gcc.tbz", "tar"),
            ("https://x/qemu.txz", "tar"),
            ("https://x/tool", "as_downloaded"),
        ],
    )
    def test_materialization_for(self, url: str, expected: str) -> None:
        assert materialization_for(url) == expected

    def test_executable_dir(self, tmp_path: Path) -> None:
        entry = ManifestDownload("cmake", "https://x/c.tgz", "c.tgz", suffix="cmake-3.16.5/bin")
        assert destination_dir(entry, tmp_path) == tmp_path / "cmake"
        assert executable_dir(entry, tmp_path) == tmp_path / "cmake" / "cmake-3.16.5" / "bin"


class TestInstallTar:
    def test_extracts_with_system_tar(self, tmp_path: Path) -> None:
        installer, http, runner, _console = make_installer(tmp_path)
        tools = tmp_path / "tools"
        entry = ManifestDownload("gcc", "https://x/gcc.tar.gz", "gcc.tar.gz")
        http.set_download(entry.url, b"tarball")
        env = Environment({"PATH": "/usr/bin"}, Platform.LINUX)

        result = installer.install(entry, tools, env)

        assert isinstance(result, Ok)
        archive = tools / "downloads" / "gcc.tar.gz"
        assert runner.commands == [
            f"tar -xvf {runner.quote(archive)} -C {runner.quote(tools / 'gcc')}"
        ]
        assert (tools / "gcc").is_dir()
        assert env.path_entries == [str(tools / "gcc"), "/usr/bin"]

    def test_tar_runs_with_accumulated_env(self, tmp_path: Path) -> None:
        installer, http, runner, _console = make_installer(tmp_path)
        entry = ManifestDownload("gcc", "https://x/gcc.tar.gz", "gcc.tar.gz", suffix="bin")
        http.set_download(entry.url, b"tarball")
        env = Environment({"PATH": "/tools/env/bin:/usr/bin"}, Platform.LINUX)

        installer.install(entry, tmp_path / "tools", env)

        assert runner.calls[0].env["PATH"] == "/tools/env/bin:/usr/bin"
        assert env.path_entries[0] == str(tmp_path / "tools" / "gcc" / "bin")

    def test_tgz_is_extracted(self, tmp_path: Path) -> None:
        installer, http, runner, _console = make_installer(tmp_path)
        tools = tmp_path / "tools"
        entry = ManifestDownload("cmake", "https://x/cmake.tgz", "cmake.tgz", suffix="bin")
        http.set_download(entry.url, b"tarball")
        env = Environment({"PATH": "/usr/bin"}, Platform.LINUX)

        result = installer.install(entry, tools, env)

        assert isinstance(result, Ok)
        assert [c.split()[0] for c in runner.commands] == ["tar"]
        assert not (tools / "cmake" / "cmake.tgz").exists()
        assert env.path_entries[0] == str(tools / "cmake" / "bin")

    def test_extraction_failure(self, tmp_path: Path) -> None:
        installer, http, runner, _console = make_installer(tmp_path)
        entry = ManifestDownload("gcc", "https://x/gcc.tar.gz", "gcc.tar.gz")
        http.set_download(entry.url, b"tarball")
        runner.fail("tar", returncode=2, stderr="tar: Unexpected EOF")
        env = Environment({"PATH": "/usr/bin"}, Platform.LINUX)

        result = installer.install(entry, tmp_path / "tools", env)

        assert isinstance(result, Err)
        assert result.error.kind == "extraction_failed"
        assert env.path_entries == ["/usr/bin"]


class TestInstallZip:
    def test_unzipped_tree_is_copied(self, tmp_path: Path) -> None:
        installer, http, runner, _console = make_installer(tmp_path)
        tools = tmp_path / "tools"
        entry = ManifestDownload("ninja", "https://x/ninja-linux.zip", "ninja-linux.zip")
        http.set_download(entry.url, zip_bytes({"ninja": b"bin"}))
        env = Environment({"PATH": "/usr/bin"}, Platform.LINUX)

        assert isinstance(installer.install(entry, tools, env), Ok)
        assert (tools / "ninja" / "ninja").read_bytes() == b"bin"
        assert runner.commands == []
        assert env.path_entries[0] == str(tools / "ninja")

    def test_warm_cache_skips_download(self, tmp_path: Path) -> None:
        """A second install of the same artifact downloads nothing."""
        installer, http, _runner, console = make_installer(tmp_path)
        entry = ManifestDownload("ninja", "https://x/ninja-linux.zip", "ninja-linux.zip")
        http.set_download(entry.url, zip_bytes({"ninja": b"bin"}))

        for _ in range(2):
            env = Environment({"PATH": "/usr/bin"}, Platform.LINUX)
            assert isinstance(installer.install(entry, tmp_path / "tools", env), Ok)

        assert http.calls == [entry.url]
        assert console.find("Using cached ninja-linux.zip")


class TestInstallAsDownloaded:
    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX permission bits")
    def test_copied_and_executable(self, tmp_path: Path) -> None:
        installer, http, _runner, _console = make_installer(tmp_path)
        tools = tmp_path / "tools"
        entry = ManifestDownload("helper", "https://x/helper", "helper")
        http.set_download(entry.url, b"#!/bin/sh\n")
        env = Environment({"PATH": "/usr/bin"}, Platform.LINUX)

        assert isinstance(installer.install(entry, tools, env), Ok)
        target = tools / "helper" / "helper"
        assert target.read_bytes() == b"#!/bin/sh\n"
        assert os.access(target, os.X_OK)


class TestDownloadFailure:
    def test_missing_url(self, tmp_path: Path) -> None:
        installer, _http, runner, _console = make_installer(tmp_path)
        entry = ManifestDownload("gcc", "https://x/gcc.tar.gz", "gcc.tar.gz")
        env = Environment({"PATH": "/usr/bin"}, Platform.LINUX)

        result = installer.install(entry, tmp_path / "tools", env)

        assert isinstance(result, Err)
        assert result.error.kind == "download_failed"
        assert result.error.name == "gcc"
        assert runner.commands == []
