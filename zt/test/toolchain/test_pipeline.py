"""Tests for zt.toolchain.pipeline module."""

import json
from pathlib import Path

from zt.core.config import Config, ConfigStore
from zt.core.result import Err, Ok
from zt.core.settings import DEFAULT_TOOLCHAIN_PATH, Settings
from zt.core.store import WorkspaceStore
from zt.output.console import MockConsole
from zt.platform.detection import Arch, Platform, PlatformInfo
from zt.platform.process import MockCommandRunner
from zt.toolchain.download import FileDownloader
from zt.toolchain.http import MockHttpClient
from zt.toolchain.installer import ArtifactInstaller
from zt.toolchain.pipeline import (
    LOCK_FILE,
    CancelToken,
    ProvisioningLock,
    ProvisioningPipeline,
    SetupStep,
    setup_in_progress,
)
from zt.toolchain.progress import load_progress, progress_path

GCC_URL = "https://example.com/gcc.tar.gz"
LINUX_X64 = PlatformInfo(Platform.LINUX, Arch.X64)


def ready_runner() -> MockCommandRunner:
    runner = MockCommandRunner()
    runner.reply("git --version", stdout="git version 2.43.0\n")
    runner.reply("python3 --version", stdout="Python 3.12.3\n")
    return runner


class Harness:
    """A pipeline wired to mocks, with a linux/x64 manifest (one gcc artifact by default)."""

    def __init__(
        self,
        tmp_path: Path,
        *,
        runner: MockCommandRunner | None = None,
        platform: PlatformInfo = LINUX_X64,
        downloads: list[dict[str, str]] | None = None,
    ) -> None:
        if downloads is None:
            downloads = [{"name": "gcc", "url": GCC_URL, "md5": "", "filename": "gcc.tar.gz"}]
        self.tools = tmp_path / "tools"
        self.manifest = tmp_path / "manifest.json"
        self.manifest.write_text(
            json.dumps(
                {
                    "linux": [
                        {
                            "arch": "x64",
                            "downloads": downloads,
                        }
                    ]
                }
            ),
            encoding="utf-8",
        )
        self.http = MockHttpClient()
        for download in downloads:
            self.http.set_download(download["url"], b"tarball")
        self.runner = runner or ready_runner()
        self.console = MockConsole()
        self.store = ConfigStore(WorkspaceStore(tmp_path / "ws" / ".zt" / "state.json"))
        self.platform = platform

    def pipeline(self) -> ProvisioningPipeline:
        installer = ArtifactInstaller(
            cache=FileDownloader(self.http, self.tools / "downloads"),
            runner=self.runner,
            console=self.console,
        )
        return ProvisioningPipeline(
            platform=self.platform,
            tools_dir=self.tools,
            settings=Settings(),
            console=self.console,
            runner=self.runner,
            installer=installer,
            config_store=self.store,
            manifest_path=self.manifest,
            host_env={"PATH": "/usr/bin:/bin", "HOME": "/home/dev"},
        )


class TestSuccessfulSetup:
    def test_commands_in_order(self, tmp_path: Path) -> None:
        h = Harness(tmp_path)
        result = h.pipeline().run()

        assert isinstance(result, Ok)
        q = h.runner.quote
        assert h.runner.commands == [
            "git --version",
            "python3 --version",
            "python3 -m ensurepip",
            "python3 -m pip install --user virtualenv",
            f"python3 -m virtualenv {q(h.tools / 'env')}",
            f"tar -xvf {q(h.tools / 'downloads' / 'gcc.tar.gz')} -C {q(h.tools / 'gcc')}",
            "python3 -m pip install west",
        ]

    def test_exactly_one_extraction_and_path_order(self, tmp_path: Path) -> None:
        h = Harness(tmp_path)
        config = h.pipeline().run().unwrap()

        assert len([c for c in h.runner.commands if c.startswith("tar ")]) == 1
        assert config.env is not None
        path = config.env["PATH"].split(":")
        assert path[:2] == [str(h.tools / "gcc"), str(h.tools / "env" / "bin")]
        assert path[2:] == ["/usr/bin", "/bin"]

    def test_later_commands_see_virtualenv(self, tmp_path: Path) -> None:
        h = Harness(tmp_path)
        h.pipeline().run()

        west_install = h.runner.calls[-1]
        assert west_install.command == "python3 -m pip install west"
        assert west_install.env["PATH"].startswith(str(h.tools / "gcc") + ":")
        assert h.runner.calls[0].env["PATH"] == "/usr/bin:/bin"

    def test_config_persisted(self, tmp_path: Path) -> None:
        h = Harness(tmp_path)
        config = h.pipeline().run().unwrap()

        stored = h.store.load()
        assert stored == config
        assert stored.board is None
        assert stored.project is None
        assert stored.env is not None
        assert stored.env["ZEPHYR_TOOLCHAIN_VARIANT"] == "gnuarmemb"
        assert stored.env["GNUARMEMB_TOOLCHAIN_PATH"] == str(h.tools / DEFAULT_TOOLCHAIN_PATH)
        assert stored.env["HOME"] == "/home/dev"

    def test_progress_ticks(self, tmp_path: Path) -> None:
        h = Harness(tmp_path)
        ticks: list[int] = []
        h.pipeline().run(on_progress=ticks.append)
        assert ticks == [1, 2, 3, 4, 5, 50, 75, 100]

    def test_missing_md5_warns(self, tmp_path: Path) -> None:
        h = Harness(tmp_path)
        h.pipeline().run()
        assert h.console.find("gcc: no MD5 declared")

    def test_lock_released_and_progress_complete(self, tmp_path: Path) -> None:
        h = Harness(tmp_path)
        h.pipeline().run()

        assert not setup_in_progress(h.tools)
        progress = load_progress(h.tools)
        assert progress.completed
        assert progress.last_step == SetupStep.COMPLETE.value
        assert [a.name for a in progress.artifacts] == ["gcc"]
        assert h.console.find("[SETUP] Zephyr setup complete!")


class TestPrerequisites:
    def test_git_missing(self, tmp_path: Path) -> None:
        runner = ready_runner()
        runner.fail("git --version", returncode=127, stderr="bash: git: command not found")
        h = Harness(tmp_path, runner=runner)

        result = h.pipeline().run()

        assert isinstance(result, Err)
        assert result.error.kind == "prerequisite_missing"
        assert result.error.message == "Unable to continue. Git not installed."
        assert h.runner.commands == ["git --version"]
        assert h.console.find("[SETUP] git is not found")
        assert h.store.load() == Config()
        assert not (h.tools / LOCK_FILE).exists()

    def test_python_2_rejected(self, tmp_path: Path) -> None:
        runner = ready_runner()
        runner.reply("python3 --version", stderr="Python 2.7.18\n")
        h = Harness(tmp_path, runner=runner)

        result = h.pipeline().run()

        assert isinstance(result, Err)
        assert result.error.kind == "prerequisite_missing"
        assert h.runner.commands == ["git --version", "python3 --version"]

    def test_python_version_on_stderr_accepted(self, tmp_path: Path) -> None:
        runner = ready_runner()
        runner.reply("python3 --version", stderr="Python 3.8.10\n")
        h = Harness(tmp_path, runner=runner)
        assert isinstance(h.pipeline().run(), Ok)

    def test_pip_failure_stops_setup(self, tmp_path: Path) -> None:
        runner = ready_runner()
        runner.fail("python3 -m ensurepip", returncode=1)
        h = Harness(tmp_path, runner=runner)

        result = h.pipeline().run()

        assert isinstance(result, Err)
        assert result.error.kind == "install_failed"
        assert h.runner.commands[-1] == "python3 -m ensurepip"
        assert load_progress(h.tools).last_step == SetupStep.CHECK_PYTHON.value


class TestResolution:
    def test_unsupported_platform(self, tmp_path: Path) -> None:
        h = Harness(tmp_path, platform=PlatformInfo(Platform.MACOS, Arch.X64))
        result = h.pipeline().run()

        assert isinstance(result, Err)
        assert result.error.kind == "resolution_failed"
        assert "Unsupported platform: darwin" in result.error.message
        assert result.error.hint == "Supported platforms: linux"
        assert h.http.calls == []

    def test_unsupported_architecture(self, tmp_path: Path) -> None:
        h = Harness(tmp_path, platform=PlatformInfo(Platform.LINUX, Arch.ARM64))
        result = h.pipeline().run()

        assert isinstance(result, Err)
        assert result.error.kind == "resolution_failed"
        assert "Unsupported architecture for linux: arm64" in result.error.message

    def test_invalid_manifest(self, tmp_path: Path) -> None:
        h = Harness(tmp_path)
        h.manifest.write_text("[]", encoding="utf-8")
        result = h.pipeline().run()

        assert isinstance(result, Err)
        assert result.error.kind == "manifest_invalid"


class TestArtifactFailures:
    def test_download_failure(self, tmp_path: Path) -> None:
        h = Harness(tmp_path)
        h.http = MockHttpClient()
        result = h.pipeline().run()

        assert isinstance(result, Err)
        assert result.error.kind == "download_failed"
        assert h.store.load() == Config()
        assert load_progress(h.tools).last_step == SetupStep.RESOLVE_MANIFEST.value

    def test_extraction_failure(self, tmp_path: Path) -> None:
        runner = ready_runner()
        runner.fail("tar ", returncode=2)
        h = Harness(tmp_path, runner=runner)
        result = h.pipeline().run()

        assert isinstance(result, Err)
        assert result.error.kind == "extraction_failed"
        assert "python3 -m pip install west" not in h.runner.commands

    def test_unwritable_progress_file(self, tmp_path: Path) -> None:
        h = Harness(tmp_path)
        progress_path(h.tools).mkdir(parents=True)

        result = h.pipeline().run()

        assert isinstance(result, Err)
        assert result.error.kind == "io_failed"
        assert "setup progress" in result.error.message
        assert h.runner.commands == []
        assert h.store.load() == Config()
        assert not setup_in_progress(h.tools)


def suffixed_downloads(count: int) -> list[dict[str, str]]:
    return [
        {
            "name": f"a{i}",
            "url": f"https://example.com/a{i}.tar.gz",
            "md5": "",
            "filename": f"a{i}.tar.gz",
            "suffix": "bin",
        }
        for i in range(count)
    ]


class TestMultipleArtifacts:
    def test_latest_artifact_first_on_path(self, tmp_path: Path) -> None:
        h = Harness(tmp_path, downloads=suffixed_downloads(3))
        config = h.pipeline().run().unwrap()

        assert config.env is not None
        path = config.env["PATH"].split(":")
        bins = [str(h.tools / f"a{i}" / "bin") for i in (2, 1, 0)]
        assert path[:3] == bins
        assert path[3:] == [str(h.tools / "env" / "bin"), "/usr/bin", "/bin"]

    def test_resume_keeps_each_entry_once(self, tmp_path: Path) -> None:
        h = Harness(tmp_path, downloads=suffixed_downloads(3))
        assert isinstance(h.pipeline().run(), Ok)

        h.runner = ready_runner()
        config = h.pipeline().run().unwrap()

        assert not any(c.startswith("tar ") for c in h.runner.commands)
        assert config.env is not None
        path = config.env["PATH"].split(":")
        bins = [str(h.tools / f"a{i}" / "bin") for i in (2, 1, 0)]
        assert path[:3] == bins
        assert len(path) == len(set(path))


class TestResume:
    def test_installed_artifact_is_skipped(self, tmp_path: Path) -> None:
        h = Harness(tmp_path)
        assert isinstance(h.pipeline().run(), Ok)

        h.runner = ready_runner()
        config = h.pipeline().run().unwrap()

        assert not any(c.startswith("tar ") for c in h.runner.commands)
        assert h.http.calls == [GCC_URL]
        assert h.console.find("[SETUP] gcc already installed")
        assert config.env is not None
        assert config.env["PATH"].split(":")[0] == str(h.tools / "gcc")

    def test_removed_destination_is_reinstalled(self, tmp_path: Path) -> None:
        h = Harness(tmp_path)
        h.pipeline().run()
        (h.tools / "gcc").rmdir()

        h.runner = ready_runner()
        h.pipeline().run()

        assert any(c.startswith("tar ") for c in h.runner.commands)


class TestLockAndCancel:
    def test_busy_when_locked(self, tmp_path: Path) -> None:
        h = Harness(tmp_path)
        h.tools.mkdir(parents=True)
        (h.tools / LOCK_FILE).write_text("123\n", encoding="utf-8")

        result = h.pipeline().run()

        assert isinstance(result, Err)
        assert result.error.kind == "busy"
        assert h.runner.commands == []
        assert (h.tools / LOCK_FILE).exists()

    def test_lock_is_exclusive(self, tmp_path: Path) -> None:
        first = ProvisioningLock(tmp_path)
        second = ProvisioningLock(tmp_path)
        assert isinstance(first.acquire(), Ok)
        assert isinstance(second.acquire(), Err)
        second.release()
        assert setup_in_progress(tmp_path)
        first.release()
        assert not setup_in_progress(tmp_path)

    def test_cancel_before_start(self, tmp_path: Path) -> None:
        h = Harness(tmp_path)
        token = CancelToken()
        token.cancel()

        result = h.pipeline().run(cancel=token)

        assert isinstance(result, Err)
        assert result.error.kind == "cancelled"
        assert h.runner.commands == []
        assert not setup_in_progress(h.tools)

    def test_cancel_between_steps(self, tmp_path: Path) -> None:
        """A cancel during a step takes effect before the next one starts."""
        h = Harness(tmp_path)
        token = CancelToken()

        def on_progress(percent: int) -> None:
            if percent == 3:
                token.cancel()

        result = h.pipeline().run(cancel=token, on_progress=on_progress)

        assert isinstance(result, Err)
        assert result.error.kind == "cancelled"
        assert "ensure_pip" in result.error.message
        assert h.runner.commands[-1] == "python3 -m ensurepip"
        assert h.store.load() == Config()
