"""Provisioning pipeline: from a bare machine to a persisted build environment.

Setup is a strictly sequential list of steps. Each one must succeed before
the next starts; the first failure ends the run with a SetupError and
nothing is rolled back. What a run got through is recorded in
``<tools>/setup-state.json`` (see progress.py), and the workspace Config is
only written by the Persist step, so an aborted run never looks like a
provisioned workspace.
"""

from __future__ import annotations

import os
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Literal

from zt.core.config import Config, ConfigStore
from zt.core.result import Err, Ok, Result
from zt.core.settings import Settings
from zt.output.commands import run_echoed
from zt.output.console import Style
from zt.platform.detection import PlatformInfo

from .environment import Environment
from .installer import ArtifactInstaller, InstallError, destination_dir, executable_dir
from .manifest import (
    Manifest,
    ManifestDownload,
    ManifestError,
    load_bundled_manifest,
    load_manifest,
    resolve,
)
from .progress import SetupProgress, load_progress, save_progress

if TYPE_CHECKING:
    from zt.output.console import ConsoleProtocol
    from zt.platform.process import CommandRunner

__all__ = [
    "LOCK_FILE",
    "CancelToken",
    "ProvisioningLock",
    "ProvisioningPipeline",
    "SetupError",
    "SetupStep",
    "setup_in_progress",
]

LOCK_FILE = ".setup.lock"
VIRTUALENV_DIR = "env"

SetupErrorKind = Literal[
    "prerequisite_missing",
    "install_failed",
    "download_failed",
    "extraction_failed",
    "resolution_failed",
    "cancelled",
    "busy",
    "io_failed",
    "manifest_invalid",
]


@dataclass(frozen=True, slots=True)
class SetupError:
    """Error that ended a setup run."""

    kind: SetupErrorKind
    message: str
    hint: str | None = None


class SetupStep(Enum):
    """Pipeline steps, in execution order."""

    ENSURE_TOOLS_DIR = "ensure_tools_dir"
    CHECK_GIT = "check_git"
    CHECK_PYTHON = "check_python"
    ENSURE_PIP = "ensure_pip"
    INSTALL_VIRTUALENV_TOOL = "install_virtualenv_tool"
    CREATE_VIRTUALENV = "create_virtualenv"
    ACTIVATE_VIRTUALENV = "activate_virtualenv"
    RESOLVE_MANIFEST = "resolve_manifest"
    INSTALL_ARTIFACTS = "install_artifacts"
    INSTALL_BUILD_TOOL = "install_build_tool"
    SET_TOOLCHAIN_VARIABLES = "set_toolchain_variables"
    PERSIST = "persist"
    COMPLETE = "complete"

    def __str__(self) -> str:
        return self.value


# Percentage reported once the step has completed.
_PROGRESS_TICKS: dict[SetupStep, int] = {
    SetupStep.ENSURE_TOOLS_DIR: 1,
    SetupStep.CHECK_PYTHON: 2,
    SetupStep.ENSURE_PIP: 3,
    SetupStep.INSTALL_VIRTUALENV_TOOL: 4,
    SetupStep.ACTIVATE_VIRTUALENV: 5,
    SetupStep.INSTALL_ARTIFACTS: 50,
    SetupStep.INSTALL_BUILD_TOOL: 75,
    SetupStep.COMPLETE: 100,
}


class CancelToken:
    """Cooperative cancellation flag.

    Setting it never interrupts a running command; the pipeline stops before
    the next step (or the next artifact).
    """

    def __init__(self) -> None:
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


def setup_in_progress(tools_dir: Path) -> bool:
    """True while a setup run holds the tools directory lock."""
    return (tools_dir / LOCK_FILE).exists()


class ProvisioningLock:
    """Exclusive lock file guarding the tools directory during setup."""

    def __init__(self, tools_dir: Path) -> None:
        self.path = tools_dir / LOCK_FILE
        self._held = False

    def acquire(self) -> Result[None, SetupError]:
        try:
            fd = os.open(self.path, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
        except FileExistsError:
            return Err(
                SetupError(
                    kind="busy",
                    message="Another setup run is in progress",
                    hint=f"If no setup is running, delete {self.path}",
                )
            )
        except OSError as e:
            return Err(SetupError(kind="io_failed", message=f"Cannot create {self.path}: {e}"))

        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(f"{os.getpid()}\n")
        self._held = True
        return Ok(None)

    def release(self) -> None:
        if self._held:
            self.path.unlink(missing_ok=True)
            self._held = False


def _install_error_to_setup(error: InstallError) -> SetupError:
    match error.kind:
        case "extraction_failed":
            return SetupError(
                kind="extraction_failed",
                message=f"Error extracting {error.name}: {error.message}",
            )
        case "io_failed":
            return SetupError(kind="io_failed", message=str(error))
        case "download_failed":
            return SetupError(
                kind="download_failed",
                message=f"Error downloading {error.name}: {error.message}",
                hint="Check your network connection and re-run zt setup",
            )


class ProvisioningPipeline:
    """Runs setup for one tools directory and persists the result.

    Usage:
        pipeline = ProvisioningPipeline(
            platform=info, tools_dir=tools, settings=settings, console=console,
            runner=runner, installer=installer, config_store=store,
        )
        result = pipeline.run(cancel=token, on_progress=set_percent)
    """

    def __init__(
        self,
        *,
        platform: PlatformInfo,
        tools_dir: Path,
        settings: Settings,
        console: ConsoleProtocol,
        runner: CommandRunner,
        installer: ArtifactInstaller,
        config_store: ConfigStore,
        manifest_path: Path | None = None,
        host_env: Mapping[str, str] | None = None,
    ) -> None:
        self._platform = platform
        self._tools_dir = tools_dir
        self._settings = settings
        self._console = console
        self._runner = runner
        self._installer = installer
        self._config_store = config_store
        self._manifest_path = manifest_path
        self._host_env = dict(os.environ if host_env is None else host_env)

        self._env = Environment(self._host_env, platform.platform)
        self._progress = SetupProgress()
        self._downloads: tuple[ManifestDownload, ...] = ()
        self._config = Config()

    @property
    def python(self) -> str:
        return self._platform.platform.python_command

    @property
    def virtualenv_dir(self) -> Path:
        return self._tools_dir / VIRTUALENV_DIR

    def run(
        self,
        *,
        cancel: CancelToken | None = None,
        on_progress: Callable[[int], None] | None = None,
    ) -> Result[Config, SetupError]:
        """Run every step in order.

        Returns:
            Ok(Config) as persisted, or Err(SetupError) for the step that failed
        """
        token = cancel or CancelToken()
        tick = on_progress or (lambda _percent: None)

        self._env = Environment(self._host_env, self._platform.platform)
        self._downloads = ()
        self._config = Config()

        ensured = self._ensure_tools_dir()
        if isinstance(ensured, Err):
            return ensured

        lock = ProvisioningLock(self._tools_dir)
        acquired = lock.acquire()
        if isinstance(acquired, Err):
            return acquired

        try:
            self._progress = load_progress(self._tools_dir)
            recorded = self._record(SetupStep.ENSURE_TOOLS_DIR, tick)
            if isinstance(recorded, Err):
                return recorded
            return self._run_steps(token, tick)
        finally:
            lock.release()

    def _run_steps(
        self, token: CancelToken, tick: Callable[[int], None]
    ) -> Result[Config, SetupError]:
        steps: list[tuple[SetupStep, Callable[[CancelToken], Result[None, SetupError]]]] = [
            (SetupStep.CHECK_GIT, self._check_git),
            (SetupStep.CHECK_PYTHON, self._check_python),
            (SetupStep.ENSURE_PIP, self._ensure_pip),
            (SetupStep.INSTALL_VIRTUALENV_TOOL, self._install_virtualenv_tool),
            (SetupStep.CREATE_VIRTUALENV, self._create_virtualenv),
            (SetupStep.ACTIVATE_VIRTUALENV, self._activate_virtualenv),
            (SetupStep.RESOLVE_MANIFEST, self._resolve_manifest),
            (SetupStep.INSTALL_ARTIFACTS, self._install_artifacts),
            (SetupStep.INSTALL_BUILD_TOOL, self._install_build_tool),
            (SetupStep.SET_TOOLCHAIN_VARIABLES, self._set_toolchain_variables),
            (SetupStep.PERSIST, self._persist),
        ]

        for step, action in steps:
            if token.cancelled:
                return Err(self._cancelled())
            result = action(token)
            if isinstance(result, Err):
                return result
            recorded = self._record(step, tick)
            if isinstance(recorded, Err):
                return recorded

        self._console.print("[SETUP] Zephyr setup complete!", Style.SUCCESS)
        recorded = self._record(SetupStep.COMPLETE, tick, completed=True)
        if isinstance(recorded, Err):
            return recorded
        return Ok(self._config)

    def _record(
        self, step: SetupStep, tick: Callable[[int], None], *, completed: bool = False
    ) -> Result[None, SetupError]:
        self._progress = self._progress.with_step(step.value, completed=completed)
        saved = self._save_progress()
        if isinstance(saved, Err):
            return saved
        percent = _PROGRESS_TICKS.get(step)
        if percent is not None:
            tick(percent)
        return Ok(None)

    def _save_progress(self) -> Result[None, SetupError]:
        try:
            save_progress(self._tools_dir, self._progress)
        except OSError as e:
            return Err(SetupError(kind="io_failed", message=f"Cannot save setup progress: {e}"))
        return Ok(None)

    def _cancelled(self) -> SetupError:
        last = self._progress.last_step or "start"
        return SetupError(
            kind="cancelled",
            message=f"Setup cancelled after step '{last}'",
            hint="Run zt setup again to resume",
        )

    def _run(self, command: str) -> Result[str, str]:
        """Run a captured setup command with the accumulated environment.

        Returns stdout+stderr on success, the failure summary on error.
        """
        result = run_echoed(self._runner, self._console, command, self._env.as_dict())
        if isinstance(result, Err):
            return Err(str(result.error))
        return Ok(result.value.stdout + result.value.stderr)

    # -------------------------------------------------------------------------
    # Steps
    # -------------------------------------------------------------------------

    def _ensure_tools_dir(self) -> Result[None, SetupError]:
        try:
            self._tools_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            return Err(
                SetupError(kind="io_failed", message=f"Cannot create {self._tools_dir}: {e}")
            )
        if not self._tools_dir.is_dir():
            return Err(
                SetupError(kind="io_failed", message=f"{self._tools_dir} is not a directory")
            )
        return Ok(None)

    def _check_git(self, _token: CancelToken) -> Result[None, SetupError]:
        if isinstance(self._run("git --version"), Err):
            self._console.print("[SETUP] git is not found", Style.ERROR)
            return Err(
                SetupError(
                    kind="prerequisite_missing",
                    message="Unable to continue. Git not installed.",
                    hint="Install git, make sure it is on PATH, then re-run zt setup",
                )
            )
        self._console.print("[SETUP] git installed")
        return Ok(None)

    def _check_python(self, _token: CancelToken) -> Result[None, SetupError]:
        output = self._run(f"{self.python} --version")
        if isinstance(output, Err) or "Python 3" not in output.value:
            self._console.print(f"[SETUP] {self.python} not found", Style.ERROR)
            return Err(
                SetupError(
                    kind="prerequisite_missing",
                    message="Error finding python 3.",
                    hint=f"Install Python 3 so that '{self.python}' is on PATH, then re-run zt setup",
                )
            )
        self._console.print(f"[SETUP] {self.python} found")
        return Ok(None)

    def _pip_step(self, command: str, done: str, failed: str) -> Result[None, SetupError]:
        if isinstance(self._run(command), Err):
            self._console.print(f"[SETUP] unable to {failed}", Style.ERROR)
            return Err(SetupError(kind="install_failed", message=f"Error: unable to {failed}."))
        self._console.print(f"[SETUP] {done}")
        return Ok(None)

    def _ensure_pip(self, _token: CancelToken) -> Result[None, SetupError]:
        return self._pip_step(f"{self.python} -m ensurepip", "pip installed", "install pip")

    def _install_virtualenv_tool(self, _token: CancelToken) -> Result[None, SetupError]:
        return self._pip_step(
            f"{self.python} -m pip install --user virtualenv",
            "virtualenv installed",
            "install virtualenv",
        )

    def _create_virtualenv(self, _token: CancelToken) -> Result[None, SetupError]:
        target = self._runner.quote(self.virtualenv_dir)
        return self._pip_step(
            f"{self.python} -m virtualenv {target}",
            "virtual python environment created",
            "set up virtualenv",
        )

    def _activate_virtualenv(self, _token: CancelToken) -> Result[None, SetupError]:
        self._env.prepend_path(self.virtualenv_dir / self._platform.platform.venv_bin_dir)
        return Ok(None)

    def _load_manifest(self) -> Result[Manifest, ManifestError]:
        if self._manifest_path is None:
            return load_bundled_manifest()
        return load_manifest(self._manifest_path)

    def _resolve_manifest(self, _token: CancelToken) -> Result[None, SetupError]:
        loaded = self._load_manifest()
        if isinstance(loaded, Err):
            return Err(SetupError(kind="manifest_invalid", message=loaded.error.message))

        platform = self._platform.platform.manifest_key
        arch = self._platform.arch.manifest_key
        resolved = resolve(loaded.value, platform, arch)
        if isinstance(resolved, Err):
            error = resolved.error
            hint = (
                "Supported platforms: " + ", ".join(sorted(loaded.value.platforms))
                if error.kind == "unsupported_platform"
                else None
            )
            return Err(
                SetupError(
                    kind="resolution_failed",
                    message=f"{error.message}. Zephyr Tools cannot be installed on this host.",
                    hint=hint,
                )
            )

        self._downloads = resolved.value
        for entry in self._downloads:
            if not entry.md5:
                self._console.warning(f"{entry.name}: no MD5 declared, download is not verified")
        return Ok(None)

    def _install_artifacts(self, token: CancelToken) -> Result[None, SetupError]:
        for entry in self._downloads:
            if token.cancelled:
                return Err(self._cancelled())

            record = self._progress.find(entry)
            if record is not None and destination_dir(entry, self._tools_dir).exists():
                self._console.print(f"[SETUP] {entry.name} already installed")
                self._env.prepend_path(executable_dir(entry, self._tools_dir))
                continue

            self._console.print(f"[SETUP] installing {entry.name}")
            installed = self._installer.install(entry, self._tools_dir, self._env)
            if isinstance(installed, Err):
                return Err(_install_error_to_setup(installed.error))

            self._progress = self._progress.with_artifact(entry)
            saved = self._save_progress()
            if isinstance(saved, Err):
                return saved
        return Ok(None)

    def _install_build_tool(self, _token: CancelToken) -> Result[None, SetupError]:
        package = self._settings.west.package
        return self._pip_step(
            f"{self.python} -m pip install {package}",
            "west installed",
            "install west",
        )

    def _set_toolchain_variables(self, _token: CancelToken) -> Result[None, SetupError]:
        toolchain = self._settings.toolchain
        self._env.set("ZEPHYR_TOOLCHAIN_VARIANT", toolchain.variant)
        self._env.set("GNUARMEMB_TOOLCHAIN_PATH", str(self._tools_dir / toolchain.path))
        return Ok(None)

    def _persist(self, _token: CancelToken) -> Result[None, SetupError]:
        config = Config(env=self._env.as_dict())
        try:
            self._config_store.save(config)
        except OSError as e:
            return Err(SetupError(kind="io_failed", message=f"Cannot save workspace config: {e}"))
        self._config = config
        return Ok(None)
