"""Shared wiring for workspace services."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING

from zt.core.config import Config, ConfigStore
from zt.core.result import Err, Ok, Result
from zt.core.workspace import Workspace
from zt.toolchain.pipeline import LOCK_FILE, setup_in_progress

from .errors import ConfigInvalid, ServiceError, SetupRunning

if TYPE_CHECKING:
    from pathlib import Path

    from zt.output.console import ConsoleProtocol
    from zt.platform.process import CommandRunner

__all__ = ["BaseService", "Chooser", "SETUP_FIRST"]

# (prompt, options) -> chosen option, or None when the user backs out.
Chooser = Callable[[str, Sequence[str]], str | None]

SETUP_FIRST = ConfigInvalid(
    message="Run `zt setup` before using this command.",
    hint="zt setup installs the toolchain and records the build environment",
)


class BaseService:
    def __init__(
        self,
        *,
        workspace: Workspace,
        console: ConsoleProtocol,
        runner: CommandRunner,
        config_store: ConfigStore,
        tools_dir: Path,
        choose: Chooser | None = None,
    ) -> None:
        self._workspace = workspace
        self._console = console
        self._runner = runner
        self._config_store = config_store
        self._tools_dir = tools_dir
        self._choose = choose

    def _provisioned_config(self) -> Result[Config, ServiceError]:
        """Load the Config, requiring a finished setup and no setup running."""
        if setup_in_progress(self._tools_dir):
            return Err(SetupRunning(lock_path=self._tools_dir / LOCK_FILE))
        config = self._config_store.load()
        if config.env is None:
            return Err(SETUP_FIRST)
        return Ok(config)

    def _pick(self, prompt: str, options: Sequence[str]) -> str | None:
        if self._choose is None or not options:
            return None
        return self._choose(prompt, options)
