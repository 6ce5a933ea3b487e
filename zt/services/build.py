"""Build, flash and clean for the selected project and board.

Every operation first requires a provisioned Config (setup has run and is
not running right now). Build fills a missing board or project by asking the
user inline instead of failing.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from zt.core.config import Config, ConfigStore
from zt.core.result import Err, Ok, Result
from zt.core.workspace import Workspace
from zt.output.commands import print_captured
from zt.platform.files import remove_tree

from .base import BaseService, Chooser
from .errors import CleanFailed, CommandFailed, ConfigInvalid, ServiceError
from .project import ProjectService

if TYPE_CHECKING:
    from zt.output.console import ConsoleProtocol
    from zt.platform.process import CommandRunner

__all__ = ["BUILD_TASK", "FLASH_COMMAND", "BuildService"]

BUILD_TASK = "Zephyr Tools: Build"
FLASH_COMMAND = "west flash"


class BuildService(BaseService):
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
        super().__init__(
            workspace=workspace,
            console=console,
            runner=runner,
            config_store=config_store,
            tools_dir=tools_dir,
            choose=choose,
        )
        self._projects = ProjectService(
            workspace=workspace,
            console=console,
            runner=runner,
            config_store=config_store,
            tools_dir=tools_dir,
            choose=choose,
        )

    def build_command(self, board: str, project: Path, *, pristine: bool) -> str:
        flag = " -p" if pristine else ""
        return f"west build -b {board}{flag} -s {self._runner.quote(project)}"

    def build(self, *, pristine: bool = False) -> Result[Config, ServiceError]:
        """Run ``west build`` as a named task in the workspace root.

        Returns:
            Ok(Config) used for the build (including any inline selection)
        """
        loaded = self._provisioned_config()
        if isinstance(loaded, Err):
            return loaded
        config = loaded.value

        if config.board is None:
            selected = self._projects.select_board(config)
            if isinstance(selected, Err):
                return selected
            config = selected.value

        if config.project is None:
            selected = self._projects.select_project(config)
            if isinstance(selected, Err):
                return selected
            config = selected.value

        board, project = config.board, config.project
        if board is None or project is None:
            return Err(ConfigInvalid(message="Select a board and a project before building."))

        command = self.build_command(board, project, pristine=pristine)
        result = self._runner.run_task(BUILD_TASK, command, config.env or {}, self._workspace.root)
        if isinstance(result, Err):
            return Err(
                CommandFailed(task=BUILD_TASK, returncode=result.error.returncode, detail=command)
            )
        self._console.info(f"Building for {board}")
        return Ok(config)

    def flash(self) -> Result[None, ServiceError]:
        loaded = self._provisioned_config()
        if isinstance(loaded, Err):
            return loaded
        env = loaded.value.env or {}

        with self._console.status("Flashing board"):
            result = self._runner.run(FLASH_COMMAND, env, self._workspace.root)

        if isinstance(result, Err):
            print_captured(self._console, result.error.stdout, result.error.stderr)
            return Err(
                CommandFailed(
                    task=FLASH_COMMAND,
                    returncode=result.error.returncode,
                    detail="Error flashing. Check output for more info.",
                )
            )
        print_captured(self._console, result.value.stdout, result.value.stderr)
        return Ok(None)

    def clean(self) -> Result[bool, ServiceError]:
        """Delete the workspace build directory.

        Returns:
            Ok(True) if something was deleted, Ok(False) if no board is
            selected or there was no build directory
        """
        loaded = self._provisioned_config()
        if isinstance(loaded, Err):
            return loaded
        if loaded.value.board is None:
            self._console.info("No board selected, nothing to clean")
            return Ok(False)

        build_dir = self._workspace.build_dir
        try:
            removed = remove_tree(build_dir)
        except OSError as e:
            return Err(CleanFailed(path=build_dir, reason=str(e)))

        if removed:
            self._console.success(f"Removed {build_dir}")
        return Ok(removed)
