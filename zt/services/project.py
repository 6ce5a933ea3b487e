"""Repository initialization and project/board selection."""

from __future__ import annotations

from pathlib import Path

from zt.core.config import BOARDS, Config, is_known_board
from zt.core.result import Err, Ok, Result
from zt.output.commands import run_echoed

from .base import BaseService
from .discovery import discover
from .errors import CommandFailed, ConfigInvalid, ServiceError

__all__ = ["INIT_REPO_TASK", "ProjectService"]

INIT_REPO_TASK = "Zephyr Tools: Init Repo"
REQUIREMENTS_FILE = "zephyr/scripts/requirements.txt"


class ProjectService(BaseService):
    """init-repo, change-project, change-board and select-com-port."""

    def init_repo(self, *, manifest_url: str | None = None) -> Result[Config, ServiceError]:
        """Fetch the west workspace sources, then select a project.

        Tasks run one at a time and each is awaited; the first failure stops
        the sequence.
        """
        loaded = self._provisioned_config()
        if isinstance(loaded, Err):
            return loaded
        config = loaded.value
        env = config.env or {}
        root = self._workspace.root

        commands: list[str] = []
        if manifest_url and not self._workspace.has_west():
            commands.append(f"west init -m {self._runner.quote(manifest_url)}")
        commands.append("west update")
        commands.append(f"pip install -r {REQUIREMENTS_FILE}")

        for command in commands:
            self._console.print(f"> {command}")
            result = self._runner.run_task(INIT_REPO_TASK, command, env, root)
            if isinstance(result, Err):
                return Err(
                    CommandFailed(
                        task=INIT_REPO_TASK,
                        returncode=result.error.returncode,
                        detail=command,
                    )
                )

        return self.change_project()

    def change_project(self, project: str | None = None) -> Result[Config, ServiceError]:
        """Select the project to build among those found in the manifest repo.

        Args:
            project: Directory to select; must be one of the discovered
                projects. None prompts the user.
        """
        loaded = self._provisioned_config()
        if isinstance(loaded, Err):
            return loaded
        return self.select_project(loaded.value, project)

    def select_project(
        self, config: Config, project: str | None = None
    ) -> Result[Config, ServiceError]:
        """Discover the projects of a provisioned Config and save the chosen one."""
        candidates = self._project_candidates(config)
        if isinstance(candidates, Err):
            return candidates
        chosen = self._select_project(candidates.value, project)
        if isinstance(chosen, Err):
            return chosen
        updated = config.with_project(chosen.value)
        self._config_store.save(updated)
        self._console.success(f"Project changed to {chosen.value}")
        return Ok(updated)

    def change_board(self, board: str | None = None) -> Result[Config, ServiceError]:
        """Select the target board; works before setup has run."""
        config = self._config_store.load()
        return self.select_board(config, board)

    def select_board(self, config: Config, board: str | None = None) -> Result[Config, ServiceError]:
        if board is not None:
            if not is_known_board(board):
                return Err(
                    ConfigInvalid(
                        message=f"Unknown board: {board}",
                        hint="Supported boards: " + ", ".join(BOARDS),
                    )
                )
            chosen = board
        else:
            picked = self._pick("Pick your board", BOARDS)
            if picked is None:
                return Err(ConfigInvalid(message="No board selected."))
            chosen = picked

        updated = config.with_board(chosen)
        self._config_store.save(updated)
        self._console.success(f"Board changed to {chosen}")
        return Ok(updated)

    def select_com_port(self) -> None:
        self._console.info("Serial port selection is not available yet; nothing was changed.")

    def _project_candidates(self, config: Config) -> Result[list[Path], ServiceError]:
        command = "west config manifest.path"
        result = run_echoed(
            self._runner, self._console, command, config.env or {}, self._workspace.root
        )
        if isinstance(result, Err):
            return Err(
                CommandFailed(
                    task=command,
                    returncode=result.error.returncode,
                    detail=result.error.stderr.strip(),
                )
            )
        if result.value.stderr.strip():
            return Err(CommandFailed(task=command, returncode=0, detail=result.value.stderr.strip()))

        manifest_dir = self._workspace.root / result.value.stdout.strip()
        candidates = discover(manifest_dir)
        if not candidates:
            return Err(
                ConfigInvalid(
                    message=f"No projects found under {manifest_dir}",
                    hint="Run `zt init-repo` to fetch the workspace sources",
                )
            )
        return Ok(candidates)

    def _select_project(
        self, candidates: list[Path], project: str | None
    ) -> Result[Path, ServiceError]:
        if project is not None:
            wanted = Path(project).expanduser().resolve()
            for candidate in candidates:
                if candidate.resolve() == wanted:
                    return Ok(candidate)
            return Err(
                ConfigInvalid(
                    message=f"Not a project of this workspace: {project}",
                    hint="Run `zt change-project` without arguments to pick from the list",
                )
            )

        by_label = {str(c): c for c in candidates}
        picked = self._pick("Pick your target project", list(by_label))
        if picked is None:
            return Err(ConfigInvalid(message="No project selected."))
        return Ok(by_label[picked])
