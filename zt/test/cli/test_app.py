from __future__ import annotations

import os
from pathlib import Path

import pytest
from typer.testing import CliRunner

from zt import __version__
from zt.cli.app import app
from zt.cli.context import AppContext
from zt.core.config import Config, ConfigStore
from zt.core.errors import ErrorCode
from zt.core.settings import Settings
from zt.core.store import WorkspaceStore
from zt.core.workspace import WORKSPACE_ENV_VAR, Workspace
from zt.output.console import MockConsole
from zt.platform.detection import detect
from zt.platform.process import MockCommandRunner


def _ctx(tmp_path: Path) -> AppContext:
    return AppContext(
        workspace=Workspace(root=tmp_path),
        platform=detect(),
        settings=Settings(),
        console=MockConsole(),
        runner=MockCommandRunner(),
        config_store=ConfigStore(WorkspaceStore(tmp_path / ".zt" / "state.json")),
        tools_dir=tmp_path / "tools",
    )


def test_version() -> None:
    result = CliRunner().invoke(app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_version_wins_over_command() -> None:
    result = CliRunner().invoke(app, ["--version", "status"])
    assert result.exit_code == 0
    assert result.output.strip() == __version__


def test_commands_are_registered() -> None:
    result = CliRunner().invoke(app, ["--help"])
    assert result.exit_code == 0
    for name in (
        "setup",
        "init-repo",
        "change-project",
        "change-board",
        "select-com-port",
        "build",
        "build-pristine",
        "flash",
        "clean",
        "status",
    ):
        assert name in result.output


def test_change_board_through_app(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    import zt.cli.commands.project as project_cmd

    ctx = _ctx(tmp_path)
    monkeypatch.setattr(project_cmd, "build_context", lambda: ctx)

    result = CliRunner().invoke(app, ["change-board", "particle_xenon"])

    assert result.exit_code == 0
    assert ctx.config_store.load() == Config(board="particle_xenon")


def test_workspace_option_sets_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    import zt.cli.commands.status as status_cmd

    monkeypatch.setenv(WORKSPACE_ENV_VAR, "")
    monkeypatch.setattr(status_cmd, "build_context", lambda: _ctx(tmp_path))

    result = CliRunner().invoke(app, ["--workspace", str(tmp_path), "status"])

    assert result.exit_code == 0
    assert os.environ[WORKSPACE_ENV_VAR] == str(tmp_path.resolve())


def test_workspace_option_must_be_directory(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv(WORKSPACE_ENV_VAR, "")
    result = CliRunner().invoke(app, ["--workspace", str(tmp_path / "missing"), "status"])
    assert result.exit_code == int(ErrorCode.ENV_ERROR)
