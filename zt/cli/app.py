from __future__ import annotations

import os
from pathlib import Path

import typer

from zt import __version__
from zt.cli.commands.build import build, build_pristine, clean, flash
from zt.cli.commands.project import change_board, change_project, init_repo, select_com_port
from zt.cli.commands.setup import setup
from zt.cli.commands.status import status
from zt.core.errors import ErrorCode
from zt.core.workspace import WORKSPACE_ENV_VAR

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
    help="Zephyr toolchain setup, build and flash.",
)


# Commands
app.command()(setup)
app.command("init-repo")(init_repo)
app.command("change-project")(change_project)
app.command("change-board")(change_board)
app.command("select-com-port")(select_com_port)
app.command()(build)
app.command("build-pristine")(build_pristine)
app.command()(flash)
app.command()(clean)
app.command()(status)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit(code=0)


@app.callback()
def _main(  # pyright: ignore[reportUnusedFunction]
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    workspace: Path | None = typer.Option(
        None,
        "--workspace",
        help="Workspace root (overrides auto detection)",
    ),
) -> None:
    if workspace is not None:
        try:
            root = workspace.expanduser().resolve()
        except OSError as e:
            typer.echo(f"error: invalid --workspace: {e}", err=True)
            raise typer.Exit(code=int(ErrorCode.USER_ERROR))

        if not root.is_dir():
            typer.echo(f"error: --workspace '{root}' is not a directory", err=True)
            raise typer.Exit(code=int(ErrorCode.ENV_ERROR))

        os.environ[WORKSPACE_ENV_VAR] = str(root)


def main() -> None:
    app()
