"""Repository and selection commands."""

from __future__ import annotations

from pathlib import Path

import typer

from zt.cli.commands._helpers import exit_on_service_error
from zt.cli.context import build_context
from zt.cli.selector import make_chooser


def init_repo(
    manifest_url: str | None = typer.Option(
        None,
        "--manifest-url",
        "-m",
        help="Run `west init -m URL` first when the workspace has no .west",
    ),
) -> None:
    """Fetch workspace sources (west update + requirements), then pick a project."""
    ctx = build_context()
    service = ctx.project_service(make_chooser(ctx.console))
    exit_on_service_error(service.init_repo(manifest_url=manifest_url), ctx)


def change_project(
    project: Path | None = typer.Argument(
        None, help="Project directory (default: choose from the discovered projects)"
    ),
) -> None:
    """Select the project to build."""
    ctx = build_context()
    service = ctx.project_service(make_chooser(ctx.console))
    exit_on_service_error(service.change_project(str(project) if project else None), ctx)


def change_board(
    board: str | None = typer.Argument(None, help="Board identifier (default: choose)"),
) -> None:
    """Select the target board."""
    ctx = build_context()
    service = ctx.project_service(make_chooser(ctx.console))
    exit_on_service_error(service.change_board(board), ctx)


def select_com_port() -> None:
    """Select the serial port (not available yet)."""
    ctx = build_context()
    ctx.project_service().select_com_port()
