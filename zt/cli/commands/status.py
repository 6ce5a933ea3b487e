"""Status command - show the workspace configuration and setup state."""

from __future__ import annotations

from zt.cli.context import build_context
from zt.output.console import Style
from zt.toolchain.pipeline import setup_in_progress
from zt.toolchain.progress import load_progress


def status() -> None:
    """Show board, project, provisioning and setup progress."""
    ctx = build_context()
    console = ctx.console
    config = ctx.config_store.load()

    console.header(f"Workspace {ctx.workspace.root}")
    console.print(f"platform:    {ctx.platform}")
    console.print(f"tools:       {ctx.tools_dir}")
    console.print(f"board:       {config.board or '-'}")
    console.print(f"project:     {config.project or '-'}")

    if config.is_provisioned:
        console.success("environment recorded (setup complete)")
    else:
        console.warning("not provisioned, run `zt setup`")

    if setup_in_progress(ctx.tools_dir):
        console.warning("a setup run is in progress")
        return

    progress = load_progress(ctx.tools_dir)
    if progress.last_step is not None and not progress.completed:
        console.warning(f"last setup stopped after step '{progress.last_step}'")
    for artifact in progress.artifacts:
        console.print(f"  {artifact.name}  {artifact.url}", Style.DIM)
