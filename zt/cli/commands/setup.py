from __future__ import annotations

import signal
from collections.abc import Iterator
from contextlib import contextmanager

import typer

from zt.cli.context import build_context
from zt.core.result import Err
from zt.output.errors import print_setup_error, setup_error_exit_code
from zt.toolchain.pipeline import CancelToken


@contextmanager
def _cancel_on_interrupt(token: CancelToken) -> Iterator[None]:
    """Turn Ctrl-C into a cooperative cancel for the duration of the block."""

    def handler(_signum: int, _frame: object) -> None:
        token.cancel()

    previous = signal.signal(signal.SIGINT, handler)
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, previous)


def setup() -> None:
    """Install the Zephyr toolchain and record the build environment.

    Checks git and Python 3, creates a virtualenv in the tools directory,
    installs the toolchain artifacts for this host and west. Re-running
    resumes: artifacts already installed from the same URL are kept.
    Ctrl-C stops after the current step.
    """
    ctx = build_context()
    ctx.console.header(f"Setting up Zephyr tools in {ctx.tools_dir}")

    token = CancelToken()
    with _cancel_on_interrupt(token), ctx.console.progress("Setting up Zephyr Tools") as tick:
        result = ctx.pipeline().run(cancel=token, on_progress=tick)

    if isinstance(result, Err):
        print_setup_error(result.error, ctx.console)
        raise typer.Exit(code=setup_error_exit_code(result.error))

    ctx.console.success("Zephyr Tools setup complete!")
