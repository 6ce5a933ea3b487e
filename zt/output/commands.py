"""Echoing captured commands to the console."""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import TYPE_CHECKING

from zt.core.result import Err, Result
from zt.platform.process import CommandOutput, ProcessError

from .console import Style

if TYPE_CHECKING:
    from zt.platform.process import CommandRunner

    from .console import ConsoleProtocol

__all__ = ["print_captured", "run_echoed"]


def print_captured(console: ConsoleProtocol, stdout: str, stderr: str) -> None:
    """Print captured command output, dimmed, skipping empty streams."""
    for stream in (stdout, stderr):
        text = stream.rstrip()
        if text:
            console.print(text, Style.DIM)


def run_echoed(
    runner: CommandRunner,
    console: ConsoleProtocol,
    command: str,
    env: Mapping[str, str],
    cwd: Path | None = None,
) -> Result[CommandOutput, ProcessError]:
    """Run a captured command, printing it before and its output after."""
    console.print(f"$ {command}", Style.DIM)
    result = runner.run(command, env, cwd)
    if isinstance(result, Err):
        print_captured(console, result.error.stdout, result.error.stderr)
    else:
        print_captured(console, result.value.stdout, result.value.stderr)
    return result
