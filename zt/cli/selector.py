"""Numbered pick-one prompt used for board and project selection."""

from __future__ import annotations

import sys
from collections.abc import Sequence

import typer

from zt.output.console import ConsoleProtocol, Style
from zt.services.base import Chooser


def is_interactive_terminal() -> bool:
    return bool(sys.stdin.isatty() and sys.stdout.isatty())


def make_chooser(console: ConsoleProtocol) -> Chooser:
    """Return a chooser printing options to console and reading a number.

    Outside a terminal the chooser always backs out (returns None), so
    commands fail with guidance instead of blocking on input.
    """

    def choose(prompt: str, options: Sequence[str]) -> str | None:
        if not options or not is_interactive_terminal():
            return None

        console.header(prompt)
        for i, option in enumerate(options, start=1):
            console.print(f"  {i:2d}. {option}")
        console.print("   0. cancel", Style.DIM)

        while True:
            index: int = typer.prompt("Selection", type=int, default=1)
            if index == 0:
                return None
            if 1 <= index <= len(options):
                return options[index - 1]
            console.warning(f"enter a number between 0 and {len(options)}")

    return choose
