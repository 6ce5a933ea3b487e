from __future__ import annotations

from zt.cli.commands._helpers import exit_on_service_error
from zt.cli.context import build_context
from zt.cli.selector import make_chooser


def _build(*, pristine: bool) -> None:
    ctx = build_context()
    service = ctx.build_service(make_chooser(ctx.console))
    exit_on_service_error(service.build(pristine=pristine), ctx)


def build() -> None:
    """Build the selected project for the selected board (reuses build/)."""
    _build(pristine=False)


def build_pristine() -> None:
    """Build from scratch (west build -p)."""
    _build(pristine=True)


def flash() -> None:
    """Flash the current build to the board."""
    ctx = build_context()
    exit_on_service_error(ctx.build_service().flash(), ctx)


def clean() -> None:
    """Delete the workspace build directory."""
    ctx = build_context()
    exit_on_service_error(ctx.build_service().clean(), ctx)
