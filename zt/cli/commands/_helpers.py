"""Shared helpers for CLI commands."""

from __future__ import annotations

from typing import TYPE_CHECKING, NoReturn, TypeVar

import typer

from zt.core.result import Err, Result
from zt.output.errors import print_service_error, service_error_exit_code

if TYPE_CHECKING:
    from zt.cli.context import AppContext
    from zt.services.errors import ServiceError

T = TypeVar("T")


def exit_on_service_error(result: Result[T, ServiceError], ctx: AppContext) -> None:
    """Print the error and exit if result is Err, otherwise return."""
    if isinstance(result, Err):
        print_service_error(result.error, ctx.console)
        exit_with_code(service_error_exit_code(result.error))


def exit_with_code(code: int) -> NoReturn:
    raise typer.Exit(code=code)
