"""Error presentation utilities.

Centralized error formatting and exit code mapping for consistent UX.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from zt.core.errors import ErrorCode
from zt.output.console import Style
from zt.services.errors import (
    CleanFailed,
    CommandFailed,
    ConfigInvalid,
    ServiceError,
    SetupRunning,
)
from zt.toolchain.pipeline import SetupError

if TYPE_CHECKING:
    from zt.output.console import ConsoleProtocol

__all__ = [
    "print_service_error",
    "print_setup_error",
    "service_error_exit_code",
    "setup_error_exit_code",
]


def print_setup_error(error: SetupError, console: ConsoleProtocol) -> None:
    console.error(error.message)
    if error.hint:
        console.print(f"hint: {error.hint}", Style.DIM)


def setup_error_exit_code(error: SetupError) -> int:
    match error.kind:
        case "prerequisite_missing" | "resolution_failed" | "busy" | "manifest_invalid":
            return int(ErrorCode.ENV_ERROR)
        case "install_failed":
            return int(ErrorCode.BUILD_ERROR)
        case "download_failed":
            return int(ErrorCode.NETWORK_ERROR)
        case "extraction_failed" | "io_failed":
            return int(ErrorCode.IO_ERROR)
        case "cancelled":
            return int(ErrorCode.USER_ERROR)


def print_service_error(error: ServiceError, console: ConsoleProtocol) -> None:
    """Print a service error to console with appropriate formatting."""
    match error:
        case ConfigInvalid(message=message, hint=hint):
            console.error(message)
            if hint:
                console.print(f"hint: {hint}", Style.DIM)
        case CommandFailed(task=task, returncode=rc, detail=detail):
            console.error(f"{task} failed (exit {rc})")
            if detail:
                console.print(detail, Style.DIM)
        case SetupRunning(lock_path=lock_path):
            console.error("zt setup is running; try again when it has finished")
            console.print(f"hint: if no setup is running, delete {lock_path}", Style.DIM)
        case CleanFailed(path=path, reason=reason):
            console.error(f"could not remove {path}: {reason}")


def service_error_exit_code(error: ServiceError) -> int:
    match error:
        case ConfigInvalid():
            return int(ErrorCode.USER_ERROR)
        case CommandFailed():
            return int(ErrorCode.BUILD_ERROR)
        case SetupRunning():
            return int(ErrorCode.ENV_ERROR)
        case CleanFailed():
            return int(ErrorCode.IO_ERROR)
